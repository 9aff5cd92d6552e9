# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Read-only inspection of transfer archives.

Inspection never writes to the database or the uploads directory. It lists
the archive, extracts only ``data.json`` into a scratch directory, and
reports counts, an itemized listing for the operator to choose actions
from, and the upload files that are not yet present locally.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import logging
import tempfile

from .. import config
from .archive import TarCodec
from .exceptions import ArchiveNotFoundError, InvalidFilenameError
from .manifest import COLLECTIONS, MANIFEST_FILENAME, UPLOADS_DIRNAME, TransferManifest
from .paths import resolve_backup_dir, resolve_project_root, resolve_uploads_dir
from .utils import is_safe_transfer_filename, safe_upload_filename

logger = logging.getLogger(__name__)

PLACEHOLDER_FILES = (".gitkeep",)


@dataclass
class TransferInspectResult:
    """Outcome of inspecting a transfer archive.

    ``items`` is None when the archive has no ``data.json``.
    """
    filename: str
    has_data_json: bool
    uploads_file_count: int
    counts: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in COLLECTIONS})
    items: Optional[Dict[str, List[Dict[str, Any]]]] = None
    missing_uploads: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "filename": self.filename,
            "hasDataJson": self.has_data_json,
            "uploadsFileCount": self.uploads_file_count,
            "counts": dict(self.counts),
            "missingUploads": list(self.missing_uploads),
        }
        if self.items is not None:
            data["items"] = self.items
        return data


def check_transfer_filename(filename: str) -> None:
    if not is_safe_transfer_filename(filename):
        raise InvalidFilenameError(f"Invalid transfer filename: {filename!r}")


def transfer_archive_path(filename: str, backup_dir: Path) -> Path:
    """Validated path of an existing transfer archive.

    Raises:
        InvalidFilenameError: If the name fails the allow-list
        ArchiveNotFoundError: If no such archive exists
    """
    check_transfer_filename(filename)
    path = backup_dir / filename
    if not path.is_file():
        raise ArchiveNotFoundError(f"Transfer archive not found: {filename}")
    return path


def upload_entries(entries: Iterable[str]) -> List[str]:
    """Bare filenames of the file entries under ``uploads/``."""
    prefix = f"{UPLOADS_DIRNAME}/"
    names = []
    for entry in entries:
        if not entry.startswith(prefix) or entry.endswith("/"):
            continue
        name = entry[len(prefix):]
        if name in PLACEHOLDER_FILES:
            continue
        names.append(name)
    return names


def find_missing_uploads(names: Iterable[str], uploads_dir: Path) -> List[str]:
    """Upload names with a safe form that do not exist in ``uploads_dir``."""
    missing = []
    for name in names:
        safe = safe_upload_filename(name)
        if safe is None:
            continue
        if not (uploads_dir / safe).exists():
            missing.append(safe)
    return missing


def read_transfer_manifest(archive_path: Path, codec: TarCodec) -> TransferManifest:
    """Extract and parse ``data.json`` from an archive.

    Raises:
        ArchiveError: If tar cannot extract the entry
        ManifestError: If the manifest is malformed or has the wrong version
    """
    with tempfile.TemporaryDirectory(prefix="tribefinder-transfer-inspect-", ignore_cleanup_errors=True) as tmp:
        codec.extract_selected(archive_path, [MANIFEST_FILENAME], tmp)
        return TransferManifest.from_file(Path(tmp) / MANIFEST_FILENAME)


def itemize(manifest: TransferManifest) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "users": [{"email": u.email, "name": u.name} for u in manifest.users],
        "groups": [{"sourceId": g.source_id, "name": g.name} for g in manifest.groups],
        "events": [
            {"sourceId": e.source_id, "title": e.title, "startDate": e.start_date}
            for e in manifest.events
        ],
        "memberships": [
            {
                "key": m.key,
                "userEmail": m.user_email,
                "groupSourceId": m.group_source_id,
                "role": m.role,
                "status": m.status,
            }
            for m in manifest.memberships
        ],
    }


def inspect_transfer(
    filename: str,
    codec: Optional[TarCodec] = None,
    project_root: Optional[Path] = None,
) -> TransferInspectResult:
    """Inspect a transfer archive in the backup directory without applying it."""
    check_transfer_filename(filename)
    codec = codec or TarCodec()
    project_root = project_root or resolve_project_root()
    backup_dir = resolve_backup_dir(project_root)
    uploads_dir = resolve_uploads_dir(project_root)
    archive_path = transfer_archive_path(filename, backup_dir)

    entries = codec.list(archive_path)
    uploads = upload_entries(entries)
    missing = find_missing_uploads(uploads, uploads_dir)

    result = TransferInspectResult(
        filename=filename,
        has_data_json=MANIFEST_FILENAME in entries,
        uploads_file_count=len(uploads),
        missing_uploads=missing[: config.get("missing_uploads_report_limit")],
    )
    if result.has_data_json:
        manifest = read_transfer_manifest(archive_path, codec)
        result.counts = manifest.counts()
        result.items = itemize(manifest)

    logger.info(
        f"Inspected {filename}: data.json={'yes' if result.has_data_json else 'no'}, "
        f"{result.uploads_file_count} upload files, {len(missing)} missing locally"
    )
    return result
