# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Apply transfer archives and manage uploaded ones.

``apply_transfer`` re-reads the manifest from the archive (an earlier
inspection result is never trusted), runs the collection importers in
dependency order (users, groups, events, memberships) and finally copies
in the upload files that are not present locally. Existing upload files
are never overwritten.

The apply is not one database transaction. A failure part way leaves the
entities written so far in place; re-running with ``skip`` for those is
the recovery path.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union
import logging
import shutil
import tempfile

from .. import config
from . import importers  # noqa: F401
from .archive import ArchiveInfo, TarCodec
from .base import ACTIONS, ImportContext
from .exceptions import InvalidActionError, InvalidFilenameError, ManifestError
from .inspector import (
    check_transfer_filename,
    find_missing_uploads,
    read_transfer_manifest,
    transfer_archive_path,
    upload_entries,
)
from .manifest import COLLECTIONS, MANIFEST_FILENAME, UPLOADS_DIRNAME
from .matchers import DEFAULT_MATCHERS, Matchers
from .paths import resolve_backup_dir, resolve_project_root, resolve_uploads_dir
from .registry import TransferImporterRegistry
from .utils import (
    ARCHIVE_SUFFIX,
    TRANSFER_UPLOAD_PREFIX,
    is_safe_transfer_filename,
    now_millis,
    sanitize_original_name,
    write_private_file,
)

logger = logging.getLogger(__name__)


def _tally() -> Dict[str, int]:
    return {name: 0 for name in COLLECTIONS}


@dataclass
class TransferApplyResult:
    created: Dict[str, int] = field(default_factory=_tally)
    updated: Dict[str, int] = field(default_factory=_tally)
    skipped: Dict[str, int] = field(default_factory=_tally)
    notes: List[str] = field(default_factory=list)
    ok: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "created": dict(self.created),
            "updated": dict(self.updated),
            "skipped": dict(self.skipped),
            "notes": list(self.notes),
        }


def normalize_actions(actions: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, str]]:
    """Validate an action map; missing collections become empty maps.

    Raises:
        InvalidActionError: On a malformed map or an unknown action
    """
    actions = actions or {}
    if not isinstance(actions, dict):
        raise InvalidActionError("Actions must be an object keyed by collection")

    normalized = {}
    for name in COLLECTIONS:
        entries = actions.get(name) or {}
        if not isinstance(entries, dict):
            raise InvalidActionError(f"Actions for {name} must be an object")
        for key, action in entries.items():
            if action not in ACTIONS:
                raise InvalidActionError(
                    f"Invalid action {action!r} for {name} {key!r}; expected one of {', '.join(ACTIONS)}"
                )
        normalized[name] = {str(key): action for key, action in entries.items()}
    return normalized


def extract_missing_uploads(archive_path: Path, uploads_dir: Path, codec: TarCodec) -> List[str]:
    """Copy archive uploads that are absent locally into ``uploads_dir``.

    Returns:
        Names of the files that were added
    """
    missing = find_missing_uploads(upload_entries(codec.list(archive_path)), uploads_dir)
    if not missing:
        return []

    added = []
    with tempfile.TemporaryDirectory(prefix="tribefinder-transfer-uploads-", ignore_cleanup_errors=True) as tmp:
        codec.extract_selected(archive_path, [f"{UPLOADS_DIRNAME}/{name}" for name in missing], tmp)
        extracted_dir = Path(tmp) / UPLOADS_DIRNAME
        uploads_dir.mkdir(parents=True, exist_ok=True)
        for name in missing:
            src = extracted_dir / name
            if src.is_symlink() or not src.is_file():
                continue
            dest = uploads_dir / name
            if dest.exists():
                continue
            shutil.copyfile(src, dest)
            added.append(name)
    return added


def apply_transfer(
    filename: str,
    actions: Optional[Dict[str, Any]],
    matchers: Optional[Matchers] = None,
    codec: Optional[TarCodec] = None,
    project_root: Optional[Path] = None,
) -> TransferApplyResult:
    """Import a transfer archive using the operator's per-record actions.

    Args:
        filename: Archive name in the backup directory
        actions: ``{"users": {email: action}, "groups": {sourceId: action},
            "events": {sourceId: action}, "memberships": {key: action}}``;
            records without an action are skipped
        matchers: Collision matchers, DEFAULT_MATCHERS if omitted

    Returns:
        TransferApplyResult with per-collection tallies and notes

    Raises:
        InvalidFilenameError, ArchiveNotFoundError, InvalidActionError,
        ManifestError: Before anything is written
        DatabaseError: From any entity write; the apply stops there
    """
    check_transfer_filename(filename)
    actions = normalize_actions(actions)
    codec = codec or TarCodec()
    project_root = project_root or resolve_project_root()
    backup_dir = resolve_backup_dir(project_root)
    uploads_dir = resolve_uploads_dir(project_root)
    archive_path = transfer_archive_path(filename, backup_dir)

    if MANIFEST_FILENAME not in codec.list(archive_path):
        raise ManifestError(f"{filename} does not contain {MANIFEST_FILENAME}")
    manifest = read_transfer_manifest(archive_path, codec)

    context = ImportContext(matchers=matchers or DEFAULT_MATCHERS)
    result = TransferApplyResult()

    for importer_class in TransferImporterRegistry.get_ordered_importers():
        importer = importer_class(context)
        name = importer.model_name
        outcome = importer.import_records(getattr(manifest, name), actions[name])
        result.created[name] = outcome.created
        result.updated[name] = outcome.updated
        result.skipped[name] = outcome.skipped

    added = extract_missing_uploads(archive_path, uploads_dir, codec)

    if context.copies:
        context.note(
            f"{context.copies} record(s) were copied. Copy actions are not idempotent: "
            "applying this archive again with copy creates further copies."
        )
    result.notes = context.notes

    logger.info(
        f"Applied {filename}: created {result.created}, updated {result.updated}, "
        f"skipped {result.skipped}, {len(added)} upload files added"
    )
    return result


def store_uploaded_transfer_archive(
    original_name: str,
    source: Union[bytes, BinaryIO],
    project_root: Optional[Path] = None,
) -> ArchiveInfo:
    """Save an archive produced by another instance into the backup directory.

    The stored name is ``transfer-upload-<epochMillis>-<sanitized name>``.

    Raises:
        InvalidFilenameError: If the name is not a ``.tar.gz`` archive
        UploadTooLargeError: If the payload exceeds max_archive_upload_bytes
    """
    filename = f"{TRANSFER_UPLOAD_PREFIX}{now_millis()}-{sanitize_original_name(original_name)}"
    if not filename.endswith(ARCHIVE_SUFFIX) or not is_safe_transfer_filename(filename):
        raise InvalidFilenameError(f"Uploaded file must be a {ARCHIVE_SUFFIX} archive: {original_name!r}")

    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    path = backup_dir / filename
    write_private_file(path, source, config.get("max_archive_upload_bytes"))
    logger.info(f"Stored uploaded transfer archive {filename}")
    return ArchiveInfo.from_path(path)


def get_transfer_archive_path(filename: str, project_root: Optional[Path] = None) -> Path:
    """Validated path of a transfer archive, for downloads."""
    check_transfer_filename(filename)
    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    return transfer_archive_path(filename, backup_dir)
