# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Whole-instance backups.

A backup is a flat snapshot, not a merge: restoring one replaces the
database content and the uploads directory.

Archive Structure:
    tribefinder-backup-<timestamp>.tar.gz
    ├── db.json         # dumpdata of every installed app
    ├── settings.json   # SystemSetting key/value pairs, for reference
    └── uploads/        # the uploads directory, symlinks dereferenced

Backups uploaded from elsewhere are stored as ``upload-<millis>-<name>``
and are never purged automatically.
"""

from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union
import errno
import json
import logging
import os
import shutil
import tempfile

from django.apps import apps
from django.core.management import call_command
from django.db import transaction

from .. import config
from ..models import SystemSetting
from .archive import ArchiveInfo, TarCodec
from .exceptions import (
    ArchiveNotFoundError,
    InvalidFilenameError,
    ManifestError,
    RestoreConfirmationError,
    TransferError,
)
from .inspector import upload_entries
from .paths import resolve_backup_dir, resolve_project_root, resolve_uploads_dir
from .utils import (
    ARCHIVE_SUFFIX,
    BACKUP_PREFIX,
    BACKUP_UPLOAD_PREFIX,
    filename_timestamp,
    is_safe_backup_filename,
    now_millis,
    sanitize_original_name,
    write_private_file,
)

logger = logging.getLogger(__name__)

DB_FILENAME = "db.json"
SETTINGS_FILENAME = "settings.json"
UPLOADS_DIRNAME = "uploads"

RETENTION_SETTING_KEY = "BACKUP_RETENTION_COUNT"
MIN_RETENTION = 1
MAX_RETENTION = 365


def dump_excludes() -> List[str]:
    """Labels left out of db.json; migrations recreate them on restore."""
    excludes = []
    if apps.is_installed("django.contrib.contenttypes"):
        excludes.append("contenttypes")
    if apps.is_installed("django.contrib.auth"):
        excludes.append("auth.permission")
    return excludes


def get_retention_count() -> int:
    """Number of server-created backups to keep, clamped to 1..365."""
    default = int(config.get("backup_retention_count"))
    raw = SystemSetting.get_value(RETENTION_SETTING_KEY)
    try:
        count = int(str(raw).strip()) if raw is not None else default
    except ValueError:
        logger.warning(f"Ignoring invalid {RETENTION_SETTING_KEY}={raw!r}, using {default}")
        count = default
    return max(MIN_RETENTION, min(MAX_RETENTION, count))


def check_backup_filename(filename: str) -> None:
    if not is_safe_backup_filename(filename):
        raise InvalidFilenameError(f"Invalid backup filename: {filename!r}")


def get_backup_path(filename: str, project_root: Optional[Path] = None) -> Path:
    """Validated path of an existing backup archive.

    Raises:
        InvalidFilenameError: If the name fails the allow-list
        ArchiveNotFoundError: If no such backup exists
    """
    check_backup_filename(filename)
    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    path = backup_dir / filename
    if not path.is_file():
        raise ArchiveNotFoundError(f"Backup not found: {filename}")
    return path


def create_backup(codec: Optional[TarCodec] = None, project_root: Optional[Path] = None) -> ArchiveInfo:
    """Snapshot the database, the settings and the uploads directory."""
    codec = codec or TarCodec()
    project_root = project_root or resolve_project_root()
    backup_dir = resolve_backup_dir(project_root)
    uploads_dir = resolve_uploads_dir(project_root)

    filename = f"{BACKUP_PREFIX}{filename_timestamp()}{ARCHIVE_SUFFIX}"
    out_path = backup_dir / filename

    with tempfile.TemporaryDirectory(prefix="tribefinder-backup-", ignore_cleanup_errors=True) as tmp:
        tmp_root = Path(tmp)
        call_command(
            "dumpdata",
            natural_foreign=True,
            exclude=dump_excludes(),
            indent=2,
            output=str(tmp_root / DB_FILENAME),
            verbosity=0,
        )

        settings_payload = dict(SystemSetting.objects.order_by("key").values_list("key", "value"))
        (tmp_root / SETTINGS_FILENAME).write_text(json.dumps(settings_payload, indent=2), encoding="utf-8")

        # tar -h follows this link, so the archive holds real files
        os.symlink(uploads_dir, tmp_root / UPLOADS_DIRNAME, target_is_directory=True)

        staged = tmp_root / filename
        codec.create(staged, [DB_FILENAME, SETTINGS_FILENAME, UPLOADS_DIRNAME], cwd=tmp_root, dereference=True)
        shutil.move(str(staged), str(out_path))

    logger.info(f"Created backup {filename}")
    return ArchiveInfo.from_path(out_path)


def list_backups(project_root: Optional[Path] = None) -> List[ArchiveInfo]:
    """Every archive in the backup directory, newest first."""
    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    archives = [
        ArchiveInfo.from_path(path)
        for path in backup_dir.iterdir()
        if path.name.endswith(ARCHIVE_SUFFIX) and path.is_file()
    ]
    return sorted(archives, key=lambda info: (info.created_at, info.filename), reverse=True)


def purge_old_backups(project_root: Optional[Path] = None) -> Dict[str, int]:
    """Delete server-created backups beyond the retention count.

    Returns:
        Dict with deleted, kept and keepLast counts
    """
    keep = get_retention_count()
    candidates = [
        info for info in list_backups(project_root) if info.filename.startswith(BACKUP_PREFIX)
    ]
    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    to_delete = candidates[keep:]
    for info in to_delete:
        (backup_dir / info.filename).unlink(missing_ok=True)
        logger.info(f"Purged old backup {info.filename}")
    return {
        "deleted": len(to_delete),
        "kept": min(len(candidates), keep),
        "keepLast": keep,
    }


def delete_backup(filename: str, project_root: Optional[Path] = None) -> None:
    path = get_backup_path(filename, project_root)
    path.unlink()
    logger.info(f"Deleted backup {filename}")


def store_uploaded_backup(
    original_name: str,
    source: Union[bytes, BinaryIO],
    project_root: Optional[Path] = None,
) -> ArchiveInfo:
    """Save a backup archive uploaded by an admin as ``upload-<millis>-<name>``.

    Raises:
        InvalidFilenameError: If the name is not a ``.tar.gz`` archive
        UploadTooLargeError: If the payload exceeds max_archive_upload_bytes
    """
    filename = f"{BACKUP_UPLOAD_PREFIX}{now_millis()}-{sanitize_original_name(original_name)}"
    if not is_safe_backup_filename(filename):
        raise InvalidFilenameError(f"Uploaded file must be a {ARCHIVE_SUFFIX} archive: {original_name!r}")

    backup_dir = resolve_backup_dir(project_root or resolve_project_root())
    path = backup_dir / filename
    write_private_file(path, source, config.get("max_archive_upload_bytes"))
    logger.info(f"Stored uploaded backup {filename}")
    return ArchiveInfo.from_path(path)


def count_dump_objects(db_path: Path) -> Dict[str, int]:
    """Object count per model label in a dumpdata file."""
    try:
        objects = json.loads(db_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ManifestError(f"Invalid {DB_FILENAME}: {e}") from e
    if not isinstance(objects, list):
        raise ManifestError(f"Invalid {DB_FILENAME}: expected a list of objects")

    counts: Dict[str, int] = {}
    for obj in objects:
        label = obj.get("model") if isinstance(obj, dict) else None
        if label:
            counts[label] = counts.get(label, 0) + 1
    return counts


def inspect_backup(
    filename: str,
    codec: Optional[TarCodec] = None,
    project_root: Optional[Path] = None,
) -> Dict[str, Any]:
    """Summarize a backup without restoring it; uploads are not extracted."""
    check_backup_filename(filename)
    codec = codec or TarCodec()
    archive_path = get_backup_path(filename, project_root)

    entries = codec.list(archive_path)
    uploads = upload_entries(entries)
    has_db = DB_FILENAME in entries

    counts: Dict[str, int] = {}
    if has_db:
        with tempfile.TemporaryDirectory(prefix="tribefinder-inspect-", ignore_cleanup_errors=True) as tmp:
            codec.extract_selected(archive_path, [DB_FILENAME], tmp)
            counts = count_dump_objects(Path(tmp) / DB_FILENAME)

    has_very_few_data = (
        counts.get("tribefinder.group", 0) == 0
        and counts.get("tribefinder.event", 0) == 0
        and counts.get("tribefinder.galleryimage", 0) == 0
        and not uploads
    )
    return {
        "filename": filename,
        "hasDb": has_db,
        "uploadsFileCount": len(uploads),
        "counts": counts,
        "warnings": {"hasVeryFewData": has_very_few_data},
    }


def _permission_hint(action: str, target: Path, error: OSError) -> TransferError:
    parent = target.parent
    return TransferError(
        f"Restore failed: no permission to {action} '{target}'. "
        f"The service user needs write access to the parent directory '{parent}'. "
        f"Original: {error}"
    )


def replace_directory(src: Path, dest: Path) -> None:
    """Swap ``dest`` for ``src``, keeping the old one until the swap succeeds."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    previous = dest.with_name(f"{dest.name}.previous-{now_millis()}")
    has_current = dest.exists()

    if has_current:
        try:
            dest.rename(previous)
        except PermissionError as e:
            raise _permission_hint("rename", dest, e) from e

    try:
        src.rename(dest)
    except PermissionError as e:
        raise _permission_hint("replace", dest, e) from e
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        shutil.copytree(src, dest)
        shutil.rmtree(src, ignore_errors=True)

    if has_current:
        shutil.rmtree(previous, ignore_errors=True)


def restore_backup(
    filename: str,
    confirmation: str,
    codec: Optional[TarCodec] = None,
    project_root: Optional[Path] = None,
) -> Dict[str, Any]:
    """Replace the database content and the uploads directory with a backup.

    Raises:
        RestoreConfirmationError: Unless ``confirmation`` matches the
            configured restore_confirmation_text
        ArchiveError: If the archive holds absolute or ``..`` members
        ManifestError: If db.json or uploads/ is missing
    """
    check_backup_filename(filename)
    if confirmation != config.get("restore_confirmation_text"):
        raise RestoreConfirmationError(
            f"Restore requires the confirmation text {config.get('restore_confirmation_text')!r}"
        )

    codec = codec or TarCodec()
    project_root = project_root or resolve_project_root()
    uploads_dir = resolve_uploads_dir(project_root)
    archive_path = get_backup_path(filename, project_root)

    with tempfile.TemporaryDirectory(prefix="tribefinder-restore-", ignore_cleanup_errors=True) as tmp:
        tmp_root = Path(tmp)
        codec.extract_all(archive_path, tmp_root)

        db_path = tmp_root / DB_FILENAME
        extracted_uploads = tmp_root / UPLOADS_DIRNAME
        missing = [
            name for name, path in ((DB_FILENAME, db_path), (UPLOADS_DIRNAME, extracted_uploads))
            if not path.exists()
        ]
        if missing:
            available = ", ".join(sorted(p.name for p in tmp_root.iterdir()))
            raise ManifestError(
                f"Backup content does not match this installation. Missing: {', '.join(missing)}. "
                f"Archive root contains: {available}"
            )

        with transaction.atomic():
            call_command("flush", interactive=False, verbosity=0)
            call_command("loaddata", str(db_path), verbosity=0)

        replace_directory(extracted_uploads, uploads_dir)

    logger.info(f"Restored backup {filename}")
    return {
        "restored": True,
        "message": "Restore complete. Restart the application so every process sees the restored data.",
    }
