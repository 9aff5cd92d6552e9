# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Backup/restore and cross-instance transfer engine.

Transfer archives move a selection of groups (with their owners, members,
events and media) from one TribeFinder instance to another. Backups are
whole-instance snapshots of the database and the uploads directory.

Key pieces:
    - TransferExporter: builds ``tribefinder-transfer-*.tar.gz`` archives
    - inspect_transfer: read-only gate before any import
    - apply_transfer: conflict-resolving import with per-record actions
    - TransferImporterRegistry: importers in dependency order
    - create_backup / restore_backup: whole-instance snapshots

Usage:
    from tribefinder.backup import (
        create_transfer_archive,
        inspect_transfer,
        apply_transfer,
    )

    info = create_transfer_archive(["12"])
    report = inspect_transfer(info.filename)
    result = apply_transfer(info.filename, {"groups": {"12": "overwrite"}})

Example management commands:
    django-admin export_transfer 12 15
    django-admin inspect_transfer tribefinder-transfer-2024-05-01T18-30-00-000Z.tar.gz
    django-admin apply_transfer <filename> --actions actions.json
    django-admin create_backup
    django-admin restore_backup <filename> --confirm RESTORE
"""

from .archive import ArchiveInfo, TarCodec
from .base import (
    ACTION_COPY,
    ACTION_OVERWRITE,
    ACTION_SKIP,
    ACTIONS,
    BaseTransferImporter,
    ImportContext,
    ImportResult,
)
from .backups import (
    create_backup,
    delete_backup,
    get_backup_path,
    inspect_backup,
    list_backups,
    purge_old_backups,
    restore_backup,
    store_uploaded_backup,
)
from .exceptions import (
    CLIENT_ERRORS,
    ArchiveError,
    ArchiveNotFoundError,
    DirectoryResolutionError,
    InvalidActionError,
    InvalidFilenameError,
    InvalidSelectionError,
    ManifestError,
    RestoreConfirmationError,
    TransferError,
    UploadTooLargeError,
)
from .exporter import TransferExporter, create_transfer_archive
from .inspector import TransferInspectResult, inspect_transfer
from .manifest import TRANSFER_VERSION, TransferManifest
from .matchers import DEFAULT_MATCHERS, Matchers
from .registry import TransferImporterRegistry
from .transfer import (
    TransferApplyResult,
    apply_transfer,
    get_transfer_archive_path,
    store_uploaded_transfer_archive,
)

__all__ = [
    # Archives
    "ArchiveInfo",
    "TarCodec",
    # Import machinery
    "ACTION_COPY",
    "ACTION_OVERWRITE",
    "ACTION_SKIP",
    "ACTIONS",
    "BaseTransferImporter",
    "ImportContext",
    "ImportResult",
    "TransferImporterRegistry",
    "Matchers",
    "DEFAULT_MATCHERS",
    # Transfer operations
    "TransferExporter",
    "create_transfer_archive",
    "TransferInspectResult",
    "inspect_transfer",
    "TransferApplyResult",
    "apply_transfer",
    "store_uploaded_transfer_archive",
    "get_transfer_archive_path",
    "TRANSFER_VERSION",
    "TransferManifest",
    # Backups
    "create_backup",
    "delete_backup",
    "get_backup_path",
    "inspect_backup",
    "list_backups",
    "purge_old_backups",
    "restore_backup",
    "store_uploaded_backup",
    # Errors
    "CLIENT_ERRORS",
    "TransferError",
    "ArchiveError",
    "ArchiveNotFoundError",
    "DirectoryResolutionError",
    "InvalidActionError",
    "InvalidFilenameError",
    "InvalidSelectionError",
    "ManifestError",
    "RestoreConfirmationError",
    "UploadTooLargeError",
]
