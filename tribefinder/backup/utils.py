# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared utilities for transfer and backup operations.

Common helper functions used across the exporter, the inspector and the
importers: date handling, key casing, upload URL handling and archive
filename rules.
"""

from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import BinaryIO, Optional, Union
import os
import re
import time

from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.dateparse import parse_datetime

from .. import config
from .exceptions import UploadTooLargeError

# No 0/O or 1/I/l
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"
PASSWORD_LENGTH = 16
UPLOAD_CHUNK_SIZE = 1024 * 1024

ARCHIVE_SUFFIX = ".tar.gz"
EXPORT_PREFIX = "tribefinder-transfer-"
TRANSFER_UPLOAD_PREFIX = "transfer-upload-"
BACKUP_PREFIX = "tribefinder-backup-"
BACKUP_UPLOAD_PREFIX = "upload-"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_CAMEL_BOUNDARY = re.compile(r"_([a-z0-9])")
_SNAKE_BOUNDARY = re.compile(r"([A-Z])")


def serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to an ISO 8601 UTC string with millisecond precision.

    Args:
        dt: Datetime object or None

    Returns:
        String like ``2024-05-01T18:30:00.000Z`` or None
    """
    if dt is None:
        return None
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    dt = dt.astimezone(dt_timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def deserialize_datetime(s: Optional[str]) -> Optional[datetime]:
    """Deserialize an ISO 8601 string to an aware datetime.

    Naive values are taken to be UTC.

    Raises:
        ValueError: If the string is not a valid datetime
    """
    if not s:
        return None
    dt = parse_datetime(s)
    if dt is None:
        raise ValueError(f"Invalid datetime: {s!r}")
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def now_millis() -> int:
    return int(time.time() * 1000)


def filename_timestamp(dt: Optional[datetime] = None) -> str:
    """ISO 8601 timestamp with ``:`` and ``.`` replaced by ``-``."""
    if dt is None:
        dt = timezone.now()
    return serialize_datetime(dt).replace(":", "-").replace(".", "-")


def to_camel(name: str) -> str:
    """``dancer_name`` -> ``dancerName``."""
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), name)


def from_camel(name: str) -> str:
    """``dancerName`` -> ``dancer_name``."""
    return _SNAKE_BOUNDARY.sub(lambda m: "_" + m.group(1).lower(), name)


def is_upload_url(url: Optional[str]) -> bool:
    """Whether a stored image/flyer value points at a local upload."""
    return (url or "").strip().startswith(config.get("uploads_url_prefix"))


def upload_filename_from_url(url: str) -> str:
    prefix = config.get("uploads_url_prefix")
    url = url.strip()
    return url[len(prefix):] if url.startswith(prefix) else url


def safe_upload_filename(filename: Optional[str]) -> Optional[str]:
    """Return ``filename`` if it is a bare name, else None."""
    if not filename:
        return None
    if ".." in filename or "/" in filename or "\\" in filename:
        return None
    return filename


def random_password() -> str:
    return get_random_string(PASSWORD_LENGTH, PASSWORD_ALPHABET)


def sanitize_original_name(name: str) -> str:
    """Replace everything outside ``[a-zA-Z0-9._-]`` with ``_``."""
    return _UNSAFE_NAME_CHARS.sub("_", name or "")


def _is_safe_archive_name(filename: str, prefixes) -> bool:
    if not filename or not filename.endswith(ARCHIVE_SUFFIX):
        return False
    if "/" in filename or "\\" in filename or ".." in filename:
        return False
    return filename.startswith(prefixes)


def is_safe_transfer_filename(filename: str) -> bool:
    """Allow-list check for transfer archives (exports and uploads)."""
    return _is_safe_archive_name(filename, (EXPORT_PREFIX, TRANSFER_UPLOAD_PREFIX))


def is_safe_backup_filename(filename: str) -> bool:
    """Allow-list check for whole-instance backup archives."""
    return _is_safe_archive_name(filename, (BACKUP_PREFIX, BACKUP_UPLOAD_PREFIX))


def write_private_file(path: Path, source: Union[bytes, BinaryIO], max_bytes: int) -> int:
    """Write an uploaded payload to a new owner-only (0600) file.

    ``source`` is either the complete payload or a binary file object,
    which is streamed in chunks. The file must not exist yet.

    Raises:
        UploadTooLargeError: If the payload exceeds ``max_bytes``; nothing
            is left on disk in that case.
    """
    if isinstance(source, (bytes, bytearray)) and len(source) > max_bytes:
        raise UploadTooLargeError(f"Upload exceeds the limit of {max_bytes} bytes")

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            if isinstance(source, (bytes, bytearray)):
                out.write(source)
                written = len(source)
            else:
                for chunk in iter(lambda: source.read(UPLOAD_CHUNK_SIZE), b""):
                    written += len(chunk)
                    if written > max_bytes:
                        raise UploadTooLargeError(f"Upload exceeds the limit of {max_bytes} bytes")
                    out.write(chunk)
    except BaseException:
        Path(path).unlink(missing_ok=True)
        raise
    return written
