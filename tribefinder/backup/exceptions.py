# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exceptions raised by the transfer and backup engine.

Every error is a TransferError so callers at the HTTP or command line
boundary can catch a single class. The subclasses split into errors the
operator caused with bad input (reported as 400) and errors of the
environment (directories, the tar binary).
"""

from typing import List, Optional


class TransferError(Exception):
    """Base exception for transfer and backup operations."""
    pass


class DirectoryResolutionError(TransferError):
    """No candidate directory could be created and written to."""

    def __init__(self, kind: str, candidates: List[str], last_error: Optional[BaseException]):
        self.kind = kind
        self.candidates = list(candidates)
        self.last_error = last_error
        message = (
            f"Could not create a writable {kind} directory. "
            f"Candidates: {', '.join(self.candidates)}."
        )
        if last_error is not None:
            message += f" {last_error}"
        super().__init__(message)


class InvalidFilenameError(TransferError):
    """An archive filename failed the allow-list check."""
    pass


class ArchiveNotFoundError(TransferError):
    """The named archive does not exist in the backup directory."""
    pass


class ManifestError(TransferError):
    """data.json is malformed, has the wrong version or the wrong shape."""
    pass


class ArchiveError(TransferError):
    """The tar process failed; the message is its captured stderr."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class InvalidSelectionError(TransferError):
    """The export selection is empty or names something that is not a group id."""
    pass


class InvalidActionError(TransferError):
    """An action map contains something other than skip, overwrite or copy."""
    pass


class RestoreConfirmationError(TransferError):
    """Restore was requested without the confirmation text."""
    pass


class UploadTooLargeError(TransferError):
    """An uploaded archive exceeds the configured size limit."""
    pass


# Errors caused by operator input rather than by the environment
CLIENT_ERRORS = (
    InvalidFilenameError,
    ArchiveNotFoundError,
    ManifestError,
    InvalidSelectionError,
    InvalidActionError,
    RestoreConfirmationError,
    UploadTooLargeError,
)
