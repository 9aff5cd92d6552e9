# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Locate the project root, the backup directory and the uploads directory.

The resolvers never depend on the process working directory being the
project root: the root is found by walking upwards, and each directory is
chosen from an ordered candidate list (environment override, project
relative default, operational default). The first candidate that can be
created and is writable wins.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging
import os

from .. import config
from .exceptions import DirectoryResolutionError

logger = logging.getLogger(__name__)

MAX_ROOT_DEPTH = 10
ROOT_MARKERS = ("pyproject.toml", "manage.py")


def resolve_project_root(start: Optional[Union[str, Path]] = None) -> Path:
    """Walk up from ``start`` looking for a directory holding all root markers.

    Falls back to the working directory when nothing matches.
    """
    cwd = Path.cwd()
    current = Path(start) if start is not None else cwd
    for _ in range(MAX_ROOT_DEPTH):
        if all((current / marker).exists() for marker in ROOT_MARKERS):
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent
    return cwd


def _env_candidate(name: str) -> List[str]:
    value = os.environ.get(name, "").strip()
    return [value] if value else []


def _probe(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    if not os.access(directory, os.W_OK | os.X_OK):
        raise PermissionError(f"Directory is not writable: {directory}")


def _first_writable(kind: str, candidates: List[str], resolve_links: bool = False) -> Path:
    last_error: Optional[BaseException] = None
    for candidate in candidates:
        directory = Path(candidate)
        if resolve_links:
            directory = Path(os.path.realpath(directory))
        try:
            _probe(directory)
        except OSError as e:
            logger.debug(f"Rejected {kind} directory candidate {directory}: {e}")
            last_error = e
            continue
        return directory
    raise DirectoryResolutionError(kind, candidates, last_error)


def backup_dir_candidates(project_root: Path) -> List[str]:
    return _env_candidate("BACKUP_DIR") + [
        str(project_root / "backups"),
        config.get("backup_dir_default"),
    ]


def uploads_dir_candidates(project_root: Path) -> List[str]:
    return _env_candidate("UPLOADS_DIR") + [
        str(project_root / "public" / "uploads"),
        config.get("uploads_dir_default"),
    ]


def resolve_backup_dir(project_root: Optional[Path] = None) -> Path:
    """Return the first creatable, writable backup directory.

    Raises:
        DirectoryResolutionError: If every candidate fails.
    """
    if project_root is None:
        project_root = resolve_project_root()
    return _first_writable("backup", backup_dir_candidates(project_root))


def resolve_uploads_dir(project_root: Optional[Path] = None) -> Path:
    """Return the first creatable, writable uploads directory.

    Symlinked candidates are followed so that a deployment which links
    ``public/uploads`` to shared storage resolves to the real location.

    Raises:
        DirectoryResolutionError: If every candidate fails.
    """
    if project_root is None:
        project_root = resolve_project_root()
    return _first_writable("uploads", uploads_dir_candidates(project_root), resolve_links=True)
