# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Gzip tar archive codec backed by the external ``tar`` binary.

Callers only see create/list/extract operations, so the subprocess could be
replaced by an in-process archive library without touching them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
import logging
import subprocess

from .. import config
from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class ArchiveInfo:
    """An archive file in the backup directory.

    Attributes:
        filename: Bare filename
        size: Size in bytes
        created_at: Modification time in epoch milliseconds
    """
    filename: str
    size: int
    created_at: int

    @classmethod
    def from_path(cls, path: PathLike) -> "ArchiveInfo":
        path = Path(path)
        stat = path.stat()
        return cls(filename=path.name, size=stat.st_size, created_at=int(stat.st_mtime * 1000))

    def to_dict(self) -> Dict[str, Union[str, int]]:
        return {"filename": self.filename, "size": self.size, "createdAt": self.created_at}


def is_safe_member(name: str) -> bool:
    """Whether an archive entry stays inside the extraction directory."""
    if not name or name.startswith("/") or "\\" in name:
        return False
    return ".." not in Path(name).parts


class TarCodec:
    """Thin wrapper around ``tar -czf`` / ``-tzf`` / ``-xzf``."""

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or config.get("tar_binary")

    def _run(self, args: List[str], cwd: Optional[PathLike]) -> str:
        command = [self.binary, *args]
        logger.debug(f"Running {' '.join(command)} in {cwd}")
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ArchiveError(f"Could not run {self.binary}: {e}") from e

        if proc.returncode != 0:
            message = proc.stderr.strip() or f"tar exited with code {proc.returncode}"
            raise ArchiveError(message, proc.returncode)
        return proc.stdout

    def create(
        self,
        archive_path: PathLike,
        members: Iterable[str],
        cwd: PathLike,
        dereference: bool = False,
    ) -> Path:
        """Build a gzip tarball of ``members`` (relative to ``cwd``)."""
        args = ["-czf", str(archive_path), *members]
        if dereference:
            args.insert(0, "-h")
        self._run(args, cwd)
        return Path(archive_path)

    def list(self, archive_path: PathLike, cwd: Optional[PathLike] = None) -> List[str]:
        """Return entry paths inside the archive without extracting."""
        stdout = self._run(["-tzf", str(archive_path)], cwd)
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    def extract_selected(
        self,
        archive_path: PathLike,
        entries: Iterable[str],
        dest_dir: PathLike,
        cwd: Optional[PathLike] = None,
    ) -> None:
        """Extract only the named entries into ``dest_dir``."""
        entries = list(entries)
        if not entries:
            return
        unsafe = [name for name in entries if not is_safe_member(name)]
        if unsafe:
            raise ArchiveError(f"Refusing to extract unsafe entries: {', '.join(unsafe)}")
        self._run(["-xzf", str(archive_path), "-C", str(dest_dir), *entries], cwd)

    def extract_all(
        self,
        archive_path: PathLike,
        dest_dir: PathLike,
        cwd: Optional[PathLike] = None,
    ) -> List[str]:
        """Extract a whole archive after checking every member path.

        Only used for whole-instance backups, which are restored in full.
        """
        entries = self.list(archive_path, cwd)
        unsafe = [name for name in entries if not is_safe_member(name)]
        if unsafe:
            raise ArchiveError(f"Archive contains unsafe entries: {', '.join(unsafe[:10])}")
        self._run(["-xzf", str(archive_path), "-C", str(dest_dir)], cwd)
        return entries
