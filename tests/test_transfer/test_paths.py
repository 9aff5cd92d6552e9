# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for project root and directory resolution."""

import os
import tempfile
from pathlib import Path
from unittest import TestCase, mock

from tribefinder.backup.exceptions import DirectoryResolutionError
from tribefinder.backup.paths import (
    resolve_backup_dir,
    resolve_project_root,
    resolve_uploads_dir,
)


class PathsTestCase(TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(os.path.realpath(tmp.name))

        env = mock.patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("BACKUP_DIR", None)
        os.environ.pop("UPLOADS_DIR", None)

    def blocker(self, name="blocker"):
        """A regular file; directories cannot be created beneath it."""
        path = self.tmp / name
        path.write_text("not a directory")
        return path


class TestResolveProjectRoot(PathsTestCase):
    def test_walks_up_to_markers(self):
        (self.tmp / "pyproject.toml").write_text("")
        (self.tmp / "manage.py").write_text("")
        nested = self.tmp / "tribefinder" / "backup"
        nested.mkdir(parents=True)
        self.assertEqual(resolve_project_root(nested), self.tmp)

    def test_requires_all_markers(self):
        (self.tmp / "pyproject.toml").write_text("")
        nested = self.tmp / "a"
        nested.mkdir()
        self.assertEqual(resolve_project_root(nested), Path.cwd())


class TestResolveBackupDir(PathsTestCase):
    def test_env_override_wins(self):
        target = self.tmp / "custom-backups"
        os.environ["BACKUP_DIR"] = str(target)
        self.assertEqual(resolve_backup_dir(self.tmp), target)
        self.assertTrue(target.is_dir())

    def test_project_relative_default(self):
        self.assertEqual(resolve_backup_dir(self.tmp), self.tmp / "backups")

    def test_unusable_override_falls_through(self):
        os.environ["BACKUP_DIR"] = str(self.blocker() / "backups")
        self.assertEqual(resolve_backup_dir(self.tmp), self.tmp / "backups")

    def test_all_candidates_fail(self):
        blocker = self.blocker()
        os.environ["BACKUP_DIR"] = str(blocker / "env")
        project_root = blocker / "project"
        with mock.patch.dict("tribefinder.config._config", {"backup_dir_default": str(blocker / "default")}):
            with self.assertRaises(DirectoryResolutionError) as cm:
                resolve_backup_dir(project_root)

        error = cm.exception
        self.assertEqual(error.kind, "backup")
        self.assertEqual(
            error.candidates,
            [str(blocker / "env"), str(project_root / "backups"), str(blocker / "default")],
        )
        for candidate in error.candidates:
            self.assertIn(candidate, str(error))


class TestResolveUploadsDir(PathsTestCase):
    def test_project_relative_default(self):
        self.assertEqual(resolve_uploads_dir(self.tmp), self.tmp / "public" / "uploads")

    def test_follows_symlinks(self):
        real = self.tmp / "shared-storage"
        real.mkdir()
        link = self.tmp / "uploads-link"
        link.symlink_to(real, target_is_directory=True)
        os.environ["UPLOADS_DIR"] = str(link)
        self.assertEqual(resolve_uploads_dir(self.tmp), real)
