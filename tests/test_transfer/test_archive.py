# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the tar codec."""

import tempfile
from pathlib import Path
from unittest import TestCase, mock, skipUnless

from tribefinder.backup.archive import ArchiveInfo, TarCodec, is_safe_member
from tribefinder.backup.exceptions import ArchiveError

from .factories import TAR_AVAILABLE


class TestIsSafeMember(TestCase):
    def test_safe(self):
        self.assertTrue(is_safe_member("data.json"))
        self.assertTrue(is_safe_member("uploads/a.jpg"))
        self.assertTrue(is_safe_member("uploads/"))

    def test_unsafe(self):
        for name in ["/etc/passwd", "../x", "uploads/../../x", "uploads\\x", ""]:
            with self.subTest(name=name):
                self.assertFalse(is_safe_member(name))


class TestArchiveInfo(TestCase):
    def test_from_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tribefinder-backup-x.tar.gz"
            path.write_bytes(b"12345")
            info = ArchiveInfo.from_path(path)
            self.assertEqual(info.filename, "tribefinder-backup-x.tar.gz")
            self.assertEqual(info.size, 5)
            self.assertEqual(
                info.to_dict(),
                {"filename": "tribefinder-backup-x.tar.gz", "size": 5, "createdAt": info.created_at},
            )


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestTarCodec(TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.src = self.root / "src"
        (self.src / "uploads").mkdir(parents=True)
        (self.src / "data.json").write_text('{"version": 1}')
        (self.src / "uploads" / "a.jpg").write_bytes(b"a")
        self.archive = self.root / "test.tar.gz"
        self.codec = TarCodec()

    def test_create_and_list(self):
        self.codec.create(self.archive, ["data.json", "uploads"], cwd=self.src)
        entries = self.codec.list(self.archive)
        self.assertIn("data.json", entries)
        self.assertIn("uploads/a.jpg", entries)

    def test_extract_selected(self):
        self.codec.create(self.archive, ["data.json", "uploads"], cwd=self.src)
        dest = self.root / "dest"
        dest.mkdir()
        self.codec.extract_selected(self.archive, ["data.json"], dest)
        self.assertTrue((dest / "data.json").is_file())
        self.assertFalse((dest / "uploads").exists())

    def test_extract_selected_rejects_unsafe_entries(self):
        with self.assertRaises(ArchiveError):
            self.codec.extract_selected(self.archive, ["../data.json"], self.root)

    def test_extract_all_checks_members(self):
        self.codec.create(self.archive, ["data.json"], cwd=self.src)
        with mock.patch.object(self.codec, "list", return_value=["data.json", "../evil"]):
            with self.assertRaises(ArchiveError):
                self.codec.extract_all(self.archive, self.root / "dest")

    def test_dereference_follows_symlinks(self):
        staging = self.root / "staging"
        staging.mkdir()
        (staging / "uploads").symlink_to(self.src / "uploads", target_is_directory=True)
        self.codec.create(self.archive, ["uploads"], cwd=staging, dereference=True)

        dest = self.root / "dest"
        dest.mkdir()
        self.codec.extract_all(self.archive, dest)
        self.assertFalse((dest / "uploads").is_symlink())
        self.assertEqual((dest / "uploads" / "a.jpg").read_bytes(), b"a")

    def test_failure_raises_with_stderr(self):
        with self.assertRaises(ArchiveError) as cm:
            self.codec.list(self.root / "missing.tar.gz")
        self.assertNotEqual(cm.exception.returncode, 0)
        self.assertTrue(str(cm.exception))

    def test_missing_binary(self):
        with self.assertRaises(ArchiveError):
            TarCodec(binary="/nonexistent/tar").list(self.archive)
