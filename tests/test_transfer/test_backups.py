# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for whole-instance backups."""

import json
import os
import tempfile
import time
from pathlib import Path
from unittest import skipUnless

from django.test import TestCase, TransactionTestCase

from tribefinder.backup import (
    ArchiveNotFoundError,
    InvalidFilenameError,
    ManifestError,
    RestoreConfirmationError,
    TarCodec,
    create_backup,
    delete_backup,
    inspect_backup,
    list_backups,
    purge_old_backups,
    restore_backup,
    store_uploaded_backup,
)
from tribefinder.backup.backups import (
    RETENTION_SETTING_KEY,
    get_retention_count,
    replace_directory,
)
from tribefinder.models import Group, SystemSetting, User

from .factories import TAR_AVAILABLE, IsolatedDirsMixin, make_group, make_user


def touch_archive(directory, name, age_seconds):
    path = Path(directory) / name
    path.write_bytes(b"archive")
    mtime = time.time() - age_seconds
    os.utime(path, (mtime, mtime))
    return path


class TestRetention(TestCase):
    def set_retention(self, value):
        SystemSetting.objects.update_or_create(key=RETENTION_SETTING_KEY, defaults={"value": value})

    def test_default(self):
        self.assertEqual(get_retention_count(), 30)

    def test_setting(self):
        self.set_retention("5")
        self.assertEqual(get_retention_count(), 5)

    def test_clamped(self):
        self.set_retention("0")
        self.assertEqual(get_retention_count(), 1)
        self.set_retention("1000")
        self.assertEqual(get_retention_count(), 365)

    def test_invalid_falls_back_to_default(self):
        self.set_retention("many")
        self.assertEqual(get_retention_count(), 30)


class TestBackupFiles(IsolatedDirsMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.backup_dir.mkdir()
        touch_archive(self.backup_dir, "tribefinder-backup-newest.tar.gz", 10)
        touch_archive(self.backup_dir, "tribefinder-backup-middle.tar.gz", 20)
        touch_archive(self.backup_dir, "tribefinder-backup-oldest.tar.gz", 30)
        touch_archive(self.backup_dir, "upload-1-ancient.tar.gz", 1000)
        (self.backup_dir / "notes.txt").write_text("not an archive")

    def test_list_newest_first(self):
        names = [info.filename for info in list_backups()]
        self.assertEqual(
            names,
            [
                "tribefinder-backup-newest.tar.gz",
                "tribefinder-backup-middle.tar.gz",
                "tribefinder-backup-oldest.tar.gz",
                "upload-1-ancient.tar.gz",
            ],
        )

    def test_purge_keeps_uploaded_backups(self):
        SystemSetting.objects.create(key=RETENTION_SETTING_KEY, value="1")
        result = purge_old_backups()

        self.assertEqual(result, {"deleted": 2, "kept": 1, "keepLast": 1})
        remaining = sorted(p.name for p in self.backup_dir.iterdir())
        self.assertEqual(
            remaining,
            ["notes.txt", "tribefinder-backup-newest.tar.gz", "upload-1-ancient.tar.gz"],
        )

    def test_purge_under_limit(self):
        self.assertEqual(purge_old_backups(), {"deleted": 0, "kept": 3, "keepLast": 30})

    def test_delete(self):
        delete_backup("tribefinder-backup-oldest.tar.gz")
        self.assertFalse((self.backup_dir / "tribefinder-backup-oldest.tar.gz").exists())

    def test_delete_validates_name(self):
        with self.assertRaises(InvalidFilenameError):
            delete_backup("../tribefinder-backup-oldest.tar.gz")
        with self.assertRaises(InvalidFilenameError):
            delete_backup("notes.txt")
        with self.assertRaises(ArchiveNotFoundError):
            delete_backup("tribefinder-backup-unknown.tar.gz")

    def test_store_uploaded_backup(self):
        info = store_uploaded_backup("prod backup.tar.gz", b"payload")
        self.assertRegex(info.filename, r"^upload-\d+-prod_backup\.tar\.gz$")
        self.assertEqual((self.backup_dir / info.filename).read_bytes(), b"payload")

    def test_restore_requires_confirmation(self):
        with self.assertRaises(RestoreConfirmationError):
            restore_backup("tribefinder-backup-newest.tar.gz", "restore")
        with self.assertRaises(InvalidFilenameError):
            restore_backup("../../etc/passwd.tar.gz", "RESTORE")


class TestReplaceDirectory(TestCase):
    def test_swaps_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "new").mkdir()
            (root / "new" / "a.jpg").write_bytes(b"new")
            (root / "uploads").mkdir()
            (root / "uploads" / "b.jpg").write_bytes(b"old")

            replace_directory(root / "new", root / "uploads")

            self.assertEqual(sorted(p.name for p in root.iterdir()), ["uploads"])
            self.assertEqual(sorted(p.name for p in (root / "uploads").iterdir()), ["a.jpg"])


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestCreateAndInspect(IsolatedDirsMixin, TestCase):
    def test_create_backup(self):
        owner = make_user("owner@example.com")
        make_group(owner, name="Desert Roses")
        SystemSetting.objects.create(key="SITE_NAME", value="TribeFinder")
        (self.uploads_dir / "a.jpg").write_bytes(b"a")

        info = create_backup()
        self.assertRegex(info.filename, r"^tribefinder-backup-.*\.tar\.gz$")

        entries = TarCodec().list(self.backup_dir / info.filename)
        for name in ("db.json", "settings.json", "uploads/a.jpg"):
            self.assertIn(name, entries)

        report = inspect_backup(info.filename)
        self.assertTrue(report["hasDb"])
        self.assertEqual(report["uploadsFileCount"], 1)
        self.assertEqual(report["counts"]["tribefinder.group"], 1)
        self.assertEqual(report["counts"]["tribefinder.user"], 1)
        self.assertFalse(report["warnings"]["hasVeryFewData"])

    def test_empty_backup_warns(self):
        info = create_backup()
        report = inspect_backup(info.filename)
        self.assertTrue(report["warnings"]["hasVeryFewData"])

    def test_restore_rejects_foreign_archive(self):
        make_user("keep@example.com")
        self.backup_dir.mkdir()
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "db.json").write_text("[]")
            TarCodec().create(self.backup_dir / "upload-1-foreign.tar.gz", ["db.json"], cwd=tmp)

        with self.assertRaisesRegex(ManifestError, "uploads"):
            restore_backup("upload-1-foreign.tar.gz", "RESTORE")
        self.assertTrue(User.objects.filter(email="keep@example.com").exists())


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestRestore(IsolatedDirsMixin, TransactionTestCase):
    def test_restore_replaces_database_and_uploads(self):
        owner = make_user("owner@example.com")
        make_group(owner, name="Before")
        (self.uploads_dir / "a.jpg").write_bytes(b"a")
        info = create_backup()

        Group.objects.all().delete()
        make_group(owner, name="After")
        (self.uploads_dir / "a.jpg").unlink()
        (self.uploads_dir / "b.jpg").write_bytes(b"b")

        result = restore_backup(info.filename, "RESTORE")

        self.assertTrue(result["restored"])
        self.assertEqual(list(Group.objects.values_list("name", flat=True)), ["Before"])
        self.assertEqual(Group.objects.get().owner.email, "owner@example.com")
        self.assertEqual(sorted(p.name for p in self.uploads_dir.iterdir()), ["a.jpg"])
        self.assertEqual(sorted(p.name for p in self.root.iterdir()), ["backups", "uploads"])

    def test_settings_snapshot(self):
        SystemSetting.objects.create(key="SITE_NAME", value="TribeFinder")
        info = create_backup()
        with tempfile.TemporaryDirectory() as tmp:
            TarCodec().extract_selected(self.backup_dir / info.filename, ["settings.json"], tmp)
            settings = json.loads((Path(tmp) / "settings.json").read_text())
        self.assertEqual(settings, {"SITE_NAME": "TribeFinder"})
