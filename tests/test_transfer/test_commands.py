# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the transfer and backup management commands."""

import json
import tempfile
from io import StringIO
from pathlib import Path
from unittest import skipUnless

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from tribefinder.management.commands.apply_transfer import build_actions
from tribefinder.models import AdminAuditLog, Event, Group, GroupMember, User

from .factories import (
    ARCHIVE_NAME,
    TAR_AVAILABLE,
    IsolatedDirsMixin,
    make_group,
    make_user,
    sample_manifest,
    write_transfer_archive,
)


class TestBuildActions(TestCase):
    def test_default_and_overrides(self):
        items = {
            "users": [{"email": "a@example.com"}],
            "groups": [{"sourceId": "g1"}],
            "events": [{"sourceId": "e1"}],
            "memberships": [{"key": "g1::a@example.com"}],
        }
        actions = build_actions(items, "overwrite", {"groups": {"g1": "skip"}})
        self.assertEqual(
            actions,
            {
                "users": {"a@example.com": "overwrite"},
                "groups": {"g1": "skip"},
                "events": {"e1": "overwrite"},
                "memberships": {"g1::a@example.com": "overwrite"},
            },
        )


class TestCommandErrors(IsolatedDirsMixin, TestCase):
    def test_export_requires_groups(self):
        with self.assertRaises(CommandError):
            call_command("export_transfer", stdout=StringIO())

    def test_inspect_rejects_unsafe_name(self):
        with self.assertRaisesRegex(CommandError, "Invalid transfer filename"):
            call_command("inspect_transfer", "../../etc/passwd.tar.gz", stdout=StringIO())

    def test_restore_requires_confirmation(self):
        with self.assertRaisesRegex(CommandError, "RESTORE"):
            call_command("restore_backup", "tribefinder-backup-x.tar.gz", stdout=StringIO())

    def test_apply_rejects_non_object_collection(self):
        with tempfile.TemporaryDirectory() as tmp:
            actions_file = Path(tmp) / "actions.json"
            actions_file.write_text(json.dumps({"users": ["a@example.com"]}))
            with self.assertRaisesRegex(CommandError, "Actions for users must be a JSON object"):
                call_command("apply_transfer", ARCHIVE_NAME, "--actions", str(actions_file), stdout=StringIO())
        self.assertFalse(User.objects.exists())

    def test_list_empty(self):
        out = StringIO()
        call_command("list_backups", stdout=out)
        self.assertIn("No archives found.", out.getvalue())


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestTransferCommands(IsolatedDirsMixin, TestCase):
    def test_export_all(self):
        owner = make_user("owner@example.com")
        make_group(owner, name="Desert Roses")

        out = StringIO()
        call_command("export_transfer", "--all", stdout=out)

        self.assertIn("Created tribefinder-transfer-", out.getvalue())
        self.assertEqual(len(list(self.backup_dir.glob("tribefinder-transfer-*.tar.gz"))), 1)
        self.assertEqual(AdminAuditLog.objects.get().action, "transfer.export")

        out = StringIO()
        call_command("list_backups", stdout=out)
        self.assertIn("tribefinder-transfer-", out.getvalue())

    def test_inspect_json(self):
        write_transfer_archive(self.backup_dir, sample_manifest())
        out = StringIO()
        call_command("inspect_transfer", ARCHIVE_NAME, "--json", stdout=out)

        data = json.loads(out.getvalue())
        self.assertEqual(data["counts"], {"users": 1, "groups": 1, "events": 1, "memberships": 1})
        self.assertTrue(data["hasDataJson"])

    def test_apply_with_default_action(self):
        write_transfer_archive(self.backup_dir, sample_manifest())
        out = StringIO()
        call_command("apply_transfer", ARCHIVE_NAME, "--default-action", "overwrite", stdout=out)

        self.assertIn(f"Applied {ARCHIVE_NAME}", out.getvalue())
        self.assertEqual(
            (User.objects.count(), Group.objects.count(), Event.objects.count(), GroupMember.objects.count()),
            (1, 1, 1, 1),
        )
        log = AdminAuditLog.objects.get(action="transfer.apply")
        self.assertEqual(log.extra_data["created"]["groups"], 1)

    def test_apply_with_actions_file(self):
        write_transfer_archive(self.backup_dir, sample_manifest())
        with tempfile.TemporaryDirectory() as tmp:
            actions_file = Path(tmp) / "actions.json"
            actions_file.write_text(json.dumps({"users": {"a@example.com": "overwrite"}}))
            call_command(
                "apply_transfer", ARCHIVE_NAME, "--actions", str(actions_file), stdout=StringIO()
            )

        self.assertEqual(User.objects.count(), 1)
        self.assertFalse(Group.objects.exists())

    def test_apply_with_bad_actions_file(self):
        write_transfer_archive(self.backup_dir, sample_manifest())
        with self.assertRaisesRegex(CommandError, "Could not read actions file"):
            call_command("apply_transfer", ARCHIVE_NAME, "--actions", "/nonexistent/actions.json")


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestBackupCommands(IsolatedDirsMixin, TestCase):
    def test_create_and_inspect(self):
        out = StringIO()
        call_command("create_backup", stdout=out)
        self.assertIn("Created tribefinder-backup-", out.getvalue())

        filename = next(self.backup_dir.glob("tribefinder-backup-*.tar.gz")).name
        out = StringIO()
        call_command("restore_backup", filename, "--inspect", stdout=out)
        self.assertTrue(json.loads(out.getvalue())["hasDb"])
        self.assertEqual(AdminAuditLog.objects.get().action, "backup.create")
