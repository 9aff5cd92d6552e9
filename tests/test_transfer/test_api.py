# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the admin transfer and backup API."""

from unittest import mock, skipUnless

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from tribefinder.backup import DirectoryResolutionError
from tribefinder.models import AdminAuditLog, Group, User

from .factories import (
    ARCHIVE_NAME,
    TAR_AVAILABLE,
    IsolatedDirsMixin,
    all_actions,
    make_group,
    make_user,
    sample_manifest,
    write_transfer_archive,
)


class AdminAPITestCase(IsolatedDirsMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = make_user("admin@example.com", is_staff=True)
        self.client = APIClient()
        self.client.force_authenticate(self.admin)


class TestPermissions(IsolatedDirsMixin, TestCase):
    def test_anonymous_rejected(self):
        response = APIClient().get(reverse("backup-list"))
        self.assertEqual(response.status_code, 403)

    def test_non_staff_rejected(self):
        client = APIClient()
        client.force_authenticate(make_user("dancer@example.com"))
        for name in ("backup-list", "transfer-inspect"):
            with self.subTest(name=name):
                self.assertEqual(client.get(reverse(name)).status_code, 403)


class TestErrorResponses(AdminAPITestCase):
    def test_invalid_filename(self):
        response = self.client.get(reverse("transfer-inspect"), {"file": "../../etc/passwd.tar.gz"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["details"], "InvalidFilenameError")
        self.assertIn("passwd", response.data["message"])

    def test_unknown_archive(self):
        response = self.client.get(reverse("transfer-inspect"), {"file": ARCHIVE_NAME})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["details"], "ArchiveNotFoundError")

    def test_empty_export_selection(self):
        response = self.client.post(reverse("transfer-export"), {"groupIds": []}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_invalid_action(self):
        response = self.client.post(
            reverse("transfer-apply"),
            {"filename": ARCHIVE_NAME, "actions": {"groups": {"g1": "merge"}}},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_environment_error_is_500(self):
        error = DirectoryResolutionError("backup", ["/srv/backups"], PermissionError("denied"))
        with mock.patch("tribefinder.api.views.list_backups", side_effect=error):
            response = self.client.get(reverse("backup-list"))
        self.assertEqual(response.status_code, 500)
        self.assertIn("/srv/backups", response.data["message"])

    def test_restore_requires_confirmation(self):
        response = self.client.post(
            reverse("backup-restore"),
            {"filename": "tribefinder-backup-x.tar.gz", "confirm": "yes"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["details"], "RestoreConfirmationError")

    def test_upload_without_file(self):
        response = self.client.post(reverse("transfer-upload"), {}, format="multipart")
        self.assertEqual(response.status_code, 400)


class TestUploads(AdminAPITestCase):
    def test_raw_body_upload(self):
        response = self.client.post(
            reverse("transfer-upload"),
            data=b"archive bytes",
            content_type="application/gzip",
            HTTP_X_FILENAME="remote export.tar.gz",
        )
        self.assertEqual(response.status_code, 201)
        self.assertRegex(response.data["filename"], r"^transfer-upload-\d+-remote_export\.tar\.gz$")
        self.assertEqual((self.backup_dir / response.data["filename"]).read_bytes(), b"archive bytes")
        self.assertEqual(AdminAuditLog.objects.get().action, "transfer.upload")

    def test_multipart_upload(self):
        upload = SimpleUploadedFile("old.tar.gz", b"backup bytes", content_type="application/gzip")
        response = self.client.post(reverse("backup-upload"), {"file": upload}, format="multipart")
        self.assertEqual(response.status_code, 201)
        self.assertRegex(response.data["filename"], r"^upload-\d+-old\.tar\.gz$")

    def test_oversized_upload(self):
        with mock.patch.dict("tribefinder.config._config", {"max_archive_upload_bytes": 4}):
            response = self.client.post(
                reverse("transfer-upload"),
                data=b"archive bytes",
                content_type="application/gzip",
                HTTP_X_FILENAME="export.tar.gz",
            )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["details"], "UploadTooLargeError")


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestTransferFlow(AdminAPITestCase):
    def test_export(self):
        owner = make_user("owner@example.com")
        group = make_group(owner, name="Desert Roses")

        response = self.client.post(reverse("transfer-export"), {"groupIds": [group.pk]}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["filename"].startswith("tribefinder-transfer-"))
        log = AdminAuditLog.objects.get(action="transfer.export")
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.ip_address, "127.0.0.1")

    def test_inspect_and_apply(self):
        manifest = sample_manifest()
        write_transfer_archive(self.backup_dir, manifest)

        response = self.client.get(reverse("transfer-inspect"), {"file": ARCHIVE_NAME})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["counts"]["groups"], 1)
        self.assertEqual(response.data["items"]["groups"][0]["sourceId"], "g1")

        response = self.client.post(
            reverse("transfer-apply"),
            {"filename": ARCHIVE_NAME, "actions": all_actions(manifest, "overwrite")},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["created"], {"users": 1, "groups": 1, "events": 1, "memberships": 1})
        self.assertTrue(Group.objects.filter(name="Desert Roses").exists())
        self.assertTrue(User.objects.filter(email="a@example.com").exists())

    def test_download(self):
        write_transfer_archive(self.backup_dir, sample_manifest())
        response = self.client.get(reverse("transfer-download"), {"file": ARCHIVE_NAME})
        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment", response["Content-Disposition"])
        self.assertIn(ARCHIVE_NAME, response["Content-Disposition"])
        content = b"".join(response.streaming_content)
        self.assertEqual(content, (self.backup_dir / ARCHIVE_NAME).read_bytes())


@skipUnless(TAR_AVAILABLE, "tar binary not available")
class TestBackupFlow(AdminAPITestCase):
    def test_create_list_inspect_delete(self):
        response = self.client.post(reverse("backup-list"))
        self.assertEqual(response.status_code, 201)
        filename = response.data["filename"]
        self.assertEqual(response.data["purged"]["keepLast"], 30)

        response = self.client.get(reverse("backup-list"))
        self.assertEqual([item["filename"] for item in response.data], [filename])

        response = self.client.get(reverse("backup-inspect"), {"file": filename})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["hasDb"])
        self.assertEqual(response.data["counts"]["tribefinder.user"], 1)

        response = self.client.delete(f"{reverse('backup-list')}?file={filename}")
        self.assertEqual(response.status_code, 204)
        self.assertFalse((self.backup_dir / filename).exists())
        self.assertEqual(
            list(AdminAuditLog.objects.order_by("pk").values_list("action", flat=True)),
            ["backup.create", "backup.delete"],
        )
