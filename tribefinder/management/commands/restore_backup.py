# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Restore a whole-instance backup.

This replaces every row in the database and the whole uploads directory.
Restart the application afterwards.

Usage:
    django-admin restore_backup <filename> --confirm RESTORE
    django-admin restore_backup <filename> --inspect
"""

import json

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import TransferError, inspect_backup, restore_backup
from tribefinder.models import log_admin_action


class Command(BaseCommand):
    """Restore the database and uploads from a backup archive."""

    help = "Restore a whole-instance backup (requires --confirm)"

    def add_arguments(self, parser):
        parser.add_argument("filename", help="Backup name in the backup directory.")
        parser.add_argument(
            "--confirm",
            default="",
            help="Confirmation text (RESTORE unless configured otherwise).",
        )
        parser.add_argument(
            "--inspect",
            action="store_true",
            help="Only show what the backup contains.",
        )

    def handle(self, *args, **options):
        filename = options["filename"]
        try:
            if options["inspect"]:
                self.stdout.write(json.dumps(inspect_backup(filename), indent=2))
                return
            result = restore_backup(filename, options["confirm"])
        except TransferError as e:
            raise CommandError(str(e))

        log_admin_action("backup.restore", f"Restored backup {filename}", extra_data={"filename": filename})
        self.stdout.write(self.style.SUCCESS(result["message"]))
