# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Create a whole-instance backup and purge old ones.

Usage:
    django-admin create_backup
    django-admin create_backup --no-purge
"""

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import TransferError, create_backup, purge_old_backups
from tribefinder.models import log_admin_action


class Command(BaseCommand):
    """Snapshot the database and the uploads directory."""

    help = "Create a whole-instance backup (database, settings, uploads)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--no-purge",
            action="store_true",
            help="Keep all older backups regardless of BACKUP_RETENTION_COUNT.",
        )

    def handle(self, *args, **options):
        try:
            info = create_backup()
            purged = None if options["no_purge"] else purge_old_backups()
        except TransferError as e:
            raise CommandError(str(e))

        log_admin_action("backup.create", f"Created backup {info.filename}", extra_data=info.to_dict())
        self.stdout.write(self.style.SUCCESS(f"Created {info.filename} ({info.size} bytes)"))
        if purged and purged["deleted"]:
            self.stdout.write(f"Purged {purged['deleted']} old backup(s), keeping {purged['keepLast']}")
