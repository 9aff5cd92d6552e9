# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""List archives in the backup directory, newest first."""

from datetime import datetime, timezone

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import TransferError, list_backups


class Command(BaseCommand):
    help = "List backup and transfer archives in the backup directory"

    def handle(self, *args, **options):
        try:
            archives = list_backups()
        except TransferError as e:
            raise CommandError(str(e))

        if not archives:
            self.stdout.write("No archives found.")
            return

        for info in archives:
            created = datetime.fromtimestamp(info.created_at / 1000, tz=timezone.utc)
            self.stdout.write(f"{created:%Y-%m-%d %H:%M:%S}  {info.size:>12}  {info.filename}")
