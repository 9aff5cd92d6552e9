# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Inspect a transfer archive without applying it.

Usage:
    django-admin inspect_transfer <filename>
    django-admin inspect_transfer <filename> --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import TransferError, inspect_transfer


class Command(BaseCommand):
    """Show what a transfer archive would import."""

    help = "Show counts, records and missing upload files of a transfer archive"

    def add_arguments(self, parser):
        parser.add_argument("filename", help="Archive name in the backup directory.")
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the full inspection result as JSON.",
        )

    def handle(self, *args, **options):
        try:
            result = inspect_transfer(options["filename"])
        except TransferError as e:
            raise CommandError(str(e))

        if options["json"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
            return

        self.stdout.write(f"Archive: {result.filename}")
        if not result.has_data_json:
            self.stdout.write(self.style.WARNING("  No data.json (media-only archive)"))
        for name, count in result.counts.items():
            self.stdout.write(f"  {name}: {count}")
        self.stdout.write(f"  upload files: {result.uploads_file_count}")
        self.stdout.write(f"  missing locally: {len(result.missing_uploads)}")

        if result.items:
            self.stdout.write("")
            for user in result.items["users"]:
                self.stdout.write(f"  user        {user['email']}")
            for group in result.items["groups"]:
                self.stdout.write(f"  group       {group['sourceId']}: {group['name']}")
            for event in result.items["events"]:
                self.stdout.write(f"  event       {event['sourceId']}: {event['title']} ({event['startDate']})")
            for membership in result.items["memberships"]:
                self.stdout.write(
                    f"  membership  {membership['key']} ({membership['role']}, {membership['status']})"
                )
