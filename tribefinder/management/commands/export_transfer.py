# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Export groups into a transfer archive.

The archive is written into the backup directory as
``tribefinder-transfer-<timestamp>.tar.gz`` and contains ``data.json`` and
the upload files the selected groups reference.

Usage:
    django-admin export_transfer 12 15
    django-admin export_transfer --all
"""

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import TransferError, create_transfer_archive
from tribefinder.models import Group, log_admin_action


class Command(BaseCommand):
    """Export groups for import into another TribeFinder instance."""

    help = "Export groups (with owners, members, events and media) into a transfer archive"

    def add_arguments(self, parser):
        parser.add_argument(
            "group_ids",
            nargs="*",
            help="Ids of the groups to export.",
        )
        parser.add_argument(
            "--all",
            action="store_true",
            help="Export every group.",
        )

    def handle(self, *args, **options):
        group_ids = options["group_ids"]
        if options["all"]:
            group_ids = list(Group.objects.order_by("pk").values_list("pk", flat=True))
        if not group_ids:
            raise CommandError("Give at least one group id, or --all")

        try:
            info = create_transfer_archive(group_ids)
        except TransferError as e:
            raise CommandError(str(e))

        log_admin_action(
            "transfer.export",
            f"Exported {len(group_ids)} group(s) to {info.filename}",
            extra_data={"groupIds": [str(g) for g in group_ids], "filename": info.filename},
        )
        self.stdout.write(self.style.SUCCESS(f"Created {info.filename} ({info.size} bytes)"))
