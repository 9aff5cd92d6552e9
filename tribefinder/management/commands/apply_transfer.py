# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Apply a transfer archive.

Actions are read from a JSON file shaped like::

    {
        "users": {"a@example.com": "overwrite"},
        "groups": {"12": "skip"},
        "events": {"40": "copy"},
        "memberships": {"12::a@example.com": "overwrite"}
    }

Records without an entry take ``--default-action`` (skip unless given).

Usage:
    django-admin apply_transfer <filename> --actions actions.json
    django-admin apply_transfer <filename> --default-action overwrite
"""

import json

from django.core.management.base import BaseCommand, CommandError

from tribefinder.backup import ACTION_SKIP, ACTIONS, TransferError, apply_transfer, inspect_transfer
from tribefinder.models import log_admin_action


def build_actions(items, default_action, overrides):
    """Action map giving ``default_action`` to every inspected record."""
    keys = {
        "users": [u["email"] for u in items["users"]],
        "groups": [g["sourceId"] for g in items["groups"]],
        "events": [e["sourceId"] for e in items["events"]],
        "memberships": [m["key"] for m in items["memberships"]],
    }
    actions = {}
    for name, record_keys in keys.items():
        actions[name] = {str(key): default_action for key in record_keys}
        actions[name].update(overrides.get(name) or {})
    return actions


class Command(BaseCommand):
    """Import users, groups, events and memberships from a transfer archive."""

    help = "Apply a transfer archive with per-record skip/overwrite/copy actions"

    def add_arguments(self, parser):
        parser.add_argument("filename", help="Archive name in the backup directory.")
        parser.add_argument(
            "--actions",
            help="JSON file with per-record actions.",
        )
        parser.add_argument(
            "--default-action",
            choices=ACTIONS,
            default=ACTION_SKIP,
            help="Action for records not listed in --actions (default: skip).",
        )

    def handle(self, *args, **options):
        filename = options["filename"]

        overrides = {}
        if options["actions"]:
            try:
                with open(options["actions"], "r") as f:
                    overrides = json.load(f)
            except (OSError, ValueError) as e:
                raise CommandError(f"Could not read actions file: {e}")
            if not isinstance(overrides, dict):
                raise CommandError("Actions file must contain a JSON object")
            for name, entries in overrides.items():
                if entries is not None and not isinstance(entries, dict):
                    raise CommandError(f"Actions for {name} must be a JSON object keyed by record")

        try:
            report = inspect_transfer(filename)
            if not report.has_data_json:
                raise CommandError(f"{filename} has no data.json; nothing to apply")
            actions = build_actions(report.items, options["default_action"], overrides)
            result = apply_transfer(filename, actions)
        except TransferError as e:
            raise CommandError(str(e))

        log_admin_action(
            "transfer.apply",
            f"Applied transfer archive {filename}",
            extra_data={"filename": filename, **result.to_dict()},
        )

        for name in ("users", "groups", "events", "memberships"):
            self.stdout.write(
                f"  {name}: {result.created[name]} created, "
                f"{result.updated[name]} updated, {result.skipped[name]} skipped"
            )
        for note in result.notes:
            self.stdout.write(self.style.WARNING(f"  note: {note}"))
        self.stdout.write(self.style.SUCCESS(f"Applied {filename}"))
