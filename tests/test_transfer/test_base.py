# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the importer base class and its decision table."""

from unittest import TestCase

from tribefinder.backup.base import BaseTransferImporter, ImportContext, ImportResult


class FakeImporter(BaseTransferImporter):
    """Importer over plain dicts; ``existing`` maps keys to ids."""

    model_name = "things"

    def __init__(self, context, existing=None):
        super().__init__(context)
        self.existing = dict(existing or {})
        self.created = []
        self.updated = []
        self.remembered = {}
        self.next_id = 100

    def record_key(self, record):
        return record["key"]

    def prepare(self, record):
        return not record.get("unresolved")

    def find_existing(self, record):
        return self.existing.get(record["key"])

    def create_record(self, record):
        self.next_id += 1
        self.created.append(record["key"])
        return self.next_id

    def update_record(self, existing_id, record):
        self.updated.append(existing_id)

    def remember(self, record, local_id):
        self.remembered[record["key"]] = local_id


class TestImportResult(TestCase):
    def test_total_processed(self):
        result = ImportResult(model_name="groups", created=5, updated=3, skipped=2)
        self.assertEqual(result.total_processed, 10)


class TestDecisionTable(TestCase):
    def setUp(self):
        self.context = ImportContext()
        self.importer = FakeImporter(self.context, existing={"old": 7})

    def run_one(self, key, action):
        return self.importer.import_records([{"key": key}], {key: action})

    def test_existing_skip_remembers(self):
        result = self.run_one("old", "skip")
        self.assertEqual(result.skipped, 1)
        self.assertEqual(self.importer.remembered, {"old": 7})

    def test_existing_overwrite(self):
        result = self.run_one("old", "overwrite")
        self.assertEqual(result.updated, 1)
        self.assertEqual(self.importer.updated, [7])
        self.assertEqual(self.importer.remembered, {"old": 7})

    def test_existing_copy(self):
        result = self.run_one("old", "copy")
        self.assertEqual(result.created, 1)
        self.assertEqual(self.importer.remembered, {"old": 101})
        self.assertEqual(self.context.copies, 1)

    def test_new_skip_stays_unresolved(self):
        result = self.run_one("new", "skip")
        self.assertEqual(result.skipped, 1)
        self.assertEqual(self.importer.remembered, {})

    def test_new_overwrite_and_copy_create(self):
        for action in ("overwrite", "copy"):
            with self.subTest(action=action):
                self.importer.created.clear()
                result = self.run_one("new", action)
                self.assertEqual(result.created, 1)
                self.assertEqual(self.importer.created, ["new"])
        self.assertEqual(self.context.copies, 0)

    def test_missing_action_defaults_to_skip(self):
        result = self.importer.import_records([{"key": "old"}, {"key": "new"}], {})
        self.assertEqual(result.skipped, 2)
        self.assertEqual(self.importer.created, [])

    def test_failed_precondition(self):
        result = self.importer.import_records([{"key": "old", "unresolved": True}], {"old": "overwrite"})
        self.assertEqual(result.skipped, 1)
        self.assertEqual(self.importer.updated, [])
