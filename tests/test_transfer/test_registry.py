# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the transfer importer registry."""

from unittest import TestCase

from tribefinder.backup import importers  # noqa: F401
from tribefinder.backup.base import BaseTransferImporter
from tribefinder.backup.registry import (
    CyclicDependencyError,
    RegistryError,
    TransferImporterRegistry,
)


def make_importer(name, deps=()):
    """Build a minimal importer class for registry tests."""

    class _Importer(BaseTransferImporter):
        model_name = name
        dependencies = list(deps)

        def record_key(self, record):
            return str(record)

        def find_existing(self, record):
            return None

        def create_record(self, record):
            return 1

        def update_record(self, existing_id, record):
            pass

    _Importer.__name__ = f"{name.title()}Importer"
    return _Importer


class TestTransferImporterRegistry(TestCase):
    """Tests for TransferImporterRegistry."""

    def setUp(self):
        """Start from an empty registry; the real importers are put back afterwards."""
        self._saved = dict(TransferImporterRegistry._importers)
        TransferImporterRegistry.clear()

    def tearDown(self):
        TransferImporterRegistry.clear()
        TransferImporterRegistry._importers.update(self._saved)

    def test_register_decorator(self):
        importer = TransferImporterRegistry.register(make_importer("users"))
        self.assertIn("users", TransferImporterRegistry.get_all_model_names())
        self.assertIs(TransferImporterRegistry.get_importer("users"), importer)

    def test_register_without_model_name(self):
        with self.assertRaises(ValueError):
            TransferImporterRegistry.register(make_importer(""))

    def test_dependency_order(self):
        """Importers come back in dependency order, not registration order."""
        TransferImporterRegistry.register(make_importer("memberships", ["users", "groups"]))
        TransferImporterRegistry.register(make_importer("events", ["users", "groups"]))
        TransferImporterRegistry.register(make_importer("groups", ["users"]))
        TransferImporterRegistry.register(make_importer("users"))

        order = [i.model_name for i in TransferImporterRegistry.get_ordered_importers()]
        self.assertLess(order.index("users"), order.index("groups"))
        self.assertLess(order.index("groups"), order.index("events"))
        self.assertLess(order.index("groups"), order.index("memberships"))

    def test_include_subset(self):
        TransferImporterRegistry.register(make_importer("users"))
        TransferImporterRegistry.register(make_importer("groups", ["users"]))
        order = [i.model_name for i in TransferImporterRegistry.get_ordered_importers(include=["groups"])]
        self.assertEqual(order, ["groups"])

    def test_include_unknown(self):
        TransferImporterRegistry.register(make_importer("users"))
        with self.assertRaises(KeyError):
            TransferImporterRegistry.get_ordered_importers(include=["tags"])

    def test_missing_dependency(self):
        TransferImporterRegistry.register(make_importer("groups", ["users"]))
        self.assertEqual(
            TransferImporterRegistry.validate_dependencies(),
            ["groups depends on unregistered 'users'"],
        )
        with self.assertRaises(RegistryError):
            TransferImporterRegistry.get_ordered_importers()

    def test_cyclic_dependency(self):
        TransferImporterRegistry.register(make_importer("a", ["b"]))
        TransferImporterRegistry.register(make_importer("b", ["a"]))
        with self.assertRaises(CyclicDependencyError):
            TransferImporterRegistry.get_ordered_importers()

    def test_get_unknown_importer(self):
        with self.assertRaises(KeyError):
            TransferImporterRegistry.get_importer("nothing")


class TestRegisteredImporters(TestCase):
    def test_engine_importers_are_registered_in_order(self):
        order = [i.model_name for i in TransferImporterRegistry.get_ordered_importers()]
        self.assertEqual(order, ["users", "groups", "events", "memberships"])
