# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Base classes for conflict-resolving transfer imports.

Each entity collection of a transfer manifest (users, groups, events,
memberships) has an importer that inherits from BaseTransferImporter.
The base class owns the skip/overwrite/copy decision loop; subclasses
supply collision matching and the actual writes.

Architecture:
    BaseTransferImporter -> UserImporter, GroupImporter,
                            EventImporter, MembershipImporter

All importers of one apply share an ImportContext. It holds the maps from
manifest keys (email, group sourceId) to local ids that later importers
use to resolve references, so it must never outlive a single apply.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from django.utils import timezone

from .matchers import DEFAULT_MATCHERS, Matchers

logger = logging.getLogger(__name__)

ACTION_SKIP = "skip"
ACTION_OVERWRITE = "overwrite"
ACTION_COPY = "copy"
ACTIONS = (ACTION_SKIP, ACTION_OVERWRITE, ACTION_COPY)


@dataclass
class ImportResult:
    """Result of importing one entity collection.

    Attributes:
        model_name: Collection name (e.g., "groups")
        created: Number of new records created (including copies)
        updated: Number of existing records updated
        skipped: Number of records skipped (by choice or unresolved)
    """
    model_name: str
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total_processed(self) -> int:
        """Total number of records processed."""
        return self.created + self.updated + self.skipped


@dataclass
class ImportContext:
    """Resolution state for a single apply.

    Attributes:
        matchers: Collision matchers in use
        now: Timestamp of the apply, used for copy names
        user_ids: Manifest email -> local user id
        group_ids: Manifest group sourceId -> local group id
        notes: Operator-facing notes on non-obvious decisions
        copies: Number of records created by a copy action
    """
    matchers: Matchers = DEFAULT_MATCHERS
    now: datetime = field(default_factory=timezone.now)
    user_ids: Dict[str, int] = field(default_factory=dict)
    group_ids: Dict[str, int] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)
    copies: int = 0

    def note(self, message: str) -> None:
        logger.info(message)
        self.notes.append(message)


class BaseTransferImporter(ABC):
    """Abstract base class for manifest collection importers.

    Subclasses must implement:
        - model_name: Manifest collection this importer consumes
        - dependencies: model_names that must be imported first
        - record_key(): Key under which the operator's action is stored
        - find_existing(): Collision lookup, returns a local id or None
        - create_record(): Create a new record, returns its id
        - update_record(): Overwrite an existing record

    Subclasses may override:
        - prepare(): Reference precondition; False skips the record
        - remember(): Record a local id for later importers
        - handle_copy(): What ``copy`` means for an existing record

    Decision table (action defaults to skip when the operator gave none):

        existing | skip       | overwrite | copy
        ---------+------------+-----------+---------------
        yes      | skipped    | updated   | handle_copy()
        no       | skipped    | created   | created
    """

    model_name: str = ""
    dependencies: List[str] = []

    def __init__(self, context: ImportContext):
        self.context = context

    @abstractmethod
    def record_key(self, record) -> str:
        pass

    @abstractmethod
    def find_existing(self, record) -> Optional[int]:
        pass

    @abstractmethod
    def create_record(self, record) -> int:
        pass

    @abstractmethod
    def update_record(self, existing_id: int, record) -> None:
        pass

    def prepare(self, record) -> bool:
        return True

    def remember(self, record, local_id: int) -> None:
        pass

    def copy_record(self, existing_id: int, record) -> int:
        """Create a distinct copy of a record that collides with ``existing_id``."""
        return self.create_record(record)

    def handle_copy(self, existing_id: int, record, result: ImportResult) -> None:
        local_id = self.copy_record(existing_id, record)
        self.context.copies += 1
        self.remember(record, local_id)
        result.created += 1

    def import_records(self, records: List[Any], actions: Dict[str, str]) -> ImportResult:
        """Apply the operator's actions to every record, in manifest order.

        Database errors propagate and abort the apply.
        """
        result = ImportResult(model_name=self.model_name)

        for record in records:
            key = self.record_key(record)
            action = actions.get(key, ACTION_SKIP)

            if not self.prepare(record):
                result.skipped += 1
                continue

            existing_id = self.find_existing(record)

            if existing_id is not None:
                if action == ACTION_SKIP:
                    self.remember(record, existing_id)
                    result.skipped += 1
                elif action == ACTION_OVERWRITE:
                    self.update_record(existing_id, record)
                    self.remember(record, existing_id)
                    result.updated += 1
                    logger.debug(f"Updated {self.model_name} {key} (id {existing_id})")
                else:
                    self.handle_copy(existing_id, record, result)
                continue

            if action == ACTION_SKIP:
                result.skipped += 1
                continue

            local_id = self.create_record(record)
            self.remember(record, local_id)
            result.created += 1
            logger.debug(f"Created {self.model_name} {key} (id {local_id})")

        logger.info(
            f"Imported {self.model_name}: "
            f"{result.created} created, {result.updated} updated, {result.skipped} skipped"
        )
        return result
