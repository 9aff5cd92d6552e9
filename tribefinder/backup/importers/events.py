# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Importer for events, matched on title, start date and resolved group."""

from typing import Any, Dict, Optional
import logging

from ...models import Event
from ..base import BaseTransferImporter
from ..exceptions import ManifestError
from ..manifest import TransferEvent
from ..registry import TransferImporterRegistry
from ..utils import deserialize_datetime

logger = logging.getLogger(__name__)

EVENT_FIELDS = (
    "title",
    "location_name",
    "address",
    "flyer1",
    "flyer2",
    "website",
    "ticket_link",
    "ticket_price",
    "organizer",
    "max_participants",
)


def coerce_event_type(value: Any) -> str:
    if value in Event.EventTypeChoices.values:
        return value
    return Event.EventTypeChoices.EVENT


@TransferImporterRegistry.register
class EventImporter(BaseTransferImporter):
    """Importer for Event.

    An event that names a group is skipped unless that group was resolved
    earlier in the same apply, so no event is attached to the wrong group
    or left ungrouped by accident. The creator is optional.
    """

    model_name = "events"
    dependencies = ["users", "groups"]

    def record_key(self, record: TransferEvent) -> str:
        return record.source_id

    def group_id(self, record: TransferEvent) -> Optional[int]:
        if not record.group_source_id:
            return None
        return self.context.group_ids.get(record.group_source_id)

    def dates(self, record: TransferEvent):
        try:
            return deserialize_datetime(record.start_date), deserialize_datetime(record.end_date)
        except ValueError as e:
            raise ManifestError(f"Invalid date in event {record.source_id}: {e}") from e

    def prepare(self, record: TransferEvent) -> bool:
        self.dates(record)
        if record.group_source_id and self.group_id(record) is None:
            logger.debug(f"Skipping event {record.source_id}: group {record.group_source_id} not resolved")
            return False
        return True

    def find_existing(self, record: TransferEvent) -> Optional[int]:
        return self.context.matchers.event(record, self.group_id(record))

    def event_values(self, record: TransferEvent) -> Dict[str, Any]:
        start_date, end_date = self.dates(record)

        creator_id = None
        if record.creator_email:
            creator_id = self.context.user_ids.get(record.creator_email)

        values = {name: getattr(record, name) for name in EVENT_FIELDS}
        values.update(
            description=record.description or "",
            event_type=coerce_event_type(record.event_type),
            start_date=start_date,
            end_date=end_date,
            lat=record.lat or 0.0,
            lng=record.lng or 0.0,
            requires_registration=bool(record.requires_registration),
            group_id=self.group_id(record),
            creator_id=creator_id,
        )
        return values

    def create_record(self, record: TransferEvent) -> int:
        return Event.objects.create(**self.event_values(record)).pk

    def update_record(self, existing_id: int, record: TransferEvent) -> None:
        Event.objects.filter(pk=existing_id).update(**self.event_values(record))
