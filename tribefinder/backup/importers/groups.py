# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Importer for groups and their nested records.

Models written:
    - Group: matched by exact name, owner resolved through the user map
    - Location: upserted, or deleted when the manifest has none
    - Tag: connect-or-create by name
    - DanceStyle / GroupDanceStyle: catalog entry by name, join rows recreated
    - GalleryImage: replaced wholesale
"""

from datetime import datetime
from typing import Any, Dict, Optional
import logging

from django.db import transaction

from ...models import (
    DanceStyle,
    GalleryImage,
    Group,
    GroupDanceStyle,
    Location,
    Tag,
)
from ..base import BaseTransferImporter
from ..manifest import TransferGroup
from ..registry import TransferImporterRegistry

logger = logging.getLogger(__name__)

GROUP_FIELDS = (
    "name",
    "website",
    "contact_email",
    "image",
    "header_image",
    "header_image_focus_y",
    "header_gradient_from",
    "header_gradient_to",
    "video_url",
    "training_time",
    "founding_year",
)
GROUP_FLAGS = ("performances", "seeking_members")


def coerce_dance_level(value: Any) -> str:
    value = str(value)
    if value in GroupDanceStyle.LevelChoices.values:
        return value
    return GroupDanceStyle.LevelChoices.INTERMEDIATE


def normalize_dance_mode(value: Any) -> Optional[str]:
    if value in GroupDanceStyle.ModeChoices.values:
        return value
    return None


def coerce_group_size(value: Any) -> str:
    if value in Group.SizeChoices.values:
        return value
    return Group.SizeChoices.SMALL


def copy_name(name: str, now: datetime) -> str:
    """``"<name> (Import YYYY-MM-DD)"``, shortening the name to fit Group.name."""
    suffix = f" (Import {now:%Y-%m-%d})"
    max_length = Group._meta.get_field("name").max_length
    return f"{name[:max_length - len(suffix)]}{suffix}"


def group_values(record: TransferGroup, owner_id: int) -> Dict[str, Any]:
    values = {name: getattr(record, name) for name in GROUP_FIELDS}
    values.update({name: bool(getattr(record, name)) for name in GROUP_FLAGS})
    values["description"] = record.description or ""
    values["size"] = coerce_group_size(record.size)
    values["owner_id"] = owner_id
    return values


def replace_location(group: Group, record: TransferGroup) -> None:
    if record.location is None:
        Location.objects.filter(group=group).delete()
        return
    Location.objects.update_or_create(
        group=group,
        defaults={
            "address": record.location.address,
            "lat": record.location.lat or 0.0,
            "lng": record.location.lng or 0.0,
        },
    )


def replace_tags(group: Group, record: TransferGroup) -> None:
    tags = []
    for tag in record.tags:
        obj, _ = Tag.objects.get_or_create(
            name=tag.name,
            defaults={"is_approved": bool(tag.is_approved)},
        )
        tags.append(obj)
    group.tags.set(tags)


def replace_dance_styles(group: Group, record: TransferGroup) -> None:
    GroupDanceStyle.objects.filter(group=group).delete()
    for entry in record.dance_styles:
        style, _ = DanceStyle.objects.get_or_create(name=entry.name)
        GroupDanceStyle.objects.create(
            group=group,
            style=style,
            level=coerce_dance_level(entry.level),
            mode=normalize_dance_mode(entry.mode),
        )


def replace_gallery(group: Group, record: TransferGroup) -> None:
    GalleryImage.objects.filter(group=group).delete()
    GalleryImage.objects.bulk_create(
        GalleryImage(
            group=group,
            url=image.url,
            caption=image.caption,
            order=image.order or 0,
        )
        for image in record.gallery_images
    )


@TransferImporterRegistry.register
class GroupImporter(BaseTransferImporter):
    """Importer for Group. A group whose owner is unresolved is never written."""

    model_name = "groups"
    dependencies = ["users"]

    def record_key(self, record: TransferGroup) -> str:
        return record.source_id

    def owner_id(self, record: TransferGroup) -> Optional[int]:
        return self.context.user_ids.get(record.owner_email)

    def prepare(self, record: TransferGroup) -> bool:
        if self.owner_id(record) is None:
            self.context.note(
                f"Skipped group '{record.name}': owner not mapped ({record.owner_email})"
            )
            return False
        return True

    def find_existing(self, record: TransferGroup) -> Optional[int]:
        return self.context.matchers.group(record)

    def remember(self, record: TransferGroup, local_id: int) -> None:
        self.context.group_ids[record.source_id] = local_id

    def _write_children(self, group: Group, record: TransferGroup) -> None:
        replace_location(group, record)
        replace_tags(group, record)
        replace_dance_styles(group, record)
        replace_gallery(group, record)

    def _create(self, record: TransferGroup, name: str) -> int:
        values = group_values(record, self.owner_id(record))
        values["name"] = name
        with transaction.atomic():
            group = Group.objects.create(**values)
            self._write_children(group, record)
        logger.debug(f"Created group {name} (id {group.pk})")
        return group.pk

    def create_record(self, record: TransferGroup) -> int:
        return self._create(record, record.name)

    def update_record(self, existing_id: int, record: TransferGroup) -> None:
        with transaction.atomic():
            group = Group.objects.select_for_update().get(pk=existing_id)
            for name, value in group_values(record, self.owner_id(record)).items():
                setattr(group, name, value)
            group.save()
            self._write_children(group, record)

    def copy_record(self, existing_id: int, record: TransferGroup) -> int:
        return self._create(record, copy_name(record.name, self.context.now))
