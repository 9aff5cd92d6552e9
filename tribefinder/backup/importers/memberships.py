# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Importer for group memberships.

A membership is identified by its (group, user) pair, which is unique in
the database. A ``copy`` can therefore not create a second row and is
applied as an overwrite, with a note for the operator.
"""

from typing import Any, Optional, Tuple
import logging

from ...models import GroupMember
from ..base import BaseTransferImporter, ImportResult
from ..manifest import TransferMembership
from ..registry import TransferImporterRegistry

logger = logging.getLogger(__name__)


def coerce_role(value: Any) -> str:
    if value in GroupMember.RoleChoices.values:
        return value
    return GroupMember.RoleChoices.MEMBER


def coerce_status(value: Any) -> str:
    if value in GroupMember.StatusChoices.values:
        return value
    return GroupMember.StatusChoices.PENDING


@TransferImporterRegistry.register
class MembershipImporter(BaseTransferImporter):
    model_name = "memberships"
    dependencies = ["users", "groups"]

    def record_key(self, record: TransferMembership) -> str:
        return record.key

    def endpoints(self, record: TransferMembership) -> Tuple[Optional[int], Optional[int]]:
        return (
            self.context.user_ids.get(record.user_email),
            self.context.group_ids.get(record.group_source_id),
        )

    def prepare(self, record: TransferMembership) -> bool:
        user_id, group_id = self.endpoints(record)
        return user_id is not None and group_id is not None

    def find_existing(self, record: TransferMembership) -> Optional[int]:
        return self.context.matchers.membership(*self.endpoints(record))

    def create_record(self, record: TransferMembership) -> int:
        user_id, group_id = self.endpoints(record)
        membership = GroupMember.objects.create(
            user_id=user_id,
            group_id=group_id,
            role=coerce_role(record.role),
            status=coerce_status(record.status),
        )
        return membership.pk

    def update_record(self, existing_id: int, record: TransferMembership) -> None:
        GroupMember.objects.filter(pk=existing_id).update(
            role=coerce_role(record.role),
            status=coerce_status(record.status),
        )

    def handle_copy(self, existing_id: int, record: TransferMembership, result: ImportResult) -> None:
        self.update_record(existing_id, record)
        result.updated += 1
        self.context.note(
            f"Membership copy treated as overwrite: {record.user_email} -> group {record.group_source_id}"
        )
