# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Collision matchers: find the local record an imported one corresponds to.

Each matcher maps a manifest entry to the id of an existing local record,
or None. They are collected in a ``Matchers`` value so a stricter strategy
(for example name plus location for groups) can be passed to
``apply_transfer`` without touching the importers.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from ..models import Event, Group, GroupMember, User
from .manifest import TransferEvent, TransferGroup, TransferUser
from .utils import deserialize_datetime


def match_user_by_email(user: TransferUser) -> Optional[int]:
    return User.objects.filter(email=user.email).values_list("pk", flat=True).first()


def match_group_by_name(group: TransferGroup) -> Optional[int]:
    """Exact, case-sensitive name match, oldest group first."""
    return (
        Group.objects.filter(name=group.name)
        .order_by("pk")
        .values_list("pk", flat=True)
        .first()
    )


def match_event(event: TransferEvent, group_id: Optional[int]) -> Optional[int]:
    """Match on title and start date, within the resolved group if there is one."""
    queryset = Event.objects.filter(
        title=event.title,
        start_date=deserialize_datetime(event.start_date),
    )
    if group_id is not None:
        queryset = queryset.filter(group_id=group_id)
    return queryset.order_by("pk").values_list("pk", flat=True).first()


def match_membership(user_id: int, group_id: int) -> Optional[int]:
    return (
        GroupMember.objects.filter(user_id=user_id, group_id=group_id)
        .values_list("pk", flat=True)
        .first()
    )


@dataclass(frozen=True)
class Matchers:
    user: Callable[[TransferUser], Optional[int]] = match_user_by_email
    group: Callable[[TransferGroup], Optional[int]] = match_group_by_name
    event: Callable[[TransferEvent, Optional[int]], Optional[int]] = match_event
    membership: Callable[[int, int], Optional[int]] = match_membership


DEFAULT_MATCHERS = Matchers()
