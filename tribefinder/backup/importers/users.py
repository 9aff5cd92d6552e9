# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Importer for user accounts, matched by email."""

from typing import Any, Dict, Optional
import logging

from ...models import User
from ..base import BaseTransferImporter
from ..compat import NEWER_USER_FIELDS, schema_fallback
from ..manifest import TransferUser
from ..registry import TransferImporterRegistry
from ..utils import now_millis, random_password

logger = logging.getLogger(__name__)


@schema_fallback(NEWER_USER_FIELDS)
def create_user(fields: Dict[str, Any], email: str) -> int:
    # Email stored verbatim, create_user() would normalize the domain
    user = User(email=email, **fields)
    user.set_password(random_password())
    user.save()
    return user.pk


@schema_fallback(NEWER_USER_FIELDS)
def update_user(fields: Dict[str, Any], user_id: int) -> None:
    User.objects.filter(pk=user_id).update(**fields)


def copy_email(email: str) -> str:
    """``a@example.com`` -> ``a+copy-1714581000000@example.com``."""
    local, _, domain = email.partition("@")
    return f"{local}+copy-{now_millis()}@{domain or 'example.com'}"


@TransferImporterRegistry.register
class UserImporter(BaseTransferImporter):
    """Creates, updates or copies accounts.

    New accounts get a random password that is never reported; their
    owners have to reset it.
    """

    model_name = "users"
    dependencies = []

    def record_key(self, record: TransferUser) -> str:
        return record.email

    def find_existing(self, record: TransferUser) -> Optional[int]:
        return self.context.matchers.user(record)

    def remember(self, record: TransferUser, local_id: int) -> None:
        self.context.user_ids[record.email] = local_id

    def _create(self, record: TransferUser, email: str) -> int:
        user_id, degraded = create_user(record.profile_fields(), email)
        if degraded:
            self.context.note(f"User created without workshop fields (older schema): {email}")
        return user_id

    def create_record(self, record: TransferUser) -> int:
        user_id = self._create(record, record.email)
        self.context.note(f"User created with random password: {record.email}")
        return user_id

    def update_record(self, existing_id: int, record: TransferUser) -> None:
        _, degraded = update_user(record.profile_fields(), existing_id)
        if degraded:
            self.context.note(f"User updated without workshop fields (older schema): {record.email}")

    def copy_record(self, existing_id: int, record: TransferUser) -> int:
        email = copy_email(record.email)
        user_id = self._create(record, email)
        self.context.note(f"User copy created: {record.email} -> {email}")
        return user_id
