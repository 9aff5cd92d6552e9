# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tolerance for databases and code that lag behind the newest user columns.

An instance running older code (or an older schema) does not know the
workshop-related dancer profile fields. Reads and writes that mention them
fail with an "unknown field" error; such a call is retried once with those
fields removed. Any other error, or a second failure, propagates.
"""

from typing import Any, Callable, Iterable, Tuple, Union
import functools
import logging

from django.core.exceptions import FieldDoesNotExist, FieldError
from django.db import DatabaseError, transaction

logger = logging.getLogger(__name__)

NEWER_USER_FIELDS = (
    "dancer_gives_workshops",
    "dancer_bookable_for_shows",
    "dancer_workshop_conditions",
)

_MISSING_COLUMN_MARKERS = (
    "no such column",
    "has no column named",
    "does not exist",
    "unknown column",
)

FieldSpec = Union[dict, list, tuple]


def is_unknown_field_error(exc: BaseException) -> bool:
    """Whether ``exc`` reports a field or column this schema does not have."""
    if isinstance(exc, (FieldError, FieldDoesNotExist)):
        return True
    message = str(exc).lower()
    if isinstance(exc, TypeError):
        return "unexpected keyword" in message
    if isinstance(exc, DatabaseError):
        return "column" in message and any(m in message for m in _MISSING_COLUMN_MARKERS)
    return False


def strip_fields(spec: FieldSpec, names: Iterable[str]) -> FieldSpec:
    """Copy of a field dict (or list of field names) without ``names``."""
    names = set(names)
    if isinstance(spec, dict):
        return {k: v for k, v in spec.items() if k not in names}
    return [name for name in spec if name not in names]


def schema_fallback(optional_fields: Iterable[str]):
    """Retry a call without ``optional_fields`` when they are unknown.

    The decorated function takes the field spec (a dict of values or a
    list of field names) as its first argument. The wrapper returns
    ``(result, degraded)`` where ``degraded`` is True when the retry ran.
    Each attempt runs in its own atomic block so a failed first attempt
    does not poison an enclosing transaction.
    """
    optional_fields = tuple(optional_fields)

    def decorator(func: Callable[..., Any]) -> Callable[..., Tuple[Any, bool]]:
        @functools.wraps(func)
        def wrapper(spec: FieldSpec, *args, **kwargs):
            try:
                with transaction.atomic():
                    return func(spec, *args, **kwargs), False
            except (FieldError, FieldDoesNotExist, TypeError, DatabaseError) as e:
                if not is_unknown_field_error(e):
                    raise
                reduced = strip_fields(spec, optional_fields)
                if len(reduced) == len(spec):
                    raise
                logger.warning(
                    f"{func.__name__}: retrying without {', '.join(optional_fields)} ({e})"
                )
            with transaction.atomic():
                return func(reduced, *args, **kwargs), True

        return wrapper

    return decorator
