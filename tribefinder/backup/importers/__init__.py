# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Importers for the transfer manifest collections.

Importing this package registers every importer with
TransferImporterRegistry.
"""

from . import users  # noqa: F401
from . import groups  # noqa: F401
from . import events  # noqa: F401
from . import memberships  # noqa: F401
