# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""pytest configuration.

Settings come from ``tests.settings`` (see ``[tool.pytest.ini_options]``).
The runtime config is reloaded from a path that does not exist, so a
config file on the test host never changes the defaults the tests expect.
"""

import os

import pytest

from tribefinder import config


@pytest.fixture(autouse=True, scope="session")
def default_runtime_config():
    os.environ["TRIBEFINDER_CONFIG"] = "/nonexistent/tribefinder-tests.yaml"
    config.reload_config()
    yield
