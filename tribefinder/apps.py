# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from django.apps import AppConfig


class TribefinderConfig(AppConfig):
    name = "tribefinder"
    verbose_name = "TribeFinder"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # Load the runtime config once so the first request does not pay for it
        from tribefinder import config

        config.load_config()
