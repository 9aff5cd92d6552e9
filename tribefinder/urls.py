# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from django.urls import include, path

urlpatterns = [
    path("api/admin/", include("tribefinder.api.urls")),
]
