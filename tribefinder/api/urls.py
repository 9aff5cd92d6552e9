# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from django.urls import path

from tribefinder.api import views

urlpatterns = [
    path("transfer/export/", views.TransferExportView.as_view(), name="transfer-export"),
    path("transfer/upload/", views.TransferUploadView.as_view(), name="transfer-upload"),
    path("transfer/inspect/", views.TransferInspectView.as_view(), name="transfer-inspect"),
    path("transfer/apply/", views.TransferApplyView.as_view(), name="transfer-apply"),
    path("transfer/download/", views.TransferDownloadView.as_view(), name="transfer-download"),
    path("backups/", views.BackupListView.as_view(), name="backup-list"),
    path("backups/upload/", views.BackupUploadView.as_view(), name="backup-upload"),
    path("backups/inspect/", views.BackupInspectView.as_view(), name="backup-inspect"),
    path("backups/download/", views.BackupDownloadView.as_view(), name="backup-download"),
    path("backups/restore/", views.BackupRestoreView.as_view(), name="backup-restore"),
]
