# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Admin console API for transfers and whole-instance backups.

Every endpoint requires a staff account. Mutating calls write an
AdminAuditLog row. Operator errors (bad filename, unknown archive,
malformed manifest, bad action map, missing confirmation, oversized
upload) are answered with HTTP 400 and ``{"message", "details"}``;
other engine failures with HTTP 500.
"""

import logging

from django.http import FileResponse
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from tribefinder.api.parsers import ArchiveParser, OctetStreamArchiveParser, XGzipArchiveParser
from tribefinder.api.serializers import (
    ApplyRequestSerializer,
    ExportRequestSerializer,
    RestoreRequestSerializer,
)
from tribefinder.backup import (
    CLIENT_ERRORS,
    TransferError,
    apply_transfer,
    create_backup,
    create_transfer_archive,
    delete_backup,
    get_backup_path,
    get_transfer_archive_path,
    inspect_backup,
    inspect_transfer,
    list_backups,
    purge_old_backups,
    restore_backup,
    store_uploaded_backup,
    store_uploaded_transfer_archive,
)
from tribefinder.models import log_admin_action

logger = logging.getLogger(__name__)

UPLOAD_PARSERS = [
    MultiPartParser,
    FormParser,
    ArchiveParser,
    XGzipArchiveParser,
    OctetStreamArchiveParser,
]


def error_response(exc, status_code):
    return Response(
        {"message": str(exc), "details": exc.__class__.__name__},
        status=status_code,
    )


def uploaded_archive(request):
    """(original name, payload) from a multipart ``file`` or a raw body.

    Returns (None, None) when the request carries no archive.
    """
    upload = request.FILES.get("file")
    if upload is not None:
        return upload.name, upload
    payload = request.data
    if isinstance(payload, (bytes, bytearray)) and payload:
        return request.headers.get("X-Filename", "archive.tar.gz"), payload
    return None, None


class TransferAPIView(APIView):
    """Base view mapping engine errors to JSON responses."""

    permission_classes = [IsAdminUser]

    def handle_exception(self, exc):
        if isinstance(exc, CLIENT_ERRORS):
            return error_response(exc, status.HTTP_400_BAD_REQUEST)
        if isinstance(exc, TransferError):
            logger.error(f"{self.__class__.__name__} failed: {exc}")
            return error_response(exc, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return super().handle_exception(exc)


class TransferExportView(TransferAPIView):
    """Create a transfer archive from ``{"groupIds": [...]}``."""

    def post(self, request):
        serializer = ExportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        group_ids = serializer.validated_data["groupIds"]

        info = create_transfer_archive(group_ids)
        log_admin_action(
            "transfer.export",
            f"Exported {len(group_ids)} group(s) to {info.filename}",
            request=request,
            extra_data={"groupIds": group_ids, "filename": info.filename},
        )
        return Response(info.to_dict())


class TransferUploadView(TransferAPIView):
    """Store a transfer archive produced by another instance."""

    parser_classes = UPLOAD_PARSERS

    def post(self, request):
        original_name, payload = uploaded_archive(request)
        if payload is None:
            return Response(
                {"message": "No archive uploaded", "details": "Send a multipart 'file' or a gzip body"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        info = store_uploaded_transfer_archive(original_name, payload)
        log_admin_action(
            "transfer.upload",
            f"Uploaded transfer archive {info.filename}",
            request=request,
            extra_data=info.to_dict(),
        )
        return Response(info.to_dict(), status=status.HTTP_201_CREATED)


class TransferInspectView(TransferAPIView):
    """Inspect ``?file=<name>`` without applying it."""

    def get(self, request):
        return Response(inspect_transfer(request.query_params.get("file", "")).to_dict())


class TransferApplyView(TransferAPIView):
    def post(self, request):
        serializer = ApplyRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        filename = serializer.validated_data["filename"]

        result = apply_transfer(filename, serializer.validated_data.get("actions"))
        log_admin_action(
            "transfer.apply",
            f"Applied transfer archive {filename}",
            request=request,
            extra_data={"filename": filename, **result.to_dict()},
        )
        return Response(result.to_dict())


class TransferDownloadView(TransferAPIView):
    def get(self, request):
        path = get_transfer_archive_path(request.query_params.get("file", ""))
        return FileResponse(open(path, "rb"), as_attachment=True, filename=path.name)


class BackupListView(TransferAPIView):
    """List (GET), create (POST) and delete (DELETE ``?file=``) backups."""

    def get(self, request):
        return Response([info.to_dict() for info in list_backups()])

    def post(self, request):
        info = create_backup()
        purged = purge_old_backups()
        log_admin_action(
            "backup.create",
            f"Created backup {info.filename}",
            request=request,
            extra_data={**info.to_dict(), "purged": purged},
        )
        return Response({**info.to_dict(), "purged": purged}, status=status.HTTP_201_CREATED)

    def delete(self, request):
        filename = request.query_params.get("file", "")
        delete_backup(filename)
        log_admin_action(
            "backup.delete",
            f"Deleted backup {filename}",
            request=request,
            extra_data={"filename": filename},
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class BackupUploadView(TransferAPIView):
    parser_classes = UPLOAD_PARSERS

    def post(self, request):
        original_name, payload = uploaded_archive(request)
        if payload is None:
            return Response(
                {"message": "No archive uploaded", "details": "Send a multipart 'file' or a gzip body"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        info = store_uploaded_backup(original_name, payload)
        log_admin_action(
            "backup.upload",
            f"Uploaded backup {info.filename}",
            request=request,
            extra_data=info.to_dict(),
        )
        return Response(info.to_dict(), status=status.HTTP_201_CREATED)


class BackupInspectView(TransferAPIView):
    def get(self, request):
        return Response(inspect_backup(request.query_params.get("file", "")))


class BackupDownloadView(TransferAPIView):
    def get(self, request):
        path = get_backup_path(request.query_params.get("file", ""))
        return FileResponse(open(path, "rb"), as_attachment=True, filename=path.name)


class BackupRestoreView(TransferAPIView):
    """Restore ``{"filename", "confirm"}``; confirm must be the configured text."""

    parser_classes = [JSONParser]

    def post(self, request):
        serializer = RestoreRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        filename = serializer.validated_data["filename"]

        result = restore_backup(filename, serializer.validated_data["confirm"])
        log_admin_action(
            "backup.restore",
            f"Restored backup {filename}",
            request=request,
            extra_data={"filename": filename},
        )
        return Response(result)
