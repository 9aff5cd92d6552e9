# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from rest_framework.parsers import BaseParser

from tribefinder import config


class ArchiveParser(BaseParser):
    """Raw ``.tar.gz`` request bodies.

    Reads at most one byte past the upload limit, so an oversized body is
    detected without buffering all of it.
    """

    media_type = "application/gzip"

    def parse(self, stream, media_type=None, parser_context=None):
        if stream is None:
            return b""
        return stream.read(config.get("max_archive_upload_bytes") + 1)


class XGzipArchiveParser(ArchiveParser):
    media_type = "application/x-gzip"


class OctetStreamArchiveParser(ArchiveParser):
    media_type = "application/octet-stream"
