# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Build transfer archives from a selection of groups.

The exporter walks each selected group (owner, approved and pending
members, events and their creators, tags, dance styles, gallery, location),
writes a self-contained ``data.json`` plus the referenced upload files to
a scratch directory, and packs both into
``tribefinder-transfer-<timestamp>.tar.gz`` in the backup directory.

Referenced uploads that are missing on disk are left out of the archive
but stay referenced in the manifest.
"""

from dataclasses import fields
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set
import logging
import shutil
import tempfile

from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Prefetch
from django.utils import timezone

from ..models import Event, Group, GroupDanceStyle, GroupMember, User
from .archive import ArchiveInfo, TarCodec
from .compat import NEWER_USER_FIELDS, schema_fallback
from .exceptions import InvalidSelectionError
from .manifest import (
    MANIFEST_FILENAME,
    UPLOADS_DIRNAME,
    TransferDanceStyle,
    TransferEvent,
    TransferGalleryImage,
    TransferGroup,
    TransferLocation,
    TransferManifest,
    TransferMembership,
    TransferTag,
    TransferUser,
    collect_upload_filenames,
)
from .paths import resolve_backup_dir, resolve_project_root, resolve_uploads_dir
from .utils import ARCHIVE_SUFFIX, EXPORT_PREFIX, filename_timestamp, serialize_datetime

logger = logging.getLogger(__name__)

USER_FIELDS = [f.name for f in fields(TransferUser)]
EXPORTED_MEMBER_STATUSES = (
    GroupMember.StatusChoices.APPROVED,
    GroupMember.StatusChoices.PENDING,
)


@schema_fallback(NEWER_USER_FIELDS)
def fetch_user_rows(field_names: List[str], emails: Iterable[str]) -> List[Dict]:
    return list(
        User.objects.filter(email__in=list(emails)).order_by("email").values(*field_names)
    )


def parse_group_ids(group_ids: Iterable) -> List[int]:
    """Validate an export selection.

    Raises:
        InvalidSelectionError: If the selection is empty or not numeric
    """
    try:
        ids = [int(str(group_id).strip()) for group_id in group_ids]
    except (TypeError, ValueError) as e:
        raise InvalidSelectionError(f"Invalid group id in selection: {e}") from e
    if not ids:
        raise InvalidSelectionError("No groups selected for export")
    return ids


def copy_upload_files(filenames: Iterable[str], uploads_dir: Path, dest_dir: Path) -> List[str]:
    """Copy existing upload files into ``dest_dir``; return the ones copied."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for filename in filenames:
        src = uploads_dir / filename
        if not src.is_file():
            logger.warning(f"Referenced upload missing on disk, not archived: {filename}")
            continue
        shutil.copyfile(src, dest_dir / filename)
        copied.append(filename)
    return copied


class TransferExporter:
    """Exports a selection of groups and everything they reference.

    Example:
        info = TransferExporter(["12", "15"]).export()
        print(info.filename)
    """

    def __init__(self, group_ids: Iterable, codec: Optional[TarCodec] = None, project_root: Optional[Path] = None):
        self.group_ids = parse_group_ids(group_ids)
        self.codec = codec or TarCodec()
        self.project_root = project_root

    def get_queryset(self):
        return (
            Group.objects.filter(pk__in=self.group_ids)
            .select_related("owner", "location")
            .prefetch_related(
                "tags",
                "gallery_images",
                Prefetch(
                    "dance_styles",
                    queryset=GroupDanceStyle.objects.select_related("style").order_by("pk"),
                ),
                Prefetch(
                    "members",
                    queryset=GroupMember.objects.filter(status__in=EXPORTED_MEMBER_STATUSES)
                    .select_related("user")
                    .order_by("pk"),
                ),
                Prefetch(
                    "events",
                    queryset=Event.objects.select_related("creator").order_by("start_date", "pk"),
                ),
            )
            .order_by("pk")
        )

    def serialize_group(self, group: Group) -> TransferGroup:
        try:
            location = group.location
        except ObjectDoesNotExist:
            location = None

        return TransferGroup(
            source_id=str(group.pk),
            name=group.name,
            description=group.description,
            website=group.website,
            contact_email=group.contact_email,
            image=group.image,
            header_image=group.header_image,
            header_image_focus_y=group.header_image_focus_y,
            header_gradient_from=group.header_gradient_from,
            header_gradient_to=group.header_gradient_to,
            video_url=group.video_url,
            size=group.size,
            training_time=group.training_time,
            performances=group.performances,
            founding_year=group.founding_year,
            seeking_members=group.seeking_members,
            owner_email=group.owner.email,
            location=(
                TransferLocation(address=location.address, lat=location.lat, lng=location.lng)
                if location is not None
                else None
            ),
            tags=[TransferTag(name=t.name, is_approved=t.is_approved) for t in group.tags.all()],
            dance_styles=[
                TransferDanceStyle(name=ds.style.name, level=ds.level, mode=ds.mode)
                for ds in group.dance_styles.all()
            ],
            gallery_images=[
                TransferGalleryImage(url=gi.url, caption=gi.caption, order=gi.order)
                for gi in group.gallery_images.all()
            ],
        )

    def serialize_event(self, event: Event, group: Group) -> TransferEvent:
        return TransferEvent(
            source_id=str(event.pk),
            title=event.title,
            description=event.description,
            event_type=event.event_type,
            start_date=serialize_datetime(event.start_date),
            end_date=serialize_datetime(event.end_date),
            location_name=event.location_name,
            address=event.address,
            lat=event.lat,
            lng=event.lng,
            flyer1=event.flyer1,
            flyer2=event.flyer2,
            website=event.website,
            ticket_link=event.ticket_link,
            ticket_price=event.ticket_price,
            organizer=event.organizer,
            max_participants=event.max_participants,
            requires_registration=event.requires_registration,
            group_source_id=str(group.pk),
            creator_email=event.creator.email if event.creator_id else None,
        )

    def serialize_users(self, emails: Set[str]) -> List[TransferUser]:
        rows, degraded = fetch_user_rows(USER_FIELDS, emails)
        if degraded:
            logger.warning("Exported users without workshop fields (older schema)")
        return [TransferUser(**row) for row in rows]

    def build_manifest(self) -> TransferManifest:
        """Collect the selected groups into a manifest (no files are written)."""
        emails: Set[str] = set()
        groups: List[TransferGroup] = []
        events: List[TransferEvent] = []
        memberships: List[TransferMembership] = []

        for group in self.get_queryset():
            emails.add(group.owner.email)
            groups.append(self.serialize_group(group))

            for member in group.members.all():
                emails.add(member.user.email)
                memberships.append(
                    TransferMembership(
                        group_source_id=str(group.pk),
                        user_email=member.user.email,
                        role=member.role,
                        status=member.status,
                    )
                )

            for event in group.events.all():
                if event.creator_id:
                    emails.add(event.creator.email)
                events.append(self.serialize_event(event, group))

        users = self.serialize_users(emails)
        return TransferManifest(
            exported_at=serialize_datetime(timezone.now()),
            users=users,
            groups=groups,
            events=events,
            memberships=memberships,
            uploads=collect_upload_filenames(users, groups, events),
        )

    def export(self) -> ArchiveInfo:
        """Write the archive into the backup directory.

        The scratch directory is removed whether or not packing succeeds, and
        the archive is only moved into the backup directory once complete.

        Returns:
            ArchiveInfo describing the new archive
        """
        project_root = self.project_root or resolve_project_root()
        backup_dir = resolve_backup_dir(project_root)
        uploads_dir = resolve_uploads_dir(project_root)

        manifest = self.build_manifest()
        filename = f"{EXPORT_PREFIX}{filename_timestamp()}{ARCHIVE_SUFFIX}"
        out_path = backup_dir / filename

        with tempfile.TemporaryDirectory(prefix="tribefinder-transfer-", ignore_cleanup_errors=True) as tmp:
            tmp_root = Path(tmp)
            manifest.save(tmp_root)
            copied = copy_upload_files(manifest.uploads, uploads_dir, tmp_root / UPLOADS_DIRNAME)

            staged = tmp_root / filename
            self.codec.create(staged, [MANIFEST_FILENAME, UPLOADS_DIRNAME], cwd=tmp_root)
            shutil.move(str(staged), str(out_path))

        info = ArchiveInfo.from_path(out_path)
        counts = manifest.counts()
        logger.info(
            f"Exported {filename}: {counts['users']} users, {counts['groups']} groups, "
            f"{counts['events']} events, {counts['memberships']} memberships, "
            f"{len(copied)}/{len(manifest.uploads)} upload files"
        )
        return info


def create_transfer_archive(group_ids: Iterable, **kwargs) -> ArchiveInfo:
    """Export the given groups; see TransferExporter."""
    return TransferExporter(group_ids, **kwargs).export()
