# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transfer manifest (``data.json``) types and validation.

The manifest is a self-contained snapshot of a set of groups together
with everything they reference. Users are keyed by email; groups and
events carry the exporting instance's ids as ``sourceId``, which only
correlate records inside one manifest.

Manifest Structure:
    {
        "version": 1,
        "exportedAt": "2024-05-01T18:30:00.000Z",
        "users": [{"email": "a@example.com", "name": ..., ...}],
        "groups": [{"sourceId": "12", "name": ..., "ownerEmail": ...,
                    "location": {...} | null, "tags": [...],
                    "danceStyles": [...], "galleryImages": [...]}],
        "events": [{"sourceId": "40", "title": ..., "startDate": ...,
                    "groupSourceId": "12" | null, "creatorEmail": ... | null}],
        "memberships": [{"groupSourceId": "12", "userEmail": ...,
                         "role": "ADMIN", "status": "APPROVED"}],
        "uploads": ["a.jpg", "b.png"]
    }

Keys are camelCase on the wire and snake_case on the dataclasses.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Set, Tuple, Union
import json
import logging

from .exceptions import ManifestError
from .utils import (
    deserialize_datetime,
    is_upload_url,
    safe_upload_filename,
    to_camel,
    upload_filename_from_url,
)

logger = logging.getLogger(__name__)

TRANSFER_VERSION = 1
MANIFEST_FILENAME = "data.json"
UPLOADS_DIRNAME = "uploads"

COLLECTIONS = ("users", "groups", "events", "memberships")


def _dump(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def is_number(value: Any, kind: type) -> bool:
    """True for JSON numbers usable as ``kind`` (int or float); bools are not numbers."""
    if isinstance(value, bool):
        return False
    if kind is int:
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    return isinstance(value, (int, float))


def is_datetime(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        deserialize_datetime(value)
    except ValueError:
        return False
    return True


@dataclass
class _Record:
    """camelCase (de)serialization shared by all manifest entries.

    Entries are validated completely when read, so a manifest that loads
    can be applied without a value error part way through the import.
    """

    REQUIRED: ClassVar[Tuple[str, ...]] = ()
    NESTED: ClassVar[Dict[str, type]] = {}
    NUMBERS: ClassVar[Dict[str, type]] = {}
    DATETIMES: ClassVar[Tuple[str, ...]] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel(f.name): _dump(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def check_value(cls, name: str, key: str, value: Any) -> None:
        """Raise ManifestError if a non-null number or date field is malformed."""
        kind = cls.NUMBERS.get(name)
        if kind is not None and not is_number(value, kind):
            raise ManifestError(
                f"Invalid data.json (structure): {cls.__name__}.{key} is not a number: {value!r}"
            )
        if name in cls.DATETIMES and value != "" and not is_datetime(value):
            raise ManifestError(
                f"Invalid data.json (structure): {cls.__name__}.{key} is not a valid date: {value!r}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ManifestError(f"Invalid {cls.__name__} entry: expected an object")

        kwargs = {}
        for f in fields(cls):
            key = to_camel(f.name)
            if key not in data:
                if f.name in cls.REQUIRED:
                    raise ManifestError(f"{cls.__name__} entry is missing '{key}'")
                continue
            value = data[key]
            if f.name in cls.REQUIRED and (value is None or value == ""):
                raise ManifestError(f"{cls.__name__} entry has an empty '{key}'")
            if value is not None:
                cls.check_value(f.name, key, value)

            nested = cls.NESTED.get(f.name)
            if nested is not None and value is not None:
                if isinstance(value, list):
                    value = [nested.from_dict(v) for v in value]
                elif f.default_factory is list:
                    raise ManifestError(f"{cls.__name__}.{key} must be a list")
                else:
                    value = nested.from_dict(value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class TransferUser(_Record):
    """User profile keyed by email. Passwords are never exported."""

    REQUIRED: ClassVar[Tuple[str, ...]] = ("email",)

    email: str = ""
    name: Optional[str] = None
    image: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dancer_name: Optional[str] = None
    bio: Optional[str] = None
    is_dancer_profile_enabled: bool = False
    is_dancer_profile_private: bool = False
    dancer_teaches: bool = False
    dancer_teaching_where: Optional[str] = None
    dancer_teaching_focus: Optional[str] = None
    dancer_education: Optional[str] = None
    dancer_performances: Optional[str] = None
    dancer_gives_workshops: bool = False
    dancer_bookable_for_shows: bool = False
    dancer_workshop_conditions: Optional[str] = None
    instagram_url: Optional[str] = None
    facebook_url: Optional[str] = None
    youtube_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    website: Optional[str] = None

    def profile_fields(self) -> Dict[str, Any]:
        """Every field except the email, as model field names."""
        values = {}
        for f in fields(self):
            if f.name == "email":
                continue
            value = getattr(self, f.name)
            values[f.name] = bool(value) if isinstance(f.default, bool) else value
        return values


@dataclass
class TransferLocation(_Record):
    NUMBERS: ClassVar[Dict[str, type]] = {"lat": float, "lng": float}

    address: Optional[str] = None
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class TransferTag(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("name",)

    name: str = ""
    is_approved: bool = False


@dataclass
class TransferDanceStyle(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("name",)

    name: str = ""
    level: str = "INTERMEDIATE"
    mode: Optional[str] = None


@dataclass
class TransferGalleryImage(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("url",)
    NUMBERS: ClassVar[Dict[str, type]] = {"order": int}

    url: str = ""
    caption: Optional[str] = None
    order: int = 0


@dataclass
class TransferGroup(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("source_id", "name", "owner_email")
    NESTED: ClassVar[Dict[str, type]] = {
        "location": TransferLocation,
        "tags": TransferTag,
        "dance_styles": TransferDanceStyle,
        "gallery_images": TransferGalleryImage,
    }
    NUMBERS: ClassVar[Dict[str, type]] = {"header_image_focus_y": int, "founding_year": int}

    source_id: str = ""
    name: str = ""
    description: str = ""
    website: Optional[str] = None
    contact_email: Optional[str] = None
    image: Optional[str] = None
    header_image: Optional[str] = None
    header_image_focus_y: Optional[int] = None
    header_gradient_from: Optional[str] = None
    header_gradient_to: Optional[str] = None
    video_url: Optional[str] = None
    size: str = "SMALL"
    training_time: Optional[str] = None
    performances: bool = False
    founding_year: Optional[int] = None
    seeking_members: bool = False
    owner_email: str = ""
    location: Optional[TransferLocation] = None
    tags: List[TransferTag] = field(default_factory=list)
    dance_styles: List[TransferDanceStyle] = field(default_factory=list)
    gallery_images: List[TransferGalleryImage] = field(default_factory=list)


@dataclass
class TransferEvent(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("source_id", "title", "start_date")
    NUMBERS: ClassVar[Dict[str, type]] = {"lat": float, "lng": float, "max_participants": int}
    DATETIMES: ClassVar[Tuple[str, ...]] = ("start_date", "end_date")

    source_id: str = ""
    title: str = ""
    description: str = ""
    event_type: str = "EVENT"
    start_date: str = ""
    end_date: Optional[str] = None
    location_name: Optional[str] = None
    address: Optional[str] = None
    lat: float = 0.0
    lng: float = 0.0
    flyer1: Optional[str] = None
    flyer2: Optional[str] = None
    website: Optional[str] = None
    ticket_link: Optional[str] = None
    ticket_price: Optional[str] = None
    organizer: Optional[str] = None
    max_participants: Optional[int] = None
    requires_registration: bool = False
    group_source_id: Optional[str] = None
    creator_email: Optional[str] = None


def membership_key(group_source_id: str, user_email: str) -> str:
    return f"{group_source_id}::{user_email}"


@dataclass
class TransferMembership(_Record):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("group_source_id", "user_email")

    group_source_id: str = ""
    user_email: str = ""
    role: str = "MEMBER"
    status: str = "PENDING"

    @property
    def key(self) -> str:
        return membership_key(self.group_source_id, self.user_email)


@dataclass
class TransferManifest:
    """The ``data.json`` payload of a transfer archive.

    Attributes:
        version: Schema tag, always TRANSFER_VERSION when written
        exported_at: ISO timestamp of the export, informational only
        users, groups, events, memberships: Entity collections
        uploads: Sorted, de-duplicated upload filenames referenced above
    """
    version: int = TRANSFER_VERSION
    exported_at: str = ""
    users: List[TransferUser] = field(default_factory=list)
    groups: List[TransferGroup] = field(default_factory=list)
    events: List[TransferEvent] = field(default_factory=list)
    memberships: List[TransferMembership] = field(default_factory=list)
    uploads: List[str] = field(default_factory=list)

    ENTRY_TYPES: ClassVar[Dict[str, type]] = {
        "users": TransferUser,
        "groups": TransferGroup,
        "events": TransferEvent,
        "memberships": TransferMembership,
    }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "exportedAt": self.exported_at,
            "users": _dump(self.users),
            "groups": _dump(self.groups),
            "events": _dump(self.events),
            "memberships": _dump(self.memberships),
            "uploads": list(self.uploads),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, output_dir: Union[str, Path]) -> Path:
        """Write ``data.json`` into ``output_dir`` and return its path."""
        output_path = Path(output_dir) / MANIFEST_FILENAME
        output_path.write_text(self.to_json(), encoding="utf-8")
        return output_path

    def counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTIONS}

    @classmethod
    def from_dict(cls, data: Any) -> "TransferManifest":
        """Build a manifest from parsed JSON.

        Raises:
            ManifestError: On a wrong version or a malformed structure
        """
        if not isinstance(data, dict) or data.get("version") != TRANSFER_VERSION:
            raise ManifestError("Invalid data.json (version)")
        for name in COLLECTIONS:
            if not isinstance(data.get(name), list):
                raise ManifestError("Invalid data.json (structure)")

        uploads = data.get("uploads") or []
        if not isinstance(uploads, list):
            raise ManifestError("Invalid data.json (structure)")

        collections = {
            name: [cls.ENTRY_TYPES[name].from_dict(entry) for entry in data[name]]
            for name in COLLECTIONS
        }
        return cls(
            version=data["version"],
            exported_at=data.get("exportedAt") or "",
            uploads=[u for u in uploads if isinstance(u, str)],
            **collections,
        )

    @classmethod
    def from_json(cls, text: str) -> "TransferManifest":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid data.json (JSON): {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TransferManifest":
        """Load a manifest from a file, or from ``data.json`` inside a directory."""
        manifest_path = Path(path)
        if manifest_path.is_dir():
            manifest_path = manifest_path / MANIFEST_FILENAME
        try:
            text = manifest_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"Could not read {manifest_path.name}: {e}") from e
        return cls.from_json(text)


def referenced_uploads(values: Iterable[Optional[str]]) -> Set[str]:
    """Bare upload filenames among image/flyer values.

    External URLs and names with path components are left out.
    """
    result = set()
    for value in values:
        if not value or not is_upload_url(value):
            continue
        filename = safe_upload_filename(upload_filename_from_url(value))
        if filename:
            result.add(filename)
    return result


def collect_upload_filenames(
    users: Iterable[TransferUser],
    groups: Iterable[TransferGroup],
    events: Iterable[TransferEvent],
) -> List[str]:
    """Sorted set of uploads referenced by the given manifest entries."""
    values: List[Optional[str]] = []
    for user in users:
        values.append(user.image)
    for group in groups:
        values.extend([group.image, group.header_image])
        values.extend(image.url for image in group.gallery_images)
    for event in events:
        values.extend([event.flyer1, event.flyer2])
    return sorted(referenced_uploads(values))
