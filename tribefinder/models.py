# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models, transaction
from model_utils.models import TimeStampedModel

logger = logging.getLogger(__name__)


class UserManager(BaseUserManager):
    """Manager for the email-keyed user model."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("An email address is required")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if not extra_fields["is_staff"] or not extra_fields["is_superuser"]:
            raise ValueError("Superuser must have is_staff=True and is_superuser=True.")
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Site account, identified by email.

    The email address is the natural key used to correlate accounts
    between TribeFinder instances.

    The ``dancer_gives_workshops``, ``dancer_bookable_for_shows`` and
    ``dancer_workshop_conditions`` columns were added later than the rest of
    the dancer profile; older databases may not have them yet.
    """

    username = None
    email = models.EmailField(unique=True)

    first_name = models.CharField(max_length=150, null=True, blank=True)
    last_name = models.CharField(max_length=150, null=True, blank=True)
    name = models.CharField(max_length=200, null=True, blank=True)
    image = models.CharField(max_length=500, null=True, blank=True)

    dancer_name = models.CharField(max_length=200, null=True, blank=True)
    bio = models.TextField(null=True, blank=True)
    is_dancer_profile_enabled = models.BooleanField(default=False)
    is_dancer_profile_private = models.BooleanField(default=False)
    dancer_teaches = models.BooleanField(default=False)
    dancer_teaching_where = models.TextField(null=True, blank=True)
    dancer_teaching_focus = models.TextField(null=True, blank=True)
    dancer_education = models.TextField(null=True, blank=True)
    dancer_performances = models.TextField(null=True, blank=True)
    dancer_gives_workshops = models.BooleanField(default=False)
    dancer_bookable_for_shows = models.BooleanField(default=False)
    dancer_workshop_conditions = models.TextField(null=True, blank=True)

    instagram_url = models.CharField(max_length=500, null=True, blank=True)
    facebook_url = models.CharField(max_length=500, null=True, blank=True)
    youtube_url = models.CharField(max_length=500, null=True, blank=True)
    tiktok_url = models.CharField(max_length=500, null=True, blank=True)
    website = models.CharField(max_length=500, null=True, blank=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    def __str__(self):
        return self.email


class Tag(models.Model):
    class TagManager(models.Manager):
        def get_by_natural_key(self, name):
            return self.get(name=name)

    name = models.CharField(max_length=100, unique=True)
    is_approved = models.BooleanField(default=False)

    objects = TagManager()

    class Meta:
        ordering = ["name"]

    def natural_key(self):
        return (self.name,)

    def __str__(self):
        return self.name


class DanceStyle(models.Model):
    class DanceStyleManager(models.Manager):
        def get_by_natural_key(self, name):
            return self.get(name=name)

    name = models.CharField(max_length=100, unique=True)

    objects = DanceStyleManager()

    class Meta:
        ordering = ["name"]

    def natural_key(self):
        return (self.name,)

    def __str__(self):
        return self.name


class Group(TimeStampedModel):
    """A dance group (tribe), owned by one user.

    Group names are not unique. Imports match existing groups on exact name.
    """

    class SizeChoices(models.TextChoices):
        SOLO = "SOLO", "Solo"
        DUO = "DUO", "Duo"
        TRIO = "TRIO", "Trio"
        SMALL = "SMALL", "Small"
        LARGE = "LARGE", "Large"

    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(default="", blank=True)
    website = models.CharField(max_length=500, null=True, blank=True)
    contact_email = models.CharField(max_length=254, null=True, blank=True)
    image = models.CharField(max_length=500, null=True, blank=True)
    header_image = models.CharField(max_length=500, null=True, blank=True)
    header_image_focus_y = models.IntegerField(null=True, blank=True)
    header_gradient_from = models.CharField(max_length=32, null=True, blank=True)
    header_gradient_to = models.CharField(max_length=32, null=True, blank=True)
    video_url = models.CharField(max_length=500, null=True, blank=True)
    size = models.CharField(
        max_length=10,
        choices=SizeChoices.choices,
        default=SizeChoices.SMALL,
    )
    training_time = models.CharField(max_length=200, null=True, blank=True)
    performances = models.BooleanField(default=False)
    founding_year = models.IntegerField(null=True, blank=True)
    seeking_members = models.BooleanField(default=False)

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="owned_groups",
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="groups")

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Location(TimeStampedModel):
    group = models.OneToOneField(
        Group,
        on_delete=models.CASCADE,
        related_name="location",
    )
    address = models.CharField(max_length=500, null=True, blank=True)
    lat = models.FloatField()
    lng = models.FloatField()

    def __str__(self):
        return self.address or f"{self.lat}, {self.lng}"


class GroupDanceStyle(models.Model):
    class LevelChoices(models.TextChoices):
        BEGINNER = "BEGINNER", "Beginner"
        INTERMEDIATE = "INTERMEDIATE", "Intermediate"
        ADVANCED = "ADVANCED", "Advanced"
        PROFESSIONAL = "PROFESSIONAL", "Professional"

    class ModeChoices(models.TextChoices):
        IMPRO = "IMPRO", "Improvisation"
        CHOREO = "CHOREO", "Choreography"
        BOTH = "BOTH", "Both"

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name="dance_styles",
    )
    style = models.ForeignKey(
        DanceStyle,
        on_delete=models.CASCADE,
        related_name="group_links",
    )
    level = models.CharField(
        max_length=20,
        choices=LevelChoices.choices,
        default=LevelChoices.INTERMEDIATE,
    )
    mode = models.CharField(
        max_length=10,
        choices=ModeChoices.choices,
        null=True,
        blank=True,
    )

    def __str__(self):
        return f"{self.group} - {self.style} ({self.level})"


class GalleryImage(TimeStampedModel):
    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name="gallery_images",
    )
    url = models.CharField(max_length=500)
    caption = models.CharField(max_length=500, null=True, blank=True)
    order = models.IntegerField(default=0)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self):
        return self.url


class Event(TimeStampedModel):
    """An event, optionally attached to a group.

    ``group`` and ``creator`` are nullable: ungrouped events exist, and the
    creator may have been deleted or not migrated to this instance.
    """

    class EventTypeChoices(models.TextChoices):
        EVENT = "EVENT", "Event"
        WORKSHOP = "WORKSHOP", "Workshop"
        SOCIAL = "SOCIAL", "Social"
        OPEN_TRAINING = "OPEN_TRAINING", "Open Training"

    title = models.CharField(max_length=300)
    description = models.TextField(default="", blank=True)
    event_type = models.CharField(
        max_length=20,
        choices=EventTypeChoices.choices,
        default=EventTypeChoices.EVENT,
    )
    start_date = models.DateTimeField(db_index=True)
    end_date = models.DateTimeField(null=True, blank=True)
    location_name = models.CharField(max_length=300, null=True, blank=True)
    address = models.CharField(max_length=500, null=True, blank=True)
    lat = models.FloatField(default=0)
    lng = models.FloatField(default=0)
    flyer1 = models.CharField(max_length=500, null=True, blank=True)
    flyer2 = models.CharField(max_length=500, null=True, blank=True)
    website = models.CharField(max_length=500, null=True, blank=True)
    ticket_link = models.CharField(max_length=500, null=True, blank=True)
    ticket_price = models.CharField(max_length=100, null=True, blank=True)
    organizer = models.CharField(max_length=300, null=True, blank=True)
    max_participants = models.IntegerField(null=True, blank=True)
    requires_registration = models.BooleanField(default=False)

    group = models.ForeignKey(
        Group,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="events",
    )
    creator = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_events",
    )

    class Meta:
        ordering = ["start_date"]

    def __str__(self):
        return f"{self.title} ({self.start_date:%Y-%m-%d})"


class GroupMember(TimeStampedModel):
    class RoleChoices(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        MEMBER = "MEMBER", "Member"

    class StatusChoices(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name="members",
    )
    role = models.CharField(
        max_length=10,
        choices=RoleChoices.choices,
        default=RoleChoices.MEMBER,
    )
    status = models.CharField(
        max_length=10,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING,
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "group"],
                name="unique_group_member",
            ),
        ]

    def __str__(self):
        return f"{self.user} in {self.group} ({self.role}, {self.status})"


class SystemSetting(models.Model):
    """Key/value site settings editable from the admin console."""

    class SystemSettingManager(models.Manager):
        def get_by_natural_key(self, key):
            return self.get(key=key)

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True, default="")

    objects = SystemSettingManager()

    def natural_key(self):
        return (self.key,)

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        return setting.value if setting else default


class AdminAuditLog(models.Model):
    """Audit trail of administrative transfer and backup actions."""

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_audit_logs",
        help_text="The admin who performed this action",
    )
    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Machine-readable action identifier (e.g., transfer.apply)",
    )
    description = models.TextField(
        help_text="Human-readable description of the action",
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    extra_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional structured data about the action",
    )

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["action", "-timestamp"], name="tribefinder_audit_action_idx"),
        ]

    def __str__(self):
        user_str = self.user.email if self.user else "system"
        return f"{self.timestamp:%Y-%m-%d %H:%M} - {user_str} - {self.action}"


def get_client_ip(request):
    """Extract client IP address from request, handling proxies."""
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        ip = x_forwarded_for.split(",")[0].strip()
    else:
        ip = request.META.get("REMOTE_ADDR")
    return ip


def log_admin_action(action, description, user=None, request=None, extra_data=None):
    """Write an AdminAuditLog row.

    A failure to write the audit row is logged and never raised, so it
    cannot abort the administrative operation it describes.

    Args:
        action: Machine-readable action identifier (e.g., "backup.restore")
        description: Human-readable description
        user: Acting user (optional, taken from request if available)
        request: HTTP request object (optional, used for the client IP)
        extra_data: Additional JSON data (optional)

    Returns:
        AdminAuditLog instance, or None if writing failed
    """
    ip_address = None
    if request is not None:
        user = user or getattr(request, "user", None)
        ip_address = get_client_ip(request)

    if user is not None and not user.is_authenticated:
        user = None

    try:
        with transaction.atomic():
            return AdminAuditLog.objects.create(
                user=user,
                action=action,
                description=description,
                ip_address=ip_address,
                extra_data=extra_data or {},
            )
    except Exception as e:
        logger.error(f"Failed to write admin audit log: {e}")
        return None
