# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import model_utils.fields
import tribefinder.models


def _timestamps():
    return [
        (
            "created",
            model_utils.fields.AutoCreatedField(
                default=django.utils.timezone.now, editable=False, verbose_name="created"
            ),
        ),
        (
            "modified",
            model_utils.fields.AutoLastModifiedField(
                default=django.utils.timezone.now, editable=False, verbose_name="modified"
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.",
                        verbose_name="active",
                    ),
                ),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("first_name", models.CharField(blank=True, max_length=150, null=True)),
                ("last_name", models.CharField(blank=True, max_length=150, null=True)),
                ("name", models.CharField(blank=True, max_length=200, null=True)),
                ("image", models.CharField(blank=True, max_length=500, null=True)),
                ("dancer_name", models.CharField(blank=True, max_length=200, null=True)),
                ("bio", models.TextField(blank=True, null=True)),
                ("is_dancer_profile_enabled", models.BooleanField(default=False)),
                ("is_dancer_profile_private", models.BooleanField(default=False)),
                ("dancer_teaches", models.BooleanField(default=False)),
                ("dancer_teaching_where", models.TextField(blank=True, null=True)),
                ("dancer_teaching_focus", models.TextField(blank=True, null=True)),
                ("dancer_education", models.TextField(blank=True, null=True)),
                ("dancer_performances", models.TextField(blank=True, null=True)),
                ("dancer_gives_workshops", models.BooleanField(default=False)),
                ("dancer_bookable_for_shows", models.BooleanField(default=False)),
                ("dancer_workshop_conditions", models.TextField(blank=True, null=True)),
                ("instagram_url", models.CharField(blank=True, max_length=500, null=True)),
                ("facebook_url", models.CharField(blank=True, max_length=500, null=True)),
                ("youtube_url", models.CharField(blank=True, max_length=500, null=True)),
                ("tiktok_url", models.CharField(blank=True, max_length=500, null=True)),
                ("website", models.CharField(blank=True, max_length=500, null=True)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", tribefinder.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="Tag",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("is_approved", models.BooleanField(default=False)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="DanceStyle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="SystemSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.TextField(blank=True, default="")),
            ],
        ),
        migrations.CreateModel(
            name="Group",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_timestamps(),
                ("name", models.CharField(db_index=True, max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("website", models.CharField(blank=True, max_length=500, null=True)),
                ("contact_email", models.CharField(blank=True, max_length=254, null=True)),
                ("image", models.CharField(blank=True, max_length=500, null=True)),
                ("header_image", models.CharField(blank=True, max_length=500, null=True)),
                ("header_image_focus_y", models.IntegerField(blank=True, null=True)),
                ("header_gradient_from", models.CharField(blank=True, max_length=32, null=True)),
                ("header_gradient_to", models.CharField(blank=True, max_length=32, null=True)),
                ("video_url", models.CharField(blank=True, max_length=500, null=True)),
                (
                    "size",
                    models.CharField(
                        choices=[
                            ("SOLO", "Solo"),
                            ("DUO", "Duo"),
                            ("TRIO", "Trio"),
                            ("SMALL", "Small"),
                            ("LARGE", "Large"),
                        ],
                        default="SMALL",
                        max_length=10,
                    ),
                ),
                ("training_time", models.CharField(blank=True, max_length=200, null=True)),
                ("performances", models.BooleanField(default=False)),
                ("founding_year", models.IntegerField(blank=True, null=True)),
                ("seeking_members", models.BooleanField(default=False)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="owned_groups",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                ("tags", models.ManyToManyField(blank=True, related_name="groups", to="tribefinder.tag")),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Location",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_timestamps(),
                ("address", models.CharField(blank=True, max_length=500, null=True)),
                ("lat", models.FloatField()),
                ("lng", models.FloatField()),
                (
                    "group",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="location",
                        to="tribefinder.group",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="GroupDanceStyle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "level",
                    models.CharField(
                        choices=[
                            ("BEGINNER", "Beginner"),
                            ("INTERMEDIATE", "Intermediate"),
                            ("ADVANCED", "Advanced"),
                            ("PROFESSIONAL", "Professional"),
                        ],
                        default="INTERMEDIATE",
                        max_length=20,
                    ),
                ),
                (
                    "mode",
                    models.CharField(
                        blank=True,
                        choices=[("IMPRO", "Improvisation"), ("CHOREO", "Choreography"), ("BOTH", "Both")],
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dance_styles",
                        to="tribefinder.group",
                    ),
                ),
                (
                    "style",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="group_links",
                        to="tribefinder.dancestyle",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="GalleryImage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_timestamps(),
                ("url", models.CharField(max_length=500)),
                ("caption", models.CharField(blank=True, max_length=500, null=True)),
                ("order", models.IntegerField(default=0)),
                (
                    "group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="gallery_images",
                        to="tribefinder.group",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "id"],
            },
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_timestamps(),
                ("title", models.CharField(max_length=300)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("EVENT", "Event"),
                            ("WORKSHOP", "Workshop"),
                            ("SOCIAL", "Social"),
                            ("OPEN_TRAINING", "Open Training"),
                        ],
                        default="EVENT",
                        max_length=20,
                    ),
                ),
                ("start_date", models.DateTimeField(db_index=True)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("location_name", models.CharField(blank=True, max_length=300, null=True)),
                ("address", models.CharField(blank=True, max_length=500, null=True)),
                ("lat", models.FloatField(default=0)),
                ("lng", models.FloatField(default=0)),
                ("flyer1", models.CharField(blank=True, max_length=500, null=True)),
                ("flyer2", models.CharField(blank=True, max_length=500, null=True)),
                ("website", models.CharField(blank=True, max_length=500, null=True)),
                ("ticket_link", models.CharField(blank=True, max_length=500, null=True)),
                ("ticket_price", models.CharField(blank=True, max_length=100, null=True)),
                ("organizer", models.CharField(blank=True, max_length=300, null=True)),
                ("max_participants", models.IntegerField(blank=True, null=True)),
                ("requires_registration", models.BooleanField(default=False)),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="events",
                        to="tribefinder.group",
                    ),
                ),
            ],
            options={
                "ordering": ["start_date"],
            },
        ),
        migrations.CreateModel(
            name="GroupMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_timestamps(),
                (
                    "role",
                    models.CharField(
                        choices=[("ADMIN", "Admin"), ("MEMBER", "Member")],
                        default="MEMBER",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")],
                        default="PENDING",
                        max_length=10,
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="members",
                        to="tribefinder.group",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "group"), name="unique_group_member"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AdminAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "action",
                    models.CharField(
                        db_index=True,
                        help_text="Machine-readable action identifier (e.g., transfer.apply)",
                        max_length=100,
                    ),
                ),
                ("description", models.TextField(help_text="Human-readable description of the action")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                (
                    "extra_data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Additional structured data about the action",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="The admin who performed this action",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="admin_audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["action", "-timestamp"], name="tribefinder_audit_action_idx"),
                ],
            },
        ),
    ]
