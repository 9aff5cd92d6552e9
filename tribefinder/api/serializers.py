# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from rest_framework import serializers

from tribefinder.backup import ACTIONS


class ExportRequestSerializer(serializers.Serializer):
    groupIds = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=False,
    )


class ActionMapField(serializers.DictField):
    child = serializers.ChoiceField(choices=ACTIONS)


class ActionsSerializer(serializers.Serializer):
    users = ActionMapField(required=False, default=dict)
    groups = ActionMapField(required=False, default=dict)
    events = ActionMapField(required=False, default=dict)
    memberships = ActionMapField(required=False, default=dict)


class ApplyRequestSerializer(serializers.Serializer):
    filename = serializers.CharField()
    actions = ActionsSerializer(required=False)


class RestoreRequestSerializer(serializers.Serializer):
    filename = serializers.CharField()
    confirm = serializers.CharField(allow_blank=True, default="")
