from __future__ import annotations

from rest_framework import serializers

from apps.users.models import User


class MatchUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "handle", "name", "photo"]


class LikeRequestSerializer(serializers.Serializer):
    local_date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    # Parsed leniently by the calendar helpers; garbage falls back to the server offset.
    tz_offset_minutes = serializers.JSONField(required=False, allow_null=True)


class UnlikeRequestSnapshotSerializer(serializers.Serializer):
    requester_id = serializers.IntegerField()
    responder_id = serializers.IntegerField()
    attempts_used = serializers.IntegerField()
    pending = serializers.BooleanField()
    next_allowed_at = serializers.DateTimeField(allow_null=True)
    auto_unmatch_at = serializers.DateTimeField(allow_null=True)


class MatchStatusSerializer(serializers.Serializer):
    connected = serializers.BooleanField()
    can_like = serializers.BooleanField()
    liked_by_me = serializers.BooleanField()
    liked_by_other = serializers.BooleanField()
    is_matched = serializers.BooleanField()
    matched_at = serializers.DateTimeField(allow_null=True)
    rematch_blocked_until = serializers.DateTimeField(allow_null=True)
    unlike_request = UnlikeRequestSnapshotSerializer(allow_null=True)


class LikeResultSerializer(serializers.Serializer):
    message = serializers.CharField()
    liked = serializers.BooleanField()
    match_created = serializers.BooleanField()
    is_matched = serializers.BooleanField()


class UnlikeResultSerializer(serializers.Serializer):
    message = serializers.CharField()
    is_matched = serializers.BooleanField()
    unmatch_triggered = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    unlike_request = UnlikeRequestSnapshotSerializer(allow_null=True)


class ActiveMatchSerializer(serializers.Serializer):
    user = serializers.SerializerMethodField()
    matched_at = serializers.DateTimeField()

    def get_user(self, obj) -> dict:
        viewer_id = self.context["viewer_id"]
        other = obj.user_b if obj.user_a_id == viewer_id else obj.user_a
        return MatchUserSerializer(other).data
