from __future__ import annotations

from django.contrib import admin

from apps.matching.models import MatchLike, MatchRelationship, MatchUnlikeRequest


class ReadOnlyLifecycleAdmin(admin.ModelAdmin):
    """Lifecycle rows are owned by the match service; admin is for inspection only."""

    def has_add_permission(self, request) -> bool:  # type: ignore[override]
        return False

    def has_change_permission(self, request, obj=None) -> bool:  # type: ignore[override]
        return False

    def has_delete_permission(self, request, obj=None) -> bool:  # type: ignore[override]
        return request.user.is_superuser


@admin.register(MatchLike)
class MatchLikeAdmin(ReadOnlyLifecycleAdmin):
    list_display = ("sender_id", "receiver_id", "is_active", "local_date", "activated_at")
    list_filter = ("is_active",)
    search_fields = ("sender__handle", "receiver__handle")


@admin.register(MatchRelationship)
class MatchRelationshipAdmin(ReadOnlyLifecycleAdmin):
    list_display = ("user_a_id", "user_b_id", "status", "matched_at", "unmatched_at", "rematch_blocked_until")
    list_filter = ("status",)
    search_fields = ("user_a__handle", "user_b__handle")


@admin.register(MatchUnlikeRequest)
class MatchUnlikeRequestAdmin(ReadOnlyLifecycleAdmin):
    list_display = ("match_id", "requester_id", "responder_id", "attempts_used", "pending", "auto_unmatch_at")
    list_filter = ("pending",)
