from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Notification(BaseModel):
    user = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=64)
    title = models.CharField(max_length=140, blank=True)
    body = models.CharField(max_length=255, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "type", "created_at"], name="notif_user_type_ts_idx"),
        ]
