from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Follow(BaseModel):
    follower = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="following")
    followee = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="followers")

    class Meta:
        unique_together = ("follower", "followee")
