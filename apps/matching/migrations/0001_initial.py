from __future__ import annotations

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="MatchLike",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("is_active", models.BooleanField(default=True)),
                ("local_date", models.CharField(max_length=10)),
                ("activated_at", models.DateTimeField()),
                (
                    "receiver",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="match_likes_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="match_likes_sent",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["sender", "local_date", "is_active"], name="matching_like_sender_day_idx"),
                    models.Index(fields=["sender", "is_active", "activated_at"], name="matching_like_budget_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=["sender", "receiver"], name="matching_like_sender_receiver_uniq"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MatchRelationship",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("unmatched", "Unmatched")], default="active", max_length=16
                    ),
                ),
                ("matched_at", models.DateTimeField(blank=True, null=True)),
                ("unmatched_at", models.DateTimeField(blank=True, null=True)),
                ("rematch_blocked_until", models.DateTimeField(blank=True, null=True)),
                (
                    "user_a",
                    models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL),
                ),
                (
                    "user_b",
                    models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "rematch_blocked_until"], name="matching_rel_status_block_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=["user_a", "user_b"], name="matching_relationship_pair_uniq"),
                    models.CheckConstraint(
                        condition=models.Q(user_a__lt=models.F("user_b")),
                        name="matching_relationship_pair_ordered",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="MatchUnlikeRequest",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("attempts_used", models.PositiveSmallIntegerField(default=0)),
                ("pending", models.BooleanField(default=False)),
                ("last_requested_at", models.DateTimeField(blank=True, null=True)),
                ("next_allowed_at", models.DateTimeField(blank=True, null=True)),
                ("auto_unmatch_at", models.DateTimeField(blank=True, null=True)),
                (
                    "match",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="unlike_requests",
                        to="matching.matchrelationship",
                    ),
                ),
                (
                    "requester",
                    models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL),
                ),
                (
                    "responder",
                    models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["pending", "auto_unmatch_at"], name="matching_unlike_timeout_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["match", "requester", "responder"],
                        name="matching_unlike_request_direction_uniq",
                    ),
                ],
            },
        ),
    ]
