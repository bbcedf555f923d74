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
            name="Follow",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "followee",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE, related_name="followers", to=settings.AUTH_USER_MODEL
                    ),
                ),
                (
                    "follower",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE, related_name="following", to=settings.AUTH_USER_MODEL
                    ),
                ),
            ],
            options={
                "unique_together": {("follower", "followee")},
            },
        ),
    ]
