from __future__ import annotations

from django.contrib import admin

from apps.users.models import Block, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "handle", "email", "name", "is_active", "created_at")
    search_fields = ("email", "handle", "name")
    readonly_fields = ("created_at", "updated_at", "last_login")
    exclude = ("password",)


@admin.register(Block)
class BlockAdmin(admin.ModelAdmin):
    list_display = ("user_id", "target_id", "created_at")
    search_fields = ("user__handle", "target__handle")
