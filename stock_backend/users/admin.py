# users/admin.py

"""
Staff accounts. Role drives capabilities (permissions/roles.py); Django
groups and per-user permissions only matter for the admin site itself.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from permissions.roles import is_approver
from users.models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("email",)
    list_display = ("email", "display_name", "role", "approver", "is_active")
    list_filter = ("role", "is_active", "is_staff")
    search_fields = ("email", "username", "first_name", "last_name")
    readonly_fields = ("created_at", "updated_at", "last_login")

    fieldsets = (
        ("Login", {"fields": ("email", "username", "password")}),
        ("Staff", {"fields": ("first_name", "last_name", "role")}),
        ("Admin site", {"fields": ("is_active", "is_staff", "is_superuser", "groups")}),
        ("Audit", {"fields": ("last_login", "created_at", "updated_at")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "role", "password1", "password2"),
            },
        ),
    )

    @admin.display(boolean=True, description="Approver")
    def approver(self, obj):
        return is_approver(obj)
