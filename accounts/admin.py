from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "get_role", "is_staff", "is_superuser")
    search_fields = ("username", "email")
    list_filter = ("role", "is_staff", "is_superuser", "is_active")

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Custom fields", {"fields": ("role",)}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Custom fields", {"fields": ("role",)}),
    )

    def get_role(self, obj):
        return obj.get_role_display() if obj.role else "N/A"
    get_role.short_description = "Role"
