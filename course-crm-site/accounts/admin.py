# accounts/admin.py
from django.contrib import admin
from .models import UserProfile


@admin.action(description="Deactivate")
def deactivate(modeladmin, request, queryset):
    queryset.update(is_active=False)


@admin.action(description="Activate")
def activate(modeladmin, request, queryset):
    queryset.update(is_active=True)


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display  = ('id', 'user', 'display_name', 'role', 'is_active', 'last_login_at', 'created_at')
    list_filter   = ('role', 'is_active')
    search_fields = ('user__username', 'user__email', 'user__first_name', 'user__last_name', 'display_name')
    autocomplete_fields = ('user',)
    readonly_fields = ('created_at', 'updated_at', 'last_login_at')
    actions = (activate, deactivate)
