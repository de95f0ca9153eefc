# leads/admin.py
from django.contrib import admin
from django.utils import timezone
from .models import Lead, LeadStatusHistory


@admin.action(description="Archive")
def soft_delete(modeladmin, request, queryset):
    queryset.update(is_deleted=True, deleted_at=timezone.now(), deleted_by=request.user)


@admin.action(description="Restore")
def restore(modeladmin, request, queryset):
    queryset.update(is_deleted=False, deleted_at=None, deleted_by=None)


class LeadStatusHistoryInline(admin.TabularInline):
    model = LeadStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ('previous_status', 'new_status', 'details', 'performed_by', 'performed_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display  = ('id', 'name', 'email', 'phone', 'status', 'assigned_to', 'is_deleted', 'created_at')
    list_filter   = ('status', 'is_deleted', 'created_at')
    search_fields = ('name', 'email', 'phone', 'notes')
    # status only moves through leads.transitions
    readonly_fields = ('status', 'created_at', 'updated_at')
    inlines = (LeadStatusHistoryInline,)
    actions = (soft_delete, restore)
