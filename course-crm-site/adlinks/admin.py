from django.contrib import admin
from .forms import AdLinkForm
from .models import AdLink, ClickEvent


@admin.register(AdLink)
class AdLinkAdmin(admin.ModelAdmin):
    form = AdLinkForm
    list_display  = ('title', 'slug', 'link_type', 'campaign_name', 'is_active',
                     'total_clicks', 'expiration_date', 'created_at')
    list_filter   = ('is_active', 'link_type', 'require_approval')
    search_fields = ('title', 'slug', 'campaign_name', 'target_url')
    readonly_fields = ('total_clicks', 'unique_clicks', 'created_by', 'created_at', 'updated_at')
    ordering = ('-created_at',)
    actions = ['activate', 'deactivate']

    @admin.action(description="Activate selected links")
    def activate(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} link(s) activated.")

    @admin.action(description="Deactivate selected links")
    def deactivate(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} link(s) deactivated.")

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ClickEvent)
class ClickEventAdmin(admin.ModelAdmin):
    list_display  = ('link', 'timestamp', 'ip', 'country', 'city', 'is_unique')
    list_filter   = ('country', 'is_unique')
    search_fields = ('link__slug', 'ip', 'referrer')
    date_hierarchy = 'timestamp'
    readonly_fields = [f.name for f in ClickEvent._meta.fields]
