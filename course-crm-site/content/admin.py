from django.contrib import admin
from .models import ContentItem


@admin.register(ContentItem)
class ContentItemAdmin(admin.ModelAdmin):
    list_display  = ('section', 'key', 'kind', 'label', 'position', 'updated_at')
    list_filter   = ('section', 'kind')
    search_fields = ('section', 'key', 'label', 'value')
    ordering = ('section', 'position', 'key')
