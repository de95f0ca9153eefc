# content/services.py
import logging

from django.db.models import Count

from accounts.session import actor_user, require_permission
from .models import ContentItem
from .variants import variant_for

logger = logging.getLogger(__name__)


def get_item(section, key):
    return ContentItem.objects.filter(section=section, key=key).first()


def get_content(section, key, default=''):
    """Raw stored value, or ``default`` when the item does not exist."""
    item = get_item(section, key)
    return item.value if item is not None else default


def get_section(section):
    """{key: value} for every item of a section, in display order."""
    return {item.key: item.value for item in ContentItem.objects.filter(section=section)}


def render_content(section, key, default=''):
    item = get_item(section, key)
    if item is None:
        return default
    return variant_for(item).render()


def list_sections():
    return (ContentItem.objects.values('section')
            .annotate(items=Count('id')).order_by('section'))


def update_content(item, value, actor):
    require_permission(actor, 'content:write')
    if item.value == value:
        return item
    item.value = value
    item.updated_by = actor_user(actor)
    item.save(update_fields=['value', 'updated_by', 'updated_at'])
    logger.info("Content %s updated", item)
    return item
