# content/templatetags/content_tags.py
from django import template

from ..services import get_content, render_content

register = template.Library()


@register.simple_tag
def content(section, key, default=''):
    """{% content "hero" "title" %} renders the item through its kind."""
    return render_content(section, key, default)


@register.simple_tag
def content_value(section, key, default=''):
    return get_content(section, key, default)
