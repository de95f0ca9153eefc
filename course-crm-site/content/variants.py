# content/variants.py
"""
One class per content kind. Each knows how to render its value on the public
site and which form field edits it in the admin.
"""
import re
from urllib.parse import parse_qs, urlsplit

from django import forms
from django.utils.html import format_html, linebreaks
from django.utils.safestring import mark_safe

from .models import ContentItem

YOUTUBE_HOSTS = {'youtube.com', 'www.youtube.com', 'm.youtube.com'}
YOUTUBE_ID_RE = re.compile(r'^[A-Za-z0-9_-]{6,20}$')


class ContentVariant:
    kind = None

    def __init__(self, item):
        self.item = item

    @property
    def value(self):
        return self.item.value

    def render(self):
        raise NotImplementedError

    def form_field(self):
        return forms.CharField(label=self.item.label or self.item.key, required=False,
                               initial=self.value)


class TextContent(ContentVariant):
    kind = ContentItem.KIND_TEXT

    def render(self):
        if '\n' in self.value:
            return mark_safe(linebreaks(self.value, autoescape=True))
        return format_html('{}', self.value)

    def form_field(self):
        long_text = len(self.value) > 80 or '\n' in self.value
        widget = forms.Textarea(attrs={'rows': 4}) if long_text else forms.TextInput()
        return forms.CharField(label=self.item.label or self.item.key, required=False,
                               initial=self.value, widget=widget)


class ImageContent(ContentVariant):
    kind = ContentItem.KIND_IMAGE

    def render(self):
        if not self.value:
            return ''
        return format_html('<img src="{}" alt="{}" loading="lazy">',
                           self.value, self.item.label or self.item.key)

    def form_field(self):
        return forms.URLField(label=self.item.label or self.item.key, required=False,
                              initial=self.value, assume_scheme='https')


def youtube_id(url):
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    if host == 'youtu.be':
        vid = parts.path.lstrip('/')
    elif host in YOUTUBE_HOSTS:
        if parts.path.startswith('/embed/'):
            vid = parts.path[len('/embed/'):]
        else:
            vid = (parse_qs(parts.query).get('v') or [''])[0]
    else:
        return None
    return vid if YOUTUBE_ID_RE.match(vid) else None


class VideoContent(ContentVariant):
    kind = ContentItem.KIND_VIDEO

    def render(self):
        if not self.value:
            return ''
        vid = youtube_id(self.value)
        if vid:
            return format_html(
                '<iframe src="https://www.youtube.com/embed/{}" title="{}" '
                'allow="accelerometer; encrypted-media; picture-in-picture" allowfullscreen></iframe>',
                vid, self.item.label or self.item.key)
        return format_html('<video src="{}" controls preload="metadata"></video>', self.value)

    def form_field(self):
        return forms.URLField(label=self.item.label or self.item.key, required=False,
                              initial=self.value, assume_scheme='https')


VARIANTS = {cls.kind: cls for cls in (TextContent, ImageContent, VideoContent)}


def variant_for(item):
    """Unknown kinds fall back to plain text."""
    return VARIANTS.get(item.kind, TextContent)(item)
