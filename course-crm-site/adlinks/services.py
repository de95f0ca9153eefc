# adlinks/services.py
import logging
import re

from django.db import IntegrityError, transaction

from accounts.session import actor_user, require_permission
from .exceptions import InvalidSlug, SlugTaken
from .models import SLUG_FORMAT_MESSAGE, SLUG_MAX_LENGTH, SLUG_MIN_LENGTH, SLUG_PATTERN, AdLink

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(SLUG_PATTERN)

SLUG_AVAILABLE_MESSAGE = 'Slug disponible'
SLUG_TAKEN_MESSAGE = 'Este slug ya está en uso'

EDITABLE_FIELDS = (
    'title', 'slug', 'description', 'target_url', 'link_type', 'default_role', 'target_course',
    'campaign_name', 'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
    'expiration_date', 'require_approval', 'is_active',
)


def normalize_slug(slug):
    return (slug or '').strip().lower()


def is_valid_slug(slug):
    return (isinstance(slug, str)
            and SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH
            and SLUG_RE.match(slug) is not None)


def get_ad_link_by_slug(slug):
    slug = normalize_slug(slug)
    if not slug:
        return None
    return AdLink.objects.filter(slug=slug).first()


def is_slug_available(slug, exclude_id=None):
    qs = AdLink.objects.filter(slug=slug)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return not qs.exists()


def validate_slug(slug, exclude_id=None):
    """Format check first; availability is only looked up for well-formed slugs."""
    if not is_valid_slug(slug):
        return {'isValid': False, 'isAvailable': False, 'message': SLUG_FORMAT_MESSAGE}
    available = is_slug_available(slug, exclude_id)
    return {
        'isValid': True,
        'isAvailable': available,
        'message': SLUG_AVAILABLE_MESSAGE if available else SLUG_TAKEN_MESSAGE,
    }


def _clean_fields(data):
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if 'slug' in fields:
        fields['slug'] = normalize_slug(fields['slug'])
        if not is_valid_slug(fields['slug']):
            raise InvalidSlug(SLUG_FORMAT_MESSAGE)
    return fields


def create_ad_link(data, actor):
    """``data`` uses model field names; unknown keys are ignored."""
    require_permission(actor, 'ad_links:write')
    fields = _clean_fields(data)
    if 'slug' not in fields:
        raise InvalidSlug(SLUG_FORMAT_MESSAGE)
    if not is_slug_available(fields['slug']):
        raise SlugTaken(fields['slug'])

    try:
        with transaction.atomic():
            link = AdLink.objects.create(created_by=actor_user(actor), **fields)
    except IntegrityError:
        raise SlugTaken(fields['slug'])

    logger.info("Ad link %s created with slug %s", link.pk, link.slug)
    return link


def update_ad_link(link, data, actor):
    require_permission(actor, 'ad_links:write')
    fields = _clean_fields(data)
    if 'slug' in fields and not is_slug_available(fields['slug'], exclude_id=link.pk):
        raise SlugTaken(fields['slug'])

    for name, value in fields.items():
        setattr(link, name, value)
    try:
        with transaction.atomic():
            link.save(update_fields=list(fields) + ['updated_at'])
    except IntegrityError:
        raise SlugTaken(link.slug)
    return link


def set_ad_link_active(link, active, actor):
    """Links are never deleted from the admin, only switched off."""
    require_permission(actor, 'ad_links:write')
    link.is_active = bool(active)
    link.save(update_fields=['is_active', 'updated_at'])
    logger.info("Ad link %s %s", link.pk, 'activated' if link.is_active else 'deactivated')
    return link
