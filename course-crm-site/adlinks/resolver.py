# adlinks/resolver.py
"""
/go/<slug> resolution.

Checks run in order and stop at the first failure, which sends the visitor to
the site root without recording anything:

    1. empty slug
    2. unknown slug
    3. inactive link
    4. expired link

An eligible link gets its UTM set merged, one click recorded (before the
redirect is returned), and the final target built. Targets on another origin
are handed to a client-side redirect page; relative and same-origin targets
use a plain 302.
"""
import logging
from collections import namedtuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from django.conf import settings
from django.utils import timezone

from .models import UTM_FIELDS
from .services import get_ad_link_by_slug
from .tracking import record_click

logger = logging.getLogger(__name__)

MODE_SERVER = 'server'
MODE_CLIENT = 'client'

RedirectDecision = namedtuple('RedirectDecision', 'url mode link click_recorded')

SITE_ROOT = RedirectDecision('/', MODE_SERVER, None, False)

DEFAULT_PORTS = {'http': 80, 'https': 443}


def merge_utm_params(query, link):
    """
    source/medium/campaign/term/content: incoming ``utm_*`` value first, then
    the link's stored default; keys with neither are left out.
    """
    utm = {}
    for name in UTM_FIELDS:
        value = query.get(f'utm_{name}') or getattr(link, f'utm_{name}', '') or ''
        if value:
            utm[name] = value
    return utm


def _set_param(params, key, values):
    """Put ``values`` where the first ``key`` was and drop the rest, or append them."""
    new = [(key, value) for value in values]
    out, seen = [], False
    for k, v in params:
        if k != key:
            out.append((k, v))
        elif not seen:
            out.extend(new)
            seen = True
    if not seen:
        out.extend(new)
    return out


def build_target_url(target_url, utm, query):
    """
    Append the resolved UTM set and every non-``utm_`` incoming param to
    ``target_url``, keeping its own query. Targets that are neither absolute
    nor site paths come back untouched.
    """
    try:
        parts = urlsplit(target_url)
    except ValueError:
        logger.warning("Unparseable target URL %r, redirecting without params", target_url)
        return target_url
    if not (parts.scheme and parts.netloc) and not target_url.startswith('/'):
        logger.warning("Unparseable target URL %r, redirecting without params", target_url)
        return target_url

    params = parse_qsl(parts.query, keep_blank_values=True)
    for name, value in utm.items():
        params = _set_param(params, f'utm_{name}', [value])
    for key in query:
        if not key.startswith('utm_'):
            # repeated keys (?tag=a&tag=b) keep every value
            values = query.getlist(key) if hasattr(query, 'getlist') else [query.get(key)]
            params = _set_param(params, key, values)

    path = parts.path or ('/' if parts.netloc else '')
    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(params), parts.fragment))


def _origin(url):
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    return scheme, (parts.hostname or '').lower(), port or DEFAULT_PORTS.get(scheme)


def choose_redirect_mode(final_url, base_url):
    try:
        parts = urlsplit(final_url)
    except ValueError:
        return MODE_SERVER
    if not parts.scheme and not parts.netloc:
        return MODE_SERVER
    if not parts.scheme:
        # protocol-relative, inherits the site scheme
        final_url = f"{urlsplit(base_url).scheme}:{final_url}"
    return MODE_SERVER if _origin(final_url) == _origin(base_url) else MODE_CLIENT


def resolve_redirect(slug, query, request_meta, now=None, base_url=None):
    """
    ``query`` is a mapping of incoming query params (a QueryDict works),
    ``request_meta`` is ``request.META``.
    """
    slug = (slug or '').strip()
    if not slug:
        logger.info("Redirect without slug, sending to /")
        return SITE_ROOT

    link = get_ad_link_by_slug(slug)
    if link is None:
        logger.info("Unknown ad link slug %r, sending to /", slug)
        return SITE_ROOT
    if not link.is_active:
        logger.info("Ad link %s is inactive, sending to /", link.slug)
        return SITE_ROOT
    now = now or timezone.now()
    if link.is_expired(now):
        logger.info("Ad link %s expired at %s, sending to /", link.slug, link.expiration_date)
        return SITE_ROOT

    utm = merge_utm_params(query, link)
    event = record_click(link, request_meta, utm)
    url = build_target_url(link.target_url, utm, query)
    mode = choose_redirect_mode(url, base_url or settings.SITE_BASE_URL)
    logger.info("Ad link %s -> %s (%s redirect)", link.slug, url, mode)
    return RedirectDecision(url, mode, link, event is not None)
