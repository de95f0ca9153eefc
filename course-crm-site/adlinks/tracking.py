# adlinks/tracking.py
"""
Click attribution. Recording is best effort: a failed write is logged and the
visitor is still redirected.
"""
import logging
import uuid
from collections import Counter
from urllib.parse import urlsplit

from django.db import transaction
from django.db.models import Count, F
from django.db.models.functions import TruncDate

from .models import AdLink, ClickEvent

logger = logging.getLogger(__name__)

FALLBACK_IP = '127.0.0.1'
LOCAL_LOCATION = ('Development', 'Local', 'Localhost')


def get_client_ip(meta):
    forwarded = (meta.get('HTTP_X_FORWARDED_FOR') or '').strip()
    if forwarded:
        return forwarded.split(',')[0].strip()
    for header in ('HTTP_X_REAL_IP', 'HTTP_X_CLIENT_IP'):
        value = (meta.get(header) or '').strip()
        if value:
            return value
    return FALLBACK_IP


def get_location(meta):
    """(country, region, city) from headers injected by the edge proxy."""
    country = (meta.get('HTTP_X_VERCEL_IP_COUNTRY') or meta.get('HTTP_CF_IPCOUNTRY') or '').strip()
    if not country:
        return LOCAL_LOCATION
    region = (meta.get('HTTP_X_VERCEL_IP_COUNTRY_REGION') or '').strip()
    city = (meta.get('HTTP_X_VERCEL_IP_CITY') or '').strip()
    return country, region, city


def generate_session_id():
    return uuid.uuid4().hex


def record_click(link, meta, utm_params):
    """
    Persist one ClickEvent for ``link`` and bump its counters.
    Returns the event, or None when the write failed.
    """
    try:
        country, region, city = get_location(meta)
        with transaction.atomic():
            event = ClickEvent.objects.create(
                link=link,
                ip=get_client_ip(meta)[:64],
                user_agent=meta.get('HTTP_USER_AGENT', ''),
                referrer=meta.get('HTTP_REFERER', ''),
                country=country[:100],
                region=region[:100],
                city=city[:100],
                utm_params=dict(utm_params),
                session_id=generate_session_id(),
                # no dedup yet: every click counts as unique
                is_unique=True,
            )
            AdLink.objects.filter(pk=link.pk).update(
                total_clicks=F('total_clicks') + 1,
                unique_clicks=F('unique_clicks') + 1,
            )
    except Exception:
        logger.exception("Could not record click for ad link %s", getattr(link, 'pk', None))
        return None

    logger.info("Click %s recorded for ad link %s", event.pk, link.slug)
    return event


# ---- analytics ----

def classify_device(user_agent):
    ua = (user_agent or '').lower()
    if not ua:
        return 'Unknown'
    if any(k in ua for k in ('bot', 'crawler', 'spider')):
        return 'Bot'
    if 'ipad' in ua or 'tablet' in ua:
        return 'Tablet'
    if any(k in ua for k in ('mobi', 'iphone', 'android')):
        return 'Mobile'
    return 'Desktop'


def referrer_domain(referrer):
    if not referrer:
        return 'Direct'
    if referrer.startswith('http'):
        return urlsplit(referrer).hostname or referrer
    return referrer


def get_link_analytics(link):
    clicks = ClickEvent.objects.filter(link=link)

    by_day = (clicks.annotate(day=TruncDate('timestamp'))
                    .values('day').annotate(c=Count('id')).order_by('day'))
    by_country = (clicks.values('country').annotate(c=Count('id')).order_by('-c', 'country')[:10])

    referrers, devices, sources = Counter(), Counter(), Counter()
    for referrer, user_agent, utm in clicks.values_list('referrer', 'user_agent', 'utm_params'):
        referrers[referrer_domain(referrer)] += 1
        devices[classify_device(user_agent)] += 1
        sources[(utm or {}).get('source') or 'Unknown'] += 1

    return {
        'totalClicks': clicks.count(),
        'uniqueClicks': clicks.filter(is_unique=True).count(),
        'clicksByDay': [{'date': r['day'].isoformat(), 'clicks': r['c']} for r in by_day],
        'clicksByCountry': [{'country': r['country'] or 'Unknown', 'clicks': r['c']} for r in by_country],
        'clicksByReferrer': [{'referrer': k, 'clicks': v} for k, v in referrers.most_common(10)],
        'clicksByDevice': [{'device': k, 'clicks': v} for k, v in devices.most_common()],
        'topUtmSources': [{'source': k, 'clicks': v} for k, v in sources.most_common(5)],
    }
