# dashboardapp/views.py
from collections import defaultdict
from datetime import date, timedelta

from django.conf import settings
from django.db.models import Count, Q, Sum
from django.shortcuts import render
from django.utils import timezone

from accounts.permissions import ALL_PERMISSIONS, ROLE_CHOICES, has_permission
from accounts.session import permission_required
from adlinks.models import AdLink, ClickEvent
from leads.models import Lead
from sales.models import Sale
from sales.services import get_active_members


def _range_start(rng, today):
    if rng == 'all':
        return date(1970, 1, 1)
    try:
        days = int(rng)
    except ValueError:
        days = 30
    return today - timedelta(days=days)


def _last_months(today, count=12):
    months = []
    cur = today.replace(day=1)
    for _ in range(count):
        months.append(f'{cur.year}-{cur.month:02d}')
        if cur.month == 1:
            cur = cur.replace(year=cur.year - 1, month=12)
        else:
            cur = cur.replace(month=cur.month - 1)
    months.reverse()
    return months


def _month_key(dt):
    dt = timezone.localtime(dt)
    return f'{dt.year}-{dt.month:02d}'


@permission_required('dashboard:read')
def main(request):
    # ----- range -----
    rng = request.GET.get('range') or '30'
    today = timezone.localdate()
    start = _range_start(rng, today)

    leads_range = Lead.objects.filter(is_deleted=False, created_at__date__gte=start)
    sales_range = Sale.objects.filter(created_at__date__gte=start)
    clicks_range = ClickEvent.objects.filter(timestamp__date__gte=start)

    # ----- KPIs -----
    by_status = dict(leads_range.order_by().values_list('status').annotate(c=Count('id')))
    total_leads = sum(by_status.values())
    converted = by_status.get(Lead.STATUS_SALE, 0)
    money = sales_range.aggregate(total=Sum('total_amount'), paid=Sum('paid_amount'))

    kpis = {
        'leads': total_leads,
        'onboarding': by_status.get(Lead.STATUS_ONBOARDING, 0),
        'sales': sales_range.count(),
        'rejected': by_status.get(Lead.STATUS_REJECTED, 0),
        'conversion': round((converted / total_leads) * 100) if total_leads else 0,
        'sold': money['total'] or 0,
        'collected': money['paid'] or 0,
        'active_members': get_active_members().count(),
        'clicks': clicks_range.count(),
        'active_links': AdLink.objects.filter(is_active=True).count(),
    }

    status_rows = [{'code': code, 'label': label, 'count': by_status.get(code, 0)}
                   for code, label in Lead.STATUS_CHOICES]

    # ----- monthly trend (last 12 months) -----
    months = _last_months(today)
    trend_leads, trend_sales = defaultdict(int), defaultdict(int)
    since = today.replace(day=1) - timedelta(days=365)
    for created in Lead.objects.filter(is_deleted=False, created_at__date__gte=since).values_list('created_at', flat=True):
        trend_leads[_month_key(created)] += 1
    for created in Sale.objects.filter(created_at__date__gte=since).values_list('created_at', flat=True):
        trend_sales[_month_key(created)] += 1

    trend = {
        'labels': months,
        'leads': [trend_leads.get(m, 0) for m in months],
        'sales': [trend_sales.get(m, 0) for m in months],
    }

    dash = {
        'kpis': kpis,
        'by_status': status_rows,
        'trend': trend,
        'recent': Lead.objects.filter(is_deleted=False).select_related('assigned_to')[:10],
        'top_links': AdLink.objects.filter(is_active=True).order_by('-total_clicks')[:5],
    }
    return render(request, 'dashboard/main.html', {'dash': dash, 'range': rng})


@permission_required('stats:read')
def stats(request):
    rng = request.GET.get('range') or '30'
    today = timezone.localdate()
    start = _range_start(rng, today)
    leads = Lead.objects.filter(is_deleted=False, created_at__date__gte=start)

    def breakdown(field):
        return list(leads.values(field).annotate(c=Count('id')).order_by('-c', field))

    clicks = ClickEvent.objects.filter(timestamp__date__gte=start)
    per_link = (AdLink.objects
                .annotate(range_clicks=Count('clicks', filter=Q(clicks__timestamp__date__gte=start)))
                .filter(range_clicks__gt=0)
                .order_by('-range_clicks')[:20])

    return render(request, 'dashboard/stats.html', {
        'range': rng,
        'by_country': breakdown('country_code'),
        'by_role': breakdown('role'),
        'by_level': breakdown('level'),
        'by_software': breakdown('software'),
        'by_investment': breakdown('investment'),
        'clicks_total': clicks.count(),
        'clicks_by_country': list(clicks.values('country').annotate(c=Count('id')).order_by('-c')[:10]),
        'per_link': per_link,
    })


@permission_required('settings:read')
def settings_view(request):
    """Read-only: deployment values and the role/permission matrix."""
    matrix = [{
        'permission': perm,
        'roles': [has_permission(code, perm) for code, _ in ROLE_CHOICES],
    } for perm in ALL_PERMISSIONS]
    return render(request, 'dashboard/settings.html', {
        'site_base_url': settings.SITE_BASE_URL,
        'client_redirect_delay_ms': settings.CLIENT_REDIRECT_DELAY_MS,
        'webhook_configured': bool(settings.HALL_OF_FAME_WEBHOOK_SECRET),
        'roles': ROLE_CHOICES,
        'matrix': matrix,
    })
