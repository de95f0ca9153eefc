# adlinks/views.py
import csv
import logging

from django.conf import settings
from django.contrib import messages
from django.db.models import Q, Sum
from django.http import HttpResponse, HttpResponseRedirect
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_POST

from accounts.session import permission_required
from .exceptions import AdLinkError
from .forms import AdLinkForm
from .models import AdLink
from .resolver import MODE_CLIENT, resolve_redirect
from .services import create_ad_link, set_ad_link_active, update_ad_link
from .tracking import get_link_analytics

logger = logging.getLogger(__name__)


# ---------------------- public redirect ----------------------
def go_redirect(request, slug=''):
    """Never fails for the visitor: anything unexpected ends on the home page."""
    try:
        decision = resolve_redirect(slug, request.GET, request.META)
        if decision.mode == MODE_CLIENT:
            return render(request, 'adlinks/client_redirect.html', {
                'url': decision.url,
                'delay_ms': settings.CLIENT_REDIRECT_DELAY_MS,
                'link': decision.link,
            })
        return HttpResponseRedirect(decision.url)
    except Exception:
        logger.exception("Redirect for slug %r failed, sending to /", slug)
        return HttpResponseRedirect('/')


# ---------------------- admin ----------------------
@permission_required('ad_links:read')
def links_list(request):
    q    = (request.GET.get('q') or '').strip()
    show = (request.GET.get('show') or 'all').strip().lower()   # all | active | inactive

    qs = AdLink.objects.select_related('created_by').order_by('-created_at', '-id')
    if show == 'active':
        qs = qs.filter(is_active=True)
    elif show == 'inactive':
        qs = qs.filter(is_active=False)
    if q:
        qs = qs.filter(
            Q(title__icontains=q) |
            Q(slug__icontains=q) |
            Q(campaign_name__icontains=q) |
            Q(target_url__icontains=q)
        )

    if request.GET.get('export') == 'csv':
        resp = HttpResponse(content_type='text/csv; charset=utf-8')
        resp['Content-Disposition'] = 'attachment; filename="ad_links.csv"'
        w = csv.writer(resp)
        w.writerow(['#', 'Title', 'Slug', 'Target', 'Type', 'Campaign', 'Active', 'Clicks', 'Expires'])
        for i, link in enumerate(qs, start=1):
            w.writerow([
                i, link.title, link.slug, link.target_url, link.get_link_type_display(),
                link.campaign_name, 'Yes' if link.is_active else 'No', link.total_clicks,
                f"{link.expiration_date:%Y-%m-%d %H:%M}" if link.expiration_date else '',
            ])
        return resp

    all_links = AdLink.objects.all()
    stats = {
        'total_links': all_links.count(),
        'active_links': all_links.filter(is_active=True).count(),
        'total_clicks': all_links.aggregate(c=Sum('total_clicks'))['c'] or 0,
        'unique_clicks': all_links.aggregate(c=Sum('unique_clicks'))['c'] or 0,
    }
    return render(request, 'adlinks/links.html', {
        'links': qs,
        'q': q,
        'show': show,
        'stats': stats,
        'top_links': all_links.order_by('-total_clicks')[:5],
        'base_url': settings.SITE_BASE_URL,
    })


@permission_required('ad_links:write')
def link_create(request):
    if request.method == 'POST':
        form = AdLinkForm(request.POST)
        if form.is_valid():
            try:
                link = create_ad_link(form.cleaned_data, request.admin_session)
            except AdLinkError as exc:
                form.add_error('slug', str(exc))
            else:
                messages.success(request, f'Link /go/{link.slug} created.')
                return redirect('adlinks:list')
    else:
        form = AdLinkForm(initial={'is_active': True, 'link_type': 'landing_page'})
    return render(request, 'adlinks/link_form.html', {'form': form, 'link': None})


@permission_required('ad_links:write')
def link_edit(request, pk):
    link = get_object_or_404(AdLink, pk=pk)
    if request.method == 'POST':
        form = AdLinkForm(request.POST, instance=AdLink.objects.get(pk=pk))
        if form.is_valid():
            try:
                update_ad_link(link, form.cleaned_data, request.admin_session)
            except AdLinkError as exc:
                form.add_error('slug', str(exc))
            else:
                messages.success(request, 'Link updated.')
                return redirect('adlinks:list')
    else:
        form = AdLinkForm(instance=link)
    return render(request, 'adlinks/link_form.html', {'form': form, 'link': link})


@permission_required('ad_links:write')
@require_POST
def link_toggle(request, pk):
    link = get_object_or_404(AdLink, pk=pk)
    set_ad_link_active(link, not link.is_active, request.admin_session)
    messages.success(request, f'Link {"activated" if link.is_active else "deactivated"}.')
    return redirect('adlinks:list')


@permission_required('ad_links_analytics:read')
def link_analytics(request, pk):
    link = get_object_or_404(AdLink, pk=pk)
    return render(request, 'adlinks/analytics.html', {
        'link': link,
        'analytics': get_link_analytics(link),
        'recent_clicks': link.clicks.all()[:20],
    })
