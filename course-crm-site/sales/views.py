# sales/views.py
import csv
import logging
from datetime import datetime

from django.contrib import messages
from django.core.exceptions import PermissionDenied
from django.db.models import Q, Sum
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_POST

from accounts.session import permission_required
from .exceptions import SaleError
from .models import PAYMENT_PLANS, Sale
from .services import (
    EDITABLE_SALE_FIELDS, get_active_members, get_remaining_days, grant_access, grant_exemption,
    has_minimum_payment, is_access_active, record_payment, revoke_access, update_access, update_sale,
)

logger = logging.getLogger(__name__)


# ---- list + export ----
@permission_required('sales:read')
def sales_list(request):
    q       = (request.GET.get('q') or '').strip()
    product = (request.GET.get('product') or '').strip()
    access  = (request.GET.get('access') or '').strip().lower()   # granted | pending

    qs = Sale.objects.select_related('lead', 'sale_user').order_by('-created_at', '-id')

    if product in dict(Sale.PRODUCT_CHOICES):
        qs = qs.filter(product=product)
    if access == 'granted':
        qs = qs.filter(access_granted=True)
    elif access == 'pending':
        qs = qs.filter(access_granted=False)

    if q:
        qs = qs.filter(
            Q(lead__name__icontains=q) |
            Q(lead__email__icontains=q) |
            Q(lead__phone__icontains=q)
        )

    if request.GET.get('export') == 'csv':
        resp = HttpResponse(content_type='text/csv; charset=utf-8')
        resp['Content-Disposition'] = 'attachment; filename="sales.csv"'
        w = csv.writer(resp)
        w.writerow(['#', 'Lead', 'Email', 'Product', 'Plan', 'Total', 'Paid', 'Access', 'Access ends', 'Created'])
        for i, s in enumerate(qs, start=1):
            w.writerow([
                i, s.lead.name, s.lead.email, s.get_product_display(), s.get_payment_plan_display(),
                s.total_amount, s.paid_amount, 'Yes' if s.access_granted else 'No',
                f"{s.access_end_date:%Y-%m-%d}" if s.access_end_date else '',
                f"{s.created_at:%Y-%m-%d %H:%M}",
            ])
        return resp

    totals = qs.aggregate(total=Sum('total_amount'), paid=Sum('paid_amount'))
    return render(request, 'sales/sales.html', {
        'sales': qs,
        'q': q,
        'product': product,
        'access': access,
        'product_choices': Sale.PRODUCT_CHOICES,
        'totals': totals,
    })


# ---- detail ----
@permission_required('sales:read')
def sale_detail(request, pk):
    sale = get_object_or_404(Sale.objects.select_related('lead', 'sale_user', 'exemption_granted_by'), pk=pk)
    now = timezone.now()
    return render(request, 'sales/sale_detail.html', {
        'sale': sale,
        'proofs': sale.payment_proofs.select_related('uploaded_by'),
        'history': sale.status_history.select_related('performed_by'),
        'has_minimum_payment': has_minimum_payment(sale),
        'access_active': is_access_active(sale, now),
        'remaining_days': get_remaining_days(sale, now),
        'plans': PAYMENT_PLANS,
        'product_choices': Sale.PRODUCT_CHOICES,
        'plan_choices': Sale.PLAN_CHOICES,
    })


def _parse_start(value):
    """yyyy-mm-dd from the form, as an aware datetime at local midnight."""
    value = (value or '').strip()
    if not value:
        return None
    day = datetime.strptime(value, '%Y-%m-%d')
    return timezone.make_aware(day, timezone.get_current_timezone())


def _run(request, pk, action, success):
    sale = get_object_or_404(Sale, pk=pk)
    try:
        action(sale)
    except (SaleError, ValueError) as exc:
        logger.warning("Sale %s action failed: %s", sale.pk, exc)
        messages.error(request, str(exc))
    except PermissionDenied:
        messages.error(request, 'You do not have permission for this action.')
    else:
        messages.success(request, success)
    return redirect('sales:detail', pk=pk)


@permission_required('sales:write')
@require_POST
def sale_edit(request, pk):
    fields = {name: request.POST[name].strip() for name in EDITABLE_SALE_FIELDS
              if (request.POST.get(name) or '').strip()}
    return _run(request, pk, lambda s: update_sale(s, request.admin_session, **fields), 'Sale updated.')


@permission_required('sales:write')
@require_POST
def add_payment(request, pk):
    data = request.POST
    return _run(request, pk, lambda s: record_payment(
        s, data.get('amount'), request.admin_session,
        image_url=(data.get('image_url') or '').strip(),
        description=(data.get('description') or '').strip(),
    ), 'Payment recorded.')


@permission_required('sales:write')
@require_POST
def access_grant(request, pk):
    return _run(request, pk, lambda s: grant_access(
        s, request.admin_session, start=_parse_start(request.POST.get('start_date')),
    ), 'Course access granted.')


@permission_required('sales:write')
@require_POST
def access_update(request, pk):
    def action(sale):
        start = _parse_start(request.POST.get('start_date'))
        if start is None:
            raise ValueError('Start date is required.')
        update_access(sale, start, request.admin_session)
    return _run(request, pk, action, 'Access period updated.')


@permission_required('sales:write')
@require_POST
def access_revoke(request, pk):
    return _run(request, pk, lambda s: revoke_access(
        s, request.admin_session, reason=(request.POST.get('reason') or '').strip(),
    ), 'Course access revoked.')


@permission_required('sales:write')
@require_POST
def exemption_grant(request, pk):
    def action(sale):
        reason = (request.POST.get('reason') or '').strip()
        if not reason:
            raise ValueError('A reason is required for an exemption.')
        grant_exemption(sale, reason, request.admin_session)
    return _run(request, pk, action, 'Payment exemption granted.')


# ---- active members ----
@permission_required('active_members:read')
def active_members(request):
    now = timezone.now()
    rows = [{
        'sale': s,
        'access_active': is_access_active(s, now),
        'remaining_days': get_remaining_days(s, now),
    } for s in get_active_members()]

    if request.GET.get('export') == 'csv':
        resp = HttpResponse(content_type='text/csv; charset=utf-8')
        resp['Content-Disposition'] = 'attachment; filename="active_members.csv"'
        w = csv.writer(resp)
        w.writerow(['#', 'Name', 'Email', 'Phone', 'Paid', 'Total', 'Access', 'Days left'])
        for i, r in enumerate(rows, start=1):
            s = r['sale']
            w.writerow([i, s.lead.name, s.lead.email, s.lead.full_phone, s.paid_amount,
                        s.total_amount, 'Active' if r['access_active'] else 'Inactive',
                        r['remaining_days']])
        return resp

    return render(request, 'sales/active_members.html', {'rows': rows})
