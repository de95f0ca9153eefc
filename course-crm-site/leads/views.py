# leads/views.py
import csv
import logging

from django.contrib import messages
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_POST

from accounts.session import permission_required
from sales.exceptions import SaleError
from .exceptions import LeadError
from .forms import LeadIntakeForm, LeadNotesForm
from .models import Lead
from .transitions import allowed_next_statuses, archive_lead, restore_lead, transition_lead

logger = logging.getLogger(__name__)


# ---------------------- public intake ----------------------
def intake(request):
    if request.method == 'POST':
        form = LeadIntakeForm(request.POST)
        if form.is_valid():
            lead = form.save()
            logger.info("New lead %s from intake form", lead.pk)
            return redirect('join_thanks')
    else:
        form = LeadIntakeForm()
    return render(request, 'leads/join.html', {'form': form})


def thanks(request):
    return render(request, 'leads/thanks.html')


# ---------------------- admin: list ----------------------
def filter_leads(params):
    status = (params.get('status') or '').strip().lower()
    q      = (params.get('q') or '').strip()
    show   = (params.get('show') or 'active').strip().lower()

    qs = Lead.objects.select_related('assigned_to', 'sale').order_by('-created_at', '-id')

    if show == 'deleted':
        qs = qs.filter(is_deleted=True)
    elif show != 'all':
        qs = qs.filter(is_deleted=False)

    if status in dict(Lead.STATUS_CHOICES):
        qs = qs.filter(status=status)

    if q:
        qs = qs.filter(
            Q(name__icontains=q) |
            Q(email__icontains=q) |
            Q(phone__icontains=q) |
            Q(notes__icontains=q)
        )
    return qs, {'status': status, 'q': q, 'show': show}


@permission_required('leads:read')
def leads_list(request):
    qs, filters = filter_leads(request.GET)

    if request.GET.get('export') == 'csv':
        resp = HttpResponse(content_type='text/csv; charset=utf-8')
        resp['Content-Disposition'] = 'attachment; filename="leads.csv"'
        w = csv.writer(resp)
        w.writerow(['#', 'Name', 'Email', 'Phone', 'Role', 'Level', 'Software', 'Clients',
                    'Investment', 'Status', 'Assigned to', 'Created'])
        for i, lead in enumerate(qs, start=1):
            w.writerow([
                i, lead.name, lead.email, lead.full_phone, lead.role, lead.level,
                lead.software, lead.clients, lead.investment, lead.get_status_display(),
                lead.assigned_to.get_username() if lead.assigned_to_id else '',
                f"{lead.created_at:%Y-%m-%d %H:%M}",
            ])
        return resp

    counts = {code: Lead.objects.filter(status=code, is_deleted=False).count()
              for code, _ in Lead.STATUS_CHOICES}
    return render(request, 'leads/leads.html', dict(filters, leads=qs[:500], counts=counts,
                                                    status_choices=Lead.STATUS_CHOICES))


# ---------------------- admin: detail ----------------------
@permission_required('leads:read')
def lead_detail(request, pk):
    lead = get_object_or_404(Lead.objects.select_related('assigned_to'), pk=pk)

    if request.method == 'POST':
        if not request.admin_session.has('leads:write'):
            return redirect('accounts:unauthorized')
        form = LeadNotesForm(request.POST, instance=lead)
        if form.is_valid():
            form.save()
            messages.success(request, 'Lead updated.')
            return redirect('leads:detail', pk=lead.pk)
        messages.error(request, 'Could not save the lead.')
    else:
        form = LeadNotesForm(instance=lead)

    return render(request, 'leads/lead_detail.html', {
        'lead': lead,
        'form': form,
        'history': lead.status_history.select_related('performed_by'),
        'sale': lead.get_sale(),
        'next_statuses': allowed_next_statuses(lead),
        'can_write': request.admin_session.has('leads:write'),
        'can_delete': request.admin_session.has('leads:delete'),
    })


def _sale_data_from_post(data):
    """Sale fields posted together with a move into ``sale``."""
    if not data.get('payment_plan') and not data.get('total_amount'):
        return None
    sale_data = {
        'payment_plan': data.get('payment_plan') or '1_pago',
        'product': data.get('product') or 'acceso_curso',
    }
    if data.get('total_amount'):
        sale_data['total_amount'] = data.get('total_amount')
    if data.get('paid_amount'):
        sale_data['payment_proofs'] = [{
            'amount': data.get('paid_amount'),
            'image_url': (data.get('proof_url') or '').strip(),
            'description': (data.get('proof_description') or '').strip(),
        }]
    return sale_data


@permission_required('leads:write')
@require_POST
def lead_transition(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    new_status = (request.POST.get('status') or '').strip().lower()
    details    = (request.POST.get('details') or '').strip()

    try:
        transition_lead(lead, new_status, request.admin_session, details=details,
                        sale_data=_sale_data_from_post(request.POST))
    except (LeadError, SaleError) as exc:
        logger.warning("Lead %s transition to %s failed: %s", lead.pk, new_status, exc)
        messages.error(request, str(exc))
    else:
        messages.success(request, f'Lead moved to {new_status}.')
    return redirect('leads:detail', pk=lead.pk)


@permission_required('leads:delete')
@require_POST
def lead_archive(request, pk):
    lead = get_object_or_404(Lead, pk=pk)
    if request.POST.get('restore'):
        restore_lead(lead, request.admin_session)
        messages.success(request, 'Lead restored.')
    else:
        archive_lead(lead, request.admin_session)
        messages.success(request, 'Lead archived.')
    return redirect('leads:list')
