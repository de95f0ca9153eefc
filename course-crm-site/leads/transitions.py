# leads/transitions.py
"""
Lead status machine.

    lead -> onboarding -> sale
    lead -> rejected
    onboarding -> rejected

``sale`` and ``rejected`` are terminal, and a lead cannot jump from ``lead``
straight to ``sale``: it has to go through onboarding first.
"""
import logging

from django.db import transaction
from django.utils import timezone

from accounts.session import actor_user, require_permission
from sales.services import create_sale, get_sale_by_lead_id
from .exceptions import InvalidTransition, SaleRequired
from .models import Lead, LeadStatusHistory

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    Lead.STATUS_LEAD: frozenset({Lead.STATUS_ONBOARDING, Lead.STATUS_REJECTED}),
    Lead.STATUS_ONBOARDING: frozenset({Lead.STATUS_SALE, Lead.STATUS_REJECTED}),
    Lead.STATUS_SALE: frozenset(),
    Lead.STATUS_REJECTED: frozenset(),
}


def can_transition(current, new):
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def allowed_next_statuses(lead):
    order = [code for code, _ in Lead.STATUS_CHOICES]
    return [s for s in order if can_transition(lead.status, s)]


def _default_details(previous, new):
    labels = dict(Lead.STATUS_CHOICES)
    return f"Status changed from {labels.get(previous, previous)} to {labels.get(new, new)}"


def transition_lead(lead, new_status, actor, details='', sale_data=None, now=None):
    """
    Move ``lead`` to ``new_status`` and append the matching history row.

    Entering ``sale`` needs either an existing Sale for the lead or
    ``sale_data`` (kwargs for sales.services.create_sale); the sale is created in
    the same transaction, with the same actor and timestamp as the lead entry.
    Returns the new LeadStatusHistory row.
    """
    require_permission(actor, 'leads:write')
    user = actor_user(actor)
    now = now or timezone.now()

    with transaction.atomic():
        lead = Lead.objects.select_for_update().get(pk=lead.pk)
        previous = lead.status
        if not can_transition(previous, new_status):
            raise InvalidTransition(previous, new_status)

        if new_status == Lead.STATUS_SALE and get_sale_by_lead_id(lead.pk) is None:
            if sale_data is None:
                raise SaleRequired(f"Lead {lead.pk} needs sale data to become a sale")
            create_sale(lead, actor, now=now, **sale_data)

        lead.status = new_status
        lead.save(update_fields=['status', 'updated_at'])
        entry = LeadStatusHistory.objects.create(
            lead=lead,
            previous_status=previous,
            new_status=new_status,
            details=details or _default_details(previous, new_status),
            performed_by=user,
            performed_at=now,
        )

    logger.info("Lead %s moved %s -> %s by user %s", lead.pk, previous, new_status,
                getattr(user, 'pk', None))
    return entry


def archive_lead(lead, actor, now=None):
    """Soft delete; the lead and its history stay in the database."""
    require_permission(actor, 'leads:delete')
    lead.is_deleted = True
    lead.deleted_at = now or timezone.now()
    lead.deleted_by = actor_user(actor)
    lead.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by', 'updated_at'])
    return lead


def restore_lead(lead, actor):
    require_permission(actor, 'leads:delete')
    lead.is_deleted = False
    lead.deleted_at = None
    lead.deleted_by = None
    lead.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by', 'updated_at'])
    return lead
