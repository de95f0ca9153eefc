# sales/services.py
"""
Sale mutations. Each one appends its own SaleStatusHistory row and checks the
actor's permission before touching the database.
"""
import logging
import math
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from accounts.session import actor_user, require_permission
from .exceptions import InsufficientPayment, InvalidPayment, SaleError
from .models import (
    MINIMUM_PAYMENT_RATIO, PAYMENT_PLANS,
    PaymentProof, Sale, SaleStatusHistory, calculate_access_end_date,
)

logger = logging.getLogger(__name__)

# access and exemption changes are admin-only
ACCESS_PERMISSION = 'settings:write'
SALES_PERMISSION = 'sales:write'


def _to_amount(value):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPayment(f"Invalid amount: {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidPayment(f"Amount must be positive: {value!r}")
    return amount.quantize(Decimal('0.01'))


def _history(sale, action, details, user, now, amount=None):
    return SaleStatusHistory.objects.create(
        sale=sale, action=action, details=details, amount=amount,
        performed_by=user, performed_at=now,
    )


def _locked(sale):
    return Sale.objects.select_for_update().get(pk=sale.pk)


# ---- queries ----

def get_sale(sale_id):
    return Sale.objects.select_related('lead', 'sale_user').filter(pk=sale_id).first()


def get_sale_by_lead_id(lead_id):
    return Sale.objects.select_related('lead', 'sale_user').filter(lead_id=lead_id).first()


def has_minimum_payment(sale):
    if sale.exemption_granted:
        return True
    return sale.paid_amount >= sale.total_amount * MINIMUM_PAYMENT_RATIO


def is_access_active(sale, now=None):
    if not (sale.access_granted and sale.access_start_date and sale.access_end_date):
        return False
    now = now or timezone.now()
    return sale.access_start_date <= now <= sale.access_end_date


def get_remaining_days(sale, now=None):
    if not sale.access_end_date:
        return 0
    now = now or timezone.now()
    days = math.ceil((sale.access_end_date - now).total_seconds() / 86400)
    return max(0, days)


def get_active_members():
    """Course sales that reached the minimum payment (or were exempted)."""
    return (Sale.objects
            .filter(product='acceso_curso', lead__is_deleted=False)
            .filter(Q(exemption_granted=True) |
                    Q(paid_amount__gte=F('total_amount') * MINIMUM_PAYMENT_RATIO))
            .select_related('lead', 'sale_user')
            .order_by('-created_at'))


# ---- mutations ----

def create_sale(lead, actor, payment_plan='1_pago', product='acceso_curso',
                total_amount=None, payment_proofs=(), now=None):
    """
    Create the Sale for a converting lead. Called by leads.transitions inside
    the lead's own transaction; the lead status itself is not touched here.
    """
    require_permission(actor, SALES_PERMISSION)
    user = actor_user(actor)
    now = now or timezone.now()

    if Sale.objects.filter(lead_id=lead.pk).exists():
        raise SaleError(f"Lead {lead.pk} already has a sale")

    if product == 'others':
        payment_plan = 'custom'
    if total_amount is None:
        plan = PAYMENT_PLANS.get(payment_plan)
        if plan is None:
            raise SaleError("total_amount is required for custom plans")
        total_amount = plan['amount']
    total_amount = _to_amount(total_amount)

    proofs = [dict(p, amount=_to_amount(p.get('amount'))) for p in payment_proofs]
    paid = sum((p['amount'] for p in proofs), Decimal('0'))

    with transaction.atomic():
        sale = Sale.objects.create(
            lead=lead, sale_user=user, product=product, payment_plan=payment_plan,
            total_amount=total_amount, paid_amount=paid,
        )
        for p in proofs:
            PaymentProof.objects.create(
                sale=sale, amount=p['amount'],
                image_url=p.get('image_url', ''), description=p.get('description', ''),
                uploaded_by=user, uploaded_at=now,
            )
        _history(sale, 'sale_created',
                 f"Sale created for {product} with {payment_plan}", user, now, amount=total_amount)

    logger.info("Sale %s created for lead %s by user %s", sale.pk, lead.pk, getattr(user, 'pk', None))
    return sale


EDITABLE_SALE_FIELDS = ('product', 'payment_plan', 'total_amount')


def covers_access(sale, total_amount):
    """Whether ``sale`` still meets the access rule with ``total_amount`` as its total."""
    if not sale.access_granted or sale.exemption_granted:
        return True
    return sale.paid_amount >= total_amount * MINIMUM_PAYMENT_RATIO


def update_sale(sale, actor, now=None, **fields):
    """Edit product / plan / total. Granted access must stay covered by the payments."""
    require_permission(actor, SALES_PERMISSION)
    unknown = set(fields) - set(EDITABLE_SALE_FIELDS)
    if unknown:
        raise SaleError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if 'product' in fields and fields['product'] not in dict(Sale.PRODUCT_CHOICES):
        raise SaleError(f"Unknown product: {fields['product']}")
    if 'payment_plan' in fields and fields['payment_plan'] not in dict(Sale.PLAN_CHOICES):
        raise SaleError(f"Unknown payment plan: {fields['payment_plan']}")
    if 'total_amount' in fields:
        fields['total_amount'] = _to_amount(fields['total_amount'])
    user = actor_user(actor)
    now = now or timezone.now()

    with transaction.atomic():
        sale = _locked(sale)
        changed = {name: value for name, value in fields.items() if getattr(sale, name) != value}
        if not changed:
            return sale
        if not covers_access(sale, changed.get('total_amount', sale.total_amount)):
            raise InsufficientPayment(sale.paid_amount, changed['total_amount'])
        for name, value in changed.items():
            setattr(sale, name, value)
        sale.save(update_fields=list(changed) + ['updated_at'])
        _history(sale, 'sale_updated',
                 "Sale updated: " + ", ".join(f"{name}={value}" for name, value in changed.items()),
                 user, now, amount=changed.get('total_amount'))

    logger.info("Sale %s updated (%s)", sale.pk, ', '.join(changed))
    return sale


def record_payment(sale, amount, actor, image_url='', description='', now=None):
    require_permission(actor, SALES_PERMISSION)
    user = actor_user(actor)
    amount = _to_amount(amount)
    now = now or timezone.now()

    with transaction.atomic():
        sale = _locked(sale)
        proof = PaymentProof.objects.create(
            sale=sale, amount=amount, image_url=image_url, description=description,
            uploaded_by=user, uploaded_at=now,
        )
        sale.paid_amount = sale.paid_amount + amount
        sale.save(update_fields=['paid_amount', 'updated_at'])
        _history(sale, 'payment_added', f"Payment of ${amount} added", user, now, amount=amount)

    logger.info("Payment of %s recorded on sale %s", amount, sale.pk)
    return proof


def grant_access(sale, actor, start=None, now=None):
    require_permission(actor, ACCESS_PERMISSION)
    user = actor_user(actor)
    now = now or timezone.now()
    start = start or now

    with transaction.atomic():
        sale = _locked(sale)
        if not has_minimum_payment(sale):
            raise InsufficientPayment(sale.paid_amount, sale.total_amount)
        end = calculate_access_end_date(start)
        sale.access_granted = True
        sale.access_start_date = start
        sale.access_end_date = end
        sale.save(update_fields=['access_granted', 'access_start_date', 'access_end_date', 'updated_at'])
        _history(sale, 'access_granted',
                 f"Course access granted from {start:%Y-%m-%d} to {end:%Y-%m-%d}", user, now)

    logger.info("Access granted on sale %s until %s", sale.pk, end)
    return sale


def update_access(sale, new_start, actor, now=None):
    require_permission(actor, ACCESS_PERMISSION)
    user = actor_user(actor)
    now = now or timezone.now()

    with transaction.atomic():
        sale = _locked(sale)
        if not has_minimum_payment(sale):
            raise InsufficientPayment(sale.paid_amount, sale.total_amount)
        end = calculate_access_end_date(new_start)
        sale.access_start_date = new_start
        sale.access_end_date = end
        sale.save(update_fields=['access_start_date', 'access_end_date', 'updated_at'])
        _history(sale, 'access_updated',
                 f"Course access updated: new period from {new_start:%Y-%m-%d} to {end:%Y-%m-%d}",
                 user, now)
    return sale


def revoke_access(sale, actor, reason='', now=None):
    require_permission(actor, ACCESS_PERMISSION)
    user = actor_user(actor)
    now = now or timezone.now()

    with transaction.atomic():
        sale = _locked(sale)
        sale.access_granted = False
        sale.access_start_date = None
        sale.access_end_date = None
        sale.save(update_fields=['access_granted', 'access_start_date', 'access_end_date', 'updated_at'])
        details = "Course access revoked" + (f": {reason}" if reason else '')
        _history(sale, 'access_revoked', details, user, now)

    logger.info("Access revoked on sale %s", sale.pk)
    return sale


def grant_exemption(sale, reason, actor, now=None):
    require_permission(actor, ACCESS_PERMISSION)
    user = actor_user(actor)
    now = now or timezone.now()

    with transaction.atomic():
        sale = _locked(sale)
        sale.exemption_granted = True
        sale.exemption_reason = reason
        sale.exemption_granted_by = user
        sale.save(update_fields=['exemption_granted', 'exemption_reason', 'exemption_granted_by', 'updated_at'])
        _history(sale, 'exemption_granted', f"Payment exemption granted: {reason}", user, now)

    logger.info("Payment exemption granted on sale %s", sale.pk)
    return sale
