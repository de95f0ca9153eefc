# sales/models.py
from datetime import timedelta
from decimal import Decimal

from django.db import models
from django.contrib.auth.models import User

ACCESS_PERIOD_DAYS = 120
MINIMUM_PAYMENT_RATIO = Decimal('0.5')

PAYMENT_PLANS = {
    '1_pago':  {'amount': Decimal('1000'), 'payments': 1, 'label': '1 Solo Pago - $1,000'},
    '2_pagos': {'amount': Decimal('1200'), 'payments': 2, 'label': '2 Pagos - $1,200'},
    '3_pagos': {'amount': Decimal('1300'), 'payments': 3, 'label': '3 Pagos - $1,300'},
}


def calculate_access_end_date(start):
    return start + timedelta(days=ACCESS_PERIOD_DAYS)


class Sale(models.Model):
    PRODUCT_CHOICES = [
        ('acceso_curso', 'Acceso al curso'),
        ('others', 'Otros'),
    ]
    PLAN_CHOICES = [
        ('1_pago', '1 pago'),
        ('2_pagos', '2 pagos'),
        ('3_pagos', '3 pagos'),
        ('custom', 'Custom'),
    ]

    lead            = models.OneToOneField('leads.Lead', on_delete=models.PROTECT, related_name='sale')
    sale_user       = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='sales')
    product         = models.CharField(max_length=20, choices=PRODUCT_CHOICES, default='acceso_curso')
    payment_plan    = models.CharField(max_length=10, choices=PLAN_CHOICES, default='1_pago')
    total_amount    = models.DecimalField(max_digits=10, decimal_places=2)
    paid_amount     = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    # access
    access_granted    = models.BooleanField(default=False)
    access_start_date = models.DateTimeField(null=True, blank=True)
    access_end_date   = models.DateTimeField(null=True, blank=True)

    exemption_granted    = models.BooleanField(default=False)
    exemption_reason     = models.CharField(max_length=255, blank=True)
    exemption_granted_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                             related_name='granted_exemptions')

    created_at      = models.DateTimeField(auto_now_add=True)
    updated_at      = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product'], name='sale_product_idx'),
            models.Index(fields=['access_granted'], name='sale_access_idx'),
        ]

    def __str__(self):
        return f"Sale #{self.pk} - {self.lead}"

    @property
    def minimum_payment(self):
        return (self.total_amount * MINIMUM_PAYMENT_RATIO).quantize(Decimal('0.01'))

    @property
    def balance(self):
        return max(self.total_amount - self.paid_amount, Decimal('0'))


class PaymentProof(models.Model):
    sale        = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='payment_proofs')
    amount      = models.DecimalField(max_digits=10, decimal_places=2)
    image_url   = models.URLField(max_length=500, blank=True)
    description = models.CharField(max_length=255, blank=True)
    uploaded_by = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='payment_proofs')
    uploaded_at = models.DateTimeField()

    class Meta:
        ordering = ['uploaded_at', 'id']

    def __str__(self):
        return f"{self.amount} @ {self.uploaded_at:%Y-%m-%d}"


class SaleStatusHistory(models.Model):
    ACTION_CHOICES = [
        ('sale_created', 'Sale created'),
        ('sale_updated', 'Sale updated'),
        ('payment_added', 'Payment added'),
        ('access_granted', 'Access granted'),
        ('access_updated', 'Access updated'),
        ('access_revoked', 'Access revoked'),
        ('exemption_granted', 'Exemption granted'),
    ]

    sale         = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='status_history')
    action       = models.CharField(max_length=20, choices=ACTION_CHOICES)
    details      = models.CharField(max_length=500, blank=True)
    amount       = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    performed_by = models.ForeignKey(User, null=True, on_delete=models.SET_NULL,
                                     related_name='sale_status_changes')
    performed_at = models.DateTimeField()

    class Meta:
        ordering = ['performed_at', 'id']
        verbose_name_plural = 'sale status history'

    def __str__(self):
        return f"{self.action} @ {self.performed_at:%Y-%m-%d %H:%M}"
