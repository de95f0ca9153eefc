# leads/models.py
from django.db import models
from django.contrib.auth.models import User


class Lead(models.Model):
    STATUS_LEAD = 'lead'
    STATUS_ONBOARDING = 'onboarding'
    STATUS_SALE = 'sale'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_LEAD, 'Lead'),
        (STATUS_ONBOARDING, 'Onboarding'),
        (STATUS_SALE, 'Sale'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    name         = models.CharField(max_length=200)
    email        = models.EmailField()
    country_code = models.CharField(max_length=6, blank=True)
    phone        = models.CharField(max_length=40)

    # intake answers
    role         = models.CharField(max_length=120, blank=True)
    level        = models.CharField(max_length=120, blank=True)
    software     = models.CharField(max_length=120, blank=True)
    clients      = models.CharField(max_length=120, blank=True)
    investment   = models.CharField(max_length=120, blank=True)
    why          = models.TextField(blank=True)

    status       = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_LEAD)
    notes        = models.TextField(blank=True)
    assigned_to  = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                     related_name='assigned_leads')
    agent_data   = models.JSONField(default=dict, blank=True)

    # archive
    is_deleted   = models.BooleanField(default=False)
    deleted_at   = models.DateTimeField(null=True, blank=True)
    deleted_by   = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                     related_name='deleted_leads')

    created_at   = models.DateTimeField(auto_now_add=True)
    updated_at   = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status'], name='lead_status_idx'),
            models.Index(fields=['is_deleted'], name='lead_deleted_idx'),
            models.Index(fields=['created_at'], name='lead_created_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def full_phone(self):
        return f"{self.country_code} {self.phone}".strip()

    def get_sale(self):
        """The sale created when this lead converted, or None."""
        return getattr(self, 'sale', None)

    @property
    def sale_id(self):
        sale = self.get_sale()
        return sale.pk if sale else None

    def last_history_entry(self):
        return self.status_history.order_by('-performed_at', '-id').first()

    def current_status_matches_history(self):
        last = self.last_history_entry()
        if last is None:
            return self.status == self.STATUS_LEAD
        return last.new_status == self.status


class LeadStatusHistory(models.Model):
    """Append-only: one row per status change."""

    lead            = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='status_history')
    previous_status = models.CharField(max_length=12, choices=Lead.STATUS_CHOICES)
    new_status      = models.CharField(max_length=12, choices=Lead.STATUS_CHOICES)
    details         = models.CharField(max_length=500, blank=True)
    performed_by    = models.ForeignKey(User, null=True, on_delete=models.SET_NULL,
                                        related_name='lead_status_changes')
    performed_at    = models.DateTimeField()

    class Meta:
        ordering = ['performed_at', 'id']
        verbose_name_plural = 'lead status history'

    def __str__(self):
        return f"{self.previous_status} -> {self.new_status} @ {self.performed_at:%Y-%m-%d %H:%M}"
