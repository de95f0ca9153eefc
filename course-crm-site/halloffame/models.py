# halloffame/models.py
from django.db import models
from django.utils import timezone

from .scoring import CATEGORIES, get_user_level


class Member(models.Model):
    """A community member, keyed by their Discord id."""

    discord_id       = models.CharField(max_length=64, unique=True)
    username         = models.CharField(max_length=150)
    display_name     = models.CharField(max_length=150, blank=True)
    avatar_url       = models.URLField(max_length=500, blank=True)
    portfolio_url    = models.URLField(max_length=500, blank=True)
    social_media_url = models.URLField(max_length=500, blank=True)

    total_points     = models.PositiveIntegerField(default=0)
    # {"2025-01": 40, ...}
    monthly_points   = models.JSONField(default=dict, blank=True)
    level            = models.CharField(max_length=50, default=get_user_level(0))

    joined_at        = models.DateTimeField(default=timezone.now)
    last_active      = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-total_points', 'username']

    def __str__(self):
        return self.display_name or self.username

    def points_for(self, cycle):
        return int(self.monthly_points.get(cycle, 0))


class Submission(models.Model):
    CATEGORY_CHOICES = [(c.id, c.name) for c in CATEGORIES.values()]
    EVIDENCE_CHOICES = [
        ('image', 'Image'),
        ('video', 'Video'),
        ('link', 'Link'),
        ('drive_file', 'Drive file'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    submission_id    = models.CharField(max_length=100, unique=True)
    member           = models.ForeignKey(Member, null=True, blank=True, on_delete=models.SET_NULL,
                                         related_name='submissions')
    username         = models.CharField(max_length=150, blank=True)
    category         = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    points           = models.PositiveIntegerField(default=0)

    evidence_type    = models.CharField(max_length=12, choices=EVIDENCE_CHOICES, default='link')
    evidence_url     = models.URLField(max_length=1000, blank=True)
    evidence_preview = models.URLField(max_length=1000, blank=True)
    platform         = models.CharField(max_length=30, blank=True)
    file_name        = models.CharField(max_length=255, blank=True)
    file_size        = models.PositiveBigIntegerField(default=0)

    status           = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    hall_of_fame_selected = models.BooleanField(default=False)
    month_cycle      = models.CharField(max_length=7)
    submitted_at     = models.DateTimeField(default=timezone.now)

    reviewed_at      = models.DateTimeField(null=True, blank=True)
    reviewed_by      = models.CharField(max_length=150, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True)
    toggled_at       = models.DateTimeField(null=True, blank=True)
    toggled_by       = models.CharField(max_length=150, blank=True)

    # from the weekly video contest
    votes            = models.PositiveIntegerField(default=0)
    week_number      = models.PositiveSmallIntegerField(null=True, blank=True)

    class Meta:
        ordering = ['-submitted_at', '-id']
        indexes = [
            models.Index(fields=['status', 'hall_of_fame_selected'], name='submission_hof_idx'),
            models.Index(fields=['month_cycle'], name='submission_month_idx'),
        ]

    def __str__(self):
        return f"{self.submission_id} ({self.category}, {self.status})"
