# adlinks/models.py
from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone

UTM_FIELDS = ('source', 'medium', 'campaign', 'term', 'content')

SLUG_PATTERN = r'^[a-z0-9-]+$'
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50
SLUG_FORMAT_MESSAGE = 'El slug debe contener solo letras, números y guiones (3-50 caracteres)'


class AdLink(models.Model):
    LINK_TYPE_CHOICES = [
        ('course', 'Course'),
        ('landing_page', 'Landing page'),
        ('external', 'External'),
        ('resource', 'Resource'),
    ]

    title         = models.CharField(max_length=200)
    slug          = models.CharField(
        max_length=SLUG_MAX_LENGTH, unique=True,
        validators=[MinLengthValidator(SLUG_MIN_LENGTH),
                    RegexValidator(SLUG_PATTERN, message=SLUG_FORMAT_MESSAGE)],
    )
    description   = models.TextField(blank=True)
    # absolute URL or a path on this site
    target_url    = models.CharField(max_length=1000)
    link_type     = models.CharField(max_length=20, choices=LINK_TYPE_CHOICES, default='landing_page')
    default_role  = models.CharField(max_length=50, blank=True)
    target_course = models.CharField(max_length=200, blank=True)
    campaign_name = models.CharField(max_length=200, blank=True)

    # stored UTM defaults; incoming query params win
    utm_source    = models.CharField(max_length=100, blank=True)
    utm_medium    = models.CharField(max_length=100, blank=True)
    utm_campaign  = models.CharField(max_length=100, blank=True)
    utm_term      = models.CharField(max_length=100, blank=True)
    utm_content   = models.CharField(max_length=100, blank=True)

    expiration_date  = models.DateTimeField(null=True, blank=True)
    require_approval = models.BooleanField(default=False)
    is_active        = models.BooleanField(default=True)

    total_clicks  = models.PositiveIntegerField(default=0)
    unique_clicks = models.PositiveIntegerField(default=0)

    created_by    = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                      related_name='ad_links')
    created_at    = models.DateTimeField(auto_now_add=True)
    updated_at    = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['is_active'], name='adlink_active_idx'),
            models.Index(fields=['campaign_name'], name='adlink_campaign_idx'),
        ]

    def __str__(self):
        return f"{self.title} (/go/{self.slug})"

    def utm_defaults(self):
        return {name: getattr(self, f'utm_{name}') for name in UTM_FIELDS}

    def is_expired(self, now=None):
        if not self.expiration_date:
            return False
        return (now or timezone.now()) > self.expiration_date


class ClickEvent(models.Model):
    """One row per eligible redirect. Never updated after insert."""

    link        = models.ForeignKey(AdLink, on_delete=models.CASCADE, related_name='clicks')
    timestamp   = models.DateTimeField(default=timezone.now)
    ip          = models.CharField(max_length=64)
    user_agent  = models.TextField(blank=True)
    referrer    = models.TextField(blank=True)

    country     = models.CharField(max_length=100, blank=True)
    region      = models.CharField(max_length=100, blank=True)
    city        = models.CharField(max_length=100, blank=True)

    # keys: source / medium / campaign / term / content, only the ones present
    utm_params  = models.JSONField(default=dict, blank=True)
    session_id  = models.CharField(max_length=64)
    is_unique   = models.BooleanField(default=True)

    class Meta:
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['link', 'timestamp'], name='click_link_time_idx'),
        ]

    def __str__(self):
        return f"click on {self.link_id} @ {self.timestamp:%Y-%m-%d %H:%M}"

    @property
    def location(self):
        return {'country': self.country, 'region': self.region, 'city': self.city}
