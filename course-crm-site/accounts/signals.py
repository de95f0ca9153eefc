# accounts/signals.py
import logging

from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver
from django.utils import timezone

from .models import UserProfile
from .permissions import SUPER_ADMIN, VIEWER

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def ensure_profile_on_login(sender, request, user, **kwargs):
    """First login creates the profile: superusers become super_admin, everybody else viewer."""
    profile, created = UserProfile.objects.get_or_create(
        user=user,
        defaults={
            'role': SUPER_ADMIN if user.is_superuser else VIEWER,
            'display_name': user.get_full_name(),
        },
    )
    if created:
        logger.info("Created %s profile for user %s", profile.role, user.pk)
    profile.last_login_at = timezone.now()
    profile.save(update_fields=['last_login_at', 'updated_at'])
