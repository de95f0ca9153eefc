# accounts/models.py
from django.db import models
from django.contrib.auth.models import User

from .permissions import ROLE_CHOICES, VIEWER, get_role_permissions


class UserProfile(models.Model):
    user         = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    role         = models.CharField(max_length=20, choices=ROLE_CHOICES, default=VIEWER)
    is_active    = models.BooleanField(default=True)
    display_name = models.CharField(max_length=150, blank=True)

    created_by    = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL,
                                      related_name='created_profiles')
    last_login_at = models.DateTimeField(null=True, blank=True)

    created_at   = models.DateTimeField(auto_now_add=True)
    updated_at   = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['user__username']
        indexes = [
            models.Index(fields=['role'], name='profile_role_idx'),
            models.Index(fields=['is_active'], name='profile_active_idx'),
        ]

    def __str__(self):
        return self.display_name or self.user.get_username()

    @property
    def permissions(self):
        """Implied by the role, never stored per user."""
        return get_role_permissions(self.role)
