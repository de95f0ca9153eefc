# accounts/session.py
"""
Per-request admin session.

``AdminSessionMiddleware`` builds one ``AdminSession`` for every request and
hangs it on ``request.admin_session``. Views, templates and services read the
caller's role from that object only; nothing is cached at module level.
"""
import logging
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.shortcuts import redirect
from django.utils.functional import SimpleLazyObject

from .models import UserProfile
from . import permissions as perms

logger = logging.getLogger(__name__)


def get_user_profile(user_id):
    """UserProfile for a user id, or None."""
    if not user_id:
        return None
    return UserProfile.objects.select_related('user').filter(user_id=user_id).first()


class AdminSession:
    def __init__(self, user=None, profile=None):
        self.user = user
        self.profile = profile

    @classmethod
    def for_user(cls, user):
        if user is None or not user.is_authenticated:
            return cls()
        return cls(user=user, profile=get_user_profile(user.pk))

    @property
    def role(self):
        return self.profile.role if self.profile else None

    @property
    def is_active(self):
        return bool(self.profile and self.profile.is_active and self.user.is_active)

    def has(self, permission):
        return self.is_active and perms.has_permission(self.role, permission)

    def has_any(self, permissions):
        return any(self.has(p) for p in permissions)

    def routes(self):
        if not self.is_active:
            return []
        return perms.get_accessible_routes(self.role)

    def require(self, permission):
        if not self.has(permission):
            logger.warning("Permission %s denied for user %s", permission,
                           getattr(self.user, 'pk', None))
            raise PermissionDenied(permission)


def require_permission(actor, permission):
    """
    Data-boundary check used by services. ``actor`` is an AdminSession, a
    UserProfile or a User.
    """
    if isinstance(actor, AdminSession):
        actor.require(permission)
        return
    if isinstance(actor, UserProfile):
        profile = actor
    else:
        profile = get_user_profile(getattr(actor, 'pk', None))
    if not perms.profile_has_permission(profile, permission):
        logger.warning("Permission %s denied for %r", permission, actor)
        raise PermissionDenied(permission)


def actor_user(actor):
    """The auth.User behind an AdminSession / UserProfile / User."""
    if isinstance(actor, AdminSession):
        return actor.user
    if isinstance(actor, UserProfile):
        return actor.user
    return actor


class AdminSessionMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        request.admin_session = SimpleLazyObject(lambda: AdminSession.for_user(user))
        return self.get_response(request)


def admin_session(request):
    """Template context processor."""
    return {'admin_session': getattr(request, 'admin_session', None)}


def permission_required(permission, api=False):
    """
    Gate a view on one permission. HTML views go to the unauthorized page,
    API views get a 403 JSON body.
    """
    def decorator(view_func):
        @login_required
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if not request.admin_session.has(permission):
                if api:
                    return JsonResponse({'error': 'Forbidden'}, status=403)
                return redirect('accounts:unauthorized')
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator
