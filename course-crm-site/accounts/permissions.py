# accounts/permissions.py
"""
Static role -> permission table and the lookups built on top of it.

Permissions are ``resource:action`` strings. A role set may also contain a
``resource:*`` entry (every action on that resource) or ``*:*``. Everything
here is a pure lookup: unknown roles and malformed permission strings are
simply denied.
"""

SUPER_ADMIN = 'super_admin'
ADMIN = 'admin'
CRM_USER = 'crm_user'
VIEWER = 'viewer'

ROLE_CHOICES = [
    (SUPER_ADMIN, 'Super Admin'),
    (ADMIN, 'Admin'),
    (CRM_USER, 'CRM User'),
    (VIEWER, 'Viewer'),
]

ALL_PERMISSIONS = (
    'dashboard:read',
    'leads:read', 'leads:write', 'leads:delete',
    'stats:read',
    'content:read', 'content:write',
    'settings:read', 'settings:write',
    'users:read', 'users:write', 'users:delete',
    'sales:read', 'sales:write',
    'active_members:read',
    'ad_links:read', 'ad_links:write',
    'ad_links_analytics:read',
    'hall_of_fame:read', 'hall_of_fame:write',
)

_ADMIN_PERMISSIONS = frozenset(p for p in ALL_PERMISSIONS if not p.startswith('users:'))

ROLE_PERMISSIONS = {
    SUPER_ADMIN: frozenset(ALL_PERMISSIONS),
    ADMIN: _ADMIN_PERMISSIONS,
    CRM_USER: frozenset({
        'dashboard:read',
        'leads:read', 'leads:write',
        'stats:read',
        'sales:read', 'sales:write',
        'active_members:read',
    }),
    VIEWER: frozenset({
        'dashboard:read',
        'stats:read',
    }),
}

ROLE_LEVELS = {
    VIEWER: 1,
    CRM_USER: 2,
    ADMIN: 3,
    SUPER_ADMIN: 4,
}

# Top-level admin routes in menu order, each with its guarding permission.
ADMIN_ROUTES = (
    ('/admin/', 'dashboard:read'),
    ('/admin/leads/', 'leads:read'),
    ('/admin/ventas/', 'sales:read'),
    ('/admin/activos/', 'active_members:read'),
    ('/admin/stats/', 'stats:read'),
    ('/admin/ad-links/', 'ad_links:read'),
    ('/admin/content/', 'content:read'),
    ('/admin/hall-of-fame/', 'hall_of_fame:read'),
    ('/admin/users/', 'users:read'),
    ('/admin/settings/', 'settings:read'),
)


def _split(permission):
    if not isinstance(permission, str) or permission.count(':') != 1:
        return None
    resource, action = permission.split(':')
    if not resource or not action:
        return None
    return resource, action


def get_role_permissions(role):
    """Permission set of ``role``; empty for unknown roles."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role, permission):
    parts = _split(permission)
    if parts is None:
        return False
    granted = get_role_permissions(role)
    resource, _ = parts
    return permission in granted or f'{resource}:*' in granted or '*:*' in granted


def has_any_permission(role, permissions):
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role, permissions):
    return all(has_permission(role, p) for p in permissions)


def get_accessible_routes(role):
    return [route for route, perm in ADMIN_ROUTES if has_permission(role, perm)]


def is_valid_permission(permission):
    return permission in ALL_PERMISSIONS


def get_role_level(role):
    return ROLE_LEVELS.get(role, 0)


def can_role_manage_role(manager_role, target_role):
    return get_role_level(manager_role) > get_role_level(target_role)


def get_assignable_roles(role):
    """Roles strictly below ``role`` in the hierarchy, lowest first."""
    level = get_role_level(role)
    return [r for r, _ in sorted(ROLE_LEVELS.items(), key=lambda kv: kv[1]) if ROLE_LEVELS[r] < level]


def can_manage_user(actor, target):
    """
    actor/target are UserProfile-like objects (``role`` and ``user_id``).
    super_admin manages anyone except themself; admin manages crm users and viewers.
    """
    if actor is None or target is None:
        return False
    if actor.role == SUPER_ADMIN and actor.user_id != target.user_id:
        return True
    if actor.role == ADMIN and target.role in (CRM_USER, VIEWER):
        return True
    return False


def profile_has_permission(profile, permission):
    """Same as has_permission, but inactive (or missing) profiles get nothing."""
    if profile is None or not profile.is_active:
        return False
    return has_permission(profile.role, permission)
