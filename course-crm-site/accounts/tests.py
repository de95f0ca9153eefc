from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.urls import reverse

from . import permissions as perms
from .models import UserProfile
from .session import AdminSession, require_permission
from .testing import make_user


class PermissionTableTest(TestCase):

    def test_lookup_is_total(self):
        candidates = list(perms.ALL_PERMISSIONS) + ['', 'leads', 'leads:', ':read', 'a:b:c', 'nope:read', None, 42]
        for role in [code for code, _ in perms.ROLE_CHOICES] + ['ghost', None]:
            for permission in candidates:
                first = perms.has_permission(role, permission)
                self.assertIsInstance(first, bool)
                self.assertEqual(first, perms.has_permission(role, permission))

    def test_super_admin_has_everything(self):
        for permission in perms.ALL_PERMISSIONS:
            self.assertTrue(perms.has_permission(perms.SUPER_ADMIN, permission))

    def test_admin_has_no_user_management(self):
        self.assertTrue(perms.has_permission(perms.ADMIN, 'settings:write'))
        self.assertTrue(perms.has_permission(perms.ADMIN, 'ad_links:write'))
        for permission in ('users:read', 'users:write', 'users:delete'):
            self.assertFalse(perms.has_permission(perms.ADMIN, permission))

    def test_crm_user_and_viewer(self):
        self.assertTrue(perms.has_permission(perms.CRM_USER, 'leads:write'))
        self.assertTrue(perms.has_permission(perms.CRM_USER, 'sales:write'))
        self.assertFalse(perms.has_permission(perms.CRM_USER, 'leads:delete'))
        self.assertFalse(perms.has_permission(perms.CRM_USER, 'ad_links:read'))
        self.assertEqual(perms.get_role_permissions(perms.VIEWER), {'dashboard:read', 'stats:read'})

    def test_unknown_role_is_denied(self):
        self.assertEqual(perms.get_role_permissions('ghost'), frozenset())
        self.assertFalse(perms.has_permission('ghost', 'dashboard:read'))
        self.assertEqual(perms.get_accessible_routes('ghost'), [])

    def test_wildcards(self):
        original = perms.ROLE_PERMISSIONS.copy()
        try:
            perms.ROLE_PERMISSIONS['tester'] = frozenset({'leads:*'})
            self.assertTrue(perms.has_permission('tester', 'leads:delete'))
            self.assertFalse(perms.has_permission('tester', 'sales:read'))
            perms.ROLE_PERMISSIONS['root'] = frozenset({'*:*'})
            self.assertTrue(perms.has_permission('root', 'anything:goes'))
        finally:
            perms.ROLE_PERMISSIONS.clear()
            perms.ROLE_PERMISSIONS.update(original)

    def test_has_any_and_all(self):
        self.assertTrue(perms.has_any_permission(perms.VIEWER, ['leads:read', 'stats:read']))
        self.assertFalse(perms.has_any_permission(perms.VIEWER, ['leads:read', 'sales:read']))
        self.assertFalse(perms.has_any_permission(perms.VIEWER, []))
        self.assertTrue(perms.has_all_permissions(perms.CRM_USER, ['leads:read', 'sales:read']))
        self.assertFalse(perms.has_all_permissions(perms.CRM_USER, ['leads:read', 'users:read']))

    def test_accessible_routes_keep_menu_order(self):
        self.assertEqual(perms.get_accessible_routes(perms.VIEWER), ['/admin/', '/admin/stats/'])
        self.assertEqual(perms.get_accessible_routes(perms.CRM_USER),
                         ['/admin/', '/admin/leads/', '/admin/ventas/', '/admin/activos/', '/admin/stats/'])
        self.assertNotIn('/admin/users/', perms.get_accessible_routes(perms.ADMIN))
        self.assertEqual(len(perms.get_accessible_routes(perms.SUPER_ADMIN)), len(perms.ADMIN_ROUTES))

    def test_role_hierarchy(self):
        self.assertEqual(perms.get_assignable_roles(perms.SUPER_ADMIN),
                         [perms.VIEWER, perms.CRM_USER, perms.ADMIN])
        self.assertEqual(perms.get_assignable_roles(perms.VIEWER), [])
        self.assertTrue(perms.can_role_manage_role(perms.ADMIN, perms.CRM_USER))
        self.assertFalse(perms.can_role_manage_role(perms.ADMIN, perms.ADMIN))


class AdminSessionTest(TestCase):

    def test_anonymous_session_has_nothing(self):
        session = AdminSession()
        self.assertFalse(session.has('dashboard:read'))
        self.assertEqual(session.routes(), [])
        with self.assertRaises(PermissionDenied):
            session.require('dashboard:read')

    def test_inactive_profile_is_denied(self):
        user = make_user('sleepy', perms.ADMIN, is_active=False)
        session = AdminSession.for_user(user)
        self.assertEqual(session.role, perms.ADMIN)
        self.assertFalse(session.has('dashboard:read'))
        with self.assertRaises(PermissionDenied):
            require_permission(user, 'dashboard:read')

    def test_require_permission_accepts_user_profile_and_session(self):
        user = make_user('crm', perms.CRM_USER)
        require_permission(user, 'leads:write')
        require_permission(user.profile, 'leads:write')
        require_permission(AdminSession.for_user(user), 'leads:write')
        with self.assertRaises(PermissionDenied):
            require_permission(user, 'settings:write')

    def test_user_without_profile_is_denied(self):
        user = User.objects.create_user(username='bare', password='x')
        with self.assertRaises(PermissionDenied):
            require_permission(user, 'dashboard:read')


class LoginFlowTest(TestCase):

    def test_first_login_creates_viewer_profile(self):
        user = User.objects.create_user(username='newbie', password='pass1234')
        self.client.login(username='newbie', password='pass1234')
        profile = UserProfile.objects.get(user=user)
        self.assertEqual(profile.role, perms.VIEWER)
        self.assertIsNotNone(profile.last_login_at)

    def test_first_login_of_superuser_is_super_admin(self):
        User.objects.create_superuser(username='boss', password='pass1234', email='b@example.com')
        self.client.login(username='boss', password='pass1234')
        self.assertEqual(UserProfile.objects.get(user__username='boss').role, perms.SUPER_ADMIN)

    def test_existing_role_survives_login(self):
        make_user('crm', perms.CRM_USER)
        self.client.login(username='crm', password='pass1234')
        self.assertEqual(UserProfile.objects.get(user__username='crm').role, perms.CRM_USER)

    def test_post_login_goes_to_first_allowed_route(self):
        make_user('viewer', perms.VIEWER)
        self.client.login(username='viewer', password='pass1234')
        resp = self.client.get(reverse('accounts:post_login'))
        self.assertRedirects(resp, '/admin/', fetch_redirect_response=False)

    def test_post_login_without_routes_is_unauthorized(self):
        make_user('ghost', 'ghost')
        self.client.login(username='ghost', password='pass1234')
        resp = self.client.get(reverse('accounts:post_login'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)


class UserManagementViewTest(TestCase):

    def setUp(self):
        self.root = make_user('root', perms.SUPER_ADMIN)
        self.admin = make_user('admin', perms.ADMIN)
        self.crm = make_user('crm', perms.CRM_USER)

    def test_users_page_needs_users_read(self):
        self.client.force_login(self.admin)
        resp = self.client.get(reverse('accounts:users'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)

        self.client.force_login(self.root)
        resp = self.client.get(reverse('accounts:users'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'crm')

    def test_anonymous_is_sent_to_login(self):
        resp = self.client.get(reverse('accounts:users'))
        self.assertEqual(resp.status_code, 302)
        self.assertTrue(resp['Location'].startswith(reverse('accounts:login')))

    def test_csv_export(self):
        self.client.force_login(self.root)
        resp = self.client.get(reverse('accounts:users'), {'export': 'csv', 'show': 'all'})
        self.assertEqual(resp['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('crm@example.com', resp.content.decode())

    def test_create_user(self):
        self.client.force_login(self.root)
        resp = self.client.post(reverse('accounts:create'), {
            'username': 'ana', 'password1': 'S3cure-pass', 'password2': 'S3cure-pass',
            'email': 'ana@example.com', 'display_name': 'Ana', 'role': perms.CRM_USER,
        })
        self.assertRedirects(resp, reverse('accounts:users'), fetch_redirect_response=False)
        profile = UserProfile.objects.get(user__username='ana')
        self.assertEqual(profile.role, perms.CRM_USER)
        self.assertEqual(profile.created_by, self.root)

    def test_cannot_assign_own_level(self):
        self.client.force_login(self.root)
        self.client.post(reverse('accounts:create'), {
            'username': 'eve', 'password1': 'x', 'password2': 'x', 'role': perms.SUPER_ADMIN,
        })
        self.assertFalse(User.objects.filter(username='eve').exists())

    def test_deactivate_is_soft(self):
        self.client.force_login(self.root)
        self.client.post(reverse('accounts:deactivate', args=[self.crm.profile.pk]))
        profile = UserProfile.objects.get(user=self.crm)
        self.assertFalse(profile.is_active)
        self.assertTrue(User.objects.filter(pk=self.crm.pk).exists())

    def test_super_admin_cannot_manage_self(self):
        self.client.force_login(self.root)
        self.client.post(reverse('accounts:deactivate', args=[self.root.profile.pk]))
        self.assertTrue(UserProfile.objects.get(user=self.root).is_active)

    def test_change_role(self):
        self.client.force_login(self.root)
        self.client.post(reverse('accounts:change_role', args=[self.crm.profile.pk]), {'role': perms.ADMIN})
        self.assertEqual(UserProfile.objects.get(user=self.crm).role, perms.ADMIN)
