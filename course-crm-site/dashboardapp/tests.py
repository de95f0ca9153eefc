from decimal import Decimal

from django.test import TestCase
from django.urls import reverse

from accounts.permissions import ADMIN, CRM_USER, VIEWER
from accounts.testing import make_user
from adlinks.models import AdLink
from adlinks.resolver import resolve_redirect
from leads.models import Lead
from leads.transitions import transition_lead
from sales.services import create_sale


class DashboardTest(TestCase):

    def setUp(self):
        self.crm = make_user('crm', CRM_USER)
        for i, status in enumerate(('lead', 'lead', 'onboarding', 'rejected')):
            Lead.objects.create(name=f'L{i}', email=f'l{i}@example.com', phone='5512345678',
                                country_code='+52', role='Editor', status=status)
        converting = Lead.objects.create(name='Venta', email='v@example.com', phone='5512345678',
                                         status='onboarding')
        transition_lead(converting, 'sale', self.crm,
                        sale_data={'payment_plan': '1_pago', 'payment_proofs': [{'amount': '600'}]})
        Lead.objects.create(name='Old', email='o@example.com', phone='1', is_deleted=True)
        AdLink.objects.create(title='Promo', slug='promo', target_url='/join/')
        resolve_redirect('promo', {}, {}, base_url='http://testserver')

    def test_anonymous_goes_to_login(self):
        resp = self.client.get(reverse('dashboard:main'))
        self.assertEqual(resp.status_code, 302)
        self.assertTrue(resp['Location'].startswith(reverse('accounts:login')))

    def test_kpis(self):
        self.client.force_login(make_user('viewer', VIEWER))
        resp = self.client.get(reverse('dashboard:main'))
        self.assertEqual(resp.status_code, 200)
        kpis = resp.context['dash']['kpis']
        self.assertEqual(kpis['leads'], 5)
        self.assertEqual(kpis['onboarding'], 1)
        self.assertEqual(kpis['rejected'], 1)
        self.assertEqual(kpis['sales'], 1)
        self.assertEqual(kpis['conversion'], 20)
        self.assertEqual(kpis['sold'], Decimal('1000'))
        self.assertEqual(kpis['collected'], Decimal('600'))
        self.assertEqual(kpis['active_members'], 1)
        self.assertEqual(kpis['clicks'], 1)
        self.assertEqual(kpis['active_links'], 1)
        self.assertEqual(sum(resp.context['dash']['trend']['leads']), 5)

    def test_all_range(self):
        self.client.force_login(make_user('viewer', VIEWER))
        resp = self.client.get(reverse('dashboard:main'), {'range': 'all'})
        self.assertEqual(resp.context['dash']['kpis']['leads'], 5)

    def test_stats(self):
        self.client.force_login(self.crm)
        resp = self.client.get(reverse('dashboard:stats'))
        self.assertEqual(resp.status_code, 200)
        self.assertIn({'role': 'Editor', 'c': 4}, resp.context['by_role'])
        self.assertEqual(resp.context['clicks_total'], 1)
        self.assertEqual([l.slug for l in resp.context['per_link']], ['promo'])

    def test_settings_needs_settings_read(self):
        self.client.force_login(self.crm)
        resp = self.client.get(reverse('dashboard:settings'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)

        self.client.force_login(make_user('admin', ADMIN))
        resp = self.client.get(reverse('dashboard:settings'))
        self.assertEqual(resp.status_code, 200)
        users_read = next(r for r in resp.context['matrix'] if r['permission'] == 'users:read')
        self.assertEqual(users_read['roles'], [True, False, False, False])
