from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.urls import reverse

from accounts.permissions import ADMIN, CRM_USER, VIEWER
from accounts.testing import make_user
from leads.models import Lead
from .exceptions import InsufficientPayment, InvalidPayment, SaleError
from .models import ACCESS_PERIOD_DAYS, Sale, calculate_access_end_date
from .services import (
    create_sale, get_active_members, get_remaining_days, grant_access, grant_exemption,
    has_minimum_payment, is_access_active, record_payment, revoke_access, update_access, update_sale,
)

START = datetime(2025, 1, 10, 12, 0, tzinfo=dt_timezone.utc)


class SaleServiceTest(TestCase):

    def setUp(self):
        self.admin = make_user('admin', ADMIN)
        self.crm = make_user('crm', CRM_USER)
        self.lead = Lead.objects.create(name='Laura', email='laura@example.com',
                                        phone='5512345678', status=Lead.STATUS_ONBOARDING)

    def _sale(self, paid=None, **kwargs):
        proofs = [{'amount': paid}] if paid else []
        return create_sale(self.lead, self.crm, payment_proofs=proofs, **kwargs)

    def test_plan_sets_total(self):
        sale = self._sale(payment_plan='3_pagos')
        self.assertEqual(sale.total_amount, Decimal('1300'))
        self.assertEqual(sale.paid_amount, Decimal('0'))
        self.assertEqual(sale.status_history.count(), 1)

    def test_custom_plan_needs_total(self):
        with self.assertRaises(SaleError):
            self._sale(product='others')
        sale = self._sale(product='others', total_amount='250')
        self.assertEqual(sale.payment_plan, 'custom')

    def test_one_sale_per_lead(self):
        self._sale()
        with self.assertRaises(SaleError):
            self._sale()

    def test_payments_accumulate(self):
        sale = self._sale(paid='200')
        record_payment(sale, '150.5', self.crm)
        sale.refresh_from_db()
        self.assertEqual(sale.paid_amount, Decimal('350.50'))
        self.assertEqual(sale.payment_proofs.count(), 2)
        self.assertEqual(sale.status_history.filter(action='payment_added').count(), 1)

    def test_invalid_payment(self):
        sale = self._sale()
        for amount in ('0', '-5', 'abc', None, 'NaN'):
            with self.assertRaises(InvalidPayment):
                record_payment(sale, amount, self.crm)

    def test_grant_access_below_half_fails(self):
        sale = self._sale(paid='400')
        with self.assertRaises(InsufficientPayment):
            grant_access(sale, self.admin, start=START)
        sale.refresh_from_db()
        self.assertFalse(sale.access_granted)
        self.assertFalse(sale.status_history.filter(action='access_granted').exists())

    def test_grant_access_at_half(self):
        sale = self._sale(paid='500')
        self.assertTrue(has_minimum_payment(sale))
        grant_access(sale, self.admin, start=START)
        sale.refresh_from_db()
        self.assertTrue(sale.access_granted)
        self.assertEqual(sale.access_start_date, START)
        self.assertEqual(sale.access_end_date, START + timedelta(days=120))
        self.assertEqual(calculate_access_end_date(START), START + timedelta(days=ACCESS_PERIOD_DAYS))

    def test_exemption_lifts_minimum(self):
        sale = self._sale()
        grant_exemption(sale, 'Beca', self.admin)
        sale.refresh_from_db()
        self.assertEqual(sale.exemption_granted_by, self.admin)
        grant_access(sale, self.admin, start=START)
        sale.refresh_from_db()
        self.assertTrue(sale.access_granted)

    def test_crm_user_cannot_grant_access(self):
        sale = self._sale(paid='1000')
        with self.assertRaises(PermissionDenied):
            grant_access(sale, self.crm)
        with self.assertRaises(PermissionDenied):
            grant_exemption(sale, 'x', self.crm)

    def test_viewer_cannot_record_payment(self):
        sale = self._sale()
        with self.assertRaises(PermissionDenied):
            record_payment(sale, '10', make_user('viewer', VIEWER))

    def test_update_and_revoke_access(self):
        sale = self._sale(paid='600')
        grant_access(sale, self.admin, start=START)
        later = START + timedelta(days=30)
        update_access(sale, later, self.admin)
        sale.refresh_from_db()
        self.assertEqual(sale.access_end_date, later + timedelta(days=120))

        revoke_access(sale, self.admin, reason='Reembolso')
        sale.refresh_from_db()
        self.assertFalse(sale.access_granted)
        self.assertIsNone(sale.access_end_date)
        actions = list(sale.status_history.values_list('action', flat=True))
        self.assertEqual(actions, ['sale_created', 'access_granted', 'access_updated', 'access_revoked'])

    def test_access_window(self):
        sale = self._sale(paid='500')
        grant_access(sale, self.admin, start=START)
        sale.refresh_from_db()
        self.assertTrue(is_access_active(sale, START + timedelta(days=1)))
        self.assertFalse(is_access_active(sale, START + timedelta(days=121)))
        self.assertEqual(get_remaining_days(sale, START), 120)
        self.assertEqual(get_remaining_days(sale, START + timedelta(days=200)), 0)

    def test_active_members(self):
        paying = self._sale(paid='500')
        other_lead = Lead.objects.create(name='Mario', email='m@example.com', phone='5512345679')
        create_sale(other_lead, self.crm, payment_proofs=[{'amount': '100'}])
        self.assertEqual(list(get_active_members()), [paying])

    def test_update_sale_keeps_granted_access_covered(self):
        sale = self._sale(paid='500')
        grant_access(sale, self.admin, start=START)
        with self.assertRaises(InsufficientPayment):
            update_sale(sale, self.crm, total_amount='1200')
        sale.refresh_from_db()
        self.assertEqual(sale.total_amount, Decimal('1000'))
        self.assertFalse(sale.status_history.filter(action='sale_updated').exists())

        update_sale(sale, self.crm, payment_plan='2_pagos', total_amount='900')
        sale.refresh_from_db()
        self.assertEqual((sale.payment_plan, sale.total_amount), ('2_pagos', Decimal('900')))
        entry = sale.status_history.get(action='sale_updated')
        self.assertEqual(entry.amount, Decimal('900'))
        self.assertEqual(entry.performed_by, self.crm)

    def test_update_sale_without_access_or_with_exemption(self):
        sale = self._sale(paid='100')
        update_sale(sale, self.crm, total_amount='5000')
        grant_exemption(sale, 'Beca', self.admin)
        grant_access(sale, self.admin, start=START)
        update_sale(sale, self.crm, total_amount='6000')
        sale.refresh_from_db()
        self.assertEqual(sale.total_amount, Decimal('6000'))

    def test_update_sale_unchanged_fields_write_nothing(self):
        sale = self._sale()
        update_sale(sale, self.crm, total_amount='1000', product='acceso_curso')
        self.assertFalse(sale.status_history.filter(action='sale_updated').exists())

    def test_update_sale_rejects_bad_input(self):
        sale = self._sale()
        with self.assertRaises(SaleError):
            update_sale(sale, self.crm, paid_amount='10')
        with self.assertRaises(SaleError):
            update_sale(sale, self.crm, product='unknown')
        with self.assertRaises(InvalidPayment):
            update_sale(sale, self.crm, total_amount='-1')
        with self.assertRaises(PermissionDenied):
            update_sale(sale, make_user('viewer', VIEWER), total_amount='900')


class SaleViewTest(TestCase):

    def setUp(self):
        self.admin = make_user('admin', ADMIN)
        self.crm = make_user('crm', CRM_USER)
        lead = Lead.objects.create(name='Laura', email='laura@example.com', phone='5512345678')
        self.sale = create_sale(lead, self.crm, payment_proofs=[{'amount': '500'}])

    def test_list_detail_and_members(self):
        self.client.force_login(self.crm)
        self.assertContains(self.client.get(reverse('sales:list')), 'Laura')
        self.assertEqual(self.client.get(reverse('sales:detail', args=[self.sale.pk])).status_code, 200)
        self.assertContains(self.client.get(reverse('active_members')), 'laura@example.com')
        resp = self.client.get(reverse('sales:list'), {'export': 'csv'})
        self.assertIn('laura@example.com', resp.content.decode())

    def test_add_payment(self):
        self.client.force_login(self.crm)
        resp = self.client.post(reverse('sales:add_payment', args=[self.sale.pk]), {'amount': '100'})
        self.assertRedirects(resp, reverse('sales:detail', args=[self.sale.pk]), fetch_redirect_response=False)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.paid_amount, Decimal('600'))

    def test_crm_user_grant_is_refused(self):
        self.client.force_login(self.crm)
        self.client.post(reverse('sales:grant_access', args=[self.sale.pk]))
        self.sale.refresh_from_db()
        self.assertFalse(self.sale.access_granted)

    def test_admin_grants_access_from_date(self):
        self.client.force_login(self.admin)
        self.client.post(reverse('sales:grant_access', args=[self.sale.pk]), {'start_date': '2025-02-01'})
        self.sale.refresh_from_db()
        self.assertTrue(self.sale.access_granted)
        self.assertEqual(self.sale.access_end_date - self.sale.access_start_date, timedelta(days=120))

    def test_exemption_needs_reason(self):
        self.client.force_login(self.admin)
        self.client.post(reverse('sales:grant_exemption', args=[self.sale.pk]), {'reason': ''})
        self.sale.refresh_from_db()
        self.assertFalse(self.sale.exemption_granted)

    def test_viewer_cannot_open_sales(self):
        self.client.force_login(make_user('viewer', VIEWER))
        resp = self.client.get(reverse('sales:list'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)

    def test_edit_sale_respects_granted_access(self):
        grant_access(self.sale, self.admin, start=START)
        self.client.force_login(self.crm)
        url = reverse('sales:edit', args=[self.sale.pk])
        resp = self.client.post(url, {'product': 'acceso_curso', 'payment_plan': '1_pago', 'total_amount': '1200'})
        self.assertRedirects(resp, reverse('sales:detail', args=[self.sale.pk]), fetch_redirect_response=False)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.total_amount, Decimal('1000'))

        self.client.post(url, {'product': 'acceso_curso', 'payment_plan': '2_pagos', 'total_amount': '950'})
        self.sale.refresh_from_db()
        self.assertEqual((self.sale.payment_plan, self.sale.total_amount), ('2_pagos', Decimal('950')))

    def test_viewer_cannot_edit_sale(self):
        self.client.force_login(make_user('viewer', VIEWER))
        self.client.post(reverse('sales:edit', args=[self.sale.pk]), {'total_amount': '1'})
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.total_amount, Decimal('1000'))


class SaleAdminTest(TestCase):

    def setUp(self):
        self.user = make_user('root', ADMIN)
        self.user.is_staff = self.user.is_superuser = True
        self.user.save()
        lead = Lead.objects.create(name='Laura', email='laura@example.com', phone='5512345678')
        self.sale = Sale.objects.create(lead=lead, total_amount=Decimal('1000'), paid_amount=Decimal('500'),
                                        access_granted=True, access_start_date=START,
                                        access_end_date=calculate_access_end_date(START))
        self.url = reverse('admin:sales_sale_change', args=[self.sale.pk])
        self.client.force_login(self.user)

    def _post(self, **data):
        payload = {'product': 'acceso_curso', 'payment_plan': '1_pago', 'total_amount': '1000', '_save': 'Save'}
        for prefix in ('payment_proofs', 'status_history'):
            payload.update({
                f'{prefix}-TOTAL_FORMS': '0', f'{prefix}-INITIAL_FORMS': '0',
                f'{prefix}-MIN_NUM_FORMS': '0', f'{prefix}-MAX_NUM_FORMS': '1000',
            })
        payload.update(data)
        return self.client.post(self.url, payload)

    def test_total_cannot_outgrow_granted_access(self):
        resp = self._post(total_amount='5000')
        self.assertEqual(resp.status_code, 200)
        self.assertIn('total_amount', resp.context['adminform'].form.errors)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.total_amount, Decimal('1000'))

    def test_valid_edit_goes_through_the_service(self):
        resp = self._post(total_amount='900', payment_plan='2_pagos')
        self.assertEqual(resp.status_code, 302)
        self.sale.refresh_from_db()
        self.assertEqual((self.sale.payment_plan, self.sale.total_amount), ('2_pagos', Decimal('900')))
        entry = self.sale.status_history.get(action='sale_updated')
        self.assertEqual(entry.performed_by, self.user)

    def test_money_fields_are_read_only(self):
        self._post(total_amount='900', paid_amount='9999', access_granted='')
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.paid_amount, Decimal('500'))
        self.assertTrue(self.sale.access_granted)

    def test_sales_are_not_added_from_admin(self):
        self.assertEqual(self.client.get(reverse('admin:sales_sale_add')).status_code, 403)
