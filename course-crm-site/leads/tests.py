import json
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.urls import reverse

from accounts.permissions import ADMIN, CRM_USER, VIEWER
from accounts.testing import make_user
from sales.models import Sale
from .exceptions import InvalidTransition, SaleRequired
from .forms import LeadIntakeForm
from .models import Lead, LeadStatusHistory
from .transitions import allowed_next_statuses, archive_lead, can_transition, transition_lead
from .validation import validate_phone


def make_lead(**kwargs):
    data = dict(name='Laura', email='laura@example.com', country_code='+52', phone='5512345678')
    data.update(kwargs)
    return Lead.objects.create(**data)


INTAKE = {
    'name': ' Laura Pérez ', 'email': 'laura@example.com', 'country_code': '+52',
    'phone': '55 1234 5678', 'role': 'Editor', 'level': 'Intermedio', 'software': 'Premiere',
    'clients': '1-5', 'investment': 'Sí', 'why': 'Quiero crecer',
}


class PhoneValidationTest(TestCase):

    def test_valid_numbers(self):
        self.assertEqual(validate_phone('55 1234 5678', '+52'), (True, ''))
        self.assertEqual(validate_phone('3001234567', '+57'), (True, ''))

    def test_invalid_number_carries_example(self):
        ok, message = validate_phone('12345', '+57')
        self.assertFalse(ok)
        self.assertIn('3001234567', message)

    def test_unknown_country(self):
        self.assertFalse(validate_phone('5512345678', '+1')[0])


class TransitionRulesTest(TestCase):

    def setUp(self):
        self.crm = make_user('crm', CRM_USER)
        self.viewer = make_user('viewer', VIEWER)

    def test_table(self):
        self.assertTrue(can_transition('lead', 'onboarding'))
        self.assertTrue(can_transition('onboarding', 'sale'))
        self.assertFalse(can_transition('lead', 'sale'))
        self.assertFalse(can_transition('rejected', 'sale'))
        self.assertFalse(can_transition('sale', 'lead'))
        self.assertEqual(allowed_next_statuses(make_lead()), ['onboarding', 'rejected'])

    def test_transition_appends_history(self):
        lead = make_lead()
        entry = transition_lead(lead, 'onboarding', self.crm)
        lead.refresh_from_db()
        self.assertEqual(lead.status, 'onboarding')
        self.assertEqual(entry.previous_status, 'lead')
        self.assertEqual(entry.new_status, 'onboarding')
        self.assertEqual(entry.performed_by, self.crm)
        self.assertTrue(lead.current_status_matches_history())

    def test_lead_cannot_jump_to_sale(self):
        lead = make_lead()
        with self.assertRaises(InvalidTransition):
            transition_lead(lead, 'sale', self.crm, sale_data={'payment_plan': '1_pago'})
        lead.refresh_from_db()
        self.assertEqual(lead.status, 'lead')
        self.assertFalse(Sale.objects.exists())
        self.assertFalse(LeadStatusHistory.objects.exists())

    def test_rejected_is_terminal(self):
        lead = make_lead()
        transition_lead(lead, 'rejected', self.crm)
        with self.assertRaises(InvalidTransition):
            transition_lead(lead, 'onboarding', self.crm)
        self.assertEqual(lead.status_history.count(), 1)

    def test_sale_needs_sale_data(self):
        lead = make_lead(status='onboarding')
        with self.assertRaises(SaleRequired):
            transition_lead(lead, 'sale', self.crm)
        lead.refresh_from_db()
        self.assertEqual(lead.status, 'onboarding')

    def test_sale_is_created_with_the_transition(self):
        lead = make_lead(status='onboarding')
        entry = transition_lead(lead, 'sale', self.crm, sale_data={
            'payment_plan': '2_pagos',
            'payment_proofs': [{'amount': '600', 'image_url': 'https://img.example.com/p.png'}],
        })
        lead.refresh_from_db()
        sale = lead.get_sale()
        self.assertEqual(lead.status, 'sale')
        self.assertEqual(sale.total_amount, Decimal('1200'))
        self.assertEqual(sale.paid_amount, Decimal('600'))
        self.assertEqual(sale.sale_user, self.crm)
        created = sale.status_history.get(action='sale_created')
        self.assertEqual(created.performed_at, entry.performed_at)
        self.assertEqual(created.performed_by, entry.performed_by)

    def test_viewer_cannot_transition(self):
        lead = make_lead()
        with self.assertRaises(PermissionDenied):
            transition_lead(lead, 'onboarding', self.viewer)
        self.assertFalse(LeadStatusHistory.objects.exists())

    def test_archive_needs_delete_permission(self):
        lead = make_lead()
        with self.assertRaises(PermissionDenied):
            archive_lead(lead, self.crm)
        archive_lead(lead, make_user('admin', ADMIN))
        lead.refresh_from_db()
        self.assertTrue(lead.is_deleted)
        self.assertIsNotNone(lead.deleted_at)


class IntakeViewTest(TestCase):

    def test_intake_form_normalizes_phone(self):
        form = LeadIntakeForm(data=INTAKE)
        self.assertTrue(form.is_valid(), form.errors)
        lead = form.save()
        self.assertEqual(lead.phone, '5512345678')
        self.assertEqual(lead.name, 'Laura Pérez')
        self.assertEqual(lead.status, 'lead')

    def test_join_creates_lead(self):
        resp = self.client.post(reverse('join'), INTAKE)
        self.assertRedirects(resp, reverse('join_thanks'))
        self.assertEqual(Lead.objects.count(), 1)

    def test_join_rejects_bad_phone(self):
        resp = self.client.post(reverse('join'), dict(INTAKE, phone='123'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, '5512345678')
        self.assertFalse(Lead.objects.exists())


class LeadAdminViewTest(TestCase):

    def setUp(self):
        self.crm = make_user('crm', CRM_USER)
        self.lead = make_lead()

    def test_viewer_is_unauthorized(self):
        self.client.force_login(make_user('viewer', VIEWER))
        resp = self.client.get(reverse('leads:list'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)

    def test_list_and_detail(self):
        self.client.force_login(self.crm)
        resp = self.client.get(reverse('leads:list'), {'q': 'laura'})
        self.assertContains(resp, 'laura@example.com')
        resp = self.client.get(reverse('leads:detail', args=[self.lead.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.context['can_write'])
        self.assertFalse(resp.context['can_delete'])

    def test_csv_export(self):
        self.client.force_login(self.crm)
        resp = self.client.get(reverse('leads:list'), {'export': 'csv'})
        self.assertIn('laura@example.com', resp.content.decode())

    def test_transition_view(self):
        self.client.force_login(self.crm)
        self.client.post(reverse('leads:transition', args=[self.lead.pk]), {'status': 'onboarding'})
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, 'onboarding')

        self.client.post(reverse('leads:transition', args=[self.lead.pk]),
                         {'status': 'sale', 'payment_plan': '1_pago', 'paid_amount': '500'})
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, 'sale')
        self.assertEqual(self.lead.get_sale().paid_amount, Decimal('500'))


class LeadApiTest(TestCase):

    def setUp(self):
        self.client.force_login(make_user('crm', CRM_USER))
        self.lead = make_lead()

    def _transition(self, body):
        return self.client.post(reverse('leads:api_transition', args=[self.lead.pk]),
                                data=json.dumps(body), content_type='application/json')

    def test_invalid_transition_is_conflict(self):
        resp = self._transition({'status': 'sale', 'sale': {'paymentPlan': '1_pago'}})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()['code'], 'invalid_transition')

    def test_transition_to_sale(self):
        self.assertEqual(self._transition({'status': 'onboarding'}).status_code, 200)
        resp = self._transition({'status': 'sale', 'sale': {
            'paymentPlan': '3_pagos', 'paymentProofs': [{'amount': 650}]}})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['status'], 'sale')
        self.assertIsNotNone(data['saleId'])

    def test_sale_without_data_is_bad_request(self):
        self._transition({'status': 'onboarding'})
        self.assertEqual(self._transition({'status': 'sale'}).status_code, 400)

    def test_payment_proofs_must_be_a_list(self):
        self._transition({'status': 'onboarding'})
        for proofs in (5, '650', {'amount': 650}):
            resp = self._transition({'status': 'sale', 'sale': {'paymentPlan': '1_pago', 'paymentProofs': proofs}})
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()['error'], 'paymentProofs must be a list')
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, 'onboarding')

    def test_detail_includes_history(self):
        self._transition({'status': 'onboarding'})
        resp = self.client.get(reverse('leads:api_detail', args=[self.lead.pk]))
        self.assertEqual(len(resp.json()['statusHistory']), 1)

    def test_forbidden_for_viewer(self):
        self.client.force_login(make_user('viewer', VIEWER))
        resp = self.client.get(reverse('leads:api_list'))
        self.assertEqual(resp.status_code, 403)
