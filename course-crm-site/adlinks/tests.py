import json
from datetime import timedelta
from unittest import mock

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError
from django.http import QueryDict
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from accounts.permissions import ADMIN, CRM_USER
from accounts.testing import make_user
from .exceptions import InvalidSlug, SlugTaken
from .models import AdLink, ClickEvent
from .resolver import (
    MODE_CLIENT, MODE_SERVER, build_target_url, choose_redirect_mode, merge_utm_params, resolve_redirect,
)
from .services import create_ad_link, validate_slug
from .tracking import classify_device, get_client_ip, get_link_analytics, get_location

BASE = 'https://cursos.example.com'


def make_link(slug='promo-enero', target_url='https://ext.example.com/page', **kwargs):
    return AdLink.objects.create(title=slug, slug=slug, target_url=target_url, **kwargs)


class UrlBuildingTest(TestCase):

    def test_incoming_utm_wins_over_default(self):
        link = AdLink(utm_source='fb', utm_medium='cpc')
        utm = merge_utm_params({'utm_source': 'ig', 'utm_term': 'x'}, link)
        self.assertEqual(utm, {'source': 'ig', 'medium': 'cpc', 'term': 'x'})

    def test_keys_without_value_are_omitted(self):
        self.assertEqual(merge_utm_params({}, AdLink()), {})

    def test_build_keeps_target_query_and_passes_through_params(self):
        url = build_target_url('https://ext.example.com/page?ref=a&utm_source=old',
                               {'source': 'fb'}, {'gclid': '123', 'utm_source': 'fb'})
        self.assertEqual(url, 'https://ext.example.com/page?ref=a&utm_source=fb&gclid=123')

    def test_build_on_site_path(self):
        self.assertEqual(build_target_url('/join/', {'campaign': 'jan'}, {}), '/join/?utm_campaign=jan')

    def test_repeated_params_keep_every_value(self):
        query = QueryDict('tag=a&tag=b&utm_source=x')
        url = build_target_url('/join/?tag=old&x=1', {'source': 'x'}, query)
        self.assertEqual(url, '/join/?tag=a&tag=b&x=1&utm_source=x')

    def test_bare_host_gets_root_path(self):
        self.assertEqual(build_target_url('https://ext.example.com', {}, {}), 'https://ext.example.com/')

    def test_unparseable_target_is_returned_raw(self):
        self.assertEqual(build_target_url('not a url', {'source': 'fb'}, {}), 'not a url')

    def test_redirect_mode(self):
        self.assertEqual(choose_redirect_mode('/join/', BASE), MODE_SERVER)
        self.assertEqual(choose_redirect_mode('https://cursos.example.com/x', BASE), MODE_SERVER)
        self.assertEqual(choose_redirect_mode('https://cursos.example.com:443/x', BASE), MODE_SERVER)
        self.assertEqual(choose_redirect_mode('http://cursos.example.com/x', BASE), MODE_CLIENT)
        self.assertEqual(choose_redirect_mode('https://ext.example.com/x', BASE), MODE_CLIENT)
        self.assertEqual(choose_redirect_mode('//cursos.example.com/x', BASE), MODE_SERVER)


class TrackingHelpersTest(TestCase):

    def test_client_ip(self):
        self.assertEqual(get_client_ip({'HTTP_X_FORWARDED_FOR': '1.2.3.4, 10.0.0.1'}), '1.2.3.4')
        self.assertEqual(get_client_ip({'HTTP_X_REAL_IP': '5.6.7.8'}), '5.6.7.8')
        self.assertEqual(get_client_ip({'HTTP_X_CLIENT_IP': '9.9.9.9'}), '9.9.9.9')
        self.assertEqual(get_client_ip({}), '127.0.0.1')

    def test_location(self):
        self.assertEqual(get_location({}), ('Development', 'Local', 'Localhost'))
        self.assertEqual(get_location({'HTTP_X_VERCEL_IP_COUNTRY': 'MX',
                                       'HTTP_X_VERCEL_IP_COUNTRY_REGION': 'CMX',
                                       'HTTP_X_VERCEL_IP_CITY': 'Mexico City'}),
                         ('MX', 'CMX', 'Mexico City'))
        self.assertEqual(get_location({'HTTP_CF_IPCOUNTRY': 'CO'}), ('CO', '', ''))

    def test_device(self):
        self.assertEqual(classify_device('Mozilla/5.0 (iPhone; CPU iPhone OS 17_0)'), 'Mobile')
        self.assertEqual(classify_device('Googlebot/2.1'), 'Bot')
        self.assertEqual(classify_device(''), 'Unknown')


class ResolveRedirectTest(TestCase):

    def test_ineligible_links_go_home_without_click(self):
        now = timezone.now()
        make_link('apagado', is_active=False)
        make_link('vencido', expiration_date=now - timedelta(minutes=1))
        for slug in ('', '   ', 'no-existe', 'apagado', 'vencido'):
            decision = resolve_redirect(slug, {}, {}, now=now, base_url=BASE)
            self.assertEqual(decision.url, '/')
            self.assertEqual(decision.mode, MODE_SERVER)
            self.assertFalse(decision.click_recorded)
        self.assertEqual(ClickEvent.objects.count(), 0)

    def test_future_expiration_still_redirects(self):
        make_link(expiration_date=timezone.now() + timedelta(days=1))
        decision = resolve_redirect('promo-enero', {}, {}, base_url=BASE)
        self.assertEqual(decision.url, 'https://ext.example.com/page')
        self.assertTrue(decision.click_recorded)

    def test_slug_lookup_ignores_case(self):
        make_link()
        self.assertEqual(resolve_redirect('PROMO-Enero', {}, {}, base_url=BASE).link.slug, 'promo-enero')

    def test_one_click_per_redirect(self):
        link = make_link(utm_source='fb')
        for _ in range(3):
            resolve_redirect('promo-enero', {}, {}, base_url=BASE)
        link.refresh_from_db()
        self.assertEqual(ClickEvent.objects.filter(link=link).count(), 3)
        self.assertEqual(link.total_clicks, 3)
        self.assertEqual(link.unique_clicks, 3)

    def test_click_failure_still_redirects(self):
        link = make_link()
        with mock.patch.object(ClickEvent.objects, 'create', side_effect=DatabaseError('down')):
            decision = resolve_redirect('promo-enero', {}, {}, base_url=BASE)
        self.assertEqual(decision.url, 'https://ext.example.com/page')
        self.assertFalse(decision.click_recorded)
        link.refresh_from_db()
        self.assertEqual(link.total_clicks, 0)


@override_settings(SITE_BASE_URL=BASE, CLIENT_REDIRECT_DELAY_MS=0)
class GoViewTest(TestCase):

    def test_external_target_uses_client_redirect(self):
        make_link(utm_source='fb')
        resp = self.client.get('/go/promo-enero', {'utm_campaign': 'jan'},
                               HTTP_USER_AGENT='Mozilla/5.0', HTTP_X_FORWARDED_FOR='1.2.3.4')
        self.assertEqual(resp.status_code, 200)
        self.assertTemplateUsed(resp, 'adlinks/client_redirect.html')
        self.assertEqual(resp.context['url'],
                         'https://ext.example.com/page?utm_source=fb&utm_campaign=jan')

        event = ClickEvent.objects.get()
        self.assertEqual(event.utm_params, {'source': 'fb', 'campaign': 'jan'})
        self.assertEqual(event.ip, '1.2.3.4')
        self.assertEqual(event.country, 'Development')
        self.assertTrue(event.is_unique)

    def test_relative_target_is_server_redirect(self):
        make_link('aplica', target_url='/join/')
        resp = self.client.get('/go/aplica/', {'utm_source': 'ig', 'ref': 'bio'})
        self.assertRedirects(resp, '/join/?utm_source=ig&ref=bio', fetch_redirect_response=False)

    def test_repeated_param_survives_redirect(self):
        make_link('aplica', target_url='/join/')
        resp = self.client.get('/go/aplica', {'tag': ['a', 'b']})
        self.assertRedirects(resp, '/join/?tag=a&tag=b', fetch_redirect_response=False)

    def test_same_origin_target_is_server_redirect(self):
        make_link('mismo', target_url='https://cursos.example.com/hall-of-fame/')
        resp = self.client.get('/go/mismo')
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp['Location'], 'https://cursos.example.com/hall-of-fame/')

    def test_unknown_and_empty_slug_go_home(self):
        self.assertRedirects(self.client.get('/go/nada'), '/', fetch_redirect_response=False)
        self.assertRedirects(self.client.get('/go/'), '/', fetch_redirect_response=False)

    def test_unexpected_error_goes_home(self):
        with mock.patch('adlinks.views.resolve_redirect', side_effect=RuntimeError('boom')):
            resp = self.client.get('/go/promo-enero')
        self.assertRedirects(resp, '/', fetch_redirect_response=False)


class ValidateSlugApiTest(TestCase):

    def _post(self, body):
        return self.client.post(reverse('validate_slug'), data=json.dumps(body),
                                content_type='application/json')

    def test_method_not_allowed(self):
        resp = self.client.get(reverse('validate_slug'))
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json(), {'error': 'Method not allowed'})

    def test_missing_slug(self):
        resp = self._post({})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {'error': 'Slug is required'})

    def test_invalid_json(self):
        resp = self.client.post(reverse('validate_slug'), data='{', content_type='application/json')
        self.assertEqual(resp.status_code, 400)

    def test_malformed_slug(self):
        for slug in ('ab', 'Promo', 'con espacio', 'x' * 51, 'acción'):
            data = self._post({'slug': slug}).json()
            self.assertFalse(data['isValid'], slug)
            self.assertFalse(data['isAvailable'])

    def test_available_and_taken(self):
        self.assertEqual(self._post({'slug': 'promo-enero'}).json(),
                         {'isValid': True, 'isAvailable': True, 'message': 'Slug disponible'})
        link = make_link()
        self.assertEqual(self._post({'slug': 'promo-enero'}).json()['message'], 'Este slug ya está en uso')
        self.assertTrue(self._post({'slug': 'promo-enero', 'excludeId': str(link.pk)}).json()['isAvailable'])

    def test_trailing_slash_route(self):
        resp = self.client.post('/api/ad-links/validate-slug/', data=json.dumps({'slug': 'abc'}),
                                content_type='application/json')
        self.assertEqual(resp.status_code, 200)


class AdLinkServiceTest(TestCase):

    def setUp(self):
        self.admin = make_user('admin', ADMIN)

    def test_create_then_validate(self):
        link = create_ad_link({'title': 'Promo', 'slug': ' Promo-Enero ', 'target_url': '/join/'}, self.admin)
        self.assertEqual(link.slug, 'promo-enero')
        self.assertEqual(link.created_by, self.admin)
        self.assertFalse(validate_slug('promo-enero')['isAvailable'])
        self.assertTrue(validate_slug('promo-enero', link.pk)['isAvailable'])

    def test_create_rejects_bad_and_taken_slugs(self):
        with self.assertRaises(InvalidSlug):
            create_ad_link({'title': 'x', 'slug': 'a!', 'target_url': '/'}, self.admin)
        make_link()
        with self.assertRaises(SlugTaken):
            create_ad_link({'title': 'x', 'slug': 'promo-enero', 'target_url': '/'}, self.admin)

    def test_crm_user_cannot_create(self):
        with self.assertRaises(PermissionDenied):
            create_ad_link({'title': 'x', 'slug': 'abc', 'target_url': '/'}, make_user('crm', CRM_USER))

    def test_analytics(self):
        link = make_link()
        resolve_redirect('promo-enero', {'utm_source': 'fb'},
                         {'HTTP_REFERER': 'https://facebook.com/x', 'HTTP_CF_IPCOUNTRY': 'MX'}, base_url=BASE)
        resolve_redirect('promo-enero', {}, {}, base_url=BASE)
        data = get_link_analytics(link)
        self.assertEqual(data['totalClicks'], 2)
        self.assertEqual(data['uniqueClicks'], 2)
        self.assertEqual(sum(r['clicks'] for r in data['clicksByDay']), 2)
        self.assertIn({'referrer': 'facebook.com', 'clicks': 1}, data['clicksByReferrer'])
        self.assertIn({'source': 'fb', 'clicks': 1}, data['topUtmSources'])


class AdLinkAdminViewTest(TestCase):

    def setUp(self):
        self.client.force_login(make_user('admin', ADMIN))

    def test_create_via_form(self):
        resp = self.client.post(reverse('adlinks:create'), {
            'title': 'Promo', 'slug': 'promo-enero', 'target_url': 'https://ext.example.com/page',
            'link_type': 'landing_page', 'utm_source': 'fb', 'is_active': 'on',
        })
        self.assertRedirects(resp, reverse('adlinks:list'), fetch_redirect_response=False)
        self.assertTrue(AdLink.objects.filter(slug='promo-enero', utm_source='fb').exists())

    def test_form_rejects_taken_slug_and_bad_target(self):
        make_link()
        resp = self.client.post(reverse('adlinks:create'), {
            'title': 'Otra', 'slug': 'promo-enero', 'target_url': 'javascript:alert(1)',
            'link_type': 'landing_page',
        })
        self.assertEqual(resp.status_code, 200)
        self.assertIn('slug', resp.context['form'].errors)
        self.assertIn('target_url', resp.context['form'].errors)

    def test_toggle_list_and_analytics(self):
        link = make_link()
        self.client.post(reverse('adlinks:toggle', args=[link.pk]))
        link.refresh_from_db()
        self.assertFalse(link.is_active)
        self.assertContains(self.client.get(reverse('adlinks:list')), 'promo-enero')
        self.assertEqual(self.client.get(reverse('adlinks:analytics', args=[link.pk])).status_code, 200)

    def test_crm_user_has_no_access(self):
        self.client.force_login(make_user('crm', CRM_USER))
        resp = self.client.get(reverse('adlinks:list'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)


class AdLinkDjangoAdminTest(TestCase):

    def setUp(self):
        self.user = make_user('root', ADMIN)
        self.user.is_staff = self.user.is_superuser = True
        self.user.save()
        self.client.force_login(self.user)

    def _data(self, **overrides):
        data = {'title': 'Promo', 'slug': 'promo-marzo', 'target_url': 'https://ext.example.com/page',
                'link_type': 'landing_page', 'expiration_date': '', '_save': 'Save'}
        data.update(overrides)
        return data

    def test_change_view_rejects_malformed_slug(self):
        link = make_link()
        url = reverse('admin:adlinks_adlink_change', args=[link.pk])
        resp = self.client.post(url, self._data(slug='Promo_X'))
        self.assertEqual(resp.status_code, 200)
        self.assertIn('slug', resp.context['adminform'].form.errors)
        link.refresh_from_db()
        self.assertEqual(link.slug, 'promo-enero')

        resp = self.client.post(url, self._data(slug='Promo-Marzo'))
        self.assertEqual(resp.status_code, 302)
        link.refresh_from_db()
        self.assertEqual(link.slug, 'promo-marzo')

    def test_add_view_validates_and_records_creator(self):
        resp = self.client.post(reverse('admin:adlinks_adlink_add'), self._data(slug='ab'))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(AdLink.objects.exists())

        resp = self.client.post(reverse('admin:adlinks_adlink_add'), self._data())
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(AdLink.objects.get(slug='promo-marzo').created_by, self.user)

    def test_model_validation_rejects_malformed_slug(self):
        link = AdLink(title='x', slug='Promo_X', target_url='/cursos/')
        with self.assertRaises(ValidationError) as ctx:
            link.full_clean()
        self.assertIn('slug', ctx.exception.message_dict)
