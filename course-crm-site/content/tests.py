from django.core.exceptions import PermissionDenied
from django.template import Context, Template
from django.test import TestCase
from django.urls import reverse

from accounts.permissions import ADMIN, CRM_USER, VIEWER
from accounts.testing import make_user
from .models import ContentItem
from .services import get_content, get_section, render_content, update_content
from .variants import TextContent, VideoContent, variant_for, youtube_id


class ContentLookupTest(TestCase):

    def setUp(self):
        ContentItem.objects.create(section='hero', key='title', value='Edita como pro', position=1)
        ContentItem.objects.create(section='hero', key='subtitle', value='En 120 días', position=2)
        ContentItem.objects.create(section='benefits', key='one', value='Comunidad')

    def test_get_content(self):
        self.assertEqual(get_content('hero', 'title'), 'Edita como pro')
        self.assertEqual(get_content('hero', 'missing', 'fallback'), 'fallback')
        self.assertEqual(get_content('nope', 'title'), '')

    def test_get_section_in_position_order(self):
        self.assertEqual(list(get_section('hero').items()),
                         [('title', 'Edita como pro'), ('subtitle', 'En 120 días')])
        self.assertEqual(get_section('empty'), {})

    def test_template_tags(self):
        html = Template('{% load content_tags %}<h1>{% content "hero" "title" %}</h1>'
                        '{% content_value "hero" "missing" "x" %}').render(Context())
        self.assertEqual(html, '<h1>Edita como pro</h1>x')

    def test_home_page(self):
        resp = self.client.get(reverse('home'))
        self.assertContains(resp, 'Edita como pro')
        self.assertContains(resp, 'Comunidad')


class VariantTest(TestCase):

    def test_text_is_escaped(self):
        item = ContentItem(section='s', key='k', value='<b>hola</b>')
        self.assertEqual(variant_for(item).render(), '&lt;b&gt;hola&lt;/b&gt;')

    def test_multiline_text_becomes_paragraphs(self):
        item = ContentItem(section='s', key='k', value='uno\n\ndos <i>')
        self.assertEqual(TextContent(item).render(), '<p>uno</p>\n\n<p>dos &lt;i&gt;</p>')

    def test_image(self):
        item = ContentItem(section='s', key='k', kind='image', label='Logo', value='https://cdn.example.com/a.png')
        self.assertIn('src="https://cdn.example.com/a.png"', variant_for(item).render())
        self.assertEqual(variant_for(ContentItem(kind='image', value='')).render(), '')

    def test_youtube(self):
        self.assertEqual(youtube_id('https://www.youtube.com/watch?v=dQw4w9WgXcQ'), 'dQw4w9WgXcQ')
        self.assertEqual(youtube_id('https://youtu.be/dQw4w9WgXcQ'), 'dQw4w9WgXcQ')
        self.assertIsNone(youtube_id('https://vimeo.com/123'))
        item = ContentItem(section='s', key='k', kind='video', value='https://youtu.be/dQw4w9WgXcQ')
        self.assertIn('youtube.com/embed/dQw4w9WgXcQ', VideoContent(item).render())
        item.value = 'https://cdn.example.com/v.mp4'
        self.assertIn('<video src="https://cdn.example.com/v.mp4"', VideoContent(item).render())

    def test_unknown_kind_falls_back_to_text(self):
        self.assertIsInstance(variant_for(ContentItem(kind='audio', value='x')), TextContent)

    def test_render_content_default(self):
        self.assertEqual(render_content('hero', 'missing', 'def'), 'def')


class ContentEditTest(TestCase):

    def setUp(self):
        self.item = ContentItem.objects.create(section='hero', key='title', value='Viejo')

    def test_update_needs_write(self):
        with self.assertRaises(PermissionDenied):
            update_content(self.item, 'Nuevo', make_user('viewer', VIEWER))
        admin = make_user('admin', ADMIN)
        update_content(self.item, 'Nuevo', admin)
        self.item.refresh_from_db()
        self.assertEqual(self.item.value, 'Nuevo')
        self.assertEqual(self.item.updated_by, admin)

    def test_section_edit_view(self):
        self.client.force_login(make_user('admin', ADMIN))
        self.assertContains(self.client.get(reverse('content:sections')), 'hero')
        resp = self.client.post(reverse('content:section', args=['hero']), {'title': 'Nuevo'})
        self.assertRedirects(resp, reverse('content:section', args=['hero']), fetch_redirect_response=False)
        self.item.refresh_from_db()
        self.assertEqual(self.item.value, 'Nuevo')

    def test_unknown_section_is_404(self):
        self.client.force_login(make_user('admin', ADMIN))
        self.assertEqual(self.client.get(reverse('content:section', args=['nada'])).status_code, 404)

    def test_crm_user_cannot_open_content(self):
        self.client.force_login(make_user('crm', CRM_USER))
        resp = self.client.get(reverse('content:sections'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)
