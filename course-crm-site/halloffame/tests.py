import json
from datetime import datetime, timezone as dt_timezone

from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.permissions import ADMIN, CRM_USER
from accounts.testing import make_user
from .exceptions import InvalidPayload, UnknownEvent
from .models import Member, Submission
from .scoring import get_user_level, month_cycle
from .services import get_leaderboard, handle_event, review_submission

NOW = datetime(2025, 3, 15, 18, 0, tzinfo=dt_timezone.utc)
SECRET = 'bot-secret'


def win(submission_id='s1', category='brand', user='u1', **extra):
    return dict({'eventType': 'win_submission', 'submissionId': submission_id, 'userId': user,
                 'username': 'editor', 'category': category,
                 'evidenceUrl': 'https://drive.example.com/f'}, **extra)


class ScoringTest(TestCase):

    def test_levels(self):
        self.assertEqual(get_user_level(0), 'Aprendiz Creativo')
        self.assertEqual(get_user_level(99), 'Aprendiz Creativo')
        self.assertEqual(get_user_level(100), 'Editor en Acción')
        self.assertEqual(get_user_level(250), 'Influencer')
        self.assertEqual(get_user_level(300), 'Conquistador Visual')
        self.assertEqual(get_user_level(1000), 'Master Persuasivo')

    def test_month_cycle(self):
        self.assertEqual(month_cycle(NOW), '2025-03')


class EventHandlingTest(TestCase):

    def test_user_created_upserts_profile(self):
        handle_event({'eventType': 'user_created', 'discordId': 'u1', 'username': 'ana',
                      'portfolioUrl': 'https://ana.example.com'}, now=NOW)
        member = Member.objects.get(discord_id='u1')
        member.total_points = 40
        member.save()
        handle_event({'eventType': 'user_created', 'discordId': 'u1', 'username': 'ana2'}, now=NOW)
        member.refresh_from_db()
        self.assertEqual(member.username, 'ana2')
        self.assertEqual(member.total_points, 40)

    def test_win_submission_is_pending_with_category_points(self):
        submission = handle_event(win(points=9999), now=NOW)
        self.assertEqual(submission.status, Submission.STATUS_PENDING)
        self.assertEqual(submission.points, 20)
        self.assertEqual(submission.month_cycle, '2025-03')
        self.assertEqual(Member.objects.get(discord_id='u1').total_points, 0)

    def test_win_submission_rejects_unknown_category(self):
        with self.assertRaises(InvalidPayload):
            handle_event(win(category='fame'), now=NOW)

    def test_approval_awards_points_once(self):
        handle_event(win(category='monetization'), now=NOW)
        handle_event({'eventType': 'admin_review', 'submissionId': 's1', 'status': 'approved',
                      'reviewedBy': 'mod'}, now=NOW)
        handle_event({'eventType': 'admin_review', 'submissionId': 's1', 'status': 'approved'}, now=NOW)
        member = Member.objects.get(discord_id='u1')
        self.assertEqual(member.total_points, 100)
        self.assertEqual(member.monthly_points, {'2025-03': 100})
        self.assertEqual(member.level, 'Editor en Acción')

    def test_rejection_keeps_reason_and_points(self):
        handle_event(win(), now=NOW)
        review_submission('s1', 'rejected', 'mod', 'Sin evidencia', now=NOW)
        submission = Submission.objects.get(submission_id='s1')
        self.assertEqual(submission.rejection_reason, 'Sin evidencia')
        self.assertEqual(submission.member.total_points, 0)

    def test_review_of_missing_submission(self):
        with self.assertRaises(InvalidPayload):
            review_submission('nope', 'approved', 'mod')

    def test_toggle(self):
        handle_event(win(), now=NOW)
        handle_event({'eventType': 'hall_of_fame_toggle', 'submissionId': 's1',
                      'hallOfFameSelected': True, 'toggledBy': 'mod'}, now=NOW)
        self.assertTrue(Submission.objects.get(submission_id='s1').hall_of_fame_selected)

    def test_new_submission_is_auto_approved_once(self):
        payload = {'eventType': 'new_submission', 'submissionId': 'v1', 'authorId': 'u9',
                   'authorUsername': 'vid', 'videoUrl': 'https://youtu.be/abcdefghijk',
                   'platform': 'youtube', 'videoId': 'abcdefghijk', 'weekNumber': 11}
        handle_event(payload, now=NOW)
        handle_event(payload, now=NOW)
        submission = Submission.objects.get(submission_id='v1')
        self.assertEqual(submission.status, Submission.STATUS_APPROVED)
        self.assertTrue(submission.hall_of_fame_selected)
        self.assertIn('abcdefghijk', submission.evidence_preview)
        self.assertEqual(Member.objects.get(discord_id='u9').total_points, 40)

    def test_vote_change(self):
        handle_event(win(), now=NOW)
        handle_event({'eventType': 'vote_change', 'submissionId': 's1', 'votes': 7}, now=NOW)
        self.assertEqual(Submission.objects.get(submission_id='s1').votes, 7)
        with self.assertRaises(InvalidPayload):
            handle_event({'eventType': 'vote_change', 'submissionId': 's1', 'votes': 'many'}, now=NOW)

    def test_unknown_event(self):
        with self.assertRaises(UnknownEvent):
            handle_event({'eventType': 'party'})

    def test_leaderboard(self):
        for sid, user, category in (('a', 'u1', 'results'), ('b', 'u2', 'learning'), ('c', 'u1', 'brand')):
            handle_event(win(sid, category, user), now=NOW)
            review_submission(sid, 'approved', 'mod', now=NOW)
        rows = get_leaderboard('monthly', '2025-03')
        self.assertEqual([(r['rank'], r['userId'], r['points']) for r in rows],
                         [(1, 'u1', 60), (2, 'u2', 10)])
        self.assertEqual(get_leaderboard('monthly', '2025-02'), [])
        self.assertEqual(get_leaderboard('alltime', limit=1)[0]['userId'], 'u1')


@override_settings(HALL_OF_FAME_WEBHOOK_SECRET=SECRET)
class WebhookViewTest(TestCase):

    url = '/api/webhook/hall-of-fame'

    def _post(self, body, secret=SECRET, raw=None):
        headers = {'HTTP_AUTHORIZATION': f'Bearer {secret}'} if secret else {}
        return self.client.post(self.url, data=raw if raw is not None else json.dumps(body),
                                content_type='application/json', **headers)

    def test_missing_or_wrong_secret(self):
        self.assertEqual(self._post(win(), secret=None).status_code, 401)
        resp = self._post(win(), secret='wrong')
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {'error': 'Unauthorized'})
        self.assertFalse(Submission.objects.exists())

    @override_settings(HALL_OF_FAME_WEBHOOK_SECRET='')
    def test_unset_secret_rejects_everything(self):
        self.assertEqual(self._post(win(), secret='').status_code, 401)
        self.assertEqual(self.client.post(self.url, data=json.dumps(win()), content_type='application/json',
                                          HTTP_AUTHORIZATION='Bearer ').status_code, 401)

    def test_bad_requests(self):
        self.assertEqual(self._post(None, raw='{not json').status_code, 400)
        resp = self._post({'eventType': 'party'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {'error': 'Invalid event type'})
        self.assertEqual(self._post({'eventType': 'win_submission'}).status_code, 400)

    def test_event_is_applied(self):
        resp = self._post(win())
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {'success': True})
        self.assertTrue(Submission.objects.filter(submission_id='s1').exists())

    def test_trailing_slash_and_method(self):
        self.assertEqual(self.client.post(self.url + '/', data=json.dumps(win()),
                                          content_type='application/json',
                                          HTTP_AUTHORIZATION=f'Bearer {SECRET}').status_code, 200)
        self.assertEqual(self.client.put(self.url).status_code, 405)

    def test_get_feeds(self):
        self._post({'eventType': 'new_submission', 'submissionId': 'v1', 'authorId': 'u9',
                    'videoUrl': 'https://example.com/v.mp4'})
        board = self.client.get(self.url, {'action': 'leaderboard', 'type': 'alltime'}).json()
        self.assertEqual(board['leaderboard'][0]['userId'], 'u9')
        feed = self.client.get(self.url, {'action': 'submissions'}).json()
        self.assertEqual([s['id'] for s in feed['submissions']], ['v1'])
        profile = self.client.get(self.url, {'action': 'user_profile', 'userId': 'u9'}).json()
        self.assertEqual(profile['profile']['totalPoints'], 40)
        self.assertEqual(self.client.get(self.url, {'action': 'user_profile', 'userId': 'x'}).status_code, 404)
        self.assertEqual(self.client.get(self.url, {'action': 'bogus'}).status_code, 400)

    def test_admin_queue_needs_secret(self):
        self._post(win())
        self.assertEqual(self.client.get(self.url, {'action': 'admin_queue'}).status_code, 401)
        resp = self.client.get(self.url, {'action': 'admin_queue'}, HTTP_AUTHORIZATION=f'Bearer {SECRET}')
        self.assertEqual(len(resp.json()['queue']), 1)


class HallOfFamePagesTest(TestCase):

    def setUp(self):
        handle_event(win(), now=NOW)

    def test_public_page(self):
        review_submission('s1', 'approved', 'mod', now=NOW)
        handle_event({'eventType': 'hall_of_fame_toggle', 'submissionId': 's1', 'hallOfFameSelected': True})
        resp = self.client.get(reverse('hall_of_fame'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.context['submissions']), 1)

    def test_admin_review_from_panel(self):
        self.client.force_login(make_user('admin', ADMIN))
        self.assertContains(self.client.get(reverse('halloffame:admin')), 's1')
        self.client.post(reverse('halloffame:review', args=['s1']), {'status': 'approved'})
        submission = Submission.objects.get(submission_id='s1')
        self.assertEqual(submission.status, 'approved')
        self.assertEqual(submission.reviewed_by, 'admin')
        self.assertEqual(submission.member.total_points, 20)

        self.client.post(reverse('halloffame:toggle', args=['s1']), {'selected': '1'})
        self.assertTrue(Submission.objects.get(submission_id='s1').hall_of_fame_selected)

    def test_crm_user_cannot_open_panel(self):
        self.client.force_login(make_user('crm', CRM_USER))
        resp = self.client.get(reverse('halloffame:admin'))
        self.assertRedirects(resp, reverse('accounts:unauthorized'), fetch_redirect_response=False)
