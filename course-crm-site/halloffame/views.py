# halloffame/views.py
import hmac
import json
import logging

from django.conf import settings
from django.contrib import messages
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from accounts.session import permission_required
from .exceptions import InvalidPayload, UnknownEvent, WebhookError
from .models import Member, Submission
from .scoring import month_cycle
from .services import (
    get_leaderboard, hall_of_fame_submissions, handle_event, review_submission, toggle_hall_of_fame,
)

logger = logging.getLogger(__name__)


def _authorized(request):
    secret = settings.HALL_OF_FAME_WEBHOOK_SECRET
    if not secret:
        return False
    header = request.META.get('HTTP_AUTHORIZATION', '')
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


def _int_param(params, name, default):
    value = params.get(name) or ''
    return int(value) if value.isdigit() else default


def _serialize_submission(s):
    return {
        'id': s.submission_id,
        'userId': s.member.discord_id if s.member_id else '',
        'username': s.username,
        'category': s.category,
        'points': s.points,
        'evidenceType': s.evidence_type,
        'evidenceUrl': s.evidence_url,
        'evidencePreview': s.evidence_preview,
        'platform': s.platform,
        'status': s.status,
        'hallOfFameSelected': s.hall_of_fame_selected,
        'monthCycle': s.month_cycle,
        'timestamp': s.submitted_at,
        'votes': s.votes,
    }


def _webhook_get(request):
    action = request.GET.get('action')
    limit = _int_param(request.GET, 'limit', 10)

    if action == 'leaderboard':
        kind = request.GET.get('type') or 'monthly'
        cycle = request.GET.get('month') or month_cycle(timezone.now())
        return JsonResponse({
            'leaderboard': get_leaderboard(kind, cycle, limit),
            'type': kind,
            'monthCycle': cycle if kind != 'alltime' else None,
        })

    if action == 'submissions':
        kind = request.GET.get('type') or 'hall_of_fame'
        if kind == 'hall_of_fame':
            qs = hall_of_fame_submissions(limit)
        elif kind == 'user' and request.GET.get('userId'):
            qs = Submission.objects.filter(member__discord_id=request.GET['userId'])[:limit]
        else:
            cycle = request.GET.get('month') or month_cycle(timezone.now())
            qs = Submission.objects.filter(status=Submission.STATUS_APPROVED, month_cycle=cycle)[:limit]
        return JsonResponse({'submissions': [_serialize_submission(s) for s in qs]})

    if action == 'user_profile':
        user_id = request.GET.get('userId')
        if not user_id:
            return JsonResponse({'error': 'userId required'}, status=400)
        member = Member.objects.filter(discord_id=user_id).first()
        if member is None:
            return JsonResponse({'error': 'User not found'}, status=404)
        return JsonResponse({
            'profile': {
                'discordId': member.discord_id,
                'username': member.username,
                'displayName': member.display_name,
                'portfolioUrl': member.portfolio_url,
                'socialMediaUrl': member.social_media_url,
                'totalPoints': member.total_points,
                'monthlyPoints': member.monthly_points,
                'level': member.level,
                'joinedAt': member.joined_at,
                'lastActive': member.last_active,
            },
            'recentSubmissions': [_serialize_submission(s) for s in member.submissions.all()[:5]],
        })

    if action == 'admin_queue':
        if not _authorized(request):
            return JsonResponse({'error': 'Unauthorized'}, status=401)
        status = request.GET.get('status') or Submission.STATUS_PENDING
        qs = Submission.objects.filter(status=status)[:_int_param(request.GET, 'limit', 50)]
        return JsonResponse({'queue': [_serialize_submission(s) for s in qs], 'status': status})

    return JsonResponse({'error': 'Invalid action'}, status=400)


@csrf_exempt
def webhook(request):
    """
    POST: bearer-authenticated events from the Discord bot.
    GET ?action=...: read-only leaderboard / submission feeds.
    """
    if request.method == 'GET':
        return _webhook_get(request)
    if request.method != 'POST':
        return JsonResponse({'error': 'Method not allowed'}, status=405)

    if not _authorized(request):
        logger.warning("Hall of fame webhook call with a bad secret")
        return JsonResponse({'error': 'Unauthorized'}, status=401)

    try:
        payload = json.loads(request.body or b'')
    except ValueError:
        return JsonResponse({'error': 'Invalid JSON body'}, status=400)
    if not isinstance(payload, dict):
        return JsonResponse({'error': 'Invalid JSON body'}, status=400)

    try:
        handle_event(payload)
    except UnknownEvent as exc:
        logger.warning("Hall of fame webhook: unknown event %r", exc.event_type)
        return JsonResponse({'error': str(exc)}, status=400)
    except InvalidPayload as exc:
        logger.warning("Hall of fame webhook %s rejected: %s", payload.get('eventType'), exc)
        return JsonResponse({'error': str(exc)}, status=400)

    return JsonResponse({'success': True})


# ---- public page ----
def hall_of_fame(request):
    cycle = month_cycle(timezone.now())
    return render(request, 'halloffame/hall_of_fame.html', {
        'submissions': hall_of_fame_submissions(),
        'monthly': get_leaderboard('monthly', cycle),
        'alltime': get_leaderboard('alltime'),
        'cycle': cycle,
    })


# ---- admin ----
@permission_required('hall_of_fame:read')
def admin_submissions(request):
    status = (request.GET.get('status') or 'pending').strip().lower()
    q      = (request.GET.get('q') or '').strip()

    qs = Submission.objects.select_related('member').order_by('-submitted_at', '-id')
    if status in dict(Submission.STATUS_CHOICES):
        qs = qs.filter(status=status)
    if q:
        qs = qs.filter(Q(username__icontains=q) | Q(submission_id__icontains=q) |
                       Q(member__discord_id__icontains=q))

    page = Paginator(qs, 50).get_page(request.GET.get('page'))
    return render(request, 'halloffame/admin_submissions.html', {
        'page': page,
        'status': status,
        'q': q,
        'status_choices': Submission.STATUS_CHOICES,
    })


@permission_required('hall_of_fame:write')
@require_POST
def admin_review(request, submission_id):
    try:
        review_submission(submission_id, request.POST.get('status'),
                          request.user.get_username(), (request.POST.get('reason') or '').strip())
    except WebhookError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, 'Submission reviewed.')
    return redirect('halloffame:admin')


@permission_required('hall_of_fame:write')
@require_POST
def admin_toggle(request, submission_id):
    try:
        toggle_hall_of_fame(submission_id, request.POST.get('selected') == '1', request.user.get_username())
    except WebhookError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, 'Hall of fame selection updated.')
    return redirect('halloffame:admin')
