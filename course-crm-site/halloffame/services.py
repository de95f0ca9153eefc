# halloffame/services.py
"""
Hall-of-fame events. The Discord bot posts them to the webhook; the admin page
reuses the review and toggle handlers.
"""
import logging
from datetime import timezone as dt_timezone

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import InvalidPayload, UnknownEvent
from .models import Member, Submission
from .scoring import CATEGORIES, LEGACY_CATEGORY, get_user_level, month_cycle

logger = logging.getLogger(__name__)


def _required(data, *names):
    missing = [n for n in names if not data.get(n)]
    if missing:
        raise InvalidPayload(f"Missing fields: {', '.join(missing)}")
    return [str(data[n]) for n in names]


def _timestamp(value, now):
    if not value:
        return now
    parsed = parse_datetime(str(value))
    if parsed is None:
        return now
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _get_submission(submission_id, lock=True):
    qs = Submission.objects.select_for_update() if lock else Submission.objects
    submission = qs.filter(submission_id=submission_id).first()
    if submission is None:
        raise InvalidPayload(f"Submission {submission_id} not found")
    return submission


def award_points(member, points, cycle, now):
    """Add points to the member's total and to the month bucket, then relevel."""
    member = Member.objects.select_for_update().get(pk=member.pk)
    member.total_points += points
    monthly = dict(member.monthly_points or {})
    monthly[cycle] = int(monthly.get(cycle, 0)) + points
    member.monthly_points = monthly
    member.level = get_user_level(member.total_points)
    member.last_active = now
    member.save(update_fields=['total_points', 'monthly_points', 'level', 'last_active'])
    logger.info("Awarded %s points to %s (total %s, %s)", points, member.username,
                member.total_points, member.level)
    return member


# ---- event handlers ----

def handle_user_created(data, now):
    discord_id, username = _required(data, 'discordId', 'username')
    member, created = Member.objects.get_or_create(
        discord_id=discord_id,
        defaults={'username': username, 'joined_at': now, 'last_active': now},
    )
    member.username = username
    member.display_name = data.get('displayName') or username
    member.portfolio_url = data.get('portfolioUrl') or ''
    member.social_media_url = data.get('socialMediaUrl') or ''
    member.last_active = now
    member.save()
    logger.info("Member %s %s", discord_id, 'created' if created else 'updated')
    return member


def handle_win_submission(data, now):
    submission_id, user_id = _required(data, 'submissionId', 'userId')
    category = data.get('category')
    if category not in CATEGORIES:
        raise InvalidPayload(f"Invalid category: {category}")
    username = data.get('username') or ''

    member, _ = Member.objects.get_or_create(
        discord_id=user_id, defaults={'username': username or user_id, 'joined_at': now},
    )
    Member.objects.filter(pk=member.pk).update(last_active=now)

    submission, _ = Submission.objects.update_or_create(
        submission_id=submission_id,
        defaults={
            'member': member,
            'username': username,
            'category': category,
            # points always come from the category table
            'points': CATEGORIES[category].points,
            'evidence_type': data.get('evidenceType') or 'link',
            'evidence_url': data.get('evidenceUrl') or '',
            'evidence_preview': data.get('evidencePreview') or '',
            'platform': data.get('platform') or '',
            'file_name': data.get('fileName') or '',
            'file_size': int(data.get('fileSize') or 0),
            'status': Submission.STATUS_PENDING,
            'hall_of_fame_selected': False,
            'month_cycle': data.get('monthCycle') or month_cycle(now),
            'submitted_at': _timestamp(data.get('timestamp'), now),
        },
    )
    logger.info("New %s submission %s from %s", category, submission_id, username)
    return submission


def review_submission(submission_id, status, reviewed_by, rejection_reason='', now=None):
    if status not in (Submission.STATUS_APPROVED, Submission.STATUS_REJECTED):
        raise InvalidPayload(f"Invalid review status: {status}")
    now = now or timezone.now()

    with transaction.atomic():
        submission = _get_submission(submission_id)
        was_approved = submission.status == Submission.STATUS_APPROVED
        submission.status = status
        submission.reviewed_at = now
        submission.reviewed_by = reviewed_by or 'admin'
        if status == Submission.STATUS_REJECTED and rejection_reason:
            submission.rejection_reason = rejection_reason
        submission.save()

        # approving twice must not pay twice
        if status == Submission.STATUS_APPROVED and not was_approved and submission.member_id:
            award_points(submission.member, submission.points, submission.month_cycle, now)

    logger.info("Submission %s %s by %s", submission_id, status, submission.reviewed_by)
    return submission


def handle_admin_review(data, now):
    submission_id, status = _required(data, 'submissionId', 'status')
    return review_submission(submission_id, status, data.get('reviewedBy'),
                             data.get('rejectionReason') or '', now=now)


def toggle_hall_of_fame(submission_id, selected, toggled_by, now=None):
    now = now or timezone.now()
    with transaction.atomic():
        submission = _get_submission(submission_id)
        submission.hall_of_fame_selected = bool(selected)
        submission.toggled_at = now
        submission.toggled_by = toggled_by or 'admin'
        submission.save(update_fields=['hall_of_fame_selected', 'toggled_at', 'toggled_by'])
    logger.info("Hall of fame %s for submission %s",
                'selected' if submission.hall_of_fame_selected else 'deselected', submission_id)
    return submission


def handle_hall_of_fame_toggle(data, now):
    submission_id, = _required(data, 'submissionId')
    if 'hallOfFameSelected' not in data:
        raise InvalidPayload("Missing fields: hallOfFameSelected")
    return toggle_hall_of_fame(submission_id, data['hallOfFameSelected'], data.get('toggledBy'), now=now)


def handle_new_submission(data, now):
    """Weekly video contest entry: auto-approved, featured, worth a results win."""
    submission_id, author_id, video_url = _required(data, 'submissionId', 'authorId', 'videoUrl')
    username = data.get('authorUsername') or author_id
    platform = data.get('platform') or 'unknown'
    video_id = data.get('videoId') or ''
    cycle = month_cycle(now)
    points = CATEGORIES[LEGACY_CATEGORY].points

    member, _ = Member.objects.get_or_create(
        discord_id=author_id,
        defaults={'username': username, 'display_name': username,
                  'avatar_url': data.get('authorAvatar') or '', 'joined_at': now},
    )
    submission, created = Submission.objects.get_or_create(
        submission_id=submission_id,
        defaults={
            'member': member,
            'username': username,
            'category': LEGACY_CATEGORY,
            'points': points,
            'evidence_type': 'video',
            'evidence_url': video_url,
            'evidence_preview': (f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
                                 if platform == 'youtube' and video_id else ''),
            'platform': platform,
            'status': Submission.STATUS_APPROVED,
            'hall_of_fame_selected': True,
            'month_cycle': cycle,
            'submitted_at': _timestamp(data.get('timestamp'), now),
            'reviewed_at': now,
            'reviewed_by': 'legacy_system',
            'week_number': data.get('weekNumber') or None,
        },
    )
    if created:
        award_points(member, points, cycle, now)
    logger.info("Contest submission %s from %s: %s", submission_id, username, video_url)
    return submission


def handle_vote_change(data, now):
    submission_id, = _required(data, 'submissionId')
    try:
        votes = max(0, int(data.get('votes') or 0))
    except (TypeError, ValueError):
        raise InvalidPayload("votes must be a number")
    with transaction.atomic():
        submission = _get_submission(submission_id)
        submission.votes = votes
        submission.save(update_fields=['votes'])
    logger.info("Votes for submission %s: %s", submission_id, votes)
    return submission


EVENT_HANDLERS = {
    'user_created': handle_user_created,
    'win_submission': handle_win_submission,
    'admin_review': handle_admin_review,
    'hall_of_fame_toggle': handle_hall_of_fame_toggle,
    'new_submission': handle_new_submission,
    'vote_change': handle_vote_change,
}


def handle_event(payload, now=None):
    event_type = payload.get('eventType')
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        raise UnknownEvent(event_type)
    with transaction.atomic():
        return handler(payload, now or timezone.now())


# ---- queries ----

def hall_of_fame_submissions(limit=24):
    return (Submission.objects
            .filter(status=Submission.STATUS_APPROVED, hall_of_fame_selected=True)
            .select_related('member')
            .order_by('-submitted_at')[:limit])


def get_leaderboard(kind='monthly', cycle=None, limit=10):
    """Ranked rows; monthly boards only include members with points that month."""
    if kind == 'alltime':
        rows = [(m, m.total_points) for m in Member.objects.order_by('-total_points', 'username')[:limit]]
    else:
        cycle = cycle or month_cycle(timezone.now())
        rows = [(m, m.points_for(cycle)) for m in Member.objects.all()]
        rows = sorted((r for r in rows if r[1] > 0), key=lambda r: (-r[1], r[0].username))[:limit]
    return [{
        'rank': i,
        'userId': m.discord_id,
        'username': m.username,
        'displayName': m.display_name or m.username,
        'portfolioUrl': m.portfolio_url,
        'points': points,
        'level': m.level,
    } for i, (m, points) in enumerate(rows, start=1)]
