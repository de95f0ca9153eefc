# accounts/views.py
import csv
import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_POST

from .models import UserProfile
from .permissions import ROLE_CHOICES, can_manage_user, get_assignable_roles
from .session import permission_required

logger = logging.getLogger(__name__)


# -------- Auth Flow --------
@login_required
def post_login_redirect(request):
    """After login, go to the first admin route the role can open."""
    routes = request.admin_session.routes()
    if routes:
        return redirect(routes[0])
    return redirect('accounts:unauthorized')


def unauthorized(request):
    return render(request, 'accounts/unauthorized.html', status=403)


# -------- Users (list + export) --------
@permission_required('users:read')
def users_list(request):
    q    = (request.GET.get('q') or '').strip()
    role = (request.GET.get('role') or '').strip()
    show = (request.GET.get('show') or 'active').strip().lower()

    qs = UserProfile.objects.select_related('user').order_by('user__username')

    if show == 'inactive':
        qs = qs.filter(is_active=False)
    elif show != 'all':
        qs = qs.filter(is_active=True)

    if q:
        qs = qs.filter(
            Q(user__username__icontains=q) |
            Q(user__email__icontains=q) |
            Q(user__first_name__icontains=q) |
            Q(user__last_name__icontains=q) |
            Q(display_name__icontains=q)
        )

    if role in dict(ROLE_CHOICES):
        qs = qs.filter(role=role)

    if request.GET.get('export') == 'csv':
        resp = HttpResponse(content_type='text/csv; charset=utf-8')
        resp['Content-Disposition'] = 'attachment; filename="users.csv"'
        w = csv.writer(resp)
        w.writerow(['#', 'Username', 'Email', 'Name', 'Role', 'Active', 'Last login'])
        for idx, p in enumerate(qs, start=1):
            w.writerow([
                idx, p.user.username, p.user.email, str(p), p.get_role_display(),
                'Active' if p.is_active else 'Inactive',
                p.last_login_at or '',
            ])
        return resp

    actor = request.admin_session.profile
    return render(request, 'accounts/users.html', {
        'profiles': qs,
        'q': q,
        'role': role,
        'show': show,
        'role_choices': ROLE_CHOICES,
        'assignable_roles': get_assignable_roles(actor.role) if actor else [],
    })


# -------- Create User --------
@permission_required('users:write')
def create_user_view(request):
    actor = request.admin_session.profile
    assignable = get_assignable_roles(actor.role)

    if request.method == 'POST':
        username  = (request.POST.get('username') or '').strip()
        password1 = request.POST.get('password1') or ''
        password2 = request.POST.get('password2') or ''
        email     = (request.POST.get('email') or '').strip()
        name      = (request.POST.get('display_name') or '').strip()
        role      = (request.POST.get('role') or '').strip()

        if not username or not password1:
            messages.error(request, 'Username and password are required.')
            return redirect('accounts:create')
        if password1 != password2:
            messages.error(request, 'Passwords do not match.')
            return redirect('accounts:create')
        if role not in assignable:
            messages.error(request, 'You cannot assign that role.')
            return redirect('accounts:create')

        try:
            with transaction.atomic():
                user = User.objects.create_user(username=username, password=password1, email=email)
                UserProfile.objects.create(user=user, role=role, display_name=name,
                                           created_by=request.user)
        except IntegrityError:
            messages.error(request, 'Username already exists.')
            return redirect('accounts:create')

        logger.info("User %s created %s as %s", request.user.pk, username, role)
        messages.success(request, f'User {username} created as {role}.')
        return redirect('accounts:users')

    return render(request, 'accounts/create.html', {'assignable_roles': assignable})


# -------- Role / activation (soft, never hard delete) --------
def _managed_target(request, pk):
    target = get_object_or_404(UserProfile.objects.select_related('user'), pk=pk)
    actor = request.admin_session.profile
    if not can_manage_user(actor, target):
        messages.error(request, 'You cannot manage this user.')
        return None
    return target


@permission_required('users:write')
@require_POST
def change_role(request, pk):
    target = _managed_target(request, pk)
    if target is None:
        return redirect('accounts:users')

    role = (request.POST.get('role') or '').strip()
    if role not in get_assignable_roles(request.admin_session.role):
        messages.error(request, 'You cannot assign that role.')
        return redirect('accounts:users')

    target.role = role
    target.save(update_fields=['role', 'updated_at'])
    logger.info("User %s changed role of profile %s to %s", request.user.pk, target.pk, role)
    messages.success(request, f'{target.user.username} is now {target.get_role_display()}.')
    return redirect('accounts:users')


@permission_required('users:write')
@require_POST
def activate_user(request, pk):
    target = _managed_target(request, pk)
    if target is not None:
        target.is_active = True
        target.save(update_fields=['is_active', 'updated_at'])
        messages.success(request, f'{target.user.username} activated.')
    return redirect('accounts:users')


@permission_required('users:write')
@require_POST
def deactivate_user(request, pk):
    target = _managed_target(request, pk)
    if target is not None:
        target.is_active = False
        target.save(update_fields=['is_active', 'updated_at'])
        logger.info("User %s deactivated profile %s", request.user.pk, target.pk)
        messages.warning(request, f'{target.user.username} deactivated.')
    return redirect('accounts:users')
