# accounts/testing.py
"""Factories shared by the apps' test modules."""
from django.contrib.auth.models import User

from .models import UserProfile


def make_user(username, role, is_active=True, password='pass1234'):
    user = User.objects.create_user(username=username, password=password,
                                    email=f'{username}@example.com')
    UserProfile.objects.create(user=user, role=role, is_active=is_active)
    return user
