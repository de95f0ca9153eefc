# adlinks/apps.py
from django.apps import AppConfig


class AdLinksConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'adlinks'
    verbose_name = 'Ad links'
