# halloffame/apps.py
from django.apps import AppConfig


class HallOfFameConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'halloffame'
    verbose_name = 'Hall of fame'
