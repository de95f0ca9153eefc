# dashboardapp/urls.py
from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('', views.main, name='main'),
    path('stats/', views.stats, name='stats'),
    path('settings/', views.settings_view, name='settings'),
]
