# halloffame/urls.py
from django.urls import path
from . import views

app_name = 'halloffame'

urlpatterns = [
    path('', views.admin_submissions, name='admin'),
    path('<str:submission_id>/review/', views.admin_review, name='review'),
    path('<str:submission_id>/toggle/', views.admin_toggle, name='toggle'),
]
