# adlinks/urls.py
from django.urls import path
from . import views

app_name = 'adlinks'

urlpatterns = [
    path('', views.links_list, name='list'),
    path('create/', views.link_create, name='create'),
    path('<int:pk>/', views.link_edit, name='edit'),
    path('<int:pk>/toggle/', views.link_toggle, name='toggle'),
    path('<int:pk>/analytics/', views.link_analytics, name='analytics'),
]
