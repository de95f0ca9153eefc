# leads/urls.py
from django.urls import path
from . import views, api

app_name = 'leads'

urlpatterns = [
    path('', views.leads_list, name='list'),
    path('<int:pk>/', views.lead_detail, name='detail'),
    path('<int:pk>/transition/', views.lead_transition, name='transition'),
    path('<int:pk>/archive/', views.lead_archive, name='archive'),

    path('api/list/', api.api_list, name='api_list'),
    path('api/<int:pk>/', api.api_detail, name='api_detail'),
    path('api/<int:pk>/transition/', api.api_transition, name='api_transition'),
]
