# content/urls.py
from django.urls import path
from . import views

app_name = 'content'

urlpatterns = [
    path('', views.sections_list, name='sections'),
    path('<slug:section>/', views.section_edit, name='section'),
]
