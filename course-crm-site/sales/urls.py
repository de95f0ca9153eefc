# sales/urls.py
from django.urls import path
from . import views

app_name = 'sales'

urlpatterns = [
    path('', views.sales_list, name='list'),
    path('<int:pk>/', views.sale_detail, name='detail'),
    path('<int:pk>/edit/', views.sale_edit, name='edit'),
    path('<int:pk>/payment/', views.add_payment, name='add_payment'),
    path('<int:pk>/access/grant/', views.access_grant, name='grant_access'),
    path('<int:pk>/access/update/', views.access_update, name='update_access'),
    path('<int:pk>/access/revoke/', views.access_revoke, name='revoke_access'),
    path('<int:pk>/exemption/', views.exemption_grant, name='grant_exemption'),
]
