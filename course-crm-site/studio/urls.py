# studio/urls.py
from django.contrib import admin
from django.urls import include, path

from adlinks import api as adlinks_api, views as adlinks_views
from content import views as content_views
from halloffame import views as halloffame_views
from leads import views as leads_views
from sales import views as sales_views

urlpatterns = [
    # public site
    path('', content_views.home, name='home'),
    path('join/', leads_views.intake, name='join'),
    path('join/thanks/', leads_views.thanks, name='join_thanks'),
    path('hall-of-fame/', halloffame_views.hall_of_fame, name='hall_of_fame'),

    # ad link redirects
    path('go/', adlinks_views.go_redirect, name='go_root'),
    path('go/<str:slug>', adlinks_views.go_redirect),
    path('go/<str:slug>/', adlinks_views.go_redirect, name='go'),

    # JSON endpoints (served with and without the trailing slash)
    path('api/ad-links/validate-slug', adlinks_api.api_validate_slug, name='validate_slug'),
    path('api/ad-links/validate-slug/', adlinks_api.api_validate_slug),
    path('api/webhook/hall-of-fame', halloffame_views.webhook, name='hall_of_fame_webhook'),
    path('api/webhook/hall-of-fame/', halloffame_views.webhook),

    # auth + /admin/users/
    path('', include(('accounts.urls', 'accounts'), namespace='accounts')),

    # admin panel
    path('admin/', include(('dashboardapp.urls', 'dashboard'), namespace='dashboard')),
    path('admin/leads/', include(('leads.urls', 'leads'), namespace='leads')),
    path('admin/ventas/', include(('sales.urls', 'sales'), namespace='sales')),
    path('admin/activos/', sales_views.active_members, name='active_members'),
    path('admin/ad-links/', include(('adlinks.urls', 'adlinks'), namespace='adlinks')),
    path('admin/content/', include(('content.urls', 'content'), namespace='content')),
    path('admin/hall-of-fame/', include(('halloffame.urls', 'halloffame'), namespace='halloffame')),

    path('django-admin/', admin.site.urls),
]
