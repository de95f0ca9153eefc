from django.urls import path
from django.contrib.auth.views import LoginView, LogoutView
from . import views

app_name = 'accounts'

urlpatterns = [
    path('login/', LoginView.as_view(
        template_name='accounts/login.html',
        redirect_authenticated_user=True
    ), name='login'),
    path('logout/', LogoutView.as_view(), name='logout'),

    # after login: first route allowed by the role
    path('post-login/', views.post_login_redirect, name='post_login'),

    path('admin/users/', views.users_list, name='users'),
    path('admin/users/create/', views.create_user_view, name='create'),
    path('admin/users/<int:pk>/role/', views.change_role, name='change_role'),
    path('admin/users/<int:pk>/activate/', views.activate_user, name='activate'),
    path('admin/users/<int:pk>/deactivate/', views.deactivate_user, name='deactivate'),
    path('admin/unauthorized/', views.unauthorized, name='unauthorized'),
]
