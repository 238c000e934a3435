"""
URL configuration for the accounts app.

All routes are exposed under '/api/account/' as configured in assethub/urls.py.
"""

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    # Authenticates credentials and returns a token (session login as well)
    path('login/', views.login_view, name='login'),

    # Invalidates the caller's token and session
    path('logout/', views.logout_view, name='logout'),

    # Current user's profile, role, company and teams
    path('profile/', views.profile_view, name='profile'),

    # Admin-created accounts set their password with the activation code
    path('activate/', views.activate_view, name='activate'),
]

# - POST   /api/account/login/
# - POST   /api/account/logout/
# - GET    /api/account/profile/
# - POST   /api/account/activate/
