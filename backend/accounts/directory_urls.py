"""
User, company and team directory routes, mounted under '/api/'.
"""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import CompanyViewSet, TeamViewSet, UserViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r'users', UserViewSet, basename='user')
router.register(r'companies', CompanyViewSet, basename='company')
router.register(r'teams', TeamViewSet, basename='team')

urlpatterns = [
    path('', include(router.urls)),
]

# - GET/POST     /api/users/                                 (admin)
# - GET/PATCH    /api/users/{id}/                            (admin)
# - POST         /api/users/{id}/deactivate/                 (admin)
# - POST         /api/users/{id}/reactivate/                 (admin)
# - POST         /api/users/{id}/regenerate-activation-code/ (admin)
# - GET/POST     /api/companies/            reads: authenticated, writes: admin
# - POST         /api/companies/{id}/assign-users/           (admin)
# - GET/POST     /api/teams/                reads: authenticated, writes: admin
