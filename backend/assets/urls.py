"""
URL configuration for the assets app.

All routes are exposed under '/api/' as configured in assethub/urls.py.

- /api/assets/                         asset list, upload, detail and workflow actions
- /api/assets/{asset_pk}/versions/     version history
- /api/assets/{asset_pk}/carousel-items/
- /api/assets/{asset_pk}/shares/       user and team shares (uploader only)
- /api/assets/{asset_pk}/usage/        platform usage log
- /api/downloads/mine/                 the caller's download history
"""

from django.urls import path
from rest_framework_nested import routers

from .views import (
    AssetShareViewSet,
    AssetVersionViewSet,
    AssetViewSet,
    CarouselItemViewSet,
    DownloadHistoryView,
    PlatformUsageViewSet,
)

router = routers.DefaultRouter()
router.include_root_view = False
router.register(r'assets', AssetViewSet, basename='asset')

asset_router = routers.NestedDefaultRouter(router, r'assets', lookup='asset')
asset_router.register(r'versions', AssetVersionViewSet, basename='asset-versions')
asset_router.register(r'carousel-items', CarouselItemViewSet, basename='asset-carousel-items')
asset_router.register(r'shares', AssetShareViewSet, basename='asset-shares')
asset_router.register(r'usage', PlatformUsageViewSet, basename='asset-usage')

urlpatterns = router.urls + asset_router.urls + [
    path('downloads/mine/', DownloadHistoryView.as_view(), name='download-history'),
]
