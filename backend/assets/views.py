# assets/views.py
from datetime import timedelta

from django.conf import settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.generics import ListAPIView, get_object_or_404
from rest_framework.response import Response

from accounts.models import User
from assethub.errors import AuthorizationError
from audit.context import get_audit_context

from . import services
from .filters import AssetFilter, DownloadFilter
from .models import Asset, AssetDownload, AssetShare
from .permissions import AssetPermission
from .serializers import (
    ApproveSerializer,
    AssetCreateSerializer,
    AssetDetailSerializer,
    AssetDownloadSerializer,
    AssetSerializer,
    AssetShareSerializer,
    AssetUpdateSerializer,
    AssetVersionCreateSerializer,
    AssetVersionSerializer,
    CarouselItemSerializer,
    CarouselItemsCreateSerializer,
    DownloadRequestSerializer,
    PlatformUsageSerializer,
    RejectSerializer,
    ShareRequestSerializer,
    VisibilitySerializer,
)
from .sharing import ShareLookup, listed_assets, visible_assets
from .utils import generate_signed_token, verify_signed_token
from .visibility import AssetView, UserView, VisibilityEvaluator


class EvaluatorMixin:
    """One evaluator and one user snapshot per request."""

    def get_evaluator(self):
        if not hasattr(self, '_evaluator'):
            self._evaluator = VisibilityEvaluator(ShareLookup())
        return self._evaluator

    def get_user_view(self):
        return AssetPermission.user_view(self.request)

    def audit_context(self):
        return get_audit_context(self.request)


class AssetViewSet(EvaluatorMixin, viewsets.ModelViewSet):
    """
    Assets visible to the caller, plus the review workflow actions.

    Listing applies the visibility rules as a query; every object route goes
    through :class:`AssetPermission`.
    """
    serializer_class = AssetSerializer
    permission_classes = [AssetPermission]
    filterset_class = AssetFilter
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = Asset.objects.select_related('uploader', 'company')
        if self.action in ('list', 'seo'):
            return listed_assets(self.request.user, queryset)
        if self.action == 'pending':
            return services.pending_assets()
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return AssetDetailSerializer
        return AssetSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.action == 'retrieve':
            evaluator = self.get_evaluator()
            user_view = self.get_user_view()
            context['permission_summary'] = lambda asset: evaluator.summarize(user_view, AssetView.from_model(asset))
        return context

    def create(self, request, *args, **kwargs):
        serializer = AssetCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        asset = services.create_asset(
            uploader=request.user,
            data=serializer.validated_data,
            context=self.audit_context(),
        )
        return Response(AssetDetailSerializer(asset).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        asset = self.get_object()
        serializer = AssetUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        asset = services.update_asset(
            asset=asset,
            actor=request.user,
            changes=serializer.validated_data,
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetDetailSerializer(asset).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_asset(
            asset=self.get_object(),
            actor=request.user,
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        asset = services.submit_for_review(
            asset=self.get_object(), actor=request.user,
            context=self.audit_context(), evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post'])
    def resubmit(self, request, pk=None):
        asset = services.resubmit_asset(
            asset=self.get_object(), actor=request.user,
            context=self.audit_context(), evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post'], url_path='revert-to-draft')
    def revert_to_draft(self, request, pk=None):
        asset = services.revert_to_draft(
            asset=self.get_object(), actor=request.user,
            context=self.audit_context(), evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        asset = self.get_object()
        serializer = ApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        asset = services.approve_asset(
            asset_id=asset.pk,
            reviewer=request.user,
            new_visibility=serializer.validated_data.get('visibility'),
            allowed_role=serializer.validated_data.get('allowed_role'),
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        asset = self.get_object()
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        asset = services.reject_asset(
            asset_id=asset.pk,
            reviewer=request.user,
            reason=serializer.validated_data['reason'],
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post', 'patch'])
    def visibility(self, request, pk=None):
        asset = self.get_object()
        serializer = VisibilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        asset = services.change_visibility(
            asset=asset,
            actor=request.user,
            visibility=serializer.validated_data['visibility'],
            allowed_role=serializer.validated_data.get('allowed_role'),
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetSerializer(asset).data)

    @action(detail=True, methods=['post'], url_path='download-url')
    def download_url(self, request, pk=None):
        """Record the download and hand out a signed link to the file."""
        asset = self.get_object()
        serializer = DownloadRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        expires_in = serializer.validated_data.get('expires_in')

        download = services.record_download(
            asset=asset,
            actor=request.user,
            platforms=serializer.validated_data.get('platforms', []),
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        token = generate_signed_token(asset.pk, request.user.pk, max_age=expires_in)
        max_age = expires_in or settings.ASSET_DOWNLOAD_TOKEN_MAX_AGE
        url = reverse('asset-download', kwargs={'pk': str(asset.pk)})
        return Response({
            'url': f'{url}?token={token}',
            'expires_at': timezone.now() + timedelta(seconds=max_age),
            'download_id': download.pk,
        })

    @action(detail=True, methods=['get'], permission_classes=[permissions.AllowAny])
    def download(self, request, pk=None):
        """Validate the signed token and return the storage location."""
        verified = verify_signed_token(request.query_params.get('token', ''))
        asset = get_object_or_404(Asset.objects.prefetch_related('carousel_items'), pk=pk)
        if verified is None or verified[0] != str(asset.pk):
            raise AuthorizationError('Invalid or expired download link.')

        user = User.objects.filter(pk=verified[1]).first()
        if user is None or not self.get_evaluator().can_download(
            UserView.from_model(user), AssetView.from_model(asset)
        ):
            raise AuthorizationError('Invalid or expired download link.')

        return Response({
            'id': str(asset.pk),
            'title': asset.title,
            'storage_url': asset.storage_url,
            'mime_type': asset.mime_type,
            'carousel_items': CarouselItemSerializer(asset.carousel_items.all(), many=True).data,
        })

    @action(detail=True, methods=['get'], url_path='permissions')
    def permission_summary(self, request, pk=None):
        asset = self.get_object()
        summary = self.get_evaluator().summarize(self.get_user_view(), AssetView.from_model(asset))
        return Response({
            'can_view': summary.can_view,
            'can_edit': summary.can_edit,
            'can_delete': summary.can_delete,
            'can_approve': summary.can_approve,
            'can_share': summary.can_share,
            'can_modify_visibility': summary.can_modify_visibility,
            'can_download': summary.can_download,
            'can_log_platform_usage': summary.can_log_platform_usage,
            'reason': summary.reason,
        })

    @action(detail=False, methods=['get'])
    def pending(self, request):
        return self._paginated(self.filter_queryset(self.get_queryset()))

    @action(detail=False, methods=['get'])
    def seo(self, request):
        """SEO assets the caller may browse, under the full visibility rules."""
        queryset = self.filter_queryset(self.get_queryset()).filter(upload_type='SEO')
        return self._paginated(queryset)

    def _paginated(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(AssetSerializer(page, many=True).data)
        return Response(AssetSerializer(queryset, many=True).data)


class AssetChildViewSet(EvaluatorMixin, viewsets.GenericViewSet):
    """Base for routes nested under /api/assets/{asset_pk}/."""

    permission_classes = [AssetPermission]
    pagination_class = None
    asset_action_map = {}

    @property
    def asset_action(self):
        return self.asset_action_map.get(self.action)

    def get_asset(self):
        if not hasattr(self, '_asset'):
            asset = get_object_or_404(Asset.objects.select_related('uploader', 'company'), pk=self.kwargs['asset_pk'])
            self.check_object_permissions(self.request, asset)
            self._asset = asset
        return self._asset


class AssetVersionViewSet(AssetChildViewSet):
    serializer_class = AssetVersionSerializer
    asset_action_map = {'list': 'versions', 'create': 'add_version'}

    def get_queryset(self):
        return self.get_asset().versions.select_related('created_by').order_by('-version_number')

    def list(self, request, asset_pk=None):
        return Response(AssetVersionSerializer(self.get_queryset(), many=True).data)

    def create(self, request, asset_pk=None):
        serializer = AssetVersionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        version = services.add_version(
            asset=self.get_asset(),
            actor=request.user,
            storage_url=serializer.validated_data['storage_url'],
            file_size=serializer.validated_data.get('file_size'),
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetVersionSerializer(version).data, status=status.HTTP_201_CREATED)


class CarouselItemViewSet(AssetChildViewSet):
    serializer_class = CarouselItemSerializer
    asset_action_map = {'list': 'carousel_items', 'create': 'add_carousel_items'}

    def get_queryset(self):
        return self.get_asset().carousel_items.order_by('order')

    def list(self, request, asset_pk=None):
        return Response(CarouselItemSerializer(self.get_queryset(), many=True).data)

    def create(self, request, asset_pk=None):
        serializer = CarouselItemsCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = services.add_carousel_items(
            asset=self.get_asset(),
            actor=request.user,
            items=serializer.validated_data['items'],
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(CarouselItemSerializer(items, many=True).data, status=status.HTTP_201_CREATED)


class AssetShareViewSet(AssetChildViewSet):
    """Shares of one asset; managed by its uploader."""

    serializer_class = AssetShareSerializer
    asset_action_map = {'list': 'shares', 'create': 'shares', 'destroy': 'shares'}

    def get_queryset(self):
        return AssetShare.objects.filter(asset=self.get_asset()).select_related('shared_with', 'shared_by', 'team')

    def list(self, request, asset_pk=None):
        return Response(AssetShareSerializer(self.get_queryset(), many=True).data)

    def create(self, request, asset_pk=None):
        serializer = ShareRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = services.share_asset(
            asset=self.get_asset(),
            actor=request.user,
            user_ids=serializer.validated_data.get('user_ids', []),
            team_id=serializer.validated_data.get('team_id'),
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(AssetShareSerializer(created, many=True).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, asset_pk=None, pk=None):
        share = get_object_or_404(self.get_queryset(), pk=pk)
        services.revoke_share(
            asset=self.get_asset(),
            actor=request.user,
            user_id=share.shared_with_id,
            team_id=share.team_id if share.shared_with_id is None else None,
            context=self.audit_context(),
            evaluator=self.get_evaluator(),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class PlatformUsageViewSet(AssetChildViewSet):
    serializer_class = PlatformUsageSerializer
    asset_action_map = {'list': 'usage', 'create': 'log_usage'}

    def get_queryset(self):
        return self.get_asset().platform_usages.select_related('logged_by')

    def list(self, request, asset_pk=None):
        return Response(PlatformUsageSerializer(self.get_queryset(), many=True).data)

    def create(self, request, asset_pk=None):
        serializer = PlatformUsageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        usage = services.log_platform_usage(
            asset=self.get_asset(),
            actor=request.user,
            platform=serializer.validated_data['platform'],
            campaign_name=serializer.validated_data['campaign_name'],
            post_url=serializer.validated_data.get('post_url', ''),
            evaluator=self.get_evaluator(),
        )
        return Response(PlatformUsageSerializer(usage).data, status=status.HTTP_201_CREATED)


class DownloadHistoryView(ListAPIView):
    """Return the caller's downloads of assets they can still see."""

    serializer_class = AssetDownloadSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = DownloadFilter

    def get_queryset(self):
        visible = visible_assets(self.request.user, Asset.objects.all())
        return (
            AssetDownload.objects.filter(downloaded_by=self.request.user, asset__in=visible)
            .select_related('asset')
            .order_by('-downloaded_at')
        )
