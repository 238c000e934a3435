import logging

from django.contrib.auth import login, logout
from django.db.models import Count
from rest_framework import mixins, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from audit.context import get_audit_context

from . import services
from .models import Company, Team, User
from .permissions import IsAdminRole, IsAdminRoleOrReadOnly
from .serializers import (
    ActivationSerializer,
    CompanyAssignUsersSerializer,
    CompanySerializer,
    TeamSerializer,
    UserCreateSerializer,
    UserLoginSerializer,
    UserProfileSerializer,
    UserUpdateSerializer,
)

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    User login endpoint
    """
    serializer = UserLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.validated_data['user']

    token, _created = Token.objects.get_or_create(user=user)

    # Django session login (optional, for web interface)
    login(request, user)

    return Response({
        'success': True,
        'message': 'Login successful',
        'user': UserProfileSerializer(user).data,
        'token': token.key
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """
    User logout endpoint
    """
    Token.objects.filter(user=request.user).delete()
    logout(request)

    return Response({
        'success': True,
        'message': 'Logout successful'
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    """
    Get user profile
    """
    serializer = UserProfileSerializer(request.user)

    return Response({
        'success': True,
        'user': serializer.data
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([AllowAny])
def activate_view(request):
    """
    Set a password with the activation code handed out by an admin.
    """
    serializer = ActivationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = services.activate_account(
        email=serializer.validated_data['email'],
        code=serializer.validated_data['code'],
        password=serializer.validated_data['password'],
    )
    return Response({
        'success': True,
        'message': 'Account activated',
        'user': UserProfileSerializer(user).data,
    }, status=status.HTTP_200_OK)


class UserViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Admin user directory: list, create with activation code, edit, (de)activate."""

    permission_classes = [IsAdminRole]
    serializer_class = UserProfileSerializer
    filterset_fields = ('role', 'company', 'is_active', 'is_activated')

    def get_queryset(self):
        return User.objects.select_related('company').prefetch_related('teams').order_by('-created_at')

    def create(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = services.create_user_with_activation(
            actor=request.user,
            data=serializer.validated_data,
            context=get_audit_context(request),
        )
        return Response({
            'user': UserProfileSerializer(created.user).data,
            'activation_code': created.activation_code,
        }, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        user = self.get_object()
        serializer = UserUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = services.update_user(
            actor=request.user,
            user=user,
            changes=serializer.validated_data,
            context=get_audit_context(request),
        )
        return Response(UserProfileSerializer(user).data)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        user = services.deactivate_user(
            actor=request.user, user=self.get_object(), context=get_audit_context(request),
        )
        return Response(UserProfileSerializer(user).data)

    @action(detail=True, methods=['post'])
    def reactivate(self, request, pk=None):
        user = services.reactivate_user(
            actor=request.user, user=self.get_object(), context=get_audit_context(request),
        )
        return Response(UserProfileSerializer(user).data)

    @action(detail=True, methods=['post'], url_path='regenerate-activation-code')
    def regenerate_activation_code(self, request, pk=None):
        created = services.regenerate_activation_code(
            actor=request.user, user=self.get_object(), context=get_audit_context(request),
        )
        return Response({
            'user': UserProfileSerializer(created.user).data,
            'activation_code': created.activation_code,
        })


class CompanyViewSet(viewsets.ModelViewSet):
    """Companies; authenticated users read, admins write."""

    permission_classes = [IsAdminRoleOrReadOnly]
    serializer_class = CompanySerializer
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return Company.objects.annotate(
            user_count=Count('users', distinct=True),
            asset_count=Count('assets', distinct=True),
        ).order_by('name')

    def perform_create(self, serializer):
        serializer.instance = services.create_company(
            actor=self.request.user,
            name=serializer.validated_data['name'],
            context=get_audit_context(self.request),
        )

    def perform_update(self, serializer):
        serializer.instance = services.rename_company(
            actor=self.request.user,
            company=serializer.instance,
            name=serializer.validated_data.get('name', serializer.instance.name),
            context=get_audit_context(self.request),
        )

    def perform_destroy(self, instance):
        services.delete_company(
            actor=self.request.user, company=instance, context=get_audit_context(self.request),
        )

    @action(detail=True, methods=['post'], url_path='assign-users')
    def assign_users(self, request, pk=None):
        serializer = CompanyAssignUsersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_ids = services.assign_users_to_company(
            actor=request.user,
            company=self.get_object(),
            user_ids=serializer.validated_data['user_ids'],
            context=get_audit_context(request),
        )
        return Response({'user_ids': user_ids})


class TeamViewSet(viewsets.ModelViewSet):
    """Teams that TEAM-visibility assets can be shared with."""

    permission_classes = [IsAdminRoleOrReadOnly]
    serializer_class = TeamSerializer
    filterset_fields = ('company',)
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return Team.objects.select_related('company').prefetch_related('members')
