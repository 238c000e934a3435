from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import Company, Team, User, UserRole


class UserLoginSerializer(serializers.Serializer):
    """
    User login serializer
    """
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        """
        Validate user credentials
        """
        username = attrs.get('username')
        password = attrs.get('password')

        # Try to authenticate with username first
        user = authenticate(username=username, password=password)

        # If username auth fails, try email
        if not user:
            user_obj = User.objects.filter(email__iexact=username).first()
            if user_obj is not None:
                user = authenticate(username=user_obj.username, password=password)

        if not user:
            raise serializers.ValidationError('Invalid credentials.')
        if not user.is_activated:
            raise serializers.ValidationError('Account has not been activated yet.')

        attrs['user'] = user
        return attrs


class CompanySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ('id', 'name')


class UserProfileSerializer(serializers.ModelSerializer):
    """
    User profile serializer for displaying user info
    """
    company = CompanySummarySerializer(read_only=True)
    team_ids = serializers.PrimaryKeyRelatedField(source='teams', many=True, read_only=True)

    class Meta:
        model = User
        fields = (
            'id', 'username', 'email', 'first_name', 'last_name', 'role',
            'company', 'team_ids', 'is_active', 'is_activated', 'activated_at',
            'created_at', 'updated_at',
        )
        read_only_fields = fields


class ActivationSerializer(serializers.Serializer):
    email = serializers.EmailField()
    code = serializers.CharField(max_length=64)
    password = serializers.CharField(write_only=True, min_length=8)
    password_confirm = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({'password_confirm': "Passwords don't match."})
        return attrs


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.CONTENT_CREATOR)
    company = serializers.PrimaryKeyRelatedField(
        queryset=Company.objects.all(), required=False, allow_null=True,
    )


class UserUpdateSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=UserRole.choices, required=False)
    company = serializers.PrimaryKeyRelatedField(
        queryset=Company.objects.all(), required=False, allow_null=True,
    )


class CompanySerializer(serializers.ModelSerializer):
    user_count = serializers.IntegerField(read_only=True)
    asset_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Company
        fields = ('id', 'name', 'user_count', 'asset_count', 'created_at', 'updated_at')
        read_only_fields = ('id', 'created_at', 'updated_at')


class CompanyAssignUsersSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class TeamSerializer(serializers.ModelSerializer):
    members = serializers.PrimaryKeyRelatedField(
        many=True, queryset=User.objects.all(), required=False,
    )

    class Meta:
        model = Team
        fields = ('id', 'name', 'company', 'members', 'created_at')
        read_only_fields = ('id', 'created_at')
