"""
Serializers for authentication and staff users.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from apps.core.permissions import get_staff_role

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation embedded in workflow responses."""

    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role']
        read_only_fields = fields

    def get_role(self, obj):
        role = get_staff_role(obj)
        return role.value if role else None


class UserSerializer(UserSummarySerializer):
    """Serializer for the current user."""

    class Meta(UserSummarySerializer.Meta):
        fields = UserSummarySerializer.Meta.fields + ['email', 'date_joined', 'last_login']
        read_only_fields = fields


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom token serializer that includes user info in response.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        token['username'] = user.username
        role = get_staff_role(user)
        if role:
            token['role'] = role.value

        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data
