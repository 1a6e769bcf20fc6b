# accounts/serializers.py
"""
Serializers for the auth/company API.

Input serializers only validate shapes; the commands enforce the rules.
"""

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Company, CompanyMembership, Tenant, User


class TenantSerializer(serializers.ModelSerializer):
    companies = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = ("public_id", "name", "slug", "is_active", "created_at", "companies")

    def get_companies(self, obj):
        return [
            {"public_id": str(c.public_id), "name": c.name, "code": c.code}
            for c in obj.companies.all()
        ]


class CompanySerializer(serializers.ModelSerializer):
    tenant_public_id = serializers.UUIDField(source="tenant.public_id", read_only=True, default=None)

    class Meta:
        model = Company
        fields = (
            "id",
            "public_id",
            "tenant_public_id",
            "name",
            "slug",
            "code",
            "company_type",
            "tax_id",
            "default_currency",
            "fiscal_year_start_month",
            "is_active",
            "created_at",
        )
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "public_id", "email", "name")


class MembershipSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source="user.email", read_only=True)
    name = serializers.CharField(source="user.name", read_only=True)
    company_public_id = serializers.UUIDField(source="company.public_id", read_only=True)
    company_name = serializers.CharField(source="company.name", read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = CompanyMembership
        fields = (
            "public_id",
            "email",
            "name",
            "company_public_id",
            "company_name",
            "role",
            "is_active",
            "joined_at",
            "permissions",
        )

    def get_permissions(self, obj):
        return sorted(obj.permissions.values_list("code", flat=True))


class RegistrationSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    password = serializers.CharField(min_length=8, write_only=True)


class TenantCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


class CompanyCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    tenant_public_id = serializers.UUIDField(required=False, allow_null=True)
    code = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    company_type = serializers.ChoiceField(
        choices=Company.CompanyType.choices,
        required=False,
        default=Company.CompanyType.OTHER,
    )
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    default_currency = serializers.CharField(min_length=3, max_length=3, required=False, default="USD")
    fiscal_year_start_month = serializers.IntegerField(min_value=1, max_value=12, required=False, default=1)
    seed_chart = serializers.BooleanField(required=False, default=True)

    def validate_default_currency(self, value: str):
        return value.upper()


class CompanyUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    company_type = serializers.ChoiceField(choices=Company.CompanyType.choices, required=False)
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    default_currency = serializers.CharField(min_length=3, max_length=3, required=False)
    fiscal_year_start_month = serializers.IntegerField(min_value=1, max_value=12, required=False)
    is_active = serializers.BooleanField(required=False)


class SwitchCompanySerializer(serializers.Serializer):
    company_public_id = serializers.UUIDField()


class MemberAddSerializer(serializers.Serializer):
    email = serializers.EmailField()
    role = serializers.ChoiceField(
        choices=CompanyMembership.Role.choices,
        default=CompanyMembership.Role.USER,
    )


class MemberRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=CompanyMembership.Role.choices)


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    username_field = User.EMAIL_FIELD

    def validate(self, attrs):
        authenticate_kwargs = {
            self.username_field: (attrs.get("email") or "").lower().strip(),
            "password": attrs.get("password"),
        }
        user = authenticate(request=self.context.get("request"), **authenticate_kwargs)
        if not user:
            raise AuthenticationFailed("Invalid credentials")
        refresh = RefreshToken.for_user(user)
        return {"access": str(refresh.access_token), "refresh": str(refresh)}
