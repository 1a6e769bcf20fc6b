# accounts/views.py
"""
Auth, tenant, company and membership endpoints.

Thin views: parse input, resolve the actor, call a command, format the
result. Command failures map to 400 {"detail": ...}.
"""

from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from .authz import resolve_actor, require
from .commands import (
    add_member,
    change_member_role,
    create_company,
    create_tenant,
    deactivate_member,
    register_user,
    switch_active_company,
    update_company,
)
from .models import Company, CompanyMembership, Tenant
from .serializers import (
    CompanyCreateSerializer,
    CompanySerializer,
    CompanyUpdateSerializer,
    EmailTokenObtainPairSerializer,
    MemberAddSerializer,
    MemberRoleSerializer,
    MembershipSerializer,
    RegistrationSerializer,
    SwitchCompanySerializer,
    TenantCreateSerializer,
    TenantSerializer,
    UserSerializer,
)
from .throttles import LoginThrottle, RegistrationThrottle


def _fail(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


# =============================================================================
# Authentication
# =============================================================================

class RegisterView(APIView):
    """POST /api/auth/register/ -> user + JWT pair"""
    permission_classes = [permissions.AllowAny]
    throttle_classes = [RegistrationThrottle]

    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = register_user(**serializer.validated_data)
        if not result.success:
            return _fail(result)

        refresh = RefreshToken.for_user(result.data)
        return Response(
            {
                "user": UserSerializer(result.data).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(generics.GenericAPIView):
    """POST /api/auth/token/ -> JWT pair"""
    serializer_class = EmailTokenObtainPairSerializer
    permission_classes = [permissions.AllowAny]
    throttle_classes = [LoginThrottle]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class LedgerTokenRefreshView(TokenRefreshView):
    """POST /api/auth/refresh/"""


class LogoutView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            return Response({"detail": "Refresh token required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(refresh_token)
            token.blacklist()
        except TokenError:
            return Response({"detail": "Invalid token"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    """GET /api/auth/me/ -> user, active company, memberships"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        memberships = CompanyMembership.objects.filter(
            user=user,
            is_active=True,
        ).select_related("company", "user")
        active = user.active_company
        return Response({
            "user": UserSerializer(user).data,
            "active_company": CompanySerializer(active).data if active else None,
            "memberships": MembershipSerializer(memberships, many=True).data,
        })


class SwitchCompanyView(APIView):
    """POST /api/auth/switch-company/ {"company_public_id": ...}"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = SwitchCompanySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = switch_active_company(request.user, serializer.validated_data["company_public_id"])
        if not result.success:
            return _fail(result)
        return Response(CompanySerializer(result.data).data)


# =============================================================================
# Tenants and Companies
# =============================================================================

class TenantListCreateView(APIView):
    """
    GET /api/auth/tenants/ -> tenants the user owns or has companies in
    POST /api/auth/tenants/ -> create a tenant
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        tenants = Tenant.objects.filter(
            is_active=True,
        ).filter(
            owner=request.user,
        ) | Tenant.objects.filter(
            is_active=True,
            companies__memberships__user=request.user,
            companies__memberships__is_active=True,
        )
        tenants = tenants.distinct().prefetch_related("companies")
        return Response(TenantSerializer(tenants, many=True).data)

    def post(self, request):
        serializer = TenantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_tenant(request.user, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(TenantSerializer(result.data).data, status=status.HTTP_201_CREATED)


class CompanyListCreateView(APIView):
    """
    GET /api/auth/companies/ -> companies the user belongs to
    POST /api/auth/companies/ -> create a company (user becomes OWNER)
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        companies = Company.objects.filter(
            memberships__user=request.user,
            memberships__is_active=True,
        ).select_related("tenant").distinct()
        return Response(CompanySerializer(companies, many=True).data)

    def post(self, request):
        serializer = CompanyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_company(request.user, **serializer.validated_data)
        if not result.success:
            return _fail(result)

        if "company" not in result.data:
            return Response(result.data, status=status.HTTP_202_ACCEPTED)
        return Response(
            {
                "company": CompanySerializer(result.data["company"]).data,
                "membership": MembershipSerializer(result.data["membership"]).data,
            },
            status=status.HTTP_201_CREATED,
        )


class CurrentCompanyView(APIView):
    """
    GET /api/auth/companies/current/
    PATCH /api/auth/companies/current/
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "company.view")
        return Response(CompanySerializer(actor.company).data)

    def patch(self, request):
        actor = resolve_actor(request)

        serializer = CompanyUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = update_company(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(CompanySerializer(result.data).data)


# =============================================================================
# Members
# =============================================================================

class MemberListCreateView(APIView):
    """
    GET /api/auth/members/ -> memberships of the active company
    POST /api/auth/members/ {"email", "role"} -> add a registered user
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "company.view")

        memberships = CompanyMembership.objects.filter(
            company=actor.company,
        ).select_related("user", "company").order_by("user__email")
        return Response(MembershipSerializer(memberships, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        serializer = MemberAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = add_member(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(MembershipSerializer(result.data).data, status=status.HTTP_201_CREATED)


class MemberDetailView(APIView):
    """
    PATCH /api/auth/members/<public_id>/ {"role"} -> change role
    DELETE /api/auth/members/<public_id>/ -> deactivate
    """
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, public_id):
        actor = resolve_actor(request)
        get_object_or_404(CompanyMembership, company=actor.company, public_id=public_id)

        serializer = MemberRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = change_member_role(actor, public_id, serializer.validated_data["role"])
        if not result.success:
            return _fail(result)
        return Response(MembershipSerializer(result.data).data)

    def delete(self, request, public_id):
        actor = resolve_actor(request)
        get_object_or_404(CompanyMembership, company=actor.company, public_id=public_id)

        result = deactivate_member(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(status=status.HTTP_204_NO_CONTENT)
