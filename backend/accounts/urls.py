# accounts/urls.py
"""
URL configuration for accounts/auth API.

Endpoints:
- /auth/register|token|refresh|logout|me|switch-company/ - Authentication
- /auth/tenants/ - Tenants
- /auth/companies/ - Companies (create, list, current)
- /auth/members/ - Memberships of the active company
"""

from django.urls import path

from .views import (
    RegisterView,
    LoginView,
    LedgerTokenRefreshView,
    LogoutView,
    MeView,
    SwitchCompanyView,
    TenantListCreateView,
    CompanyListCreateView,
    CurrentCompanyView,
    MemberListCreateView,
    MemberDetailView,
)

app_name = "accounts"

urlpatterns = [
    # ==========================================================================
    # Authentication
    # ==========================================================================
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/token/", LoginView.as_view(), name="token"),
    path("auth/refresh/", LedgerTokenRefreshView.as_view(), name="token-refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/me/", MeView.as_view(), name="me"),
    path("auth/switch-company/", SwitchCompanyView.as_view(), name="switch-company"),

    # ==========================================================================
    # Tenants / Companies
    # ==========================================================================
    path("auth/tenants/", TenantListCreateView.as_view(), name="tenant-list"),
    path("auth/companies/", CompanyListCreateView.as_view(), name="company-list"),
    path("auth/companies/current/", CurrentCompanyView.as_view(), name="company-current"),

    # ==========================================================================
    # Members
    # ==========================================================================
    path("auth/members/", MemberListCreateView.as_view(), name="member-list"),
    path("auth/members/<uuid:public_id>/", MemberDetailView.as_view(), name="member-detail"),
]
