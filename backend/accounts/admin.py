from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import Company, CompanyMembership, NxPermission, Tenant, User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password", "name", "active_company")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "name", "password1", "password2")}),
    )
    list_display = ("email", "name", "active_company", "is_staff")
    search_fields = ("email", "name")
    ordering = ("email",)


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "owner", "is_active", "created_at")
    search_fields = ("name", "slug", "owner__email")
    readonly_fields = ("public_id", "created_at")


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "tenant", "company_type", "default_currency", "is_active")
    list_filter = ("company_type", "is_active")
    search_fields = ("name", "code", "slug")
    readonly_fields = ("public_id", "created_at", "updated_at")

    def has_add_permission(self, request):
        # Companies are created by create_company (events + periods + chart).
        return False


@admin.register(CompanyMembership)
class CompanyMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "joined_at")
    list_filter = ("role", "is_active")
    search_fields = ("user__email", "company__name")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(NxPermission)
class NxPermissionAdmin(admin.ModelAdmin):
    list_display = ("code", "module", "name")
    list_filter = ("module",)
    search_fields = ("code", "name")
