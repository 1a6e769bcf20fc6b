# accounts/models.py
"""
Identity and tenancy models.

- Tenant: a group of companies that may trade with each other
- Company: a set of books (chart of accounts, documents, ledger)
- User: email-based login, acts in one active company at a time
- CompanyMembership: user <-> company with a role and explicit permissions

Tenants and companies are bootstrap-created by accounts.commands. Memberships
are maintained by the membership projection from membership.* events.
"""

import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

from projections.write_barrier import BOOTSTRAP, COMMAND, PROJECTION, assert_write_allowed


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("The given email must be set")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class Tenant(models.Model):
    """A group of companies sharing users and intercompany trade."""

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="owned_tenants",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Company(models.Model):
    class CompanyType(models.TextChoices):
        MANUFACTURER = "MANUFACTURER", "Manufacturer"
        DISTRIBUTOR = "DISTRIBUTOR", "Distributor"
        PLANT = "PLANT", "Plant"
        RETAIL = "RETAIL", "Retail"
        SERVICE = "SERVICE", "Service"
        HOLDING = "HOLDING", "Holding"
        OTHER = "OTHER", "Other"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    tenant = models.ForeignKey(
        Tenant,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="companies",
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    code = models.CharField(max_length=20, blank=True, default="")
    company_type = models.CharField(
        max_length=20,
        choices=CompanyType.choices,
        default=CompanyType.OTHER,
    )
    tax_id = models.CharField(max_length=50, blank=True, default="")
    default_currency = models.CharField(max_length=3, default="USD")
    fiscal_year_start_month = models.PositiveSmallIntegerField(default=1)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Companies"
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Created by bootstrap commands, updated by the company projection.
        assert_write_allowed("Company", {BOOTSTRAP, COMMAND, PROJECTION}, "save")
        super().save(*args, **kwargs)

    def shares_tenant_with(self, other: "Company") -> bool:
        return bool(self.tenant_id) and self.tenant_id == other.tenant_id


class User(AbstractUser):
    username = None
    email = models.EmailField("email address", unique=True)
    name = models.CharField(max_length=150, blank=True, default="")
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    active_company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    def __str__(self):
        return self.email

    def get_active_membership(self):
        if not self.active_company_id:
            return None
        return CompanyMembership.objects.filter(
            user=self,
            company_id=self.active_company_id,
            is_active=True,
        ).first()


class NxPermission(models.Model):
    code = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    module = models.CharField(max_length=50)
    description = models.TextField(blank=True, default="")
    default_for_roles = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["module", "code"]

    def __str__(self):
        return self.code


class CompanyMembership(models.Model):
    class Role(models.TextChoices):
        OWNER = "OWNER", "Owner"
        ADMIN = "ADMIN", "Admin"
        USER = "USER", "User"
        VIEWER = "VIEWER", "Viewer"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    is_active = models.BooleanField(default=True)
    permissions = models.ManyToManyField(
        NxPermission,
        through="CompanyMembershipPermission",
        related_name="memberships",
        blank=True,
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "user"],
                name="uniq_membership_per_company_user",
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def has_permission(self, code: str) -> bool:
        if not self.is_active:
            return False
        if self.role == self.Role.OWNER:
            return True
        return self.permissions.filter(code=code).exists()


class CompanyMembershipPermission(models.Model):
    membership = models.ForeignKey(
        CompanyMembership,
        on_delete=models.CASCADE,
        related_name="permission_grants",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="+",
    )
    permission = models.ForeignKey(
        NxPermission,
        on_delete=models.CASCADE,
        related_name="+",
    )
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["membership", "permission"],
                name="uniq_membership_permission",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self.company_id and self.membership_id:
            self.company_id = self.membership.company_id
        super().save(*args, **kwargs)
