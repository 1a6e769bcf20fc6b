# accounting/serializers.py
"""
Serializers for accounting API.

Note: These serializers are used for:
1. Input validation
2. Output formatting

The actual business logic happens in commands.py.
Views call commands directly for anything that emits events.
"""

from rest_framework import serializers

from projections.models import AccountBalance, FiscalPeriod
from .models import Account, JournalEntry, JournalLine


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """
    Serializer for Account model.
    Used for listing and retrieving. Creates/updates go through commands.
    """
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)
    balance = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name",
            "account_type", "status", "normal_balance", "role",
            "is_header", "parent", "parent_code", "description",
            "is_postable", "balance",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_balance(self, obj):
        # Annotated by the list view; fall back to the projection row.
        if hasattr(obj, "_balance"):
            return str(obj._balance or "0.00")
        return str(obj.get_balance())


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for creating accounts via command."""
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    is_header = serializers.BooleanField(required=False, default=False)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    role = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")


class AccountUpdateSerializer(serializers.Serializer):
    """Serializer for updating accounts via command."""
    name = serializers.CharField(max_length=255, required=False)
    code = serializers.CharField(max_length=20, required=False)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices, required=False)
    status = serializers.ChoiceField(choices=Account.Status.choices, required=False)
    description = serializers.CharField(required=False, allow_blank=True)


# =============================================================================
# Journal Entry Serializers
# =============================================================================

class JournalLineSerializer(serializers.ModelSerializer):
    """Serializer for individual journal lines."""
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = [
            "public_id", "line_no", "account", "account_code", "account_name",
            "description", "debit", "credit", "is_debit", "amount",
        ]
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    """
    Journal line input (creation/update).

    Lines reference an account by ``account_id`` (integer) or by
    ``account_public_id``.
    """
    account_id = serializers.IntegerField(required=False)
    account_public_id = serializers.UUIDField(required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    debit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    credit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)

    def validate(self, attrs):
        if not attrs.get("account_id") and not attrs.get("account_public_id"):
            raise serializers.ValidationError("account_id or account_public_id is required.")
        if attrs.get("debit", 0) < 0 or attrs.get("credit", 0) < 0:
            raise serializers.ValidationError("Amounts cannot be negative.")
        return attrs


class JournalEntrySerializer(serializers.ModelSerializer):
    """
    Full journal entry serializer with nested lines.
    Used for retrieval and display.
    """
    lines = JournalLineSerializer(many=True, read_only=True)
    total_debit = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    total_credit = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    reverses_entry_public_id = serializers.UUIDField(
        source="reverses_entry.public_id", read_only=True, default=None,
    )

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "entry_number", "date", "period", "memo",
            "currency", "kind", "status", "source_module", "source_document",
            "posted_at", "reversed_at", "reverses_entry_public_id",
            "total_debit", "total_credit", "lines",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class JournalEntryListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views (no lines)."""

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "entry_number", "date", "memo", "kind",
            "status", "source_module", "source_document", "posted_at",
        ]
        read_only_fields = fields


class JournalEntryInputSerializer(serializers.Serializer):
    """
    Create / autosave input. Every field is optional on PATCH; lines
    replace the entry's lines when present.
    """
    date = serializers.DateField(required=False, allow_null=True)
    memo = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    currency = serializers.CharField(min_length=3, max_length=3, required=False, allow_null=True)
    kind = serializers.ChoiceField(
        choices=[k for k in JournalEntry.Kind.choices if k[0] != JournalEntry.Kind.REVERSAL],
        required=False,
        default=JournalEntry.Kind.NORMAL,
    )
    period = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=16)
    lines = JournalLineInputSerializer(many=True, required=False)


# =============================================================================
# Fiscal Periods / Balances
# =============================================================================

class FiscalPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = FiscalPeriod
        fields = ["fiscal_year", "period", "start_date", "end_date", "status"]
        read_only_fields = fields


class PeriodConfigureSerializer(serializers.Serializer):
    fiscal_year = serializers.IntegerField(min_value=1900, max_value=9999)
    period_count = serializers.IntegerField(min_value=1, max_value=16, default=12)


class AccountBalanceSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)
    account_type = serializers.CharField(source="account.account_type", read_only=True)

    class Meta:
        model = AccountBalance
        fields = [
            "account_code", "account_name", "account_type",
            "balance", "debit_total", "credit_total",
            "entry_count", "last_entry_date",
        ]
        read_only_fields = fields
