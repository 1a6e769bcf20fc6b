# accounting/models.py
"""
General ledger READ MODELS.

IMPORTANT: These are READ MODELS (projections), not primary state.
=================================================================
Events are the source of truth. These tables are materialized views
built by projections that consume events from the event store.

DO NOT:
- Call .save() directly on these models (use commands)
- Call .create() directly (use commands)
- Call .delete() directly (use commands)

All mutations MUST go through a command layer (accounting/commands.py,
sales/commands.py, purchases/commands.py, intercompany/commands.py),
which emits events that projections consume to update these tables.

Models:
- CompanySequence: per-company number allocation (command-owned write model)
- Account: Chart of Accounts (read model)
- JournalEntry: Journal entry headers (read model)
- JournalLine: Journal entry lines (read model)

ProjectionWriteManager and AccountingReadModel are shared by the
subledger read models in sales, purchases and intercompany.
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Sum, Q

from accounts.models import Company
from projections.write_barrier import COMMAND_OWNED, PROJECTION_OWNED, assert_write_allowed


class ProjectionWriteQuerySet(models.QuerySet):
    """
    QuerySet whose write helpers only work inside projection_writes_allowed().

    Projections should use .projection() to get a queryset that allows writes.
    """

    def __init__(self, *args, _projection_write: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self._projection_write = _projection_write

    def _clone(self):
        c = super()._clone()
        c._projection_write = self._projection_write
        return c

    def projection(self):
        clone = self._clone()
        clone._projection_write = True
        return clone

    def update_or_create(self, defaults=None, create_defaults=None, **kwargs):
        if not self._projection_write:
            return super().update_or_create(defaults=defaults, create_defaults=create_defaults, **kwargs)

        defaults = defaults or {}
        create_defaults = create_defaults or {}
        self._for_write = True
        with transaction.atomic(using=self.db):
            try:
                obj = self.select_for_update().get(**kwargs)
            except self.model.DoesNotExist:
                obj = self.model(**{**kwargs, **create_defaults, **defaults})
                obj.save(_projection_write=True, using=self.db)
                return obj, True

            for k, v in defaults.items():
                setattr(obj, k, v)
            obj.save(_projection_write=True, using=self.db)
            return obj, False

    def get_or_create(self, defaults=None, **kwargs):
        if not self._projection_write:
            return super().get_or_create(defaults=defaults, **kwargs)

        self._for_write = True
        with transaction.atomic(using=self.db):
            try:
                return self.get(**kwargs), False
            except self.model.DoesNotExist:
                obj = self.model(**{**kwargs, **(defaults or {})})
                obj.save(_projection_write=True, using=self.db)
                return obj, True

    def bulk_create(self, objs, *args, **kwargs):
        assert_write_allowed(self.model.__name__, PROJECTION_OWNED, "bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def create(self, **kwargs):
        assert_write_allowed(self.model.__name__, PROJECTION_OWNED, "create")
        obj = self.model(**kwargs)
        obj.save(_projection_write=True, using=self.db)
        return obj

    def delete(self):
        assert_write_allowed(self.model.__name__, PROJECTION_OWNED, "delete")
        return super().delete()


class ProjectionWriteManager(models.Manager):
    """
    Usage in projections:
        Account.objects.projection().update_or_create(...)
        JournalLine.objects.projection().bulk_create(...)
    """

    def get_queryset(self):
        return ProjectionWriteQuerySet(self.model, using=self._db)

    def projection(self):
        return self.get_queryset().projection()


class AccountingReadModel(models.Model):
    """Abstract base for every projection-owned table."""

    objects = ProjectionWriteManager()

    class Meta:
        abstract = True

    def save(self, *args, _projection_write: bool = False, **kwargs):
        assert_write_allowed(self.__class__.__name__, PROJECTION_OWNED, "save")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        assert_write_allowed(self.__class__.__name__, PROJECTION_OWNED, "delete")
        return super().delete(*args, **kwargs)


class CompanySequence(models.Model):
    """
    Per-company counters for document and entry numbers.

    This is a write model (not a projection) used by commands
    to allocate unique numbers under concurrency.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"

    def save(self, *args, **kwargs):
        assert_write_allowed("CompanySequence", COMMAND_OWNED, "save")
        super().save(*args, **kwargs)


class Account(AccountingReadModel):
    """
    Chart of Accounts entry.

    Accounts seeded with a company carry a posting ``role`` (receivable,
    payable, revenue, ...) so the document posting service can find them
    without hard-coding codes.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        RECEIVABLE = "RECEIVABLE", "Accounts Receivable"
        CONTRA_ASSET = "CONTRA_ASSET", "Contra Asset"
        LIABILITY = "LIABILITY", "Liability"
        PAYABLE = "PAYABLE", "Accounts Payable"
        CONTRA_LIABILITY = "CONTRA_LIABILITY", "Contra Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        CONTRA_REVENUE = "CONTRA_REVENUE", "Contra Revenue"
        EXPENSE = "EXPENSE", "Expense"
        CONTRA_EXPENSE = "CONTRA_EXPENSE", "Contra Expense"
        CONTRA_EQUITY = "CONTRA_EQUITY", "Contra Equity"
        MEMO = "MEMO", "Memo/Statistical"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"
        NONE = "NONE", "None"  # MEMO accounts

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.RECEIVABLE: NormalBalance.DEBIT,
        AccountType.CONTRA_ASSET: NormalBalance.CREDIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.PAYABLE: NormalBalance.CREDIT,
        AccountType.CONTRA_LIABILITY: NormalBalance.DEBIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
        AccountType.CONTRA_REVENUE: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.CONTRA_EXPENSE: NormalBalance.CREDIT,
        AccountType.CONTRA_EQUITY: NormalBalance.DEBIT,
        AccountType.MEMO: NormalBalance.NONE,
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)
    account_type = models.CharField(max_length=20, choices=AccountType.choices)
    normal_balance = models.CharField(max_length=10, choices=NormalBalance.choices, editable=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    role = models.CharField(
        max_length=30,
        blank=True,
        default="",
        help_text="Posting role used by document commands (e.g. 'receivable')",
    )
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    is_header = models.BooleanField(
        default=False,
        help_text="Header accounts group other accounts and cannot receive postings",
    )
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="idx_account_type"),
            models.Index(fields=["company", "role"], name="idx_account_role"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def clean(self):
        if self.parent and self.parent.company_id != self.company_id:
            raise ValidationError("Parent account must belong to the same company.")
        if self.parent and not self.parent.is_header:
            raise ValidationError("Parent account must be a header account.")

    def save(self, *args, **kwargs):
        self.normal_balance = self.NORMAL_BALANCE_MAP.get(self.account_type, self.NormalBalance.DEBIT)
        self.clean()
        super().save(*args, **kwargs)

    @property
    def is_postable(self) -> bool:
        return not self.is_header and self.status == self.Status.ACTIVE

    def get_balance(self) -> Decimal:
        """Current balance from the AccountBalance projection."""
        from projections.models import AccountBalance

        projection = AccountBalance.objects.filter(company=self.company, account=self).first()
        return projection.balance if projection else Decimal("0.00")


class JournalEntry(AccountingReadModel):
    """
    Journal Entry header.

    Workflow: INCOMPLETE -> DRAFT -> POSTED -> REVERSED

    Entries created by document commands (invoices, bills, receipts, ...)
    arrive already POSTED and carry source_module/source_document.
    """

    class Status(models.TextChoices):
        INCOMPLETE = "INCOMPLETE", "Incomplete"
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        REVERSED = "REVERSED", "Reversed"

    class Kind(models.TextChoices):
        NORMAL = "NORMAL", "Normal"
        REVERSAL = "REVERSAL", "Reversal"
        OPENING = "OPENING", "Opening Balance"
        CLOSING = "CLOSING", "Closing Entry"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    entry_number = models.CharField(max_length=50, blank=True, default="")
    date = models.DateField()
    period = models.PositiveSmallIntegerField(null=True, blank=True)
    memo = models.CharField(max_length=255, blank=True, default="")
    currency = models.CharField(max_length=3, default="USD")
    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.NORMAL)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.INCOMPLETE)

    source_module = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Module that created this entry (e.g. 'sales', 'intercompany')",
    )
    source_document = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Number of the source document (e.g. invoice number)",
    )

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversed_journal_entries",
    )
    reverses_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversal_entry",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "date", "id"], name="idx_je_company_date"),
            models.Index(fields=["company", "status"], name="idx_je_company_status"),
            models.Index(fields=["company", "source_module"], name="idx_je_company_source"),
        ]
        ordering = ["-date", "-id"]

    def __str__(self):
        num = self.entry_number or f"#{self.id}"
        return f"JE {num} ({self.date}) {self.status}"

    def save(self, *args, **kwargs):
        # Invariant: a reversal entry is always a posted REVERSAL.
        if self.reverses_entry_id:
            if self.kind != self.Kind.REVERSAL:
                raise ValidationError("If reverses_entry is set, kind must be REVERSAL.")
            if self.status != self.Status.POSTED:
                raise ValidationError("Reversal entries must be POSTED.")
        super().save(*args, **kwargs)

    @property
    def total_debit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("debit"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("credit"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalLine(AccountingReadModel):
    """One debit or credit against one account."""

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    line_no = models.PositiveIntegerField()
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        unique_together = ("entry", "line_no")
        ordering = ["entry", "line_no"]
        constraints = [
            models.CheckConstraint(
                check=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                check=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                check=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "entry"], name="idx_jl_company_entry"),
            models.Index(fields=["company", "account"], name="idx_jl_company_account"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"

    def save(self, *args, **kwargs):
        if self.entry_id and self.company_id and self.entry.company_id != self.company_id:
            raise ValidationError("JournalLine company must match entry company.")
        if self.account_id and self.company_id and self.account.company_id != self.company_id:
            raise ValidationError("JournalLine company must match account company.")
        super().save(*args, **kwargs)

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
