# projections/models.py
"""
Projection models (materialized views).

These tables are DERIVED from events. They can be:
- Rebuilt from scratch by replaying events
- Updated incrementally as new events arrive

NEVER modify these tables directly. They are owned by their projections.
"""

from decimal import Decimal
from django.db import models

from accounts.models import Company
from accounting.models import Account
from events.models import BusinessEvent
from projections.write_barrier import PROJECTION_OWNED, assert_write_allowed


class ProjectionOwnedModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        assert_write_allowed(self.__class__.__name__, PROJECTION_OWNED, "save")
        super().save(*args, **kwargs)


class AccountBalance(ProjectionOwnedModel):
    """
    Materialized account balance.

    The single answer to "what is the balance of account X?". Computed
    from journal_entry.posted events (reversals arrive as posted
    REVERSAL entries, so they need no special handling).

    - DEBIT-normal accounts (assets, receivables, expenses): debits - credits
    - CREDIT-normal accounts (liabilities, payables, equity, revenue): credits - debits
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="account_balances",
    )

    account = models.OneToOneField(
        Account,
        on_delete=models.CASCADE,
        related_name="projected_balance",
    )

    balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Current balance (positive = normal direction)",
    )

    debit_total = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of all debits ever posted to this account",
    )

    credit_total = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of all credits ever posted to this account",
    )

    entry_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of journal entries affecting this account",
    )

    last_entry_date = models.DateField(
        null=True,
        blank=True,
        help_text="Date of most recent journal entry",
    )

    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
        help_text="Last event that updated this balance",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Account Balance"
        verbose_name_plural = "Account Balances"
        indexes = [
            models.Index(fields=["company", "account"], name="idx_balance_company_account"),
            models.Index(fields=["company", "balance"], name="idx_balance_company_balance"),
        ]

    def __str__(self):
        return f"{self.account.code}: {self.balance}"

    def apply_debit(self, amount: Decimal):
        self.debit_total += amount
        self._recalculate_balance()

    def apply_credit(self, amount: Decimal):
        self.credit_total += amount
        self._recalculate_balance()

    def _recalculate_balance(self):
        if self.account.normal_balance == Account.NormalBalance.CREDIT:
            self.balance = self.credit_total - self.debit_total
        else:
            # DEBIT-normal and MEMO accounts: debit = increase
            self.balance = self.debit_total - self.credit_total

    def verify_integrity(self) -> dict:
        """
        Verify this balance matches a replay of journal_entry.posted events.

        Returns:
            dict with is_valid, expected/actual debit and credit totals and
            the number of lines replayed.
        """
        from events.types import EventTypes

        expected_debit = Decimal("0.00")
        expected_credit = Decimal("0.00")
        lines_replayed = 0

        events = BusinessEvent.objects.filter(
            company=self.company,
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        ).order_by("company_sequence")

        account_public_id = str(self.account.public_id)

        for event in events:
            for line_data in event.data.get("lines", []):
                if line_data.get("account_public_id") != account_public_id:
                    continue
                expected_debit += Decimal(line_data.get("debit", "0"))
                expected_credit += Decimal(line_data.get("credit", "0"))
                lines_replayed += 1

        return {
            "is_valid": self.debit_total == expected_debit and self.credit_total == expected_credit,
            "expected_debit": expected_debit,
            "expected_credit": expected_credit,
            "actual_debit": self.debit_total,
            "actual_credit": self.credit_total,
            "lines_replayed": lines_replayed,
        }


class FiscalPeriod(ProjectionOwnedModel):
    """
    Fiscal period read model.

    Periods are derived from fiscal_period.* events and used to enforce
    posting rules: a posting date must fall inside an OPEN period.
    """

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="fiscal_periods",
    )
    fiscal_year = models.PositiveIntegerField()
    period = models.PositiveSmallIntegerField()
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "fiscal_year", "period"],
                name="uniq_fiscal_period",
            )
        ]
        indexes = [
            models.Index(fields=["company", "fiscal_year", "period"], name="idx_period_company_year"),
            models.Index(fields=["company", "start_date", "end_date"], name="idx_period_company_dates"),
        ]
        ordering = ["fiscal_year", "period"]

    def __str__(self):
        return f"{self.company_id} FY{self.fiscal_year} P{self.period} ({self.status})"


class FiscalPeriodConfig(ProjectionOwnedModel):
    """How many periods a company's fiscal year is divided into."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="fiscal_period_configs",
    )
    fiscal_year = models.PositiveIntegerField()
    period_count = models.PositiveSmallIntegerField(default=12)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "fiscal_year"],
                name="uniq_fiscal_period_config",
            )
        ]

    def __str__(self):
        return f"{self.company_id} FY{self.fiscal_year} ({self.period_count} periods)"


class ProjectionAppliedEvent(ProjectionOwnedModel):
    """
    Tracks which events were applied by each projection to ensure idempotency.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="applied_projection_events",
    )

    projection_name = models.CharField(max_length=100)

    event = models.ForeignKey(
        BusinessEvent,
        on_delete=models.CASCADE,
        related_name="+",
    )

    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "projection_name", "event"],
                name="uniq_projection_event",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "projection_name"], name="idx_applied_company_proj"),
        ]

    def __str__(self):
        return f"{self.projection_name} applied {self.event_id}"
