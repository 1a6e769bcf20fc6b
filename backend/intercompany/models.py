# intercompany/models.py
"""
Intercompany READ MODELS.

An IntercompanyTransaction ties a sales order in the source company to
the mirrored purchase order in the target company, and follows the
invoice/bill pairs and settlements made against them. Documents are
referenced by public_id because each side lives in its own company's
books.

An IntercompanyAdjustment records a credit note in the source company
and the debit note mirroring it in the target company.

Both are projected from events in the source company's stream
(projections/intercompany.py).
"""

from decimal import Decimal
import uuid

from django.db import models

from accounts.models import Company, Tenant
from accounting.models import AccountingReadModel
from accounting.trade import ZERO


class IntercompanyTransaction(AccountingReadModel):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        INVOICED = "INVOICED", "Invoiced"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentStatus(models.TextChoices):
        UNPAID = "UNPAID", "Unpaid"
        PARTIAL = "PARTIAL", "Partially Paid"
        PAID = "PAID", "Paid"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="intercompany_transactions",
    )
    source_company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="intercompany_sales",
    )
    target_company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="intercompany_purchases",
    )
    reference = models.CharField(max_length=50)
    transaction_date = models.DateField()
    description = models.CharField(max_length=255, blank=True, default="")
    amount = models.DecimalField(max_digits=18, decimal_places=2)

    sales_order_public_id = models.UUIDField()
    purchase_order_public_id = models.UUIDField()
    invoice_public_id = models.UUIDField(null=True, blank=True)
    bill_public_id = models.UUIDField(null=True, blank=True)

    amount_invoiced = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    amount_settled = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    amount_adjusted = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-transaction_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "reference"],
                name="uniq_ic_transaction_reference_per_tenant",
            ),
            models.CheckConstraint(
                check=~models.Q(source_company=models.F("target_company")),
                name="chk_ic_transaction_two_companies",
            ),
        ]
        indexes = [
            models.Index(fields=["source_company", "status"], name="idx_ic_txn_source_status"),
            models.Index(fields=["target_company", "status"], name="idx_ic_txn_target_status"),
        ]

    def __str__(self):
        return f"{self.reference} {self.amount} ({self.status})"

    @property
    def outstanding(self) -> Decimal:
        """Invoiced amount neither settled nor adjusted."""
        return self.amount_invoiced - self.amount_settled - self.amount_adjusted

    @property
    def uninvoiced(self) -> Decimal:
        return self.amount - self.amount_invoiced


class IntercompanyAdjustment(AccountingReadModel):
    class Status(models.TextChoices):
        COMPLETED = "COMPLETED", "Completed"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="intercompany_adjustments",
    )
    source_company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="intercompany_adjustments_out",
    )
    target_company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="intercompany_adjustments_in",
    )
    transaction = models.ForeignKey(
        IntercompanyTransaction,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="adjustments",
    )
    reference = models.CharField(max_length=50)
    credit_note_public_id = models.UUIDField()
    debit_note_public_id = models.UUIDField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    reason = models.CharField(max_length=255)
    adjustment_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.COMPLETED)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-adjustment_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "reference"],
                name="uniq_ic_adjustment_reference_per_tenant",
            ),
            models.CheckConstraint(
                check=~models.Q(source_company=models.F("target_company")),
                name="chk_ic_adjustment_two_companies",
            ),
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="chk_ic_adjustment_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.reference} {self.amount}"
