# accounting/trade.py
"""
Shared shapes for the sales and purchases sub-ledgers.

Sales and purchases mirror each other: a customer and a vendor are both a
trade party, an invoice and a bill are both a trade document, a receipt
and a payment are both a settlement, a credit note and a debit note are
both an adjustment note. The abstract read models below hold the common
columns; sales.models and purchases.models add the party/document foreign
keys and their own numbering.

Line math lives here too, so every document computes totals the same way:

    line_total = quantity * unit_price          (rounded to cents)
    tax_amount = line_total * tax_rate / 100    (rounded to cents)
"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import uuid

from django.db import models

from accounts.models import Company
from accounting.models import Account, AccountingReadModel
from accounting.policies import PolicyViolation


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Quantize to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line(quantity, unit_price, tax_rate) -> tuple[Decimal, Decimal]:
    """Return (line_total, tax_amount) for one document line."""
    line_total = money(Decimal(str(quantity)) * Decimal(str(unit_price)))
    tax_amount = money(line_total * Decimal(str(tax_rate or "0")) / Decimal("100"))
    return line_total, tax_amount


def compute_totals(lines) -> tuple[Decimal, Decimal, Decimal]:
    """
    Sum already-computed lines.

    ``lines`` are dicts carrying ``line_total`` and ``tax_amount``.
    Returns (subtotal, tax_amount, total).
    """
    subtotal = sum((Decimal(str(line["line_total"])) for line in lines), ZERO)
    tax_amount = sum((Decimal(str(line["tax_amount"])) for line in lines), ZERO)
    return money(subtotal), money(tax_amount), money(subtotal + tax_amount)


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CHECK = "CHECK", "Check"
    CARD = "CARD", "Card"
    OTHER = "OTHER", "Other"


# =============================================================================
# Parties
# =============================================================================

class TradeParty(AccountingReadModel):
    """
    A customer or vendor.

    related_company is set for intercompany counterparties: the company
    of the same tenant this party stands for.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=30)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    tax_id = models.CharField(max_length=50, blank=True, default="")
    payment_term = models.ForeignKey(
        "sales.PaymentTerm",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    related_company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="+",
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_%(class)s_code_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_intercompany(self) -> bool:
        return self.related_company_id is not None

    @property
    def days_due(self) -> int:
        return self.payment_term.days_due if self.payment_term_id else 0


# =============================================================================
# Orders
# =============================================================================

class TradeOrder(AccountingReadModel):
    """Sales order / purchase order header. Subclasses define ``status``."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    order_date = models.DateField()
    expected_date = models.DateField(null=True, blank=True)
    currency = models.CharField(max_length=3, default="USD")
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    reference = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    is_intercompany = models.BooleanField(default=False)
    intercompany_transaction_public_id = models.UUIDField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-order_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uniq_%(class)s_number_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.number} ({self.status})"


class TradeOrderLine(AccountingReadModel):
    """
    Order line. Subclasses add the ``order`` foreign key and the
    documented-quantity column named by DOCUMENTED_FIELD.
    """

    DOCUMENTED_FIELD = ""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="+",
    )
    line_no = models.PositiveIntegerField()
    product = models.ForeignKey(
        "sales.Product",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=6, decimal_places=2, default=ZERO)
    line_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    class Meta:
        abstract = True
        ordering = ["line_no"]

    @property
    def documented_quantity(self) -> Decimal:
        return getattr(self, self.DOCUMENTED_FIELD)

    @property
    def remaining_quantity(self) -> Decimal:
        return self.quantity - self.documented_quantity


# =============================================================================
# Invoices / bills
# =============================================================================

class TradeDocument(AccountingReadModel):
    """
    Invoice / bill header.

    Running totals: balance_due = total - amount_paid - amount_credited.
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        OPEN = "OPEN", "Open"
        PARTIAL = "PARTIAL", "Partially Paid"
        PAID = "PAID", "Paid"
        VOID = "VOID", "Void"

    OPEN_STATUSES = (Status.OPEN, Status.PARTIAL)

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    document_date = models.DateField()
    due_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)
    currency = models.CharField(max_length=3, default="USD")

    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    amount_paid = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    amount_credited = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    balance_due = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    journal_entry_public_id = models.UUIDField(null=True, blank=True)
    reversal_entry_public_id = models.UUIDField(null=True, blank=True)
    is_intercompany = models.BooleanField(default=False)
    intercompany_transaction_public_id = models.UUIDField(null=True, blank=True)
    reference = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    posted_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-document_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uniq_%(class)s_number_per_company",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="idx_%(class)s_status"),
            models.Index(fields=["company", "due_date"], name="idx_%(class)s_due"),
        ]

    def __str__(self):
        return f"{self.number} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    @property
    def is_overdue(self) -> bool:
        return self.is_open and self.balance_due > 0 and self.due_date < date.today()

    def days_overdue(self, as_of: date) -> int:
        return max((as_of - self.due_date).days, 0)


class TradeDocumentLine(AccountingReadModel):
    """Invoice / bill / note line. Subclasses add the parent foreign key."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="+",
    )
    line_no = models.PositiveIntegerField()
    product = models.ForeignKey(
        "sales.Product",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=6, decimal_places=2, default=ZERO)
    line_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="+",
    )
    order_line_no = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ["line_no"]


# =============================================================================
# Receipts / payments
# =============================================================================

class Settlement(AccountingReadModel):
    """Receipt / payment against one invoice / bill."""

    class Status(models.TextChoices):
        POSTED = "POSTED", "Posted"
        VOID = "VOID", "Void"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    settlement_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.BANK_TRANSFER,
    )
    reference = models.CharField(max_length=100, blank=True, default="")
    is_partial = models.BooleanField(default=False)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.POSTED)
    cash_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="+",
    )
    journal_entry_public_id = models.UUIDField(null=True, blank=True)
    reversal_entry_public_id = models.UUIDField(null=True, blank=True)
    is_intercompany = models.BooleanField(default=False)
    voided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["-settlement_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uniq_%(class)s_number_per_company",
            ),
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="chk_%(class)s_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.number} {self.amount} ({self.status})"


# =============================================================================
# Credit / debit notes
# =============================================================================

class AdjustmentNote(AccountingReadModel):
    """Credit note / debit note header."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ISSUED = "ISSUED", "Issued"
        PARTIAL = "PARTIAL", "Partially Applied"
        APPLIED = "APPLIED", "Applied"
        CANCELLED = "CANCELLED", "Cancelled"

    APPLICABLE_STATUSES = (Status.ISSUED, Status.PARTIAL)

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    number = models.CharField(max_length=50)
    note_date = models.DateField()
    reason = models.CharField(max_length=255)
    currency = models.CharField(max_length=3, default="USD")
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    amount_applied = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)
    journal_entry_public_id = models.UUIDField(null=True, blank=True)
    reversal_entry_public_id = models.UUIDField(null=True, blank=True)
    is_intercompany = models.BooleanField(default=False)
    reference = models.CharField(max_length=100, blank=True, default="")

    issued_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-note_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uniq_%(class)s_number_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.number} {self.total} ({self.status})"

    @property
    def unapplied_amount(self) -> Decimal:
        return self.total - self.amount_applied


class NoteApplication(AccountingReadModel):
    """One application of a note to a document. Subclasses add both FKs."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="+",
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    applied_at = models.DateTimeField()

    class Meta:
        abstract = True
        ordering = ["applied_at", "id"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="chk_%(class)s_amount_positive",
            ),
        ]


# =============================================================================
# Command helpers
# =============================================================================

def as_date(value, default=None) -> date:
    """Accept a date or an ISO string; None falls back to ``default`` (today)."""
    if value in (None, ""):
        return default or date.today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise PolicyViolation(f"Invalid date: {value!r}")


def _decimal(value, label: str) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else "0"))
    except InvalidOperation:
        raise PolicyViolation(f"Invalid {label}: {value!r}")


def document_status(balance_due: Decimal, amount_paid: Decimal, amount_credited: Decimal) -> str:
    """Status of an issued invoice / posted bill given its running totals."""
    if balance_due <= 0:
        return TradeDocument.Status.PAID
    if amount_paid > 0 or amount_credited > 0:
        return TradeDocument.Status.PARTIAL
    return TradeDocument.Status.OPEN


def note_status(total: Decimal, amount_applied: Decimal) -> str:
    if amount_applied <= 0:
        return AdjustmentNote.Status.ISSUED
    if amount_applied >= total:
        return AdjustmentNote.Status.APPLIED
    return AdjustmentNote.Status.PARTIAL


def _line_product(company, line):
    from sales.models import Product

    ref = line.get("product_public_id")
    if not ref:
        return None
    product = Product.objects.filter(company=company, public_id=ref).first()
    if product is None:
        raise PolicyViolation(f"Product {ref} not found.")
    return product


def _priced_line(company, line, idx: int, price_field: str):
    """Shared validation for order and document lines."""
    product = _line_product(company, line)
    quantity = _decimal(line.get("quantity", "1"), "quantity")
    if quantity <= 0:
        raise PolicyViolation(f"Line {idx}: quantity must be greater than zero.")

    if line.get("unit_price") not in (None, ""):
        unit_price = money(_decimal(line["unit_price"], "unit price"))
    elif product is not None:
        unit_price = getattr(product, price_field)
    else:
        raise PolicyViolation(f"Line {idx}: unit_price is required.")
    if unit_price < 0:
        raise PolicyViolation(f"Line {idx}: unit price cannot be negative.")

    tax_rate = _decimal(line.get("tax_rate", "0"), "tax rate")
    if tax_rate < 0 or tax_rate > 100:
        raise PolicyViolation(f"Line {idx}: tax rate must be between 0 and 100.")

    description = line.get("description") or (product.name if product else "")
    line_total, tax_amount = compute_line(quantity, unit_price, tax_rate)
    return product, quantity, unit_price, tax_rate, description, line_total, tax_amount


def build_order_lines(company, lines, price_field: str = "unit_price") -> list[dict]:
    """
    Validate order input lines and compute their totals.

    Raises:
        PolicyViolation: bad quantity, price, tax rate or unknown product
    """
    from events.types import OrderLineData

    built = []
    for idx, line in enumerate(lines or [], start=1):
        product, quantity, unit_price, tax_rate, description, line_total, tax_amount = (
            _priced_line(company, line, idx, price_field)
        )
        built.append(OrderLineData(
            line_no=idx,
            description=description,
            quantity=str(quantity),
            unit_price=str(unit_price),
            tax_rate=str(tax_rate),
            line_total=str(line_total),
            tax_amount=str(tax_amount),
            product_public_id=str(product.public_id) if product else None,
        ).to_dict())
    return built


def build_document_lines(
    company,
    lines,
    *,
    default_role: str,
    account_field: str | None = None,
    price_field: str = "unit_price",
) -> list[dict]:
    """
    Validate invoice / bill / note input lines.

    The line account is, in order: the line's ``account_public_id``, the
    product's ``account_field`` account, the company account carrying
    ``default_role``.

    Raises:
        PolicyViolation: bad amounts, unknown product/account, missing role
    """
    from accounting.posting import resolve_posting_account
    from events.types import DocumentLineData

    default_account = None
    built = []
    for idx, line in enumerate(lines or [], start=1):
        product, quantity, unit_price, tax_rate, description, line_total, tax_amount = (
            _priced_line(company, line, idx, price_field)
        )

        account = None
        if line.get("account_public_id"):
            account = Account.objects.filter(
                company=company,
                public_id=line["account_public_id"],
            ).first()
            if account is None:
                raise PolicyViolation(f"Line {idx}: account {line['account_public_id']} not found.")
        elif product is not None and account_field and getattr(product, f"{account_field}_id"):
            account = getattr(product, account_field)
        else:
            if default_account is None:
                default_account = resolve_posting_account(company, default_role)
            account = default_account

        order_line_no = line.get("order_line_no")
        built.append(DocumentLineData(
            line_no=idx,
            description=description,
            quantity=str(quantity),
            unit_price=str(unit_price),
            tax_rate=str(tax_rate),
            line_total=str(line_total),
            tax_amount=str(tax_amount),
            account_public_id=str(account.public_id),
            product_public_id=str(product.public_id) if product else None,
            order_line_no=int(order_line_no) if order_line_no else None,
        ).to_dict())
    return built


def lines_from_order(order, quantities=None) -> list[dict]:
    """
    Document input lines for (part of) an order.

    ``quantities`` maps order line_no -> quantity to document. When
    omitted every line's remaining quantity is taken. Quantities above
    the remaining quantity are refused.
    """
    requested = {int(k): _decimal(v, "quantity") for k, v in (quantities or {}).items()}
    order_lines = list(order.lines.all())
    known = {line.line_no for line in order_lines}
    unknown = sorted(set(requested) - known)
    if unknown:
        raise PolicyViolation(f"Order {order.number} has no line {unknown[0]}.")

    result = []
    for line in order_lines:
        remaining = line.remaining_quantity
        quantity = requested.get(line.line_no, Decimal("0")) if quantities else remaining
        if quantity <= 0:
            continue
        if quantity > remaining:
            raise PolicyViolation(
                f"Line {line.line_no}: quantity {quantity} exceeds remaining quantity {remaining}."
            )
        result.append({
            "product_public_id": str(line.product.public_id) if line.product_id else None,
            "description": line.description,
            "quantity": quantity,
            "unit_price": line.unit_price,
            "tax_rate": line.tax_rate,
            "order_line_no": line.line_no,
        })
    if not result:
        raise PolicyViolation(f"Order {order.number} has nothing left to document.")
    return result
