# reports/queries.py
"""
Report queries.

Reports only read: document read models (sales, purchases, intercompany)
and the AccountBalance projection. Nothing here recomputes balances from
journal lines.

Amounts are returned as Decimal; the views stringify them.
"""

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Q, Sum

from accounting.models import Account
from accounting.trade import AdjustmentNote, Settlement, TradeDocument, ZERO
from accounts.models import Company
from intercompany.models import IntercompanyTransaction
from projections.account_balance import AccountBalanceProjection
from projections.models import AccountBalance
from purchases.models import Bill, DebitNote, Payment, PurchaseOrder, Vendor
from sales.models import CreditNote, Customer, Invoice, Receipt, SalesOrder


TOLERANCE = Decimal(settings.RECONCILIATION_TOLERANCE)

AGING_BUCKETS = [
    ("current", None, 0),
    ("1_30", 1, 30),
    ("31_60", 31, 60),
    ("61_90", 61, 90),
    ("over_90", 91, None),
]

POSTED_STATUSES = (TradeDocument.Status.OPEN, TradeDocument.Status.PARTIAL, TradeDocument.Status.PAID)


def _sum(queryset, field) -> Decimal:
    return queryset.aggregate(total=Sum(field))["total"] or ZERO


def _bucket(days_past_due: int) -> str:
    for name, low, high in AGING_BUCKETS:
        if (low is None or days_past_due >= low) and (high is None or days_past_due <= high):
            return name
    return AGING_BUCKETS[-1][0]


def _role_balance(company, role: str) -> Decimal:
    bal = AccountBalance.objects.filter(company=company, account__role=role).first()
    return bal.balance if bal else ZERO


# =============================================================================
# Receivables / payables
# =============================================================================

def _party_summary(company, as_of, document_model, party_field) -> dict:
    as_of = as_of or date.today()
    documents = document_model.objects.filter(
        company=company,
        status__in=POSTED_STATUSES,
        document_date__lte=as_of,
    ).select_related(party_field)

    aging = {name: ZERO for name, _, _ in AGING_BUCKETS}
    parties = {}
    totals = {
        "total_documented": ZERO,
        "total_settled": ZERO,
        "total_credited": ZERO,
        "outstanding": ZERO,
        "overdue": ZERO,
        "open_count": 0,
    }

    for doc in documents:
        party = getattr(doc, party_field)
        row = parties.setdefault(party.id, {
            "public_id": str(party.public_id),
            "code": party.code,
            "name": party.name,
            "is_intercompany": party.is_intercompany,
            "documented": ZERO,
            "outstanding": ZERO,
            "overdue": ZERO,
            "open_count": 0,
        })
        totals["total_documented"] += doc.total
        totals["total_settled"] += doc.amount_paid
        totals["total_credited"] += doc.amount_credited
        row["documented"] += doc.total

        if doc.status not in TradeDocument.OPEN_STATUSES:
            continue
        days = doc.days_overdue(as_of)
        aging[_bucket(days)] += doc.balance_due
        totals["outstanding"] += doc.balance_due
        totals["open_count"] += 1
        row["outstanding"] += doc.balance_due
        row["open_count"] += 1
        if days > 0:
            totals["overdue"] += doc.balance_due
            row["overdue"] += doc.balance_due

    return {
        "as_of": as_of,
        **totals,
        "aging": aging,
        "parties": sorted(parties.values(), key=lambda row: row["code"]),
    }


def ar_summary(company, as_of: date = None) -> dict:
    """
    Receivables as of a date: invoiced, received, credited and outstanding
    totals, overdue total, aging by days past due, per-customer breakdown.
    """
    summary = _party_summary(company, as_of, Invoice, "customer")
    return {
        "as_of": summary["as_of"],
        "total_invoiced": summary["total_documented"],
        "total_received": summary["total_settled"],
        "total_credited": summary["total_credited"],
        "total_outstanding": summary["outstanding"],
        "total_overdue": summary["overdue"],
        "open_invoice_count": summary["open_count"],
        "aging": summary["aging"],
        "customers": summary["parties"],
    }


def ap_summary(company, as_of: date = None) -> dict:
    """Payables as of a date. Mirror of ar_summary over bills."""
    summary = _party_summary(company, as_of, Bill, "vendor")
    return {
        "as_of": summary["as_of"],
        "total_billed": summary["total_documented"],
        "total_paid": summary["total_settled"],
        "total_credited": summary["total_credited"],
        "total_outstanding": summary["outstanding"],
        "total_overdue": summary["overdue"],
        "open_bill_count": summary["open_count"],
        "aging": summary["aging"],
        "vendors": summary["parties"],
    }


# =============================================================================
# Credit / debit notes
# =============================================================================

def _note_summary(note_model, company, date_from, date_to) -> dict:
    notes = note_model.objects.filter(company=company)
    if date_from:
        notes = notes.filter(note_date__gte=date_from)
    if date_to:
        notes = notes.filter(note_date__lte=date_to)

    issued_statuses = (
        AdjustmentNote.Status.ISSUED,
        AdjustmentNote.Status.PARTIAL,
        AdjustmentNote.Status.APPLIED,
    )
    issued = notes.filter(status__in=issued_statuses)
    stats = issued.aggregate(
        total_amount=Sum("total"),
        applied_amount=Sum("amount_applied"),
        applied_count=Count("id", filter=Q(amount_applied__gt=0)),
    )
    return {
        "count": notes.count(),
        "draft_count": notes.filter(status=AdjustmentNote.Status.DRAFT).count(),
        "cancelled_count": notes.filter(status=AdjustmentNote.Status.CANCELLED).count(),
        "issued_count": issued.count(),
        "applied_count": stats["applied_count"] or 0,
        "total_amount": stats["total_amount"] or ZERO,
        "applied_amount": stats["applied_amount"] or ZERO,
        "unapplied_amount": (stats["total_amount"] or ZERO) - (stats["applied_amount"] or ZERO),
    }


def credit_debit_summary(company, date_from: date = None, date_to: date = None) -> dict:
    """
    Credit notes (sales) and debit notes (purchases) side by side.

    Totals count issued notes only; drafts and cancelled notes are
    counted but carry no amount. net_amount = credit total - debit total.
    """
    credit = _note_summary(CreditNote, company, date_from, date_to)
    debit = _note_summary(DebitNote, company, date_from, date_to)
    return {
        "date_from": date_from,
        "date_to": date_to,
        "credit_notes": credit,
        "debit_notes": debit,
        "net_amount": credit["total_amount"] - debit["total_amount"],
    }


# =============================================================================
# Sub-ledger reconciliation
# =============================================================================

def _subledger_balance(company, document_model, note_model, intercompany: bool) -> Decimal:
    """Open document balances less issued, unapplied note credit."""
    open_documents = document_model.objects.filter(
        company=company,
        status__in=TradeDocument.OPEN_STATUSES,
        is_intercompany=intercompany,
    )
    unapplied = note_model.objects.filter(
        company=company,
        status__in=AdjustmentNote.APPLICABLE_STATUSES,
        is_intercompany=intercompany,
    )
    return _sum(open_documents, "balance_due") - (_sum(unapplied, "total") - _sum(unapplied, "amount_applied"))


CONTROL_ACCOUNTS = [
    ("receivable", Invoice, CreditNote, False),
    ("ic_receivable", Invoice, CreditNote, True),
    ("payable", Bill, DebitNote, False),
    ("ic_payable", Bill, DebitNote, True),
]


def subledger_reconciliation(company) -> dict:
    """
    Control account balances against the document sub-ledgers.

    A difference means something posted to a control account outside the
    document commands (a manual journal entry, say).
    """
    rows = []
    for role, document_model, note_model, intercompany in CONTROL_ACCOUNTS:
        account = Account.objects.filter(company=company, role=role).first()
        ledger = _role_balance(company, role)
        subledger = _subledger_balance(company, document_model, note_model, intercompany)
        difference = ledger - subledger
        rows.append({
            "role": role,
            "account_code": account.code if account else None,
            "account_name": account.name if account else None,
            "ledger_balance": ledger,
            "subledger_balance": subledger,
            "difference": difference,
            "is_reconciled": abs(difference) < TOLERANCE,
        })
    return {
        "accounts": rows,
        "is_reconciled": all(row["is_reconciled"] for row in rows),
    }


# =============================================================================
# Intercompany
# =============================================================================

def _receivable_from(company, other) -> Decimal:
    """What ``other`` owes ``company`` per company's sales documents."""
    invoices = Invoice.objects.filter(
        company=company,
        customer__related_company=other,
        status__in=TradeDocument.OPEN_STATUSES,
    )
    notes = CreditNote.objects.filter(
        company=company,
        customer__related_company=other,
        status__in=AdjustmentNote.APPLICABLE_STATUSES,
    )
    return _sum(invoices, "balance_due") - (_sum(notes, "total") - _sum(notes, "amount_applied"))


def _payable_to(company, other) -> Decimal:
    """What ``company`` owes ``other`` per company's purchase documents."""
    bills = Bill.objects.filter(
        company=company,
        vendor__related_company=other,
        status__in=TradeDocument.OPEN_STATUSES,
    )
    notes = DebitNote.objects.filter(
        company=company,
        vendor__related_company=other,
        status__in=AdjustmentNote.APPLICABLE_STATUSES,
    )
    return _sum(bills, "balance_due") - (_sum(notes, "total") - _sum(notes, "amount_applied"))


def _related_companies(company):
    ids = set(
        Customer.objects.filter(company=company, related_company__isnull=False)
        .values_list("related_company_id", flat=True)
    )
    ids |= set(
        Vendor.objects.filter(company=company, related_company__isnull=False)
        .values_list("related_company_id", flat=True)
    )
    return Company.objects.filter(id__in=ids).order_by("name")


def intercompany_balances(company) -> dict:
    """Per related company: receivable, payable and net position."""
    rows = []
    total_receivable = ZERO
    total_payable = ZERO
    for other in _related_companies(company):
        receivable = _receivable_from(company, other)
        payable = _payable_to(company, other)
        rows.append({
            "company_public_id": str(other.public_id),
            "company_name": other.name,
            "receivable": receivable,
            "payable": payable,
            "net": receivable - payable,
        })
        total_receivable += receivable
        total_payable += payable
    return {
        "companies": rows,
        "total_receivable": total_receivable,
        "total_payable": total_payable,
        "net": total_receivable - total_payable,
    }


def intercompany_reconciliation(tenant) -> dict:
    """
    Both sides of every intercompany relationship in a tenant.

    Per transaction: the source company's open invoice balance against the
    target company's open bill balance. Per company pair: everything the
    seller's books say is owed against what the buyer's books say it owes.
    """
    transactions = []
    for txn in IntercompanyTransaction.objects.filter(tenant=tenant).select_related(
        "source_company", "target_company",
    ).order_by("reference"):
        receivable = _sum(
            Invoice.objects.filter(
                company=txn.source_company,
                intercompany_transaction_public_id=txn.public_id,
                status__in=TradeDocument.OPEN_STATUSES,
            ),
            "balance_due",
        )
        payable = _sum(
            Bill.objects.filter(
                company=txn.target_company,
                intercompany_transaction_public_id=txn.public_id,
                status__in=TradeDocument.OPEN_STATUSES,
            ),
            "balance_due",
        )
        difference = receivable - payable
        transactions.append({
            "reference": txn.reference,
            "transaction_public_id": str(txn.public_id),
            "source_company": txn.source_company.name,
            "target_company": txn.target_company.name,
            "status": txn.status,
            "payment_status": txn.payment_status,
            "source_receivable": receivable,
            "target_payable": payable,
            "difference": difference,
            "is_reconciled": abs(difference) < TOLERANCE,
        })

    pairs = []
    companies = list(Company.objects.filter(tenant=tenant).order_by("name"))
    for source in companies:
        for target in companies:
            if source.id == target.id:
                continue
            receivable = _receivable_from(source, target)
            payable = _payable_to(target, source)
            if receivable == ZERO and payable == ZERO:
                continue
            difference = receivable - payable
            pairs.append({
                "source_company": source.name,
                "source_company_public_id": str(source.public_id),
                "target_company": target.name,
                "target_company_public_id": str(target.public_id),
                "source_receivable": receivable,
                "target_payable": payable,
                "difference": difference,
                "is_reconciled": abs(difference) < TOLERANCE,
            })

    return {
        "tenant": tenant.name,
        "transactions": transactions,
        "company_pairs": pairs,
        "is_reconciled": all(row["is_reconciled"] for row in transactions + pairs),
    }


# =============================================================================
# Statements
# =============================================================================

def _type_total(company, types, contra_types=()) -> Decimal:
    balances = AccountBalance.objects.filter(company=company)
    return (
        _sum(balances.filter(account__account_type__in=types), "balance")
        - _sum(balances.filter(account__account_type__in=contra_types), "balance")
    )


def trial_balance(company) -> dict:
    projection = AccountBalanceProjection()
    result = projection.get_trial_balance(company)
    result["lag"] = projection.get_lag(company)
    return result


def income_statement(company) -> dict:
    """Revenue less expenses from projected balances (contra accounts netted)."""
    T = Account.AccountType
    balances = AccountBalance.objects.filter(
        company=company,
        account__account_type__in=[T.REVENUE, T.CONTRA_REVENUE, T.EXPENSE, T.CONTRA_EXPENSE],
    ).select_related("account").order_by("account__code")

    revenue, expenses = [], []
    for bal in balances:
        item = {"code": bal.account.code, "name": bal.account.name, "balance": bal.balance}
        if bal.account.account_type in (T.REVENUE, T.CONTRA_REVENUE):
            revenue.append(item)
        else:
            expenses.append(item)

    total_revenue = _type_total(company, [T.REVENUE], [T.CONTRA_REVENUE])
    total_expenses = _type_total(company, [T.EXPENSE], [T.CONTRA_EXPENSE])
    return {
        "as_of_date": date.today(),
        "revenue": revenue,
        "expenses": expenses,
        "total_revenue": total_revenue,
        "total_expenses": total_expenses,
        "net_income": total_revenue - total_expenses,
    }


def balance_sheet(company) -> dict:
    """
    Assets = Liabilities + Equity, with the unclosed net income shown
    as current earnings inside equity.
    """
    T = Account.AccountType
    sections = {
        "assets": ([T.ASSET, T.RECEIVABLE], [T.CONTRA_ASSET]),
        "liabilities": ([T.LIABILITY, T.PAYABLE], [T.CONTRA_LIABILITY]),
        "equity": ([T.EQUITY], [T.CONTRA_EQUITY]),
    }
    result = {"as_of_date": date.today()}
    for key, (types, contra) in sections.items():
        balances = AccountBalance.objects.filter(
            company=company,
            account__account_type__in=types + contra,
        ).select_related("account").order_by("account__code")
        result[key] = {
            "accounts": [
                {"code": bal.account.code, "name": bal.account.name, "balance": bal.balance}
                for bal in balances
            ],
            "total": _type_total(company, types, contra),
        }

    current_earnings = income_statement(company)["net_income"]
    result["equity"]["current_earnings"] = current_earnings
    result["equity"]["total"] += current_earnings

    total_liabilities_and_equity = result["liabilities"]["total"] + result["equity"]["total"]
    result["total_assets"] = result["assets"]["total"]
    result["total_liabilities_and_equity"] = total_liabilities_and_equity
    result["is_balanced"] = abs(result["total_assets"] - total_liabilities_and_equity) < TOLERANCE
    return result


# =============================================================================
# Tenant
# =============================================================================

def company_summary(company) -> dict:
    T = Account.AccountType
    revenue = _type_total(company, [T.REVENUE], [T.CONTRA_REVENUE])
    expenses = _type_total(company, [T.EXPENSE], [T.CONTRA_EXPENSE])
    return {
        "company_public_id": str(company.public_id),
        "company_name": company.name,
        "accounts_receivable": _role_balance(company, "receivable") + _role_balance(company, "ic_receivable"),
        "accounts_payable": _role_balance(company, "payable") + _role_balance(company, "ic_payable"),
        "intercompany_receivable": _role_balance(company, "ic_receivable"),
        "intercompany_payable": _role_balance(company, "ic_payable"),
        "cash": _role_balance(company, "cash"),
        "revenue": revenue,
        "expenses": expenses,
        "net_income": revenue - expenses,
        "sales_orders": SalesOrder.objects.filter(company=company).count(),
        "purchase_orders": PurchaseOrder.objects.filter(company=company).count(),
        "invoices": Invoice.objects.filter(company=company).exclude(status=TradeDocument.Status.DRAFT).count(),
        "bills": Bill.objects.filter(company=company).exclude(status=TradeDocument.Status.DRAFT).count(),
    }


AMOUNT_FIELDS = [
    "accounts_receivable", "accounts_payable", "intercompany_receivable", "intercompany_payable",
    "cash", "revenue", "expenses", "net_income",
]
COUNT_FIELDS = ["sales_orders", "purchase_orders", "invoices", "bills"]


def tenant_summary(tenant) -> dict:
    """
    Every company of a tenant side by side, with tenant totals.

    The intercompany receivable and payable totals are what a
    consolidation would eliminate.
    """
    companies = [company_summary(company) for company in Company.objects.filter(tenant=tenant).order_by("name")]
    totals = {field: sum((row[field] for row in companies), ZERO) for field in AMOUNT_FIELDS}
    totals.update({field: sum(row[field] for row in companies) for field in COUNT_FIELDS})
    return {
        "tenant": tenant.name,
        "companies": companies,
        "totals": totals,
        "eliminations": {
            "intercompany_receivable": totals["intercompany_receivable"],
            "intercompany_payable": totals["intercompany_payable"],
            "difference": totals["intercompany_receivable"] - totals["intercompany_payable"],
        },
    }


# =============================================================================
# Order and settlement tracking
# =============================================================================

def _settlement_row(settlement) -> dict:
    return {
        "public_id": str(settlement.public_id),
        "number": settlement.number,
        "date": settlement.settlement_date,
        "amount": settlement.amount,
        "payment_method": settlement.payment_method,
        "reference": settlement.reference,
    }


def _document_row(document, settlements_name, settlements) -> dict:
    return {
        "public_id": str(document.public_id),
        "number": document.number,
        "date": document.document_date,
        "due_date": document.due_date,
        "status": document.status,
        "total": document.total,
        "amount_paid": document.amount_paid,
        "amount_credited": document.amount_credited,
        "balance_due": document.balance_due,
        settlements_name: [_settlement_row(s) for s in settlements],
    }


def _workflow_status(documents) -> str:
    """Where an order stands: ORDERED, INVOICED, PARTIALLY_PAID or PAID."""
    if not documents:
        return "ORDERED"
    if all(doc["balance_due"] <= 0 for doc in documents):
        return "PAID"
    if any(doc["amount_paid"] > 0 or doc["amount_credited"] > 0 for doc in documents):
        return "PARTIALLY_PAID"
    return "INVOICED"


def _order_tracking(company, order_model, party_field, documents_name, settlements_name, labels, params) -> dict:
    """
    Orders with their posted documents and the settlements against them.

    ``labels`` names the documented and settled amounts, e.g.
    ("invoiced", "received").
    """
    documented_label, settled_label = labels
    orders = order_model.objects.filter(company=company).select_related(party_field)
    if params.get("date_from"):
        orders = orders.filter(order_date__gte=params["date_from"])
    if params.get("date_to"):
        orders = orders.filter(order_date__lte=params["date_to"])
    if params.get("party"):
        orders = orders.filter(**{f"{party_field}__public_id": params["party"]})
    if params.get("status"):
        orders = orders.filter(status=params["status"])

    rows = []
    totals = {
        "total_ordered": ZERO,
        f"total_{documented_label}": ZERO,
        f"total_{settled_label}": ZERO,
        "total_outstanding": ZERO,
    }
    for order in orders.order_by("-order_date", "-id"):
        documents = []
        for doc in getattr(order, documents_name).filter(status__in=POSTED_STATUSES).order_by("document_date", "id"):
            settlements = getattr(doc, settlements_name).filter(
                status=Settlement.Status.POSTED,
            ).order_by("settlement_date", "id")
            documents.append(_document_row(doc, settlements_name, settlements))

        documented = sum((doc["total"] for doc in documents), ZERO)
        settled = sum((doc["amount_paid"] for doc in documents), ZERO)
        outstanding = sum((doc["balance_due"] for doc in documents), ZERO)
        party = getattr(order, party_field)
        rows.append({
            "public_id": str(order.public_id),
            "number": order.number,
            "order_date": order.order_date,
            "status": order.status,
            f"{party_field}_public_id": str(party.public_id),
            f"{party_field}_name": party.name,
            "total": order.total,
            "is_intercompany": order.is_intercompany,
            documented_label: documented,
            settled_label: settled,
            "outstanding": outstanding,
            "workflow_status": _workflow_status(documents),
            documents_name: documents,
        })
        totals["total_ordered"] += order.total
        totals[f"total_{documented_label}"] += documented
        totals[f"total_{settled_label}"] += settled
        totals["total_outstanding"] += outstanding

    return {"order_count": len(rows), **totals, "orders": rows}


def sales_order_tracking(company, date_from=None, date_to=None, customer=None, status=None) -> dict:
    """
    Each sales order with its issued invoices and the receipts against them.

    Void invoices and void receipts are left out. Credited amounts show on
    the invoices but not as receipts.
    """
    return _order_tracking(
        company, SalesOrder, "customer", "invoices", "receipts", ("invoiced", "received"),
        {"date_from": date_from, "date_to": date_to, "party": customer, "status": status},
    )


def purchase_order_tracking(company, date_from=None, date_to=None, vendor=None, status=None) -> dict:
    """Each purchase order with its posted bills and the payments against them."""
    return _order_tracking(
        company, PurchaseOrder, "vendor", "bills", "payments", ("billed", "paid"),
        {"date_from": date_from, "date_to": date_to, "party": vendor, "status": status},
    )


def receipt_tracking(company, date_from=None, date_to=None) -> dict:
    """
    Receipts grouped by the invoice they settle, with collection figures.

    Only invoices with at least one posted receipt in the date range are
    listed. collection_rate is received / invoiced as a percentage.
    """
    receipts = Receipt.objects.filter(company=company, status=Settlement.Status.POSTED).select_related(
        "invoice", "invoice__customer", "invoice__sales_order",
    )
    if date_from:
        receipts = receipts.filter(settlement_date__gte=date_from)
    if date_to:
        receipts = receipts.filter(settlement_date__lte=date_to)

    invoices = {}
    for receipt in receipts.order_by("settlement_date", "id"):
        invoice = receipt.invoice
        row = invoices.get(invoice.id)
        if row is None:
            row = invoices[invoice.id] = {
                "public_id": str(invoice.public_id),
                "number": invoice.number,
                "date": invoice.document_date,
                "status": invoice.status,
                "customer_name": invoice.customer.name,
                "order_number": invoice.sales_order.number if invoice.sales_order_id else None,
                "total": invoice.total,
                "amount_credited": invoice.amount_credited,
                "balance_due": invoice.balance_due,
                "received": ZERO,
                "receipts": [],
            }
        row["receipts"].append(_settlement_row(receipt))
        row["received"] += receipt.amount

    rows = sorted(invoices.values(), key=lambda row: row["number"])
    for row in rows:
        row["receipt_count"] = len(row["receipts"])
        row["collected_percent"] = (
            (row["received"] / row["total"] * 100).quantize(Decimal("0.01")) if row["total"] else ZERO
        )
        row["payment_status"] = "PAID" if row["balance_due"] <= 0 else "PARTIAL"

    total_invoiced = sum((row["total"] for row in rows), ZERO)
    total_received = sum((row["received"] for row in rows), ZERO)
    return {
        "invoice_count": len(rows),
        "receipt_count": sum(row["receipt_count"] for row in rows),
        "total_invoiced": total_invoiced,
        "total_received": total_received,
        "total_outstanding": sum((row["balance_due"] for row in rows), ZERO),
        "paid_count": sum(1 for row in rows if row["payment_status"] == "PAID"),
        "partial_count": sum(1 for row in rows if row["payment_status"] == "PARTIAL"),
        "collection_rate": (
            (total_received / total_invoiced * 100).quantize(Decimal("0.01")) if total_invoiced else ZERO
        ),
        "invoices": rows,
    }


def receipt_eligible_transactions(company) -> dict:
    """
    What the company can record receipts against right now.

    Ordinary open invoices take a receipt directly. Intercompany invoices
    are settled through their transaction, so they are listed as the
    transactions this company sells on that still carry an outstanding
    balance.
    """
    invoices = Invoice.objects.filter(
        company=company,
        status__in=TradeDocument.OPEN_STATUSES,
        intercompany_transaction_public_id__isnull=True,
        balance_due__gt=0,
    ).select_related("customer").order_by("due_date", "number")

    transactions = IntercompanyTransaction.objects.filter(
        source_company=company,
    ).exclude(status=IntercompanyTransaction.Status.CANCELLED).select_related("target_company")

    return {
        "invoices": [
            {
                "public_id": str(invoice.public_id),
                "number": invoice.number,
                "date": invoice.document_date,
                "due_date": invoice.due_date,
                "customer_public_id": str(invoice.customer.public_id),
                "customer_name": invoice.customer.name,
                "status": invoice.status,
                "total": invoice.total,
                "amount_paid": invoice.amount_paid,
                "amount_credited": invoice.amount_credited,
                "balance_due": invoice.balance_due,
                "is_overdue": invoice.is_overdue,
            }
            for invoice in invoices
        ],
        "intercompany_transactions": [
            {
                "public_id": str(txn.public_id),
                "reference": txn.reference,
                "date": txn.transaction_date,
                "target_company_public_id": str(txn.target_company.public_id),
                "target_company_name": txn.target_company.name,
                "amount": txn.amount,
                "amount_invoiced": txn.amount_invoiced,
                "amount_settled": txn.amount_settled,
                "outstanding": txn.outstanding,
                "payment_status": txn.payment_status,
            }
            for txn in transactions.order_by("reference")
            if txn.outstanding > 0
        ],
    }


# =============================================================================
# Cash
# =============================================================================

def _settlement_totals(queryset) -> dict:
    stats = queryset.aggregate(
        count=Count("id"),
        total=Sum("amount"),
        intercompany=Sum("amount", filter=Q(is_intercompany=True)),
    )
    total = stats["total"] or ZERO
    intercompany = stats["intercompany"] or ZERO
    return {
        "count": stats["count"] or 0,
        "total": total,
        "intercompany": intercompany,
        "trade": total - intercompany,
    }


def payment_reconciliation(company) -> dict:
    """
    Receipts and payments against the documents they settle and the cash
    account they moved.

    Posted receipts must add up to the amount_paid of the invoices, and
    posted payments to that of the bills. Cash moved by anything other
    than a receipt or payment (journal entries) shows as other_movements.
    """
    receipts = Receipt.objects.filter(company=company, status=Settlement.Status.POSTED)
    payments = Payment.objects.filter(company=company, status=Settlement.Status.POSTED)
    posted_invoices = Invoice.objects.filter(company=company, status__in=POSTED_STATUSES)
    posted_bills = Bill.objects.filter(company=company, status__in=POSTED_STATUSES)

    received = _sum(receipts, "amount")
    paid = _sum(payments, "amount")
    invoices_paid = _sum(posted_invoices, "amount_paid")
    bills_paid = _sum(posted_bills, "amount_paid")

    cash_balance = _role_balance(company, "cash")
    net_settlements = (
        _sum(receipts.filter(cash_account__role="cash"), "amount")
        - _sum(payments.filter(cash_account__role="cash"), "amount")
    )

    receipts_match = abs(received - invoices_paid) < TOLERANCE
    payments_match = abs(paid - bills_paid) < TOLERANCE
    return {
        "cash_balance": cash_balance,
        "receipts": {"count": receipts.count(), "total": received},
        "payments": {"count": payments.count(), "total": paid},
        "invoices": {
            "count": posted_invoices.count(),
            "total": _sum(posted_invoices, "total"),
            "amount_paid": invoices_paid,
        },
        "bills": {
            "count": posted_bills.count(),
            "total": _sum(posted_bills, "total"),
            "amount_paid": bills_paid,
        },
        "net_settlements": net_settlements,
        "other_movements": cash_balance - net_settlements,
        "receipts_match_invoices": receipts_match,
        "payments_match_bills": payments_match,
        "is_reconciled": receipts_match and payments_match,
    }


def cash_flow_statement(company, date_from: date = None, date_to: date = None) -> dict:
    """
    Operating cash flow from receipts and payments dated in the period,
    with the current cash, receivable and payable positions.
    """
    receipts = Receipt.objects.filter(company=company, status=Settlement.Status.POSTED)
    payments = Payment.objects.filter(company=company, status=Settlement.Status.POSTED)
    if date_from:
        receipts = receipts.filter(settlement_date__gte=date_from)
        payments = payments.filter(settlement_date__gte=date_from)
    if date_to:
        receipts = receipts.filter(settlement_date__lte=date_to)
        payments = payments.filter(settlement_date__lte=date_to)

    from_customers = _settlement_totals(receipts)
    to_suppliers = _settlement_totals(payments)
    return {
        "date_from": date_from,
        "date_to": date_to,
        "operating_activities": {
            "cash_from_customers": from_customers,
            "cash_to_suppliers": to_suppliers,
            "net_operating_cash": from_customers["total"] - to_suppliers["total"],
        },
        "cash_position": _role_balance(company, "cash"),
        "receivables": _role_balance(company, "receivable") + _role_balance(company, "ic_receivable"),
        "payables": _role_balance(company, "payable") + _role_balance(company, "ic_payable"),
    }
