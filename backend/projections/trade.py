# projections/trade.py
"""
Shared projection for the sales and purchases sub-ledgers.

Sales and purchases emit the same payload shapes (PartyCreatedData,
TradeDocumentCreatedData, SettlementRecordedData, NoteAppliedData...),
so one projection class materializes both. Subclasses name the models,
the foreign-key field names and the event type for each handler.

Running totals (amount_paid, balance_due, note amount_applied...) are
carried in the events themselves; handlers copy them rather than
recomputing, which keeps replays deterministic.
"""

from decimal import Decimal
import logging

from accounts.models import Company
from accounting.models import Account
from accounting.trade import ZERO
from events.models import BusinessEvent
from projections.accounting import _parse_date, _parse_datetime
from projections.base import BaseProjection


logger = logging.getLogger(__name__)


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value not in (None, "") else ZERO


class TradeProjection(BaseProjection):
    """
    Subclasses set the model classes and field names below and return
    {event_type: handler} from event_handlers().
    """

    party_model = None
    order_model = None
    order_line_model = None
    document_model = None
    document_line_model = None
    settlement_model = None
    note_model = None
    note_line_model = None
    application_model = None

    party_field = ""      # customer / vendor
    order_field = ""      # sales_order / purchase_order
    document_field = ""   # invoice / bill
    note_field = ""       # credit_note / debit_note

    def event_handlers(self) -> dict:
        raise NotImplementedError

    @property
    def consumes(self):
        return list(self.event_handlers())

    def handle(self, event: BusinessEvent) -> None:
        handler = self.event_handlers().get(event.event_type)
        if handler is None:
            logger.warning("Unhandled event type for %s: %s", self.name, event.event_type)
            return
        handler(event, event.data)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get(self, model, company, public_id):
        if not public_id:
            return None
        obj = model.objects.filter(company=company, public_id=public_id).first()
        if obj is None:
            logger.warning("%s %s not found in %s", model.__name__, public_id, company)
        return obj

    def _payment_term(self, company, public_id):
        from sales.models import PaymentTerm

        if not public_id:
            return None
        return PaymentTerm.objects.filter(company=company, public_id=public_id).first()

    def _products(self, company, lines):
        from sales.models import Product

        refs = [line["product_public_id"] for line in lines if line.get("product_public_id")]
        return {
            str(p.public_id): p
            for p in Product.objects.filter(company=company, public_id__in=refs)
        }

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def _party_created(self, event, data):
        related = None
        if data.get("related_company_public_id"):
            related = Company.objects.filter(public_id=data["related_company_public_id"]).first()

        self.party_model.objects.projection().update_or_create(
            company=event.company,
            public_id=data["party_public_id"],
            defaults={
                "code": data["code"],
                "name": data["name"],
                "email": data.get("email", ""),
                "phone": data.get("phone", ""),
                "address": data.get("address", ""),
                "tax_id": data.get("tax_id", ""),
                "payment_term": self._payment_term(event.company, data.get("payment_term_public_id")),
                "related_company": related,
            },
        )

    def _party_updated(self, event, data):
        party = self._get(self.party_model, event.company, data["party_public_id"])
        if party is None:
            return
        for field, change in data.get("changes", {}).items():
            if field == "payment_term_public_id":
                party.payment_term = self._payment_term(event.company, change.get("new"))
            else:
                setattr(party, field, change.get("new"))
        party.save(_projection_write=True)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def _order_created(self, event, data):
        party = self._get(self.party_model, event.company, data["party_public_id"])
        if party is None:
            return

        order, _ = self.order_model.objects.projection().update_or_create(
            company=event.company,
            public_id=data["order_public_id"],
            defaults={
                self.party_field: party,
                "number": data["order_number"],
                "order_date": _parse_date(data["order_date"]),
                "expected_date": _parse_date(data.get("expected_date")),
                "status": data["status"],
                "currency": data.get("currency") or event.company.default_currency,
                "subtotal": _dec(data["subtotal"]),
                "tax_amount": _dec(data["tax_amount"]),
                "total": _dec(data["total"]),
                "reference": data.get("reference", ""),
                "notes": data.get("notes", ""),
                "is_intercompany": data.get("is_intercompany", False),
                "intercompany_transaction_public_id": data.get("intercompany_transaction_public_id"),
            },
        )

        order.lines.all().delete()
        products = self._products(event.company, data.get("lines", []))
        self.order_line_model.objects.projection().bulk_create([
            self.order_line_model(
                order=order,
                company=event.company,
                line_no=line["line_no"],
                product=products.get(str(line.get("product_public_id"))),
                description=line.get("description", ""),
                quantity=_dec(line["quantity"]),
                unit_price=_dec(line["unit_price"]),
                tax_rate=_dec(line.get("tax_rate")),
                line_total=_dec(line["line_total"]),
                tax_amount=_dec(line["tax_amount"]),
            )
            for line in data.get("lines", [])
        ])

    def _order_status_changed(self, event, data):
        order = self._get(self.order_model, event.company, data["order_public_id"])
        if order is None:
            return
        documented_field = self.order_line_model.DOCUMENTED_FIELD
        for line_no, quantity in (data.get("line_quantities") or {}).items():
            self.order_line_model.objects.filter(order=order, line_no=int(line_no)).update(
                **{documented_field: _dec(quantity)}
            )
        order.status = data["new_status"]
        order.save(_projection_write=True, update_fields=["status", "updated_at"])

    # ------------------------------------------------------------------
    # Invoices / bills
    # ------------------------------------------------------------------

    def _document_created(self, event, data):
        party = self._get(self.party_model, event.company, data["party_public_id"])
        if party is None:
            return
        order = None
        if data.get("order_public_id"):
            order = self._get(self.order_model, event.company, data["order_public_id"])

        defaults = {
            self.party_field: party,
            self.order_field: order,
            "number": data["document_number"],
            "document_date": _parse_date(data["document_date"]),
            "due_date": _parse_date(data["due_date"]),
            "status": self.document_model.Status.DRAFT,
            "currency": data.get("currency") or event.company.default_currency,
            "subtotal": _dec(data["subtotal"]),
            "tax_amount": _dec(data["tax_amount"]),
            "total": _dec(data["total"]),
            "amount_paid": ZERO,
            "amount_credited": ZERO,
            "balance_due": ZERO,
            "reference": data.get("reference", ""),
            "notes": data.get("notes", ""),
            "is_intercompany": data.get("is_intercompany", False),
            "intercompany_transaction_public_id": data.get("intercompany_transaction_public_id"),
        }
        if hasattr(self.document_model, "vendor_invoice_number"):
            defaults["vendor_invoice_number"] = data.get("vendor_invoice_number", "")

        document, _ = self.document_model.objects.projection().update_or_create(
            company=event.company,
            public_id=data["document_public_id"],
            defaults=defaults,
        )
        self._replace_lines(document, self.document_field, self.document_line_model, data.get("lines", []))

    def _replace_lines(self, parent, parent_field, line_model, lines):
        parent.lines.all().delete()
        accounts = {
            str(acc.public_id): acc
            for acc in Account.objects.filter(
                company=parent.company,
                public_id__in=[line["account_public_id"] for line in lines],
            )
        }
        products = self._products(parent.company, lines)

        line_objects = []
        for line in lines:
            account = accounts.get(str(line["account_public_id"]))
            if account is None:
                logger.warning("Account %s not found for %s", line["account_public_id"], parent)
                continue
            line_objects.append(line_model(
                **{parent_field: parent},
                company=parent.company,
                line_no=line["line_no"],
                product=products.get(str(line.get("product_public_id"))),
                description=line.get("description", ""),
                quantity=_dec(line["quantity"]),
                unit_price=_dec(line["unit_price"]),
                tax_rate=_dec(line.get("tax_rate")),
                line_total=_dec(line["line_total"]),
                tax_amount=_dec(line["tax_amount"]),
                account=account,
                order_line_no=line.get("order_line_no"),
            ))
        line_model.objects.projection().bulk_create(line_objects)

    def _document_posted(self, event, data):
        document = self._get(self.document_model, event.company, data["document_public_id"])
        if document is None:
            return
        document.status = self.document_model.Status.OPEN
        document.journal_entry_public_id = data["journal_entry_public_id"]
        document.posted_at = _parse_datetime(data["posted_at"])
        document.balance_due = _dec(data["balance_due"])
        document.save(_projection_write=True)

    def _document_voided(self, event, data):
        document = self._get(self.document_model, event.company, data["document_public_id"])
        if document is None:
            return
        document.status = self.document_model.Status.VOID
        document.voided_at = _parse_datetime(data["voided_at"])
        document.void_reason = data.get("reason", "")
        document.reversal_entry_public_id = data.get("reversal_entry_public_id")
        document.balance_due = ZERO
        document.save(_projection_write=True)

    # ------------------------------------------------------------------
    # Receipts / payments
    # ------------------------------------------------------------------

    def _update_document_totals(self, company, public_id, **values):
        self.document_model.objects.filter(company=company, public_id=public_id).update(**values)

    def _settlement_recorded(self, event, data):
        party = self._get(self.party_model, event.company, data["party_public_id"])
        document = self._get(self.document_model, event.company, data["document_public_id"])
        cash_account = self._get(Account, event.company, data["cash_account_public_id"])
        if party is None or document is None or cash_account is None:
            return

        self.settlement_model.objects.projection().update_or_create(
            company=event.company,
            public_id=data["settlement_public_id"],
            defaults={
                self.party_field: party,
                self.document_field: document,
                "number": data["settlement_number"],
                "settlement_date": _parse_date(data["settlement_date"]),
                "amount": _dec(data["amount"]),
                "payment_method": data["payment_method"],
                "reference": data.get("reference", ""),
                "is_partial": data.get("is_partial", False),
                "cash_account": cash_account,
                "journal_entry_public_id": data["journal_entry_public_id"],
                "is_intercompany": data.get("is_intercompany", False),
            },
        )
        self._update_document_totals(
            event.company,
            document.public_id,
            amount_paid=_dec(data["document_amount_paid"]),
            balance_due=_dec(data["document_balance_due"]),
            status=data["document_status"],
        )

    def _settlement_voided(self, event, data):
        settlement = self._get(self.settlement_model, event.company, data["settlement_public_id"])
        if settlement is None:
            return
        settlement.status = self.settlement_model.Status.VOID
        settlement.voided_at = _parse_datetime(data["voided_at"])
        settlement.reversal_entry_public_id = data["reversal_entry_public_id"]
        settlement.save(_projection_write=True)
        self._update_document_totals(
            event.company,
            data["document_public_id"],
            amount_paid=_dec(data["document_amount_paid"]),
            balance_due=_dec(data["document_balance_due"]),
            status=data["document_status"],
        )

    # ------------------------------------------------------------------
    # Credit / debit notes
    # ------------------------------------------------------------------

    def _note_created(self, event, data):
        party = self._get(self.party_model, event.company, data["party_public_id"])
        if party is None:
            return
        document = None
        if data.get("document_public_id"):
            document = self._get(self.document_model, event.company, data["document_public_id"])

        note, _ = self.note_model.objects.projection().update_or_create(
            company=event.company,
            public_id=data["note_public_id"],
            defaults={
                self.party_field: party,
                self.document_field: document,
                "number": data["note_number"],
                "note_date": _parse_date(data["note_date"]),
                "reason": data["reason"],
                "currency": data.get("currency") or event.company.default_currency,
                "subtotal": _dec(data["subtotal"]),
                "tax_amount": _dec(data["tax_amount"]),
                "total": _dec(data["total"]),
                "amount_applied": ZERO,
                "status": self.note_model.Status.DRAFT,
                "reference": data.get("reference", ""),
                "is_intercompany": data.get("is_intercompany", False),
            },
        )
        self._replace_lines(note, self.note_field, self.note_line_model, data.get("lines", []))

    def _note_issued(self, event, data):
        note = self._get(self.note_model, event.company, data["note_public_id"])
        if note is None:
            return
        note.status = self.note_model.Status.ISSUED
        note.journal_entry_public_id = data["journal_entry_public_id"]
        note.issued_at = _parse_datetime(data["issued_at"])
        note.save(_projection_write=True)

    def _note_applied(self, event, data):
        note = self._get(self.note_model, event.company, data["note_public_id"])
        document = self._get(self.document_model, event.company, data["document_public_id"])
        if note is None or document is None:
            return

        self.application_model.objects.projection().create(
            **{self.note_field: note, self.document_field: document},
            company=event.company,
            amount=_dec(data["amount"]),
            applied_at=_parse_datetime(data["applied_at"]),
        )
        note.amount_applied = _dec(data["note_amount_applied"])
        note.status = data["note_status"]
        note.save(_projection_write=True)
        self._update_document_totals(
            event.company,
            document.public_id,
            amount_credited=_dec(data["document_amount_credited"]),
            balance_due=_dec(data["document_balance_due"]),
            status=data["document_status"],
        )

    def _note_cancelled(self, event, data):
        note = self._get(self.note_model, event.company, data["note_public_id"])
        if note is None:
            return
        note.status = self.note_model.Status.CANCELLED
        note.cancelled_at = _parse_datetime(data["cancelled_at"])
        note.reversal_entry_public_id = data.get("reversal_entry_public_id")
        note.save(_projection_write=True)

    def _clear_projected_data(self, company) -> None:
        # Parties are updated in place; documents are rebuilt from events.
        self.application_model.objects.filter(company=company).delete()
        self.note_line_model.objects.filter(company=company).delete()
        self.note_model.objects.filter(company=company).delete()
        self.settlement_model.objects.filter(company=company).delete()
        self.document_line_model.objects.filter(company=company).delete()
        self.document_model.objects.filter(company=company).delete()
        self.order_line_model.objects.filter(company=company).delete()
        self.order_model.objects.filter(company=company).delete()
