# projections/sales.py
"""
Sales projection: payment terms, products, customers, sales orders,
invoices, receipts and credit notes.

The catalogue (payment terms, products) lives here because purchases
reads the same rows.
"""

import logging

from events.types import EventTypes
from projections.base import projection_registry
from projections.trade import TradeProjection, _dec
from accounting.models import Account
from sales.models import (
    CreditNote,
    CreditNoteApplication,
    CreditNoteLine,
    Customer,
    Invoice,
    InvoiceLine,
    PaymentTerm,
    Product,
    Receipt,
    SalesOrder,
    SalesOrderLine,
)


logger = logging.getLogger(__name__)


class SalesProjection(TradeProjection):
    party_model = Customer
    order_model = SalesOrder
    order_line_model = SalesOrderLine
    document_model = Invoice
    document_line_model = InvoiceLine
    settlement_model = Receipt
    note_model = CreditNote
    note_line_model = CreditNoteLine
    application_model = CreditNoteApplication

    party_field = "customer"
    order_field = "sales_order"
    document_field = "invoice"
    note_field = "credit_note"

    @property
    def name(self) -> str:
        return "sales_read_model"

    def event_handlers(self) -> dict:
        return {
            EventTypes.PAYMENT_TERM_CREATED: self._payment_term_created,
            EventTypes.PRODUCT_CREATED: self._product_created,
            EventTypes.PRODUCT_UPDATED: self._product_updated,
            EventTypes.CUSTOMER_CREATED: self._party_created,
            EventTypes.CUSTOMER_UPDATED: self._party_updated,
            EventTypes.SALES_ORDER_CREATED: self._order_created,
            EventTypes.SALES_ORDER_STATUS_CHANGED: self._order_status_changed,
            EventTypes.INVOICE_CREATED: self._document_created,
            EventTypes.INVOICE_ISSUED: self._document_posted,
            EventTypes.INVOICE_VOIDED: self._document_voided,
            EventTypes.RECEIPT_RECORDED: self._settlement_recorded,
            EventTypes.RECEIPT_VOIDED: self._settlement_voided,
            EventTypes.CREDIT_NOTE_CREATED: self._note_created,
            EventTypes.CREDIT_NOTE_ISSUED: self._note_issued,
            EventTypes.CREDIT_NOTE_APPLIED: self._note_applied,
            EventTypes.CREDIT_NOTE_CANCELLED: self._note_cancelled,
        }

    def _payment_term_created(self, event, data):
        PaymentTerm.objects.projection().update_or_create(
            company=event.company,
            public_id=data["term_public_id"],
            defaults={
                "code": data["code"],
                "name": data["name"],
                "days_due": data["days_due"],
            },
        )

    def _account(self, company, public_id):
        if not public_id:
            return None
        return Account.objects.filter(company=company, public_id=public_id).first()

    def _product_created(self, event, data):
        Product.objects.projection().update_or_create(
            company=event.company,
            public_id=data["product_public_id"],
            defaults={
                "code": data["code"],
                "name": data["name"],
                "description": data.get("description", ""),
                "unit_price": _dec(data["unit_price"]),
                "cost_price": _dec(data["cost_price"]),
                "revenue_account": self._account(event.company, data.get("revenue_account_public_id")),
                "expense_account": self._account(event.company, data.get("expense_account_public_id")),
            },
        )

    def _product_updated(self, event, data):
        product = self._get(Product, event.company, data["product_public_id"])
        if product is None:
            return
        for field, change in data.get("changes", {}).items():
            new = change.get("new")
            if field in ("unit_price", "cost_price"):
                setattr(product, field, _dec(new))
            elif field.endswith("_account_public_id"):
                setattr(product, field.replace("_public_id", ""), self._account(event.company, new))
            else:
                setattr(product, field, new)
        product.save(_projection_write=True)


projection_registry.register(SalesProjection())
