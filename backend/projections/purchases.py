# projections/purchases.py
"""
Purchases projection: vendors, purchase orders, bills, payments and
debit notes. Same handlers as the sales projection over the purchases
models.
"""

from events.types import EventTypes
from projections.base import projection_registry
from projections.trade import TradeProjection
from purchases.models import (
    Bill,
    BillLine,
    DebitNote,
    DebitNoteApplication,
    DebitNoteLine,
    Payment,
    PurchaseOrder,
    PurchaseOrderLine,
    Vendor,
)


class PurchasesProjection(TradeProjection):
    party_model = Vendor
    order_model = PurchaseOrder
    order_line_model = PurchaseOrderLine
    document_model = Bill
    document_line_model = BillLine
    settlement_model = Payment
    note_model = DebitNote
    note_line_model = DebitNoteLine
    application_model = DebitNoteApplication

    party_field = "vendor"
    order_field = "purchase_order"
    document_field = "bill"
    note_field = "debit_note"

    @property
    def name(self) -> str:
        return "purchases_read_model"

    def event_handlers(self) -> dict:
        return {
            EventTypes.VENDOR_CREATED: self._party_created,
            EventTypes.VENDOR_UPDATED: self._party_updated,
            EventTypes.PURCHASE_ORDER_CREATED: self._order_created,
            EventTypes.PURCHASE_ORDER_STATUS_CHANGED: self._order_status_changed,
            EventTypes.BILL_CREATED: self._document_created,
            EventTypes.BILL_POSTED: self._document_posted,
            EventTypes.BILL_VOIDED: self._document_voided,
            EventTypes.PAYMENT_RECORDED: self._settlement_recorded,
            EventTypes.PAYMENT_VOIDED: self._settlement_voided,
            EventTypes.DEBIT_NOTE_CREATED: self._note_created,
            EventTypes.DEBIT_NOTE_ISSUED: self._note_issued,
            EventTypes.DEBIT_NOTE_APPLIED: self._note_applied,
            EventTypes.DEBIT_NOTE_CANCELLED: self._note_cancelled,
        }


projection_registry.register(PurchasesProjection())
