# projections/intercompany.py
"""
Intercompany projection.

Consumes the intercompany_* events of the source company's stream and
maintains IntercompanyTransaction and IntercompanyAdjustment. The
documents on either side are projected by the sales and purchases
projections; this one only keeps the running totals that tie them.
"""

from decimal import Decimal
import logging

from accounts.models import Company
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry
from intercompany.models import IntercompanyAdjustment, IntercompanyTransaction
from intercompany.policies import transaction_status


logger = logging.getLogger(__name__)


class IntercompanyProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "intercompany_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.INTERCOMPANY_TRANSACTION_CREATED,
            EventTypes.INTERCOMPANY_TRANSACTION_INVOICED,
            EventTypes.INTERCOMPANY_TRANSACTION_SETTLED,
            EventTypes.INTERCOMPANY_TRANSACTION_CANCELLED,
            EventTypes.INTERCOMPANY_ADJUSTMENT_RECORDED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data
        if event.event_type == EventTypes.INTERCOMPANY_TRANSACTION_CREATED:
            self._created(event, data)
        elif event.event_type == EventTypes.INTERCOMPANY_ADJUSTMENT_RECORDED:
            self._adjustment_recorded(event, data)
        else:
            txn = IntercompanyTransaction.objects.filter(public_id=data["transaction_public_id"]).first()
            if txn is None:
                logger.warning("Intercompany transaction not found for %s: %s",
                               event.event_type, data["transaction_public_id"])
                return
            if event.event_type == EventTypes.INTERCOMPANY_TRANSACTION_INVOICED:
                txn.invoice_public_id = data["invoice_public_id"]
                txn.bill_public_id = data["bill_public_id"]
                txn.amount_invoiced += Decimal(data["amount"])
                txn.status, txn.payment_status = transaction_status(
                    txn.amount, txn.amount_invoiced, txn.amount_settled, txn.amount_adjusted,
                )
            elif event.event_type == EventTypes.INTERCOMPANY_TRANSACTION_SETTLED:
                txn.amount_settled = Decimal(data["amount_settled"])
                txn.status = data["status"]
                txn.payment_status = data["payment_status"]
            else:
                txn.status = IntercompanyTransaction.Status.CANCELLED
                txn.cancelled_at = data["cancelled_at"]
                txn.cancel_reason = data.get("reason", "")
            txn.save(_projection_write=True)

    def _created(self, event, data):
        source = Company.objects.filter(public_id=data["source_company_public_id"]).first()
        target = Company.objects.filter(public_id=data["target_company_public_id"]).first()
        if source is None or target is None:
            logger.warning("Company not found for intercompany transaction %s", data["reference"])
            return
        IntercompanyTransaction.objects.projection().update_or_create(
            public_id=data["transaction_public_id"],
            defaults={
                "tenant": source.tenant,
                "source_company": source,
                "target_company": target,
                "reference": data["reference"],
                "transaction_date": data["transaction_date"],
                "description": data.get("description", ""),
                "amount": Decimal(data["amount"]),
                "sales_order_public_id": data["sales_order_public_id"],
                "purchase_order_public_id": data["purchase_order_public_id"],
            },
        )

    def _adjustment_recorded(self, event, data):
        source = Company.objects.filter(public_id=data["source_company_public_id"]).first()
        target = Company.objects.filter(public_id=data["target_company_public_id"]).first()
        if source is None or target is None:
            logger.warning("Company not found for intercompany adjustment %s", data["reference"])
            return

        txn = None
        if data.get("transaction_public_id"):
            txn = IntercompanyTransaction.objects.filter(public_id=data["transaction_public_id"]).first()
            if txn is not None and data.get("transaction_amount_adjusted") is not None:
                txn.amount_adjusted = Decimal(data["transaction_amount_adjusted"])
                txn.status, txn.payment_status = transaction_status(
                    txn.amount, txn.amount_invoiced, txn.amount_settled, txn.amount_adjusted,
                )
                txn.save(_projection_write=True)

        IntercompanyAdjustment.objects.projection().update_or_create(
            public_id=data["adjustment_public_id"],
            defaults={
                "tenant": source.tenant,
                "source_company": source,
                "target_company": target,
                "transaction": txn,
                "reference": data["reference"],
                "credit_note_public_id": data["credit_note_public_id"],
                "debit_note_public_id": data["debit_note_public_id"],
                "amount": Decimal(data["amount"]),
                "reason": data["reason"],
                "adjustment_date": data["adjustment_date"],
            },
        )

    def _clear_projected_data(self, company) -> None:
        IntercompanyAdjustment.objects.filter(source_company=company).delete()
        IntercompanyTransaction.objects.filter(source_company=company).delete()


projection_registry.register(IntercompanyProjection())
