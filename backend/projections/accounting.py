# projections/accounting.py
"""
Ledger read models: the chart of accounts and journal entries.

Only these projections write Account, JournalEntry and JournalLine rows,
always through the projection manager or save(_projection_write=True).
Entries posted by the document modules arrive as a single
journal_entry.posted event carrying every line, so the handler creates
the entry when no draft preceded it.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from django.utils import timezone

from accounting.models import Account, JournalEntry, JournalLine
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry


logger = logging.getLogger(__name__)


def _parse_date(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value).date()
    return value


def _parse_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class _HandlerProjection(BaseProjection):
    """Dispatches each consumed event to the handler named in event_handlers()."""

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


class AccountProjection(_HandlerProjection):
    @property
    def name(self) -> str:
        return "account_read_model"

    def event_handlers(self) -> dict:
        return {
            EventTypes.ACCOUNT_CREATED: self._created,
            EventTypes.ACCOUNT_UPDATED: self._updated,
        }

    def _created(self, event, data):
        parent_id = data.get("parent_public_id")
        parent = (
            Account.objects.filter(company=event.company, public_id=parent_id).first()
            if parent_id else None
        )
        Account.objects.projection().update_or_create(
            company=event.company,
            public_id=data["account_public_id"],
            defaults={
                "code": data["code"],
                "name": data["name"],
                "account_type": data["account_type"],
                "role": data.get("posting_role", ""),
                "parent": parent,
                "is_header": data.get("is_header", False),
                "description": data.get("description", ""),
            },
        )

    def _updated(self, event, data):
        account = Account.objects.filter(company=event.company, public_id=data["account_public_id"]).first()
        if account is None:
            logger.warning("Account not found for update: %s", data["account_public_id"])
            return
        for name, change in data.get("changes", {}).items():
            setattr(account, name, change.get("new"))
        account.save(_projection_write=True)

    def _clear_projected_data(self, company) -> None:
        # Lines and documents point at accounts; a rebuild upserts in place.
        pass


class JournalEntryProjection(_HandlerProjection):
    @property
    def name(self) -> str:
        return "journal_entry_read_model"

    def event_handlers(self) -> dict:
        return {
            EventTypes.JOURNAL_ENTRY_CREATED: self._created,
            EventTypes.JOURNAL_ENTRY_UPDATED: self._updated,
            EventTypes.JOURNAL_ENTRY_SAVED_COMPLETE: self._completed,
            EventTypes.JOURNAL_ENTRY_POSTED: self._posted,
            EventTypes.JOURNAL_ENTRY_REVERSED: self._reversed,
            EventTypes.JOURNAL_ENTRY_DELETED: self._deleted,
        }

    def _entry(self, event, public_id, action):
        entry = JournalEntry.objects.filter(company=event.company, public_id=public_id).first()
        if entry is None:
            logger.warning("Journal entry not found for %s: %s", action, public_id)
        return entry

    def _created(self, event, data):
        entry, _ = JournalEntry.objects.projection().get_or_create(
            company=event.company,
            public_id=data["entry_public_id"],
            defaults={
                "date": _parse_date(data["date"]),
                "period": data.get("period"),
                "memo": data.get("memo", ""),
                "kind": data.get("kind", JournalEntry.Kind.NORMAL),
                "status": JournalEntry.Status.INCOMPLETE,
                "created_by_id": data.get("created_by_id"),
                "currency": data.get("currency") or event.company.default_currency,
            },
        )
        if data.get("lines"):
            self._write_lines(entry, data["lines"])

    def _updated(self, event, data):
        entry = self._entry(event, data["entry_public_id"], "update")
        if entry is None:
            return
        for name, change in data.get("changes", {}).items():
            if name == "lines":
                continue
            value = change.get("new")
            setattr(entry, name, _parse_date(value) if name == "date" else value)
        entry.status = JournalEntry.Status.INCOMPLETE
        entry.save(_projection_write=True)
        if data.get("lines") is not None:
            self._write_lines(entry, data["lines"])

    def _completed(self, event, data):
        entry = self._entry(event, data["entry_public_id"], "save_complete")
        if entry is None:
            return
        self._apply_header(entry, data)
        entry.status = JournalEntry.Status.DRAFT
        entry.save(_projection_write=True)
        if data.get("lines"):
            self._write_lines(entry, data["lines"])

    def _posted(self, event, data):
        entry, _ = JournalEntry.objects.projection().get_or_create(
            company=event.company,
            public_id=data["entry_public_id"],
            defaults={
                "date": _parse_date(data.get("date")),
                "kind": data.get("kind", JournalEntry.Kind.NORMAL),
                "status": JournalEntry.Status.POSTED,
            },
        )
        self._apply_header(entry, data)
        entry.kind = data.get("kind", entry.kind)
        entry.status = JournalEntry.Status.POSTED
        entry.posted_at = _parse_datetime(data.get("posted_at"))
        entry.posted_by_id = data.get("posted_by_id")
        entry.entry_number = data.get("entry_number", "")
        entry.source_module = data.get("source_module", "")
        entry.source_document = data.get("source_document", "")
        entry.currency = entry.currency or event.company.default_currency
        entry.save(_projection_write=True)
        self._write_lines(entry, data.get("lines", []))

    def _reversed(self, event, data):
        original = self._entry(event, data["original_entry_public_id"], "reversal")
        if original is None:
            return
        original.status = JournalEntry.Status.REVERSED
        original.reversed_at = _parse_datetime(data.get("reversed_at")) or timezone.now()
        original.reversed_by_id = data.get("reversed_by_id")
        original.save(_projection_write=True, update_fields=["status", "reversed_at", "reversed_by_id"])
        JournalEntry.objects.filter(
            company=event.company,
            public_id=data["reversal_entry_public_id"],
        ).update(reverses_entry=original)

    def _deleted(self, event, data):
        JournalEntry.objects.filter(company=event.company, public_id=data["entry_public_id"]).delete()

    @staticmethod
    def _apply_header(entry: JournalEntry, data: dict) -> None:
        if data.get("date"):
            entry.date = _parse_date(data["date"])
        if data.get("period") is not None:
            entry.period = data["period"]
        entry.memo = data.get("memo", entry.memo)
        if data.get("currency"):
            entry.currency = data["currency"]

    def _write_lines(self, entry: JournalEntry, lines: list[dict]) -> None:
        entry.lines.all().delete()
        wanted = {str(line["account_public_id"]) for line in lines if line.get("account_public_id")}
        accounts = {
            str(acc.public_id): acc
            for acc in Account.objects.filter(company=entry.company, public_id__in=wanted)
        }

        rows = []
        for line in lines:
            account = accounts.get(str(line.get("account_public_id")))
            if account is None:
                logger.warning("Account %s not found for entry %s", line.get("account_public_id"), entry.public_id)
                continue
            debit = Decimal(str(line.get("debit") or "0"))
            credit = Decimal(str(line.get("credit") or "0"))
            if not debit and not credit:
                continue
            rows.append(JournalLine(
                entry=entry,
                company=entry.company,
                line_no=len(rows) + 1,
                account=account,
                description=line.get("description", ""),
                debit=debit,
                credit=credit,
            ))
        JournalLine.objects.projection().bulk_create(rows)

    def _clear_projected_data(self, company) -> None:
        JournalLine.objects.filter(company=company).delete()
        JournalEntry.objects.filter(company=company).update(reverses_entry=None)
        JournalEntry.objects.filter(company=company).delete()


projection_registry.register(AccountProjection())
projection_registry.register(JournalEntryProjection())
