"""
Event-sourced aggregates for the ledger.

An aggregate is rebuilt by replaying its own stream, identified by
(aggregate_type, aggregate_id). Commands compare incoming changes against
this replayed state, never against the read models, so a lagging
projection cannot hide an edit or a reversal.

Stream identifiers:
- JournalEntry: entry public_id
- Account: account public_id
- FiscalPeriod: "{company_public_id}:{fiscal_year}:{period}"
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, ClassVar, Dict, List, Optional

from events.emitter import get_aggregate_events
from events.types import EventTypes


def _replay(aggregate, events):
    for event in events:
        handler = aggregate.HANDLERS.get(event.event_type)
        if handler:
            handler(aggregate, event.data)
    return aggregate


def _take_lines(aggregate, data) -> None:
    if data.get("lines") is not None:
        aggregate.lines = data["lines"]


@dataclass
class JournalEntryAggregate:
    public_id: str
    company: Any
    date: Optional[str] = None
    memo: str = ""
    kind: str = "NORMAL"
    currency: Optional[str] = None
    status: str = "INCOMPLETE"
    entry_number: str = ""
    lines: List[dict] = field(default_factory=list)
    deleted: bool = False
    reversed: bool = False

    EDITABLE = ("date", "memo", "kind", "currency")

    def _created(self, data):
        self.date = data.get("date")
        self.memo = data.get("memo", "")
        self.kind = data.get("kind", self.kind)
        self.currency = data.get("currency", self.currency)
        self.lines = data.get("lines", [])

    def _updated(self, data):
        for name, change in data.get("changes", {}).items():
            if name in self.EDITABLE:
                setattr(self, name, change.get("new"))
        _take_lines(self, data)
        # Any edit sends the entry back through completion.
        self.status = "INCOMPLETE"

    def _completed(self, data):
        self.date = data.get("date", self.date)
        self.memo = data.get("memo", self.memo)
        self.currency = data.get("currency", self.currency)
        _take_lines(self, data)
        self.status = "DRAFT"

    def _posted(self, data):
        self._completed(data)
        self.kind = data.get("kind", self.kind)
        self.entry_number = data.get("entry_number", self.entry_number)
        self.status = "POSTED"

    def _reversed(self, data):
        self.status = "REVERSED"
        self.reversed = True

    def _deleted(self, data):
        self.deleted = True

    HANDLERS: ClassVar[Dict[str, Callable]] = {
        EventTypes.JOURNAL_ENTRY_CREATED: _created,
        EventTypes.JOURNAL_ENTRY_UPDATED: _updated,
        EventTypes.JOURNAL_ENTRY_SAVED_COMPLETE: _completed,
        EventTypes.JOURNAL_ENTRY_POSTED: _posted,
        EventTypes.JOURNAL_ENTRY_REVERSED: _reversed,
        EventTypes.JOURNAL_ENTRY_DELETED: _deleted,
    }

    def _side_total(self, side: str) -> Decimal:
        return sum((Decimal(str(line.get(side) or "0")) for line in self.lines), Decimal("0.00"))

    @property
    def total_debit(self) -> Decimal:
        return self._side_total("debit")

    @property
    def total_credit(self) -> Decimal:
        return self._side_total("credit")


def load_journal_entry_aggregate(company, public_id: str) -> Optional[JournalEntryAggregate]:
    events = get_aggregate_events(company, "JournalEntry", public_id)
    if not events:
        return None
    return _replay(JournalEntryAggregate(public_id=public_id, company=company), events)


@dataclass
class AccountAggregate:
    public_id: str
    company: Any
    code: str = ""
    name: str = ""
    account_type: str = ""
    status: str = "ACTIVE"
    description: str = ""
    role: str = ""
    parent_public_id: Optional[str] = None
    is_header: bool = False

    def _created(self, data):
        self.code = data.get("code", "")
        self.name = data.get("name", "")
        self.account_type = data.get("account_type", "")
        self.description = data.get("description", "")
        self.role = data.get("posting_role", "")
        self.parent_public_id = data.get("parent_public_id")
        self.is_header = data.get("is_header", False)

    def _updated(self, data):
        for name, change in data.get("changes", {}).items():
            if hasattr(self, name):
                setattr(self, name, change.get("new"))

    HANDLERS: ClassVar[Dict[str, Callable]] = {
        EventTypes.ACCOUNT_CREATED: _created,
        EventTypes.ACCOUNT_UPDATED: _updated,
    }


def load_account_aggregate(company, public_id: str) -> Optional[AccountAggregate]:
    events = get_aggregate_events(company, "Account", public_id)
    if not events:
        return None
    return _replay(AccountAggregate(public_id=public_id, company=company), events)


@dataclass
class FiscalPeriodAggregate:
    company: Any
    fiscal_year: int
    period: int
    closed: bool = False

    HANDLERS: ClassVar[Dict[str, Callable]] = {
        EventTypes.FISCAL_PERIOD_CLOSED: lambda agg, data: setattr(agg, "closed", True),
        EventTypes.FISCAL_PERIOD_OPENED: lambda agg, data: setattr(agg, "closed", False),
    }


def fiscal_period_aggregate_id(company, fiscal_year: int, period: int) -> str:
    return f"{company.public_id}:{fiscal_year}:{period}"


def load_fiscal_period_aggregate(company, fiscal_year: int, period: int) -> FiscalPeriodAggregate:
    """A period with no events is open."""
    events = get_aggregate_events(
        company, "FiscalPeriod", fiscal_period_aggregate_id(company, fiscal_year, period)
    )
    return _replay(FiscalPeriodAggregate(company=company, fiscal_year=fiscal_year, period=period), events)
