# projections/account_balance.py
"""
Account Balance Projection.

This is the core projection that maintains account balances.
It consumes journal_entry.posted only: a reversal is itself a posted
REVERSAL entry with swapped sides, so it needs no special handling.

Every ledger report (trial balance, statements, sub-ledger
reconciliation) reads from AccountBalance.
"""

from collections import OrderedDict
from datetime import datetime, date
from decimal import Decimal
from typing import List, Dict, Any
import logging

from django.db import transaction

from accounts.models import Company
from accounting.models import Account
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry
from projections.models import AccountBalance


logger = logging.getLogger(__name__)


class AccountBalanceProjection(BaseProjection):
    """
    Maintains materialized account balances from journal entry events.

    Event Flow:
    1. Command posts journal entry (manual or document)
    2. journal_entry.posted event is emitted
    3. This projection consumes the event
    4. AccountBalance records are updated

    Idempotent: each balance row remembers the last event applied to it,
    and lines of one entry are folded per account before applying.
    """

    @property
    def name(self) -> str:
        return "account_balance"

    @property
    def consumes(self) -> List[str]:
        return [EventTypes.JOURNAL_ENTRY_POSTED]

    def handle(self, event: BusinessEvent) -> None:
        if event.event_type != EventTypes.JOURNAL_ENTRY_POSTED:
            logger.warning("Unknown event type: %s", event.event_type)
            return

        data = event.data
        lines = data.get("lines", [])
        if not lines:
            logger.warning("Posted entry %s has no lines", data.get("entry_public_id"))
            return

        entry_date = datetime.fromisoformat(data["date"]).date() if data.get("date") else None

        # An invoice with two revenue lines touches 4000 twice; fold them first.
        totals: "OrderedDict[str, Dict[str, Decimal]]" = OrderedDict()
        for line_data in lines:
            account_public_id = line_data.get("account_public_id")
            if not account_public_id:
                logger.warning("Line missing account_public_id in event %s", event.id)
                continue
            bucket = totals.setdefault(account_public_id, {"debit": Decimal("0.00"), "credit": Decimal("0.00")})
            bucket["debit"] += Decimal(str(line_data.get("debit", "0")))
            bucket["credit"] += Decimal(str(line_data.get("credit", "0")))

        for account_public_id, amounts in totals.items():
            self._apply(
                company=event.company,
                account_public_id=account_public_id,
                debit=amounts["debit"],
                credit=amounts["credit"],
                entry_date=entry_date,
                event=event,
            )

    def _apply(
        self,
        company: Company,
        account_public_id: str,
        debit: Decimal,
        credit: Decimal,
        entry_date,
        event: BusinessEvent,
    ) -> None:
        if debit == 0 and credit == 0:
            return

        try:
            account = Account.objects.get(public_id=account_public_id, company=company)
        except Account.DoesNotExist:
            raise RuntimeError(
                f"Account {account_public_id} not found for company {company.id} in event {event.id}"
            )

        # Lock the balance row for the read-modify-write.
        with transaction.atomic():
            try:
                balance = AccountBalance.objects.select_for_update().get(
                    company=company,
                    account=account,
                )
            except AccountBalance.DoesNotExist:
                balance = AccountBalance(
                    company=company,
                    account=account,
                    balance=Decimal("0.00"),
                    debit_total=Decimal("0.00"),
                    credit_total=Decimal("0.00"),
                    entry_count=0,
                )

            if balance.last_event_id == event.id:
                logger.debug("Event %s already applied to account %s", event.id, account.code)
                return

            if debit > 0:
                balance.apply_debit(debit)
            if credit > 0:
                balance.apply_credit(credit)

            balance.entry_count += 1
            if entry_date and (not balance.last_entry_date or entry_date > balance.last_entry_date):
                balance.last_entry_date = entry_date
            balance.last_event = event
            balance.save()

            logger.debug(
                "Updated balance for %s: debit=%s credit=%s balance=%s",
                account.code, debit, credit, balance.balance,
            )

    def _clear_projected_data(self, company: Company) -> None:
        cleared = AccountBalance.objects.filter(company=company).update(
            balance=Decimal("0.00"),
            debit_total=Decimal("0.00"),
            credit_total=Decimal("0.00"),
            entry_count=0,
            last_entry_date=None,
            last_event=None,
        )
        logger.info("Reset %s AccountBalance records for %s", cleared, company.name)

    def get_balance(self, company: Company, account: Account) -> Decimal:
        try:
            return AccountBalance.objects.get(company=company, account=account).balance
        except AccountBalance.DoesNotExist:
            return Decimal("0.00")

    def get_trial_balance(self, company: Company) -> Dict[str, Any]:
        """
        Trial balance from projected balances.

        Returns:
            {
                "as_of_date": "2026-01-26",
                "accounts": [{"code": "1000", "name": "Cash and Bank", "debit": "1000.00", ...}],
                "total_debit": "10000.00",
                "total_credit": "10000.00",
                "is_balanced": True,
            }
        """
        balances = AccountBalance.objects.filter(
            company=company,
        ).exclude(
            account__account_type=Account.AccountType.MEMO,
        ).select_related("account").order_by("account__code")

        accounts = []
        total_debit = Decimal("0.00")
        total_credit = Decimal("0.00")

        for bal in balances:
            account = bal.account
            net = bal.debit_total - bal.credit_total
            debit = net if net > 0 else Decimal("0.00")
            credit = -net if net < 0 else Decimal("0.00")

            accounts.append({
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "debit": str(debit),
                "credit": str(credit),
                "balance": str(bal.balance),
                "normal_balance": account.normal_balance,
            })

            total_debit += debit
            total_credit += credit

        return {
            "as_of_date": date.today().isoformat(),
            "accounts": accounts,
            "total_debit": str(total_debit),
            "total_credit": str(total_credit),
            "is_balanced": total_debit == total_credit,
        }

    def verify_all_balances(self, company: Company) -> Dict[str, Any]:
        """
        Verify all projected balances by replaying journal_entry.posted events.

        Returns:
            {"total_accounts": 10, "verified": 10, "mismatches": [], "lines_replayed": 50}
        """
        expected_totals: Dict[str, Dict[str, Decimal]] = {}
        lines_replayed = 0

        events = BusinessEvent.objects.filter(
            company=company,
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        ).order_by("company_sequence")

        for event in events:
            for line_data in event.data.get("lines", []):
                account_public_id = line_data.get("account_public_id")
                if not account_public_id:
                    continue
                bucket = expected_totals.setdefault(
                    account_public_id, {"debit": Decimal("0.00"), "credit": Decimal("0.00")}
                )
                bucket["debit"] += Decimal(str(line_data.get("debit", "0")))
                bucket["credit"] += Decimal(str(line_data.get("credit", "0")))
                lines_replayed += 1

        balances = AccountBalance.objects.filter(company=company).select_related("account")

        mismatches = []
        verified = 0
        zero = {"debit": Decimal("0.00"), "credit": Decimal("0.00")}

        for bal in balances:
            account_id = str(bal.account.public_id)
            expected = expected_totals.get(account_id, zero)
            if bal.debit_total != expected["debit"] or bal.credit_total != expected["credit"]:
                mismatches.append({
                    "account_code": bal.account.code,
                    "account_public_id": account_id,
                    "projected_debit": str(bal.debit_total),
                    "projected_credit": str(bal.credit_total),
                    "expected_debit": str(expected["debit"]),
                    "expected_credit": str(expected["credit"]),
                })
            else:
                verified += 1

        projected_ids = {str(bal.account.public_id) for bal in balances}
        for account_id, totals in expected_totals.items():
            if account_id not in projected_ids:
                mismatches.append({
                    "account_code": "(missing projection)",
                    "account_public_id": account_id,
                    "projected_debit": "0.00",
                    "projected_credit": "0.00",
                    "expected_debit": str(totals["debit"]),
                    "expected_credit": str(totals["credit"]),
                })

        return {
            "total_accounts": balances.count(),
            "verified": verified,
            "mismatches": mismatches,
            "lines_replayed": lines_replayed,
        }


projection_registry.register(AccountBalanceProjection())
