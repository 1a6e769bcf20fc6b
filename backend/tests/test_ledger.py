# tests/test_ledger.py
"""
Tests for the general ledger: chart of accounts, journal entry workflow,
fiscal periods and projected balances.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from accounting import commands
from accounting.models import Account, JournalEntry
from accounting.posting import DEFAULT_CHART, PostingError, resolve_posting_account
from projections.account_balance import AccountBalanceProjection
from projections.models import FiscalPeriod
from tests.factories import account, balance_of


def _posted_entry(actor, entry_date, lines, memo="Manual entry"):
    created = commands.create_journal_entry(actor, date=entry_date, memo=memo)
    assert created.success, created.error
    saved = commands.save_journal_entry_complete(actor, created.data.id, lines=lines)
    assert saved.success, saved.error
    posted = commands.post_journal_entry(actor, created.data.id)
    assert posted.success, posted.error
    return posted.data


def _cash_equity(company, amount="1000.00"):
    return [
        {"account_id": account(company, "cash").id, "debit": amount, "description": "Capital in"},
        {"account_id": account(company, "equity").id, "credit": amount, "description": "Capital in"},
    ]


# =============================================================================
# Chart of accounts
# =============================================================================

class TestChartOfAccounts:

    def test_new_company_has_default_chart(self, company):
        codes = set(Account.objects.filter(company=company).values_list("code", flat=True))
        assert codes == {code for code, _, _, _ in DEFAULT_CHART}

    def test_every_posting_role_resolves(self, company):
        for _, _, _, role in DEFAULT_CHART:
            assert resolve_posting_account(company, role).role == role

    def test_missing_role_raises_posting_error(self, company):
        with pytest.raises(PostingError, match="no_such_role"):
            resolve_posting_account(company, "no_such_role")

    def test_seeding_twice_is_harmless(self, actor):
        result = commands.seed_chart_of_accounts(actor)
        assert result.success
        assert result.data == {"created": 0}

    def test_create_account(self, actor):
        result = commands.create_account(actor, "6100", "Travel", Account.AccountType.EXPENSE)
        assert result.success, result.error
        assert result.data.normal_balance == Account.NormalBalance.DEBIT

    def test_duplicate_code_rejected(self, actor):
        result = commands.create_account(actor, "1000", "Petty cash", Account.AccountType.ASSET)
        assert not result.success
        assert "already exists" in result.error

    def test_posting_role_is_unique(self, actor):
        result = commands.create_account(actor, "1010", "Second bank", Account.AccountType.ASSET, role="cash")
        assert not result.success
        assert "cash" in result.error

    def test_role_account_cannot_be_deactivated(self, actor):
        result = commands.deactivate_account(actor, account(actor.company, "receivable").id)
        assert not result.success

    def test_viewer_cannot_create_accounts(self, viewer_actor):
        with pytest.raises(PermissionDenied):
            commands.create_account(viewer_actor, "6200", "Meals", Account.AccountType.EXPENSE)


# =============================================================================
# Journal entries
# =============================================================================

class TestJournalWorkflow:

    def test_create_save_post(self, actor, today):
        entry = _posted_entry(actor, today, _cash_equity(actor.company))

        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_number == f"JE-{actor.company.id}-000001"
        assert entry.total_debit == entry.total_credit == Decimal("1000.00")
        assert balance_of(actor.company, "cash") == Decimal("1000.00")
        assert balance_of(actor.company, "equity") == Decimal("1000.00")

    def test_entry_numbers_increase(self, actor, today):
        first = _posted_entry(actor, today, _cash_equity(actor.company, "10.00"))
        second = _posted_entry(actor, today, _cash_equity(actor.company, "20.00"))
        assert first.entry_number.endswith("000001")
        assert second.entry_number.endswith("000002")

    def test_unbalanced_entry_cannot_be_completed(self, actor, today):
        entry = commands.create_journal_entry(actor, date=today).data
        result = commands.save_journal_entry_complete(actor, entry.id, lines=[
            {"account_id": account(actor.company, "cash").id, "debit": "100.00"},
            {"account_id": account(actor.company, "equity").id, "credit": "90.00"},
        ])
        assert not result.success
        entry.refresh_from_db()
        assert entry.status == JournalEntry.Status.INCOMPLETE

    def test_single_line_entry_rejected(self, actor, today):
        entry = commands.create_journal_entry(actor, date=today).data
        result = commands.save_journal_entry_complete(actor, entry.id, lines=[
            {"account_id": account(actor.company, "cash").id, "debit": "100.00"},
        ])
        assert not result.success
        assert "at least 2 lines" in result.error

    def test_line_with_both_sides_rejected(self, actor, today):
        result = commands.create_journal_entry(actor, date=today, lines=[
            {"account_id": account(actor.company, "cash").id, "debit": "5.00", "credit": "5.00"},
        ])
        assert not result.success
        assert "both debit and credit" in result.error

    def test_incomplete_entry_cannot_be_posted(self, actor, today):
        entry = commands.create_journal_entry(actor, date=today).data
        result = commands.post_journal_entry(actor, entry.id)
        assert not result.success
        assert "DRAFT" in result.error

    def test_reverse_posts_mirror_entry(self, actor, today):
        entry = _posted_entry(actor, today, _cash_equity(actor.company, "250.00"))

        result = commands.reverse_journal_entry(actor, entry.id)
        assert result.success, result.error
        original, reversal = result.data["original"], result.data["reversal"]

        assert original.status == JournalEntry.Status.REVERSED
        assert reversal.kind == JournalEntry.Kind.REVERSAL
        assert reversal.reverses_entry_id == original.id
        assert balance_of(actor.company, "cash") == Decimal("0.00")
        assert balance_of(actor.company, "equity") == Decimal("0.00")

        again = commands.reverse_journal_entry(actor, entry.id)
        assert not again.success

    def test_posted_entry_cannot_be_deleted(self, actor, today):
        entry = _posted_entry(actor, today, _cash_equity(actor.company))
        result = commands.delete_journal_entry(actor, entry.id)
        assert not result.success

    def test_draft_entry_can_be_deleted(self, actor, today):
        entry = commands.create_journal_entry(actor, date=today, lines=_cash_equity(actor.company)).data
        result = commands.delete_journal_entry(actor, entry.id)
        assert result.success, result.error
        assert not JournalEntry.objects.filter(pk=entry.pk).exists()

    def test_header_account_refused(self, actor, today):
        header = commands.create_account(
            actor, "1900", "Other assets", Account.AccountType.ASSET, is_header=True,
        ).data
        entry = commands.create_journal_entry(actor, date=today, lines=[
            {"account_id": header.id, "debit": "10.00"},
            {"account_id": account(actor.company, "equity").id, "credit": "10.00"},
        ]).data
        commands.save_journal_entry_complete(actor, entry.id)
        result = commands.post_journal_entry(actor, entry.id)
        assert not result.success
        assert "header" in result.error

    def test_clerk_cannot_post(self, clerk_actor, today):
        entry = commands.create_journal_entry(clerk_actor, date=today, lines=_cash_equity(clerk_actor.company)).data
        commands.save_journal_entry_complete(clerk_actor, entry.id)
        with pytest.raises(PermissionDenied):
            commands.post_journal_entry(clerk_actor, entry.id)


# =============================================================================
# Fiscal periods
# =============================================================================

class TestFiscalPeriods:

    def test_current_year_is_configured(self, company):
        fiscal_year = commands.current_fiscal_year(company)
        periods = FiscalPeriod.objects.filter(company=company, fiscal_year=fiscal_year)
        assert periods.count() == 12
        assert all(p.status == FiscalPeriod.Status.OPEN for p in periods)

    def test_closed_period_refuses_postings(self, actor, today):
        period = FiscalPeriod.objects.get(company=actor.company, start_date__lte=today, end_date__gte=today)
        closed = commands.close_period(actor, period.fiscal_year, period.period)
        assert closed.success, closed.error

        entry = commands.create_journal_entry(actor, date=today, lines=_cash_equity(actor.company)).data
        commands.save_journal_entry_complete(actor, entry.id)
        result = commands.post_journal_entry(actor, entry.id)
        assert not result.success
        assert "closed" in result.error

        reopened = commands.open_period(actor, period.fiscal_year, period.period)
        assert reopened.success, reopened.error
        assert commands.post_journal_entry(actor, entry.id).success

    def test_date_outside_any_period_refused(self, actor, today):
        far_future = date(today.year + 5, 1, 15)
        entry = commands.create_journal_entry(actor, date=far_future, lines=_cash_equity(actor.company)).data
        commands.save_journal_entry_complete(actor, entry.id)
        result = commands.post_journal_entry(actor, entry.id)
        assert not result.success
        assert "No fiscal period" in result.error

    def test_closing_twice_fails(self, actor):
        fiscal_year = commands.current_fiscal_year(actor.company)
        assert commands.close_period(actor, fiscal_year, 1).success
        again = commands.close_period(actor, fiscal_year, 1)
        assert not again.success

    def test_year_with_closed_period_cannot_be_reconfigured(self, actor):
        fiscal_year = commands.current_fiscal_year(actor.company)
        commands.close_period(actor, fiscal_year, 1)
        result = commands.configure_periods(actor, fiscal_year, period_count=4)
        assert not result.success

    def test_configure_next_year(self, actor):
        next_year = commands.current_fiscal_year(actor.company) + 1
        result = commands.configure_periods(actor, next_year, period_count=4)
        assert result.success, result.error
        periods = sorted(result.data["periods"], key=lambda p: p.period)
        assert len(periods) == 4
        for earlier, later in zip(periods, periods[1:]):
            assert later.start_date == earlier.end_date + timedelta(days=1)


# =============================================================================
# Balances
# =============================================================================

class TestBalances:

    def test_trial_balance_balances(self, actor, today):
        _posted_entry(actor, today, _cash_equity(actor.company, "1200.00"))
        _posted_entry(actor, today, [
            {"account_id": account(actor.company, "expense").id, "debit": "300.00"},
            {"account_id": account(actor.company, "cash").id, "credit": "300.00"},
        ])

        tb = AccountBalanceProjection().get_trial_balance(actor.company)
        assert tb["is_balanced"]
        assert Decimal(tb["total_debit"]) == Decimal(tb["total_credit"]) == Decimal("1200.00")

    def test_balances_match_event_replay(self, actor, today):
        entry = _posted_entry(actor, today, _cash_equity(actor.company, "75.00"))
        commands.reverse_journal_entry(actor, entry.id)

        result = AccountBalanceProjection().verify_all_balances(actor.company)
        assert result["mismatches"] == []

    def test_credit_normal_balance_sign(self, actor, today):
        _posted_entry(actor, today, [
            {"account_id": account(actor.company, "cash").id, "debit": "40.00"},
            {"account_id": account(actor.company, "revenue").id, "credit": "40.00"},
        ])
        bal = account(actor.company, "revenue").projected_balance
        assert bal.credit_total == Decimal("40.00")
        assert bal.balance == Decimal("40.00")
