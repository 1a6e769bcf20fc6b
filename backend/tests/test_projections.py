# tests/test_projections.py
"""
Tests for the projections module.

Tests cover:
- Registry contents
- Rebuild from the event store
- Idempotent replay
- Deferred processing (PROJECTIONS_SYNC off) and the celery tasks
- Error and pause handling on bookmarks
- Status and balance endpoints
"""

import pytest
from decimal import Decimal
from io import StringIO
from uuid import uuid4

from django.core.management import call_command

from accounting.models import Account
from events.emitter import emit_event_no_actor
from events.models import EventBookmark
from events.types import AccountCreatedData, EventTypes
from projections.account_balance import AccountBalanceProjection
from projections.base import projection_registry
from projections.models import AccountBalance, ProjectionAppliedEvent
from projections.tasks import check_projection_health, process_company_projections, rebuild_projection
from tests.factories import balance_of, issued_invoice, line, posted_bill


def _emit_account(company, code="9100", drop=(), **overrides):
    data = AccountCreatedData(
        account_public_id=str(uuid4()),
        code=code,
        name="Suspense",
        account_type="ASSET",
        normal_balance="DEBIT",
        is_header=False,
    ).to_dict()
    data.update(overrides)
    for field in drop:
        del data[field]
    return emit_event_no_actor(
        company=company,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=data["account_public_id"],
        idempotency_key=f"account.created:{data['account_public_id']}",
        data=data,
    )


def _balances(company):
    return {
        bal.account.code: (bal.debit_total, bal.credit_total, bal.balance)
        for bal in AccountBalance.objects.filter(company=company).select_related("account")
    }


@pytest.fixture
def booked(actor, customer, vendor):
    invoice = issued_invoice(actor, customer, [line(unit_price="300.00", tax_rate="5")])
    posted_bill(actor, vendor, [line(unit_price="120.00")])
    return invoice


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:

    def test_all_projections_registered(self):
        assert set(projection_registry.names()) == {
            "account_balance",
            "account_read_model",
            "journal_entry_read_model",
            "company_read_model",
            "user_read_model",
            "membership_read_model",
            "intercompany_read_model",
            "fiscal_period_read_model",
            "purchases_read_model",
            "sales_read_model",
        }

    def test_lookup_by_name(self):
        assert isinstance(projection_registry.get("account_balance"), AccountBalanceProjection)
        assert projection_registry.get("nonexistent") is None


# =============================================================================
# Rebuild and replay
# =============================================================================

@pytest.mark.django_db
class TestRebuild:

    def test_rebuild_reproduces_incremental_balances(self, company, booked):
        before = _balances(company)
        assert before

        processed = AccountBalanceProjection().rebuild(company)

        assert processed > 0
        assert _balances(company) == before

    def test_rebuild_after_tampering(self, company, booked):
        with_receivable = balance_of(company, "receivable")
        AccountBalance.objects.filter(company=company).update(balance=Decimal("999.99"))

        AccountBalanceProjection().rebuild(company)
        assert balance_of(company, "receivable") == with_receivable == Decimal("315.00")

    def test_replay_is_idempotent(self, company, booked):
        projection = AccountBalanceProjection()
        before = _balances(company)
        bookmark = projection.get_bookmark(company)
        bookmark.last_event = None
        bookmark.save()

        projection.process_pending(company)

        assert _balances(company) == before
        applied = ProjectionAppliedEvent.objects.filter(company=company, projection_name=projection.name)
        assert applied.count() == applied.values("event").distinct().count()

    def test_management_command_rebuilds(self, company, booked):
        out = StringIO()
        call_command("rebuild_projections", "--company", company.slug, "--projection", "account_balance", stdout=out)
        assert "account_balance" in out.getvalue()
        assert balance_of(company, "receivable") == Decimal("315.00")

    def test_rebuild_task(self, company, booked):
        result = rebuild_projection(company_id=company.id, projection_name="account_balance")
        assert result["status"] == "success"
        assert result["events_processed"] > 0


# =============================================================================
# Deferred processing
# =============================================================================

@pytest.mark.django_db
class TestDeferredProcessing:

    def test_events_wait_for_the_worker(self, settings, company):
        settings.PROJECTIONS_SYNC = False
        projection = projection_registry.get("account_read_model")

        _emit_account(company, code="9200")
        assert projection.get_lag(company) == 1
        assert not Account.objects.filter(company=company, code="9200").exists()

        result = process_company_projections(company_id=company.id)
        assert result["projections"]["account_read_model"] == {"processed": 1, "status": "success"}
        assert projection.get_lag(company) == 0
        assert Account.objects.filter(company=company, code="9200").exists()

    def test_health_check_reports_lag(self, settings, company):
        settings.PROJECTION_LAG_THRESHOLD = 1
        _emit_account(company, code="9300")

        report = check_projection_health()
        assert not report["healthy"]
        assert report["total_lag"] >= 1

    def test_unknown_company(self):
        assert "error" in process_company_projections(company_id=0)


# =============================================================================
# Errors and pausing
# =============================================================================

@pytest.mark.django_db
class TestBookmarkState:

    def test_failing_event_is_recorded_and_blocks(self, settings, company):
        settings.DISABLE_EVENT_VALIDATION = True
        projection = projection_registry.get("account_read_model")
        projection.process_pending(company)

        bad = _emit_account(company, code="9400", drop=("name",))
        _emit_account(company, code="9401")

        assert projection.process_pending(company) == 0
        bookmark = projection.get_bookmark(company)
        assert bookmark.error_count == 1
        assert "name" in bookmark.last_error
        assert projection.get_lag(company) == 2
        assert not ProjectionAppliedEvent.objects.filter(event=bad, projection_name=projection.name).exists()

    def test_paused_projection_skips(self, company):
        projection = projection_registry.get("account_read_model")
        projection.process_pending(company)
        EventBookmark.objects.filter(consumer_name=projection.name, company=company).update(is_paused=True)

        _emit_account(company, code="9500")
        assert projection.process_pending(company) == 0
        assert projection.get_lag(company) == 1


# =============================================================================
# API
# =============================================================================

@pytest.mark.django_db
class TestProjectionApi:

    def test_status(self, api_client, company, booked):
        response = api_client.get("/api/projections/status/")
        assert response.status_code == 200
        body = response.json()
        assert body["company_public_id"] == str(company.public_id)
        assert body["total_lag"] == 0
        assert body["all_healthy"]
        names = {row["name"] for row in body["projections"]}
        assert names == set(projection_registry.names())

    def test_account_balances(self, api_client, booked):
        response = api_client.get("/api/projections/account-balances/", {"has_activity": "true"})
        assert response.status_code == 200
        body = response.json()
        by_code = {row["account_code"]: row for row in body["balances"]}
        assert body["count"] == len(body["balances"])
        assert by_code["1100"]["balance"] == "315.00"
        assert by_code["2000"]["balance"] == "120.00"

    def test_bad_min_balance(self, api_client):
        response = api_client.get("/api/projections/account-balances/", {"min_balance": "lots"})
        assert response.status_code == 400

    def test_single_account(self, api_client):
        response = api_client.get("/api/projections/account-balances/1000/")
        assert response.status_code == 200
        assert response.json()["balance"] == "0.00"
        assert api_client.get("/api/projections/account-balances/0000/").status_code == 404
