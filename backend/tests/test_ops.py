# tests/test_ops.py
"""
Tests for the operations endpoints: health checks and Prometheus metrics.
"""

import pytest

from accounting import commands as ledger
from ops.health import HealthCheck
from tests.factories import account, issued_invoice, line, posted_bill


pytestmark = pytest.mark.django_db


def _book_to_receivable(actor, entry_date, amount):
    entry = ledger.create_journal_entry(actor, date=entry_date, memo="Direct to control", lines=[
        {"account_id": account(actor.company, "receivable").id, "debit": amount},
        {"account_id": account(actor.company, "revenue").id, "credit": amount},
    ]).data
    assert ledger.save_journal_entry_complete(actor, entry.id).success
    assert ledger.post_journal_entry(actor, entry.id).success


class TestHealthEndpoints:

    def test_liveness(self, client):
        response = client.get("/_health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/_health/ready")
        assert response.status_code == 200
        assert response.json()["database"]["status"] == "healthy"

    def test_full_report_on_clean_books(self, client, actor, customer):
        issued_invoice(actor, customer, [line(unit_price="80.00")])

        response = client.get("/_health/full")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["redis"]["status"] == "skipped"
        assert body["checks"]["projection_lag"]["total_lag"] == 0


class TestSubledgerCheck:

    def test_direct_posting_degrades_health(self, actor, company, today, customer):
        issued_invoice(actor, customer, [line(unit_price="80.00")])
        _book_to_receivable(actor, today, "30.00")

        check = HealthCheck.check_subledgers()
        assert check["status"] == "degraded"
        assert check["out_of_balance"] == [
            {"company": company.slug, "role": "receivable", "difference": "30.00"},
        ]


class TestMetrics:

    def test_scrape_exposes_open_balances(self, client, actor, company, customer, vendor):
        issued_invoice(actor, customer, [line(unit_price="80.00")])
        posted_bill(actor, vendor, [line(unit_price="45.00")])

        response = client.get("/_metrics/")
        assert response.status_code == 200
        text = response.content.decode()
        assert f'ledgerbridge_open_receivables{{company_slug="{company.slug}"}} 80.0' in text
        assert f'ledgerbridge_open_payables{{company_slug="{company.slug}"}} 45.0' in text
        assert "ledgerbridge_events_total" in text
