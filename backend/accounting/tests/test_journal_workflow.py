# accounting/tests/test_journal_workflow.py
"""
Integration tests for journal entry workflow.

These tests use API-level testing to verify the full lifecycle
of journal entries: create -> complete -> post -> reverse.

Tests verify the API responses rather than direct database queries
to avoid transaction isolation issues between the API client and
test database connections.
"""
from datetime import date
from decimal import Decimal

from django.test import TransactionTestCase
from rest_framework.test import APIClient

from accounts.commands import create_company, register_user
from accounting.models import Account, JournalEntry


class TestJournalEntryThinFlow(TransactionTestCase):
    """
    Thin integration test (API-level):
    - Create JE (INCOMPLETE)
    - Complete -> DRAFT
    - Post -> POSTED
    - Reverse -> creates REVERSAL + original becomes REVERSED
    """

    def setUp(self):
        self.client = APIClient()

        self.user = register_user("tester@example.com", "pass12345", "Tester").data
        created = create_company(self.user, "Test Co", default_currency="EGP")
        self.assertTrue(created.success, created.error)
        self.company = created.data["company"]
        self.user.refresh_from_db()

        self.client.force_authenticate(user=self.user)

        # Seeded chart: 1000 cash, 4000 revenue
        self.cash = Account.objects.get(company=self.company, code="1000")
        self.sales = Account.objects.get(company=self.company, code="4000")
        self.today = date.today().isoformat()

    def _payload(self, credit="100.00", memo="Test JE"):
        return {
            "date": self.today,
            "memo": memo,
            "lines": [
                {"account_id": self.cash.id, "description": "Cash", "debit": "100.00", "credit": "0.00"},
                {"account_id": self.sales.id, "description": "Sales", "debit": "0.00", "credit": credit},
            ],
        }

    def test_journal_entry_full_lifecycle(self):
        """Test complete JE lifecycle: create -> complete -> post -> reverse"""

        # 1) Create JE -> INCOMPLETE
        r = self.client.post("/api/accounting/journal-entries/", self._payload(), format="json")
        self.assertEqual(r.status_code, 201, r.data)

        je_id = r.data["id"]
        self.assertEqual(r.data["status"], JournalEntry.Status.INCOMPLETE)
        self.assertEqual(r.data["kind"], JournalEntry.Kind.NORMAL)
        self.assertEqual(r.data["currency"], "EGP")

        self.assertEqual(len(r.data["lines"]), 2)
        line1 = next(l for l in r.data["lines"] if l["line_no"] == 1)
        line2 = next(l for l in r.data["lines"] if l["line_no"] == 2)
        self.assertEqual(line1["account"], self.cash.id)
        self.assertEqual(Decimal(line1["debit"]), Decimal("100.00"))
        self.assertEqual(line2["account_code"], "4000")
        self.assertEqual(Decimal(line2["credit"]), Decimal("100.00"))

        # 2) Complete -> DRAFT
        r = self.client.put(
            f"/api/accounting/journal-entries/{je_id}/complete/",
            self._payload(memo="Test JE (complete)"),
            format="json",
        )
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["status"], JournalEntry.Status.DRAFT)

        # 3) Post -> POSTED
        r = self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["status"], JournalEntry.Status.POSTED)
        self.assertIsNotNone(r.data["posted_at"])
        self.assertEqual(r.data["entry_number"], f"JE-{self.company.id}-000001")

        # 4) Reverse -> creates REVERSAL + original becomes REVERSED
        r = self.client.post(f"/api/accounting/journal-entries/{je_id}/reverse/", {}, format="json")
        self.assertEqual(r.status_code, 201, r.data)

        original = r.data["original"]
        reversal = r.data["reversal"]
        self.assertEqual(original["status"], JournalEntry.Status.REVERSED)
        self.assertIsNotNone(original["reversed_at"])
        self.assertEqual(reversal["kind"], JournalEntry.Kind.REVERSAL)
        self.assertEqual(reversal["status"], JournalEntry.Status.POSTED)
        self.assertEqual(reversal["reverses_entry_public_id"], original["public_id"])

        # Reversal lines are swapped
        rev_lines = sorted(reversal["lines"], key=lambda l: l["line_no"])
        self.assertEqual(len(rev_lines), 2)
        self.assertEqual(rev_lines[0]["account"], self.cash.id)
        self.assertEqual(Decimal(rev_lines[0]["debit"]), Decimal("0.00"))
        self.assertEqual(Decimal(rev_lines[0]["credit"]), Decimal("100.00"))
        self.assertEqual(rev_lines[1]["account"], self.sales.id)
        self.assertEqual(Decimal(rev_lines[1]["debit"]), Decimal("100.00"))

        # Projected balances are back to zero
        r = self.client.get("/api/projections/account-balances/1000/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(Decimal(r.data["balance"]), Decimal("0.00"))

    def test_unbalanced_entry_cannot_be_completed(self):
        """Test that unbalanced entries fail validation"""
        payload = self._payload(credit="50.00", memo="Unbalanced")
        r = self.client.post("/api/accounting/journal-entries/", payload, format="json")
        self.assertEqual(r.status_code, 201)
        je_id = r.data["id"]

        r = self.client.put(f"/api/accounting/journal-entries/{je_id}/complete/", payload, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertIn("balanced", str(r.data).lower())

    def test_posted_entry_cannot_be_edited(self):
        """Test that posted entries are immutable"""
        payload = self._payload()
        r = self.client.post("/api/accounting/journal-entries/", payload, format="json")
        je_id = r.data["id"]
        self.client.put(f"/api/accounting/journal-entries/{je_id}/complete/", payload, format="json")
        self.client.post(f"/api/accounting/journal-entries/{je_id}/post/", {}, format="json")

        r = self.client.patch(f"/api/accounting/journal-entries/{je_id}/", {"memo": "Changed"}, format="json")
        self.assertEqual(r.status_code, 400)

        r = self.client.delete(f"/api/accounting/journal-entries/{je_id}/")
        self.assertEqual(r.status_code, 400)
