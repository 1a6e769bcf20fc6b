# tests/test_migrations.py
"""
Tests for the shipped schema: the migrations match the models and the
database enforces the check constraints they create.
"""

import uuid
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.db import IntegrityError, connection, transaction
from django.db.migrations.recorder import MigrationRecorder
from django.utils import timezone

from accounting.models import JournalEntry, JournalLine
from intercompany.models import IntercompanyTransaction
from sales.models import CreditNoteApplication, Receipt
from tests.factories import account, issued_invoice, line


LOCAL_APPS = ["accounts", "events", "accounting", "sales", "purchases", "intercompany", "projections"]


@pytest.mark.django_db
def test_initial_migrations_are_applied():
    applied = MigrationRecorder(connection).applied_migrations()
    for app in LOCAL_APPS:
        assert (app, "0001_initial") in applied


@pytest.mark.django_db
def test_models_have_no_pending_changes():
    out = StringIO()
    try:
        call_command("makemigrations", *LOCAL_APPS, check=True, dry_run=True, stdout=out, stderr=StringIO())
    except SystemExit:
        pytest.fail(f"Model changes without a migration:\n{out.getvalue()}")


class TestCheckConstraints:

    @pytest.fixture
    def invoice(self, actor, customer):
        return issued_invoice(actor, customer, [line(unit_price="120.00")])

    def _line(self, actor, invoice, **amounts):
        entry = JournalEntry.objects.get(company=actor.company, public_id=invoice.journal_entry_public_id)
        return JournalLine.objects.create(
            entry=entry,
            company=actor.company,
            line_no=99,
            account=account(actor.company, "cash"),
            **amounts,
        )

    def test_journal_line_refuses_debit_and_credit(self, actor, invoice):
        with pytest.raises(IntegrityError), transaction.atomic():
            self._line(actor, invoice, debit=Decimal("5.00"), credit=Decimal("5.00"))

    def test_journal_line_refuses_zero(self, actor, invoice):
        with pytest.raises(IntegrityError), transaction.atomic():
            self._line(actor, invoice, debit=Decimal("0"), credit=Decimal("0"))

    def test_journal_line_refuses_negative(self, actor, invoice):
        with pytest.raises(IntegrityError), transaction.atomic():
            self._line(actor, invoice, debit=Decimal("-5.00"))

    def test_receipt_amount_must_be_positive(self, actor, invoice, today):
        with pytest.raises(IntegrityError), transaction.atomic():
            Receipt.objects.create(
                company=actor.company,
                customer=invoice.customer,
                invoice=invoice,
                number="RCT-ZERO",
                settlement_date=today,
                amount=Decimal("0.00"),
                cash_account=account(actor.company, "cash"),
            )

    def test_credit_application_amount_must_be_positive(self, actor, customer, invoice):
        from sales import commands as sales

        note = sales.create_credit_note(
            actor, customer_public_id=customer.public_id, reason="Allowance", lines=[line(unit_price="10.00")],
        ).data
        with pytest.raises(IntegrityError), transaction.atomic():
            CreditNoteApplication.objects.create(
                company=actor.company,
                credit_note=note,
                invoice=invoice,
                amount=Decimal("0.00"),
                applied_at=timezone.now(),
            )

    def test_intercompany_transaction_needs_two_companies(self, tenant, company, today):
        with pytest.raises(IntegrityError), transaction.atomic():
            IntercompanyTransaction.objects.create(
                tenant=tenant,
                source_company=company,
                target_company=company,
                reference="IC-SELF-000001",
                transaction_date=today,
                amount=Decimal("100.00"),
                sales_order_public_id=uuid.uuid4(),
                purchase_order_public_id=uuid.uuid4(),
            )
