# tests/test_write_barrier.py
"""
Tests for write barrier enforcement.

Read models (accounts, entries, documents, intercompany transactions)
are written only by projections; sequences only by commands.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from rest_framework import serializers

from accounts.models import Company
from accounting.models import Account, CompanySequence
from intercompany.models import IntercompanyTransaction
from projections.write_barrier import (
    WriteBarrierViolation,
    bootstrap_writes_allowed,
    command_writes_allowed,
    current_write_context,
    projection_writes_allowed,
    admin_emergency_writes_allowed,
)
from sales import commands as sales_commands
from tests.factories import issued_invoice, line


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ("name", "slug")


def _bootstrap_company(name):
    with bootstrap_writes_allowed():
        return Company.objects.create(name=name, slug=f"{name.lower().replace(' ', '-')}-{uuid4()}")


def test_contexts_nest_and_unwind():
    assert current_write_context() is None
    with command_writes_allowed():
        assert current_write_context() == "command"
        with projection_writes_allowed():
            assert current_write_context() == "projection"
        assert current_write_context() == "command"
    assert current_write_context() is None


def test_admin_emergency_requires_setting(settings):
    settings.ALLOW_ADMIN_EMERGENCY_WRITES = False
    with pytest.raises(WriteBarrierViolation):
        with admin_emergency_writes_allowed():
            pass


@pytest.mark.django_db
def test_company_save_outside_context_raises(settings):
    settings.TESTING = False
    company = _bootstrap_company("Barrier Co")

    company.name = "Barrier Co Updated"
    with pytest.raises(WriteBarrierViolation, match="Company save refused"):
        company.save()


@pytest.mark.django_db
def test_serializer_create_outside_context_raises(settings):
    settings.TESTING = False

    serializer = CompanySerializer(
        data={"name": "Serializer Co", "slug": f"serializer-{uuid4()}"},
    )
    serializer.is_valid(raise_exception=True)

    with pytest.raises(WriteBarrierViolation):
        serializer.save()


@pytest.mark.django_db
def test_account_refuses_command_context(settings):
    settings.TESTING = False
    company = _bootstrap_company("Ledger Co")

    with command_writes_allowed():
        with pytest.raises(WriteBarrierViolation, match="Account create refused"):
            Account.objects.create(
                company=company,
                code="1000",
                name="Cash",
                account_type=Account.AccountType.ASSET,
            )

    with projection_writes_allowed():
        account = Account.objects.projection().create(
            company=company,
            code="1000",
            name="Cash",
            account_type=Account.AccountType.ASSET,
            role="cash",
        )
    assert account.normal_balance == Account.NormalBalance.DEBIT


@pytest.mark.django_db
def test_intercompany_transaction_is_projection_owned(settings):
    settings.TESTING = False
    source = _bootstrap_company("Source Co")
    target = _bootstrap_company("Target Co")

    with pytest.raises(WriteBarrierViolation, match="IntercompanyTransaction create refused"):
        IntercompanyTransaction.objects.create(
            source_company=source,
            target_company=target,
            reference="IC-1-2-000001",
            transaction_date="2026-01-15",
            amount=Decimal("100.00"),
            sales_order_public_id=uuid4(),
            purchase_order_public_id=uuid4(),
        )


@pytest.mark.django_db
def test_sequence_is_command_owned(settings):
    settings.TESTING = False
    company = _bootstrap_company("Sequence Co")

    with pytest.raises(WriteBarrierViolation, match="CompanySequence save refused"):
        CompanySequence.objects.create(company=company, name="journal_entry_number")

    with projection_writes_allowed():
        with pytest.raises(WriteBarrierViolation):
            CompanySequence.objects.create(company=company, name="journal_entry_number")

    with command_writes_allowed():
        seq = CompanySequence.objects.create(company=company, name="journal_entry_number")

    assert seq.company_id == company.id


def test_commands_run_inside_the_barrier(settings, actor, customer):
    """An invoice issued with the barrier armed touches only allowed models."""
    settings.TESTING = False

    invoice = issued_invoice(actor, customer, [line(unit_price="250.00")])

    assert invoice.status == invoice.Status.OPEN
    assert invoice.journal_entry_public_id is not None

    voided = sales_commands.void_invoice(actor, invoice.public_id, reason="Entered twice")
    assert voided.success, voided.error
    assert voided.data.status == voided.data.Status.VOID
