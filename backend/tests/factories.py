# tests/factories.py
"""Command-driven builders shared by the test modules."""

from decimal import Decimal

from rest_framework.test import APIClient

from accounts.commands import switch_active_company
from accounting.models import Account
from purchases import commands as purchase_commands
from sales import commands as sales_commands


def client_for(user, company=None):
    """APIClient authenticated as user, with company made active first."""
    if company is not None:
        result = switch_active_company(user, company.public_id)
        assert result.success, result.error
    user.refresh_from_db()
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def account(company, role):
    return Account.objects.get(company=company, role=role)


def balance_of(company, role) -> Decimal:
    """Projected balance of the account carrying role (0 when never posted)."""
    acc = account(company, role)
    bal = getattr(acc, "projected_balance", None)
    return bal.balance if bal else Decimal("0.00")


def line(description="Widget", quantity="1", unit_price="100.00", tax_rate="0", **extra):
    return {
        "description": description,
        "quantity": quantity,
        "unit_price": unit_price,
        "tax_rate": tax_rate,
        **extra,
    }


def issued_invoice(actor, customer, lines, **kwargs):
    created = sales_commands.create_invoice(actor, customer_public_id=customer.public_id, lines=lines, **kwargs)
    assert created.success, created.error
    issued = sales_commands.issue_invoice(actor, created.data.public_id)
    assert issued.success, issued.error
    return issued.data


def posted_bill(actor, vendor, lines, **kwargs):
    created = purchase_commands.create_bill(actor, vendor_public_id=vendor.public_id, lines=lines, **kwargs)
    assert created.success, created.error
    posted = purchase_commands.post_bill(actor, created.data.public_id)
    assert posted.success, posted.error
    return posted.data
