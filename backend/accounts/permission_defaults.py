# accounts/permission_defaults.py

_VIEW = {
    "company.switch",
    "company.view",

    "accounts.view",
    "journal.view",
    "periods.view",

    "sales.view",
    "purchases.view",
    "intercompany.view",

    "reports.view",
}

ROLE_DEFAULTS = {
    "OWNER": _VIEW | {
        # Company / security
        "company.manage_settings",
        "company.manage_users",
        "company.manage_permissions",

        # Accounting
        "accounts.manage",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",

        # Periods
        "periods.close",
        "periods.reopen",
        "periods.configure",

        # Sales
        "sales.manage",
        "invoices.issue",
        "invoices.void",
        "receipts.record",
        "credit_notes.manage",

        # Purchases
        "purchases.manage",
        "bills.post",
        "bills.void",
        "payments.record",
        "debit_notes.manage",

        # Intercompany
        "intercompany.manage",

        "reports.export",
    },
    "ADMIN": _VIEW | {
        "company.manage_users",
        "company.manage_permissions",

        "accounts.manage",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",

        "sales.manage",
        "invoices.issue",
        "invoices.void",
        "receipts.record",
        "credit_notes.manage",

        "purchases.manage",
        "bills.post",
        "bills.void",
        "payments.record",
        "debit_notes.manage",

        "intercompany.manage",

        "reports.export",
    },
    "USER": _VIEW | {
        "journal.create",
        "journal.edit_draft",

        "sales.manage",
        "invoices.issue",
        "receipts.record",

        "purchases.manage",
        "bills.post",
        "payments.record",
    },
    "VIEWER": set(_VIEW),
}

def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
