# accounting/__init__.py
"""
Accounting app - Double-entry bookkeeping for LedgerBridge.

This app provides:
- Account: Chart of Accounts with hierarchy and posting roles
- JournalEntry: Double-entry bookkeeping entries
- JournalLine: Debit/credit lines
- trade helpers shared by the sales and purchases apps

Commands handle all mutations to ensure events are emitted.
"""
