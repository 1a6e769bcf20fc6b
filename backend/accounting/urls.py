# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of Accounts (list, create, seed, detail, deactivate)
- /journal-entries/ - Journal Entry CRUD with workflow actions
- /periods/ - Fiscal periods (configure, close, open)
"""

from django.urls import path

from .views import (
    # Account views
    AccountListCreateView,
    AccountSeedView,
    AccountDetailView,
    # Journal entry views
    JournalEntryListCreateView,
    JournalEntryDetailView,
    JournalSaveCompleteView,
    JournalPostView,
    JournalReverseView,
    # Period views
    FiscalPeriodListView,
    FiscalPeriodCloseView,
    FiscalPeriodOpenView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path(
        "accounts/",
        AccountListCreateView.as_view(),
        name="account-list-create",
    ),
    path(
        "accounts/seed/",
        AccountSeedView.as_view(),
        name="account-seed",
    ),
    path(
        "accounts/<str:code>/",
        AccountDetailView.as_view(),
        name="account-detail",
    ),

    # ==========================================================================
    # Journal Entries
    # ==========================================================================
    path(
        "journal-entries/",
        JournalEntryListCreateView.as_view(),
        name="journal-entry-list-create",
    ),
    path(
        "journal-entries/<int:pk>/",
        JournalEntryDetailView.as_view(),
        name="journal-entry-detail",
    ),
    path(
        "journal-entries/<int:pk>/complete/",
        JournalSaveCompleteView.as_view(),
        name="journal-entry-complete",
    ),
    path(
        "journal-entries/<int:pk>/post/",
        JournalPostView.as_view(),
        name="journal-entry-post",
    ),
    path(
        "journal-entries/<int:pk>/reverse/",
        JournalReverseView.as_view(),
        name="journal-entry-reverse",
    ),

    # ==========================================================================
    # Fiscal Periods
    # ==========================================================================
    path(
        "periods/",
        FiscalPeriodListView.as_view(),
        name="period-list",
    ),
    path(
        "periods/<int:fiscal_year>/<int:period>/close/",
        FiscalPeriodCloseView.as_view(),
        name="period-close",
    ),
    path(
        "periods/<int:fiscal_year>/<int:period>/open/",
        FiscalPeriodOpenView.as_view(),
        name="period-open",
    ),
]
