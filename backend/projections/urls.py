# projections/urls.py
"""
Endpoints:
- /status/ - projection lag and error state for the active company
- /account-balances/ - projected account balances
- /account-balances/<code>/ - one account's projected balance
"""

from django.urls import path

from .views import AccountBalanceDetailView, AccountBalanceListView, ProjectionStatusView

app_name = "projections"

urlpatterns = [
    path("status/", ProjectionStatusView.as_view(), name="status"),
    path("account-balances/", AccountBalanceListView.as_view(), name="account-balance-list"),
    path("account-balances/<str:code>/", AccountBalanceDetailView.as_view(), name="account-balance-detail"),
]
