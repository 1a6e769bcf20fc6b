# projections/views.py
"""
API views over projection state.

Balances are read from the AccountBalance projection, never summed from
journal lines. The status view shows how far each projection is behind
the event store for the active company.
"""

from decimal import Decimal, InvalidOperation

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from accounting.models import Account
from projections.base import projection_registry
from projections.models import AccountBalance


def _balance_data(account, bal=None) -> dict:
    return {
        "account_public_id": str(account.public_id),
        "account_code": account.code,
        "account_name": account.name,
        "account_type": account.account_type,
        "normal_balance": account.normal_balance,
        "balance": str(bal.balance) if bal else "0.00",
        "debit_total": str(bal.debit_total) if bal else "0.00",
        "credit_total": str(bal.credit_total) if bal else "0.00",
        "entry_count": bal.entry_count if bal else 0,
        "last_entry_date": bal.last_entry_date.isoformat() if bal and bal.last_entry_date else None,
    }


class ProjectionStatusView(APIView):
    """
    GET /api/projections/status/

    Lag, errors and pause state of every projection for the active company.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        projections = []
        for projection in projection_registry.all():
            bookmark = projection.get_bookmark(actor.company)
            lag = projection.get_lag(actor.company)
            projections.append({
                "name": projection.name,
                "lag": lag,
                "is_healthy": lag == 0 and not (bookmark and bookmark.error_count),
                "is_paused": bookmark.is_paused if bookmark else False,
                "error_count": bookmark.error_count if bookmark else 0,
                "last_error": bookmark.last_error if bookmark else "",
                "last_processed_at": (
                    bookmark.last_processed_at.isoformat()
                    if bookmark and bookmark.last_processed_at
                    else None
                ),
            })

        return Response({
            "company_public_id": str(actor.company.public_id),
            "projections": projections,
            "total_lag": sum(p["lag"] for p in projections),
            "all_healthy": all(p["is_healthy"] for p in projections),
        })


class AccountBalanceListView(APIView):
    """
    GET /api/projections/account-balances/ -> ?type=&min_balance=&has_activity=true
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        balances = AccountBalance.objects.filter(
            company=actor.company,
        ).select_related("account").order_by("account__code")

        params = request.query_params
        if params.get("type"):
            balances = balances.filter(account__account_type=params["type"])
        if params.get("min_balance"):
            try:
                balances = balances.filter(balance__gte=Decimal(params["min_balance"]))
            except InvalidOperation:
                return Response({"detail": "min_balance must be a number."}, status=status.HTTP_400_BAD_REQUEST)
        if params.get("has_activity") == "true":
            balances = balances.filter(entry_count__gt=0)

        data = [_balance_data(bal.account, bal) for bal in balances]
        return Response({"balances": data, "count": len(data)})


class AccountBalanceDetailView(APIView):
    """GET /api/projections/account-balances/<code>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        account = Account.objects.filter(company=actor.company, code=code).first()
        if account is None:
            return Response({"detail": "Account not found."}, status=status.HTTP_404_NOT_FOUND)
        bal = AccountBalance.objects.filter(company=actor.company, account=account).first()
        return Response(_balance_data(account, bal))
