# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, events.

CRITICAL: All mutations (create, update, delete) MUST go through commands
to ensure events are emitted. Views should never directly call .save() on models.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from django.db.models import OuterRef, Subquery
from django.shortcuts import get_object_or_404

from accounts.authz import resolve_actor, require
from projections.models import AccountBalance, FiscalPeriod
from .models import Account, JournalEntry
from .serializers import (
    AccountSerializer,
    AccountCreateSerializer,
    AccountUpdateSerializer,
    JournalEntrySerializer,
    JournalEntryListSerializer,
    JournalEntryInputSerializer,
    FiscalPeriodSerializer,
    PeriodConfigureSerializer,
)
from .commands import (
    # Account commands
    create_account,
    update_account,
    deactivate_account,
    seed_chart_of_accounts,
    # Journal entry commands
    create_journal_entry,
    update_journal_entry,
    save_journal_entry_complete,
    post_journal_entry,
    reverse_journal_entry,
    delete_journal_entry,
    # Period commands
    configure_periods,
    close_period,
    open_period,
)


def _fail(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


def _command_lines(lines):
    """Serializer lines -> command line dicts (account_id or account_public_id)."""
    command_lines = []
    for line in lines:
        command_lines.append({
            "account_id": line.get("account_id"),
            "account_public_id": str(line["account_public_id"]) if line.get("account_public_id") else None,
            "description": line.get("description", ""),
            "debit": line.get("debit", 0),
            "credit": line.get("credit", 0),
        })
    return command_lines


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/ -> list accounts with balances
    POST /api/accounting/accounts/ -> create account

    POST goes through the command layer to emit events.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        balance = AccountBalance.objects.filter(account=OuterRef("pk")).values("balance")[:1]
        accounts = Account.objects.filter(
            company=actor.company,
        ).select_related("parent").annotate(_balance=Subquery(balance)).order_by("code")

        account_type = request.query_params.get("type")
        if account_type:
            accounts = accounts.filter(account_type=account_type)

        serializer = AccountSerializer(accounts, many=True)
        return Response(serializer.data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_account(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountSeedView(APIView):
    """POST /api/accounting/accounts/seed/ -> create missing default accounts"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)
        result = seed_chart_of_accounts(actor)
        if not result.success:
            return _fail(result)
        return Response(result.data)


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<code>/ -> retrieve
    PATCH /api/accounting/accounts/<code>/ -> update
    DELETE /api/accounting/accounts/<code>/ -> deactivate

    Accounts are never hard-deleted; DELETE deactivates.
    """
    permission_classes = [IsAuthenticated]

    def get_object(self, actor, code):
        return get_object_or_404(Account, company=actor.company, code=code)

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        account = self.get_object(actor, code)
        return Response(AccountSerializer(account).data)

    def patch(self, request, code):
        actor = resolve_actor(request)
        account = self.get_object(actor, code)

        serializer = AccountUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = update_account(actor, account.id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(AccountSerializer(result.data).data)

    def delete(self, request, code):
        actor = resolve_actor(request)
        account = self.get_object(actor, code)

        result = deactivate_account(actor, account.id)
        if not result.success:
            return _fail(result)
        return Response(AccountSerializer(result.data).data)


# =============================================================================
# Journal Entry Views
# =============================================================================

class JournalEntryListCreateView(APIView):
    """
    GET /api/accounting/journal-entries/ -> list journal entries
    POST /api/accounting/journal-entries/ -> create journal entry (autosave)

    Query params: status, source_module, date_from, date_to
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entries = JournalEntry.objects.filter(company=actor.company).order_by("-date", "-id")

        params = request.query_params
        if params.get("status"):
            entries = entries.filter(status=params["status"])
        if params.get("source_module"):
            entries = entries.filter(source_module=params["source_module"])
        if params.get("date_from"):
            entries = entries.filter(date__gte=params["date_from"])
        if params.get("date_to"):
            entries = entries.filter(date__lte=params["date_to"])

        serializer = JournalEntryListSerializer(entries, many=True)
        return Response(serializer.data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        input_serializer = JournalEntryInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = create_journal_entry(
            actor,
            date=data.get("date"),
            memo=data.get("memo", ""),
            lines=_command_lines(data.get("lines", [])),
            kind=data.get("kind", JournalEntry.Kind.NORMAL),
            currency=data.get("currency"),
            period=data.get("period"),
        )
        if not result.success:
            return _fail(result)

        output_serializer = JournalEntrySerializer(result.data)
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    """
    GET /api/accounting/journal-entries/<pk>/ -> retrieve
    PATCH /api/accounting/journal-entries/<pk>/ -> update (autosave)
    DELETE /api/accounting/journal-entries/<pk>/ -> delete (drafts only)
    """
    permission_classes = [IsAuthenticated]

    def get_object(self, actor, pk):
        return get_object_or_404(
            JournalEntry.objects.prefetch_related("lines", "lines__account"),
            company=actor.company,
            pk=pk,
        )

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entry = self.get_object(actor, pk)
        return Response(JournalEntrySerializer(entry).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        entry = self.get_object(actor, pk)

        input_serializer = JournalEntryInputSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = update_journal_entry(
            actor,
            entry.id,
            date=data.get("date"),
            memo=data.get("memo") if "memo" in request.data else None,
            currency=data.get("currency"),
            lines=_command_lines(data["lines"]) if "lines" in data else None,
            period=data.get("period"),
        )
        if not result.success:
            return _fail(result)
        return Response(JournalEntrySerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        entry = self.get_object(actor, pk)

        result = delete_journal_entry(actor, entry.id)
        if not result.success:
            return _fail(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalSaveCompleteView(APIView):
    """
    PUT /api/accounting/journal-entries/<pk>/complete/

    Validate and save as DRAFT (ready to post).
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, pk):
        actor = resolve_actor(request)
        entry = get_object_or_404(JournalEntry, company=actor.company, pk=pk)

        input_serializer = JournalEntryInputSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = save_journal_entry_complete(
            actor,
            entry.id,
            date=data.get("date"),
            memo=data.get("memo") if "memo" in request.data else None,
            currency=data.get("currency"),
            lines=_command_lines(data["lines"]) if "lines" in data else None,
            period=data.get("period"),
        )
        if not result.success:
            return _fail(result)
        return Response(JournalEntrySerializer(result.data).data)


class JournalPostView(APIView):
    """POST /api/accounting/journal-entries/<pk>/post/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        entry = get_object_or_404(JournalEntry, company=actor.company, pk=pk)

        result = post_journal_entry(actor, entry.id)
        if not result.success:
            return _fail(result)
        return Response(JournalEntrySerializer(result.data).data)


class JournalReverseView(APIView):
    """
    POST /api/accounting/journal-entries/<pk>/reverse/

    Returns the original (now REVERSED) and the posted reversal entry.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        entry = get_object_or_404(JournalEntry, company=actor.company, pk=pk)

        result = reverse_journal_entry(actor, entry.id)
        if not result.success:
            return _fail(result)
        return Response(
            {
                "original": JournalEntrySerializer(result.data["original"]).data,
                "reversal": JournalEntrySerializer(result.data["reversal"]).data,
            },
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Fiscal Period Views
# =============================================================================

class FiscalPeriodListView(APIView):
    """
    GET /api/accounting/periods/?fiscal_year=2026 -> list periods
    POST /api/accounting/periods/ {"fiscal_year", "period_count"} -> configure a year
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "periods.view")

        periods = FiscalPeriod.objects.filter(company=actor.company)
        fiscal_year = request.query_params.get("fiscal_year")
        if fiscal_year:
            periods = periods.filter(fiscal_year=fiscal_year)
        return Response(FiscalPeriodSerializer(periods, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        serializer = PeriodConfigureSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = configure_periods(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        periods = FiscalPeriod.objects.filter(
            company=actor.company,
            fiscal_year=serializer.validated_data["fiscal_year"],
        )
        return Response(FiscalPeriodSerializer(periods, many=True).data, status=status.HTTP_201_CREATED)


class FiscalPeriodCloseView(APIView):
    """POST /api/accounting/periods/<fiscal_year>/<period>/close/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, fiscal_year, period):
        actor = resolve_actor(request)
        result = close_period(actor, fiscal_year, period)
        if not result.success:
            return _fail(result)
        return Response(FiscalPeriodSerializer(result.data).data)


class FiscalPeriodOpenView(APIView):
    """POST /api/accounting/periods/<fiscal_year>/<period>/open/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, fiscal_year, period):
        actor = resolve_actor(request)
        result = open_period(actor, fiscal_year, period)
        if not result.success:
            return _fail(result)
        return Response(FiscalPeriodSerializer(result.data).data)
