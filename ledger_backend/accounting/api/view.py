# PATH: accounting/api/view.py

"""
PATH: accounting/api/view.py

ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Audit endpoints are strictly read-only (GET/HEAD/OPTIONS)
- Permission-gated via Django model permissions
- Lightweight query-param filtering WITHOUT django-filter:
    /api/accounting/accounts/?type=ASSET&active=true
    /api/accounting/ledger-entries/?account=28&start_date=2026-01-01&end_date=2026-01-31
    /api/accounting/journal-entries/?number=JE-000030&status=POSTED

Security rules:
- Account list requires accounting.view_account
- JournalEntry list requires accounting.view_journalentry
- LedgerEntry list requires accounting.view_ledgerentry
"""

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers import (
    AccountListSerializer,
    JournalEntrySerializer,
    LedgerEntrySerializer,
)
from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.ledger_service import ledger_history_queryset


def _require_perm(request, perm: str, label: str) -> None:
    if not request.user.has_perm(perm):
        raise PermissionDenied(f"You do not have permission to view {label}.")


def _date_param(qp, name: str):
    raw = (qp.get(name) or "").strip()
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise ValidationError({name: "Expected YYYY-MM-DD"})
    return value


def _int_param(qp, name: str):
    raw = (qp.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError({name: "Expected an integer id"}) from exc


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="type", type=str, required=False, description="Filter by account type (e.g. ASSET)."),
        OpenApiParameter(name="active", type=bool, required=False, description="Only active (true) or inactive (false) accounts."),
    ],
)
class AccountViewSet(ReadOnlyModelViewSet):
    """
    Read-only chart of accounts. Detail lookup is by account code.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer
    http_method_names = ["get", "head", "options"]
    lookup_field = "code"

    queryset = Account.objects.select_related("parent").order_by("code")

    def get_queryset(self):
        _require_perm(self.request, "accounting.view_account", "accounts")
        qs = super().get_queryset()

        qp = self.request.query_params
        account_type = (qp.get("type") or "").strip().upper()
        if account_type:
            qs = qs.filter(account_type=account_type)

        active = (qp.get("active") or "").strip().lower()
        if active in ("true", "1"):
            qs = qs.filter(is_active=True)
        elif active in ("false", "0"):
            qs = qs.filter(is_active=False)

        return qs


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="number", type=str, required=False, description="Filter by journal number (e.g. JE-000030)."),
        OpenApiParameter(name="status", type=str, required=False, description="Filter by status (DRAFT, POSTED, CANCELLED, REVERSED)."),
    ],
)
class JournalEntryViewSet(ReadOnlyModelViewSet):
    """
    Read-only access to journal entries and their status.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    http_method_names = ["get", "head", "options"]

    queryset = (
        JournalEntry.objects.select_related("period", "reversal_of")
        .prefetch_related("lines__account")
        .order_by("-entry_date", "-id")
    )

    def get_queryset(self):
        _require_perm(self.request, "accounting.view_journalentry", "journal entries")
        qs = super().get_queryset()

        qp = self.request.query_params
        number = (qp.get("number") or "").strip()
        if number:
            qs = qs.filter(number=number)

        entry_status = (qp.get("status") or "").strip().upper()
        if entry_status:
            qs = qs.filter(status=entry_status)

        return qs


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="account", type=int, required=False, description="Filter ledger entries by Account id (e.g. 28)."),
        OpenApiParameter(name="start_date", type=str, required=False, description="Inclusive start date (YYYY-MM-DD)."),
        OpenApiParameter(name="end_date", type=str, required=False, description="Inclusive end date (YYYY-MM-DD)."),
    ],
)
class LedgerEntryViewSet(ReadOnlyModelViewSet):
    """
    Read-only access to ledger entries (append-only, audit-safe).
    Ordered by posting sequence.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = LedgerEntrySerializer
    http_method_names = ["get", "head", "options"]

    def get_queryset(self):
        _require_perm(self.request, "accounting.view_ledgerentry", "ledger entries")

        qp = self.request.query_params
        return ledger_history_queryset(
            account_id=_int_param(qp, "account"),
            start_date=_date_param(qp, "start_date"),
            end_date=_date_param(qp, "end_date"),
        )
