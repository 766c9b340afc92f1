"""
PATH: accounting/api/views/accounts.py

ACCOUNT BALANCE API (READ-ONLY)

- Current balance comes from the engine-maintained running total
- ?as_of=YYYY-MM-DD recomputes from the ledger history instead
- Requires accounting.view_account
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.errors import error_response
from accounting.api.serializers import AccountBalanceSerializer
from accounting.services.exceptions import AccountingServiceError
from accounting.services.ledger_service import (
    get_account_balance,
    get_account_balance_as_of,
)


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Balance as of the end of this date (YYYY-MM-DD).",
        ),
    ],
    responses={200: AccountBalanceSerializer},
)
class AccountBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, code: str):
        if not request.user.has_perm("accounting.view_account"):
            return Response(
                {"detail": "You do not have permission to view account balances."},
                status=status.HTTP_403_FORBIDDEN,
            )

        raw = (request.query_params.get("as_of") or "").strip()
        try:
            if raw:
                on_date = parse_date(raw)
                if on_date is None:
                    return Response(
                        {"detail": "Invalid as_of (expected YYYY-MM-DD)"},
                        status=status.HTTP_400_BAD_REQUEST,
                    )
                balance = get_account_balance_as_of(code=code, on_date=on_date)
            else:
                balance = get_account_balance(code=code)
        except AccountingServiceError as exc:
            return error_response(exc)

        return Response(AccountBalanceSerializer(balance).data, status=status.HTTP_200_OK)
