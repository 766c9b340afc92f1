"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

- Returns the stored trial balance rows for ?period=<code> plus totals
- Generation happens through TrialBalanceService, never through GET
- Permission-gated: requires accounting.view_trialbalanceline
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.errors import error_response
from accounting.api.serializers import TrialBalanceLineSerializer
from accounting.services.exceptions import AccountingServiceError
from accounting.services.period_registry import get_period_by_code
from accounting.services.trial_balance_service import TrialBalanceService


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="period",
            type=str,
            location=OpenApiParameter.QUERY,
            required=True,
            description="Fiscal period code (e.g. 2026-01).",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm("accounting.view_trialbalanceline"):
            return Response(
                {"detail": "You do not have permission to view trial balance."},
                status=status.HTTP_403_FORBIDDEN,
            )

        code = (request.query_params.get("period") or "").strip()
        if not code:
            return Response(
                {"detail": "period is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            period = get_period_by_code(code)
        except AccountingServiceError as exc:
            return error_response(exc)

        service = TrialBalanceService()
        lines = service.rows_for_period(period.pk)
        totals = service.totals(lines)

        return Response(
            {
                "period": {
                    "code": period.code,
                    "start_date": period.start_date,
                    "end_date": period.end_date,
                    "is_closed": period.is_closed,
                },
                "lines": TrialBalanceLineSerializer(lines, many=True).data,
                "totals": {k: (v if isinstance(v, bool) else str(v)) for k, v in totals.items()},
            },
            status=status.HTTP_200_OK,
        )
