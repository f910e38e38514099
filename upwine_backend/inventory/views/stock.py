# inventory/views/stock.py

"""
STOCK ENDPOINTS

- GET  /api/stock/                public: bottles left this period
- GET  /api/admin/stock/          admin: full snapshot
- POST /api/admin/stock/          admin: reset a period's allotment
- GET|POST /api/cron/reset-stock/ scheduler: reset current period to the default
                                  allotment (Authorization: Bearer <CRON_SECRET>)
"""

from __future__ import annotations

import hmac
import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.api_errors import error_response
from backend.throttling import PublicPollThrottle
from inventory.serializers import (
    PublicStockSerializer,
    StockResetSerializer,
    StockSnapshotSerializer,
)
from inventory.services.stock_ledger import (
    StockLedgerError,
    current_available,
    current_period_key,
    default_allotment,
    reset_period,
)

logger = logging.getLogger(__name__)


def _snapshot_payload(snapshot) -> dict:
    return {
        "period_start": snapshot.period_start,
        "available": snapshot.available,
        "total": snapshot.total,
        "sold": snapshot.sold,
    }


class PublicStockView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [PublicPollThrottle]

    @extend_schema(
        tags=["Public"],
        responses={200: PublicStockSerializer},
        description="Bottles still available in the current stock period.",
    )
    def get(self, request, *args, **kwargs):
        snapshot = current_available(current_period_key())
        return Response(
            {
                "period_start": snapshot.period_start,
                "available": snapshot.available,
                "in_stock": snapshot.available > 0,
            },
            status=status.HTTP_200_OK,
        )


class AdminStockView(APIView):
    permission_classes = [IsAdminUser]
    parser_classes = [JSONParser]

    @extend_schema(tags=["Admin"], responses={200: StockSnapshotSerializer})
    def get(self, request, *args, **kwargs):
        snapshot = current_available(current_period_key())
        return Response(_snapshot_payload(snapshot), status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Admin"],
        request=StockResetSerializer,
        responses={
            200: StockSnapshotSerializer,
            400: OpenApiResponse(description="Validation error"),
        },
        description="Replace the allotment for a period (defaults to the current one).",
    )
    def post(self, request, *args, **kwargs):
        s = StockResetSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        period_key = data.get("period_start") or current_period_key()

        try:
            snapshot = reset_period(period_key, data["bottles"])
        except StockLedgerError as exc:
            return error_response(
                code="INVALID_STOCK_RESET",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        logger.info(
            "Stock reset by admin",
            extra={"period_start": str(period_key), "user_id": request.user.pk},
        )
        return Response(_snapshot_payload(snapshot), status=status.HTTP_200_OK)


def _cron_authorized(request) -> bool:
    secret = str((getattr(settings, "SHOP", {}) or {}).get("CRON_SECRET") or "")
    if not secret:
        return False

    header = request.headers.get("Authorization") or ""
    return hmac.compare_digest(header, f"Bearer {secret}")


class CronResetStockView(APIView):
    """
    Called by an external scheduler at the start of each period.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def _reset(self, request):
        if not _cron_authorized(request):
            logger.warning("Cron stock reset rejected (bad or missing secret)")
            return error_response(
                code="UNAUTHORIZED",
                message="Unauthorized",
                http_status=status.HTTP_401_UNAUTHORIZED,
            )

        period_key = current_period_key()
        bottles = default_allotment()
        snapshot = reset_period(period_key, bottles)

        return Response(
            {
                "success": True,
                "message": f"Stock reset to {bottles} bottles for {period_key.isoformat()}",
                "date": snapshot.period_start,
                "bottles": snapshot.total,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(tags=["Scheduler"], request=None, responses={200: OpenApiResponse(description="Reset done")})
    def get(self, request, *args, **kwargs):
        return self._reset(request)

    @extend_schema(tags=["Scheduler"], request=None, responses={200: OpenApiResponse(description="Reset done")})
    def post(self, request, *args, **kwargs):
        return self._reset(request)
