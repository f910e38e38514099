# orders/views/orders.py

"""
ORDER ENDPOINTS

Public (storefront):
- POST /api/orders/                  place an order (201, with warnings)
- GET  /api/orders/<order_number>/   track an order (case-insensitive)

Admin:
- GET        /api/admin/orders/               list (filterable)
- GET|PATCH  /api/admin/orders/<id>/          status / payment_status
- POST       /api/admin/orders/<id>/cancel/
- GET        /api/admin/orders/summary/       sales totals
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.api_errors import error_response
from backend.throttling import PublicPollThrottle, PublicWriteThrottle
from inventory.services.stock_ledger import InsufficientStockError, StockLedgerError
from orders.models import Order
from orders.serializers import (
    AdminOrderSerializer,
    OrderCreateSerializer,
    OrderUpdateSerializer,
    PublicOrderSerializer,
    SalesSummaryQuerySerializer,
)
from orders.services.order_lifecycle import (
    InvalidOrderTransitionError,
    InvalidPaymentTransitionError,
    OrderAlreadyCancelledError,
    OrderNotFoundError,
    OrderValidationError,
    cancel_order,
    create_order,
    update_order_status,
    update_payment_status,
)
from orders.services.reports import sales_by_period, sales_summary

logger = logging.getLogger(__name__)


def lifecycle_error_response(exc: Exception):
    """
    Maps order lifecycle errors onto the canonical error envelope.
    """
    if isinstance(exc, OrderValidationError):
        return error_response(
            code="VALIDATION_ERROR",
            message=exc.message,
            field=exc.field,
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, InsufficientStockError):
        return error_response(
            code="INSUFFICIENT_STOCK",
            message=str(exc),
            field="quantity",
            http_status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, OrderNotFoundError):
        return error_response(
            code="NOT_FOUND", message="Order not found", http_status=status.HTTP_404_NOT_FOUND
        )
    if isinstance(exc, OrderAlreadyCancelledError):
        return error_response(
            code="ALREADY_CANCELLED", message=str(exc), http_status=status.HTTP_409_CONFLICT
        )
    if isinstance(exc, (InvalidOrderTransitionError, InvalidPaymentTransitionError)):
        return error_response(
            code="INVALID_TRANSITION", message=str(exc), http_status=status.HTTP_409_CONFLICT
        )
    raise exc


# ============================================================
# PUBLIC
# ============================================================

class OrderCreateView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Public"],
        request=OrderCreateSerializer,
        responses={
            201: OpenApiResponse(description="Order created; body carries the order and any warnings"),
            400: OpenApiResponse(description="Validation error"),
            409: OpenApiResponse(description="Not enough bottles left this period"),
            429: OpenApiResponse(description="Rate limited"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = OrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            placement = create_order(dict(s.validated_data))
        except (OrderValidationError, InsufficientStockError) as exc:
            return lifecycle_error_response(exc)
        except StockLedgerError as exc:
            return error_response(
                code="VALIDATION_ERROR",
                message=str(exc),
                field="quantity",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "order": PublicOrderSerializer(placement.order).data,
                "warnings": placement.warnings,
            },
            status=status.HTTP_201_CREATED,
        )


class OrderTrackView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicPollThrottle]

    @extend_schema(
        tags=["Public"],
        responses={
            200: PublicOrderSerializer,
            404: OpenApiResponse(description="Order not found"),
        },
    )
    def get(self, request, order_number: str, *args, **kwargs):
        order = (
            Order.objects.prefetch_related("items")
            .filter(order_number__iexact=(order_number or "").strip())
            .first()
        )
        if order is None:
            return error_response(
                code="NOT_FOUND", message="Order not found", http_status=status.HTTP_404_NOT_FOUND
            )
        return Response(PublicOrderSerializer(order).data, status=status.HTTP_200_OK)


# ============================================================
# ADMIN
# ============================================================

class AdminOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Orders are never deleted or freely edited; PATCH only accepts status
    and payment_status, and both go through the lifecycle service.
    """

    serializer_class = AdminOrderSerializer
    permission_classes = [IsAdminUser]
    parser_classes = [JSONParser]
    filterset_fields = ["status", "payment_status", "payment_method", "delivery_type"]

    def get_queryset(self):
        qs = Order.objects.prefetch_related("items").order_by("-created_at")
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(order_number__icontains=search)
                | Q(customer_name__icontains=search)
                | Q(phone__icontains=search)
            )
        return qs

    @extend_schema(
        tags=["Admin"],
        request=OrderUpdateSerializer,
        responses={
            200: AdminOrderSerializer,
            400: OpenApiResponse(description="Validation error"),
            409: OpenApiResponse(description="Illegal status change"),
        },
    )
    def partial_update(self, request, *args, **kwargs):
        order = self.get_object()
        s = OrderUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        # both changes land together or not at all
        try:
            with transaction.atomic():
                if "payment_status" in data:
                    order = update_payment_status(order.pk, data["payment_status"])
                if "status" in data:
                    order = update_order_status(order.pk, data["status"])
        except (
            OrderValidationError,
            OrderNotFoundError,
            OrderAlreadyCancelledError,
            InvalidOrderTransitionError,
            InvalidPaymentTransitionError,
        ) as exc:
            return lifecycle_error_response(exc)

        logger.info(
            "Order updated by admin",
            extra={"order_number": order.order_number, "user_id": request.user.pk, "changes": dict(data)},
        )
        return Response(AdminOrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Admin"],
        request=None,
        responses={
            200: AdminOrderSerializer,
            409: OpenApiResponse(description="Already cancelled or past confirmation"),
        },
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, *args, **kwargs):
        order = self.get_object()
        try:
            order = cancel_order(order.pk)
        except (OrderNotFoundError, OrderAlreadyCancelledError, InvalidOrderTransitionError) as exc:
            return lifecycle_error_response(exc)

        logger.info(
            "Order cancelled by admin",
            extra={"order_number": order.order_number, "user_id": request.user.pk},
        )
        return Response(AdminOrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Admin"],
        parameters=[
            OpenApiParameter("date_from", OpenApiTypes.DATE, required=False),
            OpenApiParameter("date_to", OpenApiTypes.DATE, required=False),
            OpenApiParameter("period", str, required=False, enum=["day", "week", "month"]),
        ],
        responses={200: OpenApiTypes.OBJECT},
        description="Sales totals (cancelled orders excluded) plus a per-period breakdown.",
    )
    @action(detail=False, methods=["get"])
    def summary(self, request, *args, **kwargs):
        s = SalesSummaryQuerySerializer(data=request.query_params)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        payload = sales_summary(data.get("date_from"), data.get("date_to"))
        payload["series"] = sales_by_period(
            data.get("period") or "day", data.get("date_from"), data.get("date_to")
        )
        return Response(payload, status=status.HTTP_200_OK)
