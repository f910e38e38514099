# promotions/views/discount_codes.py

"""
DISCOUNT CODE ENDPOINTS

Public:
- POST /api/discount-codes/validate/   preview a code against an order amount
                                       (never consumes a use)

Admin:
- /api/admin/discount-codes/           CRUD (?active_only=true to filter)
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.throttling import PublicWriteThrottle
from promotions.models import DiscountCode
from promotions.serializers import (
    DiscountCodeSerializer,
    DiscountValidateRequestSerializer,
    DiscountValidateResponseSerializer,
)
from promotions.services.discounts import validate

logger = logging.getLogger(__name__)


class DiscountCodeValidateView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Public"],
        request=DiscountValidateRequestSerializer,
        responses={
            200: DiscountValidateResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
            429: OpenApiResponse(description="Rate limited"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = DiscountValidateRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        result = validate(data["code"], data["order_amount"])

        return Response(
            {
                "valid": result.valid,
                "code": result.discount_code.code if result.discount_code else data["code"].strip().upper(),
                "discount": result.discount_amount,
                "reason": result.reason,
                "message": result.message,
            },
            status=status.HTTP_200_OK,
        )


class DiscountCodeAdminViewSet(viewsets.ModelViewSet):
    serializer_class = DiscountCodeSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ["discount_type", "is_active"]

    def get_queryset(self):
        qs = DiscountCode.objects.all()
        active_only = (self.request.query_params.get("active_only") or "").lower()
        if active_only in ("1", "true", "yes"):
            qs = qs.filter(is_active=True)
        return qs

    @extend_schema(
        tags=["Admin"],
        parameters=[OpenApiParameter("active_only", bool, required=False)],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def perform_create(self, serializer):
        code = serializer.save()
        logger.info("Discount code created", extra={"code": code.code, "user_id": self.request.user.pk})

    def perform_destroy(self, instance):
        logger.info("Discount code deleted", extra={"code": instance.code, "user_id": self.request.user.pk})
        instance.delete()
