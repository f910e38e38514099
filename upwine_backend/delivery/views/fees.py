# delivery/views/fees.py

"""
- GET  /api/delivery/zones/   zone list, cheapest first
- POST /api/delivery/fee/     quote for {"zone": ...} or {"address": ...}
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.throttling import PublicPollThrottle, PublicWriteThrottle
from delivery.serializers import (
    DeliveryFeeRequestSerializer,
    DeliveryQuoteSerializer,
    DeliveryZoneSerializer,
)
from delivery.services.fees import fee_for_address, fee_for_zone, zones_by_fee


def quote_payload(quote) -> dict:
    return {
        "fee": quote.fee,
        "distance": quote.distance_km,
        "zone": quote.zone,
        "approximate": quote.approximate,
        "message": quote.message,
    }


class DeliveryZonesView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [PublicPollThrottle]

    @extend_schema(tags=["Public"], responses={200: DeliveryZoneSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        data = DeliveryZoneSerializer(zones_by_fee(), many=True).data
        return Response(data, status=status.HTTP_200_OK)


class DeliveryFeeView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Public"],
        request=DeliveryFeeRequestSerializer,
        responses={
            200: DeliveryQuoteSerializer,
            400: OpenApiResponse(description="Address or zone required"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = DeliveryFeeRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        if data["zone"]:
            quote = fee_for_zone(data["zone"])
        else:
            quote = fee_for_address(data["address"])

        return Response(quote_payload(quote), status=status.HTTP_200_OK)
