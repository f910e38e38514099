# payments/views/paystack.py

"""
PAYSTACK ENDPOINTS (public)

- POST /api/payments/initialize/   start a Paystack session for an online order
- POST /api/payments/verify/       storefront confirms after redirect
- GET  /api/payments/callback/     Paystack redirect target; reconciles, then
                                   sends the customer back to the storefront
- POST /api/payments/webhook/      Paystack server-to-server event
                                   (x-paystack-signature, HMAC-SHA512)

Verification failures, amount mismatches and unknown references all look the
same to the client: 400 "Payment could not be verified". Details go to logs.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode, urlparse

from django.conf import settings
from django.shortcuts import redirect
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.api_errors import error_response
from backend.throttling import PublicWriteThrottle, WebhookThrottle
from payments.serializers import (
    PaymentInitializeResponseSerializer,
    PaymentInitializeSerializer,
    PaymentVerifyResponseSerializer,
    PaymentVerifySerializer,
)
from payments.services.paystack import verify_paystack_signature
from payments.services.reconciliation import (
    SOURCE_CALLBACK,
    SOURCE_VERIFY,
    SOURCE_WEBHOOK,
    PaymentError,
    PaymentInitializationError,
    PaymentProviderError,
    PaymentReferenceNotFoundError,
    initialize_payment,
    reconcile,
)

logger = logging.getLogger(__name__)

NOT_VERIFIED_MESSAGE = "Payment could not be verified"


def _safe_frontend_base() -> str:
    base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").strip()
    if not base:
        base = "http://localhost:3000"

    parsed = urlparse(base)
    if not parsed.scheme or not parsed.netloc:
        logger.warning("Invalid FRONTEND_BASE_URL detected")
        return "http://localhost:3000"

    return base.rstrip("/")


def _not_verified():
    return error_response(
        code="PAYMENT_NOT_VERIFIED",
        message=NOT_VERIFIED_MESSAGE,
        http_status=status.HTTP_400_BAD_REQUEST,
    )


class PaymentInitializeView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Public"],
        request=PaymentInitializeSerializer,
        responses={
            200: PaymentInitializeResponseSerializer,
            400: OpenApiResponse(description="Order cannot be paid online"),
            404: OpenApiResponse(description="Order not found"),
            502: OpenApiResponse(description="Payment provider unavailable"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = PaymentInitializeSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            session = initialize_payment(data["order_number"], data.get("email") or "")
        except PaymentReferenceNotFoundError:
            return error_response(
                code="NOT_FOUND", message="Order not found", http_status=status.HTTP_404_NOT_FOUND
            )
        except PaymentProviderError:
            return error_response(
                code="PAYMENT_PROVIDER_ERROR",
                message="Could not start payment. Please try again.",
                http_status=status.HTTP_502_BAD_GATEWAY,
            )
        except PaymentInitializationError as exc:
            return error_response(
                code="PAYMENT_NOT_ALLOWED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "order_number": session.order.order_number,
                "reference": session.reference,
                "authorization_url": session.authorization_url,
                "amount": session.order.total_amount,
                "currency": "NGN",
            },
            status=status.HTTP_200_OK,
        )


class PaymentVerifyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Public"],
        request=PaymentVerifySerializer,
        responses={
            200: PaymentVerifyResponseSerializer,
            400: OpenApiResponse(description="Payment could not be verified"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = PaymentVerifySerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = reconcile(s.validated_data["reference"], SOURCE_VERIFY)
        except PaymentError:
            return _not_verified()

        order = result.order
        return Response(
            {
                "success": True,
                "already_paid": result.already_paid,
                "order_number": order.order_number,
                "payment_status": order.payment_status,
                "status": order.status,
            },
            status=status.HTTP_200_OK,
        )


class PaymentCallbackView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        tags=["Public"],
        parameters=[OpenApiParameter("reference", str, required=True)],
        responses={302: OpenApiResponse(description="Redirect to the storefront")},
    )
    def get(self, request, *args, **kwargs):
        reference = (
            request.query_params.get("reference") or request.query_params.get("trxref") or ""
        ).strip()
        frontend_base = _safe_frontend_base()

        if not reference:
            logger.warning("Callback without reference")
            return redirect(f"{frontend_base}/payment/failed")

        try:
            result = reconcile(reference, SOURCE_CALLBACK)
        except PaymentError:
            query = urlencode({"reference": reference})
            return redirect(f"{frontend_base}/payment/failed?{query}")

        query = urlencode({"order": result.order.order_number, "reference": reference})
        return redirect(f"{frontend_base}/payment/success?{query}")


class PaystackWebhookView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]
    throttle_classes = [WebhookThrottle]

    @extend_schema(
        tags=["Webhooks"],
        request=None,
        responses={
            200: OpenApiResponse(description="Event accepted"),
            400: OpenApiResponse(description="Invalid signature or unverifiable payment"),
        },
    )
    def post(self, request, *args, **kwargs):
        # read the raw body before request.data consumes the stream
        raw_body = request.body or b""
        signature = request.headers.get("x-paystack-signature")

        if not verify_paystack_signature(raw_body=raw_body, signature=signature):
            logger.warning(
                "Invalid Paystack signature",
                extra={"remote_addr": request.META.get("REMOTE_ADDR")},
            )
            return error_response(
                code="INVALID_SIGNATURE",
                message="Invalid signature",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        payload = request.data or {}
        event = str(payload.get("event") or "")
        data = payload.get("data") or {}

        if event != "charge.success":
            logger.info("Paystack webhook event ignored", extra={"event": event})
            return Response({"ok": True, "detail": "Ignored"}, status=status.HTTP_200_OK)

        reference = str(data.get("reference") or "").strip()
        if not reference:
            logger.warning("Webhook received without reference")
            return Response({"ok": True, "detail": "No reference"}, status=status.HTTP_200_OK)

        try:
            result = reconcile(reference, SOURCE_WEBHOOK)
        except PaymentError:
            return _not_verified()

        return Response(
            {
                "ok": True,
                "detail": "Already processed" if result.already_paid else "Processed",
            },
            status=status.HTTP_200_OK,
        )
