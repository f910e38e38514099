# orders/views/invoices.py

"""
INVOICE ENDPOINTS

Public:
- GET /api/invoices/<invoice_number>/   customer-facing invoice page

Admin:
- /api/admin/invoices/                  CRUD
- POST /api/admin/invoices/<id>/send/   WhatsApp the invoice link
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.api_errors import error_response
from backend.throttling import PublicPollThrottle
from orders.models import Invoice
from orders.serializers import InvoiceSerializer, PublicInvoiceSerializer
from orders.services.invoices import (
    InvoiceError,
    create_invoice,
    send_invoice,
    set_invoice_status,
    update_invoice,
)

logger = logging.getLogger(__name__)


def _invoice_error(exc: InvoiceError):
    return error_response(
        code="INVALID_INVOICE",
        message=exc.message,
        field=exc.field,
        http_status=status.HTTP_400_BAD_REQUEST,
    )


class PublicInvoiceView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicPollThrottle]

    @extend_schema(
        tags=["Public"],
        responses={
            200: PublicInvoiceSerializer,
            404: OpenApiResponse(description="Invoice not found"),
        },
    )
    def get(self, request, invoice_number: str, *args, **kwargs):
        invoice = Invoice.objects.filter(invoice_number__iexact=(invoice_number or "").strip()).first()
        if invoice is None:
            return error_response(
                code="NOT_FOUND", message="Invoice not found", http_status=status.HTTP_404_NOT_FOUND
            )
        return Response(PublicInvoiceSerializer(invoice).data, status=status.HTTP_200_OK)


class AdminInvoiceViewSet(viewsets.ModelViewSet):
    """
    Writes go through orders.services.invoices so totals and the
    editable-state rule are enforced in one place.
    """

    serializer_class = InvoiceSerializer
    permission_classes = [IsAdminUser]
    parser_classes = [JSONParser]
    filterset_fields = ["status"]
    queryset = Invoice.objects.all().order_by("-created_at")

    @extend_schema(tags=["Admin"], request=InvoiceSerializer, responses={201: InvoiceSerializer})
    def create(self, request, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            invoice = create_invoice(dict(s.validated_data))
        except InvoiceError as exc:
            return _invoice_error(exc)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Admin"], request=InvoiceSerializer, responses={200: InvoiceSerializer})
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        invoice = self.get_object()
        s = self.get_serializer(invoice, data=request.data, partial=partial)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        new_status = data.pop("status", None)

        try:
            if data:
                invoice = update_invoice(invoice.pk, data)
            if new_status:
                invoice = set_invoice_status(invoice.pk, new_status)
        except InvoiceError as exc:
            return _invoice_error(exc)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_200_OK)

    def perform_destroy(self, instance):
        logger.info(
            "Invoice deleted",
            extra={"invoice_number": instance.invoice_number, "user_id": self.request.user.pk},
        )
        instance.delete()

    @extend_schema(
        tags=["Admin"],
        request=None,
        responses={
            200: InvoiceSerializer,
            400: OpenApiResponse(description="Invoice is paid or cancelled"),
        },
    )
    @action(detail=True, methods=["post"])
    def send(self, request, *args, **kwargs):
        invoice = self.get_object()
        try:
            invoice = send_invoice(invoice.pk)
        except InvoiceError as exc:
            return _invoice_error(exc)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_200_OK)
