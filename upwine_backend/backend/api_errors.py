# backend/api_errors.py

from rest_framework.response import Response


def error_response(*, code: str, message: str, http_status: int, field: str | None = None):
    """
    Canonical API error response.
    """
    body = {"code": code, "message": message}
    if field:
        body["field"] = field
    return Response({"error": body}, status=http_status)
