"""
DRF exception handler that renders every API error in one envelope:
``{"success": false, "error": str, "code": str, ...}``.
"""

import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from order_fulfillment.exceptions import BusinessException

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if message:
                return message if key == "non_field_errors" else f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, BusinessException):
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "success": False,
            "error": "Validation failed",
            "message": _first_message(exc.detail),
            "code": "VALIDATION_ERROR",
            "details": exc.detail,
        }
    else:
        detail = response.data.get("detail", response.data) if isinstance(response.data, dict) else response.data
        response.data = {
            "success": False,
            "error": _first_message(detail),
            "code": str(getattr(detail, "code", None) or "error").upper(),
        }

    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"API error in {context.get('view').__class__.__name__}: {exc}")
    return response
