"""
Unified exception handler
=========================
Registered as DRF's EXCEPTION_HANDLER. Every exception a view does not
handle ends up here and is rendered in the BaseAppException shape.

Never exposes stack traces or PHI to clients.
"""

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import BaseAppException

logger = structlog.get_logger(__name__)

DRF_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ("VALIDATION_ERROR", "Input validation failed"),
    status.HTTP_401_UNAUTHORIZED: ("NOT_AUTHENTICATED", "Authentication credentials were not provided"),
    status.HTTP_403_FORBIDDEN: ("PERMISSION_DENIED", "You do not have permission to perform this action"),
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", "Resource not found"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", "Method not allowed"),
}


def flatten_errors(data, prefix=""):
    """
    DRF error payloads come as dict, list or str, nested for nested
    serializers:
        {"pain_before": ["Ensure this value is less than or equal to 10."]}
        {"postures": [{}, {"duration": ["A valid integer is required."]}]}
        ["Some error"]
    Flatten them into a list of "path: message" strings. List items are
    numbered from 1.
    """
    if isinstance(data, dict):
        detail = []
        for field, messages in data.items():
            if field == api_settings.NON_FIELD_ERRORS_KEY:
                path = prefix
            else:
                path = f"{prefix}.{field}" if prefix else str(field)
            detail.extend(flatten_errors(messages, path))
        return detail
    if isinstance(data, list):
        if any(isinstance(item, (dict, list)) for item in data):
            detail = []
            for index, item in enumerate(data, start=1):
                detail.extend(flatten_errors(item, f"{prefix}[{index}]"))
            return detail
        return [f"{prefix}: {item}" if prefix else str(item) for item in data]
    return [f"{prefix}: {data}" if prefix else str(data)]


def unified_exception_handler(exc, context):
    request = context.get("request")
    view = context.get("view")

    log_context = {
        "path": request.path if request else "unknown",
        "method": request.method if request else "unknown",
        "view": view.__class__.__name__ if view else "unknown",
    }

    # Case 1: our own exceptions
    if isinstance(exc, BaseAppException):
        logger.info(
            "app_exception",
            code=exc.code,
            http_status=exc.http_status,
            **log_context,
        )
        return Response(exc.to_dict(), status=exc.http_status)

    # Case 2: DRF exceptions (serializer validation, auth, 404 ...)
    response = drf_exception_handler(exc, context)

    if response is not None:
        code, message = DRF_STATUS_CODES.get(
            response.status_code, ("ERROR", "Request failed")
        )
        logger.warning(
            "api_exception",
            exception=exc.__class__.__name__,
            status_code=response.status_code,
            **log_context,
        )
        return Response(
            {
                "type": "error",
                "code": code,
                "message": message,
                "detail": flatten_errors(response.data),
            },
            status=response.status_code,
            headers={k: v for k, v in response.items()},
        )

    # Case 3: unknown failure, never leak internals
    logger.exception("unexpected_error", **log_context)

    return Response(
        {
            "type": "error",
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "detail": [],
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
