"""
Request logging middleware.
"""

import time
import uuid

import structlog

logger = structlog.get_logger("request")

QUIET_PATHS = ("/metrics", "/metrics/", "/health/")


class RequestLoggingMiddleware:
    """
    Logs one ``http_request`` event per request and tags every log line
    emitted while the request runs with its ``request_id``.

    The id is taken from an upstream ``X-Request-ID`` header when the
    gateway sets one, otherwise generated here, and echoed back on the
    response. Bodies are never logged because they carry patient notes.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex[:8]
        request.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)

        response["X-Request-ID"] = request_id

        if request.path in QUIET_PATHS:
            return response

        status_code = response.status_code
        if status_code >= 500:
            log_func = logger.error
        elif status_code >= 400:
            log_func = logger.warning
        else:
            log_func = logger.info

        # DRF stores the authenticated principal on the underlying request
        principal = getattr(request, "user", None)
        log_func(
            "http_request",
            method=request.method,
            path=request.path,
            status_code=status_code,
            duration_ms=duration_ms,
            principal_id=getattr(principal, "id", None),
            principal_role=getattr(principal, "role", None),
        )
        return response
