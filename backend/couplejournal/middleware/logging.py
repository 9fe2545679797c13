"""
CoupleJournal Backend - Request Logging Middleware
====================================================

What:  One access-log line per request: method, path, status, duration.
How:   Wraps call_next with a perf_counter timer; the log level follows the
       status class (5xx ERROR, 4xx WARNING, otherwise INFO).
Who:   Applied to every request, inside RequestIDMiddleware so the id is
       available.

Privacy:
    Bodies and headers are never logged. They carry passwords, bearer
    tokens and private journal content.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from couplejournal.config import settings
from couplejournal.middleware.request_id import request_id_var

logger = logging.getLogger("couplejournal.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access logging for the API.

    Health probes are not logged. Static media downloads are logged at
    DEBUG since the feed fetches every image on each refresh.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if path.startswith(settings.upload_url_prefix + "/") and status < 400:
            log_level = logging.DEBUG
        elif status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
