"""
Request-level middleware for the tracker backend.

CorrelationIdMiddleware tags every request with the correlation id used to
reconcile locally-originated mutations with their change-feed echoes.
QueryCountMiddleware reports database query counts in development.
"""

import logging
import re
import uuid

from django.conf import settings
from django.db import connection

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
_CORRELATION_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


class CorrelationIdMiddleware:
    """
    Attach ``request.correlation_id`` from the ``X-Correlation-ID`` header.

    Clients send their own id for optimistic mutations so that the matching
    change-feed events can be dropped on their side. A fresh id is generated
    when the header is missing or malformed; the effective id is always echoed
    back in the response header.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        raw_value = request.headers.get(CORRELATION_HEADER, "").strip()

        if raw_value and _CORRELATION_ID_RE.match(raw_value):
            request.correlation_id = raw_value
            request.correlation_id_generated = False
        else:
            if raw_value:
                logger.warning(
                    "Malformed correlation id replaced",
                    extra={
                        "request_path": request.path,
                        "provided_length": len(raw_value),
                        "action": "correlation_id_rejected",
                        "component": "CorrelationIdMiddleware",
                        "severity": "low",
                    },
                )
            request.correlation_id = uuid.uuid4().hex
            request.correlation_id_generated = True

        response = self.get_response(request)
        response[CORRELATION_HEADER] = request.correlation_id
        return response


class QueryCountMiddleware:
    """
    Log the number of database queries per request (DEBUG only).
    """

    thresholds = {"HIGH": 50, "MEDIUM": 25, "LOW": 10}

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not settings.DEBUG:
            return self.get_response(request)

        initial_queries = len(connection.queries)
        response = self.get_response(request)
        query_count = len(connection.queries) - initial_queries

        self._log_query_metrics(request, query_count)
        return response

    def _log_query_metrics(self, request, query_count):
        user = getattr(request, "user", None)
        extra_context = {
            "request_path": request.path,
            "request_method": request.method,
            "user_id": user.id if user is not None and user.is_authenticated else None,
            "query_count": query_count,
            "action": "query_count_monitoring",
            "component": "QueryCountMiddleware",
        }

        if query_count >= self.thresholds["HIGH"]:
            logger.warning(
                "High query count detected",
                extra={
                    **extra_context,
                    "severity": "high",
                    "threshold": self.thresholds["HIGH"],
                },
            )
        elif query_count >= self.thresholds["MEDIUM"]:
            logger.info(
                "Medium query count",
                extra={
                    **extra_context,
                    "severity": "medium",
                    "threshold": self.thresholds["MEDIUM"],
                },
            )
        elif query_count >= self.thresholds["LOW"]:
            logger.debug(
                "Normal query count",
                extra={
                    **extra_context,
                    "severity": "low",
                    "threshold": self.thresholds["LOW"],
                },
            )
