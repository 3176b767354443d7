"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure:
- health_check: liveness/readiness probe
- api_exception_handler: DRF hook rendering domain errors as JSON
"""

from __future__ import annotations

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django_redis.exceptions import ConnectionInterrupted
from redis.exceptions import RedisError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying a request rejected as busy
RETRY_AFTER_SECONDS = 1


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: Database reachable (cache is reported but not required)
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Workflow locks live in Redis; report it, but keep serving reads without it
    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except (RedisError, ConnectionInterrupted):
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    Render BaseApplicationError subclasses as ``{"error", "error_code", "details"}``.

    Installed as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Everything else is
    delegated to DRF's default handler (serializer errors, auth failures).
    Retryable errors carry a Retry-After header.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            "Request rejected",
            extra={
                "error_code": exc.error_code,
                "view": view.__class__.__name__ if view else None,
            },
        )
        response = Response(exc.to_dict(), status=exc.http_status)
        if exc.is_retryable:
            response["Retry-After"] = str(RETRY_AFTER_SECONDS)
        return response

    return exception_handler(exc, context)
