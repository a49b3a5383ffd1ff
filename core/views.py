import time

from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.db.utils import OperationalError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView


def _database_ok():
    try:
        connections["default"].cursor()
    except OperationalError:
        return False
    return True


def _cache_ok():
    # Throttle counters live in the cache.
    cache.set("health:ping", "pong", 5)
    return cache.get("health:ping") == "pong"


class HealthCheckView(APIView):
    """
    GET /api/health/

    Uptime check. Answers 503 when the database is unreachable.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    def get(self, request):
        started = time.monotonic()
        checks = {"db": _database_ok(), "cache": _cache_ok()}
        healthy = checks["db"]

        return Response(
            {
                "status": "ok" if healthy else "degraded",
                **checks,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
