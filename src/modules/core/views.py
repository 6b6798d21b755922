import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.principal import Principal

logger = structlog.get_logger(__name__)

HEALTH_CACHE_KEY = "_storefront_health_check"


def _probe_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _probe_cache() -> None:
    cache.set(HEALTH_CACHE_KEY, "ok", 10)
    if cache.get(HEALTH_CACHE_KEY) != "ok":
        raise ConnectionError("Cache read failed")


def _timed(probe: Callable[[], None], name: str) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        probe()
    except Exception as exc:  # noqa: BLE001
        logger.error("health_check.probe_failed", service=name, error=str(exc))
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """Public liveness probe for the database and the cache."""
    services = {
        "database": _timed(_probe_database, "database"),
        "cache": _timed(_probe_cache, "cache"),
    }
    healthy = all(service["status"] == "up" for service in services.values())
    status_label = "healthy" if healthy else "unhealthy"

    logger.info("health_check.completed", status=status_label)

    return JsonResponse(
        {
            "status": status_label,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )


class ProtectedView(APIView):
    """Return the authenticated principal.

    Used to verify that Fail-Closed auth works:
    * No token  -> 401
    * Bad token -> 401
    * Valid JWT -> 200 with the caller's id and role
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        principal = Principal.from_user(request.user)
        return Response(
            {
                "message": "authenticated",
                "user": str(request.user),
                "user_id": principal.user_id,
                "role": principal.role,
            }
        )
