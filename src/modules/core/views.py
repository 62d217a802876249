import time
from typing import Any, Callable, Dict, Tuple, Type

import structlog
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger()

HEALTH_CACHE_KEY = "_health_check"


def _ping_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _ping_cache() -> None:
    cache.set(HEALTH_CACHE_KEY, "ok", 10)
    if cache.get(HEALTH_CACHE_KEY) != "ok":
        raise ConnectionError("Cache read failed")


# name -> (check, exceptions meaning "down")
SERVICE_CHECKS: Dict[str, Tuple[Callable[[], None], Tuple[Type[BaseException], ...]]] = {
    "database": (_ping_database, (DatabaseError,)),
    # redis-py and django-redis raise their own connection errors
    "cache": (_ping_cache, (Exception,)),
}


def _check_service(name: str) -> Dict[str, Any]:
    check, failures = SERVICE_CHECKS[name]
    started = time.monotonic()
    try:
        check()
    except failures:
        logger.error("health_check.service_down", service=name, exc_info=True)
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - started) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """GET /health: database and cache reachability, 503 when either is down."""
    services = {name: _check_service(name) for name in SERVICE_CHECKS}
    healthy = all(service["status"] == "up" for service in services.values())
    logger.info("health_check.completed", status="healthy" if healthy else "unhealthy")

    return JsonResponse(
        {
            "success": healthy,
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )
