"""
Health check endpoints for operations monitoring.

Checks:
- Database connectivity (all configured databases)
- Redis (Celery broker / channel layer) connectivity
- Projection lag per consumer
- Subledger reconciliation (AR/AP control accounts vs open documents)

Endpoints:
- /_health/live    - liveness check (is the process running?)
- /_health/ready   - readiness check (can we serve traffic?)
- /_health/full    - full health report (for debugging/dashboards)
"""
import logging
import time
from typing import Dict, Any

import redis
from django.conf import settings
from django.db import connections, DatabaseError
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


def bookmark_lag(bookmark) -> int:
    """Events in the bookmark's company stream it has not consumed yet."""
    from events.models import BusinessEvent

    qs = BusinessEvent.objects.filter(company=bookmark.company)
    if bookmark.last_event_id:
        qs = qs.filter(company_sequence__gt=bookmark.last_event.company_sequence)
    return qs.count()


class HealthCheck:

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        start = time.time()
        try:
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return {
                "status": "healthy",
                "alias": alias,
                "duration_ms": round((time.time() - start) * 1000, 2),
            }
        except DatabaseError as e:
            return {
                "status": "unhealthy",
                "alias": alias,
                "error": str(e),
                "duration_ms": round((time.time() - start) * 1000, 2),
            }

    @staticmethod
    def check_all_databases() -> Dict[str, Any]:
        results = {alias: HealthCheck.check_database(alias) for alias in settings.DATABASES}
        all_healthy = all(r["status"] == "healthy" for r in results.values())
        return {
            "status": "healthy" if all_healthy else "degraded",
            "databases": results,
        }

    @staticmethod
    def check_redis() -> Dict[str, Any]:
        redis_url = getattr(settings, "REDIS_URL", None)
        if not redis_url or getattr(settings, "TESTING", False):
            return {"status": "skipped", "reason": "Redis not configured"}

        start = time.time()
        try:
            redis.from_url(redis_url).ping()
            return {"status": "healthy", "duration_ms": round((time.time() - start) * 1000, 2)}
        except redis.RedisError as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "duration_ms": round((time.time() - start) * 1000, 2),
            }

    @staticmethod
    def check_projection_lag() -> Dict[str, Any]:
        from events.models import EventBookmark

        total_lag = 0
        consumers = []
        for bookmark in EventBookmark.objects.select_related("company", "last_event"):
            lag = bookmark_lag(bookmark)
            total_lag += lag
            if lag > 0 or bookmark.error_count > 0:
                consumers.append({
                    "consumer": bookmark.consumer_name,
                    "company": bookmark.company.slug if bookmark.company else None,
                    "lag": lag,
                    "errors": bookmark.error_count,
                    "paused": bookmark.is_paused,
                })

        lag_threshold = getattr(settings, "PROJECTION_LAG_THRESHOLD", 1000)
        return {
            "status": "healthy" if total_lag < lag_threshold else "degraded",
            "total_lag": total_lag,
            "threshold": lag_threshold,
            "consumers_with_lag": consumers[:10],
        }

    @staticmethod
    def check_subledgers() -> Dict[str, Any]:
        from accounts.models import Company
        from reports.queries import subledger_reconciliation

        out_of_balance = []
        for company in Company.objects.filter(is_active=True):
            for row in subledger_reconciliation(company)["accounts"]:
                if not row["is_reconciled"]:
                    out_of_balance.append({
                        "company": company.slug,
                        "role": row["role"],
                        "difference": str(row["difference"]),
                    })

        return {
            "status": "healthy" if not out_of_balance else "degraded",
            "out_of_balance": out_of_balance[:10],
        }

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "redis": HealthCheck.check_redis(),
            "projection_lag": HealthCheck.check_projection_lag(),
            "subledgers": HealthCheck.check_subledgers(),
        }

        statuses = [c.get("status", "unknown") for c in checks.values()]
        if all(s in ("healthy", "skipped") for s in statuses):
            overall = "healthy"
        elif any(s == "unhealthy" for s in statuses):
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "production" if not settings.DEBUG else "development",
        }


class LivenessView(View):
    """Returns 200 if the process is running. No external dependencies."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Returns 200 if the default database answers."""

    def get(self, request):
        db_check = HealthCheck.check_database("default")
        if db_check["status"] == "healthy":
            return JsonResponse({"status": "ready", "database": db_check})
        return JsonResponse({"status": "not_ready", "database": db_check}, status=503)


class FullHealthView(View):
    """Full health report. Protect at network level in production."""

    def get(self, request):
        health = HealthCheck.get_full_health()
        status_code = 200 if health["status"] == "healthy" else 503
        return JsonResponse(health, status=status_code)
