"""
Prometheus metrics endpoint.

Metrics exposed:
- ledgerbridge_events_total: Total events by type and company
- ledgerbridge_projection_lag: Projection consumer lag
- ledgerbridge_open_receivables / ledgerbridge_open_payables: Open document balances
- ledgerbridge_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.db.models import Count, Sum
from django.http import HttpResponse
from django.views import View
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

REQUEST_DURATION = Histogram(
    "ledgerbridge_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

_UUID_RE = re.compile(r"/[0-9a-f-]{36}/")
_ID_RE = re.compile(r"/\d+/")


def build_registry() -> CollectorRegistry:
    """
    Build a fresh registry with point-in-time gauges.

    Gauges are recomputed from the database on every scrape, so a new
    registry avoids stale label sets for deleted companies or consumers.
    """
    from events.models import BusinessEvent, EventBookmark
    from ops.health import bookmark_lag
    from sales.models import Invoice
    from purchases.models import Bill

    registry = CollectorRegistry()
    events_total = Gauge(
        "ledgerbridge_events_total",
        "Total number of events",
        ["event_type", "company_slug"],
        registry=registry,
    )
    projection_lag = Gauge(
        "ledgerbridge_projection_lag",
        "Number of events pending processing",
        ["consumer", "company_slug"],
        registry=registry,
    )
    open_receivables = Gauge(
        "ledgerbridge_open_receivables",
        "Balance due on open invoices",
        ["company_slug"],
        registry=registry,
    )
    open_payables = Gauge(
        "ledgerbridge_open_payables",
        "Balance due on open bills",
        ["company_slug"],
        registry=registry,
    )

    for row in BusinessEvent.objects.values("event_type", "company__slug").annotate(count=Count("id")):
        events_total.labels(
            event_type=row["event_type"],
            company_slug=row["company__slug"] or "unknown",
        ).set(row["count"])

    for bookmark in EventBookmark.objects.select_related("company", "last_event"):
        projection_lag.labels(
            consumer=bookmark.consumer_name,
            company_slug=bookmark.company.slug if bookmark.company else "global",
        ).set(bookmark_lag(bookmark))

    for model, gauge in ((Invoice, open_receivables), (Bill, open_payables)):
        rows = (
            model.objects.filter(status__in=model.OPEN_STATUSES)
            .values("company__slug")
            .annotate(total=Sum("balance_due"))
        )
        for row in rows:
            gauge.labels(company_slug=row["company__slug"]).set(float(row["total"] or 0))

    return registry


class MetricsView(View):
    """
    Prometheus metrics endpoint at /_metrics/.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        output = generate_latest(build_registry())
        # Process-wide histograms live in the default registry.
        from prometheus_client import REGISTRY
        output += generate_latest(REGISTRY)
        return HttpResponse(output, content_type=CONTENT_TYPE_LATEST)


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        status = 500
        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            endpoint = _UUID_RE.sub("/{uuid}/", _ID_RE.sub("/{id}/", request.path))
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint[:50],
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
