from django.contrib import admin
from django.urls import include, path

from ops.urls import metrics_patterns

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),
    path("_metrics/", include(metrics_patterns)),

    path("admin/", admin.site.urls),
    path("api/", include("accounts.urls")),
    path("api/accounting/", include("accounting.urls")),
    path("api/sales/", include("sales.urls")),
    path("api/purchases/", include("purchases.urls")),
    path("api/intercompany/", include("intercompany.urls")),
    path("api/reports/", include("reports.urls")),
    path("api/projections/", include("projections.urls")),
    path("api/events/", include("events.urls")),
]
