# projections/tasks.py
"""
Celery tasks for projection processing.

With PROJECTIONS_SYNC off, commands only append events; these tasks bring
the read models up to date.

Tasks:
- process_company_projections: process pending events for one company
- process_all_projections: the same for every active company (beat schedule)
- rebuild_projection: rebuild one projection for one company from scratch
- check_projection_health: report lag against PROJECTION_LAG_THRESHOLD

Usage:
    from projections.tasks import process_company_projections
    process_company_projections.delay(company_id=company.id)
"""

import logging
from typing import Optional

from celery import shared_task
from django.conf import settings


logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def process_company_projections(
    self,
    company_id: int,
    projection_names: Optional[list] = None,
    limit: int = 1000,
) -> dict:
    """
    Process pending events for a company, in registry order.

    Returns:
        {"company_id", "total_processed", "projections": {name: {...}}}
    """
    from accounts.models import Company
    from projections.base import projection_registry

    company = Company.objects.filter(id=company_id).first()
    if company is None:
        logger.error("Company %s not found", company_id)
        return {"error": f"Company {company_id} not found"}

    projections = projection_registry.all()
    if projection_names:
        projections = [p for p in projections if p.name in projection_names]

    results = {}
    total_processed = 0
    for projection in projections:
        processed = projection.process_pending(company, limit=limit)
        bookmark = projection.get_bookmark(company)
        if bookmark and bookmark.error_count:
            results[projection.name] = {
                "processed": processed,
                "status": "error",
                "error": bookmark.last_error,
            }
        else:
            results[projection.name] = {"processed": processed, "status": "success"}
        total_processed += processed

    logger.info("Processed %s events for company %s", total_processed, company_id)
    return {
        "company_id": company_id,
        "total_processed": total_processed,
        "projections": results,
    }


@shared_task(bind=True)
def process_all_projections(self, limit: int = 1000) -> dict:
    """Process pending events for every active company."""
    from accounts.models import Company

    results = {}
    total_processed = 0
    companies = list(Company.objects.filter(is_active=True))
    for company in companies:
        result = process_company_projections(company_id=company.id, limit=limit)
        results[company.slug] = result
        total_processed += result.get("total_processed", 0)

    logger.info("Processed %s events across %s companies", total_processed, len(companies))
    return {
        "companies_processed": len(companies),
        "total_events_processed": total_processed,
        "results": results,
    }


@shared_task(bind=True, max_retries=1, time_limit=3600)
def rebuild_projection(self, company_id: int, projection_name: str) -> dict:
    """
    Clear a projection's rows for a company and replay its events.
    """
    from accounts.models import Company
    from projections.base import projection_registry

    company = Company.objects.filter(id=company_id).first()
    if company is None:
        return {"error": f"Company {company_id} not found"}

    projection = projection_registry.get(projection_name)
    if projection is None:
        return {"error": f"Projection {projection_name} not found"}

    processed = projection.rebuild(company)
    logger.info("Rebuilt %s for %s: %s events", projection_name, company.slug, processed)
    return {
        "company_id": company_id,
        "projection": projection_name,
        "events_processed": processed,
        "status": "success",
    }


@shared_task(bind=True)
def check_projection_health(self) -> dict:
    """
    Lag per company and projection; unhealthy once total lag reaches
    PROJECTION_LAG_THRESHOLD or any bookmark carries an error.
    """
    from accounts.models import Company
    from projections.base import projection_registry

    threshold = getattr(settings, "PROJECTION_LAG_THRESHOLD", 1000)
    report = {
        "healthy": True,
        "total_lag": 0,
        "threshold": threshold,
        "companies_with_lag": [],
        "errors": [],
    }

    for company in Company.objects.filter(is_active=True):
        company_lag = 0
        lagging = []
        for projection in projection_registry.all():
            lag = projection.get_lag(company)
            company_lag += lag
            if lag > 0:
                lagging.append({"projection": projection.name, "lag": lag})
            bookmark = projection.get_bookmark(company)
            if bookmark and bookmark.error_count:
                report["errors"].append({
                    "company": company.slug,
                    "projection": projection.name,
                    "error": bookmark.last_error,
                })

        if company_lag > 0:
            report["companies_with_lag"].append({
                "company": company.slug,
                "total_lag": company_lag,
                "projections": lagging,
            })
        report["total_lag"] += company_lag

    if report["total_lag"] >= threshold or report["errors"]:
        report["healthy"] = False
        logger.warning(
            "Projections unhealthy: lag %s (threshold %s), %s errors",
            report["total_lag"], threshold, len(report["errors"]),
        )
    return report
