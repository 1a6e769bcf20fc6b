# projections/base.py
"""
Base classes for projections.

A projection is an event consumer that builds materialized views.
Projections:
- Declare which event types they consume
- Process events idempotently (same event twice = same result)
- Track their progress via EventBookmark (one per projection and company)
- Can be rebuilt from scratch by replaying all events
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from django.db import transaction

from accounts.models import Company
from events.models import BusinessEvent, EventBookmark
from projections.models import ProjectionAppliedEvent
from projections.notifications import notify_projection_update
from projections.write_barrier import projection_writes_allowed


logger = logging.getLogger(__name__)


class BaseProjection(ABC):
    """
    Base class for all projections.

    Subclasses must implement:
    - name: Unique identifier for this projection
    - consumes: List of event types this projection handles
    - handle(event): Process a single event

    Optional overrides:
    - _clear_projected_data(company): called by rebuild()
    - on_error(event, error)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this projection (used in bookmarks)."""

    @property
    @abstractmethod
    def consumes(self) -> List[str]:
        """Event types this projection handles."""

    @abstractmethod
    def handle(self, event: BusinessEvent) -> None:
        """
        Process a single event.

        MUST be idempotent. Any exception is recorded on the bookmark and
        stops processing for this company until the projection is retried.
        """

    def rebuild(self, company: Company) -> int:
        """
        Rebuild this projection from scratch for a company.

        Resets the bookmark, clears projected rows and applied-event
        markers, then replays every consumed event.

        Returns:
            Number of events processed
        """
        bookmark, _ = EventBookmark.objects.get_or_create(
            consumer_name=self.name,
            company=company,
        )
        bookmark.last_event = None
        bookmark.last_processed_at = None
        bookmark.error_count = 0
        bookmark.last_error = ""
        bookmark.save()

        with projection_writes_allowed():
            self._clear_projected_data(company)
            ProjectionAppliedEvent.objects.filter(
                company=company,
                projection_name=self.name,
            ).delete()

        total = 0
        while True:
            processed = self.process_pending(company)
            total += processed
            if processed == 0:
                break
        return total

    def _clear_projected_data(self, company: Company) -> None:
        """Clear all projected data for rebuild."""

    def process_pending(
        self,
        company: Company,
        limit: int = 1000,
        stop_on_error: bool = True,
    ) -> int:
        """
        Process pending events for this projection and company.

        Each event is applied in its own savepoint together with its
        ProjectionAppliedEvent marker, so a failing event leaves no
        partial rows behind.

        Returns:
            Number of events successfully processed
        """
        bookmark, _ = EventBookmark.objects.get_or_create(
            consumer_name=self.name,
            company=company,
        )

        if bookmark.is_paused:
            logger.info("Projection %s is paused for %s", self.name, company.name)
            return 0

        events = list(bookmark.get_unprocessed_events(
            event_types=self.consumes,
            limit=limit,
        ))

        processed = 0

        for event in events:
            try:
                with transaction.atomic():
                    with projection_writes_allowed():
                        _, created = ProjectionAppliedEvent.objects.get_or_create(
                            company=company,
                            projection_name=self.name,
                            event=event,
                        )
                        if created:
                            self.handle(event)
                        bookmark.mark_processed(event)
                        processed += 1

            except Exception as e:
                logger.exception(
                    "Error processing event %s (%s) in %s", event.id, event.event_type, self.name
                )
                bookmark.mark_error(str(e))
                self.on_error(event, e)

                if stop_on_error:
                    break

        if processed > 0:
            logger.info(
                "Projection %s processed %s events for %s", self.name, processed, company.name
            )
            notify_projection_update(company, self.name, processed)

        return processed

    def on_error(self, event: BusinessEvent, error: Exception) -> None:
        """Hook for custom error handling (alerting, dead letter queue)."""

    def get_bookmark(self, company: Company) -> Optional[EventBookmark]:
        try:
            return EventBookmark.objects.get(
                consumer_name=self.name,
                company=company,
            )
        except EventBookmark.DoesNotExist:
            return None

    def get_lag(self, company: Company) -> int:
        """Number of consumed events not yet processed for this company."""
        bookmark = self.get_bookmark(company)
        if not bookmark:
            return BusinessEvent.objects.filter(
                company=company,
                event_type__in=self.consumes,
            ).count()

        return bookmark.get_unprocessed_events(
            event_types=self.consumes,
            limit=10000,
        ).count()


class ProjectionRegistry:
    """
    Registry of all projections, in registration (= processing) order.

    Usage:
        projection_registry.register(AccountBalanceProjection())
        for projection in projection_registry.all():
            projection.process_pending(company)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._projections = {}
        return cls._instance

    def register(self, projection: BaseProjection) -> None:
        self._projections[projection.name] = projection

    def get(self, name: str) -> Optional[BaseProjection]:
        return self._projections.get(name)

    def all(self) -> List[BaseProjection]:
        return list(self._projections.values())

    def names(self) -> List[str]:
        return list(self._projections.keys())


projection_registry = ProjectionRegistry()
