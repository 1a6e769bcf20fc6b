# events/models.py
"""
Event store models.

BusinessEvent rows are the source of truth; every read model can be
rebuilt from them. Rows are write-once: save() refuses updates and
delete() always raises.

Each company has its own stream ordered by company_sequence, and each
aggregate within it is ordered by sequence. Intercompany commands write
to both companies' streams inside one database transaction.

EventBookmark records how far a consumer (projection) has read a stream.
"""

import uuid

from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import Company


class CompanyEventCounter(models.Model):
    """Last company_sequence handed out for a company's stream."""

    company = models.OneToOneField(Company, on_delete=models.CASCADE, related_name="event_counter")
    last_sequence = models.BigIntegerField(default=0)

    def __str__(self):
        return f"{self.company_id}: {self.last_sequence}"

    @classmethod
    def next_for(cls, company) -> int:
        try:
            counter, _ = cls.objects.select_for_update().get_or_create(company=company)
        except IntegrityError:
            counter = cls.objects.select_for_update().get(company=company)
        counter.last_sequence = F("last_sequence") + 1
        counter.save(update_fields=["last_sequence"])
        counter.refresh_from_db(fields=["last_sequence"])
        return counter.last_sequence


class BusinessEvent(models.Model):

    class EventOrigin(models.TextChoices):
        HUMAN = "human", "Human (UI)"
        API = "api", "API client"
        SYSTEM = "system", "System process"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="events")

    event_type = models.CharField(max_length=100, db_index=True)
    aggregate_type = models.CharField(max_length=50, db_index=True)
    aggregate_id = models.CharField(max_length=64, db_index=True)

    # Unique per company; retries of the same command land on the same row.
    idempotency_key = models.CharField(max_length=255, db_index=True, editable=False)

    sequence = models.PositiveIntegerField(default=0, editable=False)
    company_sequence = models.BigIntegerField(db_index=True, editable=False)

    data = models.JSONField(default=dict)
    metadata = models.JSONField(default=dict, blank=True)

    caused_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="caused_events",
    )
    caused_by_event = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="child_events",
    )
    origin = models.CharField(
        max_length=20,
        choices=EventOrigin.choices,
        default=EventOrigin.HUMAN,
        db_index=True,
    )

    recorded_at = models.DateTimeField(auto_now_add=True, db_index=True)
    occurred_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["company_id", "company_sequence"]
        indexes = [
            models.Index(
                fields=["company", "aggregate_type", "aggregate_id", "sequence"],
                name="idx_event_aggregate_seq",
            ),
            models.Index(fields=["company", "event_type", "occurred_at"], name="idx_event_type_occurred"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "aggregate_type", "aggregate_id", "sequence"],
                name="uniq_event_company_aggregate_sequence",
            ),
            models.UniqueConstraint(
                fields=["company", "idempotency_key"],
                name="uniq_event_company_idempotency_key",
            ),
            models.UniqueConstraint(
                fields=["company", "company_sequence"],
                name="uniq_event_company_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.event_type} [{self.aggregate_type}#{self.aggregate_id}] #{self.company_sequence}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Events are immutable and cannot be modified.")
        if not (self.idempotency_key or "").strip():
            raise ValueError("idempotency_key is required")

        with transaction.atomic():
            self.company_sequence = CompanyEventCounter.next_for(self.company)
            if not self.sequence:
                last = (
                    BusinessEvent.objects.filter(
                        company=self.company,
                        aggregate_type=self.aggregate_type,
                        aggregate_id=self.aggregate_id,
                    )
                    .order_by("-sequence")
                    .values_list("sequence", flat=True)
                    .first()
                )
                self.sequence = (last or 0) + 1
            super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Events are immutable and cannot be deleted.")


class EventBookmark(models.Model):
    """A consumer's read position in one company's stream."""

    consumer_name = models.CharField(max_length=100)
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="event_bookmarks",
    )
    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    last_processed_at = models.DateTimeField(null=True, blank=True)

    is_paused = models.BooleanField(default=False)
    # Consecutive failures; reset by the next successful event.
    error_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["consumer_name", "company"],
                name="uniq_bookmark_consumer_company",
            ),
        ]

    def __str__(self):
        return f"{self.consumer_name} @ {self.company.name if self.company else 'GLOBAL'}"

    def mark_processed(self, event: BusinessEvent):
        self.last_event = event
        self.last_processed_at = timezone.now()
        self.error_count = 0
        self.last_error = ""
        self.save(update_fields=["last_event", "last_processed_at", "error_count", "last_error", "updated_at"])

    def mark_error(self, error_message: str):
        self.error_count += 1
        self.last_error = error_message[:1000]
        self.save(update_fields=["error_count", "last_error", "updated_at"])

    def get_unprocessed_events(self, event_types: list = None, limit: int = 100):
        """Events after the bookmark in company_sequence order."""
        qs = BusinessEvent.objects.all()
        if self.company:
            qs = qs.filter(company=self.company)
        if event_types:
            qs = qs.filter(event_type__in=event_types)
        if self.last_event:
            qs = qs.filter(company_sequence__gt=self.last_event.company_sequence)
        return qs.order_by("company_sequence")[:limit]
