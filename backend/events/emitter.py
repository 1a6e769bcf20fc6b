# events/emitter.py
"""
The only way events enter the store.

emit_event() is used by commands running for an actor; emit_event_no_actor()
by bootstrap code (company creation) and system processes. Both validate
the payload against its schema in events/types.py, deduplicate on the
company-scoped idempotency key, and let BusinessEvent.save() allocate the
stream sequences.

An InvalidEventPayload means the command built the wrong payload; fix the
command rather than turning validation off.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from django.conf import settings
from django.db import IntegrityError, transaction

from events.models import BusinessEvent
from events.types import BaseEventData, validate_event_payload


logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

Payload = Union[Dict[str, Any], BaseEventData]


def _existing(company, idempotency_key: str) -> Optional[BusinessEvent]:
    return BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()


def _store(company, user, event_type, aggregate_type, aggregate_id, data: Payload, idempotency_key, **extra):
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()
    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    existing = _existing(company, idempotency_key)
    if existing:
        logger.debug("Idempotent replay of %s (%s)", event_type, idempotency_key)
        return existing

    extra = {key: value for key, value in extra.items() if value is not None}
    # A concurrent writer can take the same aggregate sequence or key.
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                return BusinessEvent.objects.create(
                    company=company,
                    caused_by_user=user,
                    event_type=event_type,
                    aggregate_type=aggregate_type,
                    aggregate_id=str(aggregate_id),
                    idempotency_key=idempotency_key,
                    data=data,
                    **extra,
                )
        except IntegrityError:
            existing = _existing(company, idempotency_key)
            if existing:
                return existing
            if attempt == MAX_ATTEMPTS:
                raise
            logger.info("Sequence collision on %s, retrying (%d)", aggregate_id, attempt)


def emit_event(
    actor=None,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Payload,
    idempotency_key: str,
    company=None,
    user=None,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
    caused_by_event: Optional[BusinessEvent] = None,
    origin: str = BusinessEvent.EventOrigin.HUMAN,
) -> BusinessEvent:
    """
    Emit an event on behalf of ``actor`` (or an explicit company and user).

        emit_event(
            actor=actor,
            event_type=EventTypes.INVOICE_ISSUED,
            aggregate_type="Invoice",
            aggregate_id=str(invoice.public_id),
            idempotency_key=f"invoice.issued:{invoice.public_id}",
            data=TradeDocumentPostedData(...),
        )
    """
    if actor is not None:
        company, user = actor.company, actor.user
    elif company is None:
        raise TypeError("emit_event() requires an actor or a company")

    return _store(
        company, user, event_type, aggregate_type, aggregate_id, data, idempotency_key,
        occurred_at=occurred_at,
        metadata=metadata,
        caused_by_event=caused_by_event,
        origin=origin,
    )


def emit_event_no_actor(
    company,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Payload,
    *,
    idempotency_key: str,
    user=None,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
    caused_by_event: Optional[BusinessEvent] = None,
    origin: str = BusinessEvent.EventOrigin.SYSTEM,
) -> BusinessEvent:
    """Emit without an actor: company bootstrap and system processes."""
    return _store(
        company, user, event_type, aggregate_type, aggregate_id, data, idempotency_key,
        occurred_at=occurred_at,
        metadata=metadata,
        caused_by_event=caused_by_event,
        origin=origin,
    )


def get_aggregate_events(company, aggregate_type: str, aggregate_id: Any) -> list[BusinessEvent]:
    """One aggregate's stream, in its own sequence order."""
    return list(
        BusinessEvent.objects.filter(
            company=company,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
        ).order_by("sequence")
    )
