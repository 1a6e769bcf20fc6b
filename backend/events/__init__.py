# events/__init__.py
"""
Events app - event sourcing infrastructure.

This app provides:
- BusinessEvent: Immutable event records, one stream per company
- EventBookmark: Consumer progress tracking
- Emitter functions: emit_event, emit_event_no_actor
- Event type definitions with CANONICAL SCHEMAS (events/types.py)

Usage:
    from events.emitter import emit_event
    from events.types import EventTypes, PartyCreatedData

    emit_event(
        actor=actor,
        event_type=EventTypes.CUSTOMER_CREATED,
        aggregate_type="Customer",
        aggregate_id=str(public_id),
        data=PartyCreatedData(party_public_id=str(public_id), code="C001", name="Acme"),
        idempotency_key=f"customer.created:{public_id}",
    )

Payloads that do not match their schema raise InvalidEventPayload.
"""
