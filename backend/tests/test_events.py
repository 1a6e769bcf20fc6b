# tests/test_events.py
"""
Tests for the events module.

Tests cover:
- Event immutability
- Idempotency key handling
- Company stream and aggregate sequencing
- Payload validation
- Bookmarks
"""

import pytest
from uuid import uuid4

from events.emitter import emit_event, emit_event_no_actor, get_aggregate_events
from events.models import BusinessEvent, EventBookmark
from events.types import (
    AccountCreatedData,
    EventTypes,
    IntercompanyTransactionCancelledData,
    InvalidEventPayload,
    JournalLineData,
    validate_event_payload,
)


def _account_data(code="9100", **overrides):
    data = AccountCreatedData(
        account_public_id=str(uuid4()),
        code=code,
        name="Suspense",
        account_type="ASSET",
        normal_balance="DEBIT",
        is_header=False,
    ).to_dict()
    data.update(overrides)
    return data


@pytest.fixture
def account_created_event(company, owner):
    data = _account_data()
    return emit_event_no_actor(
        company=company,
        user=owner,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=data["account_public_id"],
        idempotency_key=f"test.account.created:{data['account_public_id']}",
        data=data,
    )


# =============================================================================
# Immutability
# =============================================================================

class TestEventImmutability:

    def test_cannot_modify_existing_event(self, account_created_event):
        account_created_event.data["code"] = "MODIFIED"

        with pytest.raises(ValueError, match="immutable"):
            account_created_event.save()

    def test_cannot_delete_event(self, account_created_event):
        with pytest.raises(ValueError, match="immutable"):
            account_created_event.delete()

    def test_event_requires_idempotency_key(self, company):
        with pytest.raises(ValueError, match="idempotency_key"):
            emit_event_no_actor(
                company=company,
                event_type=EventTypes.ACCOUNT_CREATED,
                aggregate_type="Account",
                aggregate_id=str(uuid4()),
                idempotency_key="  ",
                data=_account_data(),
            )


# =============================================================================
# Idempotency
# =============================================================================

class TestIdempotency:

    def test_same_key_returns_existing_event(self, actor):
        data = _account_data()
        kwargs = dict(
            actor=actor,
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=data["account_public_id"],
            idempotency_key="account.created:replayed",
            data=data,
        )

        first = emit_event(**kwargs)
        second = emit_event(**kwargs)

        assert first.id == second.id
        assert BusinessEvent.objects.filter(
            company=actor.company, idempotency_key="account.created:replayed"
        ).count() == 1

    def test_keys_are_scoped_per_company(self, company, second_company):
        events = [
            emit_event_no_actor(
                company=target,
                event_type=EventTypes.ACCOUNT_CREATED,
                aggregate_type="Account",
                aggregate_id=str(uuid4()),
                idempotency_key="shared-key",
                data=_account_data(),
            )
            for target in (company, second_company)
        ]
        assert events[0].id != events[1].id

    def test_replayed_issue_posts_once(self, actor, customer):
        from sales import commands
        from tests.factories import line

        invoice = commands.create_invoice(actor, customer_public_id=customer.public_id, lines=[line()]).data
        first = commands.issue_invoice(actor, invoice.public_id)
        second = commands.issue_invoice(actor, invoice.public_id)

        assert first.success
        assert not second.success
        assert BusinessEvent.objects.filter(
            company=actor.company,
            event_type=EventTypes.INVOICE_ISSUED,
            aggregate_id=str(invoice.public_id),
        ).count() == 1


# =============================================================================
# Sequencing
# =============================================================================

class TestSequencing:

    def test_company_sequence_is_gapless_and_monotonic(self, company):
        sequences = list(
            BusinessEvent.objects.filter(company=company)
            .order_by("company_sequence")
            .values_list("company_sequence", flat=True)
        )
        assert sequences == list(range(1, len(sequences) + 1))

    def test_company_streams_are_independent(self, company, second_company):
        first = BusinessEvent.objects.filter(company=company).order_by("company_sequence").first()
        other = BusinessEvent.objects.filter(company=second_company).order_by("company_sequence").first()
        assert first.company_sequence == 1
        assert other.company_sequence == 1

    def test_aggregate_sequence_counts_per_aggregate(self, actor, today):
        from accounting.commands import create_journal_entry, save_journal_entry_complete, post_journal_entry
        from tests.factories import account

        entry = create_journal_entry(actor, date=today, memo="Owner contribution").data
        save_journal_entry_complete(actor, entry.id, lines=[
            {"account_id": account(actor.company, "cash").id, "debit": "500.00"},
            {"account_id": account(actor.company, "equity").id, "credit": "500.00"},
        ])
        post_journal_entry(actor, entry.id)

        events = get_aggregate_events(actor.company, "JournalEntry", entry.public_id)
        assert [e.sequence for e in events] == [1, 2, 3]
        assert [e.event_type for e in events] == [
            EventTypes.JOURNAL_ENTRY_CREATED,
            EventTypes.JOURNAL_ENTRY_SAVED_COMPLETE,
            EventTypes.JOURNAL_ENTRY_POSTED,
        ]


# =============================================================================
# Payload validation
# =============================================================================

class TestPayloadValidation:

    def test_valid_payload_passes(self):
        validate_event_payload(EventTypes.ACCOUNT_CREATED, _account_data())

    def test_missing_required_field(self):
        data = _account_data()
        del data["name"]
        with pytest.raises(InvalidEventPayload) as exc_info:
            validate_event_payload(EventTypes.ACCOUNT_CREATED, data)
        assert exc_info.value.event_type == EventTypes.ACCOUNT_CREATED
        assert "name" in str(exc_info.value)

    def test_unexpected_field(self):
        with pytest.raises(InvalidEventPayload, match="surprise"):
            validate_event_payload(EventTypes.ACCOUNT_CREATED, _account_data(surprise=True))

    def test_wrong_type(self):
        with pytest.raises(InvalidEventPayload, match="is_header.*bool"):
            validate_event_payload(EventTypes.ACCOUNT_CREATED, _account_data(is_header="yes"))

    def test_enum_value(self):
        with pytest.raises(InvalidEventPayload, match="account_type"):
            validate_event_payload(EventTypes.ACCOUNT_CREATED, _account_data(account_type="GOODWILL"))

    def test_negative_amount_in_nested_lines(self):
        line = JournalLineData(
            line_no=1,
            account_public_id=str(uuid4()),
            account_code="1000",
            description="",
            debit="-5.00",
            credit="0.00",
        ).to_dict()
        data = {
            "entry_public_id": str(uuid4()),
            "date": "2026-01-15",
            "memo": "",
            "kind": "NORMAL",
            "currency": "USD",
            "created_by_id": 1,
            "lines": [line],
        }
        with pytest.raises(InvalidEventPayload, match="debit"):
            validate_event_payload(EventTypes.JOURNAL_ENTRY_CREATED, data)

    def test_bad_iso_date(self):
        data = IntercompanyTransactionCancelledData(
            transaction_public_id=str(uuid4()),
            cancelled_at="yesterday",
        ).to_dict()
        with pytest.raises(InvalidEventPayload, match="cancelled_at"):
            validate_event_payload(EventTypes.INTERCOMPANY_TRANSACTION_CANCELLED, data)

    def test_unknown_event_type(self):
        with pytest.raises(ValueError, match="No schema registered"):
            validate_event_payload("ledger.teleported", {})

    def test_emit_refuses_invalid_payload(self, company):
        with pytest.raises(InvalidEventPayload):
            emit_event_no_actor(
                company=company,
                event_type=EventTypes.ACCOUNT_CREATED,
                aggregate_type="Account",
                aggregate_id=str(uuid4()),
                idempotency_key=f"bad:{uuid4()}",
                data=_account_data(normal_balance="SIDEWAYS"),
            )

    def test_validation_can_be_disabled(self, settings, company):
        settings.DISABLE_EVENT_VALIDATION = True
        event = emit_event_no_actor(
            company=company,
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=str(uuid4()),
            idempotency_key=f"unchecked:{uuid4()}",
            data={"anything": "goes"},
        )
        assert event.data == {"anything": "goes"}


# =============================================================================
# Bookmarks
# =============================================================================

class TestBookmarks:

    def test_unprocessed_events_follow_company_sequence(self, company, account_created_event):
        bookmark = EventBookmark.objects.create(consumer_name="test_consumer", company=company)
        pending = list(bookmark.get_unprocessed_events(limit=1000))

        assert pending[-1].id == account_created_event.id
        assert [e.company_sequence for e in pending] == sorted(e.company_sequence for e in pending)

        bookmark.mark_processed(pending[-1])
        assert list(bookmark.get_unprocessed_events()) == []

    def test_event_type_filter(self, company, account_created_event):
        bookmark = EventBookmark.objects.create(consumer_name="accounts_only", company=company)
        pending = list(bookmark.get_unprocessed_events(event_types=[EventTypes.ACCOUNT_CREATED], limit=1000))
        assert pending
        assert {e.event_type for e in pending} == {EventTypes.ACCOUNT_CREATED}

    def test_mark_error_then_recover(self, company, account_created_event):
        bookmark = EventBookmark.objects.create(consumer_name="flaky", company=company)
        bookmark.mark_error("boom")
        bookmark.mark_error("boom again")
        bookmark.refresh_from_db()
        assert bookmark.error_count == 2
        assert bookmark.last_error == "boom again"

        bookmark.mark_processed(account_created_event)
        bookmark.refresh_from_db()
        assert bookmark.error_count == 0
        assert bookmark.last_error == ""
