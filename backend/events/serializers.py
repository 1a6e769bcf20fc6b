# events/serializers.py
"""
Serializers for the event audit API.
"""

from rest_framework import serializers

from events.models import BusinessEvent, EventBookmark


class BusinessEventListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for event listing."""

    caused_by_user_email = serializers.CharField(
        source='caused_by_user.email',
        read_only=True,
        default=None,
    )

    class Meta:
        model = BusinessEvent
        fields = [
            'id',
            'event_type',
            'aggregate_type',
            'aggregate_id',
            'sequence',
            'company_sequence',
            'occurred_at',
            'recorded_at',
            'caused_by_user_email',
            'origin',
        ]


class BusinessEventDetailSerializer(serializers.ModelSerializer):
    """Full serializer for single event detail, payload included."""

    caused_by_user_email = serializers.CharField(
        source='caused_by_user.email',
        read_only=True,
        default=None,
    )
    child_event_ids = serializers.SerializerMethodField()

    class Meta:
        model = BusinessEvent
        fields = [
            'id',
            'event_type',
            'aggregate_type',
            'aggregate_id',
            'sequence',
            'company_sequence',
            'idempotency_key',
            'data',
            'metadata',
            'caused_by_user_email',
            'caused_by_event',
            'child_event_ids',
            'origin',
            'occurred_at',
            'recorded_at',
        ]

    def get_child_event_ids(self, obj):
        return list(obj.child_events.values_list('id', flat=True)[:100])


class EventBookmarkSerializer(serializers.ModelSerializer):
    """Serializer for projection bookmarks."""

    last_event_sequence = serializers.IntegerField(
        source='last_event.company_sequence',
        read_only=True,
        default=None,
    )

    class Meta:
        model = EventBookmark
        fields = [
            'id',
            'consumer_name',
            'last_event',
            'last_event_sequence',
            'last_processed_at',
            'is_paused',
            'error_count',
            'last_error',
            'updated_at',
        ]
