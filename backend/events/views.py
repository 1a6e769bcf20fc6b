# events/views.py
"""
Event audit API views.

- List a company's event stream with filters
- Event detail (full payload and causation links)
- Aggregate history (every event for one invoice, bill, entry, ...)
- Projection bookmarks

All endpoints require authentication and are scoped to the user's company.
"""

from rest_framework import generics, views, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.authz import resolve_actor, require
from events.models import BusinessEvent, EventBookmark
from events.serializers import (
    BusinessEventListSerializer,
    BusinessEventDetailSerializer,
    EventBookmarkSerializer,
)


class EventListView(generics.ListAPIView):
    """
    GET /api/events/

    Supports filtering by event_type, aggregate_type, aggregate_id,
    origin, occurred_at__gte and occurred_at__lte.
    """

    serializer_class = BusinessEventListSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "reports.view")
        qs = BusinessEvent.objects.filter(
            company=actor.company
        ).select_related('caused_by_user').order_by('-company_sequence')

        params = self.request.query_params
        for param in ('event_type', 'aggregate_type', 'aggregate_id', 'origin'):
            value = params.get(param)
            if value:
                qs = qs.filter(**{param: value})

        if params.get('occurred_at__gte'):
            qs = qs.filter(occurred_at__gte=params['occurred_at__gte'])
        if params.get('occurred_at__lte'):
            qs = qs.filter(occurred_at__lte=params['occurred_at__lte'])

        return qs[:1000]


class EventDetailView(generics.RetrieveAPIView):
    """GET /api/events/<uuid:id>/"""

    serializer_class = BusinessEventDetailSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = 'id'

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "reports.view")
        return BusinessEvent.objects.filter(
            company=actor.company
        ).select_related('caused_by_user', 'caused_by_event')


class AggregateEventHistoryView(views.APIView):
    """
    GET /api/events/aggregate/<str:aggregate_type>/<str:aggregate_id>/

    Events in per-aggregate sequence order.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, aggregate_type, aggregate_id):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        events = BusinessEvent.objects.filter(
            company=actor.company,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
        ).order_by('sequence')
        event_list = list(events[:500])

        if not event_list:
            return Response(
                {'error': 'No events found for this aggregate'},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response({
            'aggregate_type': aggregate_type,
            'aggregate_id': aggregate_id,
            'event_count': events.count(),
            'first_event_at': event_list[0].occurred_at,
            'last_event_at': event_list[-1].occurred_at,
            'events': BusinessEventListSerializer(event_list, many=True).data,
        })


class EventBookmarkListView(generics.ListAPIView):
    """
    GET /api/events/bookmarks/

    Shows projection consumer progress.
    """

    serializer_class = EventBookmarkSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = resolve_actor(self.request)
        return EventBookmark.objects.filter(
            company=actor.company
        ).select_related('last_event').order_by('consumer_name')
