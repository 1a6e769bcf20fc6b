# events/urls.py

from django.urls import path

from events.views import (
    EventListView,
    EventDetailView,
    AggregateEventHistoryView,
    EventBookmarkListView,
)


app_name = "events"

urlpatterns = [
    path("", EventListView.as_view(), name="event-list"),
    path("bookmarks/", EventBookmarkListView.as_view(), name="bookmark-list"),
    path("<uuid:id>/", EventDetailView.as_view(), name="event-detail"),
    path(
        "aggregate/<str:aggregate_type>/<str:aggregate_id>/",
        AggregateEventHistoryView.as_view(),
        name="aggregate-history",
    ),
]
