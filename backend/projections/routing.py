from django.urls import path

from projections.consumers import ProjectionUpdatesConsumer


websocket_urlpatterns = [
    path("ws/projections/", ProjectionUpdatesConsumer.as_asgi()),
]
