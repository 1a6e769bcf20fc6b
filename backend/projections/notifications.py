# projections/notifications.py
"""
Projection update notifications.

After a projection applies events for a company, websocket clients
subscribed to that company's group get a small "projection.updated"
message so they can refetch read models.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction


logger = logging.getLogger(__name__)


def company_group_name(company_public_id) -> str:
    return f"company_{company_public_id}".replace("-", "")


def notify_projection_update(company, projection_name: str, processed: int) -> None:
    """Schedule a group message for after the surrounding transaction commits."""
    if not getattr(settings, "PROJECTION_NOTIFICATIONS", False):
        return

    payload = {
        "type": "projection.updated",
        "projection": projection_name,
        "processed": processed,
        "company_public_id": str(company.public_id),
    }
    group = company_group_name(company.public_id)

    def _send():
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        try:
            async_to_sync(channel_layer.group_send)(group, payload)
        except (OSError, ConnectionError) as exc:
            # The write has already committed at this point.
            logger.warning("Projection notification to %s failed: %s", group, exc)

    transaction.on_commit(_send)
