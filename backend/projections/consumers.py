# projections/consumers.py
"""
Websocket consumer for projection updates.

Clients connect to ws/projections/ with a session or JWT-authenticated
user; they join the group of their active company and receive
{"projection": ..., "processed": ...} messages.
"""

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from projections.notifications import company_group_name


class ProjectionUpdatesConsumer(AsyncJsonWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return

        company_public_id = await self._active_company_public_id(user)
        if not company_public_id:
            await self.close(code=4403)
            return

        self.group_name = company_group_name(company_public_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code):
        group_name = getattr(self, "group_name", None)
        if group_name:
            await self.channel_layer.group_discard(group_name, self.channel_name)

    async def projection_updated(self, event):
        await self.send_json({
            "projection": event["projection"],
            "processed": event["processed"],
            "company_public_id": event["company_public_id"],
        })

    @database_sync_to_async
    def _active_company_public_id(self, user):
        membership = user.get_active_membership()
        if not membership:
            return None
        return str(membership.company.public_id)
