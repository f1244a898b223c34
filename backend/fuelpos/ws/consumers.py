# fuelpos/ws/consumers.py
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from fuelpos.tasks import STATION_GROUP


class StationConsumer(AsyncJsonWebsocketConsumer):
    """
    Dashboard feed. Authenticated clients join the station group and receive
    every station_event (shift opened/closed, sale recorded, low stock,
    dip variance) as JSON.
    """

    group_name = STATION_GROUP

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_json({"event_type": "connected", "group": self.group_name})

    async def disconnect(self, code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        # the feed is one-way; answer pings so clients can keep the socket alive
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    # group_send({"type": "station_event", "payload": {...}})
    async def station_event(self, event):
        await self.send_json(event.get("payload") or {})
