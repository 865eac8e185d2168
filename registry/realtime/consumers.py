import json
from channels.generic.websocket import AsyncWebsocketConsumer

from registry.wallet.broadcast import SESSION_GROUP


class WalletSessionConsumer(AsyncWebsocketConsumer):
    """Pushes every published wallet session snapshot to the browser."""
    GROUP = SESSION_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def session_update(self, event):
        # event: {"type": "session.update", "session": {...Session.as_dict()}}
        await self.send(json.dumps({"type": "session", "session": event["session"]}))
