"""
Per-user notification socket.

The client registers for its own ``user_<id>`` room after connecting; the
server then relays every ``push.event`` group message as
``{"event": ..., "data": ...}``.  Delivery is at-most-once: there is no
acknowledgement and nothing is replayed after a reconnect.
"""
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from core.services.notifications import user_room

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4001
ERR_INVALID_JSON = 4000
ERR_UNSUPPORTED_TYPE = 4002
ERR_FORBIDDEN_ROOM = 4003


async def _ws_error(ws, code: int, message: str):
    """Send an error frame; 4xxx are client errors and keep the socket open."""
    await ws.send(json.dumps({"type": "error", "code": code, "message": message}))


class NotificationConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return
        self.user_id = user.id
        self.rooms = set()
        await self.accept()

    async def disconnect(self, close_code):
        for room in getattr(self, "rooms", ()):
            await self.channel_layer.group_discard(room, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except ValueError:
            await _ws_error(self, ERR_INVALID_JSON, "invalid_json")
            return
        if not isinstance(data, dict) or data.get("type") != "register":
            await _ws_error(self, ERR_UNSUPPORTED_TYPE, "unsupported_type")
            return

        if str(data.get("userId")) != str(self.user_id):
            logger.warning("user %s tried to register for room of %r", self.user_id, data.get("userId"))
            await _ws_error(self, ERR_FORBIDDEN_ROOM, "forbidden_room")
            return

        room = user_room(self.user_id)
        if room not in self.rooms:
            await self.channel_layer.group_add(room, self.channel_name)
            self.rooms.add(room)
        await self.send(json.dumps({"type": "registered", "room": room}))

    async def push_event(self, event):
        # event: {"type": "push.event", "event": "appointment:updated", "data": {...}}
        await self.send(json.dumps({"event": event["event"], "data": event.get("data")}))
