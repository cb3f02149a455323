from goodcall.realtime.api import router
from goodcall.realtime.hub import Connection, RealtimeHub, hub, user_room

__all__ = ["router", "Connection", "RealtimeHub", "hub", "user_room"]
