"""Notification transports."""

from app.adapters.base import BasePushTransport, BaseRealtimeRelay
from app.adapters.realtime import RedisRealtimeRelay
from app.adapters.webpush import WebPushTransport

__all__ = [
    "BasePushTransport",
    "BaseRealtimeRelay",
    "RedisRealtimeRelay",
    "WebPushTransport",
]
