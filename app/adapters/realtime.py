"""
Realtime relay over Redis pub/sub.

The socket gateway subscribes to ``{namespace}:{topic}`` channels and forwards
payloads to connected clients (topics are ``user-{user_id}``).
"""

from __future__ import annotations

import json
from typing import Any

import redis

from app.adapters.base import BaseRealtimeRelay
from app.core.errors import UpstreamDeliveryError


class RedisRealtimeRelay(BaseRealtimeRelay):
    def __init__(self, client: redis.Redis, namespace: str) -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_settings(cls, host: str, port: int, namespace: str, timeout: int = 5):
        client = redis.Redis(
            host=host,
            port=port,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, namespace)

    def channel_for(self, topic: str) -> str:
        return f"{self._namespace}:{topic}"

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            self._client.publish(self.channel_for(topic), json.dumps(payload, default=str))
        except redis.RedisError as e:
            raise UpstreamDeliveryError(f"realtime publish to {topic} failed: {e}") from e
