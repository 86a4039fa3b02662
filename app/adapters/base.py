"""
Notification transport interfaces.

The core depends only on these contracts; concrete transports (Web Push,
Redis pub/sub) live beside them and tests substitute in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.schemas.push import DeliveryResult


class BasePushTransport(ABC):
    """Delivers one payload to one push endpoint."""

    @abstractmethod
    def send(self, subscription: dict[str, Any], payload: dict[str, Any]) -> DeliveryResult:
        """
        Deliver ``payload`` to the endpoint described by ``subscription``.
        Return GONE when the endpoint no longer exists; do not raise for delivery failures.
        """
        ...


class BaseRealtimeRelay(ABC):
    """At-most-once fan-out to live connections subscribed to a topic."""

    @abstractmethod
    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Publish ``payload`` to ``topic``. May raise; callers treat it as best effort."""
        ...
