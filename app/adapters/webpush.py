"""
Web Push transport backed by pywebpush (VAPID).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pywebpush import WebPushException, webpush
from requests.exceptions import RequestException

from app.adapters.base import BasePushTransport
from app.schemas.push import DeliveryResult

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = (404, 410)


class WebPushTransport(BasePushTransport):
    """Send encrypted Web Push messages; 404/410 responses map to GONE."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        timeout: int = 5,
    ) -> None:
        self._vapid_private_key = vapid_private_key
        self._vapid_subject = vapid_subject
        self._timeout = timeout

    def send(self, subscription: dict[str, Any], payload: dict[str, Any]) -> DeliveryResult:
        endpoint = subscription.get("endpoint", "")
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(payload),
                vapid_private_key=self._vapid_private_key,
                vapid_claims={"sub": self._vapid_subject},
                timeout=self._timeout,
            )
        except WebPushException as e:
            status = _status_code(e)
            if status in GONE_STATUS_CODES:
                logger.info("Push endpoint gone (%s): %s", status, endpoint[:80])
                return DeliveryResult.GONE
            logger.warning("Push delivery failed (%s): %s", status, e)
            return DeliveryResult.TRANSIENT_ERROR
        except RequestException as e:
            logger.warning("Push transport error for %s: %s", endpoint[:80], e)
            return DeliveryResult.TRANSIENT_ERROR
        return DeliveryResult.OK


def _status_code(error: WebPushException) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)
