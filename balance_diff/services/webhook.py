"""POST alert payloads to a user-supplied webhook URL."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

ALERT_EVENT = "balance_alert"


class WebhookNotifier:
    """Fire-and-report webhook sender. Failures are logged, never raised."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s if timeout_s is not None else settings.webhook_timeout_seconds
        self._transport = transport

    async def send(self, payload: Dict[str, Any]) -> bool:
        body = {"event": ALERT_EVENT, **payload}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Webhook %s answered HTTP %s", self.url, exc.response.status_code)
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Webhook %s failed: %s", self.url, exc)
            return False
        logger.debug("Webhook delivered to %s", self.url)
        return True


__all__ = ["ALERT_EVENT", "WebhookNotifier"]
