from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp

from .config import WebhookConfig
from .errors import ExternalNotifyFailed
from .progress import ProgressLogger


@dataclass(slots=True)
class JoinNotification:
    firstname: str
    business_name: str
    member_id: int
    member_tag: str
    category_name: str
    joined_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "firstname": self.firstname,
            "businessName": self.business_name,
            "discordTag": self.member_tag,
            "discordId": str(self.member_id),
            "categoryName": self.category_name,
            "joinedAt": self.joined_at.isoformat(),
        }


class NotificationDispatcher:
    """Posts join events to the optional automation webhook.

    ``notify`` never raises: a failed delivery is logged and reported as
    ``False`` so it cannot change the outcome of provisioning.
    """

    def __init__(self, config: WebhookConfig, progress: Optional[ProgressLogger] = None) -> None:
        self._config = config
        self._progress = progress or ProgressLogger()
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _post(self, payload: Dict[str, Any]) -> None:
        session = await self._ensure_session()
        try:
            async with session.post(self._config.url, json=payload) as response:
                if response.status >= 300:
                    body = await response.text()
                    raise ExternalNotifyFailed(
                        f"Webhook responded with status {response.status}: {body}"
                    )
        except asyncio.TimeoutError as exc:
            raise ExternalNotifyFailed("Webhook request timed out") from exc
        except aiohttp.ClientError as exc:
            raise ExternalNotifyFailed(f"Webhook request failed: {exc}") from exc

    async def notify(self, notification: JoinNotification) -> bool:
        if not self.enabled:
            self._progress.debug("ZAPIER_WEBHOOK_URL not set, skipping join webhook.")
            return False

        try:
            await self._post(notification.to_payload())
        except ExternalNotifyFailed as exc:
            self._progress.error(f"Error notifying webhook about {notification.member_tag}: {exc}")
            return False

        self._progress.success(f"Notified webhook about new member {notification.member_tag}.")
        return True

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
