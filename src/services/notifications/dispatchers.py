"""
Notification dispatchers.

HttpPushDispatcher hands the notification to the push gateway over HTTP;
LoggingDispatcher only logs it (used when no gateway is configured).
"""

import logging
from typing import Optional

import httpx

from ...domain.notifications import NotificationContent
from ...utils.retry import with_retry

logger = logging.getLogger(__name__)


class LoggingDispatcher:
    """Dispatcher that records notifications in the log instead of sending them."""

    async def send(self, user_id: str, content: NotificationContent) -> bool:
        logger.info(
            f"[notification] user={user_id} title={content.title!r} body={content.body!r}"
        )
        return True


class HttpPushDispatcher:
    """POSTs notifications to the push gateway's send endpoint.

    The gateway authenticates internal callers with the ``x-cron-secret``
    header. Transport errors are retried once; HTTP error statuses and a
    body without ``"success": true`` count as a failed delivery.
    """

    def __init__(
        self,
        gateway_url: str,
        secret: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        retry_base_delay: float = 0.5,
    ) -> None:
        self.gateway_url = gateway_url
        self._secret = secret
        self.timeout = timeout
        self._client = client
        self._owns_client = False
        self._retry_base_delay = retry_base_delay

    def _payload(self, user_id: str, content: NotificationContent) -> dict:
        return {
            "title": content.title,
            "message": content.body,
            "targetUsers": [user_id],
            "url": content.url,
            "tag": content.tag,
            "requireInteraction": True,
            "data": content.data,
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self.gateway_url,
            json=payload,
            headers={"x-cron-secret": self._secret},
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    async def send(self, user_id: str, content: NotificationContent) -> bool:
        response = await with_retry(
            self._post,
            self._get_client(),
            self._payload(user_id, content),
            max_attempts=2,
            base_delay=self._retry_base_delay,
            exceptions=(httpx.TransportError,),
        )

        if not response.is_success:
            logger.error(
                f"Push gateway error {response.status_code} for user {user_id}: "
                f"{response.text[:200]}"
            )
            return False

        try:
            body = response.json()
        except ValueError:
            logger.error(f"Push gateway returned non-JSON body for user {user_id}")
            return False

        delivered = isinstance(body, dict) and body.get("success") is True
        if not delivered:
            logger.warning(f"Push gateway did not confirm delivery to user {user_id}")
        return delivered
