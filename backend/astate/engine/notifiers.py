"""Notification sinks: fire-and-forget (title, body) alerts."""

import asyncio
import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, title: str, body: str) -> None:
        ...


class LogNotifier:
    """Writes alerts to the log (and so to the in-memory log console)."""

    def send(self, title: str, body: str) -> None:
        logger.info("%s: %s", title, body)


class WebhookNotifier:
    """POSTs {"title", "body"} as JSON to a webhook; delivery is not confirmed."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    def send(self, title: str, body: str) -> None:
        payload = {"title": title, "body": body}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._post_blocking(payload)
            return
        task = loop.create_task(self._post(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(self.url, json=payload)
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Notification webhook failed: %s", e)

    def _post_blocking(self, payload: dict) -> None:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(self.url, json=payload)
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Notification webhook failed: %s", e)

    async def drain(self) -> None:
        """Wait for alerts still in flight (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


def build_notifier(webhook_url: str | None, timeout: float = 10.0) -> Notifier:
    if webhook_url:
        return WebhookNotifier(webhook_url, timeout)
    return LogNotifier()
