import asyncio
import logging
from typing import Optional

import httpx

from engine.errors import NotificationError
from engine.models import Vulnerability
from .base import NotifierAdapter, task_payload, task_title


class SimulatedTaskNotifier(NotifierAdapter):
    """Logs the task it would create, after a fixed network-like delay."""

    def __init__(self, delay: float = 0.5):
        self.delay = delay

    async def notify(self, vulnerability: Vulnerability, target_name: str, project_id: str) -> None:
        logging.info(
            f"[task.simulated] tool={target_name} project_id={project_id} "
            f"title={task_title(vulnerability)!r} severity={vulnerability.severity.value}"
        )
        if self.delay > 0:
            await asyncio.sleep(self.delay)


class WebhookTaskNotifier(NotifierAdapter):
    """POSTs each task as JSON to a webhook URL."""

    def __init__(self, webhook_url: str, client: Optional[httpx.AsyncClient] = None):
        if not webhook_url or not webhook_url.strip():
            raise ValueError("Webhook URL not configured")
        self.webhook_url = webhook_url.strip()
        self._client = client or httpx.AsyncClient(timeout=None)

    async def notify(self, vulnerability: Vulnerability, target_name: str, project_id: str) -> None:
        try:
            response = await self._client.post(
                self.webhook_url, json=task_payload(vulnerability, target_name, project_id)
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(
                f"Failed to create task in {target_name}: {e}", target_name=target_name
            ) from e
        logging.info(f"[task.webhook] tool={target_name} project_id={project_id} status={response.status_code}")

    async def aclose(self) -> None:
        await self._client.aclose()
