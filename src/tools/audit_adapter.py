import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from engine.errors import AnalysisError
from engine.models import AuditResult
from .base import AnalysisAdapter


class HttpAuditAdapter(AnalysisAdapter):
    """
    Calls a remote audit service: POST {base_url}/audit {"address": ...}
    and parses the JSON body as an AuditResult.

    No timeout and no retry: the call is awaited until the service answers.
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=None)

    async def analyze(self, address: str) -> AuditResult:
        logging.info(f"Requesting audit for contract {address} from {self.base_url}")
        try:
            response = await self._client.post(f"{self.base_url}/audit", json={"address": address})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise AnalysisError(
                f"Audit service answered {e.response.status_code} for {address}", address=address
            ) from e
        except httpx.HTTPError as e:
            raise AnalysisError(f"Audit service unreachable: {e}", address=address) from e
        except ValueError as e:
            raise AnalysisError("Audit service returned a non-JSON response", address=address) from e

        if isinstance(payload, dict) and "result" in payload and "vulnerabilities" not in payload:
            payload = payload["result"]
        try:
            return AuditResult.model_validate(payload)
        except ValidationError as e:
            raise AnalysisError(
                f"Audit service returned an invalid report: {e.error_count()} validation error(s)",
                address=address,
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
