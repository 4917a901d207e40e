# readiness/audit/client.py
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import AuditServiceError

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze"
GENERIC_FAILURE = "Unable to complete audit. Please try again."


class AuditClient:
    """
    Thin async client for the hosted AI readiness audit service.

    One POST per audit; the service answers {success, data, error}. Any
    non-success answer becomes an AuditServiceError carrying a message that
    can be shown to the visitor as-is.
    """

    def __init__(self, base_url: str, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def analyze(self, url: str) -> Dict[str, Any]:
        if self._client is not None:
            return await self._analyze(self._client, url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._analyze(client, url)

    async def _analyze(self, client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
        endpoint = f"{self.base_url}{ANALYZE_PATH}"
        try:
            resp = await client.post(endpoint, json={"url": url})
        except httpx.HTTPError as e:
            logger.error("Audit request failed for %s: %s", url, e)
            raise AuditServiceError(GENERIC_FAILURE) from e

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error("Audit service returned non-JSON (HTTP %s) for %s", resp.status_code, url)
            raise AuditServiceError(GENERIC_FAILURE, resp.status_code) from e

        if not isinstance(payload, dict):
            raise AuditServiceError(GENERIC_FAILURE, resp.status_code)

        if resp.is_error or not payload.get("success"):
            message = payload.get("error") or "Failed to run audit"
            logger.warning("Audit service rejected %s (HTTP %s): %s", url, resp.status_code, message)
            raise AuditServiceError(str(message), resp.status_code)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise AuditServiceError(GENERIC_FAILURE, resp.status_code)

        logger.info("Audit completed for %s", url)
        return data
