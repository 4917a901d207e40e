# readiness/crawl/client.py
import asyncio
import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from ..errors import CrawlServiceError, ValidationError

logger = logging.getLogger(__name__)

LOST_CONNECTION = "Lost connection to server. Please try again."
RESULTS_LIMIT = 1000

_CSV_KIND = re.compile(r"^([a-z]+)\.csv$")
_QUESTIONS_KIND = re.compile(r"^questions\.([a-z]+)$")


class CrawlClient:
    """
    Async client for the hosted crawl / knowledge-graph service.

    Every method raises CrawlServiceError with a message meant for the
    visitor; the raw cause is logged.
    """

    def __init__(self, base_url: str, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owned: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        if self._owned is None or self._owned.is_closed:
            self._owned = httpx.AsyncClient(timeout=self.timeout)
        return self._owned

    async def aclose(self) -> None:
        if self._owned is not None:
            await self._owned.aclose()
            self._owned = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def start_crawl(self, url: str, max_depth: int, max_pages: int) -> Tuple[str, str]:
        """Returns (job_id, site_id)."""
        try:
            resp = await self.http.post(
                self._url("/api/crawl/start"),
                json={"url": url, "maxDepth": max_depth, "maxPages": max_pages},
            )
        except httpx.HTTPError as e:
            logger.error("Start crawl error for %s: %s", url, e)
            raise CrawlServiceError("Failed to start crawl. Please try again.") from e

        if resp.is_error:
            message = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("message")
            except ValueError:
                pass
            logger.warning("Crawl service refused %s (HTTP %s): %s", url, resp.status_code, message)
            raise CrawlServiceError(message or "Failed to start crawl", resp.status_code)

        try:
            data = resp.json()
            job_id, site_id = data["jobId"], data["siteId"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Malformed start response for %s: %s", url, e)
            raise CrawlServiceError("Failed to start crawl. Please try again.", resp.status_code) from e

        logger.info("Crawl started for %s: job=%s site=%s", url, job_id, site_id)
        return str(job_id), str(site_id)

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        try:
            resp = await self.http.get(self._url(f"/api/crawl/{job_id}/status"))
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Status check error for job %s: %s", job_id, e)
            raise CrawlServiceError(LOST_CONNECTION) from e
        if not isinstance(data, dict):
            raise CrawlServiceError(LOST_CONNECTION)
        return data

    async def build_graph(self, site_id: str) -> Dict[str, Any]:
        try:
            resp = await self.http.post(self._url("/api/graph/build"), json={"siteId": site_id})
        except httpx.HTTPError as e:
            logger.error("Build graph error for site %s: %s", site_id, e)
            raise CrawlServiceError(f"Failed to build knowledge graph. {e}") from e

        if resp.is_error:
            logger.error("Build graph failed for site %s (HTTP %s)", site_id, resp.status_code)
            raise CrawlServiceError("Failed to build knowledge graph. Failed to build knowledge graph", resp.status_code)

        try:
            return resp.json()
        except ValueError:
            return {}

    async def _get_json(self, name: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self.http.get(self._url(path), params=params)
        if resp.is_error:
            raise CrawlServiceError(f"Failed to fetch {name}", resp.status_code)
        data = resp.json()
        return data if isinstance(data, dict) else {}

    async def fetch_results(self, site_id: str) -> Dict[str, Dict[str, Any]]:
        """Five concurrent reads; the first failure aborts the whole batch."""
        names = ("summary", "pages", "entities", "relations", "questions")
        try:
            parts = await asyncio.gather(
                self._get_json("summary", "/api/graph/summary", {"siteId": site_id}),
                self._get_json("pages", "/api/pages", {"siteId": site_id, "limit": RESULTS_LIMIT}),
                self._get_json("entities", "/api/graph/entities", {"siteId": site_id, "limit": RESULTS_LIMIT}),
                self._get_json("relations", "/api/graph/relations", {"siteId": site_id, "limit": RESULTS_LIMIT}),
                self._get_json("questions", f"/api/questions/{site_id}", {"limit": RESULTS_LIMIT}),
            )
        except CrawlServiceError as e:
            logger.error("Fetch results error for site %s: %s", site_id, e.message)
            raise CrawlServiceError(f"Failed to fetch results. {e.message}", e.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Fetch results error for site %s: %s", site_id, e)
            raise CrawlServiceError(f"Failed to fetch results. {e}") from e

        return dict(zip(names, parts))

    def export_url(self, site_id: str, kind: str) -> str:
        """Remote URL for one of the report / export downloads."""
        if kind == "report":
            return self._url(f"/api/report/{site_id}")
        if kind in ("pdf", "json"):
            return self._url(f"/api/report/{site_id}/export/{kind}")
        m = _QUESTIONS_KIND.match(kind)
        if m:
            return self._url(f"/api/questions/{site_id}/export/{m.group(1)}")
        m = _CSV_KIND.match(kind)
        if m:
            return self._url(f"/api/report/{site_id}/export/{m.group(1)}.csv")
        raise ValidationError(f"Unknown export type: {kind}")
