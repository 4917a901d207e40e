# readiness/crawl/session.py
"""
Server-side crawl session.

One CrawlSession drives a remote crawl from start to rendered results:

    start crawl -> poll status every interval -> build graph (once)
    -> fetch the five result sets concurrently -> DONE

Progress snapshots are pushed to subscriber queues so the SSE endpoint can
stream them. ``stop()`` cancels the poll task and is safe to call at any time.
"""
import asyncio
import logging
import time
import uuid
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..errors import CrawlServiceError, ValidationError
from ..utils.urls import normalize_target_url
from .client import CrawlClient

logger = logging.getLogger(__name__)

PENDING = "PENDING"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"
FAILED = "FAILED"
PROCESSING = "PROCESSING"
DONE = "DONE"
ERROR = "ERROR"
CANCELLED = "CANCELLED"

TERMINAL = (DONE, ERROR, CANCELLED)

DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_PAGES = 100


def validate_crawl_request(raw_url: str, max_depth: Any, max_pages: Any) -> Tuple[str, int, int]:
    """Normalize the form input; raises ValidationError before any network call."""
    url = normalize_target_url(raw_url)

    try:
        depth = int(max_depth) if max_depth not in (None, "") else DEFAULT_MAX_DEPTH
    except (TypeError, ValueError):
        raise ValidationError("Max depth must be between 0 and 10") from None
    if depth < 0 or depth > 10:
        raise ValidationError("Max depth must be between 0 and 10")

    try:
        pages = int(max_pages) if max_pages not in (None, "") else DEFAULT_MAX_PAGES
    except (TypeError, ValueError):
        raise ValidationError("Max pages must be between 1 and 1000") from None
    if pages < 1 or pages > 1000:
        raise ValidationError("Max pages must be between 1 and 1000")

    return url, depth, pages


class CrawlSession:
    def __init__(
        self,
        client: CrawlClient,
        url: str,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_pages: int = DEFAULT_MAX_PAGES,
        poll_interval: float = 2.0,
        max_poll_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.id = uuid.uuid4().hex
        self.client = client
        self.url = url
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.poll_interval = poll_interval
        self.max_poll_seconds = max_poll_seconds
        self._clock = clock
        self._sleep = sleep

        self.job_id: Optional[str] = None
        self.site_id: Optional[str] = None
        self.status = PENDING
        self.pages_processed = 0
        self.progress = 0.0
        self.message = "Starting crawl..."
        self.error: Optional[str] = None
        self.results: Optional[Dict[str, Dict[str, Any]]] = None
        self.polls = 0

        self._task: Optional[asyncio.Task] = None
        self._listeners: List[asyncio.Queue] = []

    # ── state ────────────────────────────────────────────────────────────────
    @property
    def finished(self) -> bool:
        return self.status in TERMINAL

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sessionId": self.id,
            "siteId": self.site_id,
            "status": self.status,
            "pagesProcessed": self.pages_processed,
            "maxPages": self.max_pages,
            "progress": round(self.progress, 1),
            "message": self.message,
            "error": self.error,
            "finished": self.finished,
        }

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(self.snapshot())
        self._listeners.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        with suppress(ValueError):
            self._listeners.remove(queue)

    def _publish(self) -> None:
        snap = self.snapshot()
        for queue in self._listeners:
            queue.put_nowait(snap)

    def _update(self, status: str, message: str, progress: Optional[float] = None) -> None:
        self.status = status
        self.message = message
        if progress is not None:
            self.progress = progress
        self._publish()

    def _fail(self, message: str) -> None:
        logger.warning("Crawl session %s failed: %s", self.id, message)
        self.error = message
        self._update(ERROR, message)

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def start(self) -> None:
        """Ask the service to start crawling, then poll in a background task."""
        try:
            self.job_id, self.site_id = await self.client.start_crawl(self.url, self.max_depth, self.max_pages)
        except CrawlServiceError as e:
            self._fail(e.message)
            raise
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if not self.finished:
            self._update(CANCELLED, "Crawl cancelled")

    def cancel(self) -> None:
        """Synchronous variant for registry eviction."""
        if self._task and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        if self._task:
            with suppress(asyncio.CancelledError):
                await self._task

    async def _run(self) -> None:
        started = self._clock()
        try:
            while True:
                if await self._poll_once():
                    return
                if self.max_poll_seconds and (self._clock() - started) >= self.max_poll_seconds:
                    self._fail("Crawl is taking too long. Please try again later.")
                    return
                await self._sleep(self.poll_interval)
        except asyncio.CancelledError:
            if not self.finished:
                self._update(CANCELLED, "Crawl cancelled")
            raise

    async def _poll_once(self) -> bool:
        """One status check; True once polling must stop."""
        self.polls += 1
        try:
            data = await self.client.get_status(self.job_id)
        except CrawlServiceError as e:
            self._fail(e.message)
            return True

        status = data.get("status")
        processed = data.get("pagesProcessed") or 0
        total = data.get("maxPages") or 0
        self.pages_processed = processed
        if total:
            self.max_pages = total
        progress = (processed / total) * 100 if total > 0 else 0

        if status == PENDING:
            self._update(PENDING, "Waiting to start...", progress)
        elif status == IN_PROGRESS:
            self._update(IN_PROGRESS, f"Crawling website... {processed} of {total} pages processed", progress)
        elif status == COMPLETED:
            self._update(COMPLETED, "Crawl complete! Building knowledge graph...", progress)
            await self._build_and_fetch()
            return True
        elif status == FAILED:
            self._fail(data.get("errorMessage") or "Crawl failed")
            return True
        else:
            self._update(status or PROCESSING, "Processing...", progress)
        return False

    async def _build_and_fetch(self) -> None:
        self._update(PROCESSING, "Building knowledge graph...", 100)
        try:
            await self.client.build_graph(self.site_id)
            self.results = await self.client.fetch_results(self.site_id)
        except CrawlServiceError as e:
            self._fail(e.message)
            return
        logger.info("Knowledge graph ready for site %s", self.site_id)
        self._update(DONE, "Knowledge graph ready", 100)
