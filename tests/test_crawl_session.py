import asyncio
import json
from collections import Counter

import httpx
import pytest

from readiness.crawl.client import LOST_CONNECTION, CrawlClient
from readiness.crawl.session import (
    CANCELLED,
    DONE,
    ERROR,
    CrawlSession,
    validate_crawl_request,
)
from readiness.errors import CrawlServiceError, ValidationError

BASE = "https://crawl.test"


class FakeCrawlService:
    """Answers the crawl API from a scripted list of status payloads."""

    def __init__(self, statuses, fail_paths=()):
        self.statuses = list(statuses)
        self.fail_paths = set(fail_paths)
        self.calls = Counter()
        self.bodies = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] += 1
        if path in self.fail_paths:
            return httpx.Response(500, json={"message": "boom"})

        if path == "/api/crawl/start":
            self.bodies[path] = json.loads(request.content)
            return httpx.Response(200, json={"jobId": "job-1", "siteId": "site-1"})
        if path == "/api/crawl/job-1/status":
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json=status)
        if path == "/api/graph/build":
            self.bodies[path] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})
        if path == "/api/graph/summary":
            return httpx.Response(200, json={"domain": "example.com", "totalEntities": 2})
        if path == "/api/pages":
            return httpx.Response(200, json={"pages": [], "pagination": {"total": 3}})
        if path == "/api/graph/entities":
            return httpx.Response(200, json={"entities": [{"name": "Acme", "confidence": 0.9}]})
        if path == "/api/graph/relations":
            return httpx.Response(200, json={"relations": []})
        if path == "/api/questions/site-1":
            return httpx.Response(200, json={"questions": [], "total": 0})
        return httpx.Response(404)


def client_for(service):
    return CrawlClient(BASE, client=httpx.AsyncClient(transport=httpx.MockTransport(service)))


async def no_sleep(seconds):
    await asyncio.sleep(0)


async def run_session(service, **kwargs):
    session = CrawlSession(client_for(service), "https://example.com", 2, 50, poll_interval=0, sleep=no_sleep, **kwargs)
    await session.start()
    await session.wait()
    return session


async def test_completed_crawl_builds_once_and_fetches_all_results():
    service = FakeCrawlService([
        {"status": "PENDING"},
        {"status": "IN_PROGRESS", "pagesProcessed": 10, "maxPages": 50},
        {"status": "COMPLETED", "pagesProcessed": 50, "maxPages": 50},
    ])

    session = await run_session(service)

    assert session.status == DONE
    assert session.polls == 3
    assert service.calls["/api/graph/build"] == 1
    assert service.bodies["/api/graph/build"] == {"siteId": "site-1"}
    assert service.bodies["/api/crawl/start"] == {"url": "https://example.com", "maxDepth": 2, "maxPages": 50}
    for path in ("/api/graph/summary", "/api/pages", "/api/graph/entities", "/api/graph/relations",
                 "/api/questions/site-1"):
        assert service.calls[path] == 1
    assert set(session.results) == {"summary", "pages", "entities", "relations", "questions"}
    assert session.results["summary"]["domain"] == "example.com"
    assert session.progress == 100
    assert session.snapshot()["finished"] is True


async def test_failed_crawl_stops_polling_without_building():
    service = FakeCrawlService([
        {"status": "IN_PROGRESS", "pagesProcessed": 1, "maxPages": 50},
        {"status": "FAILED", "errorMessage": "Site blocked the crawler"},
        {"status": "COMPLETED"},
    ])

    session = await run_session(service)

    assert session.status == ERROR
    assert session.error == "Site blocked the crawler"
    assert session.polls == 2
    assert service.calls["/api/graph/build"] == 0


async def test_failed_crawl_without_message_uses_default():
    session = await run_session(FakeCrawlService([{"status": "FAILED"}]))

    assert session.error == "Crawl failed"


async def test_status_error_reports_lost_connection():
    service = FakeCrawlService([{"status": "PENDING"}], fail_paths={"/api/crawl/job-1/status"})

    session = await run_session(service)

    assert session.status == ERROR
    assert session.error == LOST_CONNECTION
    assert session.polls == 1


async def test_failed_result_fetch_fails_the_session():
    service = FakeCrawlService([{"status": "COMPLETED"}], fail_paths={"/api/graph/entities"})

    session = await run_session(service)

    assert session.status == ERROR
    assert session.error == "Failed to fetch results. Failed to fetch entities"
    assert session.results is None


async def test_failed_build_fails_the_session():
    service = FakeCrawlService([{"status": "COMPLETED"}], fail_paths={"/api/graph/build"})

    session = await run_session(service)

    assert session.status == ERROR
    assert session.error.startswith("Failed to build knowledge graph.")
    assert service.calls["/api/graph/summary"] == 0


async def test_start_refused_by_service():
    service = FakeCrawlService([{"status": "PENDING"}], fail_paths={"/api/crawl/start"})
    session = CrawlSession(client_for(service), "https://example.com")

    with pytest.raises(CrawlServiceError) as exc:
        await session.start()

    assert exc.value.message == "boom"
    assert session.status == ERROR
    assert service.calls["/api/crawl/job-1/status"] == 0


async def test_polling_gives_up_after_max_duration():
    ticks = iter([0.0, 1.0, 2.0, 30.0, 31.0])
    service = FakeCrawlService([{"status": "IN_PROGRESS", "pagesProcessed": 1, "maxPages": 50}])

    session = await run_session(service, max_poll_seconds=10, clock=lambda: next(ticks))

    assert session.status == ERROR
    assert session.error == "Crawl is taking too long. Please try again later."
    assert session.polls == 3


async def test_stop_cancels_polling():
    service = FakeCrawlService([{"status": "IN_PROGRESS", "pagesProcessed": 1, "maxPages": 50}])
    session = CrawlSession(client_for(service), "https://example.com", poll_interval=60)

    await session.start()
    for _ in range(5):
        await asyncio.sleep(0)
    await session.stop()

    assert session.status == CANCELLED
    polls = session.polls
    await asyncio.sleep(0)
    assert session.polls == polls


async def test_subscribers_receive_progress_until_done():
    service = FakeCrawlService([
        {"status": "IN_PROGRESS", "pagesProcessed": 25, "maxPages": 50},
        {"status": "COMPLETED", "pagesProcessed": 50, "maxPages": 50},
    ])
    session = CrawlSession(client_for(service), "https://example.com", poll_interval=0, sleep=no_sleep)
    queue = session.subscribe()

    await session.start()
    await session.wait()

    snapshots = []
    while not queue.empty():
        snapshots.append(queue.get_nowait())
    statuses = [s["status"] for s in snapshots]
    assert statuses[0] == "PENDING"
    assert "IN_PROGRESS" in statuses
    assert statuses[-1] == DONE
    in_progress = next(s for s in snapshots if s["status"] == "IN_PROGRESS")
    assert in_progress["progress"] == 50
    assert in_progress["message"] == "Crawling website... 25 of 50 pages processed"

    session.unsubscribe(queue)
    session.unsubscribe(queue)


def test_validate_crawl_request_defaults_and_normalizes():
    assert validate_crawl_request(" example.com ", "", None) == ("https://example.com", 3, 100)
    assert validate_crawl_request("http://example.com", "0", "1000") == ("http://example.com", 0, 1000)


@pytest.mark.parametrize("depth,pages,message", [
    ("11", "10", "Max depth must be between 0 and 10"),
    ("-1", "10", "Max depth must be between 0 and 10"),
    ("x", "10", "Max depth must be between 0 and 10"),
    ("2", "0", "Max pages must be between 1 and 1000"),
    ("2", "1001", "Max pages must be between 1 and 1000"),
])
def test_validate_crawl_request_rejects_out_of_range(depth, pages, message):
    with pytest.raises(ValidationError) as exc:
        validate_crawl_request("example.com", depth, pages)
    assert exc.value.message == message


def test_validate_crawl_request_requires_url():
    with pytest.raises(ValidationError):
        validate_crawl_request("   ", 3, 100)
