# readiness/routers/knowledge_graph.py
import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, StreamingResponse

from ..crawl.presenters import build_results_view
from ..crawl.session import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DONE,
    CrawlSession,
    validate_crawl_request,
)
from ..dependencies import render
from ..errors import CrawlServiceError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge-graph", tags=["Knowledge Graph"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def json_dumps(obj: Any) -> str:
    """Compact JSON for SSE."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _session(request: Request, session_id: str) -> CrawlSession:
    session = request.app.state.crawls.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Crawl session not found or expired")
    return session


def _form(request: Request, status_code: int = 200, error: str = None, **values):
    values.setdefault("url", "")
    values.setdefault("max_depth", DEFAULT_MAX_DEPTH)
    values.setdefault("max_pages", DEFAULT_MAX_PAGES)
    return render(request, "knowledge_graph/form.html", status_code=status_code, error=error, form=values)


@router.get("", response_class=HTMLResponse)
async def crawl_form(request: Request):
    return _form(request)


@router.post("/start", response_class=HTMLResponse)
async def start_crawl(
    request: Request,
    url: str = Form(""),
    maxDepth: str = Form(str(DEFAULT_MAX_DEPTH)),
    maxPages: str = Form(str(DEFAULT_MAX_PAGES)),
):
    try:
        target, depth, pages = validate_crawl_request(url, maxDepth, maxPages)
    except ValidationError as e:
        return _form(request, 400, e.message, url=url, max_depth=maxDepth, max_pages=maxPages)

    settings = request.app.state.settings
    session = CrawlSession(
        request.app.state.crawl_client,
        target,
        max_depth=depth,
        max_pages=pages,
        poll_interval=settings.CRAWL_POLL_INTERVAL,
        max_poll_seconds=settings.CRAWL_MAX_POLL_SECONDS,
    )
    try:
        await session.start()
    except CrawlServiceError as e:
        return _form(request, 502, e.message, url=url, max_depth=depth, max_pages=pages)

    request.app.state.crawls.put(session.id, session)
    return RedirectResponse(url=f"/knowledge-graph/{session.id}", status_code=303)


@router.get("/{session_id}", response_class=HTMLResponse)
async def crawl_page(request: Request, session_id: str):
    session = _session(request, session_id)
    results = None
    if session.status == DONE and session.results is not None:
        results = build_results_view(session.site_id, session.results)
    return render(request, "knowledge_graph/session.html", session=session, state=session.snapshot(), results=results)


@router.get("/{session_id}/status")
async def crawl_status(request: Request, session_id: str):
    return JSONResponse(_session(request, session_id).snapshot())


@router.get("/{session_id}/events")
async def crawl_events(request: Request, session_id: str):
    """SSE stream of session snapshots until the session reaches a terminal state."""
    session = _session(request, session_id)
    heartbeat = request.app.state.settings.SSE_HEARTBEAT_SECONDS
    queue = session.subscribe()

    async def event_stream():
        try:
            while True:
                if await request.is_disconnected():
                    # page unloaded: nobody is watching this crawl any more
                    await session.stop()
                    break
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield f"data: {json_dumps(item)}\n\n"
                if item.get("finished"):
                    break
        finally:
            session.unsubscribe(queue)

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/{session_id}/stop")
async def stop_crawl(request: Request, session_id: str):
    session = request.app.state.crawls.pop(session_id)
    if session is not None:
        await session.stop()
        logger.info("Crawl session %s reset", session_id)
    return RedirectResponse(url="/knowledge-graph", status_code=303)


@router.get("/{session_id}/export/{kind}")
async def export_redirect(request: Request, session_id: str, kind: str):
    session = _session(request, session_id)
    if not session.site_id:
        raise HTTPException(status_code=404, detail="No site to export")
    try:
        target = request.app.state.crawl_client.export_url(session.site_id, kind)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return RedirectResponse(url=target, status_code=307)
