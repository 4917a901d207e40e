# readiness/routers/audit.py
import json
import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from ..audit.report import build_report_view
from ..dependencies import render, templates, wants_json
from ..errors import AuditServiceError, ExportAbortedError, ExportInProgressError, ValidationError
from ..utils.urls import hostname_of, normalize_target_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["Audit"])

# shown on the results page when a PDF export is turned down
EXPORT_NOTICES = {
    "no-sections": "No sections to export. Please run an audit first.",
    "capture-failed": "The report could not be captured. Please try the export again.",
    "busy": "A PDF for this report is already being generated. Please wait for it to finish.",
}


def render_report_html(result: Dict[str, Any]) -> str:
    """Standalone report document used for PDF capture."""
    return templates.get_template("audit/export.html").render(report=build_report_view(result))


def _stored(request: Request, audit_id: str) -> Dict[str, Any]:
    record = request.app.state.audits.get(audit_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Audit not found or expired. Please run a new audit.")
    return record


@router.get("", response_class=HTMLResponse)
async def audit_form(request: Request):
    return render(request, "audit/form.html", url="", error=None)


@router.post("", response_class=HTMLResponse)
async def run_audit(request: Request, url: str = Form("")):
    try:
        target = normalize_target_url(url)
    except ValidationError as e:
        return render(request, "audit/form.html", status_code=400, url=url, error=e.message)

    try:
        result = await request.app.state.audit_client.analyze(target)
    except AuditServiceError as e:
        return render(request, "audit/form.html", status_code=502, url=url, error=e.message, service_error=True)

    audit_id = uuid.uuid4().hex
    request.app.state.audits.put(audit_id, {"id": audit_id, "url": target, "result": result})
    logger.info("Audit %s stored for %s", audit_id, target)
    return RedirectResponse(url=f"/audit/{audit_id}", status_code=303)


@router.get("/{audit_id}", response_class=HTMLResponse)
async def audit_results(request: Request, audit_id: str):
    record = _stored(request, audit_id)
    notice = EXPORT_NOTICES.get(request.query_params.get("exportError", ""))
    return render(
        request,
        "audit/results.html",
        audit_id=audit_id,
        report=build_report_view(record["result"]),
        exporting=request.app.state.exporter.is_exporting(audit_id),
        export_error=notice,
    )


@router.get("/{audit_id}/export.json")
async def export_json(request: Request, audit_id: str):
    record = _stored(request, audit_id)
    filename = f"ai-readiness-report-{hostname_of(record['url'])}.json"
    return JSONResponse(
        content=json.loads(json.dumps(record["result"], default=str)),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{audit_id}/export.pdf")
async def export_pdf(request: Request, audit_id: str):
    record = _stored(request, audit_id)
    try:
        filename, pdf = await request.app.state.exporter.export_pdf(audit_id, record["result"], url=record["url"])
    except ExportAbortedError as e:
        if wants_json(request):
            raise
        return RedirectResponse(url=f"/audit/{audit_id}?exportError={e.reason}", status_code=303)
    except ExportInProgressError:
        if wants_json(request):
            raise
        return RedirectResponse(url=f"/audit/{audit_id}?exportError=busy", status_code=303)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
