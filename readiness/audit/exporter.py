# readiness/audit/exporter.py
import asyncio
import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ..config import Settings
from ..errors import ExportInProgressError
from .capture import render_and_capture
from .paginator import (
    CapturedSection,
    PageGeometry,
    ReportContext,
    load_logo,
    plan_layout,
    render_report,
    report_filename,
)

logger = logging.getLogger(__name__)

Capture = Callable[..., Awaitable[List[CapturedSection]]]


class ReportExporter:
    """
    Builds the downloadable PDF for one audit result:
    render report HTML -> capture sections -> plan pages -> draw.

    A second export of the same audit while one is running is rejected.
    """

    def __init__(
        self,
        settings: Settings,
        render_html: Callable[[Dict[str, Any]], str],
        capture: Optional[Capture] = None,
        geometry: Optional[PageGeometry] = None,
    ):
        self.settings = settings
        self.render_html = render_html
        self.capture = capture or render_and_capture
        self.geometry = geometry or PageGeometry()
        self._active: Set[str] = set()

    @contextmanager
    def guard(self, audit_id: str):
        if audit_id in self._active:
            raise ExportInProgressError("An export for this audit is already running.")
        self._active.add(audit_id)
        try:
            yield
        finally:
            self._active.discard(audit_id)

    def is_exporting(self, audit_id: str) -> bool:
        return audit_id in self._active

    def _context(self, url: str, today: date) -> ReportContext:
        s = self.settings
        return ReportContext(
            url=url,
            generated_on=today,
            logo=load_logo(s.REPORT_LOGO_PATH),
            white_logo=load_logo(s.REPORT_WHITE_LOGO_PATH),
            contact_email=s.CONTACT_EMAIL,
            contact_phone=s.CONTACT_PHONE,
            whatsapp_url=s.WHATSAPP_URL,
            website_url=s.SITE_URL,
        )

    async def export_pdf(
        self, audit_id: str, result: Dict[str, Any], url: Optional[str] = None, today: Optional[date] = None
    ) -> Tuple[str, bytes]:
        today = today or date.today()
        url = url or result.get("url", "")

        with self.guard(audit_id):
            logger.info("Starting PDF export for %s", url)
            html = self.render_html(result)
            stylesheet = self.settings.STATIC_DIR / "css" / "site.css"
            sections = await self.capture(html, self.settings, self.geometry, stylesheet)

            plan = plan_layout(sections, self.geometry)
            context = self._context(url, today)
            pdf = await asyncio.to_thread(render_report, plan, sections, context)

        filename = report_filename(url, today)
        logger.info("Saving as: %s", filename)
        return filename, pdf
