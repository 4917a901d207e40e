# readiness/audit/capture.py
"""
Rasterizes the rendered audit report into CapturedSection objects.

The report template marks every exportable block with a ``data-pdf-section``
attribute. Main sections are captured first, then each recommendation card on
its own, so cards can be laid out atomically.
"""
import io
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from PIL import Image
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..config import Settings
from ..errors import ExportAbortedError
from .paginator import RECOMMENDATION, CapturedSection, PageGeometry

logger = logging.getLogger(__name__)

SECTION_SELECTOR = "#report-content [data-pdf-section]"
CONTAINER = "recommendations"
CAPTURE_CLASS = "pdf-capture-mode"

_TOGGLE_CAPTURE_MODE = """(on) => {
    const targets = [document.getElementById('report-content'), document.body];
    for (const el of targets) {
        if (el) el.classList.toggle('%s', on);
    }
}""" % CAPTURE_CLASS


@asynccontextmanager
async def capture_mode(page):
    """Force light backgrounds while sections are screenshotted; always restored."""
    await page.evaluate(_TOGGLE_CAPTURE_MODE, True)
    try:
        yield page
    finally:
        await page.evaluate(_TOGGLE_CAPTURE_MODE, False)


async def _visible_sections(page):
    main, cards = [], []
    for handle in await page.query_selector_all(SECTION_SELECTOR):
        name = await handle.get_attribute("data-pdf-section")
        if not await handle.is_visible():
            continue
        box = await handle.bounding_box()
        if not box or box["width"] == 0 or box["height"] == 0:
            continue
        if name == CONTAINER:
            continue
        (cards if name == RECOMMENDATION else main).append((name, handle))
    return main, cards


async def capture_sections(page, geometry: PageGeometry) -> List[CapturedSection]:
    main, cards = await _visible_sections(page)
    logger.info("Found %d main sections and %d recommendation cards", len(main), len(cards))
    if not main and not cards:
        raise ExportAbortedError("No sections to export. Please run an audit first.")

    captured: List[CapturedSection] = []
    async with capture_mode(page):
        for name, handle in main + cards:
            try:
                png = await handle.screenshot(type="png")
                image = Image.open(io.BytesIO(png))
                image.load()
            except (PlaywrightError, OSError) as e:
                logger.error("Failed to capture section %s: %s", name, e)
                continue

            section = CapturedSection.from_image(name, image, geometry.content_width)
            if section:
                captured.append(section)

    if not captured:
        raise ExportAbortedError("No sections could be captured", reason="capture-failed")

    logger.info("Captured %d sections", len(captured))
    return captured


async def render_and_capture(
    html: str, settings: Settings, geometry: PageGeometry, stylesheet: Optional[Path] = None
) -> List[CapturedSection]:
    """Load the report HTML in headless Chromium and capture its sections."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        try:
            page = await browser.new_page(
                viewport={"width": settings.CAPTURE_WINDOW_WIDTH, "height": 900},
                device_scale_factor=settings.CAPTURE_SCALE,
            )
            await page.set_content(html, wait_until="load")
            if stylesheet and stylesheet.is_file():
                await page.add_style_tag(path=str(stylesheet))
            return await capture_sections(page, geometry)
        finally:
            await browser.close()
