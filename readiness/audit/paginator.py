# readiness/audit/paginator.py
"""
Report paginator.

Captured report sections (raster images) are laid out top-to-bottom on A4
pages that each carry a coloured header band and a footer. Layout happens in
two steps:

1. ``plan_layout`` decides, without touching any PDF machinery, which section
   (or which horizontal strip of a section) goes on which page and where.
2. ``render_report`` draws that plan with reportlab and appends the fixed
   sales page.

Placement rules:
- a section that does not fit in the space left on a page that already holds
  something starts a new page;
- recommendation cards (atomic sections) are never split;
- any other section taller than a whole page body is cut into strips, each
  filling the rest of its page, until the raster is consumed.
"""
from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..utils.urls import hostname_of
from .sales_page import draw_sales_page

logger = logging.getLogger(__name__)

RECOMMENDATION = "recommendation"
JPEG_QUALITY = 85

HEADER_BLUE = (59, 130, 246)
FOOTER_GREY = (128, 128, 128)


def _rgb(r: int, g: int, b: int):
    return r / 255.0, g / 255.0, b / 255.0


@dataclass(frozen=True)
class PageGeometry:
    """Page box in millimetres."""

    width: float = A4[0] / mm
    height: float = A4[1] / mm
    header_height: float = 15.0
    header_band: float = 12.0
    footer_height: float = 12.0
    margin: float = 8.0
    gap: float = 4.0

    @property
    def content_width(self) -> float:
        return self.width - self.margin * 2

    @property
    def body_height(self) -> float:
        return self.height - self.header_height - self.footer_height


@dataclass
class CapturedSection:
    name: str
    image: Image.Image
    width: float
    height: float
    is_atomic: bool

    @property
    def pixels_per_mm(self) -> float:
        return self.image.height / self.height

    @classmethod
    def from_image(cls, name: str, image: Image.Image, content_width: float) -> Optional["CapturedSection"]:
        """Scale a raster to the content width; the height always follows the raster's own aspect ratio."""
        if image.width == 0 or image.height == 0:
            logger.warning("Section %s has zero dimensions, skipping", name)
            return None
        height = image.height * content_width / image.width
        logger.debug("Section %s: raster %dx%d, pdf height: %.1fmm", name, image.width, image.height, height)
        return cls(name=name, image=image, width=content_width, height=height, is_atomic=name == RECOMMENDATION)


@dataclass(frozen=True)
class Placement:
    section_index: int
    name: str
    y: float  # offset from the top of the page body, mm
    height: float  # mm
    source_top: int  # first raster row
    source_rows: int  # raster rows covered
    is_strip: bool = False


@dataclass
class PagePlan:
    number: int
    placements: List[Placement] = field(default_factory=list)


@dataclass
class LayoutPlan:
    geometry: PageGeometry
    pages: List[PagePlan]
    estimated_page_count: int  # ceil(total height / body) + 1

    @property
    def emitted_page_count(self) -> int:
        """Content pages plus the closing sales page; printed as N in every header."""
        return len(self.pages) + 1

    def assignment(self) -> List[tuple]:
        return [(p.number, pl.section_index, pl.source_top, pl.source_rows) for p in self.pages for pl in p.placements]


def estimate_page_count(sections: Sequence[CapturedSection], geometry: PageGeometry) -> int:
    total_height = sum(s.height + geometry.gap for s in sections)
    return math.ceil(total_height / geometry.body_height) + 1


def plan_layout(sections: Sequence[CapturedSection], geometry: Optional[PageGeometry] = None) -> LayoutPlan:
    geometry = geometry or PageGeometry()
    body = geometry.body_height
    pages = [PagePlan(number=1)]
    cursor = 0.0

    def new_page():
        nonlocal cursor
        pages.append(PagePlan(number=len(pages) + 1))
        cursor = 0.0

    for index, section in enumerate(sections):
        available = body - cursor

        if section.height > available and cursor > 0:
            new_page()

        if section.is_atomic or section.height <= body:
            pages[-1].placements.append(
                Placement(index, section.name, cursor, section.height, 0, section.image.height)
            )
            cursor += section.height + geometry.gap
            continue

        logger.info("Section %s is larger than a page (%.1fmm > %.1fmm), splitting", section.name, section.height, body)
        ppm = section.pixels_per_mm
        remaining = section.image.height
        source_top = 0
        while remaining > 0:
            rows = min(remaining, max(1, math.floor((body - cursor) * ppm)))
            strip_height = rows / ppm
            pages[-1].placements.append(
                Placement(index, section.name, cursor, strip_height, source_top, rows, is_strip=True)
            )
            remaining -= rows
            source_top += rows
            cursor += strip_height
            if remaining > 0:
                new_page()

    return LayoutPlan(geometry=geometry, pages=pages, estimated_page_count=estimate_page_count(sections, geometry))


# ─────────────────────────────────────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Logo:
    reader: ImageReader
    aspect_ratio: float


def load_logo(path: Optional[Path]) -> Optional[Logo]:
    if not path:
        return None
    try:
        with Image.open(path) as img:
            img.load()
            aspect = img.width / img.height
            buf = io.BytesIO()
            img.save(buf, format="PNG")
        buf.seek(0)
        logger.info("Logo loaded: %s (aspect ratio %.2f)", path, aspect)
        return Logo(reader=ImageReader(buf), aspect_ratio=aspect)
    except (OSError, ZeroDivisionError) as e:
        logger.warning("Could not load logo for PDF %s: %s", path, e)
        return None


@dataclass
class ReportContext:
    url: str
    generated_on: date = field(default_factory=date.today)
    logo: Optional[Logo] = None
    white_logo: Optional[Logo] = None
    contact_email: str = "hello@interon.co.za"
    contact_phone: str = "+27 83 326 9469"
    whatsapp_url: str = "https://wa.me/27833269469"
    website_url: str = "https://interon.co.za"


def _jpeg(image: Image.Image) -> ImageReader:
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
    buf.seek(0)
    return ImageReader(buf)


class PageCanvas:
    """mm-and-top-left coordinates over a reportlab canvas."""

    def __init__(self, c: canvas.Canvas, geometry: PageGeometry):
        self.c = c
        self.g = geometry

    def y(self, top_mm: float) -> float:
        return (self.g.height - top_mm) * mm

    def fill(self, r, g, b):
        self.c.setFillColorRGB(*_rgb(r, g, b))

    def rect(self, x, top, w, h, radius: float = 0):
        if radius:
            self.c.roundRect(x * mm, self.y(top + h), w * mm, h * mm, radius * mm, stroke=0, fill=1)
        else:
            self.c.rect(x * mm, self.y(top + h), w * mm, h * mm, stroke=0, fill=1)

    def text(self, x, baseline, value: str, font="Helvetica", size=10, align="left"):
        self.c.setFont(font, size)
        if align == "center":
            self.c.drawCentredString(x * mm, self.y(baseline), value)
        elif align == "right":
            self.c.drawRightString(x * mm, self.y(baseline), value)
        else:
            self.c.drawString(x * mm, self.y(baseline), value)

    def image(self, reader: ImageReader, x, top, w, h):
        self.c.drawImage(reader, x * mm, self.y(top + h), w * mm, h * mm, mask="auto")

    def link(self, url: str, x, top, w, h):
        self.c.linkURL(url, (x * mm, self.y(top + h), (x + w) * mm, self.y(top)), relative=0)


def draw_header(pc: PageCanvas, context: ReportContext, page_number: int, page_count: int) -> None:
    g = pc.g
    pc.fill(*HEADER_BLUE)
    pc.rect(0, 0, g.width, g.header_band)
    pc.fill(255, 255, 255)
    pc.text(g.margin, 8, f"Audit for {context.url}", font="Helvetica-Bold", size=10)
    pc.text(g.width - g.margin - 22, 8, f"Page {page_number} of {page_count}", size=8)
    pc.fill(0, 0, 0)


def draw_footer(pc: PageCanvas, context: ReportContext) -> None:
    g = pc.g
    if context.logo:
        logo_height = 5
        logo_width = logo_height * context.logo.aspect_ratio
        pc.image(context.logo.reader, g.width - g.margin - logo_width, g.height - 8, logo_width, logo_height)

    pc.fill(*FOOTER_GREY)
    generated = f"{context.generated_on.day} {context.generated_on:%B %Y}"
    pc.text(g.margin, g.height - 5, f"Generated on {generated} | AI Website Readiness Auditor", size=7)
    pc.fill(0, 0, 0)


def render_report(
    plan: LayoutPlan,
    sections: Sequence[CapturedSection],
    context: ReportContext,
) -> bytes:
    """Draw the planned pages and the closing sales page; returns the PDF bytes."""
    g = plan.geometry
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(g.width * mm, g.height * mm))
    c.setTitle(f"AI Readiness Report - {context.url}")
    pc = PageCanvas(c, g)
    page_count = plan.emitted_page_count

    logger.info("Placing %d sections on %d pages", len(sections), page_count)
    for page in plan.pages:
        draw_header(pc, context, page.number, page_count)
        draw_footer(pc, context)
        for pl in page.placements:
            section = sections[pl.section_index]
            image = section.image
            if pl.is_strip:
                image = image.crop((0, pl.source_top, image.width, pl.source_top + pl.source_rows))
            pc.image(_jpeg(image), g.margin, g.header_height + pl.y, section.width, pl.height)
        c.showPage()

    draw_sales_page(pc, context)
    draw_footer(pc, context)
    c.showPage()
    c.save()

    logger.info("PDF complete: %d pages total", page_count)
    return buf.getvalue()


def report_filename(url: str, on: Optional[date] = None) -> str:
    on = on or date.today()
    return f"ai-readiness-report-{hostname_of(url)}-{on.isoformat()}.pdf"
