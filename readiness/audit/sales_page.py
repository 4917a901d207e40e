# readiness/audit/sales_page.py
"""Closing call-to-action page appended to every audit report PDF."""
from reportlab.lib.utils import simpleSplit

DEEP_BLUE = (30, 58, 138)
ORANGE = (249, 115, 22)
BLUE = (59, 130, 246)
WHITE = (255, 255, 255)
BODY_GREY = (75, 85, 99)
WHATSAPP_GREEN = (37, 211, 102)

LINE_HEIGHT = 1.15 * 0.3528  # mm per point of font size

MISSING = [
    "Customers asking AI for recommendations in your industry",
    "AI-generated answers that could feature YOUR business",
    "A competitive edge that grows more valuable every day",
]


def _paragraph(pc, x, top, text, width, size=9):
    for i, line in enumerate(simpleSplit(text, "Helvetica", size, width * 72 / 25.4)):
        pc.text(x, top + i * size * LINE_HEIGHT, line, size=size)


def draw_sales_page(pc, context) -> None:
    g = pc.g
    margin, width = g.margin, g.content_width

    pc.fill(*DEEP_BLUE)
    pc.rect(0, 0, g.width, 75)
    pc.fill(*ORANGE)
    pc.rect(0, 72, g.width, 3)

    y = 20
    logo = context.white_logo or context.logo
    if logo:
        logo_height = 12
        logo_width = logo_height * logo.aspect_ratio
        pc.image(logo.reader, (g.width - logo_width) / 2, y, logo_width, logo_height)
        y += logo_height + 8

    pc.fill(*WHITE)
    pc.text(g.width / 2, y + 5, "Don't Let AI Forget You", font="Helvetica-Bold", size=22, align="center")
    y += 15
    pc.fill(191, 219, 254)
    pc.text(g.width / 2, y + 5, "Your competitors are already optimising. Are you?", size=11, align="center")

    # the problem
    y = 90
    pc.fill(254, 242, 242)
    pc.rect(margin, y, width, 35, radius=2)
    pc.fill(185, 28, 28)
    pc.text(margin + 5, y + 8, "THE PROBLEM", size=9)
    pc.fill(127, 29, 29)
    pc.text(margin + 5, y + 17, "AI Can't Find Your Business", font="Helvetica-Bold", size=12)
    pc.fill(*BODY_GREY)
    _paragraph(
        pc, margin + 5, y + 25,
        "ChatGPT, Claude, Perplexity - they're the new search. "
        "But without proper optimisation, they don't know you exist.",
        width - 10,
    )

    # what you're missing
    y += 42
    pc.fill(255, 251, 235)
    pc.rect(margin, y, width, 40, radius=2)
    pc.fill(180, 83, 9)
    pc.text(margin + 5, y + 8, "WHAT YOU'RE MISSING", size=9)
    bullet_y = y + 17
    for bullet in MISSING:
        pc.fill(217, 119, 6)
        pc.text(margin + 5, bullet_y, ">", font="Helvetica-Bold", size=10)
        pc.fill(*BODY_GREY)
        pc.text(margin + 12, bullet_y, bullet, size=10)
        bullet_y += 7

    # the solution
    y += 47
    pc.fill(240, 253, 244)
    pc.rect(margin, y, width, 38, radius=2)
    pc.fill(21, 128, 61)
    pc.text(margin + 5, y + 8, "THE SOLUTION", size=9)
    pc.fill(22, 101, 52)
    pc.text(margin + 5, y + 18, "We Make AI Recommend You", font="Helvetica-Bold", size=13)
    pc.fill(*BODY_GREY)
    _paragraph(
        pc, margin + 5, y + 26,
        "Schema markup, AI-optimised content, GEO signals - we implement everything in this report "
        "so AI systems find, understand, and recommend your business.",
        width - 10,
    )

    # call to action
    y += 48
    pc.fill(*BLUE)
    pc.rect(margin, y, width, 55, radius=4)
    pc.fill(*WHITE)
    pc.text(g.width / 2, y + 14, "Ready to Get Found?", font="Helvetica-Bold", size=16, align="center")
    pc.fill(219, 234, 254)
    pc.text(g.width / 2, y + 23, "Book your free consultation today", size=10, align="center")

    contact_y = y + 35
    for x, box_width, label, value in (
        (margin + 8, 55, "EMAIL", context.contact_email),
        (margin + 68, 50, "PHONE", context.contact_phone),
    ):
        pc.fill(*WHITE)
        pc.rect(x, contact_y, box_width, 12, radius=2)
        pc.fill(*BLUE)
        pc.text(x + 4, contact_y + 4, label, size=8)
        pc.fill(30, 64, 175)
        pc.text(x + 4, contact_y + 9, value, font="Helvetica-Bold", size=8)

    button_x, button_width = margin + 123, 50
    pc.fill(*WHATSAPP_GREEN)
    pc.rect(button_x, contact_y, button_width, 12, radius=2)
    pc.fill(*WHITE)
    pc.text(button_x + button_width / 2, contact_y + 8, "WhatsApp Us", font="Helvetica-Bold", size=9, align="center")
    pc.link(context.whatsapp_url, button_x, contact_y, button_width, 12)

    y += 65
    pc.fill(*BLUE)
    pc.text(g.width / 2, y, context.website_url, font="Helvetica-Bold", size=11, align="center")
    pc.link(context.website_url, margin, y - 5, width, 10)
    pc.fill(0, 0, 0)
