"""PDF service — renders the card catalog into the product PDF.

One card per page. The layout is a simplified take on the web app's card:
page background, rounded card with a vertical two-colour gradient, header
label with separator, title, subtitle, and the description anchored to the
bottom of the card. Built-in Helvetica fonts, no icons.

Usage:
    flask generate-pdf
    flask generate-pdf --cards path/to/cards.json --output out.pdf
"""

import json
import logging
import os
import re

from reportlab.lib.colors import HexColor
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
DEFAULT_CARDS_PATH = os.path.join(DATA_DIR, "cards.json")
DEFAULT_OUTPUT_PATH = os.path.join(DATA_DIR, "la-mirada-creativa.pdf")

# Card geometry, in points
CARD_W = 340
CARD_H = 550
PAGE_PAD = 18
PAGE_W = CARD_W + PAGE_PAD * 2
PAGE_H = CARD_H + PAGE_PAD * 2
CARD_R = 12
CARD_PAD = 24
CONTENT_X = PAGE_PAD + CARD_PAD
CONTENT_W = CARD_W - CARD_PAD * 2
CONTENT_TOP = PAGE_H - PAGE_PAD - CARD_PAD     # reportlab y grows upwards
CONTENT_BOTTOM = PAGE_PAD + CARD_PAD

PAGE_BG = "#f4f4f4"
GRADIENT_STRIPS = 50

F_LABEL = 11
F_TITLE = 24
F_TITLE_COVER = 32
F_SUBTITLE = 14
F_DESC = 14.4
DESC_LEADING = F_DESC + 3
PARAGRAPH_GAP = 14

DEFAULT_STYLE = {
    "bg": "#FFFFFF",
    "bgEnd": "#F2F2F2",
    "text": "#1A1A1A",
    "accent": "#E4572E",
    "theme": "light",
}

TYPE_LABELS = {
    "presentation": "ME PRESENTO",
    "syllabus": "LA MIRADA CREATIVA",
    "rules": "LA MIRADA CREATIVA",
    "intro": "INTRODUCCIÓN",
    "ready": "ESTÁS PREPARADO",
    "special": "MISIÓN ESPECIAL",
    "congrats": "FELICIDADES",
    "closing": "CIERRE",
}

_EMOJI_RE = re.compile(
    "[\U0001F300-\U0001FAFF\u2600-\u27BF\uFE00-\uFE0F\u200D\u20E3\U000E0020-\U000E007F]"
)


def load_catalog(path):
    """Read {"cards": [...], "styles": {...}} from a JSON file."""
    with open(path, encoding="utf-8") as f:
        catalog = json.load(f)
    cards = catalog.get("cards") or []
    if not cards:
        raise ValueError(f"No cards found in {path}")
    return cards, catalog.get("styles") or {}


def mix_colors(hex1, hex2, ratio):
    """Linear blend of two #rrggbb colours."""
    c1 = HexColor(hex1)
    c2 = HexColor(hex2)
    r = c1.red + (c2.red - c1.red) * ratio
    g = c1.green + (c2.green - c1.green) * ratio
    b = c1.blue + (c2.blue - c1.blue) * ratio
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))


def clean_description(text):
    return _EMOJI_RE.sub("", text or "").strip()


def label_for(card):
    """Header label for a card, e.g. 'Día 12 / 365' or 'BLOQUE 3'."""
    if card.get("day"):
        return f"Día {card['day']} / 365"
    card_type = card.get("type")
    if card_type == "block-cover":
        return f"BLOQUE {card.get('blockNumber', '')}".strip()
    return TYPE_LABELS.get(card_type, "")


def style_for(card, styles):
    style = dict(DEFAULT_STYLE)
    style.update(styles.get(card.get("style"), {}))
    return style


class CardRenderer:
    """Draws cards onto a reportlab canvas, one page each."""

    def __init__(self, c):
        self.c = c

    def _fill(self, color, alpha=1.0):
        self.c.setFillColor(HexColor(color))
        self.c.setFillAlpha(alpha)

    def _draw_background(self, style):
        c = self.c
        self._fill(PAGE_BG)
        c.rect(0, 0, PAGE_W, PAGE_H, stroke=0, fill=1)

        c.saveState()
        path = c.beginPath()
        path.roundRect(PAGE_PAD, PAGE_PAD, CARD_W, CARD_H, CARD_R)
        c.clipPath(path, stroke=0, fill=0)
        strip_h = CARD_H / GRADIENT_STRIPS
        for i in range(GRADIENT_STRIPS):
            # Top strip is bgEnd, bottom strip is bg
            self._fill(mix_colors(style.get("bgEnd") or style["bg"], style["bg"], i / GRADIENT_STRIPS))
            top = PAGE_PAD + CARD_H - i * strip_h
            c.rect(PAGE_PAD, top - strip_h - 1, CARD_W, strip_h + 1, stroke=0, fill=1)
        c.restoreState()

        light = style.get("theme") == "light"
        c.setStrokeColor(HexColor("#d0d0d0" if light else "#3a3a3a"))
        c.setLineWidth(1)
        c.roundRect(PAGE_PAD, PAGE_PAD, CARD_W, CARD_H, CARD_R, stroke=1, fill=0)

    def _draw_lines(self, lines, font, size, y, color, alpha=1.0, centered=False, leading=None):
        """Draw *lines* top-down starting at baseline *y*; return the next baseline."""
        c = self.c
        leading = leading or size * 1.2
        c.setFont(font, size)
        self._fill(color, alpha)
        for line in lines:
            if centered:
                c.drawCentredString(CONTENT_X + CONTENT_W / 2, y, line)
            else:
                c.drawString(CONTENT_X, y, line)
            y -= leading
        self.c.setFillAlpha(1.0)
        return y

    def _draw_header(self, card, style):
        label = label_for(card)
        y = CONTENT_TOP - F_LABEL
        if not label and not card.get("block"):
            return CONTENT_TOP - 8

        self._draw_lines([label], "Helvetica", F_LABEL, y, style["text"], alpha=0.6)
        if card.get("block"):
            self.c.setFont("Helvetica", F_LABEL)
            self._fill(style["accent"])
            self.c.drawRightString(CONTENT_X + CONTENT_W, y, card["block"])

        sep_y = y - 12
        light = style.get("theme") == "light"
        self._fill("#d0d0d0" if light else "#ffffff", 1.0 if light else 0.15)
        self.c.rect(CONTENT_X, sep_y, CONTENT_W, 0.5, stroke=0, fill=1)
        self.c.setFillAlpha(1.0)
        return sep_y - 16

    def _draw_description(self, card, style):
        text = clean_description(card.get("desc"))
        if not text:
            return
        paragraphs = [
            " ".join(line.strip() for line in p.splitlines() if line.strip())
            for p in text.split("\n\n")
        ]
        paragraphs = [p for p in paragraphs if p]
        wrapped = [simpleSplit(p, "Helvetica", F_DESC, CONTENT_W) for p in paragraphs]

        height = sum(len(lines) * DESC_LEADING for lines in wrapped)
        height += PARAGRAPH_GAP * (len(wrapped) - 1)
        y = CONTENT_BOTTOM + height - F_DESC
        for lines in wrapped:
            y = self._draw_lines(
                lines, "Helvetica", F_DESC, y, style["text"], alpha=0.85, leading=DESC_LEADING
            )
            y -= PARAGRAPH_GAP

    def _draw_cover(self, card, style):
        c = self.c
        y = PAGE_PAD + CARD_H * 0.7
        y = self._draw_lines(
            ["LA MIRADA", "CREATIVA"], "Helvetica-Bold", F_TITLE_COVER, y,
            style["text"], centered=True, leading=F_TITLE_COVER + 2,
        )
        line_y = y + F_TITLE_COVER - 20
        self._fill(style["accent"])
        c.rect(PAGE_PAD + CARD_W / 2 - 25, line_y, 50, 2, stroke=0, fill=1)

        if card.get("subtitle"):
            lines = simpleSplit(card["subtitle"], "Helvetica", F_SUBTITLE, CONTENT_W)
            self._draw_lines(
                lines, "Helvetica", F_SUBTITLE, line_y - 18 - F_SUBTITLE,
                style["text"], alpha=0.7, centered=True,
            )
        if card.get("author"):
            self._draw_lines(
                [card["author"]], "Helvetica", 10, CONTENT_BOTTOM,
                style["text"], alpha=0.4, centered=True,
            )

    def _draw_content(self, card, style):
        y = self._draw_header(card, style)

        cover_size = card.get("type") == "block-cover"
        title_size = F_TITLE_COVER if cover_size else F_TITLE
        title_lines = simpleSplit(card.get("title", ""), "Helvetica-Bold", title_size, CONTENT_W)
        y = self._draw_lines(title_lines, "Helvetica-Bold", title_size, y - title_size, style["text"])

        if card.get("subtitle"):
            lines = simpleSplit(card["subtitle"], "Helvetica", F_SUBTITLE, CONTENT_W)
            self._draw_lines(lines, "Helvetica", F_SUBTITLE, y - 4, style["text"], alpha=0.7)

        self._draw_description(card, style)

    def render(self, card, style):
        self._draw_background(style)
        if card.get("type") == "cover":
            self._draw_cover(card, style)
        else:
            self._draw_content(card, style)
        self.c.showPage()


def render_cards_pdf(cards, styles, output_path):
    """Write one page per card to *output_path*. Returns the page count."""
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    c = canvas.Canvas(output_path, pagesize=(PAGE_W, PAGE_H))
    c.setTitle("La Mirada Creativa - 365 días de entrenamiento visual")
    c.setAuthor("Rafael A.")
    c.setSubject("Entrenamiento visual fotográfico")
    c.setCreator("La Mirada Creativa")

    renderer = CardRenderer(c)
    for card in cards:
        renderer.render(card, style_for(card, styles))
    c.save()

    logger.info(f"PDF generated: {output_path} ({len(cards)} pages)")
    return len(cards)
