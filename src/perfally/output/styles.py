"""Report palette and paragraph styles (built-in Helvetica, no font files)."""

from __future__ import annotations

import logging
import re

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet

from perfally.grading import GRADE_BACKGROUNDS, GRADE_COLORS

logger = logging.getLogger(__name__)

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"

DEFAULT_ACCENT = "#2563eb"

INK = colors.HexColor("#111827")
MUTED = colors.HexColor("#6b7280")
SUBTLE = colors.HexColor("#374151")
RULE = colors.HexColor("#e5e7eb")
PANEL = colors.HexColor("#f9fafb")
# Unmeasured values are neutral, never graded
NEUTRAL = colors.HexColor("#9ca3af")
NEUTRAL_BG = colors.HexColor("#f3f4f6")

GRADE_INK = {grade: colors.HexColor(value) for grade, value in GRADE_COLORS.items()}
GRADE_FILL = {grade: colors.HexColor(value) for grade, value in GRADE_BACKGROUNDS.items()}

DIFFICULTY_GRADES = {"Easy": "good", "Medium": "needs-improvement", "Hard": "poor"}

_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def grade_ink(grade: str | None) -> colors.Color:
    return GRADE_INK[grade] if grade else NEUTRAL


def grade_fill(grade: str | None) -> colors.Color:
    return GRADE_FILL[grade] if grade else NEUTRAL_BG


def resolve_accent(value: str | None, default: str = DEFAULT_ACCENT) -> colors.Color:
    """Parse a ``#rgb`` / ``#rrggbb`` accent, falling back to ``default``."""
    if value:
        value = value.strip()
        if _HEX_RE.match(value):
            if len(value) == 4:
                value = "#" + "".join(ch * 2 for ch in value[1:])
            return colors.HexColor(value)
        logger.warning("Invalid accent color %r, using %s", value, default)
    return colors.HexColor(default)


def hex_of(color: colors.Color) -> str:
    """``#rrggbb`` for inline ``<font color>`` markup."""
    return "#" + color.hexval()[2:]


def build_styles(accent: colors.Color) -> StyleSheet1:
    styles = getSampleStyleSheet()
    for style in styles.byName.values():
        style.fontName = BODY_FONT

    styles.add(ParagraphStyle(
        name="CoverTitle", fontName=BOLD_FONT, fontSize=26, leading=30,
        textColor=INK, spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        name="CoverUrl", fontName=BODY_FONT, fontSize=11, leading=14,
        textColor=MUTED, spaceAfter=18,
    ))
    styles.add(ParagraphStyle(
        name="SectionTitle", fontName=BOLD_FONT, fontSize=16, leading=20,
        textColor=accent, spaceAfter=10,
    ))
    styles.add(ParagraphStyle(
        name="H3", fontName=BOLD_FONT, fontSize=11, leading=14,
        textColor=INK, spaceBefore=8, spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name="Body", fontName=BODY_FONT, fontSize=10, leading=14, textColor=INK,
    ))
    styles.add(ParagraphStyle(
        name="Small", fontName=BODY_FONT, fontSize=8.5, leading=12, textColor=SUBTLE,
    ))
    styles.add(ParagraphStyle(
        name="Muted", fontName=BODY_FONT, fontSize=8.5, leading=12, textColor=MUTED,
    ))
    styles.add(ParagraphStyle(
        name="Badge", fontName=BOLD_FONT, fontSize=7.5, leading=10, textColor=MUTED,
    ))
    styles.add(ParagraphStyle(
        name="GaugeNumber", fontName=BOLD_FONT, fontSize=34, leading=38, alignment=TA_CENTER,
    ))
    styles.add(ParagraphStyle(
        name="CardValue", fontName=BOLD_FONT, fontSize=18, leading=22, alignment=TA_CENTER,
    ))
    styles.add(ParagraphStyle(
        name="CardLabel", fontName=BODY_FONT, fontSize=8, leading=10,
        alignment=TA_CENTER, textColor=MUTED,
    ))
    styles.add(ParagraphStyle(
        name="Cell", fontName=BODY_FONT, fontSize=9, leading=12, textColor=INK,
    ))
    return styles
