# proposal_app/styling/proposal/design.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LEGAL, LETTER
from reportlab.lib.units import mm

from proposal_app.styling.proposal.style import BLACK, RGB, TextStyle


class GeometryError(ValueError):
    """Unknown page size, or margins that leave no room for content."""


# Page sizes in points (ReportLab) keyed by the designer's selector.
PAGE_SIZES = {
    "A4": A4,
    "LETTER": LETTER,
    "LEGAL": LEGAL,
}

THEMES = ("professional", "modern", "minimal", "creative")

# Base-14 PDF families: (regular, bold, italic, bold italic)
FONT_FAMILIES = {
    "Helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "Times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "Courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def hex_to_rgb(value: Optional[str], default: RGB = BLACK) -> RGB:
    """'#2563eb' -> (37, 99, 235); '#fff' is shorthand for '#ffffff'. Anything else gives `default`."""
    v = (value or "").strip()
    if not _HEX_RE.match(v):
        return default
    v = v.lstrip("#")
    if len(v) == 3:
        v = "".join(ch * 2 for ch in v)
    c = colors.HexColor("#" + v)
    return tuple(int(round(ch * 255)) for ch in c.rgb())  # type: ignore[return-value]


def pdf_font_family(logical_name: Optional[str]) -> str:
    """
    Map the designer's font choice onto a base-14 family.
    Web fonts (Inter, Roboto, ...) are not embedded; they render as Helvetica.
    """
    name = (logical_name or "").strip().lower()
    if any(k in name for k in ("mono", "courier", "code")):
        return "Courier"
    if "times" in name or "georgia" in name or ("serif" in name and "sans" not in name):
        return "Times"
    return "Helvetica"


def font_name(family: str, bold: bool, italic: bool) -> str:
    regular, b, i, bi = FONT_FAMILIES.get(family, FONT_FAMILIES["Helvetica"])
    if bold and italic:
        return bi
    if bold:
        return b
    if italic:
        return i
    return regular


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in millimetres."""

    page_width: float
    page_height: float
    margin_top: float = 25.0
    margin_right: float = 25.0
    margin_bottom: float = 25.0
    margin_left: float = 25.0

    def __post_init__(self) -> None:
        margins = (self.margin_top, self.margin_right, self.margin_bottom, self.margin_left)
        if not all(math.isfinite(v) for v in (self.page_width, self.page_height, *margins)):
            raise GeometryError(f"Page dimensions must be finite numbers: {self}")
        if any(m < 0 for m in margins):
            raise GeometryError(f"Margins must not be negative: {margins}")
        if self.content_width <= 0:
            raise GeometryError(
                f"No horizontal room for content: page width {self.page_width:.1f}mm, "
                f"margins {self.margin_left:.1f}mm + {self.margin_right:.1f}mm"
            )
        if self.content_height <= 0:
            raise GeometryError(
                f"No vertical room for content: page height {self.page_height:.1f}mm, "
                f"margins {self.margin_top:.1f}mm + {self.margin_bottom:.1f}mm"
            )

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right

    @property
    def content_height(self) -> float:
        return self.page_height - self.margin_top - self.margin_bottom

    @classmethod
    def from_page_size(
        cls,
        page_size: str,
        top: float = 25.0,
        right: float = 25.0,
        bottom: float = 25.0,
        left: float = 25.0,
    ) -> PageGeometry:
        key = (page_size or "").strip().upper()
        if key not in PAGE_SIZES:
            raise GeometryError(f"Unsupported page size: {page_size!r} (expected A4, Letter or Legal)")
        w_pt, h_pt = PAGE_SIZES[key]
        return cls(
            page_width=round(w_pt / mm, 2),
            page_height=round(h_pt / mm, 2),
            margin_top=float(top),
            margin_right=float(right),
            margin_bottom=float(bottom),
            margin_left=float(left),
        )


@dataclass(frozen=True)
class HeaderConfig:
    enabled: bool = True
    height: float = 60.0
    content: str = "Proposal Penawaran"
    show_logo: bool = True
    # data URL or bare base64 of a PNG/JPEG
    logo_image: Optional[str] = None
    image_position: str = "center"


@dataclass(frozen=True)
class FooterConfig:
    enabled: bool = True
    height: float = 40.0
    content: str = "© 2024 Your Company Name"
    show_page_numbers: bool = True


@dataclass(frozen=True)
class WatermarkConfig:
    enabled: bool = False
    text: str = "CONFIDENTIAL"
    opacity: float = 10.0

    @property
    def alpha(self) -> float:
        return max(0.0, min(100.0, float(self.opacity))) / 100.0


@dataclass(frozen=True)
class DesignSettings:
    theme: str = "professional"
    primary_color: str = "#2563eb"
    secondary_color: str = "#64748b"
    font_family: str = "Inter"
    font_size: float = 12.0
    line_height: float = 1.5
    page_size: str = "A4"
    # None -> page_size with the default 25mm margins
    geometry: Optional[PageGeometry] = None
    header: HeaderConfig = field(default_factory=HeaderConfig)
    footer: FooterConfig = field(default_factory=FooterConfig)
    watermark: WatermarkConfig = field(default_factory=WatermarkConfig)

    def __post_init__(self) -> None:
        sized = PageGeometry.from_page_size(self.page_size)
        if self.geometry is None:
            object.__setattr__(self, "geometry", sized)
        elif (self.geometry.page_width, self.geometry.page_height) != (sized.page_width, sized.page_height):
            raise GeometryError(
                f"Geometry {self.geometry.page_width}x{self.geometry.page_height}mm "
                f"does not match page size {self.page_size!r}"
            )

    @property
    def pdf_font_family(self) -> str:
        return pdf_font_family(self.font_family)

    @property
    def primary_rgb(self) -> RGB:
        return hex_to_rgb(self.primary_color)

    @property
    def secondary_rgb(self) -> RGB:
        return hex_to_rgb(self.secondary_color)

    def base_style(self) -> TextStyle:
        return TextStyle(font_size=float(self.font_size))
