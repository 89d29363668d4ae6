# proposal_app/styling/proposal/composer.py
from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional

from reportlab.lib.utils import ImageReader

from proposal_app.logger import get_logger
from proposal_app.styling.proposal.design import DesignSettings, GeometryError
from proposal_app.styling.proposal.flow import PageFlowRenderer, line_height_for, wrap_text
from proposal_app.styling.proposal.rich_text import RichTextParser, has_visible_text
from proposal_app.styling.proposal.style import BLACK, TextStyle
from proposal_app.styling.proposal.surface import ReportLabSurface, measure_text

LOGGER = get_logger(__name__)


class OutputEncodingError(RuntimeError):
    """The canvas could not be serialized to PDF bytes."""


KINDS = ("quotation", "partnership")

TITLES = {
    "quotation": "PROPOSAL PENAWARAN HARGA",
    "partnership": "PROPOSAL KERJASAMA",
}

OFFER_PHRASES = {
    "quotation": "penawaran harga",
    "partnership": "proposal kerjasama",
}

HEADING_COMPANY_PROFILE = "PROFIL PERUSAHAAN"
HEADING_SERVICE_BENEFITS = "KEUNTUNGAN LAYANAN KAMI"
HEADING_PRODUCTS = "RINCIAN LAYANAN"
HEADING_TERMS = "SYARAT DAN KETENTUAN"

CLOSING_LINES = (
    "Demikian proposal ini kami sampaikan. Atas perhatian dan kerjasamanya,",
    "kami ucapkan terima kasih.",
)

# =========================
# Layout constants (mm / pt)
# =========================

HEADER_FS = 16
HEADER_LOGO_H = 12.0
HEADER_LOGO_GAP = 6.0

WATERMARK_FS = 48
WATERMARK_GRAY = (200, 200, 200)

SECTION_HEADING_FS = 14
SECTION_HEADING_GAP = 10.0
SECTION_GAP = 15.0

TITLE_FS = 18
TITLE_GAP = 15.0
DATE_GAP = 10.0

LINE_STEP = 6.0
ADDRESS_MAX_W = 150.0
ADDRESS_GAP = 10.0
GREETING_GAP = 10.0
OPENING_MAX_W = 160.0
OPENING_GAP = 15.0

CLOSING_GAP = 20.0
SIGNATURE_GAP = 20.0

FOOTER_FS = 10

# Product grid
GRID_FS = 10
GRID_COL_RATIOS = (15, 60, 80, 35)  # No / Layanan / Deskripsi / Harga
GRID_CELL_PAD = 3.0
GRID_HEADER_STEP = 8.0
GRID_MIN_ROW_H = 8.0
GRID_DESC_LINE_H = 4.0
GRID_TOTAL_GAP = 5.0
GRID_RULE_COLOR = (217, 209, 206)


# =========================
# Data
# =========================

@dataclass
class Product:
    name: str
    description: str = ""
    price: Decimal = Decimal("0")
    # internal cost; never rendered
    cogs: Optional[Decimal] = None
    category: Optional[str] = None


@dataclass
class ProposalContent:
    kind: str = "quotation"
    recipient_name: str = ""
    recipient_company: str = ""
    recipient_address: str = ""
    letter_date: str = ""
    creator_name: str = ""
    creator_position: str = ""


@dataclass
class ProposalTemplates:
    company_profile: Optional[str] = None
    service_benefits: Optional[str] = None
    terms_conditions: Optional[str] = None


@dataclass
class GridRow:
    number: str
    name: str
    description_lines: List[str] = field(default_factory=list)
    price: str = ""
    height: float = GRID_MIN_ROW_H
    is_total: bool = False


# =========================
# Basics
# =========================

def _clean(s: Optional[str]) -> str:
    return (s or "").replace("\x00", "").strip()


def format_rupiah(amount) -> str:
    """1500000 -> 'Rp1.500.000' (dot grouping, no fraction digits)."""
    value = Decimal(str(amount if amount is not None else 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(int(value)):,}".replace(",", ".")
    return f"{sign}Rp{grouped}"


def products_total(products: List[Product]) -> Decimal:
    return sum((Decimal(str(p.price or 0)) for p in products), Decimal("0"))


def build_product_rows(products: List[Product], wrap_description: Callable[[str], List[str]]) -> List[GridRow]:
    """Item rows followed by the TOTAL row. Only `price` feeds the figures."""
    rows: List[GridRow] = []
    for idx, p in enumerate(products, start=1):
        desc_lines = wrap_description(_clean(p.description))
        rows.append(
            GridRow(
                number=str(idx),
                name=_clean(p.name),
                description_lines=desc_lines,
                price=format_rupiah(p.price),
                height=max(GRID_MIN_ROW_H, len(desc_lines) * GRID_DESC_LINE_H + 4),
            )
        )
    rows.append(GridRow(number="", name="TOTAL", price=format_rupiah(products_total(products)), is_total=True))
    return rows


def opening_sentence(kind: str, creator_name: str) -> str:
    phrase = OFFER_PHRASES.get(kind, OFFER_PHRASES["partnership"])
    return f"Kami dari {creator_name} bermaksud mengajukan {phrase} untuk layanan yang Bapak/Ibu butuhkan."


def _decode_image(data: str) -> ImageReader:
    payload = data.split(",", 1)[1] if data.startswith("data:") else data
    return ImageReader(io.BytesIO(base64.b64decode(payload, validate=False)))


# =========================
# Composer
# =========================

class DocumentComposer:
    """
    Draws one proposal onto a ReportLabSurface, section by section:

      header + watermark (every page) -> company profile -> title/date ->
      recipient -> greeting/opening -> service benefits -> product grid ->
      terms -> closing/signature -> footer (every page)

    Optional sections whose content has no visible text are skipped.
    A rich-text section that fails to render falls back to its raw string as
    wrapped plain text; the rest of the document is unaffected.
    """

    def __init__(self, settings: DesignSettings, surface: Optional[ReportLabSurface] = None):
        self.settings = settings
        self.geometry = settings.geometry
        self._check_body_room()
        self.surface = surface or ReportLabSurface(self.geometry, font_family=settings.pdf_font_family)
        self.parser = RichTextParser(settings.base_style())
        self.renderer = PageFlowRenderer(
            self.surface,
            line_height=settings.line_height,
            page_break=self._page_break,
            bottom_reserve=self._footer_reserve(),
        )
        self.y = self.geometry.margin_top
        self._logo: Optional[ImageReader] = None
        self._logo_loaded = False
        self._logo_size = (0, 0)

    # -- public -----------------------------------------------------------

    def compose(self, content: ProposalContent, templates: ProposalTemplates, products: List[Product]) -> bytes:
        self.layout(content, templates, products)
        try:
            return self.surface.finish()
        except Exception as e:
            raise OutputEncodingError(f"{type(e).__name__}: {e}") from e

    def layout(self, content: ProposalContent, templates: ProposalTemplates, products: List[Product]) -> None:
        LOGGER.info(
            "Composing %s proposal for %r (%d products)",
            content.kind,
            content.recipient_company or content.recipient_name,
            len(products),
        )
        self.y = self._start_page()

        self._rich_text_section(HEADING_COMPANY_PROFILE, templates.company_profile)
        self._title_block(content)
        self._recipient_block(content)
        self._opening(content)
        self._rich_text_section(HEADING_SERVICE_BENEFITS, templates.service_benefits)
        if products:
            self._product_grid(products)
        self._rich_text_section(HEADING_TERMS, templates.terms_conditions)
        self._closing(content)

        self._finish_page()
        LOGGER.info("Proposal laid out on %d page(s)", self.surface.page_number)

    # -- styles -----------------------------------------------------------

    def _body(self, **changes) -> TextStyle:
        return TextStyle(font_size=float(self.settings.font_size), color=BLACK).derive(**changes)

    def _heading(self, size: float) -> TextStyle:
        return TextStyle(bold=True, font_size=float(size), color=self.settings.primary_rgb)

    # -- pages ------------------------------------------------------------

    def _footer_reserve(self) -> float:
        f = self.settings.footer
        return float(f.height) if f.enabled else 0.0

    def _bottom(self) -> float:
        return self.geometry.page_height - self.geometry.margin_bottom - self._footer_reserve()

    def _check_body_room(self) -> None:
        """Header and footer reserves must leave room for at least one body line."""
        top, bottom = self._content_top(), self._bottom()
        line = line_height_for(self.settings.font_size, self.settings.line_height)
        if top + line > bottom:
            raise GeometryError(
                f"No room for body text: content starts at {top:.1f}mm, "
                f"footer area begins at {bottom:.1f}mm, one line needs {line:.1f}mm"
            )

    def _start_page(self) -> float:
        """Watermark first so body text lands on top of it, then the header. Returns the content top."""
        s = self.settings
        if s.watermark.enabled and _clean(s.watermark.text):
            style = TextStyle(font_size=WATERMARK_FS, color=WATERMARK_GRAY)
            self.surface.draw_watermark(_clean(s.watermark.text), style, alpha=s.watermark.alpha)

        top = self.geometry.margin_top
        if not s.header.enabled:
            return top

        y = top
        if s.header.show_logo and s.header.logo_image and self._draw_logo(top):
            y = top + HEADER_LOGO_H + HEADER_LOGO_GAP

        text = _clean(s.header.content)
        if text:
            self.surface.set_style(self._heading(HEADER_FS))
            self.surface.draw_text(self.geometry.page_width / 2.0, y, text, align="center", layer="header")

        return max(top + float(s.header.height), y)

    def _draw_logo(self, top: float) -> bool:
        if not self._logo_loaded:
            self._logo_loaded = True
            try:
                self._logo = _decode_image(self.settings.header.logo_image or "")
                self._logo_size = self._logo.getSize()
            except Exception as e:
                LOGGER.warning("Header logo could not be decoded; skipping it: %s", e)
                self._logo = None
        if self._logo is None:
            return False

        iw, ih = self._logo_size
        lw = HEADER_LOGO_H * (float(iw) / float(ih)) if ih else HEADER_LOGO_H
        g = self.geometry
        pos = (self.settings.header.image_position or "center").lower()
        if pos == "left":
            x = g.margin_left
        elif pos == "right":
            x = g.page_width - g.margin_right - lw
        else:
            x = (g.page_width - lw) / 2.0
        self.surface.draw_image(self._logo, x, top, lw, HEADER_LOGO_H)
        return True

    def _finish_page(self) -> None:
        f = self.settings.footer
        if not f.enabled:
            return
        g = self.geometry
        y = g.page_height - g.margin_bottom

        if f.show_page_numbers:
            self.surface.set_style(TextStyle(font_size=FOOTER_FS, color=BLACK))
            self.surface.draw_text(
                g.page_width - g.margin_right, y, f"Halaman {self.surface.page_number}", align="right", layer="footer"
            )
            y -= LINE_STEP

        text = _clean(f.content)
        if text:
            self.surface.set_style(TextStyle(font_size=FOOTER_FS, color=self.settings.secondary_rgb))
            self.surface.draw_text(g.page_width / 2.0, y, text, align="center", layer="footer")

    def _page_break(self) -> float:
        self._finish_page()
        self.surface.show_page()
        self.y = self._start_page()
        return self.y

    def _ensure(self, needed: float) -> None:
        if self.y + needed > self._bottom():
            self._page_break()

    # -- drawing helpers --------------------------------------------------

    def _line(self, text: str, style: TextStyle, step: float, *, x: Optional[float] = None, align: str = "left") -> None:
        self._ensure(step)
        self.surface.set_style(style)
        self.surface.draw_text(self.geometry.margin_left if x is None else x, self.y, text, align=align)
        self.y += step

    def _wrapped(self, text: str, style: TextStyle, max_w: float, step: float) -> int:
        lines = wrap_text(text, lambda s: measure_text(s, self.surface.font_family, style), max_w)
        for ln in lines:
            self._line(ln, style, step)
        return len(lines)

    # -- sections ---------------------------------------------------------

    def _rich_text_section(self, heading: str, markup: Optional[str]) -> None:
        if not has_visible_text(markup):
            return

        self._line(heading, self._heading(SECTION_HEADING_FS), SECTION_HEADING_GAP)

        start_y, start_page = self.y, self.surface.page_number
        base = self._body()
        try:
            instructions = self.parser.parse(markup)
            result = self.renderer.render(instructions, start_y, self.geometry, base)
            self.y = result.end_y
        except Exception:
            LOGGER.exception("Rendering section %s failed; falling back to plain text", heading)
            self.y = start_y if self.surface.page_number == start_page else self._content_top()
            self._wrapped(markup or "", base, self.geometry.content_width, LINE_STEP)

        self.y += SECTION_GAP

    def _content_top(self) -> float:
        h = self.settings.header
        return self.geometry.margin_top + (float(h.height) if h.enabled else 0.0)

    def _title_block(self, content: ProposalContent) -> None:
        self._line(TITLES.get(content.kind, TITLES["partnership"]), self._heading(TITLE_FS), TITLE_GAP)
        self._line(f"Tanggal: {_clean(content.letter_date)}", self._body(), DATE_GAP)

    def _recipient_block(self, content: ProposalContent) -> None:
        self._line("Kepada Yth,", self._body(), LINE_STEP)
        self._line(_clean(content.recipient_name), self._body(bold=True), LINE_STEP)
        self._line(_clean(content.recipient_company), self._body(), LINE_STEP)
        max_w = min(ADDRESS_MAX_W, self.geometry.content_width)
        self._wrapped(_clean(content.recipient_address), self._body(), max_w, LINE_STEP)
        self.y += ADDRESS_GAP

    def _opening(self, content: ProposalContent) -> None:
        self._line("Dengan hormat,", self._body(), GREETING_GAP)
        max_w = min(OPENING_MAX_W, self.geometry.content_width)
        self._wrapped(opening_sentence(content.kind, _clean(content.creator_name)), self._body(), max_w, LINE_STEP)
        self.y += OPENING_GAP

    def _closing(self, content: ProposalContent) -> None:
        for sentence in CLOSING_LINES:
            self._wrapped(sentence, self._body(), self.geometry.content_width, LINE_STEP)
        self.y += CLOSING_GAP - LINE_STEP
        self._line("Hormat kami,", self._body(), SIGNATURE_GAP)
        self._line(_clean(content.creator_name), self._body(bold=True), LINE_STEP)
        self._line(_clean(content.creator_position), self._body(), LINE_STEP)

    # -- product grid -----------------------------------------------------

    def _grid_columns(self) -> tuple[float, float, float, float, float]:
        """Returns (x_no, x_name, x_desc, desc_right, price_right)."""
        g = self.geometry
        unit = g.content_width / float(sum(GRID_COL_RATIOS))
        x_no = g.margin_left
        x_name = x_no + GRID_COL_RATIOS[0] * unit
        x_desc = x_name + GRID_COL_RATIOS[1] * unit
        desc_right = x_desc + GRID_COL_RATIOS[2] * unit - GRID_CELL_PAD
        price_right = g.margin_left + g.content_width
        return x_no, x_name, x_desc, desc_right, price_right

    def _grid_header(self) -> None:
        x_no, x_name, x_desc, _desc_right, price_right = self._grid_columns()
        self._ensure(GRID_HEADER_STEP + GRID_MIN_ROW_H)
        self.surface.set_style(TextStyle(bold=True, font_size=GRID_FS))
        for x, label in ((x_no, "No"), (x_name, "Layanan"), (x_desc, "Deskripsi")):
            self.surface.draw_text(x, self.y, label)
        self.surface.draw_text(price_right, self.y, "Harga", align="right")
        self.surface.draw_rule(x_no, price_right, self.y + 2.0, GRID_RULE_COLOR)
        self.y += GRID_HEADER_STEP

    def _product_grid(self, products: List[Product]) -> None:
        self._line(HEADING_PRODUCTS, self._heading(SECTION_HEADING_FS), SECTION_HEADING_GAP)

        x_no, x_name, x_desc, desc_right, price_right = self._grid_columns()
        cell = TextStyle(font_size=GRID_FS)
        desc_w = desc_right - x_desc
        rows = build_product_rows(
            products, lambda s: wrap_text(s, lambda t: self.surface.measure(t, cell), desc_w)
        )

        self._grid_header()
        for row in rows[:-1]:
            if self.y + row.height > self._bottom():
                self._page_break()
                self._grid_header()

            self.surface.set_style(cell)
            self.surface.draw_text(x_no, self.y, row.number)
            self.surface.draw_text(x_name, self.y, row.name)
            for i, ln in enumerate(row.description_lines):
                self.surface.draw_text(x_desc, self.y + i * GRID_DESC_LINE_H, ln)
            self.surface.draw_text(price_right, self.y, row.price, align="right")
            self.y += row.height

        total = rows[-1]
        self.y += GRID_TOTAL_GAP
        self._ensure(total.height)
        self.surface.draw_rule(x_no, price_right, self.y - GRID_TOTAL_GAP, GRID_RULE_COLOR)
        self.surface.set_style(TextStyle(bold=True, font_size=GRID_FS))
        self.surface.draw_text(desc_right, self.y, total.name, align="right")
        self.surface.draw_text(price_right, self.y, total.price, align="right")
        self.y += SECTION_GAP


def render_proposal(
    content: ProposalContent,
    templates: ProposalTemplates,
    products: List[Product],
    settings: DesignSettings,
) -> bytes:
    return DocumentComposer(settings).compose(content, templates, products)
