# proposal_app/services/proposal_editor.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from proposal_app.logger import get_logger
from proposal_app.styling.proposal.composer import (
    KINDS,
    TITLES,
    Product,
    ProposalContent,
    ProposalTemplates,
    products_total,
)
from proposal_app.styling.proposal.design import (
    THEMES,
    DesignSettings,
    FooterConfig,
    HeaderConfig,
    PageGeometry,
    WatermarkConfig,
)

LOGGER = get_logger(__name__)


class PayloadError(ValueError):
    """The request JSON cannot be turned into a proposal."""


@dataclass
class ProposalRequest:
    content: ProposalContent
    templates: ProposalTemplates
    products: List[Product] = field(default_factory=list)
    settings: DesignSettings = field(default_factory=DesignSettings)


_GROUPED_RE = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
# archive column is Numeric(18, 2)
MAX_AMOUNT = Decimal("1e15")


def _dec(s: Any, field_name: str = "price") -> Decimal:
    """
    Numbers pass through; strings may carry the 'Rp' prefix and
    Indonesian dot grouping ('Rp1.500.000') or a comma decimal mark.
    """
    if s is None or s == "":
        return Decimal("0")
    if isinstance(s, bool):
        raise PayloadError(f"Invalid {field_name}: {s!r}")
    if isinstance(s, (int, float, Decimal)):
        d = Decimal(str(s))
    else:
        d = _parse_decimal_text(str(s), field_name)
    if not d.is_finite() or abs(d) >= MAX_AMOUNT:
        raise PayloadError(f"Invalid {field_name}: {s!r}")
    return d


def _parse_decimal_text(s: str, field_name: str) -> Decimal:
    t = s.replace("Rp", "").replace(" ", "").replace("\u00a0", "").strip()
    if _GROUPED_RE.match(t):
        t = t.replace(".", "")
    t = t.replace(",", ".")
    if not t:
        return Decimal("0")
    try:
        return Decimal(t)
    except InvalidOperation:
        raise PayloadError(f"Invalid {field_name}: {s!r}") from None


def _dec_or_none(s: Any, field_name: str) -> Optional[Decimal]:
    if s is None or s == "":
        return None
    return _dec(s, field_name)


def _str(v: Any) -> str:
    return "" if v is None else str(v)


def _num(v: Any, default: float, field_name: str) -> float:
    if v is None or v == "":
        return float(default)
    if isinstance(v, bool):
        raise PayloadError(f"Invalid {field_name}: {v!r}")
    try:
        n = float(v)
    except (TypeError, ValueError):
        raise PayloadError(f"Invalid {field_name}: {v!r}") from None
    if not math.isfinite(n):
        raise PayloadError(f"Invalid {field_name}: {v!r}")
    return n


def _obj(v: Any, field_name: str) -> dict:
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise PayloadError(f"{field_name} must be an object")
    return v


# =========================
# Design settings
# =========================

def json_to_design(j: Optional[dict]) -> DesignSettings:
    """
    Designer JSON (camelCase) -> DesignSettings. Missing keys take the
    designer defaults. Page geometry problems raise GeometryError.
    """
    j = _obj(j, "design")
    defaults = DesignSettings()

    theme = _str(j.get("theme") or defaults.theme).strip().lower()
    if theme not in THEMES:
        LOGGER.warning("Unknown theme %r; using %s", theme, defaults.theme)
        theme = defaults.theme

    margins = _obj(j.get("margins"), "design.margins")
    page_size = _str(j.get("pageSize") or defaults.page_size)
    geometry = PageGeometry.from_page_size(
        page_size,
        top=_num(margins.get("top"), 25, "margins.top"),
        right=_num(margins.get("right"), 25, "margins.right"),
        bottom=_num(margins.get("bottom"), 25, "margins.bottom"),
        left=_num(margins.get("left"), 25, "margins.left"),
    )

    h = _obj(j.get("header"), "design.header")
    hd = defaults.header
    header = HeaderConfig(
        enabled=bool(h.get("enabled", hd.enabled)),
        height=_num(h.get("height"), hd.height, "header.height"),
        content=_str(h.get("content", hd.content)),
        show_logo=bool(h.get("showLogo", hd.show_logo)),
        logo_image=h.get("logoImage") or None,
        image_position=_str(h.get("imagePosition") or hd.image_position),
    )

    f = _obj(j.get("footer"), "design.footer")
    fd = defaults.footer
    footer = FooterConfig(
        enabled=bool(f.get("enabled", fd.enabled)),
        height=_num(f.get("height"), fd.height, "footer.height"),
        content=_str(f.get("content", fd.content)),
        show_page_numbers=bool(f.get("showPageNumbers", fd.show_page_numbers)),
    )

    if header.height < 0 or footer.height < 0:
        raise PayloadError("header.height and footer.height must not be negative")

    w = _obj(j.get("watermark"), "design.watermark")
    wd = defaults.watermark
    watermark = WatermarkConfig(
        enabled=bool(w.get("enabled", wd.enabled)),
        text=_str(w.get("text", wd.text)),
        opacity=max(0.0, min(100.0, _num(w.get("opacity"), wd.opacity, "watermark.opacity"))),
    )

    font_size = _num(j.get("fontSize"), defaults.font_size, "fontSize")
    line_height = _num(j.get("lineHeight"), defaults.line_height, "lineHeight")
    if font_size <= 0 or line_height <= 0:
        raise PayloadError("fontSize and lineHeight must be positive")

    return DesignSettings(
        theme=theme,
        primary_color=_str(j.get("primaryColor") or defaults.primary_color),
        secondary_color=_str(j.get("secondaryColor") or defaults.secondary_color),
        font_family=_str(j.get("fontFamily") or defaults.font_family),
        font_size=font_size,
        line_height=line_height,
        page_size=page_size,
        geometry=geometry,
        header=header,
        footer=footer,
        watermark=watermark,
    )


# =========================
# Proposal
# =========================

def json_to_products(items: Any) -> List[Product]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise PayloadError("products must be a list")

    products: List[Product] = []
    for x in items:
        x = _obj(x, "product")
        products.append(
            Product(
                name=_str(x.get("name")),
                description=_str(x.get("description")),
                price=_dec(x.get("price"), "price"),
                cogs=_dec_or_none(x.get("cogs"), "cogs"),
                category=x.get("category") or None,
            )
        )
    return products


def json_to_proposal(j: dict) -> ProposalRequest:
    """
    body = {
      proposalKind, recipient{name, company, address}, letterDate,
      creator{name, position}, richTextSections{companyProfile?, serviceBenefits?,
      termsConditions?}, products[], design{}
    }
    """
    if not isinstance(j, dict):
        raise PayloadError("Request body must be a JSON object")

    kind = _str(j.get("proposalKind")).strip().lower()
    if kind not in KINDS:
        raise PayloadError(f"proposalKind must be one of {', '.join(KINDS)} (got {kind!r})")

    recipient = _obj(j.get("recipient"), "recipient")
    creator = _obj(j.get("creator"), "creator")
    sections = _obj(j.get("richTextSections"), "richTextSections")

    content = ProposalContent(
        kind=kind,
        recipient_name=_str(recipient.get("name")),
        recipient_company=_str(recipient.get("company")),
        recipient_address=_str(recipient.get("address")),
        letter_date=_str(j.get("letterDate")),
        creator_name=_str(creator.get("name")),
        creator_position=_str(creator.get("position")),
    )
    templates = ProposalTemplates(
        company_profile=sections.get("companyProfile") or None,
        service_benefits=sections.get("serviceBenefits") or None,
        terms_conditions=sections.get("termsConditions") or None,
    )

    return ProposalRequest(
        content=content,
        templates=templates,
        products=json_to_products(j.get("products")),
        settings=json_to_design(j.get("design")),
    )


def proposal_summary(req: ProposalRequest) -> dict:
    """Metadata kept for an archived proposal (no cost figures)."""
    c = req.content
    return {
        "kind": c.kind,
        "title": f"{TITLES[c.kind]} - {c.recipient_company or c.recipient_name}".strip(" -"),
        "recipient_name": c.recipient_name,
        "recipient_company": c.recipient_company,
        "creator_name": c.creator_name,
        "letter_date": c.letter_date,
        "total_amount": products_total(req.products),
        "product_count": len(req.products),
    }
