# proposal_app/styling/proposal/surface.py
from __future__ import annotations

import io
from typing import List

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from proposal_app.styling.base import DrawCall
from proposal_app.styling.proposal.design import PageGeometry, font_name
from proposal_app.styling.proposal.style import RGB, TextStyle

UNDERLINE_OFFSET = 0.6  # mm below the baseline
UNDERLINE_W = 0.5  # points


def measure_text(text: str, family: str, style: TextStyle) -> float:
    """Width of `text` in millimetres."""
    return stringWidth(text, font_name(family, style.bold, style.italic), style.font_size) / mm


def _rgb(c: RGB) -> tuple[float, float, float]:
    return c[0] / 255.0, c[1] / 255.0, c[2] / 255.0


class ReportLabSurface:
    """
    ReportLab canvas addressed in millimetres with a top-down y axis
    (the layout code counts y from the top of the page, ReportLab from the bottom).
    Every text placement is also recorded in `calls`.
    """

    def __init__(self, geometry: PageGeometry, font_family: str = "Helvetica"):
        self.geometry = geometry
        self.font_family = font_family
        self.page_number = 1
        self.calls: List[DrawCall] = []

        self._buf = io.BytesIO()
        self.canvas = canvas.Canvas(self._buf, pagesize=(geometry.page_width * mm, geometry.page_height * mm))
        self.style = TextStyle()
        self.set_style(self.style)

    # -- coordinates ------------------------------------------------------

    def _px(self, x: float) -> float:
        return x * mm

    def _py(self, y: float) -> float:
        return (self.geometry.page_height - y) * mm

    # -- text -------------------------------------------------------------

    def set_style(self, style: TextStyle) -> None:
        # replaces the active style entirely; nothing carries over from the previous one
        self.style = style
        self.canvas.setFont(font_name(self.font_family, style.bold, style.italic), style.font_size)
        self.canvas.setFillColorRGB(*_rgb(style.color))
        self.canvas.setStrokeColorRGB(*_rgb(style.color))

    def measure(self, text: str, style: TextStyle) -> float:
        return measure_text(text, self.font_family, style)

    def draw_text(self, x: float, y: float, text: str, *, align: str = "left", layer: str = "body") -> DrawCall:
        c = self.canvas
        px, py = self._px(x), self._py(y)
        if align == "center":
            c.drawCentredString(px, py, text)
        elif align == "right":
            c.drawRightString(px, py, text)
        else:
            c.drawString(px, py, text)

        if self.style.underline and text.strip():
            w = self.measure(text, self.style)
            x0 = x - w if align == "right" else (x - w / 2.0 if align == "center" else x)
            c.setLineWidth(UNDERLINE_W)
            c.line(self._px(x0), self._py(y + UNDERLINE_OFFSET), self._px(x0 + w), self._py(y + UNDERLINE_OFFSET))

        call = DrawCall(page=self.page_number, x=x, y=y, text=text, style=self.style, align=align, layer=layer)
        self.calls.append(call)
        return call

    def draw_watermark(self, text: str, style: TextStyle, alpha: float, angle: float = 45.0) -> DrawCall:
        """Large rotated text centred on the page at the given fill alpha."""
        g = self.geometry
        c = self.canvas
        c.saveState()
        c.setFont(font_name(self.font_family, style.bold, style.italic), style.font_size)
        c.setFillColorRGB(*_rgb(style.color))
        c.setFillAlpha(alpha)
        c.translate(self._px(g.page_width / 2.0), self._py(g.page_height / 2.0))
        c.rotate(angle)
        c.drawCentredString(0, 0, text)
        c.restoreState()

        call = DrawCall(
            page=self.page_number,
            x=g.page_width / 2.0,
            y=g.page_height / 2.0,
            text=text,
            style=style,
            align="center",
            layer="watermark",
        )
        self.calls.append(call)
        return call

    # -- graphics ---------------------------------------------------------

    def draw_rule(self, x0: float, x1: float, y: float, color: RGB, width: float = 0.5) -> None:
        c = self.canvas
        c.saveState()
        c.setStrokeColorRGB(*_rgb(color))
        c.setLineWidth(width)
        c.line(self._px(x0), self._py(y), self._px(x1), self._py(y))
        c.restoreState()

    def draw_image(self, image: ImageReader, x: float, top: float, width: float, height: float) -> None:
        self.canvas.drawImage(
            image,
            self._px(x),
            self._py(top + height),
            width=width * mm,
            height=height * mm,
            preserveAspectRatio=True,
            mask="auto",
        )

    # -- pages ------------------------------------------------------------

    def show_page(self) -> None:
        self.canvas.showPage()
        self.page_number += 1
        # showPage() resets the graphics state
        self.set_style(self.style)

    def finish(self) -> bytes:
        self.canvas.save()
        self._buf.seek(0)
        return self._buf.getvalue()
