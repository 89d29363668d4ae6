# proposal_app/styling/proposal/flow.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from proposal_app.styling.base import DrawCall, PageSurface
from proposal_app.styling.proposal.design import PageGeometry
from proposal_app.styling.proposal.rich_text import Block, LineBreak, ListItem, Run, TextInstruction
from proposal_app.styling.proposal.style import TextStyle

# 6mm per line for 12pt text at a 1.5 line height, scaled with both.
BASE_LINE_H = 6.0
BASE_FONT_SIZE = 12.0
BASE_LINE_HEIGHT = 1.5

PARAGRAPH_GAP = 0.5  # in line heights, after every Block


def line_height_for(font_size: float, line_height: float = BASE_LINE_HEIGHT) -> float:
    return BASE_LINE_H * (font_size / BASE_FONT_SIZE) * (line_height / BASE_LINE_HEIGHT)


def wrap_text(text: str, measure: Callable[[str], float], max_w: float) -> List[str]:
    """
    Greedy word wrap. Explicit newlines are kept as line breaks.
    A single word wider than max_w is not split; it overflows on its own line.
    """
    lines: List[str] = []
    for para in (text or "").split("\n"):
        words = para.split()
        cur = ""
        for w in words:
            test = f"{cur} {w}" if cur else w
            if not cur or measure(test) <= max_w:
                cur = test
            else:
                lines.append(cur)
                cur = w
        if cur:
            lines.append(cur)
    return lines


@dataclass
class FlowResult:
    draw_calls: List[DrawCall]
    end_y: float


class PageFlowRenderer:
    """
    Lays text-flow instructions out top to bottom on a PageSurface.

    `page_break` is called when the next line does not fit above the bottom
    margin (less `bottom_reserve`); it must start a new page and return the y
    where content continues. Without one, the renderer starts a bare page
    and continues at the top margin.
    """

    def __init__(
        self,
        surface: PageSurface,
        *,
        line_height: float = BASE_LINE_HEIGHT,
        page_break: Optional[Callable[[], float]] = None,
        bottom_reserve: float = 0.0,
    ):
        self.surface = surface
        self.line_height = line_height
        self.page_break = page_break
        self.bottom_reserve = bottom_reserve

        self._geometry: Optional[PageGeometry] = None
        self._y = 0.0
        self._x: Optional[float] = None  # None while no line is open
        self._line_h = 0.0
        self._space_pending = False

    # -- public -----------------------------------------------------------

    def render(
        self,
        instructions: Sequence[TextInstruction],
        start_y: float,
        geometry: PageGeometry,
        base_style: TextStyle,
    ) -> FlowResult:
        self._geometry = geometry
        self._y = start_y
        self._x = None
        self._line_h = 0.0
        self._space_pending = False

        calls: List[DrawCall] = []

        for ins in instructions:
            if isinstance(ins, LineBreak):
                if self._x is not None:
                    self._finish_line()
                else:
                    self._y += self._lh(base_style)
                continue

            self.surface.set_style(ins.style)

            if isinstance(ins, Run):
                calls.extend(self._flow_inline(ins.text, ins.style))
                continue

            if self._x is not None:
                self._finish_line()

            text = ins.display_text if isinstance(ins, ListItem) else ins.text
            lh = self._lh(ins.style)

            if not text.strip():
                self._y += lh
            else:
                for line in wrap_text(text, self._measurer(ins.style), geometry.content_width):
                    self._ensure_room(lh)
                    calls.append(self.surface.draw_text(geometry.margin_left, self._y, line))
                    self._y += lh

            if isinstance(ins, Block):
                self._y += lh * PARAGRAPH_GAP

        if self._x is not None:
            self._finish_line()

        return FlowResult(draw_calls=calls, end_y=self._y)

    # -- internals --------------------------------------------------------

    def _lh(self, style: TextStyle) -> float:
        return line_height_for(style.font_size, self.line_height)

    def _measurer(self, style: TextStyle) -> Callable[[str], float]:
        return lambda s: self.surface.measure(s, style)

    def _bottom(self) -> float:
        g = self._geometry
        return g.page_height - g.margin_bottom - self.bottom_reserve

    def _ensure_room(self, lh: float) -> None:
        if self._y + lh <= self._bottom():
            return
        if self.page_break is not None:
            self._y = self.page_break()
        else:
            self.surface.show_page()
            self._y = self._geometry.margin_top

    def _open_line(self, lh: float) -> None:
        self._ensure_room(lh)
        self._x = self._geometry.margin_left
        self._line_h = lh

    def _finish_line(self) -> None:
        self._y += self._line_h
        self._x = None
        self._space_pending = False

    def _flow_inline(self, text: str, style: TextStyle) -> List[DrawCall]:
        """Place a Run after whatever is already on the current line, wrapping as needed."""
        calls: List[DrawCall] = []
        words = text.split()
        if not words:
            if self._x is not None and text:
                self._space_pending = True
            return calls

        g = self._geometry
        right = g.margin_left + g.content_width
        lh = self._lh(style)
        measure = self._measurer(style)

        segment = ""
        seg_x = 0.0

        def flush() -> None:
            if segment:
                calls.append(self.surface.draw_text(seg_x, self._y, segment))

        lead = self._space_pending or text[:1].isspace()
        for i, word in enumerate(words):
            if self._x is None:
                self._open_line(lh)
                segment, seg_x = word, self._x
                self._x += measure(word)
                continue

            self._line_h = max(self._line_h, lh)
            sep = " " if (segment or (i == 0 and lead)) else ""
            w = measure(sep + word)
            at_line_start = self._x == g.margin_left and not segment
            if at_line_start or self._x + w <= right:
                if segment:
                    segment += sep + word
                else:
                    seg_x = self._x + measure(sep)
                    segment = word
                self._x += w
            else:
                flush()
                self._finish_line()
                self._open_line(lh)
                segment, seg_x = word, self._x
                self._x += measure(word)

        flush()
        self._space_pending = text[-1:].isspace()
        return calls
