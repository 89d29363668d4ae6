# proposal_app/styling/base.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol

from proposal_app.styling.proposal.design import PageGeometry
from proposal_app.styling.proposal.style import TextStyle


@dataclass(frozen=True)
class DrawCall:
    """One text placement. x/y are millimetres from the page's top-left corner; y is the baseline."""

    page: int
    x: float
    y: float
    text: str
    style: TextStyle
    align: str = "left"
    layer: str = "body"  # body | header | footer | watermark


class PageSurface(Protocol):
    geometry: PageGeometry
    page_number: int
    calls: List[DrawCall]

    def set_style(self, style: TextStyle) -> None:
        ...

    def measure(self, text: str, style: TextStyle) -> float:
        ...

    def draw_text(self, x: float, y: float, text: str, *, align: str = "left", layer: str = "body") -> DrawCall:
        ...

    def show_page(self) -> None:
        ...
