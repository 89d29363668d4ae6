# proposal_app/styling/proposal/rich_text.py
"""
Rich text (editor HTML) -> ordered text-flow instructions.

Only the editor's tag set is interpreted: h1-h6, p, br, ul/ol/li,
strong/b, em/i and u. Any other tag is dropped and its text kept.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import List, Optional, Union

from proposal_app.logger import get_logger
from proposal_app.styling.proposal.style import StyleStack, TextStyle

LOGGER = get_logger(__name__)

HEADING_SIZES = {
    "h1": 18.0,
    "h2": 16.0,
    "h3": 14.0,
    "h4": 13.0,
    "h5": 12.0,
    "h6": 11.0,
}

BULLET_MARKER = "• "

INLINE_TAGS = {
    "strong": {"bold": True},
    "b": {"bold": True},
    "em": {"italic": True},
    "i": {"italic": True},
    "u": {"underline": True},
}

SKIPPED_TAGS = ("script", "style")

_TAG_RE = re.compile(r"<[^>]*>")
_SPACES_RE = re.compile("[ \t\r\n\f\u00a0]+")
# <br> inside a block; survives whitespace collapsing
_LINE_SEP = "\u2028"


@dataclass(frozen=True)
class Run:
    text: str
    style: TextStyle


@dataclass(frozen=True)
class Block:
    text: str
    style: TextStyle


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class ListItem:
    text: str
    style: TextStyle
    marker: str

    @property
    def display_text(self) -> str:
        return f"{self.marker}{self.text}"


TextInstruction = Union[Run, Block, LineBreak, ListItem]


def heading_size(tag: str, base_size: float) -> float:
    return HEADING_SIZES.get((tag or "").lower(), base_size)


def _collapse(s: str) -> str:
    return _SPACES_RE.sub(" ", s)


def _block_text(raw: str) -> str:
    """Collapse whitespace per line; lines come from <br> inside the block."""
    lines = [_collapse(ln).strip() for ln in raw.split(_LINE_SEP)]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def strip_tags(markup: str) -> str:
    """Best-effort plain text of a fragment: tags removed, entities decoded, whitespace collapsed."""
    text = _TAG_RE.sub(" ", markup or "")
    text = html.unescape(text.replace("&nbsp;", " "))
    return _collapse(text).strip()


def has_visible_text(markup: Optional[str]) -> bool:
    """False for '', whitespace, or markup-only fragments such as '<p><br></p>'."""
    return bool(strip_tags(markup or ""))


@dataclass
class _OpenBlock:
    tag: str
    style: TextStyle
    marker: Optional[str] = None
    parts: List[str] = field(default_factory=list)


@dataclass
class _ListFrame:
    tag: str
    count: int = 0


class _InstructionBuilder(HTMLParser):
    """Streaming tokenizer over the editor tag set."""

    def __init__(self, base: TextStyle) -> None:
        super().__init__(convert_charrefs=True)
        self.base = base
        self.instructions: List[TextInstruction] = []
        self._inline = StyleStack(base)
        self._block: Optional[_OpenBlock] = None
        self._lists: List[_ListFrame] = []
        self._run_parts: List[str] = []
        self._run_style: TextStyle = base
        self._skip_depth = 0

    # -- HTMLParser hooks -------------------------------------------------

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag in SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in HEADING_SIZES:
            self._open_block(tag, self.base.derive(font_size=heading_size(tag, self.base.font_size), bold=True))
        elif tag == "p":
            self._open_block(tag, self.base)
        elif tag == "br":
            if self._block is not None:
                self._block.parts.append(_LINE_SEP)
            else:
                self._flush_run()
                self.instructions.append(LineBreak())
        elif tag in ("ul", "ol"):
            self._close_block()
            self._flush_run()
            self._lists.append(_ListFrame(tag))
        elif tag == "li":
            marker = BULLET_MARKER
            if self._lists:
                frame = self._lists[-1]
                frame.count += 1
                if frame.tag == "ol":
                    marker = f"{frame.count}. "
            self._open_block(tag, self.base, marker=marker)
        elif tag in INLINE_TAGS:
            if self._block is None:
                self._flush_run()
            self._inline = self._inline.push(tag, **INLINE_TAGS[tag])

    def handle_endtag(self, tag: str) -> None:
        if tag in SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in HEADING_SIZES or tag == "p":
            if self._block is not None and self._block.tag != "li":
                self._close_block()
        elif tag == "li":
            if self._block is not None and self._block.tag == "li":
                self._close_block()
        elif tag in ("ul", "ol"):
            self._close_block()
            for i in range(len(self._lists) - 1, -1, -1):
                if self._lists[i].tag == tag:
                    del self._lists[i:]
                    break
        elif tag in INLINE_TAGS:
            if self._block is None:
                self._flush_run()
            self._inline = self._inline.pop(tag)

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if self._block is not None:
            self._block.parts.append(data)
            return
        if self._inline.current != self._run_style:
            self._flush_run()
            self._run_style = self._inline.current
        self._run_parts.append(data)

    def close(self) -> None:
        super().close()
        self._close_block()
        self._flush_run()
        self.instructions = _tidy_runs(self.instructions)

    # -- Internal helpers -------------------------------------------------

    def _open_block(self, tag: str, style: TextStyle, marker: Optional[str] = None) -> None:
        # a block opened inside another block closes the first one
        self._close_block()
        self._flush_run()
        self._block = _OpenBlock(tag=tag, style=style, marker=marker)

    def _close_block(self) -> None:
        block = self._block
        if block is None:
            return
        self._block = None

        text = _block_text("".join(block.parts))
        if not text:
            return
        if block.marker is not None:
            self.instructions.append(ListItem(text=text, style=block.style, marker=block.marker))
        else:
            self.instructions.append(Block(text=text, style=block.style))

    def _flush_run(self) -> None:
        parts, self._run_parts = self._run_parts, []
        if not parts:
            return
        text = _collapse("".join(parts))
        if not text:
            return
        last = self.instructions[-1] if self.instructions else None
        if not text.strip():
            # whitespace only matters between two inline runs
            if isinstance(last, Run) and not last.text.endswith(" "):
                self.instructions[-1] = Run(text=last.text + " ", style=last.style)
            return
        self.instructions.append(Run(text=text, style=self._run_style))


def _tidy_runs(instructions: List[TextInstruction]) -> List[TextInstruction]:
    """Trim run whitespace at line starts/ends (next to blocks, breaks and the ends)."""
    out: List[TextInstruction] = []
    for i, ins in enumerate(instructions):
        if not isinstance(ins, Run):
            out.append(ins)
            continue
        text = ins.text
        prev = out[-1] if out else None
        nxt = instructions[i + 1] if i + 1 < len(instructions) else None
        if not isinstance(prev, Run):
            text = text.lstrip()
        if not isinstance(nxt, Run):
            text = text.rstrip()
        if text.strip():
            out.append(Run(text=text, style=ins.style))
    return out


class RichTextParser:
    """
    parse(html) -> [Run | Block | LineBreak | ListItem] in document order.

    Never raises: malformed markup is closed/ignored by the tokenizer, and
    anything unexpected degrades to one plain-text Run of the stripped fragment.
    """

    def __init__(self, base_style: Optional[TextStyle] = None):
        self.base_style = base_style or TextStyle()

    def parse(self, markup: Optional[str]) -> List[TextInstruction]:
        if not markup or not markup.strip():
            return []

        builder = _InstructionBuilder(self.base_style)
        try:
            builder.feed(markup)
            builder.close()
        except Exception:
            LOGGER.debug("Rich text degraded to plain text", exc_info=True)
            text = strip_tags(markup)
            return [Run(text=text, style=self.base_style)] if text else []

        return builder.instructions
