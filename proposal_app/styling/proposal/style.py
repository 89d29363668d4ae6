# proposal_app/styling/proposal/style.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Tuple

RGB = Tuple[int, int, int]

BLACK: RGB = (0, 0, 0)
DEFAULT_FONT_SIZE = 12.0


@dataclass(frozen=True)
class TextStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    font_size: float = DEFAULT_FONT_SIZE
    color: RGB = BLACK

    def derive(self, **changes) -> TextStyle:
        return replace(self, **changes)


@dataclass(frozen=True)
class StyleStack:
    """
    Immutable stack of inline styles layered over a base style.

    push()/pop() return a new stack, so the active style is threaded through
    the caller explicitly instead of living on the drawing surface.
    Each frame remembers the tag that opened it; pop() of a tag that is not on
    the stack is a no-op, and pop() of a deeper tag also drops the frames
    opened above it (unclosed inner tags).
    """

    base: TextStyle = field(default_factory=TextStyle)
    frames: Tuple[Tuple[str, TextStyle], ...] = ()

    @property
    def current(self) -> TextStyle:
        return self.frames[-1][1] if self.frames else self.base

    def push(self, tag: str, **changes) -> StyleStack:
        return replace(self, frames=self.frames + ((tag, self.current.derive(**changes)),))

    def pop(self, tag: str) -> StyleStack:
        for i in range(len(self.frames) - 1, -1, -1):
            if self.frames[i][0] == tag:
                return replace(self, frames=self.frames[:i])
        return self

    def __len__(self) -> int:
        return len(self.frames)
