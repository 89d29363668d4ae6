"""Tests for the page flow renderer."""
import unittest
from typing import List

from proposal_app.styling.base import DrawCall
from proposal_app.styling.proposal.design import PageGeometry
from proposal_app.styling.proposal.flow import PageFlowRenderer, line_height_for, wrap_text
from proposal_app.styling.proposal.rich_text import Block, LineBreak, ListItem, Run
from proposal_app.styling.proposal.style import TextStyle


class FakeSurface:
    """2mm per character, records every placement."""

    def __init__(self, geometry: PageGeometry) -> None:
        self.geometry = geometry
        self.page_number = 1
        self.calls: List[DrawCall] = []
        self.style = TextStyle()

    def set_style(self, style: TextStyle) -> None:
        self.style = style

    def measure(self, text: str, style: TextStyle) -> float:
        return 2.0 * len(text)

    def draw_text(self, x, y, text, *, align="left", layer="body") -> DrawCall:
        call = DrawCall(page=self.page_number, x=x, y=y, text=text, style=self.style, align=align, layer=layer)
        self.calls.append(call)
        return call

    def show_page(self) -> None:
        self.page_number += 1


class WrapTextTest(unittest.TestCase):
    def test_greedy_wrap(self) -> None:
        self.assertEqual(wrap_text("aa bb cc", len, 5), ["aa bb", "cc"])

    def test_long_token_overflows_on_its_own_line(self) -> None:
        self.assertEqual(wrap_text("x abcdefghij y", len, 3), ["x", "abcdefghij", "y"])

    def test_newlines_are_kept(self) -> None:
        self.assertEqual(wrap_text("a\nb", len, 50), ["a", "b"])

    def test_empty(self) -> None:
        self.assertEqual(wrap_text("", len, 10), [])


class PageFlowRendererTest(unittest.TestCase):
    def setUp(self) -> None:
        # 80mm wide content area, body may extend to y=90
        self.geometry = PageGeometry(100, 100, 10, 10, 10, 10)
        self.surface = FakeSurface(self.geometry)
        self.renderer = PageFlowRenderer(self.surface)
        self.base = TextStyle()

    def render(self, instructions, start_y: float = 20.0):
        return self.renderer.render(instructions, start_y, self.geometry, self.base)

    def test_line_height_scale(self) -> None:
        self.assertAlmostEqual(line_height_for(12, 1.5), 6.0)
        self.assertAlmostEqual(line_height_for(24, 1.5), 12.0)
        self.assertAlmostEqual(line_height_for(12, 3.0), 12.0)

    def test_empty_instructions_return_start_y(self) -> None:
        result = self.render([], start_y=33.0)
        self.assertEqual(result.end_y, 33.0)
        self.assertEqual(result.draw_calls, [])

    def test_block_advances_line_and_paragraph_gap(self) -> None:
        result = self.render([Block("halo", self.base)])
        self.assertEqual(len(result.draw_calls), 1)
        call = result.draw_calls[0]
        self.assertEqual((call.x, call.y, call.text), (10, 20.0, "halo"))
        self.assertAlmostEqual(result.end_y, 20.0 + 6.0 + 3.0)

    def test_heading_line_height_follows_font_size(self) -> None:
        result = self.render([Block("judul", self.base.derive(font_size=24.0))])
        self.assertAlmostEqual(result.end_y, 20.0 + 12.0 + 6.0)

    def test_list_item_draws_marker(self) -> None:
        result = self.render([ListItem("satu", self.base, "1. ")])
        self.assertEqual(result.draw_calls[0].text, "1. satu")
        self.assertAlmostEqual(result.end_y, 26.0)

    def test_block_wraps_to_content_width(self) -> None:
        # 2mm per character: a line holds at most 40 characters
        text = " ".join(["kata"] * 20)
        result = self.render([Block(text, self.base)])
        self.assertGreater(len(result.draw_calls), 1)
        for call in result.draw_calls:
            self.assertLessEqual(self.surface.measure(call.text, self.base), self.geometry.content_width)

    def test_runs_share_a_line(self) -> None:
        bold = self.base.derive(bold=True)
        result = self.render([Run("ab", self.base), Run("cd", bold)])
        first, second = result.draw_calls
        self.assertEqual(first.y, second.y)
        self.assertEqual(second.x, 14.0)
        self.assertTrue(second.style.bold)
        self.assertAlmostEqual(result.end_y, 26.0)

    def test_space_between_runs_is_kept(self) -> None:
        result = self.render([Run("ab ", self.base), Run("cd", self.base)])
        self.assertEqual(result.draw_calls[1].x, 10 + 4 + 2)

    def test_line_break_finishes_open_line(self) -> None:
        result = self.render([Run("a", self.base), LineBreak(), Run("b", self.base)])
        a, b = result.draw_calls
        self.assertAlmostEqual(b.y - a.y, 6.0)
        self.assertEqual(b.x, 10)

    def test_line_break_without_open_line_advances(self) -> None:
        self.assertAlmostEqual(self.render([LineBreak()]).end_y, 26.0)

    def test_empty_block_advances_one_line(self) -> None:
        self.assertAlmostEqual(self.render([Block("", self.base)]).end_y, 20.0 + 6.0 + 3.0)

    def test_y_is_monotonic_within_a_page(self) -> None:
        ins = [Block(f"paragraf {i}", self.base) for i in range(5)] + [Run("x", self.base)]
        result = self.render(ins)
        ys = [(c.page, c.y) for c in result.draw_calls]
        self.assertEqual(ys, sorted(ys))

    def test_breaks_page_without_hook(self) -> None:
        result = self.render([Block(f"p{i}", self.base) for i in range(20)])
        self.assertGreater(self.surface.page_number, 1)
        for call in result.draw_calls:
            self.assertLessEqual(call.y + 6.0, 90.0)
        second_page = [c for c in result.draw_calls if c.page == 2]
        self.assertEqual(second_page[0].y, self.geometry.margin_top)

    def test_page_break_hook_sets_continuation(self) -> None:
        breaks = []

        def page_break() -> float:
            breaks.append(self.surface.page_number)
            self.surface.show_page()
            return 40.0

        renderer = PageFlowRenderer(self.surface, page_break=page_break, bottom_reserve=20.0)
        result = renderer.render([Block(f"p{i}", self.base) for i in range(10)], 20.0, self.geometry, self.base)

        self.assertTrue(breaks)
        for call in result.draw_calls:
            self.assertLessEqual(call.y + 6.0, 70.0)
        later = [c for c in result.draw_calls if c.page > 1]
        self.assertEqual(later[0].y, 40.0)
        ys = [(c.page, c.y) for c in result.draw_calls]
        self.assertEqual(ys, sorted(ys))


if __name__ == "__main__":
    unittest.main()
