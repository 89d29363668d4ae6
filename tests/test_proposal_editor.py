"""Tests for request JSON -> proposal conversion."""
import unittest
from decimal import Decimal

from proposal_app.services.proposal_editor import (
    PayloadError,
    _dec,
    json_to_design,
    json_to_proposal,
    proposal_summary,
)
from proposal_app.styling.proposal.design import GeometryError


def _body(**overrides) -> dict:
    body = {
        "proposalKind": "quotation",
        "recipient": {"name": "Budi", "company": "PT Maju", "address": "Jakarta"},
        "letterDate": "19 Oktober 2026",
        "creator": {"name": "Siti", "position": "Sales"},
        "richTextSections": {"companyProfile": "<p>Profil</p>", "termsConditions": ""},
        "products": [
            {"name": "Audit", "description": "Audit TI", "price": 5000000, "cogs": 3000000},
            {"name": "Pelatihan", "description": "", "price": "Rp1.500.000"},
        ],
    }
    body.update(overrides)
    return body


class DecimalParsingTest(unittest.TestCase):
    def test_numbers_and_rupiah_strings(self) -> None:
        self.assertEqual(_dec(2500), Decimal("2500"))
        self.assertEqual(_dec(12.5), Decimal("12.5"))
        self.assertEqual(_dec("Rp1.500.000"), Decimal("1500000"))
        self.assertEqual(_dec("Rp 1.500.000"), Decimal("1500000"))
        self.assertEqual(_dec("1500000.50"), Decimal("1500000.50"))
        self.assertEqual(_dec("1,5"), Decimal("1.5"))
        self.assertEqual(_dec(None), Decimal("0"))
        self.assertEqual(_dec(""), Decimal("0"))

    def test_rejects_garbage(self) -> None:
        with self.assertRaises(PayloadError):
            _dec("lima juta")
        with self.assertRaises(PayloadError):
            _dec(True)

    def test_rejects_non_finite_and_oversized_amounts(self) -> None:
        for value in ("NaN", "Infinity", "-inf", float("inf"), float("nan"), "1e20", 10**15):
            with self.subTest(value=value), self.assertRaises(PayloadError):
                _dec(value)
        self.assertEqual(_dec("999999999999999"), Decimal("999999999999999"))


class JsonToProposalTest(unittest.TestCase):
    def test_full_payload(self) -> None:
        req = json_to_proposal(_body())

        self.assertEqual(req.content.kind, "quotation")
        self.assertEqual(req.content.recipient_company, "PT Maju")
        self.assertEqual(req.content.creator_position, "Sales")
        self.assertEqual(req.templates.company_profile, "<p>Profil</p>")
        self.assertIsNone(req.templates.terms_conditions)
        self.assertIsNone(req.templates.service_benefits)

        self.assertEqual(len(req.products), 2)
        self.assertEqual(req.products[0].cogs, Decimal("3000000"))
        self.assertIsNone(req.products[1].cogs)
        self.assertEqual(req.products[1].price, Decimal("1500000"))

        # no design block -> designer defaults
        self.assertEqual(req.settings.page_size, "A4")
        self.assertTrue(req.settings.header.enabled)

    def test_kind_is_required(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_proposal(_body(proposalKind="invoice"))
        with self.assertRaises(PayloadError):
            json_to_proposal(_body(proposalKind=None))

    def test_kind_is_case_insensitive(self) -> None:
        self.assertEqual(json_to_proposal(_body(proposalKind="Partnership")).content.kind, "partnership")

    def test_bad_price(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_proposal(_body(products=[{"name": "X", "price": "gratis"}]))

    def test_products_must_be_list(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_proposal(_body(products={"name": "X"}))

    def test_body_must_be_object(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_proposal(["not", "an", "object"])

    def test_summary_has_no_cost_figures(self) -> None:
        summary = proposal_summary(json_to_proposal(_body()))
        self.assertEqual(summary["total_amount"], Decimal("6500000"))
        self.assertEqual(summary["product_count"], 2)
        self.assertEqual(summary["title"], "PROPOSAL PENAWARAN HARGA - PT Maju")
        self.assertNotIn("cogs", summary)


class JsonToDesignTest(unittest.TestCase):
    def test_camel_case_fields(self) -> None:
        s = json_to_design(
            {
                "theme": "modern",
                "primaryColor": "#ff0000",
                "fontFamily": "Georgia",
                "fontSize": 11,
                "lineHeight": 2,
                "pageSize": "Letter",
                "margins": {"top": 20, "right": 15, "bottom": 20, "left": 15},
                "header": {"enabled": False, "height": 40, "content": "Kop", "showLogo": False},
                "footer": {"content": "Kaki", "showPageNumbers": False},
                "watermark": {"enabled": True, "text": "DRAFT", "opacity": 30},
            }
        )
        self.assertEqual(s.theme, "modern")
        self.assertEqual(s.primary_rgb, (255, 0, 0))
        self.assertEqual(s.pdf_font_family, "Times")
        self.assertEqual(s.font_size, 11.0)
        self.assertEqual(s.line_height, 2.0)
        self.assertAlmostEqual(s.geometry.page_width, 215.9, places=1)
        self.assertEqual(s.geometry.margin_left, 15.0)
        self.assertFalse(s.header.enabled)
        self.assertEqual(s.header.height, 40.0)
        self.assertTrue(s.footer.enabled)
        self.assertFalse(s.footer.show_page_numbers)
        self.assertEqual(s.footer.content, "Kaki")
        self.assertTrue(s.watermark.enabled)
        self.assertAlmostEqual(s.watermark.alpha, 0.3)

    def test_unknown_theme_falls_back(self) -> None:
        with self.assertLogs("proposal_app.services.proposal_editor", level="WARNING"):
            s = json_to_design({"theme": "neon"})
        self.assertEqual(s.theme, "professional")

    def test_invalid_page_size(self) -> None:
        with self.assertRaises(GeometryError):
            json_to_design({"pageSize": "A3"})

    def test_margins_too_large(self) -> None:
        with self.assertRaises(GeometryError):
            json_to_design({"margins": {"left": 120, "right": 120}})

    def test_non_positive_font_size(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_design({"fontSize": 0})

    def test_non_numeric_margin(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_design({"margins": {"top": "wide"}})

    def test_non_finite_numbers(self) -> None:
        for design in (
            {"margins": {"left": "NaN"}},
            {"margins": {"top": "inf"}},
            {"fontSize": "inf"},
            {"header": {"height": "nan"}},
        ):
            with self.subTest(design=design), self.assertRaises(PayloadError):
                json_to_design(design)

    def test_negative_header_or_footer_height(self) -> None:
        with self.assertRaises(PayloadError):
            json_to_design({"header": {"height": -5}})
        with self.assertRaises(PayloadError):
            json_to_design({"footer": {"height": -1}})

    def test_page_size_and_margins_stay_together(self) -> None:
        s = json_to_design({"pageSize": "Legal", "margins": {"top": 10}})
        self.assertEqual(s.page_size, "Legal")
        self.assertAlmostEqual(s.geometry.page_height, 355.6, places=1)
        self.assertEqual(s.geometry.margin_top, 10.0)


if __name__ == "__main__":
    unittest.main()
