# scripts/render_sample_proposal.py
from __future__ import annotations

from collections import Counter
from decimal import Decimal
from pathlib import Path

from pypdf import PdfReader

from proposal_app.styling.proposal.composer import (
    DocumentComposer,
    Product,
    ProposalContent,
    ProposalTemplates,
)
from proposal_app.styling.proposal.design import DesignSettings, WatermarkConfig

COMPANY_PROFILE = """
<h2>PT Sinar Digital Nusantara</h2>
<p>Kami adalah perusahaan <strong>konsultan teknologi</strong> yang berdiri sejak 2012.</p>
<ul>
  <li>Lebih dari 200 klien korporat</li>
  <li>Tim bersertifikasi <em>cloud</em> dan keamanan</li>
</ul>
"""

SERVICE_BENEFITS = """
<ol>
  <li>Dukungan 24/7 dengan SLA terukur</li>
  <li>Laporan bulanan yang transparan</li>
  <li>Harga tetap tanpa biaya tersembunyi</li>
</ol>
"""

TERMS = """
<p>Pembayaran 50% di muka dan 50% setelah serah terima.</p>
<p>Penawaran berlaku 30 hari sejak tanggal surat.<br>Harga belum termasuk PPN.</p>
"""


def _sample_products(n: int = 12) -> list[Product]:
    out = []
    for i in range(1, n + 1):
        out.append(
            Product(
                name=f"Layanan {i}",
                description=(
                    "Implementasi dan pendampingan termasuk pelatihan pengguna, "
                    "dokumentasi, serta evaluasi pasca implementasi."
                ),
                price=Decimal(1500000 * i),
                cogs=Decimal(900000 * i),
            )
        )
    return out


def main() -> None:
    settings = DesignSettings(watermark=WatermarkConfig(enabled=True, text="DRAFT", opacity=12))
    content = ProposalContent(
        kind="quotation",
        recipient_name="Budi Santoso",
        recipient_company="PT Maju Bersama",
        recipient_address="Jl. Sudirman No. 123, Jakarta Selatan, DKI Jakarta 12190",
        letter_date="19 Oktober 2026",
        creator_name="Siti Rahma",
        creator_position="Account Manager",
    )
    templates = ProposalTemplates(
        company_profile=COMPANY_PROFILE,
        service_benefits=SERVICE_BENEFITS,
        terms_conditions=TERMS,
    )

    composer = DocumentComposer(settings)
    out_bytes = composer.compose(content, templates, _sample_products())

    out_path = Path("tmp/proposal_sample.pdf")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(out_bytes)

    print("Proposal created:", out_path.resolve())
    print("Pages      :", len(PdfReader(str(out_path)).pages))

    calls = composer.surface.calls
    print("Draw calls :", len(calls))
    for (page, layer), n in sorted(Counter((c.page, c.layer) for c in calls).items()):
        print(f"  page {page:<3} {layer:<10} {n}")


if __name__ == "__main__":
    main()
