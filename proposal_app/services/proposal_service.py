# proposal_app/services/proposal_service.py
from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pypdf import PdfReader
from sqlalchemy.orm import Session

from proposal_app.db import SessionLocal, database_enabled
from proposal_app.logger import get_logger
from proposal_app.services.keys import proposal_filename, proposal_key
from proposal_app.services.proposal_editor import ProposalRequest, proposal_summary
from proposal_app.services.proposal_records import record_proposal
from proposal_app.storage.s3_storage import get_storage, storage_enabled
from proposal_app.styling.proposal.composer import products_total, render_proposal

LOGGER = get_logger(__name__)


@dataclass
class GeneratedPdf:
    filename: str
    content: bytes
    kind: str
    total: Decimal
    page_count: int


def count_pages(pdf_bytes: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)


def generate_proposal(req: ProposalRequest, now: Optional[datetime] = None) -> GeneratedPdf:
    pdf = render_proposal(req.content, req.templates, req.products, req.settings)
    generated = GeneratedPdf(
        filename=proposal_filename(req.content.kind, now),
        content=pdf,
        kind=req.content.kind,
        total=products_total(req.products),
        page_count=count_pages(pdf),
    )
    LOGGER.info(
        "Generated %s (%d page(s), %d bytes)", generated.filename, generated.page_count, len(generated.content)
    )
    return generated


def store_proposal(
    db: Session,
    req: ProposalRequest,
    generated: GeneratedPdf,
    *,
    storage: Any = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Record the proposal row and, when a storage backend is given, upload the PDF
    under proposals/<day>/<id>.pdf. Returns the row id.
    """
    try:
        row = record_proposal(
            db,
            proposal_summary(req),
            page_count=generated.page_count,
            filename=generated.filename,
        )
        if storage is not None:
            key = proposal_key(str(row.id), now)
            storage.put_proposal(
                key,
                generated.content,
                filename=generated.filename,
                kind=generated.kind,
                page_count=generated.page_count,
            )
            row.pdf_s3_key = key
        db.commit()
        return str(row.id)
    except Exception:
        db.rollback()
        raise


def archive_proposal(req: ProposalRequest, generated: GeneratedPdf) -> Optional[str]:
    """
    Best effort: the PDF has already been produced, so failures here are
    logged and never reach the caller.
    """
    if not database_enabled():
        return None
    try:
        storage = get_storage() if storage_enabled() else None
        with SessionLocal() as db:
            proposal_id = store_proposal(db, req, generated, storage=storage)
        LOGGER.info("Archived %s as %s", generated.filename, proposal_id)
        return proposal_id
    except Exception:
        LOGGER.exception("Archiving %s failed", generated.filename)
        return None
