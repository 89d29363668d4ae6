# proposal_app/services/proposal_records.py
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from proposal_app.models import GeneratedProposal

STATUSES = ("draft", "completed", "sent")


def _parse_id(proposal_id: Any) -> Optional[uuid.UUID]:
    if isinstance(proposal_id, uuid.UUID):
        return proposal_id
    try:
        return uuid.UUID(str(proposal_id))
    except (TypeError, ValueError):
        return None


def record_proposal(
    db: Session,
    summary: Dict[str, Any],
    *,
    page_count: int,
    filename: str,
    status: str = "completed",
) -> GeneratedProposal:
    """Insert one archive row and flush so its id is available. The caller commits."""
    if status not in STATUSES:
        raise ValueError(f"Unknown proposal status {status!r}")

    row = GeneratedProposal(
        kind=summary["kind"],
        title=summary.get("title"),
        recipient_name=summary.get("recipient_name"),
        recipient_company=summary.get("recipient_company"),
        creator_name=summary.get("creator_name"),
        letter_date=summary.get("letter_date"),
        total_amount=summary.get("total_amount") or 0,
        product_count=int(summary.get("product_count") or 0),
        page_count=int(page_count),
        status=status,
        filename=filename,
    )
    db.add(row)
    db.flush()
    return row


def get_proposal(db: Session, proposal_id: Any) -> Optional[GeneratedProposal]:
    pid = _parse_id(proposal_id)
    if pid is None:
        return None
    return db.get(GeneratedProposal, pid)


def list_proposals(db: Session, *, kind: str | None = None, limit: int = 50) -> List[GeneratedProposal]:
    stmt = select(GeneratedProposal)
    if kind:
        stmt = stmt.where(GeneratedProposal.kind == kind)
    stmt = stmt.order_by(GeneratedProposal.created_at.desc()).limit(limit)
    return list(db.scalars(stmt))


def proposal_to_dict(row: GeneratedProposal) -> Dict[str, Any]:
    return {
        "id": str(row.id),
        "kind": row.kind,
        "title": row.title,
        "recipient_name": row.recipient_name,
        "recipient_company": row.recipient_company,
        "creator_name": row.creator_name,
        "letter_date": row.letter_date,
        "total_amount": str(row.total_amount),
        "product_count": row.product_count,
        "page_count": row.page_count,
        "status": row.status,
        "filename": row.filename,
        "pdf_s3_key": row.pdf_s3_key,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }
