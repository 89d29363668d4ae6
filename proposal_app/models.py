# proposal_app/models.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from proposal_app.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GeneratedProposal(Base):
    __tablename__ = "generated_proposals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # quotation | partnership
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str | None] = mapped_column(Text)

    recipient_name: Mapped[str | None] = mapped_column(Text)
    recipient_company: Mapped[str | None] = mapped_column(Text)
    creator_name: Mapped[str | None] = mapped_column(Text)
    letter_date: Mapped[str | None] = mapped_column(String(64))

    # sum of product prices; cost figures are not stored
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    product_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # draft | completed | sent
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="completed")

    filename: Mapped[str | None] = mapped_column(String(255))
    # S3 key (not a full URL)
    pdf_s3_key: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (Index("ix_generated_proposals_created_at", "created_at"),)
