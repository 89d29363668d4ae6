"""Tests for storage keys and the proposal archive (SQLite in memory)."""
import os
import unittest
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest import mock

from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from proposal_app import db as proposal_db
from proposal_app.db import Base
from proposal_app.models import GeneratedProposal
from proposal_app.services import proposal_service
from proposal_app.services.keys import proposal_filename, proposal_key, utc_day
from proposal_app.services.proposal_editor import json_to_proposal
from proposal_app.services.proposal_records import (
    get_proposal,
    list_proposals,
    proposal_to_dict,
    record_proposal,
)
from proposal_app.services.proposal_service import GeneratedPdf, archive_proposal, store_proposal

NOW = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)


def _request():
    return json_to_proposal(
        {
            "proposalKind": "partnership",
            "recipient": {"name": "Budi", "company": "PT Maju"},
            "creator": {"name": "Siti"},
            "products": [{"name": "A", "price": 1000, "cogs": 400}, {"name": "B", "price": 2500}],
        }
    )


def _generated() -> GeneratedPdf:
    return GeneratedPdf(
        filename="proposal-partnership-1.pdf",
        content=b"%PDF-1.4 test",
        kind="partnership",
        total=Decimal("3500"),
        page_count=2,
    )


class FakeStorage:
    def __init__(self) -> None:
        self.uploads = {}
        self.meta = {}

    def put_proposal(self, key: str, data: bytes, **meta) -> None:
        self.uploads[key] = data
        self.meta[key] = meta


class KeysTest(unittest.TestCase):
    def test_utc_day(self) -> None:
        self.assertEqual(utc_day(NOW), "2026-10-19")

    def test_proposal_filename(self) -> None:
        ms = int(NOW.timestamp() * 1000)
        self.assertEqual(proposal_filename("quotation", NOW), f"proposal-quotation-{ms}.pdf")

    def test_proposal_key(self) -> None:
        self.assertEqual(proposal_key("abc", NOW), "proposals/2026-10-19/abc.pdf")


class ProposalRecordsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.db = Session(self.engine)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_record_and_fetch(self) -> None:
        row = record_proposal(
            self.db,
            {"kind": "quotation", "title": "T", "total_amount": Decimal("5000000"), "product_count": 1},
            page_count=3,
            filename="proposal-quotation-1.pdf",
        )
        self.db.commit()

        fetched = get_proposal(self.db, str(row.id))
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched.status, "completed")
        self.assertEqual(fetched.page_count, 3)

        d = proposal_to_dict(fetched)
        self.assertEqual(d["id"], str(row.id))
        self.assertEqual(Decimal(d["total_amount"]), Decimal("5000000"))
        self.assertIsNone(d["pdf_s3_key"])

    def test_unknown_or_malformed_id(self) -> None:
        self.assertIsNone(get_proposal(self.db, str(uuid.uuid4())))
        self.assertIsNone(get_proposal(self.db, "not-a-uuid"))

    def test_invalid_status(self) -> None:
        with self.assertRaises(ValueError):
            record_proposal(self.db, {"kind": "quotation"}, page_count=1, filename="x.pdf", status="lost")

    def test_list_filters_and_limits(self) -> None:
        for kind in ("quotation", "partnership", "quotation"):
            record_proposal(self.db, {"kind": kind}, page_count=1, filename=f"{kind}.pdf")
        self.db.commit()

        self.assertEqual(len(list_proposals(self.db)), 3)
        self.assertEqual(len(list_proposals(self.db, kind="quotation")), 2)
        self.assertEqual(len(list_proposals(self.db, limit=1)), 1)

    def test_store_uploads_pdf_under_dated_key(self) -> None:
        storage = FakeStorage()
        proposal_id = store_proposal(self.db, _request(), _generated(), storage=storage, now=NOW)

        row = self.db.get(GeneratedProposal, uuid.UUID(proposal_id))
        self.assertEqual(row.pdf_s3_key, f"proposals/2026-10-19/{proposal_id}.pdf")
        self.assertEqual(storage.uploads[row.pdf_s3_key], b"%PDF-1.4 test")
        self.assertEqual(
            storage.meta[row.pdf_s3_key],
            {"filename": "proposal-partnership-1.pdf", "kind": "partnership", "page_count": 2},
        )
        self.assertEqual(row.kind, "partnership")
        self.assertEqual(row.total_amount, Decimal("3500"))
        self.assertEqual(row.product_count, 2)
        self.assertEqual(row.page_count, 2)

    def test_store_without_storage_keeps_metadata_only(self) -> None:
        proposal_id = store_proposal(self.db, _request(), _generated())
        row = get_proposal(self.db, proposal_id)
        self.assertIsNone(row.pdf_s3_key)

    def test_failed_upload_rolls_back(self) -> None:
        storage = mock.Mock()
        storage.put_proposal.side_effect = RuntimeError("s3 down")
        with self.assertRaises(RuntimeError):
            store_proposal(self.db, _request(), _generated(), storage=storage)
        self.assertEqual(list_proposals(self.db), [])


class ArchiveProposalTest(unittest.TestCase):
    def test_disabled_without_database(self) -> None:
        with mock.patch.object(proposal_service, "database_enabled", return_value=False):
            self.assertIsNone(archive_proposal(_request(), _generated()))

    def test_failures_are_logged_not_raised(self) -> None:
        with mock.patch.object(proposal_service, "database_enabled", return_value=True), mock.patch.object(
            proposal_service, "storage_enabled", return_value=False
        ), mock.patch.object(proposal_service, "SessionLocal", side_effect=RuntimeError("db down")):
            with self.assertLogs("proposal_app.services.proposal_service", level="ERROR"):
                self.assertIsNone(archive_proposal(_request(), _generated()))



class SessionFactoryTest(unittest.TestCase):
    def test_sessions_come_from_database_url(self) -> None:
        with mock.patch.dict(os.environ, {"DATABASE_URL": "sqlite://"}), mock.patch.object(
            proposal_db, "_engine", None
        ), mock.patch.object(proposal_db, "_session_factory", None):
            self.assertTrue(proposal_db.database_enabled())
            proposal_db.init_db()
            with proposal_db.SessionLocal() as session:
                record_proposal(session, {"kind": "quotation"}, page_count=1, filename="q.pdf")
                session.commit()
                self.assertEqual(len(list_proposals(session)), 1)
            proposal_db.get_engine().dispose()


if __name__ == "__main__":
    unittest.main()
