# proposal_app/api_main.py
from __future__ import annotations

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from proposal_app.db import SessionLocal, database_enabled, init_db
from proposal_app.logger import get_logger
from proposal_app.services.proposal_editor import PayloadError, json_to_proposal
from proposal_app.services.proposal_records import get_proposal, list_proposals, proposal_to_dict
from proposal_app.services.proposal_service import archive_proposal, generate_proposal
from proposal_app.storage.s3_storage import get_storage, storage_enabled
from proposal_app.styling.proposal.composer import KINDS, OutputEncodingError
from proposal_app.styling.proposal.design import GeometryError

load_dotenv()

LOGGER = get_logger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if database_enabled():
        init_db()
        LOGGER.info("Proposal archive enabled")
    yield


app = FastAPI(title="Proposal PDF API", lifespan=lifespan)

# CORS for the proposal designer front-end
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


@app.exception_handler(RequestValidationError)
async def _invalid_request(_request: Request, exc: RequestValidationError):
    return _error(400, "Invalid request body", str(exc.errors()))


@app.get("/")
def root():
    return {"ok": True, "try": ["/docs", "/api/health", "/api/generate-pdf"]}


@app.get("/api/health")
def health():
    return {"ok": True}


# ------------------------------------------------------------
# PDF generation
# ------------------------------------------------------------
@app.post("/api/generate-pdf")
def generate_pdf(body: dict = Body(...)):
    """
    body = { proposalKind, recipient, letterDate, creator, richTextSections, products, design }
    Returns the PDF as an attachment; archiving afterwards is best effort.
    """
    try:
        req = json_to_proposal(body)
        generated = generate_proposal(req)
    except (PayloadError, GeometryError) as e:
        LOGGER.warning("Rejected proposal payload: %s", e)
        return _error(400, "Invalid proposal payload", str(e))
    except OutputEncodingError as e:
        LOGGER.error("PDF serialization failed: %s", e)
        return _error(500, "Failed to generate PDF", str(e))
    except Exception as e:
        LOGGER.exception("PDF generation failed")
        return _error(500, "Failed to generate PDF", f"{type(e).__name__}: {e}")

    archive_proposal(req, generated)

    return Response(
        content=generated.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{generated.filename}"'},
    )


# ------------------------------------------------------------
# Archive
# ------------------------------------------------------------
@app.get("/api/proposals")
def get_proposals(
    kind: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
):
    if not database_enabled():
        return _error(503, "Archive unavailable", "DATABASE_URL is not configured")
    if kind and kind not in KINDS:
        return _error(400, "Invalid kind", f"kind must be one of {', '.join(KINDS)}")

    with SessionLocal() as db:
        rows = list_proposals(db, kind=kind, limit=limit)
        return {"items": [proposal_to_dict(r) for r in rows]}


@app.get("/api/proposals/{proposal_id}/presign")
def presign_proposal(proposal_id: str, expires_seconds: int = Query(default=3600, ge=60, le=604800)):
    if not database_enabled():
        return _error(503, "Archive unavailable", "DATABASE_URL is not configured")

    with SessionLocal() as db:
        row = get_proposal(db, proposal_id)
        if row is None:
            return _error(404, "Not found", f"No proposal {proposal_id}")
        if not row.pdf_s3_key:
            return _error(400, "No stored PDF", "This proposal was archived without a PDF")
        key, filename = row.pdf_s3_key, row.filename

    if not storage_enabled():
        return _error(503, "Storage unavailable", "S3_BUCKET is not configured")

    url = get_storage().download_url(key, filename=filename, expires_seconds=expires_seconds)
    return {"url": url, "key": key, "expires_seconds": expires_seconds}
