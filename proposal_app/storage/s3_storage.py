# proposal_app/storage/s3_storage.py
from __future__ import annotations

import os
from typing import Any, Optional
from urllib.parse import quote

import boto3
from botocore.client import Config
from dotenv import load_dotenv

PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_URL_EXPIRES = 3600


def _safe_filename(name: Optional[str]) -> str:
    # Content-Disposition filenames: one line, always .pdf
    name = (name or "proposal.pdf").strip().replace("\n", " ").replace("\r", " ").replace('"', "")
    if not name.lower().endswith(".pdf"):
        name += ".pdf"
    return name


def attachment_disposition(filename: Optional[str]) -> str:
    return f"attachment; filename*=UTF-8''{quote(_safe_filename(filename))}"


def storage_enabled() -> bool:
    load_dotenv()
    return bool(os.getenv("S3_BUCKET"))


def _default_client() -> Any:
    region = os.getenv("AWS_REGION") or "us-east-1"
    profile = os.getenv("AWS_PROFILE")
    session = boto3.Session(profile_name=profile) if profile else boto3.Session()
    return session.client("s3", region_name=region, config=Config(signature_version="s3v4"))


class ProposalPdfStore:
    """
    Archived proposal PDFs in one S3 bucket. Objects are written with the
    download filename and the proposal kind so a plain GET already behaves
    like the API download.
    """

    def __init__(self, bucket: Optional[str] = None, client: Any = None):
        load_dotenv()
        self.bucket = bucket or os.getenv("S3_BUCKET")
        if not self.bucket:
            raise RuntimeError("S3_BUCKET not set")
        self.s3 = client if client is not None else _default_client()

    def put_proposal(self, key: str, data: bytes, *, filename: str, kind: str, page_count: int) -> None:
        self.s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=PDF_CONTENT_TYPE,
            ContentDisposition=attachment_disposition(filename),
            Metadata={"proposal-kind": kind, "page-count": str(page_count)},
        )

    def download_url(self, key: str, *, filename: str, expires_seconds: int = DEFAULT_URL_EXPIRES) -> str:
        return self.s3.generate_presigned_url(
            ClientMethod="get_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ResponseContentDisposition": attachment_disposition(filename),
                "ResponseContentType": PDF_CONTENT_TYPE,
            },
            ExpiresIn=int(expires_seconds),
        )


_storage_singleton: ProposalPdfStore | None = None


def get_storage() -> ProposalPdfStore:
    global _storage_singleton
    if _storage_singleton is None:
        _storage_singleton = ProposalPdfStore()
    return _storage_singleton
