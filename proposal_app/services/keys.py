# proposal_app/services/keys.py
from __future__ import annotations

from datetime import datetime, timezone


def utc_day(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y-%m-%d")


def timestamp_ms(now: datetime | None = None) -> int:
    return int((now or datetime.now(timezone.utc)).timestamp() * 1000)


def proposal_filename(kind: str, now: datetime | None = None) -> str:
    # proposal-<kind>-<epoch ms>.pdf
    return f"proposal-{kind}-{timestamp_ms(now)}.pdf"


def proposal_key(proposal_id: str, now: datetime | None = None) -> str:
    # proposals/YYYY-MM-DD/<id>.pdf
    return f"proposals/{utc_day(now)}/{proposal_id}.pdf"
