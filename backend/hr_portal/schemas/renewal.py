from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class RenewalRunResponse(BaseModel):
    """Summary of a renewal run."""

    as_of: date
    periods_created: int
    periods_expired: int
    skipped: int
    errors: int
