from __future__ import annotations

from pydantic import BaseModel


class Caller(BaseModel):
    """Identity extracted from a verified access token."""

    id: str
    name: str | None = None
    email: str | None = None
