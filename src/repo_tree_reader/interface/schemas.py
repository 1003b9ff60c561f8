"""Pydantic response DTOs for the API boundary."""

from __future__ import annotations

from pydantic import BaseModel


class TreeFile(BaseModel):
    """One file of a fetched tree."""

    path: str
    size: int


class TreeResponse(BaseModel):
    """Successful response from ``GET /tree``."""

    etag: str
    files: list[TreeFile]


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
