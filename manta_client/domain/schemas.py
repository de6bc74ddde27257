"""Pydantic models for JSON payloads exchanged with the store.

Directory listings arrive as newline-delimited JSON, one entry per line;
error responses carry a ``{"code": ..., "message": ...}`` document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DirectoryEntry(BaseModel):
    """A single child in a directory listing."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    type: Literal["object", "directory"]
    mtime: datetime | None = None
    size: int | None = Field(default=None, ge=0)
    etag: str | None = None
    durability: int | None = Field(default=None, ge=1)

    @property
    def is_directory(self) -> bool:
        return self.type == "directory"


class ErrorBody(BaseModel):
    """Error document returned alongside 4xx/5xx responses."""

    model_config = ConfigDict(extra="ignore")

    code: str | None = None
    message: str | None = None
