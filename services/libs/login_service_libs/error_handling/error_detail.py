"""Structured error detail model shared by all login flow errors."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Describes a single domain error.

    ``error_code`` is the flow error token (e.g. ``email_exists``) that ends up
    in the redirect query string; ``category`` names the error family.
    """

    error_code: str
    category: str
    message: str
    correlation_id: UUID
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    service: str
    operation: str
    details: dict[str, Any] = Field(default_factory=dict)
