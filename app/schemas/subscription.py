"""Pydantic schemas for the waitlist endpoints.

Wire field names are camelCase (``totalSignups``) for compatibility with the
existing frontend; Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SubscribeRequest(BaseModel):
    """Body of POST /api/subscribe."""

    model_config = ConfigDict(extra="ignore")

    email: str | None = Field(
        default=None,
        description="Email address to add to the waitlist.",
        examples=["ada@example.com"],
    )


class SubscribeResponse(BaseModel):
    """Outcome of a subscribe request (success and error responses share it)."""

    success: bool = Field(..., description="Whether the email was added.")
    message: str = Field(..., description="Human-readable outcome.")
    total_signups: int | None = Field(
        default=None,
        serialization_alias="totalSignups",
        description="Total waitlist size after a successful signup.",
    )


class StatsResponse(BaseModel):
    """Waitlist statistics."""

    total_signups: int = Field(..., serialization_alias="totalSignups", ge=0)
    connected: bool = Field(..., description="Whether the subscriber store is reachable.")


class HealthResponse(BaseModel):
    """Liveness and storage connectivity."""

    status: Literal["ok"] = "ok"
    database: Literal["connected", "disconnected"]
    timestamp: str = Field(..., description="Server time, ISO-8601 UTC.")
