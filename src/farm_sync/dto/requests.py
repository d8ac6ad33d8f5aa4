"""Request DTOs for API endpoints."""

from typing import Literal

from pydantic import BaseModel, Field


class InvalidateCacheRequest(BaseModel):
    """Request DTO for bulk invalidation, e.g. after a database reseed.

    The handler will convert this to a pattern for the keyed cache.
    """

    pattern: str = Field(..., description="Key prefix or regular expression", min_length=1)
    mode: Literal["prefix", "regex"] = Field(
        "prefix",
        description="How to match keys: 'prefix' (startswith) or 'regex' (re.search)",
    )
    refresh_animals: bool = Field(
        False,
        description="Also refetch the canonical animal collection from the backend",
    )
