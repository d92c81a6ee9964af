"""
Pydantic schemas for the engine's input contract.

Collaborators hand the engine plain dicts (decoded JSON from a feed or a
cache).  Validating them through explicit schemas keeps malformed odds
out of the math: a record that fails validation is dropped by the quote
builder and never reaches the clusterer.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from evfinder.core.markets import MarketType
from evfinder.core.odds_math import is_valid_decimal


def _check_decimal(v: Optional[float]) -> Optional[float]:
    if v is None:
        return v
    if not is_valid_decimal(v):
        raise ValueError(f"decimal odds must be a finite number > 1.0, got {v!r}")
    return v


# ---------------------------------------------------------------------------
# Flat quote records
# ---------------------------------------------------------------------------

class QuoteRecord(BaseModel):
    """
    One already-paired quote: both sides of one bookmaker's line.

    Accepts camelCase keys from JS-side collaborators
    (``marketKey``, ``overOdds`` …) as well as snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subject: str = Field(..., min_length=1, description='Player or match label, e.g. "M. Salah"')
    market_key: str = Field(..., alias="marketKey", min_length=1)
    market_type: MarketType = Field(..., alias="marketType")
    line: float = Field(..., description="Raw line as quoted")
    over_odds: float = Field(..., alias="overOdds", description="Over/home decimal odds")
    under_odds: Optional[float] = Field(None, alias="underOdds", description="Under/away decimal odds")
    bookmaker: str = Field(..., min_length=1)
    timestamp: Optional[datetime] = Field(None, description="ISO-8601 observation time")

    @field_validator("line")
    @classmethod
    def validate_line(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"line must be finite, got {v!r}")
        return v

    @field_validator("over_odds", "under_odds")
    @classmethod
    def validate_odds(cls, v: Optional[float]) -> Optional[float]:
        return _check_decimal(v)

    @field_validator("subject", "bookmaker", "market_key")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


# ---------------------------------------------------------------------------
# Per-side selection rows
# ---------------------------------------------------------------------------

class SelectionRow(BaseModel):
    """
    One side of one bookmaker's line, as odds feeds usually deliver it.

    Exactly one of ``price`` (decimal) or ``american`` must be present.
    ``side`` is ``over``/``under``/``home``/``away``/``yes``; a missing side
    on a one-way market means ``yes``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subject: str = Field(..., min_length=1)
    market: str = Field(..., min_length=1, description="Provider market label or canonical key")
    line: Optional[float] = Field(None, description="Missing line on a yes/no prop means 0.5")
    side: Optional[Literal["over", "under", "home", "away", "yes"]] = None
    price: Optional[float] = Field(None, description="Decimal odds")
    american: Optional[float] = Field(None, description="American odds")
    bookmaker: str = Field(..., alias="sportsbook", min_length=1)
    timestamp: Optional[datetime] = None

    @field_validator("side", mode="before")
    @classmethod
    def lower_side(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        return _check_decimal(v)

    @field_validator("american")
    @classmethod
    def validate_american(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and -100 < v < 100:
            raise ValueError(
                f"american={v} is not valid American odds. Must be >= +100 or <= -100."
            )
        return v

    @model_validator(mode="after")
    def require_one_price(self) -> "SelectionRow":
        if (self.price is None) == (self.american is None):
            raise ValueError("exactly one of price / american is required")
        return self
