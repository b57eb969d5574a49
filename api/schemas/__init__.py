"""Pydantic schemas for API request/response models."""

from __future__ import annotations
from enum import Enum
from pydantic import BaseModel


# ── Enums ──────────────────────────────────────────────────

class TripTypeName(str, Enum):
    CITY_ROUND = "CITY_ROUND"
    CITY_DROPOFF = "CITY_DROPOFF"
    LONG_ROUND = "LONG_ROUND"
    LONG_DROPOFF = "LONG_DROPOFF"


class CarCategory(str, Enum):
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"


class ConfigStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


# ── Errors ─────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    detail: str
    code: str


# ── Jobs ───────────────────────────────────────────────────

class JobSummary(BaseModel):
    period: str
    processed_count: int
    error_count: int
    failed_driver_ids: list[str] = []
