import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class PriceQuoteRequest(BaseModel):
    # Sign checks happen in the engine so they surface as INVALID_DISTANCE / INVALID_DURATION
    trip_type: str = Field(..., min_length=1, max_length=64)
    distance_km: Optional[float] = None
    duration_hours: Optional[float] = None
    car_category: Optional[str] = Field(None, max_length=32)


class PriceQuoteResponse(BaseModel):
    trip_type: str
    strategy: str
    base_price: float
    extra_charges: float
    premium_multiplier: Optional[float] = None
    total_price: int
    breakdown: dict[str, float]
    config_used: dict
    trip_type_config: dict

    class Config:
        from_attributes = True


class DistanceSlabIn(BaseModel):
    from_km: float = Field(..., alias="from", ge=0)
    to_km: float = Field(..., alias="to", gt=0)
    price: float = Field(..., ge=0)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_range(self):
        if self.from_km >= self.to_km:
            raise ValueError("'from' must be less than 'to'")
        return self


class TripTypeConfigIn(BaseModel):
    description: Optional[str] = None
    special_price: bool = False
    base_price: Optional[float] = Field(None, ge=0)
    base_duration: Optional[float] = Field(None, ge=0)
    base_distance: Optional[float] = Field(None, ge=0)
    extra_per_hour: Optional[float] = Field(None, ge=0)
    extra_per_half_hour: Optional[float] = Field(None, ge=0)
    extra_per_km: Optional[float] = Field(None, ge=0)
    premium_car_multiplier: Optional[float] = Field(None, gt=0)
    for_premium_cars: Optional[dict] = None
    distance_slabs: Optional[list[DistanceSlabIn]] = None
    created_by: Optional[str] = Field(None, max_length=64)

    @field_validator("for_premium_cars")
    @classmethod
    def non_empty_schedule(cls, v):
        if v is not None and not v:
            raise ValueError("for_premium_cars must be a non-empty object")
        return v

    def to_config(self) -> dict:
        """Storage shape: slabs keep their JSON keys ``from``/``to``/``price``."""
        data = self.model_dump(exclude={"created_by", "distance_slabs"})
        data["distance_slabs"] = (
            [s.model_dump(by_alias=True) for s in self.distance_slabs]
            if self.distance_slabs is not None else None
        )
        return data


class TripTypeConfigResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    special_price: bool
    base_price: Optional[float] = None
    base_duration: Optional[float] = None
    base_distance: Optional[float] = None
    extra_per_hour: Optional[float] = None
    extra_per_half_hour: Optional[float] = None
    extra_per_km: Optional[float] = None
    premium_car_multiplier: Optional[float] = None
    for_premium_cars: Optional[dict] = None
    distance_slabs: Optional[list[dict]] = None
    status: str
    effective_from: datetime
    superseded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
