"""Pricing API endpoints — fare quotes and trip-type configuration."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas.pricing import PriceQuoteRequest, PriceQuoteResponse, TripTypeConfigIn, TripTypeConfigResponse
from services.pricing import calculate_price, PriceResult
from services.config_resolver import resolve_trip_type_config
from services.config_admin import (
    list_trip_type_configs, trip_type_config_history,
    set_trip_type_config, deactivate_trip_type_config,
)

router = APIRouter()


def quote_response(result: PriceResult) -> PriceQuoteResponse:
    return PriceQuoteResponse(**{**asdict(result), "strategy": result.strategy.value})


@router.post("/calculate", response_model=PriceQuoteResponse)
async def calculate(data: PriceQuoteRequest, db: AsyncSession = Depends(get_db)):
    """Quote a trip. The stored config for the trip type wins over built-in defaults."""
    result = await calculate_price(
        db,
        trip_type=data.trip_type,
        distance_km=data.distance_km,
        duration_hours=data.duration_hours,
        car_category=data.car_category,
    )
    return quote_response(result)


# ── Trip-type configs ──────────────────────────────────────

@router.get("/trip-types", response_model=list[TripTypeConfigResponse])
async def list_trip_types(db: AsyncSession = Depends(get_db)):
    return await list_trip_type_configs(db)


@router.get("/trip-types/{name}", response_model=TripTypeConfigResponse)
async def get_trip_type(name: str, db: AsyncSession = Depends(get_db)):
    config = await resolve_trip_type_config(db, name)
    if config is None:
        raise HTTPException(status_code=404, detail=f"No active pricing configuration for {name}")
    return config


@router.get("/trip-types/{name}/history", response_model=list[TripTypeConfigResponse])
async def get_trip_type_history(name: str, db: AsyncSession = Depends(get_db)):
    """Every stored version, newest first."""
    return await trip_type_config_history(db, name)


@router.put("/trip-types/{name}", response_model=TripTypeConfigResponse)
async def put_trip_type(name: str, data: TripTypeConfigIn, db: AsyncSession = Depends(get_db)):
    """Store a new version; the previous one is superseded, not edited."""
    return await set_trip_type_config(db, name, data.to_config(), created_by=data.created_by)


@router.delete("/trip-types/{name}", response_model=TripTypeConfigResponse)
async def delete_trip_type(name: str, db: AsyncSession = Depends(get_db)):
    return await deactivate_trip_type_config(db, name)
