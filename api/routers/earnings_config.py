"""Earnings config API endpoints — global, franchise and driver policies."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas.earnings import (
    EarningsConfigIn, DriverEarningsConfigIn, EarningsConfigResponse, EffectivePolicyResponse,
)
from services.config_resolver import resolve_earnings_config
from services.config_admin import (
    set_earnings_config, set_driver_earnings_configs, list_franchise_earnings_configs,
)
from services.earnings_policy import EarningsPolicy, ConfigScope
from services.sources import get_driver

router = APIRouter()


def policy_response(policy: EarningsPolicy, scope: ConfigScope) -> EffectivePolicyResponse:
    return EffectivePolicyResponse(scope=scope.value, **policy.as_dict())


def parse_uuid_list(raw: str | None) -> list[uuid.UUID]:
    if not raw:
        return []
    try:
        return [uuid.UUID(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="franchise_ids must be comma-separated UUIDs")


# ── Global ─────────────────────────────────────────────────

@router.get("", response_model=EffectivePolicyResponse)
async def get_global_config(db: AsyncSession = Depends(get_db)):
    """The global policy, or the built-in defaults when none is stored."""
    policy, scope = await resolve_earnings_config(db, driver_id=None, franchise_id=None)
    return policy_response(policy, scope)


@router.put("", response_model=EarningsConfigResponse)
async def put_global_config(data: EarningsConfigIn, db: AsyncSession = Depends(get_db)):
    return await set_earnings_config(db, ConfigScope.GLOBAL, data.to_config(), updated_by=data.updated_by)


# ── Franchise ──────────────────────────────────────────────

@router.get("/franchises", response_model=list[EarningsConfigResponse])
async def list_franchise_configs(
    franchise_ids: str | None = Query(None, description="Comma-separated franchise IDs"),
    db: AsyncSession = Depends(get_db),
):
    return await list_franchise_earnings_configs(db, parse_uuid_list(franchise_ids))


@router.get("/franchises/{franchise_id}", response_model=EffectivePolicyResponse)
async def get_franchise_config(franchise_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Policy applying to the franchise's drivers without their own config."""
    policy, scope = await resolve_earnings_config(db, driver_id=None, franchise_id=franchise_id)
    return policy_response(policy, scope)


@router.put("/franchises/{franchise_id}", response_model=EarningsConfigResponse)
async def put_franchise_config(
    franchise_id: uuid.UUID,
    data: EarningsConfigIn,
    db: AsyncSession = Depends(get_db),
):
    return await set_earnings_config(
        db, ConfigScope.FRANCHISE, data.to_config(),
        franchise_id=franchise_id, updated_by=data.updated_by,
    )


# ── Driver ─────────────────────────────────────────────────

@router.get("/drivers/{driver_id}", response_model=EffectivePolicyResponse)
async def get_driver_config(driver_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Effective policy for a driver and the scope it was resolved from."""
    driver = await get_driver(db, driver_id)
    if driver is None:
        raise HTTPException(status_code=404, detail="Driver not found")
    policy, scope = await resolve_earnings_config(db, driver_id, driver.franchise_id)
    return policy_response(policy, scope)


@router.put("/drivers", response_model=list[EarningsConfigResponse])
async def put_driver_configs(data: DriverEarningsConfigIn, db: AsyncSession = Depends(get_db)):
    """Apply one policy to one or more drivers."""
    return await set_driver_earnings_configs(db, data.driver_ids, data.to_config(), updated_by=data.updated_by)
