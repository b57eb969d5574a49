"""
Config Admin — append-only writes for trip-type and earnings configs.

Every write supersedes the current ACTIVE row (stamps ``superseded_at``,
deactivates it) and inserts a new version effective now. Rows are never
updated in place, so readers see either the old or the new policy.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.trip_type_config import TripTypeConfig
from models.earnings_config import DriverEarningsConfig
from services import errors
from services.errors import ValidationError, NotFoundError
from services.config_resolver import resolve_trip_type_config, resolve_scope_config
from services.earnings_policy import ConfigScope, DEFAULT_POLICY, parse_bonus_tiers, parse_deduction_tiers
from services.sources import get_driver

logger = logging.getLogger(__name__)

TRIP_TYPE_FIELDS = (
    "description", "special_price", "base_price", "base_duration", "base_distance",
    "extra_per_hour", "extra_per_half_hour", "extra_per_km",
    "premium_car_multiplier", "for_premium_cars", "distance_slabs",
)

NON_NEGATIVE_TRIP_FIELDS = (
    "base_price", "base_duration", "base_distance",
    "extra_per_hour", "extra_per_half_hour", "extra_per_km",
)

EARNINGS_FIELDS = (
    "daily_target_default", "incentive_tier1_min", "incentive_tier1_max",
    "incentive_tier1_type", "incentive_tier2_min", "incentive_tier2_percent",
    "monthly_bonus_tiers", "monthly_deduction_tiers",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Validation ─────────────────────────────────────────────

def validate_distance_slabs(slabs: list[dict] | None) -> None:
    """Each slab needs 0 ≤ from < to; sorted slabs may touch but not overlap."""
    if not slabs:
        return
    try:
        bounds = sorted((float(s["from"]), float(s["to"]), float(s["price"])) for s in slabs)
    except (KeyError, TypeError, ValueError):
        raise ValidationError(errors.INVALID_CONFIG, "Each distance slab needs numeric from, to and price")

    previous_to = None
    for start, end, price in bounds:
        if start < 0 or price < 0:
            raise ValidationError(errors.INVALID_CONFIG, "Distance slab values must be non-negative")
        if start >= end:
            raise ValidationError(errors.INVALID_CONFIG, f"Distance slab ({start}, {end}] must have from < to")
        if previous_to is not None and start < previous_to:
            raise ValidationError(errors.INVALID_CONFIG, f"Distance slab ({start}, {end}] overlaps the previous slab")
        previous_to = end


def validate_trip_type_config(data: dict) -> None:
    for name in NON_NEGATIVE_TRIP_FIELDS:
        value = data.get(name)
        if value is not None and value < 0:
            raise ValidationError(errors.INVALID_CONFIG, f"{name} must be non-negative")

    multiplier = data.get("premium_car_multiplier")
    if multiplier is not None and multiplier <= 0:
        raise ValidationError(errors.INVALID_CONFIG, "premium_car_multiplier must be greater than 0")

    schedule = data.get("for_premium_cars")
    if schedule is not None and (not isinstance(schedule, dict) or not schedule):
        raise ValidationError(errors.INVALID_CONFIG, "for_premium_cars must be a non-empty object")

    validate_distance_slabs(data.get("distance_slabs"))


def validate_earnings_config(data: dict) -> None:
    if data["incentive_tier1_min"] > data["incentive_tier1_max"]:
        raise ValidationError(errors.INVALID_CONFIG, "incentive_tier1_min must not exceed incentive_tier1_max")
    if not 0 <= data["incentive_tier2_percent"] <= 100:
        raise ValidationError(errors.INVALID_CONFIG, "incentive_tier2_percent must be between 0 and 100")
    try:
        deductions = parse_deduction_tiers(data["monthly_deduction_tiers"])
        parse_bonus_tiers(data["monthly_bonus_tiers"])
    except (KeyError, TypeError, ValueError):
        raise ValidationError(errors.INVALID_CONFIG, "Malformed monthly bonus or deduction tiers")
    if any(not 0 <= t.cut_percent <= 100 for t in deductions):
        raise ValidationError(errors.INVALID_CONFIG, "cut_percent must be between 0 and 100")


# ── Trip-type configs ──────────────────────────────────────

async def list_trip_type_configs(db: AsyncSession) -> list[TripTypeConfig]:
    result = await db.execute(
        select(TripTypeConfig)
        .where(TripTypeConfig.status == "ACTIVE")
        .order_by(TripTypeConfig.name)
    )
    return list(result.scalars().all())


async def trip_type_config_history(db: AsyncSession, name: str) -> list[TripTypeConfig]:
    """All versions for ``name``, newest first."""
    result = await db.execute(
        select(TripTypeConfig)
        .where(TripTypeConfig.name == name)
        .order_by(TripTypeConfig.effective_from.desc())
    )
    return list(result.scalars().all())


async def set_trip_type_config(
    db: AsyncSession,
    name: str,
    data: dict,
    created_by: str | None = None,
) -> TripTypeConfig:
    """Replace the ACTIVE config for ``name`` with a new version."""
    validate_trip_type_config(data)
    now = _now()

    current = await resolve_trip_type_config(db, name)
    if current is not None:
        current.status = "INACTIVE"
        current.superseded_at = now
        await db.flush()

    record = TripTypeConfig(
        name=name,
        status="ACTIVE",
        effective_from=now,
        created_by=created_by,
        **{k: data.get(k) for k in TRIP_TYPE_FIELDS},
    )
    if record.special_price is None:
        record.special_price = False
    db.add(record)
    await db.commit()
    await db.refresh(record)

    logger.info(
        "Trip type config %s set by %s (new %s, superseded %s)",
        name, created_by, record.id, current.id if current is not None else None,
    )
    return record


async def deactivate_trip_type_config(db: AsyncSession, name: str) -> TripTypeConfig:
    """Soft delete: the name falls back to built-in defaults (or becomes invalid)."""
    current = await resolve_trip_type_config(db, name)
    if current is None:
        raise NotFoundError(errors.TRIP_TYPE_CONFIG_NOT_FOUND, f"No active pricing configuration for {name}")

    current.status = "INACTIVE"
    current.superseded_at = _now()
    await db.commit()
    logger.info("Trip type config %s deactivated (%s)", name, current.id)
    return current


# ── Earnings configs ───────────────────────────────────────

def with_defaults(data: dict) -> dict:
    """Fill fields omitted on write from the hard-coded policy."""
    defaults = DEFAULT_POLICY.as_dict()
    merged = {}
    for name in EARNINGS_FIELDS:
        value = data.get(name)
        merged[name] = value if value is not None else defaults[name]
    # tier tables are stored as JSON lists
    merged["monthly_bonus_tiers"] = [dict(t) for t in merged["monthly_bonus_tiers"]]
    merged["monthly_deduction_tiers"] = [dict(t) for t in merged["monthly_deduction_tiers"]]
    return merged


def _scope_filter(scope: ConfigScope, franchise_id, driver_id):
    clauses = [DriverEarningsConfig.scope == scope.value]
    if scope == ConfigScope.FRANCHISE:
        clauses.append(DriverEarningsConfig.franchise_id == franchise_id)
    elif scope == ConfigScope.DRIVER:
        clauses.append(DriverEarningsConfig.driver_id == driver_id)
    return and_(*clauses)


async def set_earnings_config(
    db: AsyncSession,
    scope: ConfigScope,
    data: dict,
    franchise_id: uuid.UUID | None = None,
    driver_id: uuid.UUID | None = None,
    updated_by: str | None = None,
    commit: bool = True,
) -> DriverEarningsConfig:
    """Deactivate the scope's current row and insert a new version with defaults filled in."""
    if scope == ConfigScope.DEFAULT:
        raise ValidationError(errors.INVALID_CONFIG, "The default policy cannot be stored")
    if scope == ConfigScope.FRANCHISE and franchise_id is None:
        raise ValidationError(errors.INVALID_CONFIG, "franchise_id is required for a franchise config")
    if scope == ConfigScope.DRIVER and driver_id is None:
        raise ValidationError(errors.INVALID_CONFIG, "driver_id is required for a driver config")

    values = with_defaults(data)
    validate_earnings_config(values)
    now = _now()

    current = await resolve_scope_config(db, scope, franchise_id=franchise_id, driver_id=driver_id)
    if current is not None:
        current.is_active = False
        current.superseded_at = now
        await db.flush()

    latest_version = (await db.execute(
        select(func.max(DriverEarningsConfig.version)).where(_scope_filter(scope, franchise_id, driver_id))
    )).scalar() or 0

    record = DriverEarningsConfig(
        scope=scope.value,
        franchise_id=franchise_id if scope == ConfigScope.FRANCHISE else None,
        driver_id=driver_id if scope == ConfigScope.DRIVER else None,
        is_active=True,
        version=latest_version + 1,
        effective_from=now,
        updated_by=updated_by,
        **values,
    )
    db.add(record)
    if commit:
        await db.commit()
        await db.refresh(record)

    logger.info(
        "Earnings config %s set at %s scope (franchise=%s driver=%s version=%s) by %s",
        record.id, scope.value, franchise_id, driver_id, record.version, updated_by,
    )
    return record


async def list_franchise_earnings_configs(
    db: AsyncSession,
    franchise_ids: list[uuid.UUID] | None = None,
) -> list[DriverEarningsConfig]:
    query = select(DriverEarningsConfig).where(
        DriverEarningsConfig.scope == ConfigScope.FRANCHISE.value,
        DriverEarningsConfig.is_active.is_(True),
    )
    if franchise_ids:
        query = query.where(DriverEarningsConfig.franchise_id.in_(franchise_ids))
    result = await db.execute(query.order_by(DriverEarningsConfig.effective_from.desc()))
    return list(result.scalars().all())


async def set_driver_earnings_configs(
    db: AsyncSession,
    driver_ids: list[uuid.UUID],
    data: dict,
    updated_by: str | None = None,
) -> list[DriverEarningsConfig]:
    """Apply one policy to several drivers in a single transaction."""
    if not driver_ids:
        raise ValidationError(errors.INVALID_CONFIG, "driver_ids must not be empty")

    driver_ids = list(dict.fromkeys(driver_ids))
    for driver_id in driver_ids:
        if await get_driver(db, driver_id) is None:
            raise NotFoundError(errors.DRIVER_NOT_FOUND, f"Driver not found: {driver_id}")

    records = []
    try:
        for driver_id in driver_ids:
            records.append(await set_earnings_config(
                db, ConfigScope.DRIVER, data, driver_id=driver_id, updated_by=updated_by, commit=False,
            ))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    for record in records:
        await db.refresh(record)
    return records
