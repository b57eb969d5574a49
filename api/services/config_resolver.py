"""
Config Resolver — picks the one configuration row that applies.

Trip-type configs are keyed by name. Earnings configs are resolved
driver > franchise > global, falling back to the hard-coded policy.

Without ``as_of`` the ACTIVE row is used. With ``as_of`` the version whose
``effective_from <= as_of < superseded_at`` is used, so a past period can be
recomputed against the policy that was in force at the time.

Two rows for one scope key raise ConfigurationError.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models.trip_type_config import TripTypeConfig
from models.earnings_config import DriverEarningsConfig
from services.errors import ConfigurationError, DUPLICATE_ACTIVE_CONFIG
from services.earnings_policy import EarningsPolicy, ConfigScope, DEFAULT_POLICY

logger = logging.getLogger(__name__)


def _effective_at(query, model, active_clause, as_of: datetime | None):
    if as_of is None:
        return query.where(active_clause)
    return query.where(
        model.effective_from <= as_of,
        or_(model.superseded_at.is_(None), model.superseded_at > as_of),
    )


def _single(rows, label: str):
    if len(rows) > 1:
        logger.error("Config resolution: %d active rows for %s", len(rows), label)
        raise ConfigurationError(
            DUPLICATE_ACTIVE_CONFIG,
            f"Multiple active configurations found for {label}",
        )
    return rows[0] if rows else None


async def resolve_trip_type_config(
    db: AsyncSession,
    name: str,
    as_of: datetime | None = None,
) -> TripTypeConfig | None:
    """Return the single applicable TripTypeConfig for ``name``, or None."""
    query = select(TripTypeConfig).where(TripTypeConfig.name == name)
    query = _effective_at(query, TripTypeConfig, TripTypeConfig.status == "ACTIVE", as_of)
    rows = (await db.execute(query)).scalars().all()
    return _single(rows, f"trip type {name!r}")


async def resolve_scope_config(
    db: AsyncSession,
    scope: ConfigScope,
    franchise_id: uuid.UUID | None = None,
    driver_id: uuid.UUID | None = None,
    as_of: datetime | None = None,
) -> DriverEarningsConfig | None:
    """Return the applicable earnings config row for exactly one scope key."""
    query = select(DriverEarningsConfig).where(DriverEarningsConfig.scope == scope.value)
    if scope == ConfigScope.DRIVER:
        query = query.where(DriverEarningsConfig.driver_id == driver_id)
        label = f"driver {driver_id}"
    elif scope == ConfigScope.FRANCHISE:
        query = query.where(DriverEarningsConfig.franchise_id == franchise_id)
        label = f"franchise {franchise_id}"
    else:
        label = "global scope"

    query = _effective_at(query, DriverEarningsConfig, DriverEarningsConfig.is_active.is_(True), as_of)
    rows = (await db.execute(query)).scalars().all()
    return _single(rows, f"earnings config ({label})")


async def resolve_earnings_config(
    db: AsyncSession,
    driver_id: uuid.UUID | None,
    franchise_id: uuid.UUID | None,
    as_of: datetime | None = None,
) -> tuple[EarningsPolicy, ConfigScope]:
    """
    Resolve the earnings policy for a driver.

    Returns:
        (policy, scope) where scope tells which level supplied it;
        ConfigScope.DEFAULT means nothing was persisted.
    """
    candidates = []
    if driver_id is not None:
        candidates.append(ConfigScope.DRIVER)
    if franchise_id is not None:
        candidates.append(ConfigScope.FRANCHISE)
    candidates.append(ConfigScope.GLOBAL)

    for scope in candidates:
        record = await resolve_scope_config(
            db, scope, franchise_id=franchise_id, driver_id=driver_id, as_of=as_of,
        )
        if record is not None:
            logger.debug("Earnings config for driver %s resolved at %s scope (%s)", driver_id, scope.value, record.id)
            return EarningsPolicy.from_record(record), scope

    return DEFAULT_POLICY, ConfigScope.DEFAULT
