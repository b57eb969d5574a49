"""Tests for config writes: validation, supersede-then-insert, defaults."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from models.trip_type_config import TripTypeConfig
from models.earnings_config import DriverEarningsConfig
from services.errors import ValidationError, NotFoundError
from services.earnings_policy import ConfigScope
from services.config_admin import (
    validate_distance_slabs, validate_trip_type_config, with_defaults,
    set_trip_type_config, deactivate_trip_type_config,
    set_earnings_config, set_driver_earnings_configs,
)


def _session(max_version=None):
    db = AsyncMock()
    db.add = MagicMock()
    result = MagicMock()
    result.scalar.return_value = max_version
    db.execute.return_value = result
    return db


# ── Validation ─────────────────────────────────────────────

def test_touching_slabs_are_valid():
    validate_distance_slabs([
        {"from": 50, "to": 100, "price": 2000},
        {"from": 0, "to": 50, "price": 1000},
    ])


def test_overlapping_slabs_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_distance_slabs([
            {"from": 0, "to": 60, "price": 1000},
            {"from": 50, "to": 100, "price": 2000},
        ])
    assert exc.value.code == "INVALID_CONFIG"


@pytest.mark.parametrize("slab", [
    {"from": 10, "to": 10, "price": 100},
    {"from": -1, "to": 10, "price": 100},
    {"from": 0, "to": 10},
])
def test_malformed_slab_rejected(slab):
    with pytest.raises(ValidationError):
        validate_distance_slabs([slab])


def test_trip_type_config_field_checks():
    with pytest.raises(ValidationError):
        validate_trip_type_config({"base_price": -1})
    with pytest.raises(ValidationError):
        validate_trip_type_config({"premium_car_multiplier": 0})
    with pytest.raises(ValidationError):
        validate_trip_type_config({"for_premium_cars": {}})
    validate_trip_type_config({"base_price": 0, "premium_car_multiplier": 1.2, "for_premium_cars": {"SUV": 1}})


def test_omitted_earnings_fields_take_defaults():
    values = with_defaults({"daily_target_default": 1500, "incentive_tier2_percent": None})
    assert values["daily_target_default"] == 1500
    assert values["incentive_tier2_percent"] == 20
    assert values["incentive_tier1_type"] == "full_extra"
    assert values["monthly_bonus_tiers"] == [
        {"min_earnings": 25000, "bonus": 3000},
        {"min_earnings": 28000, "bonus": 500},
    ]
    assert values["monthly_deduction_tiers"][0] == {"max_earnings": 26000, "cut_percent": 25}


# ── Trip-type writes ───────────────────────────────────────

@pytest.mark.asyncio
async def test_set_trip_type_supersedes_active_row():
    current = SimpleNamespace(id=uuid.uuid4(), status="ACTIVE", superseded_at=None)
    db = _session()
    with patch("services.config_admin.resolve_trip_type_config", AsyncMock(return_value=current)):
        record = await set_trip_type_config(db, "CITY_ROUND", {"base_price": 450, "extra_per_hour": 110}, "ops")

    assert current.status == "INACTIVE"
    assert current.superseded_at is not None
    assert isinstance(record, TripTypeConfig)
    assert record.status == "ACTIVE"
    assert record.base_price == 450
    assert record.special_price is False
    assert record.effective_from == current.superseded_at
    db.flush.assert_awaited_once()
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_set_trip_type_first_version():
    db = _session()
    with patch("services.config_admin.resolve_trip_type_config", AsyncMock(return_value=None)):
        record = await set_trip_type_config(db, "AIRPORT", {"special_price": True, "distance_slabs": [
            {"from": 0, "to": 30, "price": 900},
        ]})
    assert record.name == "AIRPORT"
    assert record.special_price is True
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_set_trip_type_invalid_config_writes_nothing():
    db = _session()
    with pytest.raises(ValidationError):
        await set_trip_type_config(db, "CITY_ROUND", {"extra_per_km": -3})
    db.add.assert_not_called()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_deactivate_missing_config():
    with patch("services.config_admin.resolve_trip_type_config", AsyncMock(return_value=None)):
        with pytest.raises(NotFoundError) as exc:
            await deactivate_trip_type_config(_session(), "CITY_ROUND")
    assert exc.value.code == "TRIP_TYPE_CONFIG_NOT_FOUND"


@pytest.mark.asyncio
async def test_deactivate_soft_deletes():
    current = SimpleNamespace(id=uuid.uuid4(), status="ACTIVE", superseded_at=None)
    db = _session()
    with patch("services.config_admin.resolve_trip_type_config", AsyncMock(return_value=current)):
        await deactivate_trip_type_config(db, "CITY_ROUND")
    assert current.status == "INACTIVE"
    db.commit.assert_awaited_once()


# ── Earnings writes ────────────────────────────────────────

@pytest.mark.asyncio
async def test_set_global_earnings_config_increments_version():
    current = SimpleNamespace(id=uuid.uuid4(), is_active=True, superseded_at=None)
    db = _session(max_version=3)
    with patch("services.config_admin.resolve_scope_config", AsyncMock(return_value=current)):
        record = await set_earnings_config(db, ConfigScope.GLOBAL, {"daily_target_default": 1300}, updated_by="admin")

    assert current.is_active is False
    assert isinstance(record, DriverEarningsConfig)
    assert record.version == 4
    assert record.scope == "GLOBAL"
    assert record.daily_target_default == 1300
    assert record.incentive_tier1_max == 1550
    assert record.franchise_id is None and record.driver_id is None


@pytest.mark.asyncio
async def test_franchise_scope_requires_id():
    with pytest.raises(ValidationError):
        await set_earnings_config(_session(), ConfigScope.FRANCHISE, {})


@pytest.mark.asyncio
async def test_tier1_min_above_max_rejected():
    with patch("services.config_admin.resolve_scope_config", AsyncMock(return_value=None)):
        with pytest.raises(ValidationError):
            await set_earnings_config(
                _session(), ConfigScope.GLOBAL, {"incentive_tier1_min": 2000, "incentive_tier1_max": 1500},
            )


def _known_drivers():
    return AsyncMock(side_effect=lambda _db, driver_id: SimpleNamespace(id=driver_id, franchise_id=None))


@pytest.mark.asyncio
async def test_set_driver_configs_single_commit():
    drivers = [uuid.uuid4(), uuid.uuid4()]
    db = _session(max_version=None)
    with patch("services.config_admin.get_driver", _known_drivers()), \
         patch("services.config_admin.resolve_scope_config", AsyncMock(return_value=None)):
        records = await set_driver_earnings_configs(db, drivers + [drivers[0]], {}, updated_by="ops")

    assert [r.driver_id for r in records] == drivers
    assert all(r.version == 1 and r.scope == "DRIVER" for r in records)
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_set_driver_configs_rolls_back_on_failure():
    db = _session()
    resolver = AsyncMock(side_effect=[None, RuntimeError("db down")])
    with patch("services.config_admin.get_driver", _known_drivers()), \
         patch("services.config_admin.resolve_scope_config", resolver):
        with pytest.raises(RuntimeError):
            await set_driver_earnings_configs(db, [uuid.uuid4(), uuid.uuid4()], {})
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_set_driver_configs_unknown_driver_writes_nothing():
    known, unknown = uuid.uuid4(), uuid.uuid4()
    db = _session()
    lookup = AsyncMock(side_effect=lambda _db, driver_id: SimpleNamespace(id=driver_id) if driver_id == known else None)
    resolver = AsyncMock(return_value=None)
    with patch("services.config_admin.get_driver", lookup), \
         patch("services.config_admin.resolve_scope_config", resolver):
        with pytest.raises(NotFoundError) as exc:
            await set_driver_earnings_configs(db, [known, unknown], {"daily_target_default": 1400})

    assert exc.value.code == "DRIVER_NOT_FOUND"
    assert str(unknown) in exc.value.message
    resolver.assert_not_awaited()
    db.add.assert_not_called()
    db.commit.assert_not_awaited()
