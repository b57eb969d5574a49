"""
Pricing Engine — trip fares from trip-type rules.

Strategies:
  1. Flat + hourly overtime: CITY_ROUND, LONG_ROUND, custom types with a
     base price, base duration and hourly rate
  2. Flat + hourly/half-hourly overtime + per-km overdistance: CITY_DROPOFF
  3. Distance slabs: LONG_DROPOFF without a duration shape, any special-price config
  4. Base price only: custom config matching none of the above (degraded)

A persisted TripTypeConfig overrides the built-in defaults field by field.
Premium categories pay (base + extras) × (multiplier − 1) on top.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from services import errors
from services.errors import ValidationError
from services.config_resolver import resolve_trip_type_config
from services.money import round_half_up, to_float

logger = logging.getLogger(__name__)


# ── Trip types & categories ────────────────────────────────

class BuiltinTripType(str, Enum):
    CITY_ROUND = "CITY_ROUND"
    CITY_DROPOFF = "CITY_DROPOFF"
    LONG_ROUND = "LONG_ROUND"
    LONG_DROPOFF = "LONG_DROPOFF"


class CarCategory(str, Enum):
    NORMAL = "NORMAL"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"


class PricingStrategy(str, Enum):
    FLAT_OVERTIME = "FLAT_OVERTIME"
    FLAT_OVERTIME_DISTANCE = "FLAT_OVERTIME_DISTANCE"
    DISTANCE_SLAB = "DISTANCE_SLAB"
    BASE_ONLY = "BASE_ONLY"


# ── Premium option (closed variant) ────────────────────────

@dataclass(frozen=True)
class NoPremium:
    pass


@dataclass(frozen=True)
class PremiumMultiplier:
    value: float


@dataclass(frozen=True)
class CustomPremiumSchedule:
    """Alternative fee structure; only its presence is acted on."""
    schedule: dict = field(hash=False)


PremiumOption = NoPremium | PremiumMultiplier | CustomPremiumSchedule


def premium_option(multiplier, for_premium_cars: dict | None) -> PremiumOption:
    if multiplier is not None:
        return PremiumMultiplier(float(multiplier))
    if for_premium_cars:
        return CustomPremiumSchedule(for_premium_cars)
    return NoPremium()


# ── Rules ──────────────────────────────────────────────────

@dataclass(frozen=True)
class DistanceSlab:
    from_km: float
    to_km: float
    price: float

    def contains(self, distance_km: float) -> bool:
        """Slabs are half-open: (from, to]."""
        return self.from_km < distance_km <= self.to_km

    @classmethod
    def parse(cls, raw: dict) -> DistanceSlab:
        return cls(from_km=float(raw["from"]), to_km=float(raw["to"]), price=float(raw["price"]))


@dataclass(frozen=True)
class PricingRules:
    name: str
    special_price: bool = False
    base_price: float | None = None
    base_duration: float | None = None
    base_distance: float | None = None
    extra_per_hour: float | None = None
    extra_per_half_hour: float | None = None
    extra_per_km: float | None = None
    premium: PremiumOption = NoPremium()
    distance_slabs: tuple[DistanceSlab, ...] = ()
    config_id: str | None = None
    from_database: bool = False

    @classmethod
    def from_record(cls, record) -> PricingRules:
        """Build from a TripTypeConfig row."""
        return cls(
            name=record.name,
            special_price=bool(record.special_price),
            base_price=to_float(record.base_price),
            base_duration=to_float(record.base_duration),
            base_distance=to_float(record.base_distance),
            extra_per_hour=to_float(record.extra_per_hour),
            extra_per_half_hour=to_float(record.extra_per_half_hour),
            extra_per_km=to_float(record.extra_per_km),
            premium=premium_option(record.premium_car_multiplier, record.for_premium_cars),
            distance_slabs=tuple(DistanceSlab.parse(s) for s in (record.distance_slabs or [])),
            config_id=str(record.id),
            from_database=True,
        )

    def has_duration_shape(self) -> bool:
        return (
            self.base_price is not None
            and self.base_duration is not None
            and self.extra_per_hour is not None
        )

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "special_price": self.special_price,
            "base_price": self.base_price,
            "base_duration": self.base_duration,
            "base_distance": self.base_distance,
            "extra_per_hour": self.extra_per_hour,
            "extra_per_half_hour": self.extra_per_half_hour,
            "extra_per_km": self.extra_per_km,
        }


_OVERRIDABLE_FIELDS = (
    "base_price", "base_duration", "base_distance",
    "extra_per_hour", "extra_per_half_hour", "extra_per_km",
)


def merge_rules(defaults: PricingRules, override: PricingRules | None) -> PricingRules:
    """Overlay persisted values onto built-in defaults; None keeps the default."""
    if override is None:
        return defaults
    merged = {f: getattr(override, f) if getattr(override, f) is not None else getattr(defaults, f)
              for f in _OVERRIDABLE_FIELDS}
    return replace(
        override,
        premium=defaults.premium if isinstance(override.premium, NoPremium) else override.premium,
        distance_slabs=override.distance_slabs or defaults.distance_slabs,
        **merged,
    )


# ── Built-in defaults ──────────────────────────────────────

DEFAULT_DISTANCE_SLABS = (
    DistanceSlab(0, 50, 1000),
    DistanceSlab(50, 100, 2000),
    DistanceSlab(100, 200, 3500),
    DistanceSlab(200, 500, 5000),
)

DEFAULT_PRICING_RULES = {
    BuiltinTripType.CITY_ROUND: PricingRules(
        name="CITY_ROUND",
        base_price=400, base_duration=3, extra_per_hour=100,
    ),
    BuiltinTripType.LONG_ROUND: PricingRules(
        name="LONG_ROUND",
        base_price=1500, base_duration=12, extra_per_hour=150,
    ),
    BuiltinTripType.CITY_DROPOFF: PricingRules(
        name="CITY_DROPOFF",
        base_price=300, base_duration=2, base_distance=20,
        extra_per_hour=100, extra_per_half_hour=50, extra_per_km=12,
    ),
    BuiltinTripType.LONG_DROPOFF: PricingRules(
        name="LONG_DROPOFF",
        distance_slabs=DEFAULT_DISTANCE_SLABS,
    ),
}


@dataclass(frozen=True)
class CustomTripType:
    name: str
    rules: PricingRules


TripType = BuiltinTripType | CustomTripType


# ── Result ─────────────────────────────────────────────────

@dataclass
class PriceResult:
    trip_type: str
    strategy: PricingStrategy
    base_price: float
    extra_charges: float
    premium_multiplier: float | None
    total_price: int
    breakdown: dict[str, float]
    config_used: dict
    trip_type_config: dict


@dataclass
class _Charges:
    base: float = 0.0
    duration_extra: float = 0.0
    distance_extra: float = 0.0
    slab_based: float = 0.0

    @property
    def extras(self) -> float:
        return self.duration_extra + self.distance_extra + self.slab_based


# ── Core Functions ─────────────────────────────────────────

def validate_metrics(distance_km: float | None, duration_hours: float | None) -> None:
    if distance_km is not None and distance_km < 0:
        raise ValidationError(errors.INVALID_DISTANCE)
    if duration_hours is not None and duration_hours < 0:
        raise ValidationError(errors.INVALID_DURATION)


def resolve_trip_type(name: str, persisted: PricingRules | None) -> tuple[TripType, PricingRules]:
    """Classify ``name`` as a built-in or custom type and produce its effective rules."""
    try:
        builtin = BuiltinTripType(name)
    except ValueError:
        builtin = None

    if builtin is not None:
        return builtin, merge_rules(DEFAULT_PRICING_RULES[builtin], persisted)
    if persisted is None:
        raise ValidationError(errors.INVALID_TRIP_TYPE, f"Invalid trip type: {name}")
    return CustomTripType(name=name, rules=persisted), persisted


def select_strategy(trip_type: TripType, rules: PricingRules) -> PricingStrategy:
    if rules.special_price and rules.distance_slabs:
        return PricingStrategy.DISTANCE_SLAB

    if isinstance(trip_type, BuiltinTripType):
        if trip_type in (BuiltinTripType.CITY_ROUND, BuiltinTripType.LONG_ROUND):
            return PricingStrategy.FLAT_OVERTIME
        if trip_type == BuiltinTripType.CITY_DROPOFF:
            return PricingStrategy.FLAT_OVERTIME_DISTANCE
        if trip_type == BuiltinTripType.LONG_DROPOFF:
            if rules.has_duration_shape():
                return PricingStrategy.FLAT_OVERTIME
            return PricingStrategy.DISTANCE_SLAB
        raise AssertionError(f"unhandled built-in trip type {trip_type}")

    if isinstance(trip_type, CustomTripType):
        if rules.has_duration_shape() and not rules.distance_slabs:
            return PricingStrategy.FLAT_OVERTIME
        return PricingStrategy.BASE_ONLY

    raise AssertionError(f"unhandled trip type {trip_type!r}")


def overtime_charge(extra_hours: float, per_hour: float, per_half_hour: float | None) -> float:
    """
    Whole hours at the hourly rate; the remainder rounded up to the next
    half-hour, or billed pro rata at the hourly rate when no half-hour rate is set.
    """
    if extra_hours <= 0:
        return 0.0
    whole_hours = math.floor(extra_hours)
    # rounded so float noise (2.5 - 2 = 0.5000000001) does not add a half-hour
    remainder_min = round((extra_hours - whole_hours) * 60, 6)

    charge = whole_hours * per_hour
    if remainder_min > 0:
        if per_half_hour:
            charge += math.ceil(remainder_min / 30) * per_half_hour
        else:
            charge += remainder_min / 60 * per_hour
    return charge


def _price_flat_overtime(rules: PricingRules, distance_km, duration_hours) -> _Charges:
    extra_hours = max(0.0, (duration_hours or 0) - (rules.base_duration or 0))
    return _Charges(
        base=rules.base_price or 0,
        duration_extra=extra_hours * (rules.extra_per_hour or 0),
    )


def _price_flat_overtime_distance(rules: PricingRules, distance_km, duration_hours) -> _Charges:
    charges = _Charges(base=rules.base_price or 0)

    if (
        distance_km is not None
        and rules.base_distance is not None
        and rules.extra_per_km
        and distance_km > rules.base_distance
    ):
        charges.distance_extra = (distance_km - rules.base_distance) * rules.extra_per_km

    if duration_hours is not None and rules.base_duration is not None:
        charges.duration_extra = overtime_charge(
            duration_hours - rules.base_duration,
            rules.extra_per_hour or 0,
            rules.extra_per_half_hour,
        )
    return charges


def find_slab(slabs: tuple[DistanceSlab, ...], distance_km: float) -> tuple[DistanceSlab, bool]:
    """
    Return (slab, overflowed). Beyond the last slab the last one applies;
    a distance falling in a gap between slabs takes the next slab up.
    """
    ordered = sorted(slabs, key=lambda s: s.from_km)
    for slab in ordered:
        if slab.contains(distance_km):
            return slab, False
    last = max(ordered, key=lambda s: s.to_km)
    if distance_km > last.to_km:
        return last, True
    return next(s for s in ordered if s.to_km >= distance_km), False


def _price_distance_slab(rules: PricingRules, distance_km, duration_hours) -> _Charges:
    if distance_km is None or distance_km <= 0:
        raise ValidationError(errors.MISSING_DISTANCE_FOR_DROPOFF)

    slab, overflowed = find_slab(rules.distance_slabs, distance_km)
    charges = _Charges(base=rules.base_price or 0, slab_based=slab.price)
    if overflowed and rules.extra_per_km:
        charges.distance_extra = rules.extra_per_km * distance_km

    logger.debug(
        "Slab pricing: distance=%s slab=(%s, %s] price=%s overflow=%s",
        distance_km, slab.from_km, slab.to_km, slab.price, overflowed,
    )
    return charges


def _price_base_only(rules: PricingRules, distance_km, duration_hours) -> _Charges:
    logger.warning(
        "Trip type %s has an incomplete pricing config (config %s); charging base price only",
        rules.name, rules.config_id,
    )
    return _Charges(base=rules.base_price or 0)


_STRATEGY_PRICERS = {
    PricingStrategy.FLAT_OVERTIME: _price_flat_overtime,
    PricingStrategy.FLAT_OVERTIME_DISTANCE: _price_flat_overtime_distance,
    PricingStrategy.DISTANCE_SLAB: _price_distance_slab,
    PricingStrategy.BASE_ONLY: _price_base_only,
}


def premium_multiplier_for(premium: PremiumOption, car_category: str | None) -> float | None:
    """Multiplier to apply for ``car_category``, or None when no premium applies."""
    category = (car_category or CarCategory.NORMAL.value).upper()
    if category == CarCategory.NORMAL.value:
        return None

    if isinstance(premium, PremiumMultiplier):
        return premium.value
    if isinstance(premium, CustomPremiumSchedule):
        return settings.default_premium_multiplier
    if isinstance(premium, NoPremium):
        if category in (CarCategory.PREMIUM.value, CarCategory.LUXURY.value):
            return settings.default_premium_multiplier
        return None
    raise AssertionError(f"unhandled premium option {premium!r}")


def price_trip(
    trip_type: str,
    persisted: PricingRules | None,
    distance_km: float | None = None,
    duration_hours: float | None = None,
    car_category: str | None = None,
) -> PriceResult:
    """
    Price a trip from already-resolved rules. No I/O.

    Args:
        trip_type: Built-in type name or operator-defined custom name
        persisted: Rules from the stored config, or None if nothing is stored
        distance_km: Trip distance (required for slab pricing)
        duration_hours: Trip duration
        car_category: NORMAL, PREMIUM, LUXURY or another premium category

    Returns:
        PriceResult with a rounded total and itemised breakdown
    """
    validate_metrics(distance_km, duration_hours)

    resolved_type, rules = resolve_trip_type(trip_type, persisted)
    strategy = select_strategy(resolved_type, rules)
    charges = _STRATEGY_PRICERS[strategy](rules, distance_km, duration_hours)

    multiplier = premium_multiplier_for(rules.premium, car_category)
    premium_adjustment = 0.0
    if multiplier is not None:
        premium_adjustment = (charges.base + charges.extras) * (multiplier - 1)

    total = charges.base + charges.extras + premium_adjustment

    breakdown = {"base": round(charges.base, 2)}
    for key, value in (
        ("duration_extra", charges.duration_extra),
        ("distance_extra", charges.distance_extra),
        ("slab_based", charges.slab_based),
        ("premium_adjustment", premium_adjustment),
    ):
        if value:
            breakdown[key] = round(value, 2)

    result = PriceResult(
        trip_type=trip_type,
        strategy=strategy,
        base_price=charges.base,
        extra_charges=round(charges.extras, 2),
        premium_multiplier=multiplier,
        total_price=round_half_up(total),
        breakdown=breakdown,
        config_used={
            "from_database": rules.from_database,
            "config_name": rules.name if rules.from_database else None,
            "config_id": rules.config_id,
        },
        trip_type_config=rules.as_dict(),
    )

    logger.info(
        "Priced %s via %s: distance=%s duration=%s category=%s total=%s (db_config=%s)",
        trip_type, strategy.value, distance_km, duration_hours, car_category,
        result.total_price, rules.from_database,
    )
    return result


async def calculate_price(
    db: AsyncSession,
    trip_type: str,
    distance_km: float | None = None,
    duration_hours: float | None = None,
    car_category: str | None = None,
    as_of: datetime | None = None,
) -> PriceResult:
    """Resolve the trip type's stored config and price the trip."""
    validate_metrics(distance_km, duration_hours)

    record = await resolve_trip_type_config(db, trip_type, as_of=as_of)
    persisted = PricingRules.from_record(record) if record is not None else None
    return price_trip(trip_type, persisted, distance_km, duration_hours, car_category)
