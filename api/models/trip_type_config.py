"""TripTypeConfig ORM model — versioned pricing rules per trip-type name.

A name has at most one ACTIVE row. Edits never touch an ACTIVE row: the
admin path stamps it with ``superseded_at``, flips it INACTIVE and inserts a
new version, so past quotes stay reproducible against ``effective_from``.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    String, Text, Numeric, Boolean, DateTime, Index, Enum as PgEnum, text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class TripTypeConfig(Base):
    __tablename__ = "trip_type_configs"
    __table_args__ = (
        Index(
            "uq_trip_type_configs_active_name",
            "name",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)

    # True = distance-slab pricing, False = flat + overtime
    special_price: Mapped[bool] = mapped_column(Boolean, default=False)
    base_price: Mapped[float | None] = mapped_column(Numeric(10, 2))
    base_duration: Mapped[float | None] = mapped_column(Numeric(6, 2))
    base_distance: Mapped[float | None] = mapped_column(Numeric(10, 2))
    extra_per_hour: Mapped[float | None] = mapped_column(Numeric(10, 2))
    extra_per_half_hour: Mapped[float | None] = mapped_column(Numeric(10, 2))
    extra_per_km: Mapped[float | None] = mapped_column(Numeric(10, 2))

    premium_car_multiplier: Mapped[float | None] = mapped_column(Numeric(4, 2))
    for_premium_cars: Mapped[dict | None] = mapped_column(JSONB)
    distance_slabs: Mapped[list | None] = mapped_column(JSONB)

    status: Mapped[str] = mapped_column(
        PgEnum("ACTIVE", "INACTIVE", name="config_status", create_type=False),
        default="ACTIVE",
    )
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
