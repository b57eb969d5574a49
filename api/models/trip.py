"""Trip ORM model — booking and lifecycle are handled by the trip service."""

import uuid
from datetime import datetime
from sqlalchemy import String, Numeric, DateTime, ForeignKey, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base

TRIP_STATUSES = (
    "PENDING", "NOT_ASSIGNED", "REQUESTED", "ASSIGNED", "DRIVER_ACCEPTED",
    "TRIP_STARTED", "TRIP_ENDED", "COMPLETED", "PAYMENT_DONE", "CANCELLED",
)

# Statuses whose amounts count toward driver revenue
REVENUE_TRIP_STATUSES = ("TRIP_ENDED", "COMPLETED", "PAYMENT_DONE")


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    driver_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("drivers.id"), index=True)
    franchise_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("franchises.id"))
    trip_type: Mapped[str] = mapped_column(String(64), nullable=False)
    car_category: Mapped[str] = mapped_column(String(20), default="NORMAL")
    status: Mapped[str] = mapped_column(
        PgEnum(*TRIP_STATUSES, name="trip_status", create_type=False),
        default="PENDING",
    )
    payment_status: Mapped[str] = mapped_column(
        PgEnum("PENDING", "COMPLETED", "FAILED", "REFUNDED", name="payment_status", create_type=False),
        default="PENDING",
    )

    distance_km: Mapped[float | None] = mapped_column(Numeric(10, 2))
    duration_hours: Mapped[float | None] = mapped_column(Numeric(6, 2))
    # Quoted amount; final_amount is set once the trip is closed out
    total_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    final_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
