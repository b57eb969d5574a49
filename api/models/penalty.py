"""Penalty catalog and per-driver penalty records."""

import uuid
from datetime import datetime
from sqlalchemy import String, Text, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base


class Penalty(Base):
    __tablename__ = "penalties"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class DriverPenalty(Base):
    __tablename__ = "driver_penalties"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    driver_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("drivers.id"), nullable=False, index=True)
    penalty_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("penalties.id"))
    amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    violation_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    # Relationships
    penalty = relationship("Penalty", lazy="selectin")
