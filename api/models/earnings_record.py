"""Persisted daily and monthly earnings results, written by the batch jobs."""

import uuid
import datetime as dt
from sqlalchemy import Integer, Numeric, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class DriverDailyMetrics(Base):
    __tablename__ = "driver_daily_metrics"
    __table_args__ = (UniqueConstraint("driver_id", "date", name="uq_driver_daily_metrics_driver_date"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    driver_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("drivers.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_trips: Mapped[int] = mapped_column(Integer, default=0)
    amount_run: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    daily_limit: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    incentive: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)


class DriverMonthlyPerformance(Base):
    __tablename__ = "driver_monthly_performance"
    __table_args__ = (
        UniqueConstraint("driver_id", "year", "month", name="uq_driver_monthly_performance_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    driver_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("drivers.id"), nullable=False)
    franchise_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("franchises.id"))
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_trips: Mapped[int] = mapped_column(Integer, default=0)
    total_earnings: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    total_incentive: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    total_penalty: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    monthly_bonus: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    monthly_deduction: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    net_earnings: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)
