import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from busmap.models.base import Base

# Values of the `status` column written by the contribution/review workflow
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class Stop(Base):
    __tablename__ = "stops"
    __table_args__ = (Index("ix_stops_status", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="stop")  # stop | landmark
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)
    departure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    destination_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Route(Base):
    __tablename__ = "routes"
    __table_args__ = (Index("ix_routes_status", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # [{"index": 0, "stop_id": 12}, ...] as submitted; order is not trusted
    stop_list = mapped_column(JSON, nullable=True)
    bidirectional: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)


class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (Index("ix_trips_queried_at", "queried_at"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    origin_stop_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("stops.id"), nullable=True)
    destination_stop_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("stops.id"), nullable=True)
    routes_used = mapped_column(JSON, nullable=False, default=list)
    passenger_class: Mapped[str] = mapped_column(String(20), nullable=False, default="regular")
    transfer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_fare: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    queried_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
