"""SQLAlchemy model definitions for rooms."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id
from .price import ROOM_SIZE_ENUM


class RoomStatus(str, enum.Enum):
    """Occupancy status of a room."""

    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"
    MAINTENANCE = "Maintenance"
    DAMAGED = "Damaged"


ROOM_STATUS_ENUM = SAEnum(
    RoomStatus,
    name="room_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Room(Base):
    """A rentable room and the cost definitions billed to its tenant."""

    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint(
            "boarding_house_id", "room_number", name="rooms_boarding_house_number_key"
        ),
    )

    id = Column("room_id", GUID(), primary_key=True, default=new_id)
    boarding_house_id = Column(
        GUID(),
        ForeignKey("boarding_houses.boarding_house_id", ondelete="CASCADE"),
        nullable=False,
    )
    price_id = Column(
        GUID(),
        ForeignKey("prices.price_id", ondelete="SET NULL"),
        nullable=True,
    )
    room_number = Column(String(50), nullable=False)
    room_status = Column(ROOM_STATUS_ENUM, nullable=False, default=RoomStatus.AVAILABLE)
    room_size = Column(ROOM_SIZE_ENUM, nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    boarding_house = relationship("BoardingHouse", back_populates="rooms")
    price = relationship("Price", back_populates="rooms")
    additional_prices = relationship(
        "AdditionalPrice",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    other_costs = relationship(
        "OtherCost",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tenants = relationship("Tenant", back_populates="room")
    invoices = relationship("Invoice", back_populates="room")
