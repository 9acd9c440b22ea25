"""Cost definitions that feed invoice charges."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class CostStatus(str, enum.Enum):
    """Only ``active`` cost definitions are billed."""

    ACTIVE = "active"
    INACTIVE = "inactive"


COST_STATUS_ENUM = SAEnum(
    CostStatus,
    name="cost_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class RoomSize(str, enum.Enum):
    """Room size categories used to pick a base price."""

    SMALL = "Small"
    STANDARD = "Standard"
    BIG = "Big"


ROOM_SIZE_ENUM = SAEnum(
    RoomSize,
    name="room_size_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Price(Base):
    """Base rent for rooms of a given size in a boarding house."""

    __tablename__ = "prices"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_prices_amount_non_negative"),)

    id = Column("price_id", GUID(), primary_key=True, default=new_id)
    boarding_house_id = Column(
        GUID(),
        ForeignKey("boarding_houses.boarding_house_id", ondelete="CASCADE"),
        nullable=False,
    )
    room_size = Column(ROOM_SIZE_ENUM, nullable=False)
    name = Column(String(150), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(COST_STATUS_ENUM, nullable=False, default=CostStatus.ACTIVE)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    boarding_house = relationship("BoardingHouse", back_populates="prices")
    rooms = relationship("Room", back_populates="price")


class AdditionalPrice(Base):
    """Recurring extra charged on top of the base rent (e.g. WiFi, parking)."""

    __tablename__ = "additional_prices"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_additional_prices_amount_non_negative"),
    )

    id = Column("additional_price_id", GUID(), primary_key=True, default=new_id)
    room_id = Column(
        GUID(),
        ForeignKey("rooms.room_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(150), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(COST_STATUS_ENUM, nullable=False, default=CostStatus.ACTIVE)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    room = relationship("Room", back_populates="additional_prices")


class OtherCost(Base):
    """Room-level cost passed through to the tenant (e.g. electricity token)."""

    __tablename__ = "other_costs"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_other_costs_amount_non_negative"),
    )

    id = Column("other_cost_id", GUID(), primary_key=True, default=new_id)
    room_id = Column(
        GUID(),
        ForeignKey("rooms.room_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(150), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(COST_STATUS_ENUM, nullable=False, default=CostStatus.ACTIVE)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    room = relationship("Room", back_populates="other_costs")


Index("additional_prices_room_status_idx", AdditionalPrice.room_id, AdditionalPrice.status)
Index("other_costs_room_status_idx", OtherCost.room_id, OtherCost.status)
