"""SQLAlchemy model definitions for tenants."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    String,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class TenancyStatus(str, enum.Enum):
    """Lifecycle of a tenancy. Tenants are deactivated, never deleted."""

    WAITING = "Waiting"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


TENANCY_STATUS_ENUM = SAEnum(
    TenancyStatus,
    name="tenancy_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Tenant(Base):
    """Represents a person renting a room."""

    __tablename__ = "tenants"

    id = Column("tenant_id", GUID(), primary_key=True, default=new_id)
    room_id = Column(
        GUID(),
        ForeignKey("rooms.room_id", ondelete="RESTRICT"),
        nullable=False,
    )
    name = Column(String(150), nullable=False)
    phone = Column(String(30), nullable=False, unique=True)
    id_number = Column(String(50), nullable=False, unique=True)
    id_image_path = Column(String, nullable=True)
    is_id_copy_done = Column(Boolean, nullable=False, default=False)
    tenancy_status = Column(TENANCY_STATUS_ENUM, nullable=False, default=TenancyStatus.WAITING)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    banish_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    room = relationship("Room", back_populates="tenants")
    invoices = relationship("Invoice", back_populates="tenant")


Index("tenants_room_status_idx", Tenant.room_id, Tenant.tenancy_status)
