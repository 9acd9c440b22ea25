"""SQLAlchemy model for boarding houses."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_id


class BoardingHouse(Base):
    """A property that groups rooms, price lists and operating expenses."""

    __tablename__ = "boarding_houses"

    id = Column("boarding_house_id", GUID(), primary_key=True, default=new_id)
    name = Column(String(150), nullable=False)
    address = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    rooms = relationship("Room", back_populates="boarding_house")
    prices = relationship("Price", back_populates="boarding_house")
    expenses = relationship("Expense", back_populates="boarding_house")
