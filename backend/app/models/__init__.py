"""Expose SQLAlchemy models for convenient imports."""

from .boarding_house import BoardingHouse
from .expense import Expense
from .invoice import Charge, ChargeType, Invoice, InvoiceStatus
from .price import AdditionalPrice, CostStatus, OtherCost, Price, RoomSize
from .room import Room, RoomStatus
from .tenant import TenancyStatus, Tenant
from .transaction import PaymentMethod, Transaction

__all__ = [
    "BoardingHouse",
    "Room",
    "RoomSize",
    "RoomStatus",
    "Price",
    "AdditionalPrice",
    "OtherCost",
    "CostStatus",
    "Tenant",
    "TenancyStatus",
    "Invoice",
    "InvoiceStatus",
    "Charge",
    "ChargeType",
    "Transaction",
    "PaymentMethod",
    "Expense",
]
