from __future__ import annotations

import itertools
import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("ENABLE_RECURRING_BILLING", "0")

from backend.app import models
from backend.app.database import Base, enable_sqlite_savepoints, get_db
from backend.app.main import app
from backend.app.services.billing_schedule import ScheduleGate
from backend.app.services.scheduler_monitor import SchedulerMonitor

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    join_transaction_mode="create_savepoint",
)


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _reset_scheduler_monitor() -> Generator[None, None, None]:
    SchedulerMonitor.reset()
    yield
    SchedulerMonitor.reset()


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def client(db_session: Session, monkeypatch) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    monkeypatch.setenv("ENABLE_RECURRING_BILLING", "0")
    monkeypatch.setattr("backend.app.main.ensure_database_is_ready", lambda: None)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def gate() -> ScheduleGate:
    return ScheduleGate(2, 0, "Asia/Jakarta")


@pytest.fixture
def boarding_house(db_session: Session) -> models.BoardingHouse:
    house = models.BoardingHouse(name="Kos Melati", address="Jl. Melati 12, Jakarta")
    db_session.add(house)
    db_session.commit()
    return house


_sequence = itertools.count(1)


@pytest.fixture
def tenant_factory(
    db_session: Session, boarding_house: models.BoardingHouse
) -> Callable[..., models.Tenant]:
    """Create a room with its price and costs, a tenant and the tenant's latest invoice."""

    def _create(
        *,
        latest_period_end: Optional[date] = date(2024, 1, 31),
        latest_period_start: Optional[date] = None,
        latest_status: models.InvoiceStatus = models.InvoiceStatus.PAID,
        price_amount: Decimal = Decimal("500000"),
        price_status: models.CostStatus = models.CostStatus.ACTIVE,
        additional: Iterable[tuple[Optional[str], Decimal, models.CostStatus]] = (),
        other: Iterable[tuple[Optional[str], Decimal, models.CostStatus]] = (),
        tenancy_status: models.TenancyStatus = models.TenancyStatus.ACTIVE,
        with_price: bool = True,
    ) -> models.Tenant:
        number = next(_sequence)
        price = None
        if with_price:
            price = models.Price(
                boarding_house_id=boarding_house.id,
                room_size=models.RoomSize.STANDARD,
                name="Standard room",
                amount=price_amount,
                status=price_status,
            )
            db_session.add(price)
            db_session.flush()

        room = models.Room(
            boarding_house_id=boarding_house.id,
            price_id=price.id if price is not None else None,
            room_number=f"A{number:03d}",
            room_status=models.RoomStatus.OCCUPIED,
            room_size=models.RoomSize.STANDARD,
        )
        db_session.add(room)
        db_session.flush()

        for name, amount, status in additional:
            db_session.add(
                models.AdditionalPrice(room_id=room.id, name=name, amount=amount, status=status)
            )
        for name, amount, status in other:
            db_session.add(models.OtherCost(room_id=room.id, name=name, amount=amount, status=status))

        tenant = models.Tenant(
            room_id=room.id,
            name=f"Tenant {number}",
            phone=f"+62812000{number:05d}",
            id_number=f"3171{number:08d}",
            tenancy_status=tenancy_status,
            start_date=date(2023, 12, 1),
        )
        db_session.add(tenant)
        db_session.flush()

        if latest_period_end is not None:
            period_start = latest_period_start or latest_period_end.replace(day=1)
            db_session.add(
                models.Invoice(
                    tenant_id=tenant.id,
                    room_id=room.id,
                    period_start=period_start,
                    period_end=latest_period_end,
                    issue_date=period_start,
                    due_date=period_start,
                    total_amount_due=price_amount,
                    total_amount_paid=price_amount,
                    status=latest_status,
                    created_by="seed",
                )
            )

        db_session.commit()
        db_session.refresh(tenant)
        return tenant

    return _create
