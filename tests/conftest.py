"""
Shared fixtures: in-memory SQLite ledger and API client
"""
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from logiledger.core import Base, get_db
from logiledger.models import AppUser, Supplier, Item
from logiledger.schemas import OrderCreate, OrderLineCreate
from logiledger.services import AllocationService, OrderService, OrderNumberSequence
from logiledger.api.deps import get_order_sequence


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = AppUser(username="logist", full_name="Test Logist", role="logist", is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def supplier_x(db):
    supplier = Supplier(name="Supplier X")
    db.add(supplier)
    db.commit()
    return supplier


@pytest.fixture
def supplier_y(db):
    supplier = Supplier(name="Supplier Y")
    db.add(supplier)
    db.commit()
    return supplier


@pytest.fixture
def item(db):
    item = Item(name="Cotton fiber", unit="t")
    db.add(item)
    db.commit()
    return item


@pytest.fixture
def second_item(db):
    item = Item(name="Wheat", unit="t")
    db.add(item)
    db.commit()
    return item


@pytest.fixture
def sequence():
    return OrderNumberSequence(prefix="ORD")


@pytest.fixture
def make_order(db, sequence, user, item):
    """Create an order with one line per (quantity, unit) pair"""
    def _make(*lines, container_tonnage=None, item_id=None):
        data = OrderCreate(
            container_tonnage=container_tonnage,
            lines=[
                OrderLineCreate(item_id=item_id or item.id, quantity=Decimal(str(qty)), unit=unit)
                for qty, unit in lines
            ]
        )
        return OrderService.create_order(db, sequence, data, created_by=user.id)
    return _make


@pytest.fixture
def locked_order(db, make_order, user):
    """LOCKED order with a single 10 t line"""
    order = make_order((10, "t"))
    return OrderService.lock(db, order, performed_by=user.id)


@pytest.fixture
def distributed_order(db, locked_order, supplier_x, user):
    """DISTRIBUTED order: 10 t to supplier X at 100 USD/t (exposure 1000 USD)"""
    from logiledger.services import LifecycleService

    line = locked_order.lines[0]
    AllocationService.allocate(db, line, supplier_x.id, Decimal("10"), "t", Decimal("100"), "USD", user.id)
    return LifecycleService.mark_distributed(db, locked_order, performed_by=user.id)


@pytest.fixture
def client(db, sequence):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_sequence] = lambda: sequence
    yield TestClient(app)
    app.dependency_overrides.clear()
