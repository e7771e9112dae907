"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, order store, frame and decoder fixtures.

==============================================================================
"""

import base64
import os
import threading

# Settings are cached on first import; point them at throwaway resources
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCAN_LOG_ENABLED", "false")
os.environ.setdefault("DECODE_TIMEOUT_MS", "5000")

import cv2
import numpy as np
import pytest
from typing import Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from bistro_scan.main import app
from bistro_scan.core.dependencies import get_order_store
from bistro_scan.db.database import Base, get_db
from bistro_scan.db.models import Order, OrderItem
from bistro_scan.orders import (
    InMemoryOrderStore,
    OrderLine,
    OrderRecord,
    OrderStatus,
    OrderStore,
)
from bistro_scan.orders.sql_store import SqlOrderStore
from bistro_scan.scanner.frame import RawFrame
from bistro_scan.scanner.symbology import HANDLERS, DecodeStrategy, Symbology


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

# In-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database and order store overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_store] = lambda: SqlOrderStore(TestingSessionLocal)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# ORDER FIXTURES
# ============================================================================

SHARED_GTIN = "4006381333931"


@pytest.fixture
def seeded_orders(db: Session) -> List[Order]:
    """Three orders; two of them share a GTIN line item."""
    orders = [
        Order(
            order_key="123456",
            status=OrderStatus.READY,
            table_number="4",
            items=[OrderItem(sku="SKU-BURGER01", name="Classic Burger", quantity=2)],
        ),
        Order(
            order_key="204518",
            status=OrderStatus.PENDING,
            items=[OrderItem(sku=SHARED_GTIN, name="Sparkling Water", quantity=2)],
        ),
        Order(
            order_key="318802",
            status=OrderStatus.CANCELLED,
            items=[OrderItem(sku=SHARED_GTIN, name="Sparkling Water", quantity=1)],
        ),
    ]
    db.add_all(orders)
    db.commit()
    return orders


def make_record(order_key: str, skus: List[str] = ()) -> OrderRecord:
    """Build an OrderRecord with one line per SKU."""
    return OrderRecord(
        order_key=order_key,
        reference=OrderRecord.reference_for(order_key),
        status=OrderStatus.READY,
        items=[OrderLine(sku=sku, name=f"Item {sku}") for sku in skus],
    )


@pytest.fixture
def memory_store() -> InMemoryOrderStore:
    """In-memory store holding ORD-123456 and two orders sharing a GTIN."""
    return InMemoryOrderStore([
        make_record("123456", ["SKU-BURGER01"]),
        make_record("204518", [SHARED_GTIN]),
        make_record("318802", [SHARED_GTIN]),
    ])


# ============================================================================
# FRAME FIXTURES
# ============================================================================

def qr_image(text: str, scale: int = 8, border: int = 4) -> np.ndarray:
    """Render text as a gray QR image with a quiet zone."""
    encoder = cv2.QRCodeEncoder.create()
    image = encoder.encode(text)
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    image = cv2.copyMakeBorder(
        image, border, border, border, border, cv2.BORDER_CONSTANT, value=255
    )
    return cv2.resize(
        image, None, fx=scale, fy=scale, interpolation=cv2.INTER_NEAREST
    )


def qr_frame(text: str) -> RawFrame:
    """QR code frame in GRAY8."""
    return RawFrame.from_array(qr_image(text))


def png_base64(image: np.ndarray) -> str:
    """Encode an image as base64 PNG."""
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return base64.b64encode(buffer.tobytes()).decode("ascii")


def busy_frame(width: int = 32, height: int = 32) -> RawFrame:
    """Non-blank frame with no real barcode in it."""
    row = np.linspace(0, 255, width).astype(np.uint8)
    return RawFrame.from_array(np.tile(row, (height, 1)))


def blank_frame(width: int = 32, height: int = 32, value: int = 200) -> RawFrame:
    """Uniform gray frame."""
    return RawFrame.from_array(np.full((height, width), value, dtype=np.uint8))


# ============================================================================
# DECODER FIXTURES
# ============================================================================

@pytest.fixture
def fake_backends(monkeypatch) -> Dict[Symbology, List[bytes]]:
    """
    Replace the decode backends with a table lookup.

    Fill the returned dict with payloads per symbology; every frame then
    "contains" exactly those symbols.
    """
    table: Dict[Symbology, List[bytes]] = {}

    def fake_zbar(symbology, gray):
        return [(payload, 1.0) for payload in table.get(symbology, [])]

    monkeypatch.setitem(HANDLERS, DecodeStrategy.ZBAR, fake_zbar)
    monkeypatch.setitem(HANDLERS, DecodeStrategy.OPENCV_QR, lambda symbology, gray: [])
    return table


class FakeClock:
    """Monotonic clock that advances by step on every read."""

    def __init__(self, step: float = 0.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


# ============================================================================
# STORE STUBS
# ============================================================================

class SlowStore(OrderStore):
    """Store that blocks until released (or delay passes)."""

    def __init__(self, delay: float = 5.0):
        self.release = threading.Event()
        self.delay = delay

    def find_all(self, key: str) -> List[OrderRecord]:
        self.release.wait(self.delay)
        return [make_record(key)]


class BrokenStore(OrderStore):
    """Store whose backend is down."""

    def find_all(self, key: str) -> List[OrderRecord]:
        raise ConnectionError("database is down")
