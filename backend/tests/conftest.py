"""
Shared fixtures: a throwaway SQLite database per test, an app wired to it,
and small factories for catalog, customers and bearer tokens.
"""
import os
import tempfile
from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Optional

# Settings are read at import time
_TEST_DIR = tempfile.mkdtemp(prefix="sheetstore-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/bootstrap.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
for _key in ("PAYMAYA_PUBLIC_KEY", "PAYMAYA_SECRET_KEY", "PAYMAYA_WEBHOOK_SECRET", "RESEND_API_KEY"):
    os.environ.pop(_key, None)

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.database import Base, get_db_session  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models import Customer, CustomerCart, Product  # noqa: E402
from app.services.order_confirmation import sent_confirmations  # noqa: E402


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db",
        poolclass=NullPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave as on PostgreSQL
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and assertions, separate from request sessions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory) -> FastAPI:
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = override_get_db_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_confirmation_marker():
    sent_confirmations.clear()
    yield
    sent_confirmations.clear()


@pytest.fixture
def storage_root(tmp_path, monkeypatch):
    root = tmp_path / "storage"
    root.mkdir()
    monkeypatch.setattr(settings, "storage_root", str(root))
    return root


@pytest.fixture
def make_product(db_session: AsyncSession):
    async def _make_product(
        title: str = "Monthly Budget Planner",
        price: str = "100.00",
        is_active: bool = True,
        file_path: Optional[str] = "products/budget-planner.xlsx",
        file_name: Optional[str] = "budget-planner.xlsx",
    ) -> Product:
        product = Product(
            title=title,
            slug=title.lower().replace(" ", "-"),
            price=Decimal(price),
            is_active=is_active,
            file_path=file_path,
            file_name=file_name if file_path else None,
        )
        db_session.add(product)
        await db_session.commit()
        return product

    return _make_product


@pytest.fixture
def make_customer(db_session: AsyncSession):
    async def _make_customer(
        name: str = "Juan Dela Cruz",
        email: str = "juan@example.com",
        is_active: bool = True,
        cart_product: Optional[Product] = None,
    ) -> Customer:
        customer = Customer(name=name, email=email, is_active=is_active)
        db_session.add(customer)
        await db_session.flush()
        if cart_product is not None:
            db_session.add(CustomerCart(customer_id=customer.id, product_id=cart_product.id, quantity=1))
        await db_session.commit()
        return customer

    return _make_customer


def bearer(role: str, principal_id: int) -> dict[str, str]:
    token = create_access_token({"sub": str(principal_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def order_payload():
    def _order_payload(product: Product, quantity: int = 1, **overrides) -> dict:
        subtotal = float(product.price) * quantity
        payload = {
            "items": [{"product_id": product.id, "quantity": quantity}],
            "subtotal": subtotal,
            "total_amount": subtotal,
            "guest_email": "guest@example.com",
            "guest_name": "Maria Santos",
        }
        payload.update(overrides)
        return payload

    return _order_payload
