"""
Pytest fixtures and configuration for Buysell Backend tests

Factories build domain models with sensible defaults so each test only
spells out the fields it cares about. Nothing here touches a database:
repositories are patched or replaced with mocks.

Author: TM3
Date: 2025-11-09
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from buysell.core.auth import TokenUser, create_token
from buysell.core.rate_limit import rate_limiter
from buysell.domain.order import Order, OrderItem
from buysell.domain.payment import Payment
from buysell.domain.product import Product
from buysell.domain.user import Address, User

NOW = datetime(2025, 11, 9, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Rate limit windows are process-wide; start every test with a clean slate"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def customer():
    return TokenUser(id=1, email="kofi@example.com", role="customer")


@pytest.fixture
def seller():
    return TokenUser(id=2, email="awa@example.com", role="seller")


@pytest.fixture
def admin():
    return TokenUser(id=99, email="admin@example.com", role="admin")


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a TokenUser"""
    def _headers(user: TokenUser) -> dict:
        return {"Authorization": f"Bearer {create_token(user.id, user.email, user.role)}"}
    return _headers


@pytest.fixture
def make_user():
    def _make(**overrides) -> User:
        data = {
            "id": 1,
            "email": "kofi@example.com",
            "password_hash": None,
            "first_name": "Kofi",
            "last_name": "Mensah",
            "role": "customer",
            "is_active": True,
            "created_at": NOW,
        }
        data.update(overrides)
        return User(**data)
    return _make


@pytest.fixture
def make_address():
    def _make(**overrides) -> Address:
        data = {
            "id": 10,
            "user_id": 1,
            "full_name": "Kofi Mensah",
            "address_line1": "Rue des Jardins 12",
            "city": "Abidjan",
            "country": "CI",
        }
        data.update(overrides)
        return Address(**data)
    return _make


@pytest.fixture
def make_product():
    def _make(**overrides) -> Product:
        data = {
            "id": 100,
            "seller_id": 2,
            "category_id": 5,
            "name": "Solar Lamp",
            "slug": "solar-lamp",
            "sku": "HOM-SOLAR1",
            "price": Decimal("10000"),
            "quantity": 10,
            "track_quantity": True,
            "is_published": True,
            "is_available": True,
            "created_at": NOW,
        }
        data.update(overrides)
        return Product(**data)
    return _make


@pytest.fixture
def make_order():
    def _make(**overrides) -> Order:
        data = {
            "id": 500,
            "order_number": "BS-1731153600000-ABC123",
            "user_id": 1,
            "status": "pending",
            "payment_status": "pending",
            "payment_method": "cash_on_delivery",
            "subtotal": Decimal("20000"),
            "shipping_cost": Decimal("3000"),
            "tax_amount": Decimal("3600"),
            "total_amount": Decimal("26600"),
            "items_count": 2,
            "created_at": NOW,
            "items": [
                OrderItem(
                    id=1, order_id=500, product_id=100, seller_id=2,
                    product_name="Solar Lamp", quantity=2,
                    unit_price=Decimal("10000"), total_price=Decimal("20000"),
                )
            ],
        }
        data.update(overrides)
        return Order(**data)
    return _make


@pytest.fixture
def make_payment():
    def _make(**overrides) -> Payment:
        data = {
            "id": 700,
            "order_id": 500,
            "user_id": 1,
            "provider": "orange_money",
            "amount": Decimal("26600"),
            "currency": "XOF",
            "status": "pending",
            "provider_reference": "OM-TX-1",
            "created_at": NOW,
        }
        data.update(overrides)
        return Payment(**data)
    return _make
