import os

# Must be set before the application (and its settings) are imported
os.environ["ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session
from starlette.testclient import TestClient
from typing import Generator

from main import app
from core.broker import InMemoryBroker
from core.database import Base, Database
from models.menu_items import MenuItem
from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.restaurants import Restaurant
from models.users import User
from services.token_service import TokenService
from utils.deps import get_db
from utils.hashing import get_password_hash

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

PASSWORD = "TestPassword123!"

database = Database(SQLALCHEMY_DATABASE_URL)
database.connect()


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=database.engine)

    db = database.session()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def broker() -> InMemoryBroker:
    broker = InMemoryBroker()
    app.state.broker = broker
    return broker


@pytest.fixture
def override_db(session: Session, broker: InMemoryBroker):
    """Points the application at the test database and broker."""
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.state.database = database
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_db):
    """
    Yields an HTTP client that interacts with the app using the test database.
    The client is async (for FastAPI), but the DB session is sync.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def ws_client(override_db) -> TestClient:
    """Sync client for WebSocket tests. The lifespan is not run."""
    return TestClient(app)


# Data helpers

def make_user(session: Session, email: str, role: str = "customer", status: str = None, **fields) -> User:
    if status is None:
        status = "approved" if role in ("restaurant", "rider") else "active"

    user = User(
        email=email,
        name=fields.pop("name", email.split("@")[0].title()),
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        status=status,
        is_active=fields.pop("is_active", True),
        **fields
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_restaurant(session: Session, owner: User, name: str, status: str = "approved") -> Restaurant:
    restaurant = Restaurant(
        owner_id=owner.id,
        name=name,
        address=f"{name} street 1",
        phone="+201000000000",
        latitude=30.05,
        longitude=31.24,
        status=status,
        is_active=status == "approved"
    )
    session.add(restaurant)
    session.commit()
    session.refresh(restaurant)
    return restaurant


def make_menu_item(session: Session, restaurant: Restaurant, name: str, price: str,
                   is_available: bool = True) -> MenuItem:
    item = MenuItem(
        restaurant_id=restaurant.id,
        name=name,
        price=Decimal(price),
        category="Mains",
        is_available=is_available
    )
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def principal(user: User) -> dict:
    """The dict ``get_current_user`` produces for ``user``."""
    return {"email": user.email, "user_id": user.id, "user_role": user.role}


def bearer(user: User) -> dict:
    token = TokenService.create_access_token(user.email, user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


# Fixtures

@pytest.fixture
def customer(session) -> User:
    return make_user(session, "customer@example.com", phone_number="+201111111111",
                     latitude=30.01, longitude=31.20, address="Customer home 5")


@pytest.fixture
def other_customer(session) -> User:
    return make_user(session, "other.customer@example.com")


@pytest.fixture
def owner(session) -> User:
    return make_user(session, "owner@example.com", role="restaurant")


@pytest.fixture
def restaurant(session, owner) -> Restaurant:
    return make_restaurant(session, owner, "Burger House")


@pytest.fixture
def menu(session, restaurant) -> dict:
    return {
        "burger": make_menu_item(session, restaurant, "Burger", "100.00"),
        "fries": make_menu_item(session, restaurant, "Fries", "50.00"),
    }


@pytest.fixture
def other_owner(session) -> User:
    return make_user(session, "other.owner@example.com", role="restaurant")


@pytest.fixture
def other_restaurant(session, other_owner) -> Restaurant:
    return make_restaurant(session, other_owner, "Pizza Place")


@pytest.fixture
def rider(session) -> User:
    return make_user(session, "rider@example.com", role="rider", vehicle_type="motorcycle",
                     latitude=30.02, longitude=31.22)


@pytest.fixture
def other_rider(session) -> User:
    return make_user(session, "other.rider@example.com", role="rider", vehicle_type="bicycle")


@pytest.fixture
def admin(session) -> User:
    return make_user(session, "admin@example.com", role="admin")


@pytest.fixture
def make_order(session, customer, restaurant, menu):
    """
    Factory inserting an order directly, bypassing the service.

        order = make_order(status=OrderStatus.READY, rider=rider)
    """
    def factory(status: OrderStatus = OrderStatus.PENDING, rider: User = None, **fields) -> Order:
        burger = menu["burger"]
        order = Order(
            customer_id=customer.id,
            restaurant_id=restaurant.id,
            rider_id=rider.id if rider else None,
            total_amount=fields.pop("total_amount", Decimal("100.00")),
            status=status,
            delivery_address="Customer home 5",
            customer_phone=customer.phone_number,
            items=[OrderItem(menu_item_id=burger.id, name=burger.name, price=burger.price, quantity=1)],
            **fields
        )
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return factory
