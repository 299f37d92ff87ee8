from decimal import Decimal
from typing import Generator
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cafe.db import Base, enable_sqlite_foreign_keys
from cafe.main import app, get_db
from cafe import identity, models
from cafe.schemas import ActingIdentity, Role

@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()

@pytest.fixture(scope="function")
def client(db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _make_user(db, login: str, role: Role = Role.CUSTOMER, password: str = "pw") -> ActingIdentity:
    """Register a user and, for staff, promote them directly in the store."""
    identity.register(db, login, password, "555-0100")
    if role is not Role.CUSTOMER:
        db.get(models.User, login).type = role.value
        db.commit()
    return ActingIdentity(login=login, role=role)


@pytest.fixture
def manager(db_session):
    return _make_user(db_session, "boss", Role.MANAGER)


@pytest.fixture
def employee(db_session):
    return _make_user(db_session, "barista", Role.EMPLOYEE)


@pytest.fixture
def alice(db_session):
    return _make_user(db_session, "alice")


@pytest.fixture
def bob(db_session):
    return _make_user(db_session, "bob")


@pytest.fixture
def menu(db_session, manager):
    db_session.add_all([
        models.MenuItem(item_name="Latte", type="Drinks", price=Decimal("3.50"), description="espresso and milk", image_url=""),
        models.MenuItem(item_name="Scone", type="Bakery", price=Decimal("2.25"), description="", image_url=""),
        models.MenuItem(item_name="Tea", type="Drinks", price=Decimal("1.10"), description="", image_url=""),
        models.MenuItem(item_name="Water", type="Drinks", price=Decimal("0.00"), description="tap", image_url=""),
    ])
    db_session.commit()


@pytest.fixture
def make_user(db_session):
    def factory(login: str, role: Role = Role.CUSTOMER, password: str = "pw") -> ActingIdentity:
        return _make_user(db_session, login, role, password)
    return factory
