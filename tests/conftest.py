"""
Test configuration and fixtures.

Provides:
- In-memory SQLite shared by test code, request handlers and background tasks
- Seeded salon / customer / menus / LINE channel
- Fake push transport and LINE client
- HTTPX AsyncClient against the app with dependency overrides
"""
import os

from cryptography.fernet import Fernet

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["CRON_SECRET"] = "test-cron-secret"

from typing import Dict, List, Set

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salon_booking import models
from salon_booking.auth import OwnerContext, create_access_token
from salon_booking.crypto import CredentialVault, get_vault
from salon_booking.database import Base, get_db, get_session_factory
from salon_booking.exceptions import ExternalServiceError
from salon_booking.line_service import LineApiError, get_line_client
from salon_booking.main import app
from salon_booking.notifications import get_transport

WEEKDAYS_ONLY = {
    "monday": {"is_open": True, "open_time": "10:00", "close_time": "20:00"},
    "tuesday": {"is_open": True, "open_time": "10:00", "close_time": "20:00"},
    "wednesday": {"is_open": True, "open_time": "10:00", "close_time": "20:00"},
    "thursday": {"is_open": True, "open_time": "10:00", "close_time": "20:00"},
    "friday": {"is_open": True, "open_time": "10:00", "close_time": "20:00"},
    "saturday": {"is_open": False, "open_time": "10:00", "close_time": "20:00"},
    "sunday": {"is_open": False, "open_time": "10:00", "close_time": "20:00"},
}

CHANNEL_SECRET = "channel-secret-abc"
ACCESS_TOKEN = "access-token-xyz"


# =============================================================================
# Fakes
# =============================================================================

class FakeTransport:
    """Records push calls; raises for recipients listed in fail_for"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.fail_for: Set[str] = set()

    async def send_push(self, access_token, recipient_id, messages):
        self.calls.append((access_token, recipient_id, messages))
        if recipient_id in self.fail_for:
            raise ExternalServiceError("LINE push failed: 500 upstream error")
        return {"sentMessages": [{"id": str(len(self.calls))}]}


class FakeLineClient(FakeTransport):
    def __init__(self):
        super().__init__()
        self.profiles: Dict[str, dict] = {}
        self.profile_failures: Set[str] = set()
        self.follower_ids: List[str] = []
        self.follower_error = None
        self.profile_calls: List[str] = []

    async def get_profile(self, access_token, user_id):
        self.profile_calls.append(user_id)
        if user_id in self.profile_failures:
            raise LineApiError("LINE profile lookup failed: 404 not found", 404)
        return self.profiles.get(user_id, {"userId": user_id, "displayName": f"user {user_id}"})

    async def get_follower_ids(self, access_token):
        if self.follower_error:
            raise self.follower_error
        return list(self.follower_ids)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def vault():
    return CredentialVault(os.environ["ENCRYPTION_KEY"])


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def line_client():
    return FakeLineClient()


# =============================================================================
# Seed data
# =============================================================================

@pytest.fixture
def salon(db):
    salon = models.Salon(
        owner_id="owner-1",
        name="Salon Hana",
        business_hours=WEEKDAYS_ONLY,
        holidays=["2025-05-05"],
    )
    db.add(salon)
    db.commit()
    db.refresh(salon)
    return salon


@pytest.fixture
def other_salon(db):
    salon = models.Salon(owner_id="owner-2", name="Salon Sora", business_hours=WEEKDAYS_ONLY)
    db.add(salon)
    db.commit()
    db.refresh(salon)
    return salon


@pytest.fixture
def ctx(salon):
    return OwnerContext(user_id="owner-1", salon_id=salon.id, salon_name=salon.name)


@pytest.fixture
def customer(db, salon):
    customer = models.Customer(salon_id=salon.id, last_name="Sato", first_name="Yui")
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@pytest.fixture
def menus(db, salon):
    cut = models.TreatmentMenu(salon_id=salon.id, name="Cut", price=5000, duration_minutes=60)
    color = models.TreatmentMenu(salon_id=salon.id, name="Color", price=8000, duration_minutes=90)
    db.add_all([cut, color])
    db.commit()
    db.refresh(cut)
    db.refresh(color)
    return [cut, color]


@pytest.fixture
def line_config(db, salon, vault):
    line_config = models.SalonLineConfig(
        salon_id=salon.id,
        channel_id="1234567890",
        channel_secret_encrypted=vault.encrypt(CHANNEL_SECRET),
        channel_access_token_encrypted=vault.encrypt(ACCESS_TOKEN),
        webhook_token="hook-token-salon-1",
        is_active=True,
        reminder_enabled=True,
        confirmation_enabled=True,
    )
    db.add(line_config)
    db.commit()
    db.refresh(line_config)
    return line_config


@pytest.fixture
def line_link(db, salon, customer):
    link = models.CustomerLineLink(
        salon_id=salon.id,
        customer_id=customer.id,
        line_user_id="U-customer-1",
        display_name="Yui",
        is_following=True,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
def auth_headers(salon):
    token = create_access_token({"sub": "owner-1", "salon_id": salon.id})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory, vault, transport, line_client):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_vault] = lambda: vault
    app.dependency_overrides[get_transport] = lambda: transport
    app.dependency_overrides[get_line_client] = lambda: line_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
