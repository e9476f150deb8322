# ev_admin_system/tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Importing the models populates Base.metadata with every table.
from ev_admin_system.data.models import (Base, PaymentType, Capability, ConnectorType, Facility, ParkingType,
                                         ParkingRestriction, User, CPOOwner, Location, AdminAuditTrail)
from ev_admin_system.core.security import create_access_token


# A geocoder answer for "Cabuyao, Laguna".
CABUYAO_RESULT = {
    "address_components": [
        {"long_name": "Cabuyao", "short_name": "Cabuyao", "types": ["locality", "political"]},
        {"long_name": "Laguna", "short_name": "Laguna", "types": ["administrative_area_level_2", "political"]},
        {"long_name": "Calabarzon", "short_name": "Calabarzon",
         "types": ["administrative_area_level_1", "political"]},
        {"long_name": "Philippines", "short_name": "PH", "types": ["country", "political"]},
        {"long_name": "4025", "short_name": "4025", "types": ["postal_code"]},
    ],
    "formatted_address": "Cabuyao, Laguna, Philippines",
    "geometry": {"location": {"lat": 14.2471, "lng": 121.1367}},
}


class FakeGeocoder:
    """Stands in for GeocodingGateway, answering every address with the same result."""

    def __init__(self, result=CABUYAO_RESULT, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def geocode(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.result


class FakeMailer:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def send_credentials(self, to, username, password):
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "username": username, "password": password})


# --- Test Database Engine Fixture ---
@pytest.fixture
def db_engine():
    # One in-memory SQLite database per test, shared by every connection through StaticPool.
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


# --- Database Session Fixture ---
@pytest.fixture
def db_session(db_engine):
    """
    Provides a session on a fresh database seeded with the reference vocabularies.
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()

    session.add_all([
        PaymentType(id=1, code="RFID"), PaymentType(id=2, code="GCASH"), PaymentType(id=3, code="MAYA"),
        Capability(id=1, code="REMOTE_START_STOP_CAPABLE"), Capability(id=2, code="RFID_READER"),
        ConnectorType(id=1, code="TYPE_2"), ConnectorType(id=2, code="CHADEMO"),
        Facility(id=1, code="RESTROOM"), Facility(id=2, code="CAFE"),
        ParkingRestriction(id=1, code="EV_ONLY"), ParkingRestriction(id=2, code="CUSTOMERS"),
    ])
    session.add_all([ParkingType(id=type_id, code=f"PARKING_{type_id}") for type_id in range(1, 7)])
    session.commit()

    yield session

    session.close()


@pytest.fixture
def make_cpo(db_session: Session):
    """Factory creating a CPO account with its login."""
    counter = {"n": 0}

    def _make_cpo(name=None, balance=0.0, user_status="ACTIVE", party_id="ABC"):
        counter["n"] += 1
        n = counter["n"]
        user = User(username=f"cpo_user_{n}", password="hash", role="CPO_OWNER", user_status=user_status)
        db_session.add(user)
        db_session.flush()
        cpo = CPOOwner(
            user_id=user.id,
            party_id=party_id,
            cpo_owner_name=name or f"CPO {n}",
            contact_name=f"Contact {n}",
            contact_number=f"0917123456{n}",
            contact_email=f"cpo{n}@example.com",
            balance=balance,
        )
        db_session.add(cpo)
        db_session.commit()
        return cpo

    return _make_cpo


@pytest.fixture
def make_location(db_session: Session):
    def _make_location(name="SM Cabuyao", cpo_owner_id=None):
        location = Location(name=name, address="Cabuyao, Laguna, Philippines", cpo_owner_id=cpo_owner_id,
                            city="Cabuyao", region="CAL", images="[]")
        db_session.add(location)
        db_session.commit()
        return location

    return _make_location


def audit_rows(session: Session):
    return session.query(AdminAuditTrail).order_by(AdminAuditTrail.id).all()


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def fake_mailer():
    return FakeMailer()


# --- Overriding 'get_db' Fixture for Tests ---
@pytest.fixture
def mock_get_db(db_session: Session):
    """
    Simulates the FastAPI get_db dependency using the test session.
    """

    def _override_get_db():
        yield db_session

    return _override_get_db


@pytest.fixture
def client(mock_get_db, fake_geocoder, fake_mailer):
    from ev_admin_system.main import app
    from ev_admin_system.api.dependencies import get_geocoder, get_mailer
    from ev_admin_system.data.database import get_db

    app.dependency_overrides[get_db] = mock_get_db
    app.dependency_overrides[get_geocoder] = lambda: fake_geocoder
    app.dependency_overrides[get_mailer] = lambda: fake_mailer

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_headers(role="ADMIN", admin_id=1):
    return {"Authorization": f"Bearer {create_access_token(admin_id, role)}"}
