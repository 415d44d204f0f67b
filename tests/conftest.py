"""
Test configuration and fixtures for studio-sync
"""
import os
import tempfile

# Settings are read at import time by the database and logging modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="studio-sync-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, Optional
from unittest.mock import MagicMock
import uuid

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from studio_sync.database.models import Base, Firm, FirmSubscription, Profile, User, utcnow
from studio_sync.database.sheets import SheetsDocumentClient
from studio_sync.services.calendar_service import CalendarInfo, GoogleCalendarService, calendar_link
from studio_sync.services.google_auth import AccessToken, GoogleAuthService

from fakes import DOCUMENT_ID, FakeGspreadClient, FakeSpreadsheet


# =============================================================================
# Spreadsheet fixtures
# =============================================================================

@pytest.fixture
def spreadsheet() -> FakeSpreadsheet:
    return FakeSpreadsheet(DOCUMENT_ID)


@pytest.fixture
def gspread_client(spreadsheet) -> FakeGspreadClient:
    return FakeGspreadClient(spreadsheet)


@pytest.fixture
def sheets(gspread_client) -> SheetsDocumentClient:
    return SheetsDocumentClient(client=gspread_client, font_family="Lexend", data_font_size=10)


@pytest.fixture
def sheets_factory(sheets):
    return lambda token: sheets


# =============================================================================
# Test Database Setup
# =============================================================================

@pytest.fixture(scope="function")
def engine(request):
    """
    In-memory SQLite engine with the full schema

    Tests marked ``foreign_keys`` get SQLite's constraint enforcement,
    including ON DELETE actions.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    if request.node.get_closest_marker("foreign_keys"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Create a new database session for each test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# Google credentials
# =============================================================================

@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


@pytest.fixture(scope="session")
def service_account_info(rsa_key) -> Dict[str, Any]:
    private_key = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    return {
        "type": "service_account",
        "project_id": "studio-test",
        "private_key_id": "test-key-1",
        "private_key": private_key,
        "client_email": "studio-sync@studio-test.iam.gserviceaccount.com",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@pytest.fixture
def access_token() -> AccessToken:
    return AccessToken(token="ya29.test-token", expires_at=datetime.now(timezone.utc) + timedelta(hours=1))


@pytest.fixture
def auth_service(access_token):
    """Auth service that always hands out the test token"""
    service = MagicMock(spec=GoogleAuthService)
    service.get_access_token.return_value = access_token
    return service


@pytest.fixture
def calendar_service():
    service = MagicMock(spec=GoogleCalendarService)
    service.create_calendar.side_effect = lambda name: CalendarInfo(
        calendar_id="cal-123@group.calendar.google.com",
        summary=f"Studio Events - {name}",
        link=calendar_link("cal-123@group.calendar.google.com"),
    )
    service.delete_calendar.return_value = True
    return service


@pytest.fixture
def calendar_factory(calendar_service):
    return lambda token: calendar_service


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def make_firm(db_session):
    """Factory creating a firm, its creator and a subscription"""

    def _make_firm(name: str = "Lens & Light Studio",
                   spreadsheet_id: Optional[str] = DOCUMENT_ID,
                   calendar_id: Optional[str] = "cal-123@group.calendar.google.com",
                   grace_until: Optional[datetime] = None,
                   subscribed_once: bool = False) -> Firm:
        creator = User(email=f"owner-{uuid.uuid4().hex[:8]}@example.com")
        db_session.add(creator)
        db_session.flush()

        firm = Firm(
            name=name,
            created_by=creator.id,
            spreadsheet_id=spreadsheet_id,
            calendar_id=calendar_id,
        )
        db_session.add(firm)
        db_session.flush()

        db_session.add(Profile(
            user_id=creator.id,
            full_name="Studio Owner",
            role="Admin",
            firm_id=firm.id,
            current_firm_id=firm.id,
        ))
        db_session.add(FirmSubscription(
            firm_id=firm.id,
            subscribed_once=subscribed_once,
            trial_start_at=utcnow() - timedelta(days=20),
            trial_end_at=utcnow() - timedelta(days=6),
            grace_until=grace_until or utcnow() + timedelta(days=3),
        ))
        db_session.commit()
        return firm

    return _make_firm


@pytest.fixture
def firm(make_firm) -> Firm:
    return make_firm()
