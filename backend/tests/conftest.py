# backend/tests/conftest.py
"""
Pytest configuration shared by unit and integration tests.

Every test gets a fresh in-memory SQLite database built from the ORM
metadata. External collaborators (Stripe, Zoom, email) are mocked; nothing
here talks to the network.
"""

import os

# Set test configuration BEFORE any app imports
os.environ["SITE_MODE"] = "local"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["ZOOM_ENABLED"] = "false"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ.pop("STRIPE_SECRET_KEY", None)

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.dependencies.database import get_db
from app.auth import create_access_token
from app.core.constants import BOOKING_TYPE_FILM_REVIEW
from app.database import Base
from app.integrations.zoom_client import FakeZoomClient
from app.main import app
from app.models.booking import Booking, BookingStatus, BookingType, ReviewStatus
from app.models.booking_request import BookingRequest, BookingRequestStatus
from app.models.conversation import Conversation
from app.models.listing import Listing
from app.models.profile import Coach, Profile, ProfileRole
from app.services.email import EmailService
from app.services.meeting_service import MeetingService
from app.services.notification_service import NotificationService
from app.services.stripe_service import CaptureSucceeded, RefundResult, StripeService

LISTING_PRICE_CENTS = 10000
FILM_PRICE_CENTS = 5000
FILM_PLATFORM_FEE_CENTS = 500
COACH_STRIPE_ACCOUNT = "acct_test_coach"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestingSessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
def coach(db: Session) -> Profile:
    profile = Profile(email="coach@example.com", full_name="Casey Coach", role=ProfileRole.COACH.value)
    db.add(profile)
    db.flush()
    db.add(Coach(profile_id=profile.id, stripe_account_id=COACH_STRIPE_ACCOUNT))
    db.commit()
    return profile


@pytest.fixture
def other_coach(db: Session) -> Profile:
    profile = Profile(email="other.coach@example.com", full_name="Otto Other", role=ProfileRole.COACH.value)
    db.add(profile)
    db.flush()
    db.add(Coach(profile_id=profile.id, stripe_account_id="acct_other"))
    db.commit()
    return profile


@pytest.fixture
def athlete(db: Session) -> Profile:
    profile = Profile(email="athlete@example.com", full_name="Avery Athlete", role=ProfileRole.ATHLETE.value)
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def admin(db: Session) -> Profile:
    profile = Profile(email="admin@example.com", full_name="Ada Admin", role=ProfileRole.ADMIN.value)
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def live_listing(db: Session, coach: Profile) -> Listing:
    listing = Listing(
        coach_id=coach.id,
        title="Pitching Mechanics",
        price_cents=LISTING_PRICE_CENTS,
        duration_minutes=60,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def conversation(db: Session, coach: Profile, athlete: Profile) -> Conversation:
    convo = Conversation(athlete_id=athlete.id, coach_id=coach.id)
    db.add(convo)
    db.commit()
    return convo


def _make_request(
    db: Session,
    *,
    listing: Listing,
    athlete: Profile,
    conversation: Conversation,
    created_at: datetime,
    payment_method_id: str | None = "pm_card_visa",
    status: str = BookingRequestStatus.PENDING.value,
) -> BookingRequest:
    start = datetime.now(timezone.utc) + timedelta(days=2)
    request = BookingRequest(
        listing_id=listing.id,
        coach_id=listing.coach_id,
        athlete_id=athlete.id,
        proposed_start=start,
        proposed_end=start + timedelta(hours=1),
        timezone="America/New_York",
        status=status,
        conversation_id=conversation.id,
        payment_method_id=payment_method_id,
        created_at=created_at,
    )
    db.add(request)
    db.commit()
    return request


@pytest.fixture
def pending_request(db: Session, live_listing: Listing, athlete: Profile, conversation: Conversation) -> BookingRequest:
    return _make_request(
        db,
        listing=live_listing,
        athlete=athlete,
        conversation=conversation,
        created_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )


@pytest.fixture
def request_factory(
    db: Session, live_listing: Listing, athlete: Profile, conversation: Conversation
) -> Callable[..., BookingRequest]:
    """Build requests for the seeded listing; ``age`` is how long ago it was created."""

    def _factory(
        *,
        age: timedelta = timedelta(hours=1),
        payment_method_id: str | None = "pm_card_visa",
        status: str = BookingRequestStatus.PENDING.value,
    ) -> BookingRequest:
        return _make_request(
            db,
            listing=live_listing,
            athlete=athlete,
            conversation=conversation,
            created_at=datetime.now(timezone.utc) - age,
            payment_method_id=payment_method_id,
            status=status,
        )

    return _factory


@pytest.fixture
def film_listing(db: Session, coach: Profile) -> Listing:
    listing = Listing(
        coach_id=coach.id,
        title="Swing Breakdown",
        price_cents=FILM_PRICE_CENTS,
        listing_type=BOOKING_TYPE_FILM_REVIEW,
        turnaround_hours=48,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def film_review_booking(db: Session, film_listing: Listing, athlete: Profile) -> Booking:
    booking = Booking(
        listing_id=film_listing.id,
        coach_id=film_listing.coach_id,
        athlete_id=athlete.id,
        customer_email=athlete.email,
        amount_paid_cents=FILM_PRICE_CENTS,
        platform_fee_cents=FILM_PLATFORM_FEE_CENTS,
        payment_intent_id="pi_film_checkout",
        status=BookingStatus.PAID.value,
        booking_type=BookingType.FILM_REVIEW.value,
        film_url="https://video.example.com/game-film.mp4",
        athlete_notes="Watch my front foot",
        review_status=ReviewStatus.PENDING_ACCEPTANCE.value,
    )
    db.add(booking)
    db.commit()
    return booking


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def stripe_mock() -> MagicMock:
    """StripeService double whose default path is a clean successful charge."""
    service = MagicMock(spec=StripeService)
    service.find_or_create_customer.return_value = "cus_test"
    service.attach_payment_method.return_value = None
    service.capture_payment.return_value = CaptureSucceeded(payment_intent_id="pi_test_123")
    service.refund.return_value = RefundResult(refund_id="re_test", status="succeeded", amount_cents=0)
    return service


@pytest.fixture
def email_mock() -> MagicMock:
    return MagicMock(spec=EmailService)


@pytest.fixture
def notification_service(db: Session, email_mock: MagicMock) -> NotificationService:
    return NotificationService(db, email_service_factory=lambda: email_mock)


@pytest.fixture
def fake_zoom() -> FakeZoomClient:
    return FakeZoomClient()


@pytest.fixture
def meeting_service(fake_zoom: FakeZoomClient) -> MeetingService:
    return MeetingService(fake_zoom)


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(db: Session):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[Profile], Dict[str, str]]:
    def _headers(profile: Profile) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token({'sub': profile.id})}"}

    return _headers
