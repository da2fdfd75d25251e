# backend/tests/integration/test_film_review_service.py
"""
Integration tests for FilmReviewService: accept, decline with refund,
completion with lateness tracking and the coach read model.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.core.constants import PAYOUT_EVENT_FILM_REVIEW_COMPLETED
from app.core.exceptions import (
    AlreadyProcessedException,
    ForbiddenException,
    NotFoundException,
    ServiceException,
)
from app.models.booking import Booking, BookingStatus, ReviewStatus
from app.models.payout_event import PayoutEvent
from app.schemas.film_review import StructuredReviewSubmission
from app.services.film_review_service import FilmReviewService, round_hours


def _submission(**overrides):
    payload = {
        "overall_assessment": "A" * 220,
        "strengths": "S" * 120,
        "areas_for_improvement": "I" * 120,
        "recommended_drills": "D" * 120,
        "key_timestamps": "0:42 stride, 1:15 release",
    }
    payload.update(overrides)
    return StructuredReviewSubmission(**payload)


@pytest.fixture
def service(db, stripe_mock, notification_service):
    return FilmReviewService(db, stripe_service=stripe_mock, notification_service=notification_service)


def _reload(db, booking_id):
    db.expire_all()
    return db.get(Booking, booking_id)


def _accept_at(db, booking, accepted_at, turnaround_hours=48):
    booking.review_status = ReviewStatus.ACCEPTED.value
    booking.coach_accepted_at = accepted_at
    booking.deadline_at = accepted_at + timedelta(hours=turnaround_hours)
    booking.turnaround_hours = turnaround_hours
    db.commit()


class TestRoundHours:
    def test_halves_round_up(self):
        assert round_hours(2.5) == 3
        assert round_hours(2.49) == 2
        assert round_hours(0.5) == 1


class TestAccept:
    def test_accept_reveals_film_and_sets_deadline(
        self, db, service, film_review_booking, coach, email_mock
    ):
        before = datetime.now(timezone.utc)

        result = service.accept_review(film_review_booking.id, coach.id)

        assert result.review_status == "accepted"
        assert result.film_url == "https://video.example.com/game-film.mp4"
        assert result.turnaround_hours == 48
        assert before + timedelta(hours=48) <= result.deadline_at
        booking = _reload(db, film_review_booking.id)
        assert booking.review_status == ReviewStatus.ACCEPTED.value
        assert booking.coach_accepted_at is not None
        email_mock.send_film_review_accepted.assert_called_once()

    def test_accept_twice_is_rejected(self, service, film_review_booking, coach):
        service.accept_review(film_review_booking.id, coach.id)

        with pytest.raises(NotFoundException):
            service.accept_review(film_review_booking.id, coach.id)

    def test_other_coach_is_forbidden(self, service, film_review_booking, other_coach):
        with pytest.raises(ForbiddenException):
            service.accept_review(film_review_booking.id, other_coach.id)

    def test_unknown_booking_is_not_found(self, service, coach):
        with pytest.raises(NotFoundException):
            service.accept_review("01HZZZZZZZZZZZZZZZZZZZZZZZ", coach.id)

    def test_lost_compare_and_swap_is_already_processed(
        self, service, film_review_booking, coach
    ):
        service.booking_repository.try_transition_review = MagicMock(return_value=False)

        with pytest.raises(AlreadyProcessedException):
            service.accept_review(film_review_booking.id, coach.id)


class TestDecline:
    def test_decline_refunds_in_full(
        self, db, service, film_review_booking, coach, stripe_mock, email_mock
    ):
        result = service.decline_review(film_review_booking.id, coach.id)

        assert result.refund_issued is True
        stripe_mock.refund.assert_called_once()
        assert stripe_mock.refund.call_args.args[0] == "pi_film_checkout"
        booking = _reload(db, film_review_booking.id)
        assert booking.review_status == ReviewStatus.DECLINED.value
        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.refund_issued is True
        assert booking.coach_declined_at is not None
        kwargs = email_mock.send_film_review_declined.call_args.kwargs
        assert kwargs["refund_issued"] is True

    def test_refund_failure_keeps_decline_and_flags_manual_refund(
        self, db, service, film_review_booking, coach, stripe_mock, caplog
    ):
        stripe_mock.refund.side_effect = ServiceException("Failed to refund payment: network")

        with caplog.at_level("ERROR"):
            result = service.decline_review(film_review_booking.id, coach.id)

        assert result.refund_issued is False
        assert "manual" in result.message
        booking = _reload(db, film_review_booking.id)
        assert booking.review_status == ReviewStatus.DECLINED.value
        assert booking.status == BookingStatus.PAID.value
        assert booking.refund_issued is False
        assert "Refund failed" in caplog.text

    def test_accepted_review_cannot_be_declined(
        self, service, film_review_booking, coach, stripe_mock
    ):
        service.accept_review(film_review_booking.id, coach.id)

        with pytest.raises(NotFoundException):
            service.decline_review(film_review_booking.id, coach.id)
        stripe_mock.refund.assert_not_called()


class TestComplete:
    def test_on_time_completion(self, db, service, film_review_booking, coach, email_mock):
        accepted_at = datetime.now(timezone.utc) - timedelta(hours=10)
        _accept_at(db, film_review_booking, accepted_at)

        result = service.complete_review(film_review_booking.id, coach.id, _submission())

        assert result.review_status == "completed"
        assert result.review_submitted_late is False
        assert result.review_hours_late is None
        booking = _reload(db, film_review_booking.id)
        assert booking.review_status == ReviewStatus.COMPLETED.value
        assert booking.status == BookingStatus.COMPLETED.value
        assert booking.review_content["overall_assessment"] == "A" * 220
        email_mock.send_film_review_completed.assert_called_once()

    def test_late_completion_is_recorded_not_rejected(
        self, db, service, film_review_booking, coach
    ):
        accepted_at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        _accept_at(db, film_review_booking, accepted_at, turnaround_hours=48)
        submitted_at = accepted_at + timedelta(hours=48 + 5, minutes=30)

        result = service.complete_review(
            film_review_booking.id, coach.id, _submission(), now=submitted_at
        )

        assert result.review_submitted_late is True
        assert result.review_hours_late == 6
        booking = _reload(db, film_review_booking.id)
        assert booking.review_status == ReviewStatus.COMPLETED.value
        assert booking.review_submitted_late is True
        assert booking.review_hours_late == 6

    def test_completion_writes_payout_event_for_coach_share(
        self, db, service, film_review_booking, coach
    ):
        accepted_at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        _accept_at(db, film_review_booking, accepted_at)

        service.complete_review(
            film_review_booking.id,
            coach.id,
            _submission(),
            now=accepted_at + timedelta(hours=50),
        )

        event = db.query(PayoutEvent).filter(PayoutEvent.booking_id == film_review_booking.id).one()
        assert event.event_type == PAYOUT_EVENT_FILM_REVIEW_COMPLETED
        assert event.amount_cents == 4500
        assert event.coach_id == coach.id
        assert event.event_metadata["was_late"] is True
        assert event.event_metadata["hours_late"] == 2

    def test_payout_event_failure_does_not_fail_completion(
        self, db, service, film_review_booking, coach
    ):
        _accept_at(db, film_review_booking, datetime.now(timezone.utc) - timedelta(hours=1))
        service.payout_event_repository.record = MagicMock(side_effect=RuntimeError("audit down"))

        result = service.complete_review(film_review_booking.id, coach.id, _submission())

        assert result.review_status == "completed"
        assert _reload(db, film_review_booking.id).review_status == ReviewStatus.COMPLETED.value

    def test_pending_review_cannot_be_completed(self, db, service, film_review_booking, coach):
        with pytest.raises(NotFoundException):
            service.complete_review(film_review_booking.id, coach.id, _submission())
        assert _reload(db, film_review_booking.id).review_status == (
            ReviewStatus.PENDING_ACCEPTANCE.value
        )

    def test_completed_review_is_immutable(self, db, service, film_review_booking, coach):
        _accept_at(db, film_review_booking, datetime.now(timezone.utc) - timedelta(hours=1))
        service.complete_review(film_review_booking.id, coach.id, _submission())

        with pytest.raises(NotFoundException):
            service.complete_review(film_review_booking.id, coach.id, _submission())
        with pytest.raises(NotFoundException):
            service.decline_review(film_review_booking.id, coach.id)


class TestCoachView:
    def test_film_url_withheld_until_accepted(self, service, film_review_booking, coach):
        detail = service.get_review_for_coach(film_review_booking.id, coach.id)

        assert detail.review_status == ReviewStatus.PENDING_ACCEPTANCE.value
        assert detail.film_url is None
        assert detail.deadline_at is None
        assert detail.is_overdue is False

    def test_overdue_state_is_computed_at_read_time(self, db, service, film_review_booking, coach):
        accepted_at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        _accept_at(db, film_review_booking, accepted_at)

        detail = service.get_review_for_coach(
            film_review_booking.id, coach.id, now=accepted_at + timedelta(hours=50)
        )

        assert detail.film_url == "https://video.example.com/game-film.mp4"
        assert detail.is_overdue is True
        assert detail.hours_remaining == -2.0

    def test_other_coach_is_forbidden(self, service, film_review_booking, other_coach):
        with pytest.raises(ForbiddenException):
            service.get_review_for_coach(film_review_booking.id, other_coach.id)
