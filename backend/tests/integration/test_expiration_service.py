# backend/tests/integration/test_expiration_service.py
"""
Integration tests for the stale booking request sweep.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from app.models.booking_request import BookingRequest, BookingRequestStatus
from app.models.message import Message
from app.services.expiration_service import ExpirationService, SweepResult


@pytest.fixture
def service(db, notification_service):
    return ExpirationService(db, notification_service=notification_service, expiry_hours=72)


def _status(db, request_id):
    db.expire_all()
    return db.get(BookingRequest, request_id).status


class TestExpireStaleRequests:
    def test_request_pending_73_hours_is_expired(
        self, db, service, request_factory, conversation, email_mock
    ):
        stale = request_factory(age=timedelta(hours=73))

        result = service.expire_stale_requests()

        assert result == SweepResult(expired_count=1, error_count=0, total_processed=1)
        assert _status(db, stale.id) == BookingRequestStatus.EXPIRED.value
        messages = db.query(Message).filter(Message.conversation_id == conversation.id).all()
        assert len(messages) == 1
        assert messages[0].body == "Request expired after 72 hours."
        email_mock.send_booking_expired.assert_called_once()

    def test_fresh_and_terminal_requests_are_left_alone(self, db, service, request_factory):
        fresh = request_factory(age=timedelta(hours=71))
        accepted = request_factory(
            age=timedelta(hours=100), status=BookingRequestStatus.ACCEPTED.value
        )
        declined = request_factory(
            age=timedelta(hours=100), status=BookingRequestStatus.DECLINED.value
        )

        result = service.expire_stale_requests()

        assert result.total_processed == 0
        assert _status(db, fresh.id) == BookingRequestStatus.PENDING.value
        assert _status(db, accepted.id) == BookingRequestStatus.ACCEPTED.value
        assert _status(db, declined.id) == BookingRequestStatus.DECLINED.value

    def test_one_failure_does_not_abort_the_sweep(self, db, service, request_factory):
        first = request_factory(age=timedelta(hours=80))
        second = request_factory(age=timedelta(hours=75))
        real_transition = service.request_repository.try_transition

        def flaky(request_id, expected, new):
            if request_id == first.id:
                raise RuntimeError("row locked")
            return real_transition(request_id, expected, new)

        with patch.object(service.request_repository, "try_transition", side_effect=flaky):
            result = service.expire_stale_requests()

        assert result.expired_count == 1
        assert result.error_count == 1
        assert result.total_processed == 2
        assert _status(db, first.id) == BookingRequestStatus.PENDING.value
        assert _status(db, second.id) == BookingRequestStatus.EXPIRED.value

    def test_lost_compare_and_swap_is_skipped(self, db, service, request_factory):
        request_factory(age=timedelta(hours=80))
        service.request_repository.try_transition = MagicMock(return_value=False)

        result = service.expire_stale_requests()

        assert result.expired_count == 0
        assert result.error_count == 0
        assert result.total_processed == 1

    def test_email_failure_still_counts_as_expired(
        self, db, service, request_factory, email_mock
    ):
        stale = request_factory(age=timedelta(hours=80))
        email_mock.send_booking_expired.side_effect = RuntimeError("provider down")

        result = service.expire_stale_requests()

        assert result.expired_count == 1
        assert _status(db, stale.id) == BookingRequestStatus.EXPIRED.value

    def test_expired_request_is_not_swept_again(self, db, service, request_factory):
        request_factory(age=timedelta(hours=80))
        service.expire_stale_requests()

        result = service.expire_stale_requests()

        assert result.total_processed == 0

    def test_sweep_pages_through_every_stale_request(self, db, service, request_factory):
        stale = [request_factory(age=timedelta(hours=80 + i)) for i in range(5)]
        broken = stale[-1]
        real_transition = service.request_repository.try_transition

        def flaky(request_id, expected, new):
            if request_id == broken.id:
                raise RuntimeError("row locked")
            return real_transition(request_id, expected, new)

        with patch("app.services.expiration_service.SWEEP_BATCH_LIMIT", 2), patch.object(
            service.request_repository, "try_transition", side_effect=flaky
        ):
            result = service.expire_stale_requests()

        assert result == SweepResult(expired_count=4, error_count=1, total_processed=5)
        assert _status(db, broken.id) == BookingRequestStatus.PENDING.value
        for request in stale[:-1]:
            assert _status(db, request.id) == BookingRequestStatus.EXPIRED.value

    def test_to_dict(self):
        assert SweepResult(2, 1, 3).to_dict() == {
            "expired_count": 2,
            "error_count": 1,
            "total_processed": 3,
        }
