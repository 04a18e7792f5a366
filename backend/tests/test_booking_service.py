"""Tests for nightwatch.services.booking_service."""

import json
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from nightwatch.models import Booking, OutboxItem
from nightwatch.services.booking_service import BookingService
from nightwatch.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalServiceError,
    NotFoundError,
    ShiftTimeInvalidError,
)
from nightwatch.services.notification_service import ADMIN_SHIFT_ASSIGNMENT, BOOKING_CONFIRMATION


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestCreateBooking:
    def test_creates_booking_for_valid_shift(self, db, make_user, make_schedule):
        user = make_user()
        schedule = make_schedule(cron_expr="0 * * * *", duration_minutes=60)

        booking = BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 11, 0), user.id)

        assert booking.id is not None
        assert booking.user_id == user.id
        assert booking.shift_start == utc(2030, 6, 3, 11, 0)
        assert booking.shift_end == utc(2030, 6, 3, 12, 0)
        assert booking.attended is False

    def test_enqueues_confirmation(self, db, make_user, make_schedule):
        user = make_user()
        schedule = make_schedule()

        booking = BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 11, 0), user.id)

        item = db.query(OutboxItem).one()
        assert item.message_type == BOOKING_CONFIRMATION
        assert item.user_id == user.id
        assert item.status == "pending"
        assert json.loads(item.payload)["booking_id"] == booking.id

    def test_off_pattern_start_rejected(self, db, make_user, make_schedule):
        user = make_user()
        schedule = make_schedule(cron_expr="0 * * * *")

        with pytest.raises(ShiftTimeInvalidError):
            BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 10, 15), user.id)

        assert db.query(Booking).count() == 0

    def test_outside_active_period_rejected(self, db, make_user, make_schedule):
        user = make_user()
        schedule = make_schedule(cron_expr="0 18 * * *", end_date=date(2030, 1, 31))

        with pytest.raises(ShiftTimeInvalidError):
            BookingService(db).create_booking(schedule.id, utc(2030, 2, 3, 18, 0), user.id)

    def test_unknown_schedule(self, db, make_user):
        user = make_user()

        with pytest.raises(NotFoundError):
            BookingService(db).create_booking(999, utc(2030, 6, 3, 11, 0), user.id)

    def test_malformed_pattern_is_internal_error(self, db, make_user, make_schedule):
        user = make_user()
        schedule = make_schedule(cron_expr="0 0 32 * *")

        with pytest.raises(InternalServiceError):
            BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 0, 0), user.id)

    def test_second_booking_of_same_shift_conflicts(self, db, make_user, make_schedule):
        first, second = make_user(), make_user()
        schedule = make_schedule()
        service = BookingService(db)
        service.create_booking(schedule.id, utc(2030, 6, 3, 11, 0), first.id)

        with pytest.raises(ConflictError):
            service.create_booking(schedule.id, utc(2030, 6, 3, 11, 0), second.id)

        assert db.query(Booking).count() == 1
        assert db.query(Booking).one().user_id == first.id

    def test_same_instant_in_other_offset_conflicts(self, db, make_user, make_schedule):
        schedule = make_schedule()
        service = BookingService(db)
        service.create_booking(schedule.id, utc(2030, 6, 3, 11, 0), make_user().id)
        same_instant = datetime(2030, 6, 3, 13, 0, tzinfo=timezone(timedelta(hours=2)))

        with pytest.raises(ConflictError):
            service.create_booking(schedule.id, same_instant, make_user().id)

    def test_naive_start_is_utc(self, db, make_user, make_schedule):
        schedule = make_schedule()

        booking = BookingService(db).create_booking(schedule.id, datetime(2030, 6, 3, 11, 0), make_user().id)

        assert booking.shift_start == utc(2030, 6, 3, 11, 0)

    def test_end_follows_elapsed_time(self, db, make_user, make_schedule):
        schedule = make_schedule(cron_expr="0 22 * * *", duration_minutes=480, timezone="Africa/Johannesburg")

        booking = BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 20, 0), make_user().id)

        assert booking.shift_end - booking.shift_start == timedelta(minutes=480)

    def test_registered_buddy_is_linked(self, db, make_user, make_schedule):
        user = make_user()
        buddy = make_user(name="Lerato", phone="+27825550199")
        schedule = make_schedule()

        booking = BookingService(db).create_booking(
            schedule.id, utc(2030, 6, 3, 11, 0), user.id, buddy_phone="+27825550199", buddy_name="Whoever"
        )

        assert booking.buddy_user_id == buddy.id
        assert booking.buddy_name == "Lerato"

    def test_unregistered_buddy_keeps_freeform_name(self, db, make_user, make_schedule):
        schedule = make_schedule()

        booking = BookingService(db).create_booking(
            schedule.id, utc(2030, 6, 3, 11, 0), make_user().id, buddy_phone="+27820000000", buddy_name=" Neighbour "
        )

        assert booking.buddy_user_id is None
        assert booking.buddy_name == "Neighbour"

    def test_notification_failure_keeps_booking(self, db, make_user, make_schedule):
        schedule = make_schedule()
        notifier = MagicMock()
        notifier.enqueue_booking_notification.side_effect = OperationalError(
            "INSERT", {}, Exception("disk I/O error")
        )

        booking = BookingService(db, notifier=notifier).create_booking(
            schedule.id, utc(2030, 6, 3, 11, 0), make_user().id
        )

        notifier.enqueue_booking_notification.assert_called_once()
        assert db.query(Booking).filter(Booking.id == booking.id).count() == 1

    def test_missing_user_is_not_a_conflict(self, db, make_schedule):
        schedule = make_schedule()

        with pytest.raises(InternalServiceError):
            BookingService(db).create_booking(schedule.id, utc(2030, 6, 3, 11, 0), 999)

        assert db.query(Booking).count() == 0


class TestAdminAssign:
    def test_assigns_target_user(self, db, make_user, make_schedule):
        member = make_user()
        schedule = make_schedule()

        booking = BookingService(db).admin_assign_user_to_shift(member.id, schedule.id, utc(2030, 6, 3, 11, 0))

        assert booking.user_id == member.id
        item = db.query(OutboxItem).one()
        assert item.message_type == ADMIN_SHIFT_ASSIGNMENT
        assert json.loads(item.payload)["assigned_by"] == "admin"

    def test_unknown_user(self, db, make_schedule):
        schedule = make_schedule()

        with pytest.raises(NotFoundError):
            BookingService(db).admin_assign_user_to_shift(999, schedule.id, utc(2030, 6, 3, 11, 0))

    def test_same_validation_as_member_booking(self, db, make_user, make_schedule):
        member = make_user()
        schedule = make_schedule()

        with pytest.raises(ShiftTimeInvalidError):
            BookingService(db).admin_assign_user_to_shift(member.id, schedule.id, utc(2030, 6, 3, 11, 30))

    def test_taken_shift_conflicts(self, db, make_user, make_schedule):
        schedule = make_schedule()
        service = BookingService(db)
        service.create_booking(schedule.id, utc(2030, 6, 3, 11, 0), make_user().id)

        with pytest.raises(ConflictError):
            service.admin_assign_user_to_shift(make_user().id, schedule.id, utc(2030, 6, 3, 11, 0))


class TestMarkAttendance:
    def test_owner_marks_attendance(self, db, make_user, make_schedule, make_booking):
        user = make_user()
        booking = make_booking(user, make_schedule(), utc(2030, 6, 3, 11, 0))

        updated = BookingService(db).mark_attendance(booking.id, user.id, True)

        assert updated.attended is True

    def test_repeat_is_idempotent(self, db, make_user, make_schedule, make_booking):
        user = make_user()
        booking = make_booking(user, make_schedule(), utc(2030, 6, 3, 11, 0))
        service = BookingService(db)

        service.mark_attendance(booking.id, user.id, True)
        updated = service.mark_attendance(booking.id, user.id, True)

        assert updated.attended is True

    def test_other_user_is_forbidden(self, db, make_user, make_schedule, make_booking):
        owner, stranger = make_user(), make_user()
        booking = make_booking(owner, make_schedule(), utc(2030, 6, 3, 11, 0))

        with pytest.raises(ForbiddenError):
            BookingService(db).mark_attendance(booking.id, stranger.id, True)

        db.refresh(booking)
        assert booking.attended is False

    def test_unknown_booking(self, db, make_user):
        with pytest.raises(NotFoundError):
            BookingService(db).mark_attendance(999, make_user().id, True)


class TestListUserBookings:
    def test_newest_first_with_schedule_name(self, db, make_user, make_schedule, make_booking):
        user = make_user()
        other = make_user()
        schedule = make_schedule(name="Friday nights")
        make_booking(user, schedule, utc(2030, 6, 3, 10, 0))
        make_booking(user, schedule, utc(2030, 6, 5, 10, 0))
        make_booking(other, schedule, utc(2030, 6, 4, 10, 0))

        bookings = BookingService(db).list_user_bookings(user.id)

        assert [b.shift_start for b in bookings] == [utc(2030, 6, 5, 10, 0), utc(2030, 6, 3, 10, 0)]
        assert bookings[0].schedule_name == "Friday nights"
