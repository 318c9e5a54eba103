# Overview: Pytest coverage for reservation booking, conflicts and lifecycle.

from datetime import datetime, timedelta

import pytest

from tablepos.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, ReservationInPastError,
    ScheduleConflictError, ValidationError,
)
from tablepos.models import ReservationStatus, TableState
from tablepos.services import reservation_service, table_service
from tablepos.time_utils import utcnow


def _tomorrow_at(hour: int, minute: int = 0) -> datetime:
    day = utcnow().date() + timedelta(days=1)
    return datetime(day.year, day.month, day.day, hour, minute)


def _book(table, start, minutes=120, name="Lopez", party=4):
    return reservation_service.create_reservation(
        table_id=table.id, client_name=name, starts_at=start, duration_minutes=minutes, party_size=party,
    )


class TestBooking:
    def test_create_is_pending_with_default_duration(self, db_session, table2):
        reservation = reservation_service.create_reservation(
            table_id=table2.id, client_name="Lopez", starts_at=_tomorrow_at(19), party_size=2,
        )
        assert reservation.status == ReservationStatus.PENDING
        assert reservation.duration_minutes == 120
        assert reservation.ends_at == _tomorrow_at(21)

    def test_overlapping_booking_conflicts(self, db_session, table2):
        """19:00 for 120 min confirmed; 20:00 for 60 min on the same table conflicts."""
        existing = _book(table2, _tomorrow_at(19), 120)
        reservation_service.confirm(existing.id)

        with pytest.raises(ScheduleConflictError) as exc_info:
            _book(table2, _tomorrow_at(20), 60, name="Garcia")
        assert exc_info.value.details["conflicting_reservation_id"] == existing.id

    def test_adjacent_windows_do_not_conflict(self, db_session, table2):
        _book(table2, _tomorrow_at(19), 120)
        later = _book(table2, _tomorrow_at(21), 60, name="Garcia")
        earlier = _book(table2, _tomorrow_at(17), 120, name="Perez")
        assert later.id and earlier.id

    def test_window_containing_existing_conflicts(self, db_session, table2):
        _book(table2, _tomorrow_at(19, 30), 30)
        with pytest.raises(ScheduleConflictError):
            _book(table2, _tomorrow_at(19), 120, name="Garcia")

    def test_other_table_is_independent(self, db_session, table1, table2):
        _book(table2, _tomorrow_at(19))
        assert _book(table1, _tomorrow_at(19)).table_id == table1.id

    @pytest.mark.parametrize("terminal", ["cancel", "mark_no_show"])
    def test_inactive_reservations_do_not_block(self, db_session, table2, terminal):
        existing = _book(table2, _tomorrow_at(19))
        getattr(reservation_service, terminal)(existing.id)
        assert _book(table2, _tomorrow_at(19), name="Garcia").status == ReservationStatus.PENDING

    def test_in_the_past(self, db_session, table2):
        with pytest.raises(ReservationInPastError):
            _book(table2, utcnow() - timedelta(minutes=5))

    def test_missing_table(self, db_session):
        with pytest.raises(NotFoundError):
            reservation_service.create_reservation(
                table_id=999, client_name="X", starts_at=_tomorrow_at(19), party_size=2,
            )

    def test_party_size_and_name_required(self, db_session, table2):
        with pytest.raises(ValidationError):
            _book(table2, _tomorrow_at(19), party=0)
        with pytest.raises(ValidationError):
            _book(table2, _tomorrow_at(19), name="  ")

    def test_availability(self, db_session, table2):
        _book(table2, _tomorrow_at(19), 120)
        assert not reservation_service.is_available(table2.id, _tomorrow_at(20), 60)
        assert reservation_service.is_available(table2.id, _tomorrow_at(21), 60)


class TestUpdate:
    def _under_way(self, table, minutes_ago=10):
        start = utcnow().replace(microsecond=0) - timedelta(minutes=minutes_ago)
        reservation = reservation_service.create_reservation(
            table_id=table.id, client_name="Lopez", starts_at=start, party_size=4,
            now=start - timedelta(hours=1),
        )
        return reservation_service.confirm(reservation.id)

    def test_started_reservation_can_change_table(self, db_session, table1, table2):
        reservation = self._under_way(table2)
        moved = reservation_service.update_reservation(reservation.id, table_id=table1.id)
        assert moved.table_id == table1.id

    def test_started_reservation_can_be_extended(self, db_session, table2):
        reservation = self._under_way(table2)
        extended = reservation_service.update_reservation(reservation.id, duration_minutes=180)
        assert extended.duration_minutes == 180

    def test_started_reservation_still_checked_for_conflicts(self, db_session, table1, table2):
        reservation = self._under_way(table2)
        _book(table1, utcnow() + timedelta(minutes=30), 60, name="Garcia")
        with pytest.raises(ScheduleConflictError):
            reservation_service.update_reservation(reservation.id, table_id=table1.id)

    def test_moving_start_into_the_past_fails(self, db_session, table2):
        reservation = self._under_way(table2)
        with pytest.raises(ReservationInPastError):
            reservation_service.update_reservation(
                reservation.id, starts_at=reservation.starts_at - timedelta(minutes=5),
            )

    def test_move_into_conflict_fails(self, db_session, table2):
        _book(table2, _tomorrow_at(19), 120)
        other = _book(table2, _tomorrow_at(22), 60, name="Garcia")
        with pytest.raises(ScheduleConflictError):
            reservation_service.update_reservation(other.id, starts_at=_tomorrow_at(20))
        assert reservation_service.get_reservation(other.id).starts_at == _tomorrow_at(22)

    def test_extending_itself_is_not_a_conflict(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19), 60)
        updated = reservation_service.update_reservation(reservation.id, duration_minutes=120, party_size=6)
        assert updated.duration_minutes == 120
        assert updated.party_size == 6

    def test_move_to_other_table(self, db_session, table1, table2):
        reservation = _book(table2, _tomorrow_at(19))
        updated = reservation_service.update_reservation(reservation.id, table_id=table1.id, notes="window")
        assert updated.table_id == table1.id
        assert updated.notes == "window"

    def test_terminal_reservation_cannot_be_edited(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.cancel(reservation.id)
        with pytest.raises(ConflictError):
            reservation_service.update_reservation(reservation.id, party_size=2)


class TestLifecycle:
    def test_confirm_then_seat_occupies_table(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.confirm(reservation.id)
        seated = reservation_service.seat(reservation.id)
        assert seated.status == ReservationStatus.SEATED
        assert table_service.get_table(table2.id).state == TableState.OCCUPIED

    def test_seat_keeps_occupied_table_as_is(self, db_session, table2, product):
        table_service.add_line(table2.id, product.id, 2)
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.seat(reservation.id)
        table = table_service.get_table(table2.id)
        assert table.state == TableState.OCCUPIED
        assert table.total_cents == 6000

    @pytest.mark.parametrize("terminal", [ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW])
    def test_no_transition_out_of_terminal_states(self, db_session, table2, terminal):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.change_status(reservation.id, terminal)
        for target in ReservationStatus:
            with pytest.raises(InvalidTransitionError):
                reservation_service.change_status(reservation.id, target)

    def test_seated_is_terminal(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.seat(reservation.id)
        with pytest.raises(InvalidTransitionError):
            reservation_service.cancel(reservation.id)

    def test_cannot_go_back_to_pending(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.confirm(reservation.id)
        with pytest.raises(InvalidTransitionError):
            reservation_service.change_status(reservation.id, "pending")

    def test_seated_reservation_still_blocks(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.seat(reservation.id)
        with pytest.raises(ScheduleConflictError):
            _book(table2, _tomorrow_at(20), name="Garcia")


class TestQueries:
    def test_active_range_and_search(self, db_session, table1, table2):
        a = _book(table1, _tomorrow_at(12), name="Ana Lopez")
        b = _book(table2, _tomorrow_at(20), name="Bruno Diaz")
        reservation_service.cancel(b.id)

        assert [r.id for r in reservation_service.list_active()] == [a.id]
        tomorrow = _tomorrow_at(0).date()
        assert {r.id for r in reservation_service.list_for_day(tomorrow)} == {a.id, b.id}
        assert reservation_service.list_for_day(tomorrow - timedelta(days=3)) == []
        assert [r.id for r in reservation_service.search_by_client("lopez")] == [a.id]
        in_range = reservation_service.list_in_range(_tomorrow_at(19), _tomorrow_at(23), table_id=table2.id)
        assert [r.id for r in in_range] == [b.id]

    def test_delete(self, db_session, table2):
        reservation = _book(table2, _tomorrow_at(19))
        reservation_service.delete_reservation(reservation.id)
        with pytest.raises(NotFoundError):
            reservation_service.get_reservation(reservation.id)
