"""
Reservation Scheduler Service

WHY: A table can only be promised to one party at a time.

CONFLICT RULE: two active reservations (PENDING, CONFIRMED, SEATED) on the
same table conflict when their half-open windows overlap:
    new.start < existing.end AND new.end > existing.start
A reservation ending at 21:00 and one starting at 21:00 do not conflict.

CONCURRENCY: the table row is locked before the conflict check, so two
bookings for the same table are serialized where the database honors locks;
the table's version_id is bumped so SQLite writers also collide and retry.

LIFECYCLE:
    PENDING -> CONFIRMED -> SEATED
    PENDING | CONFIRMED -> CANCELLED | NO_SHOW
    PENDING -> SEATED (walk-in of an unconfirmed booking)
SEATED, CANCELLED and NO_SHOW are terminal. Seating occupies a FREE table.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app

from ..errors import (
    ConflictError, InvalidTransitionError, NotFoundError, ReservationInPastError,
    ScheduleConflictError, ValidationError, require_positive,
)
from ..extensions import db
from ..models import DiningTable, Reservation, ReservationStatus, TableState
from ..models.enums import ACTIVE_RESERVATION_STATUSES, coerce_enum
from ..time_utils import day_bounds, utcnow, windows_overlap
from .concurrency import run_in_transaction
from .table_service import load_table


ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    }),
    ReservationStatus.SEATED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

EDITABLE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


# =============================================================================
# HELPERS
# =============================================================================

def _find_conflict(table_id: int, start: datetime, end: datetime, exclude_id: int | None = None) -> Reservation | None:
    query = db.session.query(Reservation).filter(
        Reservation.table_id == table_id,
        Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
    )
    if exclude_id is not None:
        query = query.filter(Reservation.id != exclude_id)
    for existing in query.order_by(Reservation.starts_at).all():
        if windows_overlap(start, end, existing.starts_at, existing.ends_at):
            return existing
    return None


def _lock_table_schedule(table: DiningTable) -> None:
    """Bump the table's version so concurrent bookings for it cannot both commit."""
    table.updated_at = utcnow()


def _validate_start(starts_at: datetime, now: datetime) -> None:
    if starts_at is None:
        raise ValidationError("starts_at is required", {"field": "starts_at"})
    if starts_at.tzinfo is not None:
        raise ValidationError("starts_at must be a naive UTC datetime", {"field": "starts_at"})
    if starts_at < now:
        raise ReservationInPastError(starts_at)


def load_reservation(reservation_id: int) -> Reservation:
    reservation = db.session.query(Reservation).filter_by(id=reservation_id).first()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


# =============================================================================
# BOOKING
# =============================================================================

def create_reservation(
    *,
    table_id: int,
    client_name: str,
    starts_at: datetime,
    party_size: int,
    duration_minutes: int | None = None,
    client_phone: str | None = None,
    client_email: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
    now: datetime | None = None,
) -> Reservation:
    """
    Book a table.

    Raises:
        NotFoundError: table missing
        ReservationInPastError: starts_at before now
        ScheduleConflictError: overlaps an active reservation on the table
    """
    client_name = (client_name or "").strip()
    if not client_name:
        raise ValidationError("client_name is required", {"field": "client_name"})
    party_size = require_positive(party_size, "party_size")
    if duration_minutes is None:
        duration_minutes = current_app.config.get("DEFAULT_RESERVATION_MINUTES", 120)
    duration_minutes = require_positive(duration_minutes, "duration_minutes")

    def _op():
        table = load_table(table_id, for_update=True)
        _validate_start(starts_at, now or utcnow())
        ends_at = starts_at + timedelta(minutes=duration_minutes)
        conflict = _find_conflict(table.id, starts_at, ends_at)
        if conflict:
            raise ScheduleConflictError(table.id, conflict.id)
        _lock_table_schedule(table)
        reservation = Reservation(
            table=table,
            client_name=client_name,
            client_phone=client_phone,
            client_email=client_email,
            starts_at=starts_at,
            duration_minutes=duration_minutes,
            party_size=party_size,
            status=ReservationStatus.PENDING,
            notes=notes,
            created_by=created_by,
        )
        db.session.add(reservation)
        return reservation

    reservation = run_in_transaction(_op)
    current_app.logger.info(
        "Reservation created id=%s table_id=%s starts_at=%s duration=%s",
        reservation.id, table_id, starts_at.isoformat(), duration_minutes,
    )
    return reservation


_UNSET = object()


def update_reservation(
    reservation_id: int,
    *,
    table_id: int | None = None,
    client_name: str | None = None,
    client_phone=_UNSET,
    client_email=_UNSET,
    starts_at: datetime | None = None,
    duration_minutes: int | None = None,
    party_size: int | None = None,
    notes=_UNSET,
    now: datetime | None = None,
) -> Reservation:
    """Edit a PENDING or CONFIRMED reservation; window changes are re-checked for conflicts."""
    def _op():
        reservation = load_reservation(reservation_id)
        if reservation.status not in EDITABLE_STATUSES:
            raise ConflictError(
                f"Reservation {reservation.id} is {reservation.status.value} and cannot be edited",
                {"status": reservation.status.value},
            )

        new_table_id = table_id if table_id is not None else reservation.table_id
        new_start = starts_at if starts_at is not None else reservation.starts_at
        new_duration = (
            require_positive(duration_minutes, "duration_minutes")
            if duration_minutes is not None else reservation.duration_minutes
        )
        start_changed = new_start != reservation.starts_at
        window_changed = (
            start_changed
            or new_table_id != reservation.table_id
            or new_duration != reservation.duration_minutes
        )
        if window_changed:
            table = load_table(new_table_id, for_update=True)
            # A reservation already under way may still change table or length
            if start_changed:
                _validate_start(new_start, now or utcnow())
            conflict = _find_conflict(
                table.id, new_start, new_start + timedelta(minutes=new_duration), exclude_id=reservation.id,
            )
            if conflict:
                raise ScheduleConflictError(table.id, conflict.id)
            _lock_table_schedule(table)
            reservation.table = table
            reservation.starts_at = new_start
            reservation.duration_minutes = new_duration

        if client_name is not None:
            name = client_name.strip()
            if not name:
                raise ValidationError("client_name is required", {"field": "client_name"})
            reservation.client_name = name
        if client_phone is not _UNSET:
            reservation.client_phone = client_phone
        if client_email is not _UNSET:
            reservation.client_email = client_email
        if party_size is not None:
            reservation.party_size = require_positive(party_size, "party_size")
        if notes is not _UNSET:
            reservation.notes = notes
        return reservation
    return run_in_transaction(_op)


# =============================================================================
# STATE MACHINE
# =============================================================================

def change_status(reservation_id: int, status: ReservationStatus | str) -> Reservation:
    """
    Move a reservation along its lifecycle.

    Seating a reservation occupies its table if the table is FREE.
    """
    target = coerce_enum(ReservationStatus, status, "status")

    def _op():
        reservation = load_reservation(reservation_id)
        current = reservation.status
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError("Reservation", current.value, target.value)
        reservation.status = target
        if target == ReservationStatus.SEATED:
            table = load_table(reservation.table_id, for_update=True)
            if table.state == TableState.FREE:
                table.occupy()
        return reservation

    reservation = run_in_transaction(_op)
    current_app.logger.info("Reservation %s -> %s", reservation_id, target.value)
    return reservation


def confirm(reservation_id: int) -> Reservation:
    return change_status(reservation_id, ReservationStatus.CONFIRMED)


def seat(reservation_id: int) -> Reservation:
    return change_status(reservation_id, ReservationStatus.SEATED)


def cancel(reservation_id: int) -> Reservation:
    return change_status(reservation_id, ReservationStatus.CANCELLED)


def mark_no_show(reservation_id: int) -> Reservation:
    return change_status(reservation_id, ReservationStatus.NO_SHOW)


def delete_reservation(reservation_id: int) -> None:
    def _op():
        db.session.delete(load_reservation(reservation_id))
    run_in_transaction(_op)


# =============================================================================
# QUERIES
# =============================================================================

def is_available(
    table_id: int,
    starts_at: datetime,
    duration_minutes: int,
    *,
    exclude_id: int | None = None,
) -> bool:
    """True when no active reservation on the table overlaps the window."""
    table = load_table(table_id)
    duration_minutes = require_positive(duration_minutes, "duration_minutes")
    ends_at = starts_at + timedelta(minutes=duration_minutes)
    return _find_conflict(table.id, starts_at, ends_at, exclude_id=exclude_id) is None


def get_reservation(reservation_id: int) -> Reservation:
    return load_reservation(reservation_id)


def list_active() -> list[Reservation]:
    return (
        db.session.query(Reservation)
        .filter(Reservation.status.in_(ACTIVE_RESERVATION_STATUSES))
        .order_by(Reservation.starts_at)
        .all()
    )


def list_in_range(start: datetime, end: datetime, *, table_id: int | None = None) -> list[Reservation]:
    """Reservations starting in [start, end)."""
    query = db.session.query(Reservation).filter(Reservation.starts_at >= start, Reservation.starts_at < end)
    if table_id is not None:
        query = query.filter(Reservation.table_id == table_id)
    return query.order_by(Reservation.starts_at).all()


def list_for_day(day: date | None = None) -> list[Reservation]:
    start, end = day_bounds(day or utcnow().date())
    return list_in_range(start, end)


def search_by_client(term: str) -> list[Reservation]:
    pattern = f"%{(term or '').strip()}%"
    return (
        db.session.query(Reservation)
        .filter(Reservation.client_name.ilike(pattern))
        .order_by(Reservation.starts_at.desc())
        .all()
    )
