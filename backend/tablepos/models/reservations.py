from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import ReservationStatus, enum_column


class Reservation(db.Model):
    """
    Booked occupancy window [starts_at, starts_at + duration) for a table.

    LIFECYCLE: PENDING -> CONFIRMED -> SEATED, with CANCELLED and NO_SHOW as
    terminal exits (see reservation_service.ALLOWED_TRANSITIONS).
    Only active reservations (PENDING, CONFIRMED, SEATED) block the table.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        db.Index("ix_reservations_table_starts", "table_id", "starts_at"),
        db.CheckConstraint("party_size >= 1", name="ck_reservations_party_size_positive"),
        db.CheckConstraint("duration_minutes >= 1", name="ck_reservations_duration_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id"), nullable=False, index=True)

    client_name = db.Column(db.String(100), nullable=False)
    client_phone = db.Column(db.String(20), nullable=True)
    client_email = db.Column(db.String(100), nullable=True)

    starts_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=120)
    party_size = db.Column(db.Integer, nullable=False)

    status = enum_column(ReservationStatus, nullable=False, default=ReservationStatus.PENDING, index=True)
    notes = db.Column(db.String(500), nullable=True)
    created_by = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    table = db.relationship("DiningTable", backref=db.backref("reservations", lazy="dynamic"))

    @property
    def ends_at(self):
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def __repr__(self) -> str:
        return f"<Reservation id={self.id} table_id={self.table_id} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_id": self.table_id,
            "table_number": self.table.number if self.table else None,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "client_email": self.client_email,
            "starts_at": to_utc_z(self.starts_at),
            "ends_at": to_utc_z(self.ends_at),
            "duration_minutes": self.duration_minutes,
            "party_size": self.party_size,
            "status": self.status.value,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
