"""
Closed state vocabularies.

Every state column is persisted through ``enum_column`` so the database only
ever holds one of these member names. Members subclass ``str`` so they can be
compared with and serialized as plain strings.
"""

from __future__ import annotations

import enum

from ..errors import ValidationError
from ..extensions import db


class TableState(str, enum.Enum):
    FREE = "FREE"
    OCCUPIED = "OCCUPIED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    TRANSFER = "TRANSFER"


class PurchasePaymentMethod(str, enum.Enum):
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CREDIT = "CREDIT"


class Shift(str, enum.Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    NIGHT = "NIGHT"


class MovementKind(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST_POSITIVE = "ADJUST_POSITIVE"
    ADJUST_NEGATIVE = "ADJUST_NEGATIVE"
    RETURN = "RETURN"

    @property
    def sign(self) -> int:
        """+1 when the movement adds stock, -1 when it removes it."""
        if self in (MovementKind.IN, MovementKind.ADJUST_POSITIVE, MovementKind.RETURN):
            return 1
        return -1


class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_RESERVATION_STATUSES


ACTIVE_RESERVATION_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.SEATED,
)


class DiscountKind(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    CASHIER = "CASHIER"
    WAITER = "WAITER"


def enum_column(enum_cls: type[enum.Enum], **kwargs):
    """String-backed enum column with a CHECK-free, portable representation."""
    return db.Column(
        db.Enum(enum_cls, name=enum_cls.__name__.lower(), native_enum=False, length=32, validate_strings=True),
        **kwargs,
    )


def coerce_enum(enum_cls: type[enum.Enum], value, field: str):
    """Accept a member or its name (case-insensitive); raise ValidationError otherwise."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            pass
    allowed = ", ".join(member.name for member in enum_cls)
    raise ValidationError(f"{field} must be one of: {allowed}", {"field": field, "value": value})
