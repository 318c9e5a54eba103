# Overview: Typed business-rule errors shared by every service; routes render them as JSON.

"""
Error taxonomy for the order-to-cash engine.

Every service validates its preconditions and raises exactly one of these
before any state is committed. Each error carries a human-readable message,
a ``details`` dict for machine consumption, and the HTTP status the API layer
maps it to. None of them are transient, so nothing here is ever retried.
"""

from __future__ import annotations

# Maximum money amount accepted anywhere: 999,999,999 minor units
MAX_AMOUNT_CENTS = 999_999_999


class PosError(Exception):
    """Base for all business-rule violations."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(PosError):
    """400-level input problem."""


class ConflictError(PosError):
    """409-level business rule conflict."""
    status_code = 409


class NotFoundError(PosError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})


class InvalidQuantityError(ValidationError):
    def __init__(self, field: str, value):
        super().__init__(f"{field} must be greater than zero", {"field": field, "value": value})


class InsufficientStockError(ConflictError):
    def __init__(self, available: int, requested: int, product_name: str | None = None):
        label = f" for {product_name}" if product_name else ""
        super().__init__(
            f"Insufficient stock{label}. Available: {available}, requested: {requested}",
            {"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class InsufficientFundsError(ConflictError):
    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient cash in register. Available: {available}, requested: {requested}",
            {"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class InsufficientPaymentError(ValidationError):
    def __init__(self, total: int, paid: int):
        super().__init__(
            f"Payment {paid} does not cover total {total}",
            {"total": total, "paid": paid},
        )
        self.total = total
        self.paid = paid


class RegisterClosedError(ConflictError):
    def __init__(self, register_id: int):
        super().__init__(f"Register {register_id} is closed", {"register_id": register_id})


class RegisterAlreadyOpenError(ConflictError):
    def __init__(self, register_number: int):
        super().__init__(
            f"Register number {register_number} already has an open instance",
            {"register_number": register_number},
        )


class NoOpenRegisterError(ConflictError):
    def __init__(self):
        super().__init__("No open register available")


class TableOccupiedError(ConflictError):
    def __init__(self, table_id: int):
        super().__init__(f"Table {table_id} is occupied", {"table_id": table_id})


class EmptyOrderError(ValidationError):
    def __init__(self, table_id: int):
        super().__init__(f"Table {table_id} has no order lines", {"table_id": table_id})


class ReservationInPastError(ValidationError):
    def __init__(self, start):
        super().__init__("Reservation start must be in the future", {"start": str(start)})


class ScheduleConflictError(ConflictError):
    def __init__(self, table_id: int, conflicting_id: int):
        super().__init__(
            f"Table {table_id} is already booked for that time",
            {"table_id": table_id, "conflicting_reservation_id": conflicting_id},
        )


class DuplicateNameError(ConflictError):
    def __init__(self, entity: str, field: str, value):
        super().__init__(
            f"{entity} with {field} '{value}' already exists",
            {"entity": entity, "field": field, "value": value},
        )


class SupplierInactiveError(ValidationError):
    def __init__(self, supplier_id: int):
        super().__init__(f"Supplier {supplier_id} is inactive", {"supplier_id": supplier_id})


class InvalidTransitionError(ConflictError):
    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} cannot move from {current} to {target}",
            {"from": current, "to": target},
        )


def require_int(value, field: str) -> int:
    """Coerce to int; booleans and fractional numbers are rejected, never truncated."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", {"field": field, "value": value})
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field} must be a whole number", {"field": field, "value": value})
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer", {"field": field, "value": value})


def require_positive(value, field: str) -> int:
    """Coerce to int and reject zero / negative values."""
    number = require_int(value, field)
    if number <= 0:
        raise InvalidQuantityError(field, number)
    return number


def require_amount(value, field: str, *, allow_zero: bool = False) -> int:
    """Money amounts are integer minor units, bounded by MAX_AMOUNT_CENTS."""
    number = require_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} cannot be negative", {"field": field, "value": number})
    if number == 0 and not allow_zero:
        raise InvalidQuantityError(field, number)
    if number > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_AMOUNT_CENTS}", {"field": field})
    return number
