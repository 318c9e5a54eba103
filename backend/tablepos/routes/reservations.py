# Overview: Flask API routes for table reservations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..errors import ValidationError
from ..services import reservation_service
from ..time_utils import parse_iso_date
from .params import arg_datetime, body_datetime, json_body, require_fields

reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")

_OPTIONAL_FIELDS = ("client_phone", "client_email", "notes")


@reservations_bp.get("")
def list_reservations_route():
    """?active=1, ?day=YYYY-MM-DD, ?start=..&end=.., or ?client=name"""
    args = request.args
    if args.get("client"):
        reservations = reservation_service.search_by_client(args["client"])
    elif args.get("start") and args.get("end"):
        reservations = reservation_service.list_in_range(
            arg_datetime("start"), arg_datetime("end"), table_id=args.get("table_id", type=int),
        )
    elif args.get("day"):
        reservations = reservation_service.list_for_day(parse_iso_date(args["day"]))
    elif args.get("active", "").lower() in ("1", "true", "yes"):
        reservations = reservation_service.list_active()
    else:
        reservations = reservation_service.list_for_day()
    return jsonify({"reservations": [r.to_dict() for r in reservations]})


@reservations_bp.get("/availability")
def availability_route():
    """?table_id=2&starts_at=2024-05-01T20:00:00Z&duration_minutes=60"""
    table_id = request.args.get("table_id", type=int)
    starts_at = arg_datetime("starts_at")
    duration = request.args.get("duration_minutes", type=int) or 120
    if table_id is None or starts_at is None:
        raise ValidationError("table_id and starts_at required", {"missing": ["table_id", "starts_at"]})
    available = reservation_service.is_available(table_id, starts_at, duration)
    return jsonify({"table_id": table_id, "available": available})


@reservations_bp.post("")
def create_reservation_route():
    """
    Request body:
    {"table_id": 2, "client_name": "Lopez", "starts_at": "2024-05-01T19:00:00Z",
     "duration_minutes": 120, "party_size": 4, "client_phone": "...", "notes": "..."}
    """
    data = json_body()
    require_fields(data, "table_id", "client_name", "starts_at", "party_size")
    reservation = reservation_service.create_reservation(
        table_id=int(data["table_id"]),
        client_name=data["client_name"],
        starts_at=body_datetime(data, "starts_at"),
        party_size=data["party_size"],
        duration_minutes=data.get("duration_minutes"),
        client_phone=data.get("client_phone"),
        client_email=data.get("client_email"),
        notes=data.get("notes"),
        created_by=data.get("user"),
    )
    return jsonify({"reservation": reservation.to_dict()}), 201


@reservations_bp.get("/<int:reservation_id>")
def get_reservation_route(reservation_id: int):
    return jsonify({"reservation": reservation_service.get_reservation(reservation_id).to_dict()})


@reservations_bp.put("/<int:reservation_id>")
def update_reservation_route(reservation_id: int):
    data = json_body()
    optional = {field: data[field] for field in _OPTIONAL_FIELDS if field in data}
    reservation = reservation_service.update_reservation(
        reservation_id,
        table_id=data.get("table_id"),
        client_name=data.get("client_name"),
        starts_at=body_datetime(data, "starts_at"),
        duration_minutes=data.get("duration_minutes"),
        party_size=data.get("party_size"),
        **optional,
    )
    return jsonify({"reservation": reservation.to_dict()})


@reservations_bp.post("/<int:reservation_id>/status")
def change_status_route(reservation_id: int):
    """Request body: {"status": "CONFIRMED" | "SEATED" | "CANCELLED" | "NO_SHOW"}"""
    data = json_body()
    require_fields(data, "status")
    reservation = reservation_service.change_status(reservation_id, data["status"])
    return jsonify({"reservation": reservation.to_dict()})


@reservations_bp.delete("/<int:reservation_id>")
def delete_reservation_route(reservation_id: int):
    reservation_service.delete_reservation(reservation_id)
    return "", 204
