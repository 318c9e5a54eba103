# Overview: Flask API routes for cash registers and closures; parses input and returns JSON responses.

# backend/tablepos/routes/registers.py
"""
Register API Routes

DESIGN:
- open -> close lifecycle; a closed instance is never reopened
- credit / debit endpoints for manual cash movements
- closures are read-only snapshots
"""

from flask import Blueprint, jsonify, request

from ..errors import ValidationError
from ..models import PaymentMethod
from ..models.enums import coerce_enum
from ..services import register_service
from .params import json_body, require_fields

registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.get("")
def list_registers_route():
    """Open registers; ?number=N returns that number's history instead."""
    number = request.args.get("number", type=int)
    if number is not None:
        registers = register_service.register_history(number)
    else:
        registers = register_service.list_open_registers()
    return jsonify({
        "registers": [r.to_dict() for r in registers],
        "open_count": register_service.count_open_registers(),
    })


@registers_bp.post("/open")
def open_register_route():
    """
    Request body:
    {"register_number": 1, "shift": "MORNING", "opening_float_cents": 100000, "user": "ana"}
    """
    data = json_body()
    require_fields(data, "register_number", "shift")
    register = register_service.open_register(
        register_number=data["register_number"],
        shift=data["shift"],
        opening_float_cents=data.get("opening_float_cents", 0),
        user=data.get("user"),
    )
    return jsonify({"register": register.to_dict()}), 201


@registers_bp.get("/<int:register_id>")
def get_register_route(register_id: int):
    return jsonify({"register": register_service.get_register(register_id).to_dict()})


@registers_bp.post("/<int:register_id>/close")
def close_register_route(register_id: int):
    data = json_body()
    closure = register_service.close_register(register_id, user=data.get("user"))
    return jsonify({"closure": closure.to_dict()}), 201


def _movement(register_id: int, direction: str):
    data = json_body()
    require_fields(data, "method", "amount_cents")
    method = coerce_enum(PaymentMethod, data["method"], "method")
    operations = {
        ("credit", PaymentMethod.CASH): register_service.credit_cash,
        ("credit", PaymentMethod.TRANSFER): register_service.credit_transfer,
        ("debit", PaymentMethod.CASH): register_service.debit_cash,
        ("debit", PaymentMethod.TRANSFER): register_service.debit_transfer,
    }
    register = operations[(direction, method)](register_id, data["amount_cents"])
    return jsonify({"register": register.to_dict()})


@registers_bp.post("/<int:register_id>/credit")
def credit_route(register_id: int):
    """Request body: {"method": "CASH", "amount_cents": 5000}"""
    return _movement(register_id, "credit")


@registers_bp.post("/<int:register_id>/debit")
def debit_route(register_id: int):
    """Request body: {"method": "TRANSFER", "amount_cents": 5000}"""
    return _movement(register_id, "debit")


@registers_bp.put("/<int:register_id>/receivable")
def receivable_route(register_id: int):
    data = json_body()
    if "amount_cents" not in data:
        raise ValidationError("amount_cents required", {"missing": ["amount_cents"]})
    register = register_service.set_receivable(register_id, data["amount_cents"])
    return jsonify({"register": register.to_dict()})


@registers_bp.get("/closures")
def list_closures_route():
    closures = register_service.list_closures(request.args.get("number", type=int))
    return jsonify({"closures": [c.to_dict() for c in closures]})


@registers_bp.get("/closures/<int:closure_id>")
def get_closure_route(closure_id: int):
    return jsonify({"closure": register_service.get_closure(closure_id).to_dict()})
