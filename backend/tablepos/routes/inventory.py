# Overview: Flask API routes for stock movements and manual stock changes.

from flask import Blueprint, jsonify, request

from ..models import MovementKind
from ..models.enums import coerce_enum
from ..services import stock_service
from .params import arg_datetime, json_body, require_fields

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
def list_movements_route():
    """?product_id=1&kind=IN&start=...&end=...&limit=50"""
    kind = request.args.get("kind")
    movements = stock_service.list_movements(
        product_id=request.args.get("product_id", type=int),
        kind=coerce_enum(MovementKind, kind, "kind") if kind else None,
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"movements": [m.to_dict() for m in movements]})


@inventory_bp.get("/entry-cost")
def entry_cost_route():
    return jsonify({"total_cents": stock_service.total_entry_cost(arg_datetime("start"), arg_datetime("end"))})


@inventory_bp.post("/entries")
def register_entry_route():
    """Request body: {"product_id": 1, "quantity": 10, "unit_cost_cents": 400, "reason": "..."}"""
    data = json_body()
    require_fields(data, "product_id", "quantity")
    movement = stock_service.register_entry(
        int(data["product_id"]),
        data["quantity"],
        unit_cost_cents=data.get("unit_cost_cents"),
        reason=data.get("reason"),
        document_number=data.get("document_number"),
        user=data.get("user"),
    )
    return jsonify({"movement": movement.to_dict()}), 201


@inventory_bp.post("/exits")
def register_exit_route():
    """Request body: {"product_id": 1, "quantity": 2, "reason": "Broken bottles"}"""
    data = json_body()
    require_fields(data, "product_id", "quantity")
    movement = stock_service.register_exit(
        int(data["product_id"]), data["quantity"], reason=data.get("reason"), user=data.get("user"),
    )
    return jsonify({"movement": movement.to_dict()}), 201


@inventory_bp.post("/adjustments")
def adjust_route():
    """Request body: {"product_id": 1, "new_stock": 42, "reason": "Monthly count"}"""
    data = json_body()
    require_fields(data, "product_id", "new_stock")
    movement = stock_service.adjust(
        int(data["product_id"]), data["new_stock"], reason=data.get("reason"), user=data.get("user"),
    )
    return jsonify({"movement": movement.to_dict()}), 201
