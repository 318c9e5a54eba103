# Overview: Flask API routes for tables, their order lines and table closure.

# backend/tablepos/routes/tables.py
"""
Table and Order API Routes

DESIGN:
- Table CRUD (state and total are read-only here)
- Order lines: add / change quantity / remove, each moving stock
- release (after payment, no stock return) vs cancel (stock returned)
- close: pays the table and records a Sale
"""

from flask import Blueprint, jsonify, request

from ..models import TableState
from ..models.enums import coerce_enum
from ..services import sale_service, table_service
from .params import json_body, require_fields

tables_bp = Blueprint("tables", __name__, url_prefix="/api/tables")


@tables_bp.get("")
def list_tables_route():
    """?state=FREE|OCCUPIED"""
    state = request.args.get("state")
    tables = table_service.list_tables(coerce_enum(TableState, state, "state") if state else None)
    return jsonify({"tables": [t.to_dict(include_lines=False) for t in tables]})


@tables_bp.post("")
def create_table_route():
    """Request body: {"number": 1, "name": "Terrace 1"}"""
    data = json_body()
    require_fields(data, "number", "name")
    table = table_service.create_table(number=data["number"], name=data["name"])
    return jsonify({"table": table.to_dict()}), 201


@tables_bp.get("/<int:table_id>")
def get_table_route(table_id: int):
    return jsonify({"table": table_service.get_table(table_id).to_dict()})


@tables_bp.put("/<int:table_id>")
def update_table_route(table_id: int):
    data = json_body()
    table = table_service.update_table(table_id, number=data.get("number"), name=data.get("name"))
    return jsonify({"table": table.to_dict()})


@tables_bp.delete("/<int:table_id>")
def delete_table_route(table_id: int):
    table_service.delete_table(table_id)
    return "", 204


@tables_bp.post("/<int:table_id>/occupy")
def occupy_table_route(table_id: int):
    return jsonify({"table": table_service.occupy_table(table_id).to_dict()})


# =============================================================================
# ORDER LINES
# =============================================================================

@tables_bp.post("/<int:table_id>/lines")
def add_line_route(table_id: int):
    """Request body: {"product_id": 1, "quantity": 3, "user": "ana"}"""
    data = json_body()
    require_fields(data, "product_id", "quantity")
    table_service.add_line(table_id, int(data["product_id"]), data["quantity"], user=data.get("user"))
    return jsonify({"table": table_service.get_table(table_id).to_dict()}), 201


@tables_bp.patch("/<int:table_id>/lines/<int:line_id>")
def update_line_route(table_id: int, line_id: int):
    """Request body: {"quantity": 5}"""
    data = json_body()
    require_fields(data, "quantity")
    table_service.update_line_quantity(table_id, line_id, data["quantity"], user=data.get("user"))
    return jsonify({"table": table_service.get_table(table_id).to_dict()})


@tables_bp.delete("/<int:table_id>/lines/<int:line_id>")
def remove_line_route(table_id: int, line_id: int):
    table = table_service.remove_line(table_id, line_id, user=request.args.get("user"))
    return jsonify({"table": table.to_dict()})


@tables_bp.post("/<int:table_id>/release")
def release_table_route(table_id: int):
    return jsonify({"table": table_service.release_table(table_id).to_dict()})


@tables_bp.post("/<int:table_id>/cancel")
def cancel_order_route(table_id: int):
    data = json_body()
    return jsonify({"table": table_service.cancel_order(table_id, user=data.get("user")).to_dict()})


@tables_bp.post("/<int:table_id>/close")
def close_table_route(table_id: int):
    """
    Pay and close the table.

    Request body:
    {"cash_paid_cents": 10000, "transfer_paid_cents": 0, "register_id": 1, "user": "ana"}
    register_id is optional: the first open register is used when omitted.
    """
    data = json_body()
    sale = sale_service.close_table(
        table_id,
        cash_paid_cents=data.get("cash_paid_cents", 0),
        transfer_paid_cents=data.get("transfer_paid_cents", 0),
        register_id=data.get("register_id"),
        user=data.get("user"),
    )
    return jsonify({"sale": sale.to_dict()}), 201
