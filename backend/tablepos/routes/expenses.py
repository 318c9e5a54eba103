# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import expense_service
from .params import arg_datetime, json_body, require_fields

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


def _filters() -> dict:
    return {
        "period": request.args.get("period"),
        "payment_method": request.args.get("payment_method"),
        "start": arg_datetime("start"),
        "end": arg_datetime("end"),
    }


@expenses_bp.get("")
def list_expenses_route():
    expenses = expense_service.list_expenses(**_filters())
    return jsonify({"expenses": [e.to_dict() for e in expenses]})


@expenses_bp.get("/total")
def total_expenses_route():
    return jsonify({"total_cents": expense_service.total_expenses(**_filters())})


@expenses_bp.post("")
def record_expense_route():
    """
    Request body:
    {"concept": "Ice delivery", "amount_cents": 2500, "payment_method": "CASH",
     "category": "Supplies", "period": "2024-05", "register_id": 1, "user": "ana"}
    """
    data = json_body()
    require_fields(data, "concept", "amount_cents", "payment_method")
    expense = expense_service.record_expense(
        concept=data["concept"],
        amount_cents=data["amount_cents"],
        payment_method=data["payment_method"],
        category=data.get("category"),
        period=data.get("period"),
        user=data.get("user"),
        register_id=data.get("register_id"),
    )
    return jsonify({"expense": expense.to_dict()}), 201


@expenses_bp.get("/<int:expense_id>")
def get_expense_route(expense_id: int):
    return jsonify({"expense": expense_service.get_expense(expense_id).to_dict()})


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    expense_service.delete_expense(expense_id)
    return "", 204
