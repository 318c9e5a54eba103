# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..errors import ValidationError
from ..services import purchase_service
from ..services.purchase_service import PurchaseLineInput
from .params import arg_date, body_date, json_body, require_fields

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
def list_purchases_route():
    term = request.args.get("document")
    if term:
        purchases = purchase_service.search_by_document(term)
    else:
        purchases = purchase_service.list_purchases(
            supplier_id=request.args.get("supplier_id", type=int),
            payment_method=request.args.get("payment_method"),
            start_date=arg_date("start_date"),
            end_date=arg_date("end_date"),
            limit=request.args.get("limit", type=int),
        )
    return jsonify({"purchases": [p.to_dict() for p in purchases]})


@purchases_bp.get("/total")
def total_purchased_route():
    total = purchase_service.total_purchased(arg_date("start_date"), arg_date("end_date"))
    return jsonify({"total_cents": total})


@purchases_bp.post("")
def register_purchase_route():
    """
    Request body:
    {
        "supplier_id": 1,
        "document_number": "F-0001",
        "delivery_date": "2024-05-01",
        "payment_method": "CREDIT",
        "lines": [{"product_id": 1, "quantity": 20, "unit_cost_cents": 500}],
        "notes": "optional",
        "user": "ana"
    }
    """
    data = json_body()
    require_fields(data, "supplier_id", "document_number", "delivery_date", "payment_method")
    raw_lines = data.get("lines") or []
    if not isinstance(raw_lines, list):
        raise ValidationError("lines must be a list", {"field": "lines"})
    purchase = purchase_service.register_purchase(
        supplier_id=int(data["supplier_id"]),
        document_number=data["document_number"],
        delivery_date=body_date(data, "delivery_date"),
        payment_method=data["payment_method"],
        lines=[PurchaseLineInput.from_dict(line) for line in raw_lines],
        notes=data.get("notes"),
        user=data.get("user"),
    )
    return jsonify({"purchase": purchase.to_dict()}), 201


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    return jsonify({"purchase": purchase_service.get_purchase(purchase_id).to_dict()})
