# Overview: Flask API routes for discounts; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..errors import ValidationError
from ..services import discount_service
from .params import body_datetime, json_body, require_fields

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("")
def list_discounts_route():
    if request.args.get("valid", "").lower() in ("1", "true", "yes"):
        discounts = discount_service.list_valid()
    else:
        discounts = discount_service.list_discounts()
    return jsonify({"discounts": [d.to_dict() for d in discounts]})


@discounts_bp.get("/best")
def best_discount_route():
    """?total_cents=50000 -> the discount with the largest reduction, if any."""
    total = request.args.get("total_cents", type=int)
    if total is None or total < 0:
        raise ValidationError("total_cents required", {"field": "total_cents"})
    discount = discount_service.best_discount_for(total)
    if not discount:
        return jsonify({"discount": None, "discount_cents": 0, "total_cents": total})
    return jsonify({
        "discount": discount.to_dict(),
        "discount_cents": discount.amount_for(total),
        "total_cents": discount.apply(total),
    })


@discounts_bp.post("")
def create_discount_route():
    """{"name": "Happy hour", "kind": "PERCENTAGE", "value": 10, "min_purchase_cents": 20000}"""
    data = json_body()
    require_fields(data, "name", "kind", "value")
    discount = discount_service.create_discount(
        name=data["name"],
        kind=data["kind"],
        value=data["value"],
        min_purchase_cents=data.get("min_purchase_cents", 0),
        description=data.get("description"),
        starts_at=body_datetime(data, "starts_at"),
        ends_at=body_datetime(data, "ends_at"),
        is_active=bool(data.get("is_active", True)),
    )
    return jsonify({"discount": discount.to_dict()}), 201


@discounts_bp.put("/<int:discount_id>")
def update_discount_route(discount_id: int):
    data = json_body()
    changes = {k: v for k, v in data.items() if k not in ("starts_at", "ends_at")}
    for field in ("starts_at", "ends_at"):
        if field in data:
            changes[field] = body_datetime(data, field)
    discount = discount_service.update_discount(discount_id, **changes)
    return jsonify({"discount": discount.to_dict()})


@discounts_bp.post("/<int:discount_id>/toggle")
def toggle_discount_route(discount_id: int):
    return jsonify({"discount": discount_service.toggle_active(discount_id).to_dict()})


@discounts_bp.delete("/<int:discount_id>")
def delete_discount_route(discount_id: int):
    discount_service.delete_discount(discount_id)
    return "", 204
