# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import supplier_service
from .params import json_body, require_fields

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
def list_suppliers_route():
    term = request.args.get("q")
    if term:
        suppliers = supplier_service.search_suppliers(term)
    else:
        active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
        suppliers = supplier_service.list_suppliers(active_only=active_only)
    return jsonify({"suppliers": [s.to_dict() for s in suppliers]})


@suppliers_bp.post("")
def create_supplier_route():
    data = json_body()
    require_fields(data, "name")
    supplier = supplier_service.create_supplier(name=data["name"], phone=data.get("phone"), email=data.get("email"))
    return jsonify({"supplier": supplier.to_dict()}), 201


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier_route(supplier_id: int):
    return jsonify({"supplier": supplier_service.get_supplier(supplier_id).to_dict()})


@suppliers_bp.put("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    data = json_body()
    supplier = supplier_service.update_supplier(
        supplier_id, name=data.get("name"), phone=data.get("phone"), email=data.get("email"),
    )
    return jsonify({"supplier": supplier.to_dict()})


@suppliers_bp.post("/<int:supplier_id>/toggle")
def toggle_supplier_route(supplier_id: int):
    return jsonify({"supplier": supplier_service.toggle_active(supplier_id).to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier_route(supplier_id: int):
    supplier_service.delete_supplier(supplier_id)
    return "", 204
