# Overview: Flask API routes for closed sales (read-only); sales are created by closing a table.

from flask import Blueprint, jsonify, request

from ..services import sale_service
from .params import arg_datetime

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    sales = sale_service.list_sales(
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        register_id=request.args.get("register_id", type=int),
    )
    return jsonify({"sales": [s.to_dict() for s in sales]})


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    return jsonify({"sale": sale_service.get_sale(sale_id).to_dict()})
