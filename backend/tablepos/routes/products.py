# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import product_service
from .params import json_body, require_fields

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """?category=Drinks or ?q=cola"""
    term = request.args.get("q")
    if term:
        products = product_service.search_products(term)
    else:
        products = product_service.list_products(request.args.get("category"))
    return jsonify({"products": [p.to_dict() for p in products]})


@products_bp.post("")
def create_product_route():
    """
    Request body:
    {"name": "Cola 500ml", "category": "Drinks", "price_cents": 3000, "stock": 50, "min_stock": 10}
    """
    data = json_body()
    require_fields(data, "name", "category", "price_cents")
    product = product_service.create_product(
        name=data["name"],
        category=data["category"],
        price_cents=data["price_cents"],
        stock=data.get("stock", 0),
        min_stock=data.get("min_stock"),
        user=data.get("user"),
    )
    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/categories")
def categories_route():
    return jsonify({"categories": product_service.list_categories()})


@products_bp.get("/low-stock")
def low_stock_route():
    if request.args.get("critical", "").lower() in ("1", "true", "yes"):
        products = product_service.critical_stock_products()
    else:
        products = product_service.low_stock_products()
    return jsonify({"products": [p.to_dict() for p in products]})


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    return jsonify({"product": product_service.get_product(product_id).to_dict()})


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    data = json_body()
    product = product_service.update_product(
        product_id,
        name=data.get("name"),
        category=data.get("category"),
        price_cents=data.get("price_cents"),
        min_stock=data.get("min_stock"),
    )
    return jsonify({"product": product.to_dict()})


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    product_service.delete_product(product_id)
    return "", 204
