# Overview: JSON snapshot of a table's order lines, stored on the Sale it produced.

from __future__ import annotations

import json

SNAPSHOT_FIELDS = ("product_id", "product_name", "product_category", "quantity", "unit_price_cents", "subtotal_cents")


def dump_order_lines(lines) -> str:
    """Serialize OrderLine rows; only copied values, never references to live rows."""
    payload = [
        {
            "product_id": line.product_id,
            "product_name": line.product_name,
            "product_category": line.product_category,
            "quantity": line.quantity,
            "unit_price_cents": line.unit_price_cents,
            "subtotal_cents": line.subtotal_cents,
        }
        for line in lines
    ]
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def load_order_lines(payload: str | None) -> list[dict]:
    if not payload:
        return []
    data = json.loads(payload)
    return [{field: item.get(field) for field in SNAPSHOT_FIELDS} for item in data]
