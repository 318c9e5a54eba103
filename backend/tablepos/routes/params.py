# Overview: Request parsing shared by the API blueprints.

from __future__ import annotations

from flask import request

from ..errors import ValidationError
from ..time_utils import parse_iso_date, parse_iso_datetime


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", {"missing": missing})


def arg_datetime(name: str):
    return parse_iso_datetime(request.args.get(name))


def arg_date(name: str):
    return parse_iso_date(request.args.get(name))


def _body_string(data: dict, name: str) -> str | None:
    value = data.get(name)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be an ISO-8601 string", {"field": name, "value": value})
    return value


def body_datetime(data: dict, name: str):
    value = _body_string(data, name)
    return parse_iso_datetime(value) if value else None


def body_date(data: dict, name: str):
    value = _body_string(data, name)
    return parse_iso_date(value) if value else None
