# Overview: Small request-parsing helpers shared by the API blueprints.

from flask import jsonify, request

from ..errors import CylinderHubError, ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def page_args() -> tuple[int, int]:
    """Read page/per_page query args (defaults 1 and 50)."""
    try:
        page = int(request.args.get("page", 1))
        per_page = int(request.args.get("per_page", 50))
    except ValueError:
        raise ValidationError("page and per_page must be integers")
    return page, per_page


def int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def bool_arg(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def paged(key: str, items: list, total: int, page: int, per_page: int):
    return jsonify({
        key: [i.to_dict() for i in items],
        "total": total,
        "page": page,
        "per_page": per_page,
    })


def error_response(e: CylinderHubError):
    return jsonify(e.to_dict()), e.status_code
