from __future__ import annotations
from datetime import datetime
from cylinderhub.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Cylinder pressures are in MPa
MAX_PRESSURE = 100.0


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: closed value sets for enum-like string columns
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    choices: dict[str, Iterable[str]] | None = None


def _columns_by_key(model) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer", field=col.key)
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)", field=col.key)
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)", field=col.key)
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer", field=col.key)
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal", field=col.key)
        raise ValidationError(f"{col.key} must be an integer", field=col.key)

    # Floats (pressures, sizes)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number", field=col.key)
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be a number", field=col.key)
        raise ValidationError(f"{col.key} must be a number", field=col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false", field=col.key)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", field=col.key)
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", field=col.key)
            return dt
        raise ValidationError(f"{col.key} must be a datetime", field=col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields) and closed choices
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"fields": {f: "required" for f in missing}},
            )

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}
    choices = policy.choices or {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        if k in choices:
            allowed = set(choices[k])
            if isinstance(val, str):
                val = val.upper()
            if val not in allowed:
                raise ValidationError(
                    f"{k} must be one of: {', '.join(sorted(allowed))}",
                    field=k,
                )

        patch[k] = val

    return patch


def require_int(payload: dict, key: str, *, positive: bool = False) -> int:
    """Pull a strict integer out of a JSON body (route helper)."""
    value = payload.get(key)
    if value is None:
        raise ValidationError(f"{key} is required", field=key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer", field=key)
    if positive and value <= 0:
        raise ValidationError(f"{key} must be > 0", field=key)
    return value


def require_int_list(payload: dict, key: str) -> list[int]:
    values = payload.get(key)
    if not isinstance(values, list) or not values:
        raise ValidationError(f"{key} must be a non-empty list", field=key)
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValidationError(f"{key} must contain integer ids", field=key)
    return values


def optional_bool(payload: dict, key: str, default: bool = False) -> bool:
    """JSON booleans only; "false" or 0 must not read as a flag."""
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false", field=key)
    return value


def optional_number(payload: dict, key: str) -> float | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number", field=key)
    return float(value)


def enforce_rules_cylinder(patch: dict, *, existing=None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("size_litres", "working_pressure", "design_pressure"):
        if key in patch and patch[key] is not None:
            if patch[key] <= 0:
                raise ValidationError(f"{key} must be > 0", field=key)
            if key != "size_litres" and patch[key] > MAX_PRESSURE:
                raise ValidationError(f"{key} cannot exceed {MAX_PRESSURE}", field=key)

    working = patch.get("working_pressure", getattr(existing, "working_pressure", None))
    design = patch.get("design_pressure", getattr(existing, "design_pressure", None))
    if working is not None and design is not None and working > design:
        raise ValidationError(
            "working_pressure cannot exceed design_pressure",
            field="working_pressure",
        )


def enforce_rules_capacity(patch: dict) -> None:
    if "capacity" in patch and patch["capacity"] is not None and patch["capacity"] <= 0:
        raise ValidationError("capacity must be > 0", field="capacity")


def enforce_rules_customer(patch: dict) -> None:
    limit = patch.get("credit_limit_cents")
    if limit is not None:
        if limit < 0:
            raise ValidationError("credit_limit_cents must be >= 0", field="credit_limit_cents")
        if limit > MAX_PRICE_CENTS:
            raise ValidationError(
                f"credit_limit_cents cannot exceed {MAX_PRICE_CENTS}",
                field="credit_limit_cents",
            )


def enforce_price_cents(value: Any, key: str = "unit_price_cents") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer", field=key)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0", field=key)
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}", field=key)
    return value
