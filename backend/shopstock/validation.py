from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money import MAX_MONEY, MONEY_PLACES, ZERO

# Largest quantity accepted on a single line
MAX_LINE_QUANTITY = 1_000_000


@dataclass(frozen=True)
class Issue:
    """One field-level problem; path locates it in the submitted payload."""
    message: str
    path: tuple = ()

    def to_dict(self) -> dict:
        return {"message": self.message, "path": list(self.path)}


class ValidationError(ValueError):
    """400-level input problem, carrying every field-level issue found."""

    def __init__(self, message: str = "Invalid data", issues: Sequence[Issue] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])

    def to_dict(self) -> dict:
        data = {"error": str(self)}
        if self.issues:
            data["issues"] = [i.to_dict() for i in self.issues]
        return data


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU, referenced row)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


# =============================================================================
# SCALAR PARSERS
# =============================================================================


def parse_int(value: Any, name: str) -> int:
    """
    Strict integer parsing.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation so "2.5" never silently becomes 2.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"{name} must be an integer")
        if "e" in stripped.lower():
            raise ValueError(f"{name} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValueError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValueError(f"{name} must be an integer, not a decimal")
    raise ValueError(f"{name} must be an integer")


def parse_decimal(value: Any, name: str, *, places: int = MONEY_PLACES) -> Decimal:
    """
    Parse a monetary amount into Decimal.

    JSON numbers arrive as floats; they go through str() so 19.99 stays 19.99.
    At most `places` decimal places; NaN/Infinity rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError(f"{name} must be a number")
    try:
        dec = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"{name} must be a number")
    if not dec.is_finite():
        raise ValueError(f"{name} must be a finite number")
    if -dec.normalize().as_tuple().exponent > places:
        raise ValueError(f"{name} must have at most {places} decimal places")
    if abs(dec) > MAX_MONEY:
        raise ValueError(f"{name} cannot exceed {MAX_MONEY}")
    return dec


def parse_optional_id(value: Any, name: str) -> int | None:
    if value is None or value == "":
        return None
    parsed = parse_int(value, name)
    if parsed <= 0:
        raise ValueError(f"{name} must be a positive integer")
    return parsed


# =============================================================================
# TRANSACTION LINES
# =============================================================================


@dataclass(frozen=True)
class LineItem:
    """A validated cart line; the only shape the poster hands to the valuation engine."""
    product_id: int
    quantity: int
    price: Decimal
    discount: Decimal = ZERO


def parse_line_items(raw_items: Any) -> list[LineItem]:
    """
    Validate a loosely-typed item list into LineItems.

    Collects every problem rather than stopping at the first, so the caller
    can show all field errors at once. Issue paths look like
    ("items", 0, "quantity").
    """
    if not isinstance(raw_items, (list, tuple)):
        raise ValidationError(issues=[Issue("items must be a list", ("items",))])
    if not raw_items:
        raise ValidationError(issues=[Issue("At least one item is required", ("items",))])

    issues: list[Issue] = []
    parsed: list[LineItem] = []

    for index, raw in enumerate(raw_items):
        if isinstance(raw, LineItem):
            raw = {
                "product_id": raw.product_id,
                "quantity": raw.quantity,
                "price": raw.price,
                "discount": raw.discount,
            }
        if not isinstance(raw, dict):
            issues.append(Issue("Item must be an object", ("items", index)))
            continue

        line_issues: list[Issue] = []
        values: dict[str, Any] = {}

        try:
            product_id = parse_int(raw.get("product_id"), "product_id")
            if product_id <= 0:
                raise ValueError("product_id must be a positive integer")
            values["product_id"] = product_id
        except ValueError as e:
            line_issues.append(Issue(str(e), ("items", index, "product_id")))

        try:
            quantity = parse_int(raw.get("quantity"), "quantity")
            if quantity <= 0:
                raise ValueError("quantity must be greater than 0")
            if quantity > MAX_LINE_QUANTITY:
                raise ValueError(f"quantity cannot exceed {MAX_LINE_QUANTITY}")
            values["quantity"] = quantity
        except ValueError as e:
            line_issues.append(Issue(str(e), ("items", index, "quantity")))

        try:
            price = parse_decimal(raw.get("price"), "price")
            if price < 0:
                raise ValueError("price must be >= 0")
            values["price"] = price
        except ValueError as e:
            line_issues.append(Issue(str(e), ("items", index, "price")))

        try:
            raw_discount = raw.get("discount")
            discount = ZERO if raw_discount is None else parse_decimal(raw_discount, "discount")
            if discount < 0:
                raise ValueError("discount must be >= 0")
            values["discount"] = discount
        except ValueError as e:
            line_issues.append(Issue(str(e), ("items", index, "discount")))

        if not line_issues:
            # Keeps the purchase batch cost (and so cost_price) non-negative
            if values["discount"] > values["quantity"] * values["price"]:
                line_issues.append(
                    Issue("discount cannot exceed the line amount", ("items", index, "discount"))
                )

        if line_issues:
            issues.extend(line_issues)
            continue

        parsed.append(LineItem(**values))

    if issues:
        raise ValidationError(issues=issues)
    return parsed


# =============================================================================
# MODEL PAYLOADS (catalog, customers, suppliers)
# =============================================================================


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - non_negative: numeric fields that must be >= 0
    """
    writable_fields: frozenset
    required_on_create: frozenset = field(default_factory=frozenset)
    non_negative: frozenset = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValueError(f"{col.key} must be a boolean")

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Numeric):
        return parse_decimal(value, col.key, places=coltype.scale or MONEY_PLACES)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Blank strings on nullable text columns become None, matching how the
    forms submit "no value".
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    issues: list[Issue] = []

    if not partial:
        for name in sorted(policy.required_on_create):
            if name not in payload:
                issues.append(Issue(f"{name} is required", (name,)))

    cols = _columns_by_key(model)
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in cols:
            issues.append(Issue(f"Field not allowed: {key}", (key,)))
            continue

        col = cols[key]

        if raw is None or (isinstance(raw, str) and raw.strip() == "" and col.nullable):
            if not col.nullable:
                issues.append(Issue(f"{key} cannot be null", (key,)))
                continue
            patch[key] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValueError as e:
            issues.append(Issue(str(e), (key,)))
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            issues.append(Issue(f"{key} cannot be blank", (key,)))
            continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                issues.append(Issue(f"{key} exceeds max length {col.type.length}", (key,)))
                continue

        if key in policy.non_negative and val < 0:
            issues.append(Issue(f"{key} must be >= 0", (key,)))
            continue

        patch[key] = val

    if issues:
        raise ValidationError(issues=issues)
    return patch


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def enforce_email(patch: dict, field_name: str = "email") -> None:
    value = patch.get(field_name)
    if value is not None and not _EMAIL_RE.match(value):
        raise ValidationError(issues=[Issue("Invalid email", (field_name,))])
