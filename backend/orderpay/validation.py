from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from .statuses import OrderStatus, PaymentStatus
from .time_utils import parse_iso_date

MIN_UNIT_PRICE = Decimal("0.01")
MAX_UNIT_PRICE = Decimal("999999.99")
MAX_QUANTITY = 9999
MAX_NOTES_LENGTH = 1000
MAX_PRODUCT_NAME_LENGTH = 255

ORDER_SORT_FIELDS = ("created_at", "updated_at", "order_number", "status", "total_amount")
PAYMENT_SORT_FIELDS = ("created_at", "updated_at", "payment_number", "status", "amount", "gateway")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """422-level input problem, with messages collected per field."""

    def __init__(self, errors: dict[str, list[str]], message: str = "The given data was invalid."):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "errors": self.errors}


class _Collector:
    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _require_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError({"body": ["Request body must be a JSON object."]})
    return payload


def _parse_int(value: Any) -> int | None:
    # Reject bools, floats with fractions, and scientific notation
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
        return int(value)
    return None


def _parse_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _validate_notes(payload: dict, errors: _Collector) -> str | None:
    notes = payload.get("notes")
    if notes is None:
        return None
    if not isinstance(notes, str):
        errors.add("notes", "The notes field must be a string.")
        return None
    if len(notes) > MAX_NOTES_LENGTH:
        errors.add("notes", f"The notes field must not be greater than {MAX_NOTES_LENGTH} characters.")
    return notes


def _validate_items(raw_items: Any, errors: _Collector, empty_message: str) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", empty_message)
        return []

    items = []
    for index, raw in enumerate(raw_items):
        prefix = f"items.{index}"
        if not isinstance(raw, dict):
            errors.add(prefix, "Each item must be an object.")
            continue

        name = raw.get("product_name")
        if not isinstance(name, str) or not name.strip():
            errors.add(f"{prefix}.product_name", "Product name is required for each item.")
        elif len(name.strip()) > MAX_PRODUCT_NAME_LENGTH:
            errors.add(f"{prefix}.product_name", "Product name cannot exceed 255 characters.")

        quantity = _parse_int(raw.get("quantity"))
        if raw.get("quantity") is None:
            errors.add(f"{prefix}.quantity", "Quantity is required for each item.")
        elif quantity is None:
            errors.add(f"{prefix}.quantity", "Quantity must be an integer.")
        elif quantity < 1:
            errors.add(f"{prefix}.quantity", "Quantity must be at least 1.")
        elif quantity > MAX_QUANTITY:
            errors.add(f"{prefix}.quantity", "Quantity cannot exceed 9999.")

        price = _parse_decimal(raw.get("unit_price"))
        if raw.get("unit_price") is None:
            errors.add(f"{prefix}.unit_price", "Unit price is required for each item.")
        elif price is None:
            errors.add(f"{prefix}.unit_price", "Unit price must be a number.")
        elif price < MIN_UNIT_PRICE:
            errors.add(f"{prefix}.unit_price", "Unit price must be at least 0.01.")
        elif price > MAX_UNIT_PRICE:
            errors.add(f"{prefix}.unit_price", "Unit price cannot exceed 999999.99.")

        items.append({
            "product_name": name.strip() if isinstance(name, str) else name,
            "quantity": quantity,
            "unit_price": price,
        })
    return items


def validate_create_order(payload: Any) -> dict:
    """Returns {"items": [...], "notes": str | None}."""
    payload = _require_object(payload)
    errors = _Collector()
    notes = _validate_notes(payload, errors)
    items = _validate_items(payload.get("items"), errors, "At least one item is required.")
    errors.raise_if_any()
    return {"items": items, "notes": notes}


def validate_update_order(payload: Any) -> dict:
    """Only keys present in the payload come back; items, when sent, must be non-empty."""
    payload = _require_object(payload)
    errors = _Collector()
    cleaned: dict = {}
    if "notes" in payload:
        cleaned["notes"] = _validate_notes(payload, errors)
    if "items" in payload:
        cleaned["items"] = _validate_items(
            payload.get("items"), errors, "If updating items, at least one item is required."
        )
    errors.raise_if_any()
    return cleaned


def validate_payment_request(payload: Any, payment_methods: Iterable[str]) -> dict:
    """Returns {"payment_method": key, "metadata": dict | None}."""
    payload = _require_object(payload)
    methods = list(payment_methods)
    errors = _Collector()

    method = payload.get("payment_method")
    if not isinstance(method, str) or not method.strip():
        errors.add("payment_method", "Please select a payment method.")
        method = None
    else:
        method = method.strip().lower()
        if method not in methods:
            errors.add(
                "payment_method",
                "The selected payment method is invalid. Available methods: " + ", ".join(methods),
            )

    metadata = payload.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            errors.add("metadata", "The metadata field must be an object.")
            metadata = None
        else:
            last_four = metadata.get("card_last_four")
            if last_four is not None and (not isinstance(last_four, str) or len(last_four) != 4):
                errors.add("metadata.card_last_four", "The card last four must be 4 characters.")
            brand = metadata.get("card_brand")
            if brand is not None and (not isinstance(brand, str) or len(brand) > 50):
                errors.add("metadata.card_brand", "The card brand must not be greater than 50 characters.")

    errors.raise_if_any()
    return {"payment_method": method, "metadata": metadata or None}


def validate_refund_request(payload: Any) -> Decimal | None:
    payload = _require_object(payload)
    if payload.get("amount") is None:
        return None
    amount = _parse_decimal(payload.get("amount"))
    if amount is None or amount < MIN_UNIT_PRICE:
        raise ValidationError({"amount": ["The amount must be at least 0.01."]})
    return amount


def validate_registration(payload: Any) -> dict:
    payload = _require_object(payload)
    errors = _Collector()

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.add("name", "The name field is required.")
    elif len(name.strip()) > 255:
        errors.add("name", "The name field must not be greater than 255 characters.")

    email = payload.get("email")
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        errors.add("email", "The email field must be a valid email address.")

    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.add("password", "The password field is required.")
    elif "password_confirmation" in payload and payload.get("password_confirmation") != password:
        errors.add("password", "The password field confirmation does not match.")

    errors.raise_if_any()
    return {"name": name.strip(), "email": email.strip(), "password": password}


def validate_login(payload: Any) -> dict:
    payload = _require_object(payload)
    errors = _Collector()
    email = payload.get("email")
    password = payload.get("password")
    if not isinstance(email, str) or not email.strip():
        errors.add("email", "The email field is required.")
    if not isinstance(password, str) or not password:
        errors.add("password", "The password field is required.")
    errors.raise_if_any()
    return {"email": email.strip(), "password": password}


def parse_pagination(args, default_per_page: int = 15, max_per_page: int = 100) -> tuple[int, int]:
    """(page, per_page) from query args; bad values fall back to defaults."""
    page = _parse_int(args.get("page")) or 1
    per_page = _parse_int(args.get("per_page")) or default_per_page
    return max(page, 1), max(1, min(per_page, max_per_page))


def _list_filters(args, errors: _Collector, sort_fields: tuple[str, ...], status_enum) -> dict:
    filters: dict = {}

    status = args.get("status")
    if status:
        if status not in status_enum.values():
            errors.add("status", "The selected status is invalid.")
        else:
            filters["status"] = status

    for key in ("from_date", "to_date"):
        raw = args.get(key)
        if raw:
            try:
                filters[key] = parse_iso_date(raw)
            except ValueError:
                errors.add(key, f"The {key} field must be a valid date.")

    if args.get("search"):
        filters["search"] = args.get("search").strip()

    sort_by = args.get("sort_by") or "created_at"
    if sort_by not in sort_fields:
        errors.add("sort_by", "The selected sort by is invalid.")
    filters["sort_by"] = sort_by

    sort_dir = (args.get("sort_dir") or "desc").lower()
    if sort_dir not in ("asc", "desc"):
        errors.add("sort_dir", "The selected sort dir is invalid.")
    filters["sort_dir"] = sort_dir
    return filters


def parse_order_filters(args) -> dict:
    errors = _Collector()
    filters = _list_filters(args, errors, ORDER_SORT_FIELDS, OrderStatus)
    if args.get("user_id"):
        user_id = _parse_int(args.get("user_id"))
        if user_id is None:
            errors.add("user_id", "The user id must be an integer.")
        else:
            filters["user_id"] = user_id
    errors.raise_if_any()
    return filters


def parse_payment_filters(args) -> dict:
    errors = _Collector()
    filters = _list_filters(args, errors, PAYMENT_SORT_FIELDS, PaymentStatus)
    if args.get("gateway"):
        filters["gateway"] = args.get("gateway").strip().lower()
    if args.get("order_id"):
        order_id = _parse_int(args.get("order_id"))
        if order_id is None:
            errors.add("order_id", "The order id must be an integer.")
        else:
            filters["order_id"] = order_id
    errors.raise_if_any()
    return filters
