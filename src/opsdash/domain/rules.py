from __future__ import annotations

from collections.abc import Iterable
from datetime import date


class ValidationError(ValueError):
    pass


def require(value: str | None, field: str) -> str:
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required.")
    return str(value).strip()


def validate_enum(value: str | None, allowed: Iterable[str], field: str) -> None:
    if value is None:
        return
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")


def parse_amount(value: object, field: str, *, positive: bool = False) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number.")
    if isinstance(value, int):
        amount = value
    else:
        text = str(value if value is not None else "").strip().replace(",", "")
        if not text:
            if positive:
                raise ValidationError(f"{field} is required.")
            return 0
        try:
            amount = int(text)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a whole number.") from exc
    if positive and amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative.")
    return amount


def parse_date(value: str | None, field: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be YYYY-MM-DD.") from exc


class RecordNotFound(LookupError):
    pass


def find(items, record_id: str, label: str):
    for item in items:
        if item.id == record_id:
            return item
    raise RecordNotFound(f"{label} not found: {record_id}")
