"""Validators for customer input. Pure functions, no infrastructure or DB access."""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from keyadmin.domain.exceptions import DomainValidationError

_MISSING = object()


@dataclass(frozen=True)
class NewCustomer:
    """Normalized, validated input for customer creation."""

    name: str
    phone: Optional[str]
    plan_days: int


def normalize_name(name: Optional[str]) -> str:
    """Trimmed name. Raises DomainValidationError if missing or blank."""
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise DomainValidationError("Name is required")
    return cleaned


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Blank phones are stored as None."""
    if not isinstance(phone, str):
        return None
    return phone.strip() or None


def _whole_days(value: Any) -> Optional[int]:
    """Positive whole number from an int, float or numeric string; None otherwise."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number) or number <= 0 or not number.is_integer():
        return None
    return int(number)


def validate_plan_days(plan_days: Any) -> int:
    """planDays must be a positive whole number of days; "30" and 30.0 count."""
    days = _whole_days(plan_days)
    if days is None:
        raise DomainValidationError("Invalid planDays")
    return days


def validate_new_customer(name: Optional[str], phone: Optional[str], plan_days: Any) -> NewCustomer:
    return NewCustomer(
        name=normalize_name(name),
        phone=normalize_phone(phone),
        plan_days=validate_plan_days(plan_days),
    )


def validate_customer_update(name: Any = _MISSING, phone: Any = _MISSING) -> Dict[str, Optional[str]]:
    """
    Build the change set for an update. Omitted fields are left out; an explicit
    None phone clears it. Raises DomainValidationError if nothing is updated or
    a given name is blank.
    """
    changes: Dict[str, Optional[str]] = {}
    if name is not _MISSING and name is not None:
        changes["name"] = normalize_name(name)
    if phone is not _MISSING:
        changes["phone"] = normalize_phone(phone)
    if not changes:
        raise DomainValidationError("Nothing to update")
    return changes


def resolve_renew_plan_days(requested: Any, current_plan_days: int) -> int:
    """Requested plan length if it is a usable positive number, else the customer's current plan."""
    days = _whole_days(requested)
    return current_plan_days if days is None else days
