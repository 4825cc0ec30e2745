"""Domain validators. Pure validation functions."""

from keyadmin.domain.validators.customer_validator import (
    NewCustomer,
    normalize_name,
    normalize_phone,
    resolve_renew_plan_days,
    validate_customer_update,
    validate_new_customer,
    validate_plan_days,
)

__all__ = [
    "NewCustomer",
    "normalize_name",
    "normalize_phone",
    "resolve_renew_plan_days",
    "validate_customer_update",
    "validate_new_customer",
    "validate_plan_days",
]
