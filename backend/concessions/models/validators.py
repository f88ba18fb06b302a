"""Model-level validation utilities for data integrity.

Reusable validators that enforce business rules at the ORM level, so invalid
quantities never reach the database regardless of which service writes them.
"""

from decimal import Decimal


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def month_number(key: str, value):
    """Validate that a value is a calendar month (1-12)."""
    if value is not None and not 1 <= int(value) <= 12:
        raise ValueError(f"{key} must be between 1 and 12, got {value}")
    return value
