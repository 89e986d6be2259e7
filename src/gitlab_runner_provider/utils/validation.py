"""
Attribute validation rules shared by resource schemas and models.

Each builder returns a callable that raises ``ValueError`` for a rejected
value and returns the (possibly normalized) value otherwise.
"""

from typing import Any, Callable, Iterable


def string_in_slice(valid: Iterable[str], ignore_case: bool = False) -> Callable[[Any], Any]:
    """Build a validator accepting only the given strings."""
    allowed = list(valid)

    def validate(value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError(f"expected type to be string, got {type(value).__name__}")
        candidates = [v.lower() for v in allowed] if ignore_case else allowed
        probe = value.lower() if ignore_case else value
        if probe not in candidates:
            raise ValueError(f"expected value to be one of {allowed}, got {value}")
        return probe if ignore_case else value

    return validate


def int_at_least(minimum: int) -> Callable[[Any], Any]:
    """Build a validator accepting integers greater than or equal to ``minimum``."""

    def validate(value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected type to be integer, got {type(value).__name__}")
        if value < minimum:
            raise ValueError(f"expected value to be at least ({minimum}), got {value}")
        return value

    return validate
