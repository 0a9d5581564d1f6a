"""
Input guards shared by both registries.

Every guard returns the value in its stored form or raises ValidationError.
"""

import logging
from contextlib import contextmanager
from enum import IntEnum
from typing import Type, TypeVar

from intentledger.core.exceptions import IntentLedgerError, Reason, ValidationError
from intentledger.core.hashes import HashLike, is_zero_hash, normalize_hash


UINT256_MAX = 2 ** 256 - 1

E = TypeVar("E", bound=IntEnum)


def require_uint(value, field: str, reason: str, maximum: int = UINT256_MAX) -> int:
    """Non-negative int within `maximum`. bool is rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field} must be an int, got {type(value).__name__}",
            reason=reason,
            details={"field": field},
        )
    if value < 0 or value > maximum:
        raise ValidationError(
            f"{field} out of range: {value}",
            reason=reason,
            details={"field": field},
        )
    return value


def require_enum(enum_cls: Type[E], value, field: str) -> E:
    if isinstance(value, bool):
        value = None  # never a valid member
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"{field} is not a valid {enum_cls.__name__}: {value!r}",
            reason=Reason.INVALID_ENUM,
            details={"field": field},
        )


def require_hash(value: HashLike, field: str) -> str:
    """Well-formed hash; zero allowed."""
    return normalize_hash(value, field)


def require_nonzero_hash(value: HashLike, field: str, reason: str) -> str:
    """Well-formed and non-zero."""
    normalized = normalize_hash(value, field)
    if is_zero_hash(normalized):
        raise ValidationError(
            f"{field} must not be zero",
            reason=reason,
            details={"field": field},
        )
    return normalized


def require_deadline(value, minimum: int) -> int:
    """Strictly greater than `minimum`; merely meeting it is rejected."""
    deadline = require_uint(value, "deadline", Reason.INVALID_DEADLINE)
    if deadline <= minimum:
        raise ValidationError(
            f"deadline must exceed {minimum}, got {deadline}",
            reason=Reason.INVALID_DEADLINE,
            details={"field": "deadline", "minimum": minimum},
        )
    return deadline


def require_intent_id(value) -> int:
    return require_uint(value, "intent_id", Reason.INVALID_INTENT_ID)


def require_flag(value, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field} must be a bool, got {type(value).__name__}",
            reason=Reason.INVALID_IDENTITY,
            details={"field": field},
        )
    return value


@contextmanager
def rejections_logged(logger: logging.Logger, operation: str, caller: str):
    """Log every IntentLedgerError leaving the block, then re-raise it."""
    try:
        yield
    except IntentLedgerError as exc:
        logger.warning("%s rejected for %r: %s", operation, caller, exc)
        raise
