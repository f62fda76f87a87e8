"""
Input Validation Layer for Questline

Purpose
-------
Provide a centralized validation layer for caller inputs reaching the quest
engine (owner ids, quest ids, progress increments, action tags). Converts and
bounds-checks values and raises `ValidationError` with clear messages.

Non-Responsibilities
--------------------
- Business rule validation (service layer concern)
- Authentication (resolved by the action facade)

Observability
-------------
Every validation failure is logged at debug level with field_name, raw_value
(repr) and reason.
"""

from __future__ import annotations

from typing import Any, NoReturn, Optional

from questline.core.logging.logger import get_logger
from questline.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

MAX_OWNER_ID_LENGTH = 128


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    """Log and raise a ValidationError."""
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Stateless input validation.

    Methods return the validated value on success and raise ValidationError
    on failure.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> int:
        """
        Validate that value is an integer within optional bounds.

        Booleans and non-integral floats are rejected; integral floats and
        numeric strings are converted.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number")

        if isinstance(value, float) and not value.is_integer():
            _raise_validation_error(
                field_name, value, f"Must be a whole number, got {value}"
            )

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            _raise_validation_error(
                field_name,
                value,
                f"Must be a whole number, got '{value}'",
            )

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Must be at least {min_value}, got {int_value}",
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Cannot exceed {max_value}, got {int_value}",
            )

        return int_value

    @staticmethod
    def validate_positive_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a strictly positive integer (>= 1)."""
        return InputValidator.validate_integer(
            value=value,
            field_name=field_name,
            min_value=1,
            max_value=max_value,
        )

    # =========================================================================
    # IDENTIFIER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_owner_id(value: Any, field_name: str = "owner_id") -> str:
        """
        Validate an opaque owner identifier.

        Returns the identifier stripped of surrounding whitespace.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        owner_id = str(value).strip()
        if not owner_id:
            _raise_validation_error(field_name, value, "Cannot be empty")

        if len(owner_id) > MAX_OWNER_ID_LENGTH:
            _raise_validation_error(
                field_name,
                value,
                f"Cannot exceed {MAX_OWNER_ID_LENGTH} characters",
            )

        return owner_id

    @staticmethod
    def validate_quest_id(value: Any, field_name: str = "quest_id") -> int:
        """Validate a quest primary key."""
        return InputValidator.validate_positive_integer(value, field_name)

    @staticmethod
    def validate_action_tag(value: Any, field_name: str = "action") -> str:
        """Normalize a gameplay action tag to lowercase without padding."""
        if not isinstance(value, str) or not value.strip():
            _raise_validation_error(field_name, value, "Must be a non-empty string")
        return value.strip().lower()
