"""Input validation helpers."""

from questline.core.validation.input_validator import InputValidator

__all__ = ["InputValidator"]
