"""
Input validation and sanitization utilities.
Provides functions for validating and cleaning request input.
"""

from typing import Optional
import re

from shared_utils.error_handler import ValidationError
from shared_utils.constants import Defaults


_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_IDENTIFIER = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-:.]{0,127}$")


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Validated string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_question(value: str, max_length: int = Defaults.MAX_QUESTION_LENGTH) -> str:
        """Validate a free-text question and strip control characters.

        Raises:
            ValidationError: If the question is empty or too long
        """
        question = InputValidator.validate_non_empty_string(value, "question")
        question = _CONTROL_CHARS.sub("", question)
        if len(question) > max_length:
            raise ValidationError(
                f"question too long (max {max_length} characters)",
                context={"length": len(question)},
            )
        return question

    @staticmethod
    def validate_identifier(value: str, field_name: str) -> str:
        """Validate an opaque identifier (transcript id, event id)."""
        value = InputValidator.validate_non_empty_string(value, field_name)
        if not _IDENTIFIER.match(value):
            raise ValidationError(f"{field_name} has an invalid format", context={field_name: value})
        return value

    @staticmethod
    def validate_optional_identifier(value: Optional[str], field_name: str) -> Optional[str]:
        if value is None or value == "":
            return None
        return InputValidator.validate_identifier(value, field_name)
