"""
LANDLEDGER Argument Validation

Chaincode arguments arrive as untrusted strings. Every operation parses
them through these validators before touching state, so a malformed call
fails with ArgumentFormatError and writes nothing.

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Optional

from landledger.codec import INT64_MAX, INT64_MIN
from landledger.errors import ArgumentFormatError


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ArgumentFormatError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the first error if validation failed."""
        if not self.is_valid:
            raise self.errors[0]

    def unwrap(self) -> Any:
        self.raise_if_invalid()
        return self.sanitized_value

    @classmethod
    def success(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, error: ArgumentFormatError) -> "ValidationResult":
        return cls(is_valid=False, errors=[error])


class Validators:
    """Collection of argument validators."""

    INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
    DIGITS_PATTERN = re.compile(r"[0-9]+")

    MAX_INT64_DIGITS = 19
    MAX_NAME_LENGTH = 256
    MAX_LOCATION_LENGTH = 4096

    @classmethod
    def validate_int64(
        cls,
        value: Any,
        field_name: str,
        min_value: int = INT64_MIN,
        max_value: int = INT64_MAX,
    ) -> ValidationResult:
        """Parse a base-10 signed 64-bit integer."""
        if not isinstance(value, str):
            return ValidationResult.failure(
                ArgumentFormatError(field_name, f"Expected string, got {type(value).__name__}", value)
            )
        if not cls.INTEGER_PATTERN.fullmatch(value):
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Expecting integer value", value)
            )
        # int64 needs at most 19 significant digits; refuse longer text before int().
        if len(value.lstrip("+-").lstrip("0")) > cls.MAX_INT64_DIGITS:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Out of 64-bit integer range", value)
            )
        number = int(value)
        if not INT64_MIN <= number <= INT64_MAX:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Out of 64-bit integer range", value)
            )
        if number < min_value:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, f"Must be >= {min_value}", value)
            )
        if number > max_value:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, f"Must be <= {max_value}", value)
            )
        return ValidationResult.success(number)

    @classmethod
    def validate_survey_no(cls, value: Any) -> ValidationResult:
        return cls.validate_int64(value, "survey_no", min_value=0)

    @classmethod
    def validate_aadhar(cls, value: Any) -> ValidationResult:
        # Zero was the legacy "unset" marker, so it cannot be a real id.
        return cls.validate_int64(value, "aadhar", min_value=1)

    @classmethod
    def validate_area(cls, value: Any) -> ValidationResult:
        return cls.validate_int64(value, "area", min_value=1)

    @classmethod
    def validate_owner_name(
        cls,
        value: Any,
        field_name: str = "owner",
        reserved: Optional[FrozenSet[str]] = None,
    ) -> ValidationResult:
        """
        Owner names are used verbatim as state keys.

        Rejected: empty names, reserved keys, and all-digit names (those are
        survey keys).
        """
        if not isinstance(value, str):
            return ValidationResult.failure(
                ArgumentFormatError(field_name, f"Expected string, got {type(value).__name__}", value)
            )
        if not value.strip() or "\x00" in value:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Owner name cannot be empty", value)
            )
        if len(value) > cls.MAX_NAME_LENGTH:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, f"Too long (max {cls.MAX_NAME_LENGTH} chars)", value)
            )
        if not cls._is_utf8(value):
            return ValidationResult.failure(ArgumentFormatError(field_name, "Not valid UTF-8", value))
        if reserved and value in reserved:
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Owner name collides with a reserved key", value)
            )
        if cls.DIGITS_PATTERN.fullmatch(value):
            return ValidationResult.failure(
                ArgumentFormatError(field_name, "Owner name cannot be numeric", value)
            )
        return ValidationResult.success(value)

    @classmethod
    def validate_location(cls, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failure(
                ArgumentFormatError("location", f"Expected string, got {type(value).__name__}", value)
            )
        if len(value) > cls.MAX_LOCATION_LENGTH:
            return ValidationResult.failure(
                ArgumentFormatError("location", f"Too long (max {cls.MAX_LOCATION_LENGTH} chars)", value)
            )
        if not cls._is_utf8(value):
            return ValidationResult.failure(ArgumentFormatError("location", "Not valid UTF-8", value))
        return ValidationResult.success(value)

    @staticmethod
    def _is_utf8(value: str) -> bool:
        # Undecodable argv bytes arrive as lone surrogates.
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return True
