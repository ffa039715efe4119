"""
LANDLEDGER Error Taxonomy

Every failure the registry can report is a ChaincodeError subclass carrying
a stable error code. The chaincode surface lets them propagate to the host
runtime unchanged; the CLI maps them to exit codes.

    ChaincodeError
    ├── ArgumentCountError     wrong number of positional arguments
    ├── ArgumentFormatError    argument present but malformed
    ├── UnknownFunctionError   function name outside the closed set
    ├── NotFoundError          owner / survey / init key absent
    ├── ConflictError          survey number already registered
    ├── PreconditionError      seller does not hold the survey
    └── StoreWriteError        a put against the state store failed

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence


class ChaincodeError(Exception):
    """Base exception for all registry failures."""

    error_code = "chaincode_error"
    exit_code = 1

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class ArgumentCountError(ChaincodeError):
    """Wrong number of positional arguments."""

    error_code = "wrong_arg_count"
    exit_code = 2

    def __init__(self, function: str, expected: int, received: int):
        self.function = function
        self.expected = expected
        self.received = received
        super().__init__(
            f"Incorrect number of arguments for {function}. "
            f"Expected {expected}, got {received}"
        )


class ArgumentFormatError(ChaincodeError):
    """An argument could not be parsed or failed validation."""

    error_code = "bad_argument"
    exit_code = 2

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"{field}: {message}")


class UnknownFunctionError(ChaincodeError):
    """Function name is not one of the supported operations."""

    error_code = "unknown_function"
    exit_code = 2

    def __init__(self, function: str, kind: str = "invocation"):
        self.function = function
        self.kind = kind
        super().__init__(f"Received unknown function {kind}: {function}")


class NotFoundError(ChaincodeError):
    """A record or marker key decodes to nothing."""

    error_code = "not_found"

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class ConflictError(ChaincodeError):
    """Registration would overwrite an existing record."""

    error_code = "conflict"

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class PreconditionError(ChaincodeError):
    """The current state does not allow the requested transition."""

    error_code = "precondition_failed"


class StoreWriteError(ChaincodeError):
    """
    A put against the state store failed.

    ``landed`` lists the keys of the same transaction that had already been
    written when ``key`` failed. Those writes are not rolled back here; the
    host ledger decides whether the invocation commits.
    """

    error_code = "store_write_failed"

    def __init__(self, key: str, landed: Sequence[str] = (), cause: Optional[BaseException] = None):
        self.key = key
        self.landed: List[str] = list(landed)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Putstate failed for key {key!r} after {len(self.landed)} "
            f"successful write(s) {self.landed}{detail}"
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["key"] = self.key
        d["landed"] = list(self.landed)
        return d
