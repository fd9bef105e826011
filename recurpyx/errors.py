from __future__ import annotations

from enum import Enum
from typing import Any


class RecurrenceError(ValueError):
    pass


class ConversionError(RecurrenceError):
    """A user token could not be mapped to a weekday, month or frequency."""

    def __init__(self, literal: str, field: str) -> None:
        self.literal = literal
        self.field = field
        super().__init__(f"Could not convert {literal!r} to a {field}")


class ParseErrorKind(str, Enum):
    UNKNOWN_KEY = "unknown_key"
    MALFORMED_VALUE = "malformed_value"
    UNRECOGNIZED = "unrecognized"


class ParseError(RecurrenceError):
    def __init__(self, kind: ParseErrorKind, fragment: str, message: str = "") -> None:
        self.kind = kind
        self.fragment = fragment
        if not message:
            message = {
                ParseErrorKind.UNKNOWN_KEY: f"Unknown key: {fragment!r}",
                ParseErrorKind.MALFORMED_VALUE: f"Malformed value: {fragment!r}",
                ParseErrorKind.UNRECOGNIZED: f"Unrecognized text: {fragment!r}",
            }[kind]
        super().__init__(message)


class ValidationError(RecurrenceError):
    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        self.field = field
        self.value = value
        msg = f"Invalid {field}: {value!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
