"""
Message integrity validation.

Every payload read from a queue goes through ``validate`` before a handler
sees it. Validation never raises; it returns either a ``QueueMessage`` or a
``ValidationFailure`` describing the first rule that was broken:

1. the payload must be JSON                      -> ParseError
2. the JSON value must be an object              -> ShapeError
3. required fields must exist with exact types   -> FieldError
4. traceContext, if present, must be str -> str  -> TraceContextError

Unknown fields are ignored so producers can add fields without breaking
older consumers.
"""

import json
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, TypeGuard

from pydantic import ValidationError

from notifier.constants import LOG_PREVIEW_CHARS
from notifier.types.message import QueueMessage


class FailureKind(StrEnum):
    """Categories of rejected payloads."""

    PARSE = "parse_error"
    SHAPE = "shape_error"
    FIELD = "field_error"
    TRACE_CONTEXT = "trace_context_error"


@dataclass(frozen=True)
class ValidationFailure:
    """A payload that is not a QueueMessage."""

    detail: str
    preview: str

    kind: ClassVar[FailureKind]


@dataclass(frozen=True)
class ParseError(ValidationFailure):
    """Payload is not valid JSON text."""

    kind = FailureKind.PARSE


@dataclass(frozen=True)
class ShapeError(ValidationFailure):
    """Payload is JSON but not an object."""

    kind = FailureKind.SHAPE


@dataclass(frozen=True)
class FieldError(ValidationFailure):
    """A required field is missing or has the wrong type."""

    field: str = ""

    kind = FailureKind.FIELD


@dataclass(frozen=True)
class TraceContextError(ValidationFailure):
    """traceContext is present but is not a flat string map."""

    kind = FailureKind.TRACE_CONTEXT


ValidationResult = QueueMessage | ValidationFailure


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_number(value: Any) -> bool:
    # bool is a subclass of int but true/false are not JSON numbers
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    # 1e400 parses to inf, which cannot be serialized back
    return math.isfinite(value)


# Wire name -> type check, in the order they are reported
REQUIRED_FIELDS: dict[str, Any] = {
    "type": _is_string,
    "orderId": _is_number,
    "userId": _is_number,
    "userName": _is_string,
    "total": _is_number,
    "timestamp": _is_string,
}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _preview(raw: Any) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return str(raw)[:LOG_PREVIEW_CHARS]


def validate(raw: str | bytes | None) -> ValidationResult:
    """
    Parse and validate a raw queue payload.

    Args:
        raw: The message body as read from the backend.

    Returns:
        The parsed QueueMessage, or a ValidationFailure subclass.
    """
    preview = _preview(raw)

    if not isinstance(raw, (str, bytes)):
        return ParseError(detail="payload is not text", preview=preview)

    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError, RecursionError) as e:
        return ParseError(detail=f"invalid JSON: {e}", preview=preview)

    if not isinstance(parsed, dict):
        return ShapeError(
            detail=f"expected a JSON object, got {type(parsed).__name__}",
            preview=preview,
        )

    for name, check in REQUIRED_FIELDS.items():
        if name not in parsed:
            return FieldError(detail=f"missing field {name!r}", preview=preview, field=name)
        if not check(parsed[name]):
            return FieldError(
                detail=f"field {name!r} has wrong type {type(parsed[name]).__name__}",
                preview=preview,
                field=name,
            )

    if "traceContext" in parsed:
        carrier = parsed["traceContext"]
        if not isinstance(carrier, dict):
            return TraceContextError(detail="traceContext is not an object", preview=preview)
        for key, value in carrier.items():
            if not isinstance(key, str) or not isinstance(value, str):
                return TraceContextError(
                    detail=f"traceContext entry {key!r} is not a string",
                    preview=preview,
                )

    # Only the checked wire keys; snake_case extras must not reach the model
    envelope = {
        name: parsed[name] for name in (*REQUIRED_FIELDS, "traceContext") if name in parsed
    }
    try:
        return QueueMessage.model_validate(envelope)
    except ValidationError as e:
        return FieldError(detail=f"invalid envelope: {e.error_count()} error(s)", preview=preview)


def is_valid(result: ValidationResult) -> TypeGuard[QueueMessage]:
    """Check whether a validation result is a usable message."""
    return isinstance(result, QueueMessage)
