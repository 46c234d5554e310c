"""
Single validation entry point for request payloads.

``validate`` never raises: it returns ``Ok(value)`` or ``Err(kind, field,
message)`` for the first failing field. ``parse`` is the raising form used
by the services.
"""

from dataclasses import dataclass
from typing import Any, Generic, Type, TypeVar, Union

import pydantic

from .errors import ValidationError

M = TypeVar("M", bound=pydantic.BaseModel)

_MESSAGES = {
    "missing": "Field is required",
    "greater_than": "Must be greater than 0",
    "string_too_short": "Must not be empty",
    "string_pattern_mismatch": "Invalid format",
    "enum": "Unknown value",
    "decimal_max_places": "At most 2 decimal places",
    "decimal_max_digits": "Too many digits",
    "decimal_whole_digits": "Too many digits",
}


@dataclass(frozen=True)
class Ok(Generic[M]):
    value: M


@dataclass(frozen=True)
class Err:
    kind: str
    field: str
    message: str


Result = Union[Ok[M], Err]


def validate(schema: Type[M], payload: Any) -> "Result[M]":
    if isinstance(payload, schema):
        return Ok(payload)
    if not isinstance(payload, dict):
        return Err("model_type", "body", "Request body must be a JSON object")
    try:
        return Ok(schema.model_validate(payload))
    except pydantic.ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "body"
        kind = error["type"]
        return Err(kind, field, _MESSAGES.get(kind, error["msg"]))


def parse(schema: Type[M], payload: Any) -> M:
    result = validate(schema, payload)
    if isinstance(result, Err):
        raise ValidationError(result.field, f"{result.field}: {result.message}")
    return result.value
