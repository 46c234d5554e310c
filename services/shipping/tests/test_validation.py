from decimal import Decimal

import pytest

from shipquote.application.errors import ValidationError
from shipquote.application.schemas import QuoteRequest, ShipmentCreate
from shipquote.application.validation import Err, Ok, parse, validate

QUOTE = {"weight": "1", "length": "10", "width": "10", "height": "10", "origin": "Bogota", "destination": "Cali"}


def test_valid_payload():
    result = validate(QuoteRequest, QUOTE)
    assert isinstance(result, Ok)
    assert result.value.weight == Decimal("1")


def test_already_validated_model_passes_through():
    request = QuoteRequest.model_validate(QUOTE)
    assert validate(QuoteRequest, request).value is request


def test_strings_are_trimmed():
    assert parse(QuoteRequest, {**QUOTE, "origin": "  Bogota "}).origin == "Bogota"


@pytest.mark.parametrize(
    "payload, kind, field",
    [
        ({**QUOTE, "weight": "0"}, "greater_than", "weight"),
        ({k: v for k, v in QUOTE.items() if k != "origin"}, "missing", "origin"),
        ({**QUOTE, "destination": ""}, "string_too_short", "destination"),
        ({**QUOTE, "height": "tall"}, "decimal_parsing", "height"),
    ],
)
def test_first_failing_field_is_reported(payload, kind, field):
    result = validate(QuoteRequest, payload)
    assert isinstance(result, Err)
    assert (result.kind, result.field) == (kind, field)


def test_non_object_payload():
    result = validate(QuoteRequest, "weight=1")
    assert result == Err("model_type", "body", "Request body must be a JSON object")


def test_camel_case_field_names():
    result = validate(ShipmentCreate, {**QUOTE, "quotedPrice": "-5"})
    assert isinstance(result, Err)
    assert result.field == "quotedPrice"


def test_parse_raises_with_field():
    with pytest.raises(ValidationError) as exc_info:
        parse(QuoteRequest, {**QUOTE, "weight": "-1"})
    assert exc_info.value.field == "weight"
    assert exc_info.value.to_dict() == {
        "success": False,
        "code": "validation_error",
        "message": "weight: Must be greater than 0",
        "field": "weight",
    }
