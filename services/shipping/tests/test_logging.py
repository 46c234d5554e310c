import json
import logging

from shared.core.logging_config import SecurityFilter, StructuredFormatter, set_request_context


def make_record(msg, **extra):
    record = logging.LogRecord("shipquote.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_credentials_are_redacted():
    record = make_record("login password=hunter2 with Authorization: Bearer abc.def.ghi")
    assert SecurityFilter().filter(record)
    message = record.getMessage()
    assert "hunter2" not in message
    assert "abc.def.ghi" not in message
    assert "***REDACTED***" in message


def test_plain_messages_are_untouched():
    record = make_record("Shipment 3 created")
    SecurityFilter().filter(record)
    assert record.getMessage() == "Shipment 3 created"


def test_records_render_as_json_with_context():
    set_request_context(request_id="req-42")
    record = make_record("Shipment 3 created", extra_fields={"shipment_id": 3})

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["message"] == "Shipment 3 created"
    assert payload["level"] == "INFO"
    assert payload["trace"]["request_id"] == "req-42"
    assert payload["custom"] == {"shipment_id": 3}
