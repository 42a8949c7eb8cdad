"""Unit tests for log formatting and PII redaction."""

import json
import logging
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest
from loguru import logger

from taxregistry.core.logging import (
    REDACTED,
    InterceptHandler,
    format_console_with_context,
    is_sensitive,
    redact,
    serialize_for_json,
)


def _record(**extra: Any) -> dict[str, Any]:  # noqa: ANN401
    return {
        "time": datetime(2025, 6, 15, 12, 0, tzinfo=UTC),
        "level": SimpleNamespace(name="INFO"),
        "message": "Taxpayer record created",
        "name": "taxregistry.records.service",
        "function": "create_record",
        "line": 42,
        "extra": extra,
        "exception": None,
    }


@pytest.mark.unit
class TestRedaction:
    @pytest.mark.parametrize("field", ["tin", "TIN", "phone_no", "email", "password"])
    def test_sensitive_fields(self, field: str) -> None:
        assert is_sensitive(field)

    @pytest.mark.parametrize("field", ["record_id", "name", "operation"])
    def test_regular_fields(self, field: str) -> None:
        assert not is_sensitive(field)

    def test_redacts_nested_snapshot(self) -> None:
        extra = {
            "record_id": 7,
            "snapshot": {"name": "Adaeze", "tin": "123", "email": "a@b.ng"},
        }

        result = redact(extra)

        assert result["record_id"] == 7
        assert result["snapshot"] == {
            "name": "Adaeze",
            "tin": REDACTED,
            "email": REDACTED,
        }
        # Input is left untouched
        assert extra["snapshot"]["tin"] == "123"


@pytest.mark.unit
class TestFormatters:
    def test_json_formatter_emits_one_redacted_line(self) -> None:
        line = serialize_for_json(
            _record(record_id=7, email="a@b.ng", _internal="hidden")
        )

        assert line.endswith("\n")
        entry = json.loads(line)
        assert entry["level"] == "INFO"
        assert entry["message"] == "Taxpayer record created"
        assert entry["record_id"] == 7
        assert entry["email"] == REDACTED
        assert "_internal" not in entry

    def test_console_formatter_puts_priority_fields_first(self) -> None:
        output = format_console_with_context(
            _record(
                extra_field="x",
                correlation_id="1234567890abcdef",
                operation="create",
            )
        )

        assert "[<yellow>12345678</yellow>]" in output
        assert output.index("<yellow>create</yellow>") < output.index("extra_field=x")
        assert output.endswith("Taxpayer record created\n")

    def test_console_formatter_escapes_braces(self) -> None:
        record = _record(payload="{not a field}")
        record["message"] = "value {x}"

        output = format_console_with_context(record)

        assert "value {{x}}" in output
        assert "{{not a field}}" in output


@pytest.mark.unit
class TestInterceptHandler:
    def test_forwards_standard_logging_to_loguru(self) -> None:
        messages: list[str] = []
        sink_id = logger.add(lambda m: messages.append(m.record["message"]))
        try:
            std_logger = logging.getLogger("taxregistry.tests.intercept")
            std_logger.handlers = [InterceptHandler()]
            std_logger.propagate = False
            std_logger.warning("pool exhausted")
        finally:
            logger.remove(sink_id)

        assert messages == ["pool exhausted"]
