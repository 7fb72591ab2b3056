"""
Tests for structured settlement logging.

Covers:
- JSON lines carrying run_id from the service and engine from the tracer
- Decimal, enum and set payloads encoded without precision loss
- exc_* fields taken from settlement kernel errors
- One-time handler installation and reset between tests
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from settlement_engines.netting import net_cycles
from settlement_kernel.domain.events import AuditEventKind
from settlement_kernel.exceptions import UnknownCompanyError
from settlement_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)
from settlement_services.settlement_service import SettlementService


@pytest.fixture
def json_stream():
    """Install a JSON handler at DEBUG and return the stream it writes to."""
    stream = StringIO()
    configure_logging(handler=logging.StreamHandler(stream), level=logging.DEBUG)
    return stream


def _lines(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestJsonLines:
    """Tests for the StructuredFormatter payload."""

    def test_base_fields(self, json_stream):
        get_logger("engines.netting").info("netting_started", extra={"company_count": 2})

        [record] = _lines(json_stream)
        assert record["message"] == "netting_started"
        assert record["logger"] == "settlement_kernel.engines.netting"
        assert record["level"] == "INFO"
        assert record["company_count"] == 2
        assert "run_id" not in record

    def test_amounts_kinds_and_ids_encoded(self, json_stream):
        get_logger("test").info("typed", extra={
            "amount": Decimal("12.50"),
            "kind": AuditEventKind.CYCLE_FOUND,
            "participants": frozenset({"B", "A"}),
        })

        [record] = _lines(json_stream)
        assert record["amount"] == "12.50"
        assert record["kind"] == "cycle_found"
        assert record["participants"] == ["A", "B"]

    def test_kernel_error_fields(self, json_stream):
        try:
            raise UnknownCompanyError("D7", "ZZ", "target")
        except UnknownCompanyError:
            get_logger("test").error("input_error", exc_info=True)

        [record] = _lines(json_stream)
        assert record["exc_type"] == "UnknownCompanyError"
        assert record["exc_code"] == "UNKNOWN_COMPANY"
        assert record["exc_obligation_id"] == "D7"
        assert record["exc_company_id"] == "ZZ"
        assert record["exc_role"] == "target"
        assert "traceback" in record

    def test_plain_error_has_no_code(self, json_stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        [record] = _lines(json_stream)
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record


class TestRunContext:
    """run_id and engine ride along on every line of a run."""

    def test_service_run_id_on_engine_lines(self, json_stream, make_companies, make_debts):
        SettlementService().settle(
            make_companies(A=10, B=0),
            make_debts(("A", "B", 5)),
            run_id="run-42",
        )

        records = _lines(json_stream)
        assert records
        assert {r.get("run_id") for r in records} == {"run-42"}
        netting_lines = [r for r in records if r["logger"] == "settlement_kernel.engines.netting"]
        assert netting_lines
        assert all(r["engine"] == "netting" for r in netting_lines)

    def test_engine_cleared_after_call(self, json_stream, make_companies, make_debts):
        net_cycles(make_companies(A=0, B=0), make_debts(("A", "B", 10)))
        get_logger("test").info("after")

        records = _lines(json_stream)
        assert "engine" not in records[-1]
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(run_id="outer")
        with LogContext.bind(run_id="inner", engine="cascade"):
            assert LogContext.get_all() == {"run_id": "inner", "engine": "cascade"}
        assert LogContext.get_all() == {"run_id": "outer"}

    def test_none_leaves_field_unchanged(self):
        LogContext.set(run_id="r1")
        LogContext.set(run_id=None, engine="netting")
        assert LogContext.get_all() == {"run_id": "r1", "engine": "netting"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(group_id="g")


class TestConfigureLogging:
    """Tests for handler installation."""

    def test_idempotent(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("settlement_kernel").handlers) == 1

    def test_reset_allows_reconfigure(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream))
        get_logger("test").info("after_reset")

        assert _lines(stream)[0]["message"] == "after_reset"

    def test_level_filters_debug(self):
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream))
        get_logger("test").debug("hidden")
        get_logger("test").info("shown")

        assert [r["message"] for r in _lines(stream)] == ["shown"]
