"""Tests for logging setup and the import job log context."""

import asyncio
import json
import logging
import sys
from collections.abc import Iterator

import pytest

from revyou.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CustomJsonFormatter,
    JobContextFilter,
    configure_logging,
    get_job_id,
    job_id_var,
    set_job_id,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """configure_logging replaces root handlers, put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(message: str = "hello") -> logging.LogRecord:
    record = logging.LogRecord("revyou.test", logging.INFO, __file__, 10, message, None, None)
    JobContextFilter().filter(record)
    return record


class TestJobId:
    def test_default_is_empty(self) -> None:
        assert get_job_id() == ""

    def test_set_and_reset(self) -> None:
        token = set_job_id("job-123")
        try:
            assert get_job_id() == "job-123"
        finally:
            job_id_var.reset(token)
        assert get_job_id() == ""

    async def test_tasks_keep_their_own_job_id(self) -> None:
        async def worker(job_id: str) -> str:
            set_job_id(job_id)
            await asyncio.sleep(0)
            return get_job_id()

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]
        assert get_job_id() == ""


class TestFormatters:
    def test_text_format_prefixes_job_id(self) -> None:
        formatter = CompactExceptionFormatter(fmt="%(message)s")
        token = set_job_id("0123456789abcdef")
        try:
            record = make_record()
        finally:
            job_id_var.reset(token)

        assert formatter.format(record) == "[job 01234567] hello"

    def test_text_format_without_job(self) -> None:
        formatter = CompactExceptionFormatter(fmt="%(message)s")

        assert formatter.format(make_record()) == "hello"

    def test_exception_chain_root_cause_first(self) -> None:
        formatter = CompactExceptionFormatter(fmt="%(message)s")
        try:
            try:
                raise ConnectionError("refused")
            except ConnectionError as e:
                raise RuntimeError("lookup failed") from e
        except RuntimeError:
            text = formatter.formatException(sys.exc_info())

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == ["╰─► ConnectionError: refused", "╰─► RuntimeError: lookup failed"]

    def test_json_format_carries_job_id(self) -> None:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s", app_name="revyou-test"
        )
        token = set_job_id("job-42")
        try:
            record = make_record("imported")
        finally:
            job_id_var.reset(token)

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "imported"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "revyou.test"
        assert payload["app"] == "revyou-test"
        assert payload["job_id"] == "job-42"

    def test_json_format_omits_empty_job_id(self) -> None:
        formatter = CustomJsonFormatter("%(message)s")

        payload = json.loads(formatter.format(make_record()))

        assert "job_id" not in payload


@pytest.mark.usefixtures("restore_root_logger")
class TestConfigureLogging:
    def test_debug_level(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("revyou.anything").getEffectiveLevel() == logging.DEBUG

    def test_single_handler_with_job_filter(self) -> None:
        configure_logging(log_level="INFO", json_format=True)

        [handler] = logging.getLogger().handlers
        assert isinstance(handler.formatter, CustomJsonFormatter)
        assert any(isinstance(f, JobContextFilter) for f in handler.filters)

    def test_httpx_is_quieted(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
