"""Structured logging configuration with JSON formatting and import job context."""

import contextvars
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, every background import job runs in its own asyncio task, and contextvars
# are copied per task. The runner sets the job id at the start of the task, so EVERY log line
# emitted by the orchestrator/reconciler/clients while that job runs carries it. Two jobs
# interleaving their logs are still tellable apart. Default "" = not inside a job.
job_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("import_job_id", default="")


def get_job_id() -> str:
    """Current import job id, or "" outside a job."""
    return job_id_var.get()


def set_job_id(job_id: str) -> contextvars.Token[str]:
    """Bind a job id to the current context. Returns the token for reset()."""
    return job_id_var.set(job_id)


class JobContextFilter(logging.Filter):
    """Add job_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job_id = get_job_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that prints exception chains as one line per exception.

    Only frames from our own package are kept, e.g.:

        ERROR │ revyou.application.workers.import_job_runner:120 │ Import job abc failed
        ╰─► ConnectError: All connection attempts failed
            File "deezer_client.py", line 112, in _api_request
              response = await client.get(endpoint, params=params)
        ╰─► ExternalServiceError: Deezer API error: /search/artist: ...
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        job_id = getattr(record, "job_id", "")
        return f"[job {job_id[:8]}] {message}" if job_id else message

    def formatException(self, ei: Any) -> str:
        _exc_type, exc_value, _exc_tb = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()  # root cause first

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            for frame in traceback.extract_tb(exc.__traceback__):
                if "revyou" not in frame.filename or "/site-packages/" in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter adding app name, level, logger and job id."""

    def __init__(self, *args: Any, app_name: str = "revyou", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.app_name = app_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["app"] = self.app_name
        log_record["line"] = record.lineno

        job_id = getattr(record, "job_id", "")
        if job_id:
            log_record["job_id"] = job_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, call this ONCE at startup (the FastAPI lifespan does). It replaces all
# root handlers, so calling it in tests resets whatever pytest's caplog installed. The httpx
# quieting matters: a Deezer discography fetch is 50+ requests and httpx logs each one at INFO.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "revyou",
) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format for logs (recommended for production)
        app_name: Application name to include in JSON logs
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(JobContextFilter())

    formatter: logging.Formatter
    if json_format:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            app_name=app_name,
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
