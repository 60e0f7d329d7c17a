"""Logging setup for hevcfetch.

Records are stamped with the current video ID and the seconds elapsed since
startup, then rendered either as one human-readable line with ``key:value``
extras or as JSON. Structured attributes of logged exceptions (and of every
exception in their cause chain) are lifted onto the record so they show up
as extras too.
"""

from collections.abc import Callable, Iterator, Mapping
from contextvars import ContextVar
import json
import logging
from logging.config import dictConfig
import sys
import time
from typing import Any, Literal

_base_record_factory = logging.getLogRecordFactory()

_context_id_var: ContextVar[str | None] = ContextVar("context_id", default=None)

_should_include_stacktrace: bool = False

# Attributes every LogRecord has, plus the ones added by this module.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "asctime",
    "message",
    "context_id",
    "elapsed_seconds",
    "exc_custom_attrs",
    "semantic_trace",
}


def _exception_chain(exc: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def custom_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    """Build a LogRecord and attach details of any logged exception chain.

    Public attributes of each exception in the chain (``attempts``,
    ``diagnostics``, ...) are merged into ``exc_custom_attrs``, outermost
    first, and every message is appended to ``semantic_trace``.
    """
    record = _base_record_factory(*args, **kwargs)
    if not record.exc_info or record.exc_info[1] is None:
        return record

    attrs: dict[str, Any] = {}
    trace: list[str] = []
    for exc in _exception_chain(record.exc_info[1]):
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                attrs.setdefault(name, value)
        trace.append(str(exc))

    if attrs:
        record.exc_custom_attrs = attrs
    record.semantic_trace = trace
    return record


def set_context_id(context_id: str) -> None:
    """Tag log records from the current context with ``context_id``."""
    _context_id_var.set(context_id)


class ContextIdFilter(logging.Filter):
    """Copy the current context ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Set ``record.context_id`` when a context ID is active."""
        context_id = _context_id_var.get()
        if context_id is not None:
            record.context_id = context_id
        return True


class ElapsedTimeFilter(logging.Filter):
    """Stamp each record with seconds elapsed since the filter was created.

    Attributes:
        _clock: Monotonic time source in seconds.
        _start: Clock reading at construction.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        super().__init__()
        self._clock = clock or time.monotonic
        self._start = self._clock()

    def filter(self, record: logging.LogRecord) -> bool:
        """Set ``record.elapsed_seconds``."""
        record.elapsed_seconds = self._clock() - self._start
        return True


def _render_value(value: Any) -> str:
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, sort_keys=True, separators=(", ", ":"), default=str)
    return str(value)


class HumanReadableExtrasFormatter(logging.Formatter):
    """One-line formatter: prefix, ``key:value`` extras, then the message.

    The prefix holds timestamp, level, logger name, elapsed time and context
    ID. A logged exception is summarized as its message chain, or printed as
    a full traceback when stack traces are enabled.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: Mapping[str, Any] | None = None,
    ):
        super().__init__(fmt, datefmt, style, validate, defaults=defaults)

    def _prefix(self, record: logging.LogRecord) -> str:
        parts = [self.formatTime(record, self.datefmt), record.levelname]
        parts.append(f"[{record.name}]")
        elapsed = getattr(record, "elapsed_seconds", None)
        if isinstance(elapsed, int | float):
            parts.append(f"+{elapsed:.1f}s")
        context_id = getattr(record, "context_id", None)
        if context_id is not None:
            parts.append(f"CtxID:{context_id}")
        return " ".join(parts)

    def _extras(self, record: logging.LogRecord) -> str:
        extras: dict[str, Any] = dict(getattr(record, "exc_custom_attrs", None) or {})
        extras.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        pairs = (f"{key}:{_render_value(value)}" for key, value in extras.items())
        return " ".join(pairs)

    def _exception_text(self, record: logging.LogRecord) -> str:
        if _should_include_stacktrace and record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
            return record.exc_text
        trace: list[str] = getattr(record, "semantic_trace", None) or []
        if not trace:
            return ""
        first, *causes = trace
        return f"Error: {first}" + "".join(f"\n  Caused by: {c}" for c in causes)

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a single human-readable line."""
        message = record.getMessage()
        parts = [
            self._prefix(record),
            self._extras(record),
            f"- {message}" if message else "-",
        ]
        line = " ".join(part for part in parts if part)

        if record.exc_info:
            exception_text = self._exception_text(record)
            if exception_text:
                line += "\n" + exception_text
        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)
        return line


def _dict_config(
    formatter: str, level: str, clock: Callable[[], float] | None
) -> dict[str, Any]:
    elapsed_filter: dict[str, Any] = {"()": ElapsedTimeFilter}
    if clock is not None:
        elapsed_filter["clock"] = clock
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "context_id_filter": {"()": ContextIdFilter},
            "elapsed_time_filter": elapsed_filter,
        },
        "formatters": {
            "human_readable_formatter": {
                "()": HumanReadableExtrasFormatter,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json_formatter": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console_handler": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
                "filters": ["context_id_filter", "elapsed_time_filter"],
            },
        },
        "loggers": {
            "hevcfetch": {
                "handlers": ["console_handler"],
                "level": level,
                "propagate": False,
            },
        },
        "root": {"handlers": ["console_handler"], "level": "WARNING"},
    }


def setup_logging(
    log_format_type: Literal["human", "json"],
    app_log_level_name: str,
    include_stacktrace: bool,
    clock: Callable[[], float] | None = None,
) -> None:
    """Configure the ``hevcfetch`` loggers and the root logger.

    Args:
        log_format_type: ``human`` for one-line text, ``json`` for JSON lines.
        app_log_level_name: Level name for ``hevcfetch`` loggers,
            case-insensitive. Unknown names fall back to INFO.
        include_stacktrace: Print tracebacks instead of error summaries.
        clock: Time source for elapsed-time stamps; defaults to
            ``time.monotonic``.
    """
    global _should_include_stacktrace
    _should_include_stacktrace = include_stacktrace

    logging.setLogRecordFactory(custom_record_factory)

    level = app_log_level_name.upper()
    if not isinstance(logging.getLevelNamesMapping().get(level), int):
        print(
            f"Warning: Invalid LOG_LEVEL '{app_log_level_name}'. Defaulting to INFO.",
            file=sys.stderr,
        )
        level = "INFO"

    formatter = (
        "json_formatter"
        if log_format_type.lower() == "json"
        else "human_readable_formatter"
    )
    dictConfig(_dict_config(formatter, level, clock))
