"""Logging for strictify, on top of logfire.

Every module imports the `logger` proxy at load time; it stays silent
until setup_logger() installs a configured Logger. Messages are
logfire spans, so keyword arguments travel as span attributes:

    logger.info("Found changed files", count=len(files))

Levels, most to least verbose:
    spew < trace < debug < info < warn < error < fatal
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import logfire
from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
    SpanExportResult,
)
from pydantic import Field, PrivateAttr, model_validator

from strictify.core.base import BaseConfig

# Level name -> OpenTelemetry severity number, ascending
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes that logfire and OpenTelemetry add on their own
_INTERNAL_ATTRIBUTES = frozenset({
    'code.filepath', 'code.lineno', 'code.function',
    'logfire.msg', 'logfire.msg_template', 'logfire.level_num',
    'logfire.span_type', 'logfire.json_schema',
})
_INTERNAL_PREFIXES = ('otel.', 'telemetry.', 'service.', 'process.')

_current_logger: Logger | None = None


def severity(level: str) -> int:
    """Severity number for a level name; unknown names mean info."""
    return LEVELS.get(level.lower(), LEVELS['info'])


def level_name(number: int) -> str:
    """Most severe level name whose threshold `number` reaches."""
    for name, threshold in reversed(LEVELS.items()):
        if number >= threshold:
            return name
    return 'spew'


class _LoggerProxy:
    """Stands in for the Logger until one is configured."""

    def __getattr__(self, name):
        if _current_logger is None:
            return _discard
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *exc_info):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*exc_info)


def _discard(*args, **kwargs):  # noqa: ARG001
    pass


logger = _LoggerProxy()


class LevelFilteringExporter(SpanExporter):
    """Passes on only spans at or above a minimum severity."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self._min_severity = severity(min_level)

    def _severity_of(self, span: ReadableSpan) -> int:
        attributes = span.attributes or {}
        return attributes.get('logfire.level_num', LEVELS['info'])

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        wanted = [
            span for span in spans
            if self._severity_of(span) >= self._min_severity
        ]
        if not wanted:
            return SpanExportResult.SUCCESS
        return self._exporter.export(wanted)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """A place log records go to.

    Sinks that need their own span processor create it in
    create_processor(); close() shuts it down again.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; inherits Logger.level when "
            "unset. One of spew, trace, debug, info, warn, error, fatal"
        ),
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Write newlines and tabs in messages as escapes",
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "str.format template with timestamp, level, message, "
            "location and function fields (None writes span JSON)"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    @staticmethod
    def _escape(text: str) -> str:
        return text.encode('unicode_escape').decode('ascii')

    @staticmethod
    def _user_attributes(span) -> dict:
        return {
            key: value
            for key, value in (span.attributes or {}).items()
            if key not in _INTERNAL_ATTRIBUTES
            and not key.startswith(_INTERNAL_PREFIXES)
        }

    @staticmethod
    def _template_fields(span) -> dict:
        attributes = span.attributes or {}
        filepath = attributes.get('code.filepath', '')
        lineno = attributes.get('code.lineno', '')
        return {
            'timestamp': datetime.fromtimestamp(
                span.start_time / 1e9, tz=UTC
            ),
            'level': level_name(
                attributes.get('logfire.level_num', LEVELS['info'])
            ),
            'message': attributes.get('logfire.msg', span.name),
            'location': f"{filepath}:{lineno}" if filepath else '',
            'function': attributes.get('code.function', ''),
        }

    def _format_span(self, span) -> str:
        """One line per span, with keyword attributes after a bar."""
        if not self.format_template:
            return span.to_json() + os.linesep

        fields = self._template_fields(span)
        if self.escape_special_characters:
            fields['message'] = self._escape(fields['message'])
        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = self._user_attributes(span)
        if extra:
            pairs = ' '.join(f"{k}={v!r}" for k, v in sorted(extra.items()))
            line = f"{line} │ {pairs}"
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Span processor for this sink, or None if logfire handles it."""

    def close(self):
        if self._processor is not None:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """stderr output, rendered by logfire itself."""

    verbose: bool = Field(
        default=False, description="Show full span details"
    )
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None

    def console_options(self) -> logfire.ConsoleOptions | bool:
        if not self.enabled:
            return False
        # logfire stops at trace
        level = 'trace' if self.level == 'spew' else (self.level or 'info')
        return logfire.ConsoleOptions(
            min_log_level=level,
            verbose=self.verbose,
            colors=self.colors,
            include_timestamps=True,
        )


class FileSink(Sink):
    """Appends formatted lines to a log file."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/strictify.log",
        description="Log file path; {log_root} and {run_name} are filled in",
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description="Format of each line",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        log_path = Path(self.path.format(log_root=log_root, run_name=run_name))
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Open until close(); line buffered
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level or "info")
        )

    def close(self):
        super().close()
        if self._file is not None and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.close()


class Logger(BaseConfig):
    """Configured logger: one console sink and one file sink."""

    level: str = Field(
        default="info",
        description="Level for sinks that do not set their own",
    )
    console: ConsoleSink = Field(
        default_factory=ConsoleSink, description="Console output"
    )
    file: FileSink = Field(
        default_factory=FileSink, description="File output"
    )

    @model_validator(mode='after')
    def _inherit_level(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Build sink processors and configure logfire with them."""
        processors = []
        for sink in (self.console, self.file):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)
                if sink._processor is not None:
                    processors.append(sink._processor)

        logfire.configure(
            service_name=f"strictify-{run_name}",
            send_to_logfire=False,
            console=self.console.console_options(),
            additional_span_processors=processors or None,
        )

    def log(self, level: str, msg: str, **kwargs):
        """Log `msg` at a level given by name."""
        logfire.log(severity(level), msg, attributes=kwargs or None)

    def spew(self, msg: str, **kwargs):
        """Subprocess chatter, below trace."""
        self.log('spew', msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self.log('trace', msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        self.log('debug', msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self.log('info', msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        self.log('warn', msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self.log('error', msg, **kwargs)

    def fatal(self, msg: str, **kwargs):
        self.log('fatal', msg, **kwargs)


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
) -> Logger:
    """Install the global Logger behind `logger`.

    Config calls this once loaded; tests call it directly.

    Args:
        log_root: Directory under which file sinks write
        run_name: Names the run in the service name and file path
        level: Level for sinks that do not set their own
        console: Console sink settings (defaults if None)
        file: File sink settings (defaults, i.e. disabled, if None)

    Returns:
        The installed Logger
    """
    global _current_logger

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
