"""
Logging configuration for the SMART Health Card generator.

Provides structured JSON logging so each example's pipeline run can be
followed even when several bundles are processed concurrently.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Optional

# Context variable for the example currently being generated.
# asyncio tasks copy the context, so each bundle task keeps its own value.
example_id_var: ContextVar[str] = ContextVar('example_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format suitable for
    log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        example_id = example_id_var.get()
        if example_id:
            log_data["example_id"] = example_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


class GenerationLogger:
    """
    Event logger for the generation pipeline.

    One method per pipeline event; every record carries an event_type
    and the current example id.
    """

    def __init__(self, name: str = "shcgen.events"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        extra = {
            "event_type": event_type,
            "example_id": example_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def fault_case_selected(self, case: str) -> None:
        level = logging.INFO if case == "none" else logging.WARNING
        self._log(
            level,
            "FAULT_CASE_SELECTED",
            fault_case=case,
            message=f"Generating with fault case {case}"
        )

    def bundle_trimmed(self, source: str, entries: int) -> None:
        self._log(
            logging.INFO,
            "BUNDLE_TRIMMED",
            source=source,
            entries=entries,
            message=f"Trimmed {entries} entries from {source}"
        )

    def reference_fallback(self, reference: str, target: str) -> None:
        """Log an unresolved Patient reference redirected to the first entry."""
        self._log(
            logging.WARNING,
            "REFERENCE_FALLBACK",
            reference=reference,
            target=target,
            message=f"Unresolved reference {reference} pointed at {target}"
        )

    def token_signed(self, kid: Optional[str], alg: str, length: int, compressed: bool) -> None:
        self._log(
            logging.INFO,
            "TOKEN_SIGNED",
            kid=kid,
            alg=alg,
            length=length,
            compressed=compressed,
            message=f"Signed {length} character token with {alg}"
        )

    def token_chunked(self, length: int, chunks: int) -> None:
        self._log(
            logging.INFO,
            "TOKEN_CHUNKED",
            length=length,
            chunks=chunks,
            message=f"Split {length} character token into {chunks} chunk(s)"
        )

    def qr_skipped(self, reason: str) -> None:
        self._log(
            logging.WARNING,
            "QR_SKIPPED",
            reason=reason,
            message=f"No QR codes rendered: {reason}"
        )

    def example_written(self, files: int) -> None:
        self._log(
            logging.INFO,
            "EXAMPLE_WRITTEN",
            files=files,
            message=f"Wrote {files} artifact files"
        )

    def example_failed(self, source: str, error: str) -> None:
        self._log(
            logging.ERROR,
            "EXAMPLE_FAILED",
            source=source,
            error=error,
            message=f"Example from {source} failed: {error}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the generator.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Artifacts may go to stdout, keep logs on stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_example_id(example_id: str) -> str:
    """Set the example ID for the current context."""
    example_id_var.set(example_id)
    return example_id


# Global event logger instance
event_log = GenerationLogger()
