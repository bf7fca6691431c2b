"""
Structured Logging - Monitoring Layer

Log setup for the file service. Every record can carry the request id and
the authenticated user id of the request that produced it, either as JSON
fields (production) or in the text line (development, tests).

@.architecture
Incoming: app.py, api/dependencies.py, All modules via get_logger() --- {preset name, level/format overrides, optional log file, request_id/user_id}
Processing: configure_logging(), configure_from_preset(), JSONFormatter.format(), RequestContextFilter.filter(), set_request_context() --- {4 jobs: context_injection, formatting, log_configuration, structured_logging}
Outgoing: sys.stdout, Log file, All modules --- {StructuredLogger instances, JSON or text log lines}
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

SERVICE_NAME = "filevault"

# Per-request context, set by the API dependencies
request_id_ctx: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_ctx: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

TEXT_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-32s | [%(request_id)s %(user_id)s] | %(message)s'


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Fields: timestamp, level, service, logger, message, source location,
    request_id/user_id when a request is in flight, exception details and
    any keyword fields passed to StructuredLogger.
    """

    def __init__(self, service: str = SERVICE_NAME, include_traceback: bool = True):
        super().__init__()
        self.service = service
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'service': self.service,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }

        request_id = request_id_ctx.get()
        if request_id:
            entry['request_id'] = request_id
        user_id = user_id_ctx.get()
        if user_id:
            entry['user_id'] = user_id

        if record.exc_info and record.exc_info[0] is not None:
            error = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
            }
            if self.include_traceback:
                error['traceback'] = traceback.format_exception(*record.exc_info)
            entry['exception'] = error

        fields = getattr(record, 'extra_fields', None)
        if fields:
            entry['extra'] = fields

        return json.dumps(entry, default=str)


class RequestContextFilter(logging.Filter):
    """Copy request_id/user_id onto records so the text format can print them."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or '-'
        record.user_id = user_id_ctx.get() or '-'
        return True


class StructuredLogger:
    """
    Thin wrapper over a stdlib logger.

    Keyword arguments are attached to the record as extra fields and show
    up under "extra" in JSON output:

        logger.info("Stored file", filename=name, size=len(content))

    Pass exc_info=True to attach the active exception.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {'extra_fields': fields} if fields else {}
        self._logger.log(level, message, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, **fields)

    def critical(self, message: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the current exception's traceback."""
        self._log(logging.ERROR, message, exc_info=True, **fields)


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[Path] = None,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Install handlers on the root logger.

    Replaces any handlers already installed, so calling it again (tests,
    reloads) does not duplicate output.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text"
        log_file: Also write to this file (parent directories are created)
        module_levels: Per-logger levels, e.g. {"data.database": "WARNING"}
    """
    if format_type == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(level))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestContextFilter())
        root_logger.addHandler(handler)

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(_level(module_level))


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module (pass __name__)."""
    return StructuredLogger(name)


def set_request_context(
    request_id: Optional[str] = None,
    user_id: Optional[str] = None
) -> None:
    """
    Bind request metadata to the current task's log records.

    Only non-empty values are set; the other variable keeps its value.
    """
    if request_id:
        request_id_ctx.set(request_id)
    if user_id:
        user_id_ctx.set(user_id)


def clear_request_context() -> None:
    request_id_ctx.set(None)
    user_id_ctx.set(None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


# =============================================================================
# Presets
# =============================================================================

LOGGING_PRESETS: Dict[str, Dict[str, Any]] = {
    'development': {
        'level': 'DEBUG',
        'format_type': 'text',
        'module_levels': {
            'asyncio': 'WARNING',
            'multipart': 'WARNING',
        }
    },
    'production': {
        'level': 'INFO',
        'format_type': 'json',
        'module_levels': {
            'uvicorn.access': 'WARNING',
            'asyncio': 'WARNING',
            'multipart': 'WARNING',
            # Pool open/close chatter
            'data.database.connection': 'WARNING',
        }
    },
    'testing': {
        'level': 'WARNING',
        'format_type': 'text',
        'module_levels': {}
    }
}


def configure_from_preset(preset: str = 'development', **overrides: Any) -> None:
    """
    Configure logging from a named preset.

    Args:
        preset: 'development', 'production' or 'testing'
        **overrides: Replace preset values (level, format_type, log_file, ...)

    Raises:
        ValueError: Unknown preset name
    """
    if preset not in LOGGING_PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(LOGGING_PRESETS)}")

    config = dict(LOGGING_PRESETS[preset])
    config.update({key: value for key, value in overrides.items() if value is not None})

    configure_logging(**config)
