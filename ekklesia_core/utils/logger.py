"""
Logging for the tenant governance core.

Console output carries the message plus ``key=value`` extras on one line.
When enabled, the same records are also shipped as JSON documents to an
Azure Storage Queue so a log collector can pick them up.
"""

import logging
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from azure.storage.queue import QueueClient, QueueServiceClient

from ..config import get_config
from ..constants import EnvironmentVariable
from .json_utils import dumps

ROOT_LOGGER_NAME = "ekklesia"

# Stamped by CallerContextFilter and promoted to top-level queue fields
CALLER_FIELDS = ("tenant_id", "caller_role")

# Attributes every LogRecord has; anything else arrived through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}

_configured_logger: Optional["ContextAwareLogger"] = None


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = get_config().logging.level
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


class ContextAwareLogger:
    """
    Wraps a stdlib logger so ``extra`` values are visible on plain consoles.

    ``logger.info("Church created", extra={"slug": "grace"})`` is written as
    ``Church created | slug=grace`` while ``slug`` stays on the record for
    the queue handler.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _emit(self, method: str, msg: str, extra: Optional[Dict[str, Any]] = None) -> None:
        extra = extra or {}
        if extra:
            rendered = " | ".join(f"{key}={value}" for key, value in extra.items())
            msg = f"{msg} | {rendered}"
        getattr(self.logger, method)(msg, extra=extra)

    def set_level(self, level):
        self.logger.setLevel(level)

    def debug(self, msg, extra=None):
        self._emit("debug", msg, extra)

    def info(self, msg, extra=None):
        self._emit("info", msg, extra)

    def warning(self, msg, extra=None):
        self._emit("warning", msg, extra)

    def error(self, msg, extra=None):
        self._emit("error", msg, extra)

    def exception(self, msg, extra=None):
        self._emit("exception", msg, extra)


class CallerContextFilter(logging.Filter):
    """Copies the bound caller's tenant and role onto each record."""

    def filter(self, record):
        from ..context.caller_context import CallerContext

        caller = CallerContext.get_current_caller()
        if caller is None:
            return True

        # an explicit tenant_id passed in ``extra`` is kept
        if caller.tenant_id and not hasattr(record, "tenant_id"):
            record.tenant_id = caller.tenant_id
        record.caller_role = caller.role.value
        return True


class AzureQueueHandler(logging.Handler):
    """
    Buffers structured log entries and sends them to an Azure Storage Queue.

    Each entry becomes one queue message. The buffer is sent when it reaches
    ``batch_size`` and on flush/close. Without a connection string the
    handler keeps buffering but never sends.
    """

    def __init__(
        self,
        queue_name: str = "logs-queue",
        connection_string: Optional[str] = None,
        batch_size: int = 10,
    ):
        super().__init__()
        self.queue_name = queue_name
        self.connection_string = connection_string or get_config().queue.connection_string
        self.batch_size = batch_size
        self.log_buffer: List[Dict[str, Any]] = []

        if self.connection_string:
            self._create_queue_if_missing()
        else:
            sys.stderr.write(
                f"{EnvironmentVariable.AZURE_STORAGE_CONNECTION.value} is not set, "
                "queue logging disabled\n"
            )

    def _create_queue_if_missing(self) -> None:
        try:
            service = QueueServiceClient.from_connection_string(self.connection_string)
            existing = {queue.name for queue in service.list_queues()}
            if self.queue_name not in existing:
                service.create_queue(self.queue_name)
        except Exception as e:
            sys.stderr.write(f"Could not prepare log queue {self.queue_name}: {e}\n")

    def build_entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        """JSON-ready dict for one record; custom extras are nested under ``context``."""
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            {field: getattr(record, field) for field in CALLER_FIELDS if hasattr(record, field)}
        )

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
            and key not in CALLER_FIELDS
            and not key.startswith("_")
            and not callable(value)
        }
        if context:
            entry["context"] = context

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": [
                    line.rstrip() for line in traceback.format_exception(*record.exc_info)
                ],
            }
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.log_buffer.append(self.build_entry(record))
        except Exception:
            self.handleError(record)
            return
        if len(self.log_buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not (self.log_buffer and self.connection_string):
            return

        try:
            client = QueueClient.from_connection_string(
                conn_str=self.connection_string, queue_name=self.queue_name
            )
        except Exception as e:
            sys.stderr.write(f"Could not connect to log queue {self.queue_name}: {e}\n")
            return

        pending, self.log_buffer = self.log_buffer, []
        for entry in pending:
            try:
                client.send_message(dumps(entry))
            except Exception as e:
                sys.stderr.write(f"Dropped log entry for {self.queue_name}: {e}\n")

    def close(self) -> None:
        self.flush()
        super().close()


def configure_logging(
    name: str = ROOT_LOGGER_NAME,
    log_level: Optional[Union[int, str]] = None,
    enable_queue: Optional[bool] = None,
    queue_name: Optional[str] = None,
    queue_batch_size: int = 10,
    connection_string: Optional[str] = None,
) -> ContextAwareLogger:
    """
    Set up the ``ekklesia.<name>`` logger and make it the one get_logger() returns.

    Any argument left as None is taken from the application config. Handlers
    from an earlier call are closed and replaced.
    """
    global _configured_logger

    app_config = get_config()
    level = _resolve_level(log_level)
    if enable_queue is None:
        enable_queue = app_config.features.enable_logs_queue
    queue_name = queue_name or app_config.queue.logs_queue_name
    connection_string = connection_string or app_config.queue.connection_string

    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    logger.setLevel(level)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    caller_filter = CallerContextFilter()
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(logging.Formatter("%(message)s"))
    if enable_queue:
        handlers.append(
            AzureQueueHandler(
                queue_name=queue_name,
                connection_string=connection_string,
                batch_size=queue_batch_size,
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(caller_filter)
        logger.addHandler(handler)

    _configured_logger = ContextAwareLogger(logger)
    _configured_logger.info(
        "Logger configured",
        extra={
            "logger_name": logger.name,
            "queue_logging": enable_queue,
            "queue_name": queue_name if enable_queue else None,
        },
    )
    return _configured_logger


def get_logger(log_level: Optional[Union[int, str]] = None) -> ContextAwareLogger:
    """The logger from configure_logging(), or the bare ``ekklesia`` logger before that."""
    if _configured_logger is not None:
        return _configured_logger

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(_resolve_level(log_level))
    return ContextAwareLogger(logger)


def reset_logging() -> None:
    global _configured_logger
    _configured_logger = None
