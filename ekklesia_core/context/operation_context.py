"""
Operation tracking for service calls.

``@operation()`` wraps a service method in ``OperationHandler.operation``,
which writes ENTER, EXIT and ERROR log lines sharing one operation id and
the request's correlation id. Domain errors passing through pick up the
operation name, id and duration before they are re-raised.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union, cast

from ..config import get_config
from ..constants import LogContextKey, OperationStatus
from ..exceptions import BaseError, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger
from .caller_context import CallerContext

F = TypeVar("F", bound=Callable[..., Any])

# Containers at or above this size are logged by type name only
_MAX_LOGGED_ITEMS = 10


class OperationContext:
    """One running operation: ids, start time, extra context and metrics."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())
        # nested operations inherit the correlation id already bound to the thread
        self.correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context: Dict[str, Any] = dict(context, **self.ids)
        self.metrics: Dict[str, Union[int, float]] = {}
        self._started = time.perf_counter()

    @property
    def ids(self) -> Dict[str, str]:
        return {
            LogContextKey.OPERATION_ID.value: self.operation_id,
            LogContextKey.CORRELATION_ID.value: self.correlation_id,
        }

    @property
    def duration_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def add_context(self, **kwargs) -> None:
        self.context.update(kwargs)

    def add_metric(self, name: str, value: Union[int, float]) -> None:
        self.metrics[name] = value

    def outcome(self, status: OperationStatus, **fields) -> Dict[str, Any]:
        """Log fields for the EXIT or ERROR line."""
        return {
            **self.context,
            LogContextKey.DURATION_MS.value: self.duration_ms,
            LogContextKey.STATUS.value: status.value,
            **fields,
        }


def _caller_fields() -> Dict[str, str]:
    caller = CallerContext.get_current_caller()
    if caller is None:
        return {}
    fields = {LogContextKey.CALLER_ROLE.value: caller.role.value}
    if caller.tenant_id:
        fields[LogContextKey.TENANT_ID.value] = caller.tenant_id
    return fields


class OperationHandler:
    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context) -> Iterator[OperationContext]:
        """
        Track ``name`` for the duration of the block.

        The bound caller's role and tenant are added to ``context`` unless
        already present. Exceptions are logged and re-raised unchanged.
        """
        op = OperationContext(name, **{**_caller_fields(), **context})
        self.logger.info(f"ENTER: {name}", extra=dict(op.context))

        try:
            yield op
        except BaseError as e:
            e.add_context(
                operation_name=name,
                operation_id=op.operation_id,
                operation_duration_ms=op.duration_ms,
            )
            # the error already logged its own details when it was built
            self.logger.error(
                f"ERROR: {name} -> {e.error_code.value}: {e.message}",
                extra=op.outcome(
                    OperationStatus.ERROR,
                    error_id=e.error_id,
                    **{LogContextKey.ERROR_CODE.value: e.error_code.value},
                ),
            )
            raise
        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}: {e}",
                extra=op.outcome(OperationStatus.ERROR, error_type=type(e).__name__),
            )
            raise

        self.logger.info(
            f"EXIT: {name}", extra=op.outcome(OperationStatus.SUCCESS, **op.metrics)
        )


def _sanitize_param(param):
    """Scalars as-is, small containers recursively, anything else by type name."""
    if param is None or isinstance(param, (str, int, float, bool)):
        return param
    if isinstance(param, dict) and len(param) < _MAX_LOGGED_ITEMS:
        return {key: _sanitize_param(value) for key, value in param.items()}
    if isinstance(param, (list, tuple)) and len(param) < _MAX_LOGGED_ITEMS:
        return [_sanitize_param(item) for item in param]
    return type(param).__name__


def _bound_instance(func: Callable, args: tuple) -> Optional[Any]:
    if args and hasattr(args[0], func.__name__):
        return args[0]
    return None


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorate a service method (or function) as a tracked operation.

    Usable bare (``@operation``) or called (``@operation(name="tenant.create")``).
    The default name is ``<module>.<Class>.<method>`` or ``<module>.<function>``.
    Tracking is skipped when ``features.enable_operation_context`` is off.
    """

    def decorator(func: F) -> F:
        module = func.__module__
        short_module = module.rsplit(".", 1)[-1]

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if not get_config().features.enable_operation_context:
                return func(*args, **kwargs)

            instance = _bound_instance(func, args)
            context: Dict[str, Any] = {LogContextKey.SOURCE_MODULE.value: module}
            if instance is not None:
                class_name = type(instance).__name__
                context["class"] = class_name
                op_name = name or f"{short_module}.{class_name}.{func.__name__}"
                call_args = args[1:]
            else:
                op_name = name or f"{short_module}.{func.__name__}"
                call_args = args

            get_logger().debug(
                f"{op_name} called",
                extra={
                    "call_args": [_sanitize_param(a) for a in call_args],
                    "call_kwargs": {k: _sanitize_param(v) for k, v in kwargs.items()},
                },
            )

            with OperationHandler().operation(op_name, **context):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    if callable(name):
        func, name = name, None
        return decorator(func)
    return decorator
