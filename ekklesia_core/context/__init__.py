"""Context management for operations and the authenticated caller."""

from .caller_context import CallerContext, caller_context
from .operation_context import OperationContext, OperationHandler, operation

__all__ = [
    "operation",
    "OperationContext",
    "OperationHandler",
    "CallerContext",
    "caller_context",
]
