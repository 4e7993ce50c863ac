"""
Caller context management for the tenant governance core.

The HTTP layer binds the authenticated caller for the duration of a request;
logging picks it up through CallerContextFilter and operation logs through
the @operation decorator.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

from ..schemas.caller_schema import Caller
from ..utils.logger import get_logger


class CallerContext:
    """
    Holds the current caller in thread-local storage.
    """

    _thread_local = threading.local()

    @classmethod
    def set_current_caller(cls, caller: Caller) -> None:
        cls._thread_local.caller = caller
        get_logger().debug(
            "Caller bound", extra={"caller_role": caller.role.value, "tenant_id": caller.tenant_id}
        )

    @classmethod
    def get_current_caller(cls) -> Optional[Caller]:
        """
        Get the caller bound to the current thread.

        Returns:
            Current Caller or None if not set
        """
        return getattr(cls._thread_local, "caller", None)

    @classmethod
    def get_current_tenant_id(cls) -> Optional[str]:
        caller = cls.get_current_caller()
        return caller.tenant_id if caller is not None else None

    @classmethod
    def clear_current_caller(cls) -> None:
        if hasattr(cls._thread_local, "caller"):
            delattr(cls._thread_local, "caller")


@contextmanager
def caller_context(caller: Caller) -> Generator[Caller, None, None]:
    """
    Context manager binding a caller for the duration of the block.

    The previously bound caller, if any, is restored afterward.

    Args:
        caller: Authenticated caller

    Yields:
        The bound caller
    """
    previous = CallerContext.get_current_caller()
    CallerContext.set_current_caller(caller)
    try:
        yield caller
    finally:
        if previous is not None:
            CallerContext.set_current_caller(previous)
        else:
            CallerContext.clear_current_caller()
