"""
Error types raised by the tenant governance core.

Every error derives from BaseError, which carries an ErrorCode, the HTTP
status an adapter should answer with, free-form context and an optional
cause, and logs itself when raised. Anything that is not a BaseError is
wrapped into a DatabaseError by the services before it leaves the core.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

_correlation = threading.local()

# Context keys that are bookkeeping rather than caller-supplied detail
_INTERNAL_KEYS = frozenset({"cause", "error_id", "correlation_id"})


class ErrorCode(str, Enum):
    """Stable codes clients can switch on; the leading digit groups them."""

    # 1xxx system
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"

    # 2xxx input
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # 3xxx resources
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    LIMIT_EXCEEDED = "3005"

    # 4xxx rules
    BUSINESS_RULE_VIOLATION = "4000"
    PERMISSION_DENIED = "4003"


def _describe_cause(cause: BaseException) -> Dict[str, Any]:
    return {
        "type": type(cause).__name__,
        "message": str(cause),
        "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
    }


class BaseError(Exception):
    """
    Root of the core's errors.

    Subclasses set ``default_code`` and ``default_status``; both can still be
    overridden per instance. Keyword arguments beyond the named ones become
    ``context`` and are logged and serialized with the error.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.status_code = status_code or self.default_status
        self.cause = cause
        self.error_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc).isoformat()

        self.context: Dict[str, Any] = dict(context, error_id=self.error_id)
        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id
        if cause is not None:
            self.context["cause"] = _describe_cause(cause)

        self._log_error()

    @property
    def correlation_id(self) -> Optional[str]:
        return self.context.get("correlation_id")

    def _public_context(self) -> Dict[str, Any]:
        return {k: v for k, v in self.context.items() if k not in _INTERNAL_KEYS}

    def _log_error(self) -> None:
        # logger imports config, which must not import this module back at load time
        from .utils.logger import get_logger

        logger = get_logger()
        code = self.error_code.value
        details = {
            "error_id": self.error_id,
            "error_code": code,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "correlation_id": self.correlation_id,
            "context": self._public_context(),
        }

        if self.status_code >= 500:
            logger.error(f"Error {code}: {self.message}", extra=details)
        elif self.status_code >= 400:
            logger.warning(f"Client error {code}: {self.message}", extra=details)
        else:
            logger.info(f"Error {code}: {self.message}", extra=details)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Response body for an adapter: ``{"error": {...}}``.

        Cause details are omitted unless ``include_cause`` is set; the cause
        traceback additionally needs ``include_traceback``.
        """
        body: Dict[str, Any] = {
            "id": self.error_id,
            "code": self.error_code.value,
            "type": type(self).__name__,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": self._public_context(),
        }
        if self.correlation_id:
            body["correlation_id"] = self.correlation_id

        cause = self.context.get("cause")
        if include_cause and cause:
            body["cause"] = {"type": cause["type"], "message": cause["message"]}
            if include_traceback:
                body["cause"]["traceback"] = cause["traceback"]

        return {"error": body}

    def add_context(self, **kwargs: Any) -> "BaseError":
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """This error followed by each ``cause`` in turn."""
        chain: List[Exception] = []
        current: Optional[Exception] = self
        while current is not None:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


class ValidationError(BaseError):
    """Input failed field-level rules. Carries every failing field at once."""

    default_code = ErrorCode.VALIDATION_FAILED
    default_status = 400

    def __init__(
        self,
        message: str,
        field_errors: Optional[Mapping[str, str]] = None,
        error_code: Optional[ErrorCode] = None,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        self.field_errors: Dict[str, str] = dict(field_errors or {})
        if self.field_errors:
            context["field_errors"] = self.field_errors
        super().__init__(message, error_code, cause=cause, **context)


class AlreadyExistsError(BaseError):
    """A unique field (slug or email) is already taken by another tenant."""

    default_code = ErrorCode.DUPLICATE
    default_status = 409

    def __init__(self, field: str, value: Any, cause: Optional[Exception] = None, **context: Any):
        self.field = field
        self.value = value
        super().__init__(
            f"A church with this {field} already exists",
            cause=cause,
            field=field,
            value=value,
            **context,
        )


class NotFoundError(BaseError):
    default_code = ErrorCode.NOT_FOUND
    default_status = 404

    def __init__(
        self,
        identifier: str,
        identifier_type: str = "id",
        resource_type: str = "Church",
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        self.identifier = identifier
        self.identifier_type = identifier_type
        super().__init__(
            f'{resource_type} with {identifier_type} "{identifier}" not found',
            cause=cause,
            resource_type=resource_type,
            identifier=identifier,
            identifier_type=identifier_type,
            **context,
        )


class SettingsNotFoundError(BaseError):
    """Raised when updating settings for a tenant that has no settings row yet."""

    default_code = ErrorCode.NOT_FOUND
    default_status = 404

    def __init__(self, tenant_id: str, cause: Optional[Exception] = None, **context: Any):
        self.tenant_id = tenant_id
        super().__init__(
            f'Settings for church with ID "{tenant_id}" not found',
            cause=cause,
            tenant_id=tenant_id,
            **context,
        )


class BusinessRuleError(BaseError):
    """
    A structurally valid request that would break a system-wide rule.

    ``reason`` is a short machine-readable tag such as ``last_active_tenant``.
    """

    default_code = ErrorCode.BUSINESS_RULE_VIOLATION
    default_status = 400

    def __init__(
        self, message: str, reason: str, cause: Optional[Exception] = None, **context: Any
    ):
        self.reason = reason
        super().__init__(message, cause=cause, reason=reason, **context)


class DatabaseError(BaseError):
    """Unclassified storage failure, named after the operation that hit it."""

    default_code = ErrorCode.DATABASE_ERROR

    def __init__(self, operation: str, cause: Optional[Exception] = None, **context: Any):
        self.operation = operation
        super().__init__(
            f"Database operation failed: {operation}",
            cause=cause,
            operation=operation,
            original_message=str(cause) if cause is not None else "unknown error",
            **context,
        )


class PermissionDeniedError(BaseError):
    default_code = ErrorCode.PERMISSION_DENIED
    default_status = 403

    def __init__(self, action: str, role: Optional[str] = None, **context: Any):
        self.action = action
        super().__init__(
            f"Insufficient permissions to {action}", action=action, role=role, **context
        )


class SlugGenerationError(BaseError):
    """Every candidate slug up to the attempt limit was taken."""

    default_code = ErrorCode.LIMIT_EXCEEDED

    def __init__(self, name: str, attempts: int, **context: Any):
        super().__init__(
            f'Failed to generate unique slug for church "{name}" after {attempts} attempts',
            name=name,
            attempts=attempts,
            **context,
        )


class ConfigurationError(BaseError):
    default_code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None, **context: Any):
        super().__init__(message, cause=cause, **context)


def set_correlation_id(correlation_id: str) -> None:
    _correlation.value = correlation_id


def get_correlation_id() -> Optional[str]:
    return getattr(_correlation, "value", None)


def clear_correlation_id() -> None:
    _correlation.__dict__.pop("value", None)
