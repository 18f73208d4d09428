"""Error taxonomy for the moderation engine.

Every error raised by the engine derives from :class:`CensorError` and renders with the
``censor:`` prefix. Sentinel kinds are subclasses so callers can ``except`` on them;
:class:`ProviderError` carries vendor codes, HTTP status and a retry classification.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

if TYPE_CHECKING:
    from collections.abc import Iterator


class ErrorCategory(StrEnum):
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    AUTH = "auth"
    CONFIG = "config"
    VALIDATION = "validation"
    PROVIDER = "provider"
    INTERNAL = "internal"


class CensorError(RuntimeError):
    """Base class for all moderation engine errors."""

    default_message: ClassVar[str] = "censor: internal error"
    category: ClassVar[ErrorCategory] = ErrorCategory.INTERNAL

    def __init__(self, detail: str | None = None) -> None:
        message = self.default_message if not detail else f"{self.default_message}: {detail}"
        super().__init__(message)
        self.detail = detail


class NoResourcesError(CensorError):
    default_message = "censor: no resources provided"
    category = ErrorCategory.VALIDATION


class InvalidResourceError(CensorError):
    default_message = "censor: invalid resource"
    category = ErrorCategory.VALIDATION


class ProviderNotFoundError(CensorError):
    default_message = "censor: provider not found"
    category = ErrorCategory.CONFIG


class StoreNotConfiguredError(CensorError):
    default_message = "censor: store not configured"
    category = ErrorCategory.CONFIG


class TaskNotFoundError(CensorError):
    default_message = "censor: task not found"


class CallbackInvalidError(CensorError):
    default_message = "censor: callback signature invalid"
    category = ErrorCategory.AUTH


class OperationTimeoutError(CensorError):
    default_message = "censor: operation timeout"
    category = ErrorCategory.TIMEOUT


class RateLimitedError(CensorError):
    default_message = "censor: rate limited by provider"
    category = ErrorCategory.RATE_LIMIT


class ContentTooLargeError(CensorError):
    default_message = "censor: content exceeds size limit"
    category = ErrorCategory.VALIDATION


class UnsupportedTypeError(CensorError):
    default_message = "censor: unsupported resource type"
    category = ErrorCategory.VALIDATION


class DuplicateSubmitError(CensorError):
    default_message = "censor: duplicate submission"
    category = ErrorCategory.VALIDATION


class RevisionConflictError(CensorError):
    default_message = "censor: revision conflict, stale update"


# Network -------------------------------------------------------------------------


class NetworkError(CensorError):
    default_message = "censor: network error"
    category = ErrorCategory.NETWORK


class NetworkUnreachableError(NetworkError):
    default_message = "censor: network unreachable"


class RefusedConnectionError(NetworkError):
    default_message = "censor: connection refused"


class DNSResolutionError(NetworkError):
    default_message = "censor: DNS resolution failed"


# Auth ----------------------------------------------------------------------------


class AuthError(CensorError):
    default_message = "censor: authentication error"
    category = ErrorCategory.AUTH


class AuthFailedError(AuthError):
    default_message = "censor: authentication failed"


class PermissionDeniedError(AuthError):
    default_message = "censor: permission denied"


class InvalidCredentialError(AuthError):
    default_message = "censor: invalid credentials"


# Config --------------------------------------------------------------------------


class ConfigError(CensorError):
    default_message = "censor: configuration error"
    category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    default_message = "censor: missing required configuration"


class InvalidConfigError(ConfigError):
    default_message = "censor: invalid configuration"


class ProviderDisabledError(ConfigError):
    default_message = "censor: provider is disabled"


# Structured errors ---------------------------------------------------------------

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_CATEGORIES = frozenset(
    {ErrorCategory.NETWORK, ErrorCategory.RATE_LIMIT, ErrorCategory.TIMEOUT}
)


def category_for_status(status_code: int) -> ErrorCategory:
    if status_code in {401, 403}:
        return ErrorCategory.AUTH
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT
    if status_code in {408, 504}:
        return ErrorCategory.TIMEOUT
    if status_code >= 500:
        return ErrorCategory.INTERNAL
    return ErrorCategory.PROVIDER


class ProviderError(CensorError):
    """Raised when a moderation provider rejects or fails a call."""

    def __init__(
        self,
        provider: str,
        code: str,
        message: str,
        *,
        status_code: int = 0,
        category: ErrorCategory | None = None,
        raw: Any = None,
    ) -> None:
        self.provider = provider
        self.code = code
        self.message = message
        self.status_code = status_code
        self.raw = raw
        if category is None:
            category = category_for_status(status_code) if status_code else ErrorCategory.PROVIDER
        self.error_category = category
        if status_code > 0:
            rendered = f"censor: provider {provider} error [{status_code}/{code}]: {message}"
        else:
            rendered = f"censor: provider {provider} error [{code}]: {message}"
        RuntimeError.__init__(self, rendered)
        self.detail = message

    @property
    def retryable(self) -> bool:
        return (
            self.error_category in _RETRYABLE_CATEGORIES
            or self.status_code in RETRYABLE_STATUS_CODES
        )


class ValidationError(CensorError):
    category = ErrorCategory.VALIDATION

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        RuntimeError.__init__(self, f"censor: validation error on {field}: {message}")
        self.detail = message


class StoreError(CensorError):
    """Wraps a persistence failure with the operation and table it happened on."""

    def __init__(self, operation: str, table: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.table = table
        self.cause = cause
        RuntimeError.__init__(
            self, f"censor: store error during {operation} on {table}: {cause}"
        )
        self.detail = str(cause)


# Classification helpers ----------------------------------------------------------

_NETWORK_PATTERNS = (
    "connection refused",
    "connection reset",
    "no such host",
    "network is unreachable",
    "i/o timeout",
    "connection timed out",
    "dial tcp",
    "dial udp",
)


_RETRYABLE_KINDS = (
    OperationTimeoutError,
    RateLimitedError,
    NetworkUnreachableError,
    RefusedConnectionError,
)


def _chain(err: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def _find[E: BaseException](err: BaseException | None, kind: type[E]) -> E | None:
    for item in _chain(err):
        if isinstance(item, kind):
            return item
    return None


def is_network_error(err: BaseException | None) -> bool:
    if err is None:
        return False
    if _find(err, NetworkError) is not None:
        return True
    for item in _chain(err):
        if isinstance(item, (httpx.TransportError, ConnectionError)):
            return True
    message = str(err).lower()
    return any(pattern in message for pattern in _NETWORK_PATTERNS)


def is_retryable(err: BaseException | None) -> bool:
    if err is None:
        return False
    if any(isinstance(item, _RETRYABLE_KINDS) for item in _chain(err)):
        return True
    provider_error = _find(err, ProviderError)
    if provider_error is not None:
        return provider_error.retryable
    return is_network_error(err)


def is_auth_error(err: BaseException | None) -> bool:
    if _find(err, AuthError) is not None:
        return True
    provider_error = _find(err, ProviderError)
    return provider_error is not None and provider_error.error_category is ErrorCategory.AUTH


def is_config_error(err: BaseException | None) -> bool:
    if _find(err, ConfigError) is not None:
        return True
    provider_error = _find(err, ProviderError)
    return provider_error is not None and provider_error.error_category is ErrorCategory.CONFIG


def is_rate_limit_error(err: BaseException | None) -> bool:
    if _find(err, RateLimitedError) is not None:
        return True
    provider_error = _find(err, ProviderError)
    return provider_error is not None and (
        provider_error.error_category is ErrorCategory.RATE_LIMIT
        or provider_error.status_code == 429
    )


def get_error_category(err: BaseException | None) -> ErrorCategory | None:
    if err is None:
        return None
    provider_error = _find(err, ProviderError)
    if provider_error is not None:
        return provider_error.error_category
    if is_network_error(err):
        return ErrorCategory.NETWORK
    if _find(err, OperationTimeoutError) is not None:
        return ErrorCategory.TIMEOUT
    if _find(err, RateLimitedError) is not None:
        return ErrorCategory.RATE_LIMIT
    if is_auth_error(err):
        return ErrorCategory.AUTH
    if is_config_error(err):
        return ErrorCategory.CONFIG
    if _find(err, ValidationError) is not None:
        return ErrorCategory.VALIDATION
    return ErrorCategory.INTERNAL


def wrap_network_error(err: BaseException) -> BaseException:
    """Return a typed engine error for a low-level network failure, chained to ``err``."""

    message = str(err).lower()
    wrapped: CensorError | None = None
    if "connection refused" in message:
        wrapped = RefusedConnectionError(str(err))
    elif "no such host" in message or "dns" in message:
        wrapped = DNSResolutionError(str(err))
    elif "network is unreachable" in message:
        wrapped = NetworkUnreachableError(str(err))
    elif "timeout" in message or "timed out" in message:
        wrapped = OperationTimeoutError(str(err))
    if wrapped is None:
        return err
    wrapped.__cause__ = err
    return wrapped
