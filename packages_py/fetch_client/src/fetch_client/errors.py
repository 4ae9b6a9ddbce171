"""
Error taxonomy for fetch_client.

Every failure surfaced to a caller is a FetchError carrying at least
``message``, ``code`` and ``config``.
"""
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

if TYPE_CHECKING:
    from .types import FetchResponse


# Error codes
ERR_CONFIG = "ERR_CONFIG"
ERR_INVALID_URL = "ERR_INVALID_URL"
ERR_INVALID_METHOD = "ERR_INVALID_METHOD"
ERR_INTERCEPTOR_CONTRACT = "ERR_INTERCEPTOR_CONTRACT"
ERR_NETWORK = "ERR_NETWORK"
ETIMEDOUT = "ETIMEDOUT"
ERR_CLIENT = "ERR_CLIENT"
ERR_SERVER = "ERR_SERVER"
ERR_BAD_RESPONSE = "ERR_BAD_RESPONSE"
ERR_CANCELED = "ERR_CANCELED"


class FetchError(Exception):
    """Base error for every failure raised by the request pipeline."""

    code = "ERR_FETCH"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
        request: Any = None,
        response: Optional["FetchResponse"] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.config = config
        self.request = request
        self.response = response

    @property
    def status(self) -> Optional[int]:
        """HTTP status of the attached response, if any."""
        return self.response.status if self.response is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable summary, without the config or body."""
        config = self.config or {}
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "method": config.get("method"),
            "url": config.get("url"),
        }

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        code: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> "FetchError":
        """Wrap an arbitrary exception, keeping FetchErrors as they are."""
        if isinstance(error, FetchError):
            return error
        wrapped = cls(str(error) or type(error).__name__, code=code, config=config)
        wrapped.__cause__ = error
        return wrapped

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(FetchError, ValueError):
    """Missing or invalid URL, invalid HTTP method, base_url required but absent."""

    code = ERR_CONFIG


class InterceptorContractError(FetchError, TypeError):
    """An interceptor handler returned a value of the wrong shape."""

    code = ERR_INTERCEPTOR_CONTRACT


class TransportError(FetchError):
    """The adapter failed: network failure or timeout."""

    code = ERR_NETWORK


class ResponseStatusError(FetchError):
    """The adapter answered with a status the caller does not accept."""

    code = ERR_BAD_RESPONSE

    def __init__(
        self,
        message: str,
        response: "FetchResponse",
        config: Optional[Mapping[str, Any]] = None,
        request: Any = None,
    ) -> None:
        super().__init__(
            message,
            code=status_error_code(response.status),
            config=config,
            request=request,
            response=response,
        )


class CancellationError(FetchError):
    """The operation was cancelled through a cancel token."""

    code = ERR_CANCELED

    def __init__(
        self,
        reason: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(reason or "Request cancelled", config=config)
        self.reason = reason


def status_error_code(status: int) -> str:
    """Map an HTTP status to its error code."""
    if 400 <= status < 500:
        return ERR_CLIENT
    if status >= 500:
        return ERR_SERVER
    return ERR_BAD_RESPONSE


def is_cancel(value: Any) -> bool:
    """Check whether a value is a cancellation error."""
    return isinstance(value, CancellationError)


def is_fetch_error(value: Any) -> bool:
    """Check whether a value is a pipeline error."""
    return isinstance(value, FetchError)
