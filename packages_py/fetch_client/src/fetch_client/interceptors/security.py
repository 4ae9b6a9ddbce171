"""
Security interceptors.

Delegate request and response checks to a SecurityPolicy. Per-request
options come from ``config["security"]``.
"""
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union

from ..errors import FetchError
from ..types import FetchResponse, RequestConfig
from .manager import InterceptorManager

logger = logging.getLogger("fetch_client.interceptors.security")

ERR_SECURITY = "ERR_SECURITY"


class SecurityPolicy(Protocol):
    """
    Validates outgoing configs and incoming responses.

    ``validate_request`` may return an augmented config, or None to keep the
    config unchanged. Violations are raised as exceptions.
    """

    def validate_request(
        self, config: RequestConfig, options: Mapping[str, Any]
    ) -> Union[Optional[RequestConfig], Awaitable[Optional[RequestConfig]]]:
        ...

    def validate_response(
        self, response: FetchResponse, options: Mapping[str, Any]
    ) -> Union[None, Awaitable[None]]:
        ...


def _options(config: Mapping[str, Any]) -> Mapping[str, Any]:
    options = config.get("security")
    return options if isinstance(options, Mapping) else {}


def _as_fetch_error(error: Exception, config: Mapping[str, Any]) -> FetchError:
    if isinstance(error, FetchError):
        return error
    return FetchError.from_exception(error, code=ERR_SECURITY, config=config)


def create_security_request_interceptor(
    policy: SecurityPolicy,
) -> Callable[[RequestConfig], Awaitable[RequestConfig]]:
    async def security_request_interceptor(config: RequestConfig) -> RequestConfig:
        try:
            result = policy.validate_request(config, _options(config))
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning(f"request rejected by security policy: {e}")
            error = _as_fetch_error(e, config)
            if error is e:
                raise
            raise error from e
        return config if result is None else result

    return security_request_interceptor


def create_security_response_interceptor(
    policy: SecurityPolicy,
) -> Callable[[FetchResponse], Awaitable[FetchResponse]]:
    async def security_response_interceptor(response: FetchResponse) -> FetchResponse:
        try:
            result = policy.validate_response(response, _options(response.config))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"response rejected by security policy: {e}")
            error = _as_fetch_error(e, response.config)
            if error.response is None:
                error.response = response
            if error is e:
                raise
            raise error from e
        return response

    return security_response_interceptor


def install_security_interceptors(
    request_chain: InterceptorManager,
    response_chain: InterceptorManager,
    policy: SecurityPolicy,
) -> tuple:
    """Register the security interceptors; returns (request id, response id)."""
    return (
        request_chain.use(create_security_request_interceptor(policy)),
        response_chain.use(create_security_response_interceptor(policy)),
    )
