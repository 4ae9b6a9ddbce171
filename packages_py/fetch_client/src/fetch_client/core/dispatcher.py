"""
Request dispatch.

Turns a merged request config into a settled response or error:

    resolve -> [dedupe] -> request chain -> adapter (inside retry) -> response chain

The dispatcher does no I/O itself; the adapter does.
"""
import logging
from typing import Any, Mapping, Optional

from fetch_dedup import RequestDeduplicator
from fetch_retry import RetryExecutor, resolve_policy

from ..cancellation import CancelToken, maybe_race
from ..config import default_validate_status
from ..errors import (
    ConfigurationError,
    FetchError,
    InterceptorContractError,
    ResponseStatusError,
    TransportError,
    ERR_BAD_RESPONSE,
)
from ..interceptors.manager import InterceptorManager, TERMINAL_ERRORS
from ..types import Adapter, FetchResponse, RequestConfig
from .request_builder import normalize_method, resolve_request

logger = logging.getLogger("fetch_client.dispatcher")

# Errors that enter the retry loop
RETRYABLE_ERRORS = (TransportError, ResponseStatusError)


def _is_response(value: Any) -> bool:
    return isinstance(value, FetchResponse)


def validate_request_value(value: Any) -> Any:
    """A request handler must return a config or a short-circuit response."""
    if isinstance(value, FetchResponse):
        return value
    if (
        isinstance(value, Mapping)
        and isinstance(value.get("url"), str)
        and isinstance(value.get("method", ""), str)
    ):
        return value
    raise InterceptorContractError(
        f"Request interceptor must return a request config or FetchResponse, got {type(value).__name__}"
    )


def validate_response_value(value: Any) -> Any:
    """A response handler must return a FetchResponse."""
    if isinstance(value, FetchResponse):
        return value
    raise InterceptorContractError(
        f"Response interceptor must return a FetchResponse, got {type(value).__name__}"
    )


class Dispatcher:
    """
    Runs one logical request through the pipeline.

    Args:
        request_chain: Request interceptors (reverse registration order)
        response_chain: Response interceptors (registration order)
        adapter: Default adapter; ``config["adapter"]`` overrides it
        deduplicator: Optional in-flight deduplication
        retry_executor: Executor for the retry loop around the adapter call
    """

    def __init__(
        self,
        request_chain: InterceptorManager,
        response_chain: InterceptorManager,
        adapter: Optional[Adapter] = None,
        deduplicator: Optional[RequestDeduplicator] = None,
        retry_executor: Optional[RetryExecutor] = None,
    ) -> None:
        self._request_chain = request_chain
        self._response_chain = response_chain
        self._adapter = adapter
        self._deduplicator = deduplicator
        self._retry_executor = retry_executor or RetryExecutor(executor_id="fetch-client")

    @property
    def adapter(self) -> Optional[Adapter]:
        return self._adapter

    @property
    def deduplicator(self) -> Optional[RequestDeduplicator]:
        return self._deduplicator

    @property
    def retry_executor(self) -> RetryExecutor:
        return self._retry_executor

    async def dispatch(self, config: Mapping[str, Any]) -> FetchResponse:
        """Dispatch a merged config and return the final response."""
        token: Optional[CancelToken] = config.get("cancel_token")
        if token is not None:
            token.throw_if_requested()

        resolved = resolve_request(config)

        if (
            self._deduplicator is not None
            and resolved.get("dedupe") is not False
            and self._deduplicator.should_dedupe(resolved)
        ):
            # Subscribers share one run; each caller races only its own token.
            shared = {k: v for k, v in resolved.items() if k != "cancel_token"}
            logger.debug(f"dispatch: {resolved['method']} {resolved['url']} (dedupe)")
            return await maybe_race(
                token,
                self._deduplicator.dedupe(shared, lambda: self._run(shared)),
            )

        logger.debug(f"dispatch: {resolved['method']} {resolved['url']}")
        return await self._run(resolved)

    async def _run(self, config: RequestConfig) -> FetchResponse:
        token: Optional[CancelToken] = config.get("cancel_token")
        checkpoint = token.throw_if_requested if token is not None else None
        guard = token.race if token is not None else None

        value = await self._run_request_chain(config, checkpoint, guard)

        response: Optional[FetchResponse] = None
        error: Optional[BaseException] = None
        if _is_response(value):
            logger.debug(f"dispatch: request chain short-circuited {config['url']}")
            response = value
        else:
            try:
                response = await self._send(self._finalize(value), token)
            except TERMINAL_ERRORS:
                raise
            except FetchError as e:
                error = e

        return await self._response_chain.run(
            response,
            error=error,
            carry_errors=True,
            validate=validate_response_value,
            checkpoint=checkpoint,
            guard=guard,
            context=config,
        )

    async def _run_request_chain(self, config, checkpoint, guard) -> Any:
        if self._request_chain.synchronous:
            return self._request_chain.run_sync(
                config,
                validate=validate_request_value,
                checkpoint=checkpoint,
                until=_is_response,
            )
        return await self._request_chain.run(
            config,
            validate=validate_request_value,
            checkpoint=checkpoint,
            guard=guard,
            until=_is_response,
        )

    def _finalize(self, config: Mapping[str, Any]) -> RequestConfig:
        """Re-check the method after interceptors may have rewritten it."""
        final = dict(config)
        final["method"] = normalize_method(final.get("method") or "GET", final)
        return final  # type: ignore[return-value]

    async def _send(self, config: RequestConfig, token: Optional[CancelToken]) -> FetchResponse:
        adapter = config.get("adapter") or self._adapter
        if adapter is None:
            raise ConfigurationError("No adapter configured", config=config)

        if "validate_status" in config:
            validate_status = config["validate_status"]
        else:
            validate_status = default_validate_status

        async def attempt() -> FetchResponse:
            if token is not None:
                token.throw_if_requested()
            try:
                response = await maybe_race(token, adapter(config))
            except FetchError:
                raise
            except Exception as e:
                raise TransportError(str(e) or type(e).__name__, config=config) from e

            if not isinstance(response, FetchResponse):
                raise FetchError(
                    f"Adapter returned {type(response).__name__} instead of a FetchResponse",
                    code=ERR_BAD_RESPONSE,
                    config=config,
                )
            if validate_status is not None and not validate_status(response.status):
                raise ResponseStatusError(
                    f"Request failed with status code {response.status}",
                    response=response,
                    config=config,
                )
            return response

        retry_options = config.get("retry")
        if not isinstance(retry_options, Mapping) or (retry_options.get("attempts") or 0) <= 0:
            return await attempt()

        try:
            policy = resolve_policy(retry_options)
        except ValueError as e:
            raise ConfigurationError(f"Invalid retry options: {e}", config=config) from e

        result = await self._retry_executor.execute(
            attempt,
            policy,
            retryable=RETRYABLE_ERRORS,
            guard=token.race if token is not None else None,
            metadata={"method": config["method"], "url": config["url"]},
        )
        if result.attempts > 1:
            logger.info(f"dispatch: {config['method']} {config['url']} succeeded after {result.attempts} attempts")
        return result.result
