"""
Adapter backed by httpx.AsyncClient.
"""
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from ..config import DEFAULT_CONTENT_TYPE, default_serializer, timeout_seconds
from ..errors import ERR_NETWORK, ETIMEDOUT, TransportError
from ..types import FetchResponse, RequestConfig, Serializer

logger = logging.getLogger("fetch_client.httpx_adapter")

SENSITIVE_HEADERS = ("authorization", "x-api-key", "cookie", "proxy-authorization")


def _is_ssl_verify_disabled_by_env() -> bool:
    """
    Check if SSL verification is disabled via environment variables.

    Returns True if any of these are set:
    - NODE_TLS_REJECT_UNAUTHORIZED=0
    - SSL_CERT_VERIFY=0
    """
    node_tls = os.environ.get("NODE_TLS_REJECT_UNAUTHORIZED", "")
    ssl_cert_verify = os.environ.get("SSL_CERT_VERIFY", "")
    return node_tls == "0" or ssl_cert_verify == "0"


def _mask_sensitive(value: Optional[str], visible_chars: int = 10) -> str:
    """Mask sensitive value for safe logging."""
    if value is None:
        return "<None>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _mask_headers_for_logging(headers: Mapping[str, str]) -> Dict[str, str]:
    masked = dict(headers)
    for key in masked:
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = _mask_sensitive(masked[key])
    return masked


def _format_body(body: Any) -> str:
    """Format body for pretty printing."""
    if body is None:
        return ""
    if isinstance(body, (dict, list)):
        return json.dumps(body, indent=2, ensure_ascii=False)
    if isinstance(body, bytes):
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError:
            return f"<binary data: {len(body)} bytes>"
    return str(body)


def _query_params(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        for item in value if isinstance(value, (list, tuple)) else [value]:
            if isinstance(item, bool):
                item = "true" if item else "false"
            pairs.append((str(key), str(item)))
    return pairs


class HttpxAdapter:
    """
    Sends request configs with httpx and returns FetchResponse objects.

    Mapping and list bodies are serialized to JSON; JSON responses are
    deserialized. Network failures become TransportError with code
    ``ERR_NETWORK``, timeouts with code ``ETIMEDOUT``.

    Args:
        client: Pre-configured httpx.AsyncClient. One is created when omitted.
        serializer: JSON serializer for bodies.
        verbose: Print request/response panels with rich.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        serializer: Optional[Serializer] = None,
        verbose: bool = False,
        console: Optional[Console] = None,
    ) -> None:
        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            # NODE_TLS_REJECT_UNAUTHORIZED=0 or SSL_CERT_VERIFY=0 disables SSL verification
            self._client = httpx.AsyncClient(verify=not _is_ssl_verify_disabled_by_env())
            self._owns_client = True
        self._serializer = serializer or default_serializer
        self._verbose = verbose
        self._console = console or Console()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def _build_body(self, data: Any, headers: Dict[str, str]) -> Optional[Union[str, bytes, Any]]:
        if data is None:
            return None
        if isinstance(data, (str, bytes)):
            return data
        if isinstance(data, bytearray):
            return bytes(data)
        if isinstance(data, (Mapping, list, tuple, int, float, bool)):
            headers.setdefault("content-type", DEFAULT_CONTENT_TYPE)
            return self._serializer.serialize(data)
        # Iterables and async iterables are streamed by httpx as-is.
        return data

    def _parse_body(self, response: httpx.Response, response_type: Optional[str]) -> Any:
        if response_type == "bytes":
            return response.content
        text = response.text
        if response_type == "text":
            return text
        try:
            return self._serializer.deserialize(text)
        except ValueError:
            return text

    async def __call__(self, config: RequestConfig) -> FetchResponse:
        method = config.get("method", "GET")
        url = config["url"]
        headers = {k: v for k, v in (config.get("headers") or {}).items() if v is not None}
        content = self._build_body(config.get("data"), headers)
        params = _query_params(config.get("params"))

        logger.debug(f"HttpxAdapter: {method} {url}")
        if self._verbose:
            self._trace_request(method, url, headers, config.get("data"))

        try:
            response = await self._client.request(
                method=method,
                url=url,
                params=params or None,
                headers=headers,
                content=content,
                timeout=timeout_seconds(config),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"timeout of {config.get('timeout')}ms exceeded",
                code=ETIMEDOUT,
                config=config,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                str(e) or "Network Error",
                code=ERR_NETWORK,
                config=config,
            ) from e

        data = self._parse_body(response, config.get("response_type"))
        result = FetchResponse(
            data=data,
            status=response.status_code,
            status_text=response.reason_phrase or "",
            headers=dict(response.headers),
            config=config,
            request=response.request,
        )

        if self._verbose:
            self._trace_response(url, result)
        return result

    def _trace_request(self, method: str, url: str, headers: Dict[str, str], body: Any) -> None:
        self._console.print(
            Panel(f"[bold cyan]{method}[/bold cyan] {url}", title="[bold blue]Request[/bold blue]")
        )
        self._console.print("[bold]Headers:[/bold]", _mask_headers_for_logging(headers))
        if body is not None:
            self._console.print(
                Panel(Syntax(_format_body(body), "json", theme="monokai"), title="[bold]Request Body[/bold]")
            )

    def _trace_response(self, url: str, response: FetchResponse) -> None:
        status_color = "green" if response.ok else "red"
        self._console.print(
            Panel(
                f"[bold {status_color}]{response.status}[/bold {status_color}] {response.status_text}",
                title=f"[bold blue]Response[/bold blue] ({url})",
            )
        )
        self._console.print("[bold]Headers:[/bold]", _mask_headers_for_logging(response.headers))
        if response.data:
            self._console.print(
                Panel(
                    Syntax(_format_body(response.data), "json", theme="monokai"),
                    title=f"[bold]Response Body[/bold] (URL: {url})",
                )
            )

    async def aclose(self) -> None:
        """Close the underlying httpx client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()
