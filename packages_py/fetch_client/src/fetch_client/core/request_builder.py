"""
Request builder utilities for fetch_client.
"""
import logging
import re
from typing import Any, Mapping, Optional
from urllib.parse import urlencode, urlparse

from ..errors import (
    ConfigurationError,
    ERR_CONFIG,
    ERR_INVALID_METHOD,
    ERR_INVALID_URL,
)
from ..types import HTTP_METHODS, RequestConfig

logger = logging.getLogger("fetch_client.request_builder")

_ABSOLUTE_URL = re.compile(r"^([a-z][a-z\d+\-.]*:)?//", re.IGNORECASE)


def is_absolute_url(url: str) -> bool:
    """Check for a scheme (``https://``) or protocol-relative (``//``) URL."""
    return bool(_ABSOLUTE_URL.match(url))


def combine_urls(base_url: str, relative_url: str) -> str:
    """Join base and relative URL with exactly one slash between them."""
    if not relative_url:
        return base_url
    return f"{base_url.rstrip('/')}/{relative_url.lstrip('/')}"


def build_full_path(base_url: Optional[str], url: str) -> str:
    """Resolve ``url`` against ``base_url`` unless it is already absolute."""
    if base_url and not is_absolute_url(url):
        return combine_urls(base_url, url)
    return url


def build_url(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Append query params to a URL. ``None`` values are dropped."""
    if not params:
        return url

    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if isinstance(item, bool):
                item = "true" if item else "false"
            pairs.append((str(key), str(item)))

    if not pairs:
        return url
    url, _, fragment = url.partition("#")
    separator = "&" if "?" in url else "?"
    built = f"{url}{separator}{urlencode(pairs)}"
    return f"{built}#{fragment}" if fragment else built


def normalize_method(method: Any, config: Optional[Mapping[str, Any]] = None) -> str:
    """Upper-case and validate an HTTP method."""
    if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
        raise ConfigurationError(
            f"Invalid HTTP method: {method!r}. Must be one of: {', '.join(HTTP_METHODS)}",
            code=ERR_INVALID_METHOD,
            config=config,
        )
    return method.upper()


def resolve_request(config: Mapping[str, Any]) -> RequestConfig:
    """
    Validate a merged config and resolve its URL and method.

    Raises:
        ConfigurationError: missing URL, relative URL without base_url,
            malformed URL or unknown method
    """
    url = config.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError("Request URL is required", code=ERR_INVALID_URL, config=config)

    method = normalize_method(config.get("method") or "GET", config)
    base_url = config.get("base_url")

    if is_absolute_url(url):
        full_url = url
    elif base_url:
        if not is_absolute_url(base_url):
            raise ConfigurationError(
                f"base_url must be absolute, got: {base_url}",
                code=ERR_INVALID_URL,
                config=config,
            )
        full_url = combine_urls(base_url, url)
    else:
        raise ConfigurationError(
            f"Relative URL '{url}' requires base_url",
            code=ERR_CONFIG,
            config=config,
        )

    parsed = urlparse(full_url if "://" in full_url else f"http:{full_url}")
    if not parsed.netloc:
        raise ConfigurationError(f"Invalid URL: {full_url}", code=ERR_INVALID_URL, config=config)

    resolved = dict(config)
    resolved["url"] = full_url
    resolved["method"] = method
    if resolved.get("headers") is None:
        resolved["headers"] = {}

    logger.debug(f"resolve_request: {method} {full_url}")
    return resolved  # type: ignore[return-value]
