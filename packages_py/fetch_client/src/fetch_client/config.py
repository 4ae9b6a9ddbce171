"""
Configuration for fetch_client.

Request configs are plain dicts (see ``types.RequestConfig``). Clients hold
a set of defaults and every call merges the caller's partial config on top
of them with ``merge_config``.
"""
from typing import Any, Dict, Mapping, Optional
import json

from .types import HeaderValue, RequestConfig

# Merge strategies
REPLACE = "replace"
STRUCTURAL = "structural"
HEADERS = "headers"

MERGE_STRATEGIES: Dict[str, str] = {
    "headers": HEADERS,
    "retry": STRUCTURAL,
    "cache": STRUCTURAL,
    "security": STRUCTURAL,
}
"""Fields merged key-by-key. Every other field is replaced."""

RESERVED_KEYS = frozenset({"__proto__", "constructor", "prototype"})

USER_AGENT = "fetch-client-python/1.0.0"


def is_reserved_key(key: Any) -> bool:
    """Keys that are never merged: prototype-style names and dunders."""
    if not isinstance(key, str):
        return True
    if key in RESERVED_KEYS:
        return True
    return key.startswith("__") and key.endswith("__")


def _header_value(value: HeaderValue) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_headers(headers: Optional[Mapping[str, HeaderValue]]) -> Dict[str, Optional[str]]:
    """
    Lower-case header names and flatten values to strings.

    List values are joined with ", ". ``None`` values are kept so that
    ``merge_headers`` can treat them as removals.
    """
    normalized: Dict[str, Optional[str]] = {}
    if not headers:
        return normalized
    for name, value in headers.items():
        if is_reserved_key(name):
            continue
        normalized[name.lower()] = _header_value(value)
    return normalized


def merge_headers(*sources: Optional[Mapping[str, HeaderValue]]) -> Dict[str, str]:
    """Merge header maps left to right; a ``None`` value removes the header."""
    merged: Dict[str, str] = {}
    for source in sources:
        for name, value in normalize_headers(source).items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = value
    return merged


def _merge_structural(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = {k: v for k, v in base.items() if not is_reserved_key(k)}
    for key, value in override.items():
        if not is_reserved_key(key):
            merged[key] = value
    return merged


def _copy_value(key: str, value: Any) -> Any:
    """Copy mapping values so the merge result never aliases its inputs."""
    if not isinstance(value, Mapping):
        return value
    if MERGE_STRATEGIES.get(key) == HEADERS:
        return merge_headers(value)
    if MERGE_STRATEGIES.get(key) == STRUCTURAL:
        return _merge_structural({}, value)
    if key == "params":
        return dict(value)
    return value


def merge_config(
    base: Optional[Mapping[str, Any]] = None,
    override: Optional[Mapping[str, Any]] = None,
) -> RequestConfig:
    """
    Merge two partial request configs into a new one.

    The override wins field by field. ``headers``, ``retry``, ``cache`` and
    ``security`` are merged key by key, one level deep; all other fields are
    replaced. A field missing from the override keeps the base value, while
    an explicit ``None`` replaces it. Neither input is mutated and the
    function never raises: a non-mapping value in a structural field simply
    replaces.
    """
    merged: Dict[str, Any] = {}

    for key, value in (base or {}).items():
        if is_reserved_key(key):
            continue
        merged[key] = _copy_value(key, value)

    for key, value in (override or {}).items():
        if is_reserved_key(key):
            continue
        strategy = MERGE_STRATEGIES.get(key, REPLACE)
        current = merged.get(key)

        if strategy == HEADERS and isinstance(value, Mapping):
            merged[key] = merge_headers(
                current if isinstance(current, Mapping) else None, value
            )
        elif strategy == STRUCTURAL and isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _merge_structural(current, value)
        else:
            merged[key] = _copy_value(key, value)

    return merged  # type: ignore[return-value]


def default_validate_status(status: int) -> bool:
    """Accept 2xx responses."""
    return 200 <= status < 300


DEFAULT_HEADERS: Dict[str, str] = {
    "accept": "application/json, text/plain, */*",
    "user-agent": USER_AGENT,
}

DEFAULTS: RequestConfig = {
    "method": "GET",
    "timeout": 0,
    "headers": dict(DEFAULT_HEADERS),
    "validate_status": default_validate_status,
}
"""Library defaults every client starts from."""

DEFAULT_CONTENT_TYPE = "application/json"


def timeout_seconds(config: Mapping[str, Any]) -> Optional[float]:
    """Convert the millisecond timeout to seconds; 0 or unset means unlimited."""
    timeout = config.get("timeout") or 0
    if timeout <= 0:
        return None
    return timeout / 1000.0


class DefaultSerializer:
    """Default JSON serializer."""

    def serialize(self, data: Any) -> str:
        """Serialize data to JSON string."""
        return json.dumps(data)

    def deserialize(self, text: str) -> Any:
        """Deserialize JSON string to data."""
        return json.loads(text)


default_serializer = DefaultSerializer()
