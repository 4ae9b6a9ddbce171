"""
Canonical request signatures.

Two configs with the same method, URL, params (in any order), body and
selected headers produce the same key.
"""
import hashlib
import json
from typing import Any, Iterable, Mapping, Optional

from .types import RequestConfigLike, RequestSignature


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()[:16]


def _stable_json(value: Any) -> bytes:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    ).encode()


def hash_params(params: Optional[Mapping[str, Any]]) -> str:
    """Hash query params independently of their order."""
    return _digest(_stable_json(dict(params) if params else {}))


def hash_data(data: Any) -> str:
    """Hash a request body. Raw bytes are hashed as-is."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return _digest(bytes(data))
    return _digest(_stable_json(data))


def hash_headers(
    headers: Optional[Mapping[str, Any]],
    include_headers: Iterable[str],
) -> str:
    """Hash only the whitelisted headers, case-insensitively."""
    lowered = {str(k).lower(): v for k, v in (headers or {}).items()}
    selected = {}
    for name in include_headers:
        key = name.lower()
        if key in lowered and lowered[key] is not None:
            selected[key] = lowered[key]
    return _digest(_stable_json(selected))


def generate_signature(
    config: RequestConfigLike,
    include_headers: Iterable[str] = (),
) -> RequestSignature:
    """Build the signature of a request config."""
    return RequestSignature(
        method=str(config.get("method") or "GET").upper(),
        url=str(config.get("url") or ""),
        params_hash=hash_params(config.get("params")),
        data_hash=hash_data(config.get("data")),
        headers_hash=hash_headers(config.get("headers"), include_headers),
    )


def signature_key(signature: RequestSignature) -> str:
    """Render a signature as a map key."""
    return (
        f"{signature.method}:{signature.url}:{signature.params_hash}:"
        f"{signature.data_hash}:{signature.headers_hash}"
    )
