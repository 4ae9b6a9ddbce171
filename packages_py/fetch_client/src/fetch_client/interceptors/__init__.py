"""
Interceptor chains and built-in collaborator interceptors.
"""
from .manager import (
    InterceptorEntry,
    InterceptorManager,
    InterceptorOptions,
    TERMINAL_ERRORS,
)
from .cache import (
    CacheManager,
    create_cache_invalidation_interceptor,
    create_cache_request_interceptor,
    create_cache_response_interceptor,
    install_cache_interceptors,
)
from .security import (
    SecurityPolicy,
    create_security_request_interceptor,
    create_security_response_interceptor,
    install_security_interceptors,
)

__all__ = [
    "InterceptorEntry",
    "InterceptorManager",
    "InterceptorOptions",
    "TERMINAL_ERRORS",
    "CacheManager",
    "create_cache_invalidation_interceptor",
    "create_cache_request_interceptor",
    "create_cache_response_interceptor",
    "install_cache_interceptors",
    "SecurityPolicy",
    "create_security_request_interceptor",
    "create_security_response_interceptor",
    "install_security_interceptors",
]
