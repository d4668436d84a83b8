from .client import ApiResult, CraftClient
from .errors import ApiError, AuthError, CraftClientError, NetworkError, RequestTimeout

__all__ = [
    "ApiResult",
    "CraftClient",
    "ApiError",
    "AuthError",
    "CraftClientError",
    "NetworkError",
    "RequestTimeout",
]
