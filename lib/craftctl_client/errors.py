from __future__ import annotations


class CraftClientError(Exception):
    """Base client error."""


class NetworkError(CraftClientError):
    """Transport/network layer error."""


class RequestTimeout(NetworkError):
    """The request did not complete before its timeout."""


class ApiError(CraftClientError):
    def __init__(self, status_code: int, message: str, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthError(ApiError):
    """The bearer token was refused; the session is gone."""
