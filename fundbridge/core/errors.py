from __future__ import annotations

from fastapi import HTTPException


class AppError(Exception):
    """
    Base for every error the services raise on purpose.

    `code` is the stable machine-readable value returned to clients,
    `status_code` the HTTP status the routers map it to.
    """

    status_code: int = 400

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code


class ValidationFailed(AppError):
    status_code = 400


class NotFound(AppError):
    status_code = 404


class Forbidden(AppError):
    status_code = 403


class StateConflict(AppError):
    status_code = 409


class ConfigurationError(AppError):
    """Missing RPC endpoint, token address or bridge destination. Never retried."""

    status_code = 400


class RpcError(AppError):
    status_code = 502


class RpcRateLimited(RpcError):
    pass


class RpcUnavailable(RpcError):
    pass


class RpcTimeout(RpcError):
    status_code = 504


def http_error(exc: AppError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.code)
