from __future__ import annotations


class AppError(Exception):
    """Base failure surfaced to callers as a readable message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthRequired(AppError):
    status_code = 401

    def __init__(self, message: str = "You must be logged in to do this.") -> None:
        super().__init__(message)


class ValidationFailed(AppError):
    status_code = 400

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}


class StoreError(AppError):
    status_code = 502


class PostNotFound(StoreError):
    status_code = 404

    def __init__(self, message: str = "Post not found") -> None:
        super().__init__(message)


class UpstreamError(AppError):
    status_code = 502


class ConfigError(AppError):
    status_code = 500
