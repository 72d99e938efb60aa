"""
Application error types

Services and repositories raise these; main.py turns them into JSON
responses with the matching HTTP status code.
"""
from typing import Optional


class AppError(Exception):
    """Base error carrying an HTTP status code"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"status": "error", "message": self.message}


class BadRequestError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class PaymentProviderError(AppError):
    """A payment provider rejected or failed a request"""

    status_code = 502

    def __init__(self, message: str, provider: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        self.provider = provider

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["provider"] = self.provider
        return data
