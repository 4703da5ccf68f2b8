from __future__ import annotations


class UsersDomainError(Exception):
    """Base exception for user lookup operations."""


class UserNotFoundError(UsersDomainError):
    pass


class UserValidationError(UsersDomainError):
    pass
