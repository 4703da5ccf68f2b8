from __future__ import annotations


class NotificationsDomainError(Exception):
    """Base exception for notification operations."""


class NotificationValidationError(NotificationsDomainError):
    pass
