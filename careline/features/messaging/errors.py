from __future__ import annotations


class MessagingDomainError(Exception):
    """Base exception for conversation and unread-count operations."""


class AggregationUnavailableError(MessagingDomainError):
    """Neither the aggregate function nor the per-conversation fallback produced a count."""


class ParticipantNotFoundError(MessagingDomainError):
    pass


class MessagingValidationError(MessagingDomainError):
    pass
