"""
Exception hierarchy for the portfolio assistant.

Only RateLimitExceeded and InvalidContent are meant to reach the caller of
MessageHandler.process_message; ProviderFailure and StorageFailure are always
absorbed inside the engine.
"""


class ChatbotError(Exception):
    """Base exception for the assistant engine."""


class ConfigError(ChatbotError):
    """Configuration is missing or invalid."""


class RateLimitExceeded(ChatbotError):
    """Client sent too many messages inside the rolling window."""

    def __init__(self, message: str = "Rate limit exceeded. Please wait before sending another message.",
                 retry_after_ms: int = 0):
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class InvalidContent(ChatbotError):
    """User input failed validation (length or dangerous pattern)."""

    def __init__(self, message: str = "Invalid message content", reason: str = ""):
        super().__init__(message)
        self.reason = reason


class ProviderFailure(ChatbotError):
    """The external language-model provider failed or returned unusable output."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class StorageFailure(ChatbotError):
    """The conversation store could not be read or written."""
