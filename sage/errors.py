"""
Exception hierarchy for SAGE.

Authorization, provider and validation errors end the current command
invocation. Storage errors are recovered per event by the repository
caller. Delivery errors come from the chat client when a message can no
longer be sent or edited.
"""


class SageError(Exception):
    """Base exception for SAGE operations."""
    pass


class AuthorizationError(SageError):
    """Raised when the consent flow fails or the stored grant is unusable."""
    pass


class ProviderQueryError(SageError):
    """Raised when the calendar provider cannot be queried."""
    pass


class StorageError(SageError):
    """Raised when a single event cannot be written to the repository."""
    pass


class ValidationError(SageError):
    """Raised when a user-supplied command option is malformed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DeliveryError(SageError):
    """Raised when the chat client fails to send or edit a message."""
    pass


class ConfigError(SageError):
    """Raised when the configuration file is missing or malformed."""
    pass
