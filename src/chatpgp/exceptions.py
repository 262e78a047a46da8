"""Exceptions used across the chatpgp library."""


class ChatPGPError(Exception):
    """Base exception for all chatpgp errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message


class KeyFormatError(ChatPGPError):
    """Raised when armored text cannot be parsed as a valid key."""


class CryptoOperationError(ChatPGPError):
    """Raised when key generation, encryption or decryption fails."""


class PersistenceError(ChatPGPError):
    """Raised when loading from or saving to the key-value store fails."""


class KeyStoreNotReadyError(PersistenceError):
    """Raised when the key store is read before its initial load completed."""


class ConfigurationError(ChatPGPError):
    """Raised when policy settings cannot be loaded or are invalid."""
