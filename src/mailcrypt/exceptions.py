"""Exceptions used across the MailCrypt library."""


class MailCryptError(Exception):
    """Base exception for all MailCrypt errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message


class CryptoOperationError(MailCryptError):
    """Raised when a cryptographic operation fails. Never retried."""


class KeyGenerationError(CryptoOperationError):
    """Raised when a key pair cannot be generated."""


class KeyParseError(CryptoOperationError):
    """Raised when supplied key material cannot be parsed."""


class KeyUnlockError(CryptoOperationError):
    """Raised when a passphrase does not unlock a private key."""


class EncryptionError(CryptoOperationError):
    """Raised when encryption fails."""


class DecryptionError(CryptoOperationError):
    """Raised when decryption fails.

    Tag mismatch, wrong secret and corrupted input all surface with the same
    message.
    """


class MalformedEnvelopeError(DecryptionError):
    """Raised when a symmetric envelope cannot be split into its fields."""


class ConfigurationError(MailCryptError):
    """Raised when there are configuration-related issues."""


class MissingSecretError(ConfigurationError):
    """Raised when no symmetric secret is configured or supplied."""


class MissingEnvVariableError(ConfigurationError):
    """Raised when a required environment variable is missing."""
