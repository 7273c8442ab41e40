"""OpenPGP messaging encryption: key pairs, encryption, signatures."""

from .encryption_service import PGPEncryptionService, unlocked_key
from .key_cache import KeyCache
from .models import (
    NO_SIGNING,
    SKIP_VERIFICATION,
    DecryptedFile,
    DecryptedMessage,
    EncryptedFile,
    KeyPair,
    NoSigning,
    SigningIntent,
    SignWith,
    SkipVerification,
    VerificationIntent,
    VerifyWith,
)

__all__ = [
    "NO_SIGNING",
    "SKIP_VERIFICATION",
    "DecryptedFile",
    "DecryptedMessage",
    "EncryptedFile",
    "KeyCache",
    "KeyPair",
    "NoSigning",
    "PGPEncryptionService",
    "SignWith",
    "SigningIntent",
    "SkipVerification",
    "VerificationIntent",
    "VerifyWith",
    "unlocked_key",
]
