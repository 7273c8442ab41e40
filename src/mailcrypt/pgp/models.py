"""Data types for the OpenPGP messaging layer."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class KeyPair:
    """An armored OpenPGP key pair bound to one identity.

    The private key is always passphrase protected. Persisting the pair is the
    caller's job.
    """

    public_key: str
    private_key: str = field(repr=False)
    identity: str
    fingerprint: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class NoSigning:
    """Encrypt without signing."""


@dataclass(frozen=True)
class SignWith:
    """Sign with the sender's private key before encrypting."""

    private_key: str = field(repr=False)
    passphrase: str = field(repr=False)


SigningIntent = NoSigning | SignWith

NO_SIGNING = NoSigning()


@dataclass(frozen=True)
class SkipVerification:
    """Do not verify signatures after decryption."""


@dataclass(frozen=True)
class VerifyWith:
    """Verify an embedded signature against the sender's public key."""

    public_key: str


VerificationIntent = SkipVerification | VerifyWith

SKIP_VERIFICATION = SkipVerification()


@dataclass(frozen=True)
class DecryptedMessage:
    """Plaintext of a decrypted message and its signature status."""

    message: str = field(repr=False)
    verified: bool = False


@dataclass(frozen=True)
class EncryptedFile:
    """Binary OpenPGP message and the suggested filename for it."""

    data: bytes = field(repr=False)
    filename: str


@dataclass(frozen=True)
class DecryptedFile:
    """Decrypted file contents, original filename and signature status."""

    data: bytes = field(repr=False)
    filename: str
    verified: bool = False
