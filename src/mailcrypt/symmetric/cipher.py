"""Authenticated symmetric encryption (AES-256-GCM, PBKDF2) for data at rest."""

import hmac
import json
import logging
import os
import secrets
from typing import Any

from cryptography.exceptions import InvalidKey, InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from mailcrypt.exceptions import (
    DecryptionError,
    EncryptionError,
    MalformedEnvelopeError,
    MissingSecretError,
)
from mailcrypt.symmetric.envelope_format import (
    CURRENT,
    Envelope,
    FormatVersion,
    SaltedHash,
    looks_like_envelope,
    pack_envelope,
    pack_hash,
    unpack_envelope,
    unpack_hash,
)

DECRYPT_FAILED_MESSAGE = "Failed to decrypt data"


def build_kdf(salt: bytes, params: FormatVersion) -> PBKDF2HMAC:
    """Create the PBKDF2-HMAC-SHA256 instance for one salt and format version."""
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=params.key_length,
        salt=salt,
        iterations=params.iterations,
    )


class SymmetricCipher:
    """Encrypts strings into self-contained envelopes and computes salted hashes.

    Every call draws a fresh salt and IV, so encrypting the same plaintext twice
    gives different envelopes. No state is kept between calls.
    """

    DEFAULT_TOKEN_LENGTH = 32

    def __init__(
        self,
        logger: logging.Logger,
        secret: str | None = None,
        token_length: int = DEFAULT_TOKEN_LENGTH,
    ) -> None:
        """Initialize the cipher.

        Args:
            logger: Logger instance for logging operations
            secret: Process-wide secret used when a call supplies none
            token_length: Default number of random bytes for generate_token

        """
        self.logger = logger
        self._secret = secret
        self.token_length = token_length

    def encrypt(self, plaintext: str, secret: str | None = None) -> str:
        """Encrypt a string into a hex envelope.

        Raises:
            MissingSecretError: If no secret is supplied or configured
            EncryptionError: If key derivation or encryption fails

        """
        key_secret = self._resolve_secret(secret)
        # Fresh salt and IV per call; both travel in the envelope header
        params = CURRENT
        salt = os.urandom(params.salt_length)
        iv = os.urandom(params.iv_length)

        try:
            key = build_kdf(salt, params).derive(key_secret.encode("utf-8"))
            sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        except Exception as e:
            error_msg = "Failed to encrypt data"
            self.logger.exception(error_msg)
            raise EncryptionError(error_msg, e) from e

        # AESGCM appends the tag; the envelope stores it ahead of the ciphertext
        ciphertext, tag = sealed[: -params.tag_length], sealed[-params.tag_length :]
        return pack_envelope(
            Envelope(params=params, salt=salt, iv=iv, tag=tag, ciphertext=ciphertext),
        )

    def decrypt(self, envelope: str, secret: str | None = None) -> str:
        """Decrypt and authenticate a hex envelope.

        Tampering, a wrong secret and a malformed envelope all raise the same
        DecryptionError; no partial plaintext is ever returned.

        Raises:
            MissingSecretError: If no secret is supplied or configured
            DecryptionError: If the envelope cannot be authenticated

        """
        key_secret = self._resolve_secret(secret)

        try:
            fields = unpack_envelope(envelope)
            key = build_kdf(fields.salt, fields.params).derive(key_secret.encode("utf-8"))
            plaintext = AESGCM(key).decrypt(fields.iv, fields.ciphertext + fields.tag, None)
            return plaintext.decode("utf-8")
        except (MalformedEnvelopeError, InvalidTag, ValueError) as e:
            self.logger.error(DECRYPT_FAILED_MESSAGE)
            raise DecryptionError(DECRYPT_FAILED_MESSAGE, e) from e

    def encrypt_object(self, data: Any, secret: str | None = None) -> str:
        """Serialise data to JSON and encrypt it.

        Raises:
            EncryptionError: If the data is not JSON serialisable

        """
        try:
            serialized = json.dumps(data)
        except (TypeError, ValueError) as e:
            error_msg = f"Data is not JSON serialisable: {e}"
            self.logger.error(error_msg)
            raise EncryptionError(error_msg, e) from e
        return self.encrypt(serialized, secret)

    def decrypt_object(self, envelope: str, secret: str | None = None) -> Any:
        """Decrypt an envelope produced by encrypt_object and parse the JSON."""
        serialized = self.decrypt(envelope, secret)
        try:
            return json.loads(serialized)
        except json.JSONDecodeError as e:
            self.logger.error(DECRYPT_FAILED_MESSAGE)
            raise DecryptionError(DECRYPT_FAILED_MESSAGE, e) from e

    def compare_encrypted(self, first: str, second: str, secret: str | None = None) -> bool:
        """Return True if two envelopes hold the same plaintext."""
        try:
            first_plain = self.decrypt(first, secret)
            second_plain = self.decrypt(second, secret)
        except DecryptionError:
            return False
        return hmac.compare_digest(first_plain.encode("utf-8"), second_plain.encode("utf-8"))

    def hash(self, data: str) -> str:
        """Derive a salted one-way hash of data.

        Raises:
            EncryptionError: If key derivation fails

        """
        params = CURRENT
        salt = os.urandom(params.salt_length)
        try:
            digest = build_kdf(salt, params).derive(data.encode("utf-8"))
        except Exception as e:
            error_msg = "Failed to hash data"
            self.logger.exception(error_msg)
            raise EncryptionError(error_msg, e) from e
        return pack_hash(SaltedHash(params=params, salt=salt, digest=digest))

    def verify_hash(self, data: str, stored_hash: str) -> bool:
        """Check data against a stored salted hash in constant time.

        A malformed stored hash never matches.
        """
        try:
            fields = unpack_hash(stored_hash)
        except MalformedEnvelopeError:
            self.logger.warning("Stored hash is malformed")
            return False

        # PBKDF2HMAC.verify compares digests in constant time
        try:
            build_kdf(fields.salt, fields.params).verify(data.encode("utf-8"), fields.digest)
        except InvalidKey:
            return False
        return True

    def generate_token(self, length: int | None = None) -> str:
        """Return ``length`` cryptographically secure random bytes, hex encoded."""
        n_bytes = self.token_length if length is None else length
        if n_bytes <= 0:
            error_msg = f"Token length must be positive, got {n_bytes}"
            raise ValueError(error_msg)
        return secrets.token_hex(n_bytes)

    @staticmethod
    def is_envelope(value: object) -> bool:
        """Return True if value carries a known envelope format marker.

        This inspects structure only; it says nothing about which secret can
        open the envelope.
        """
        return looks_like_envelope(value)

    def _resolve_secret(self, secret: str | None) -> str:
        # A per-call secret overrides the configured one
        resolved = secret if secret is not None else self._secret
        if not resolved:
            error_msg = "No encryption secret supplied or configured"
            self.logger.error(error_msg)
            raise MissingSecretError(error_msg)
        return resolved
