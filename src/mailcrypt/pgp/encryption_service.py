"""OpenPGP encryption, signing and verification for messages and files."""

import logging
import tempfile
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    EllipticCurveOID,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from mailcrypt.exceptions import (
    DecryptionError,
    EncryptionError,
    KeyGenerationError,
    KeyParseError,
    KeyUnlockError,
)
from mailcrypt.pgp.key_cache import KeyCache
from mailcrypt.pgp.models import (
    NO_SIGNING,
    SKIP_VERIFICATION,
    DecryptedFile,
    DecryptedMessage,
    EncryptedFile,
    KeyPair,
    SigningIntent,
    SignWith,
    VerificationIntent,
    VerifyWith,
)

DECRYPT_FAILED_MESSAGE = "Failed to decrypt message"


@contextmanager
def unlocked_key(key: pgpy.PGPKey, passphrase: str) -> Iterator[pgpy.PGPKey]:
    """Unlock a private key (and its subkeys) for the duration of the block.

    Only a failure to unlock is reported as KeyUnlockError; errors raised
    inside the block propagate unchanged.
    """
    if not passphrase:
        error_msg = "A passphrase is required to unlock the private key"
        raise KeyUnlockError(error_msg)

    with ExitStack() as stack:
        try:
            stack.enter_context(key.unlock(passphrase))
        except Exception as e:
            error_msg = "Passphrase does not unlock the private key"
            raise KeyUnlockError(error_msg, e) from e
        yield key


class PGPEncryptionService:
    """Generates OpenPGP key pairs and encrypts, signs, decrypts and verifies
    messages and files with them.
    """

    DEFAULT_FILENAME = "decrypted_file"
    ENCRYPTED_FILE_SUFFIX = ".pgp"

    KEY_HASHES = [HashAlgorithm.SHA512, HashAlgorithm.SHA384, HashAlgorithm.SHA256]
    KEY_CIPHERS = [
        SymmetricKeyAlgorithm.AES256,
        SymmetricKeyAlgorithm.AES192,
        SymmetricKeyAlgorithm.AES128,
    ]
    KEY_COMPRESSION = [
        CompressionAlgorithm.ZLIB,
        CompressionAlgorithm.ZIP,
        CompressionAlgorithm.Uncompressed,
    ]

    def __init__(self, logger: logging.Logger, key_cache: KeyCache | None = None) -> None:
        """Initialize the encryption service.

        Args:
            logger: Logger instance for logging operations
            key_cache: Cache for generated key pairs (a fresh one if omitted)

        """
        self.logger = logger
        self.key_cache = key_cache if key_cache is not None else KeyCache()

    def generate_key_pair(self, identity: str, passphrase: str) -> KeyPair:
        """Generate a passphrase-protected Ed25519/Curve25519 key pair.

        Args:
            identity: E-mail address bound into the key's user ID
            passphrase: Passphrase protecting the private key

        Returns:
            The armored key pair, also stored in the key cache

        Raises:
            KeyGenerationError: If the passphrase is empty or generation fails

        """
        if not passphrase:
            error_msg = "Passphrase must not be empty"
            self.logger.error(error_msg)
            raise KeyGenerationError(error_msg)

        try:
            key = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
            uid = pgpy.PGPUID.new(identity.partition("@")[0] or identity, email=identity)
            key.add_uid(
                uid,
                usage={KeyFlags.Sign, KeyFlags.Certify},
                hashes=self.KEY_HASHES,
                ciphers=self.KEY_CIPHERS,
                compression=self.KEY_COMPRESSION,
            )

            subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
            key.add_subkey(
                subkey,
                usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
            )
            key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)

            key_pair = KeyPair(
                public_key=str(key.pubkey),
                private_key=str(key),
                identity=identity,
                fingerprint=str(key.fingerprint).replace(" ", ""),
            )
        except Exception as e:
            error_msg = f"Failed to generate key pair for {identity}"
            self.logger.exception(error_msg)
            raise KeyGenerationError(error_msg, e) from e

        self.key_cache.put(key_pair)
        self.logger.info(f"Generated key pair {key_pair.fingerprint} for {identity}")
        return key_pair

    def encrypt_message(
        self,
        plaintext: str,
        recipient_public_key: str,
        signing: SigningIntent = NO_SIGNING,
    ) -> str:
        """Encrypt a text message for a recipient, optionally signing it.

        Args:
            plaintext: Message text
            recipient_public_key: Armored public key of the recipient
            signing: NO_SIGNING or SignWith(private_key, passphrase)

        Returns:
            ASCII-armored OpenPGP message

        Raises:
            KeyParseError: If a supplied key cannot be parsed
            KeyUnlockError: If signing was requested and the key does not unlock
            EncryptionError: If signing or encryption fails

        """
        recipient = self._load_public_key(recipient_public_key, "recipient public key")
        message = pgpy.PGPMessage.new(plaintext)
        encrypted = self._sign_and_encrypt(message, recipient, signing)
        self.logger.debug(
            f"Encrypted message for {self._describe(recipient)} (signed: {isinstance(signing, SignWith)})",
        )
        return str(encrypted)

    def decrypt_message(
        self,
        ciphertext: str,
        recipient_private_key: str,
        passphrase: str,
        verification: VerificationIntent = SKIP_VERIFICATION,
    ) -> DecryptedMessage:
        """Decrypt an armored message and opportunistically verify its signature.

        A missing or failed signature never aborts decryption; it yields
        ``verified=False`` instead.

        Raises:
            KeyParseError: If a supplied key cannot be parsed
            KeyUnlockError: If the passphrase does not unlock the private key
            DecryptionError: If the ciphertext is corrupted or not for this key

        """
        key = self._load_private_key(recipient_private_key, "recipient private key")
        verifier = self._load_verifier(verification)
        decrypted = self._decrypt(self._load_message(ciphertext), key, passphrase)

        payload = decrypted.message
        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = bytes(payload).decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecryptionError(DECRYPT_FAILED_MESSAGE, e) from e

        return DecryptedMessage(message=payload, verified=self._verify(decrypted, verifier))

    def encrypt_file(
        self,
        data: bytes,
        filename: str,
        recipient_public_key: str,
        signing: SigningIntent = NO_SIGNING,
    ) -> EncryptedFile:
        """Encrypt binary file contents, keeping the original filename inside.

        Returns:
            Binary OpenPGP message and the suggested ``<filename>.pgp`` name

        Raises:
            KeyParseError: If a supplied key cannot be parsed
            KeyUnlockError: If signing was requested and the key does not unlock
            EncryptionError: If the filename is empty or encryption fails

        """
        name = Path(filename).name
        if not name:
            error_msg = "A filename is required to encrypt a file"
            raise EncryptionError(error_msg)

        recipient = self._load_public_key(recipient_public_key, "recipient public key")

        # PGPy only records a literal filename when reading from disk
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / name
            source.write_bytes(data)
            message = pgpy.PGPMessage.new(str(source), file=True, format="b")

        encrypted = self._sign_and_encrypt(message, recipient, signing)
        self.logger.debug(f"Encrypted file '{name}' ({len(data)} bytes)")
        return EncryptedFile(data=bytes(encrypted), filename=f"{name}{self.ENCRYPTED_FILE_SUFFIX}")

    def decrypt_file(
        self,
        data: bytes,
        recipient_private_key: str,
        passphrase: str,
        verification: VerificationIntent = SKIP_VERIFICATION,
    ) -> DecryptedFile:
        """Decrypt a binary OpenPGP message produced by encrypt_file.

        Raises:
            KeyParseError: If a supplied key cannot be parsed
            KeyUnlockError: If the passphrase does not unlock the private key
            DecryptionError: If the data is corrupted or not for this key

        """
        key = self._load_private_key(recipient_private_key, "recipient private key")
        verifier = self._load_verifier(verification)
        decrypted = self._decrypt(self._load_message(data), key, passphrase)

        payload = decrypted.message
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        return DecryptedFile(
            data=bytes(payload),
            filename=decrypted.filename or self.DEFAULT_FILENAME,
            verified=self._verify(decrypted, verifier),
        )

    def validate_public_key(self, public_key: str) -> bool:
        """Return True if the text parses as an OpenPGP public key."""
        try:
            key, _ = pgpy.PGPKey.from_blob(public_key)
        except Exception:
            self.logger.debug("Public key failed to parse")
            return False
        return key.is_public

    def validate_private_key(self, private_key: str, passphrase: str) -> bool:
        """Return True if the private key parses and the passphrase unlocks it.

        An unprotected key is rejected: PGPy would accept any passphrase for it.
        """
        try:
            key = self._load_private_key(private_key, "private key")
            if not key.is_protected:
                self.logger.warning("Private key is not passphrase protected")
                return False
            # Unlocking proves the passphrase without keeping the key open
            with unlocked_key(key, passphrase):
                return True
        except Exception:
            self.logger.debug("Private key failed validation")
            return False

    def get_key_email(self, public_key: str) -> str | None:
        """Return the e-mail of the key's first user ID, or None."""
        try:
            key, _ = pgpy.PGPKey.from_blob(public_key)
        except Exception:
            self.logger.warning("Could not read user ID from key")
            return None

        for uid in key.userids:
            if uid.email:
                return uid.email
        return None

    def export_public_key(self, key: str) -> str:
        """Return the normalised armored public key.

        A private key is accepted and its public half exported.

        Raises:
            KeyParseError: If the key cannot be parsed

        """
        return str(self._load_public_key(key, "key"))

    def get_cached_key_pair(self, identity: str) -> KeyPair | None:
        """Return the key pair generated for an identity in this session."""
        return self.key_cache.get(identity)

    def clear_key_cache(self) -> None:
        """Forget every cached key pair, e.g. on logout."""
        self.key_cache.clear()
        self.logger.info("Key cache cleared")

    def _load_key(self, armored: str, purpose: str) -> pgpy.PGPKey:
        try:
            key, _ = pgpy.PGPKey.from_blob(armored)
        except Exception as e:
            error_msg = f"Invalid {purpose}"
            self.logger.error(error_msg)
            raise KeyParseError(error_msg, e) from e
        return key

    def _load_public_key(self, armored: str, purpose: str) -> pgpy.PGPKey:
        key = self._load_key(armored, purpose)
        return key if key.is_public else key.pubkey

    def _load_private_key(self, armored: str, purpose: str) -> pgpy.PGPKey:
        key = self._load_key(armored, purpose)
        if key.is_public:
            error_msg = f"Invalid {purpose}: expected a private key"
            self.logger.error(error_msg)
            raise KeyParseError(error_msg)
        return key

    def _load_verifier(self, verification: VerificationIntent) -> pgpy.PGPKey | None:
        if isinstance(verification, VerifyWith):
            return self._load_public_key(verification.public_key, "sender public key")
        return None

    def _load_message(self, blob: str | bytes) -> pgpy.PGPMessage:
        try:
            message = pgpy.PGPMessage.from_blob(blob)
        except Exception as e:
            self.logger.error(DECRYPT_FAILED_MESSAGE)
            raise DecryptionError(DECRYPT_FAILED_MESSAGE, e) from e

        if not message.is_encrypted:
            self.logger.error(f"{DECRYPT_FAILED_MESSAGE}: input is not encrypted")
            raise DecryptionError(DECRYPT_FAILED_MESSAGE)
        return message

    def _sign_and_encrypt(
        self,
        message: pgpy.PGPMessage,
        recipient: pgpy.PGPKey,
        signing: SigningIntent,
    ) -> pgpy.PGPMessage:
        if isinstance(signing, SignWith):
            # Sign the literal message first so the signature is encrypted with it
            signer = self._load_private_key(signing.private_key, "signing private key")
            with unlocked_key(signer, signing.passphrase):
                try:
                    message |= signer.sign(message)
                except Exception as e:
                    error_msg = "Failed to sign message"
                    self.logger.exception(error_msg)
                    raise EncryptionError(error_msg, e) from e

        try:
            return recipient.encrypt(message)
        except Exception as e:
            error_msg = "Failed to encrypt message"
            self.logger.exception(error_msg)
            raise EncryptionError(error_msg, e) from e

    def _decrypt(
        self,
        message: pgpy.PGPMessage,
        key: pgpy.PGPKey,
        passphrase: str,
    ) -> pgpy.PGPMessage:
        # Subkeys are unlocked together with the primary key
        with unlocked_key(key, passphrase):
            try:
                return key.decrypt(message)
            except Exception as e:
                self.logger.error(DECRYPT_FAILED_MESSAGE)
                raise DecryptionError(DECRYPT_FAILED_MESSAGE, e) from e

    def _verify(self, message: pgpy.PGPMessage, verifier: pgpy.PGPKey | None) -> bool:
        # A missing signature is reported as unverified, not as an error
        if verifier is None or not message.signatures:
            return False
        try:
            return bool(verifier.verify(message))
        except Exception:
            self.logger.warning("Signature could not be verified")
            return False

    @staticmethod
    def _describe(key: pgpy.PGPKey) -> str:
        for uid in key.userids:
            if uid.email:
                return uid.email
        return str(key.fingerprint).replace(" ", "")
