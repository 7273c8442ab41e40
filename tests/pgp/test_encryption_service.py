"""Tests for the OpenPGP encryption service."""

import logging
from unittest.mock import Mock, patch

import pgpy
import pytest

from mailcrypt.exceptions import (
    CryptoOperationError,
    DecryptionError,
    EncryptionError,
    KeyGenerationError,
    KeyParseError,
    KeyUnlockError,
)
from mailcrypt.pgp import (
    KeyCache,
    PGPEncryptionService,
    SignWith,
    VerifyWith,
)


@pytest.fixture
def service(logger) -> PGPEncryptionService:
    """Create a service with its own empty key cache."""
    return PGPEncryptionService(logger, KeyCache())


class TestGenerateKeyPair:
    """Test cases for key pair generation."""

    def test_generate_key_pair_fields(self, service) -> None:
        """Test that a generated pair is armored and bound to the identity."""
        key_pair = service.generate_key_pair("carol@example.com", "open-sesame")

        assert key_pair.identity == "carol@example.com"
        assert "BEGIN PGP PUBLIC KEY BLOCK" in key_pair.public_key
        assert "BEGIN PGP PRIVATE KEY BLOCK" in key_pair.private_key
        assert key_pair.fingerprint
        assert " " not in key_pair.fingerprint
        assert key_pair.created_at.tzinfo is not None

    def test_generated_key_is_curve25519(self, service) -> None:
        """Test that the primary key is EdDSA with an ECDH encryption subkey."""
        key_pair = service.generate_key_pair("carol@example.com", "open-sesame")
        key, _ = pgpy.PGPKey.from_blob(key_pair.public_key)

        assert key.key_algorithm == pgpy.constants.PubKeyAlgorithm.EdDSA
        subkey_algorithms = {sk.key_algorithm for sk in key.subkeys.values()}
        assert pgpy.constants.PubKeyAlgorithm.ECDH in subkey_algorithms

    def test_private_key_is_protected(self, service) -> None:
        """Test that the private key cannot be used without its passphrase."""
        key_pair = service.generate_key_pair("carol@example.com", "open-sesame")
        key, _ = pgpy.PGPKey.from_blob(key_pair.private_key)

        assert key.is_protected
        assert not key.is_unlocked

    def test_generate_key_pair_populates_cache(self, service) -> None:
        """Test that generation stores the pair in the injected cache."""
        key_pair = service.generate_key_pair("carol@example.com", "open-sesame")

        assert service.get_cached_key_pair("carol@example.com") == key_pair
        assert "carol@example.com" in service.key_cache

    def test_generate_key_pair_overwrites_cache_entry(self, service) -> None:
        """Test that regenerating for an identity replaces the cached pair."""
        first = service.generate_key_pair("carol@example.com", "open-sesame")
        second = service.generate_key_pair("carol@example.com", "open-sesame")

        assert first.fingerprint != second.fingerprint
        assert service.get_cached_key_pair("carol@example.com") == second
        assert len(service.key_cache) == 1

    def test_generate_key_pair_empty_passphrase(self, service) -> None:
        """Test that an empty passphrase is rejected."""
        with pytest.raises(KeyGenerationError, match="Passphrase must not be empty"):
            service.generate_key_pair("carol@example.com", "")

        assert len(service.key_cache) == 0

    def test_generate_key_pair_primitive_failure(self, service) -> None:
        """Test that a primitive failure surfaces as KeyGenerationError."""
        with patch("pgpy.PGPKey.new", side_effect=RuntimeError("no entropy")):
            with pytest.raises(KeyGenerationError) as exc_info:
                service.generate_key_pair("carol@example.com", "open-sesame")

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert service.get_cached_key_pair("carol@example.com") is None

    def test_services_do_not_share_caches(self, logger) -> None:
        """Test that separate services keep separate caches."""
        first = PGPEncryptionService(logger)
        second = PGPEncryptionService(logger)

        first.generate_key_pair("carol@example.com", "open-sesame")

        assert first.get_cached_key_pair("carol@example.com") is not None
        assert second.get_cached_key_pair("carol@example.com") is None

    def test_clear_key_cache(self, service) -> None:
        """Test that clearing the cache forgets generated pairs."""
        service.generate_key_pair("carol@example.com", "open-sesame")

        service.clear_key_cache()

        assert service.get_cached_key_pair("carol@example.com") is None
        service.logger.info.assert_called_with("Key cache cleared")


class TestMessageEncryption:
    """Test cases for message encryption and decryption."""

    def test_round_trip_without_signature(self, service, alice_keys) -> None:
        """Test that an unsigned message decrypts to the same text, unverified."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)
        result = service.decrypt_message(ciphertext, alice_keys.private_key, "correct-horse")

        assert result.message == "hello"
        assert result.verified is False

    def test_ciphertext_is_armored(self, service, alice_keys) -> None:
        """Test that message ciphertext is ASCII armored."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        assert ciphertext.startswith("-----BEGIN PGP MESSAGE-----")
        assert "hello" not in ciphertext

    def test_round_trip_unicode(self, service, alice_keys) -> None:
        """Test that non-ASCII text survives encryption."""
        text = "Hej Søren, vi ses på fredag ✉"
        ciphertext = service.encrypt_message(text, alice_keys.public_key)

        assert service.decrypt_message(ciphertext, alice_keys.private_key, "correct-horse").message == text

    def test_ciphertext_is_not_deterministic(self, service, alice_keys) -> None:
        """Test that encrypting the same text twice gives different ciphertexts."""
        first = service.encrypt_message("hello", alice_keys.public_key)
        second = service.encrypt_message("hello", alice_keys.public_key)

        assert first != second
        assert service.decrypt_message(first, alice_keys.private_key, "correct-horse").message == "hello"
        assert service.decrypt_message(second, alice_keys.private_key, "correct-horse").message == "hello"

    def test_decrypt_wrong_passphrase(self, service, alice_keys) -> None:
        """Test that a wrong passphrase raises KeyUnlockError."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        with pytest.raises(KeyUnlockError):
            service.decrypt_message(ciphertext, alice_keys.private_key, "wrong-horse")

    def test_decrypt_empty_passphrase(self, service, alice_keys) -> None:
        """Test that an empty passphrase raises KeyUnlockError."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        with pytest.raises(KeyUnlockError):
            service.decrypt_message(ciphertext, alice_keys.private_key, "")

    def test_decrypt_with_other_recipient_key(self, service, alice_keys, bob_keys) -> None:
        """Test that a message for Alice cannot be decrypted with Bob's key."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        with pytest.raises(DecryptionError):
            service.decrypt_message(ciphertext, bob_keys.private_key, "battery-staple")

    def test_decrypt_corrupted_ciphertext(self, service, alice_keys) -> None:
        """Test that garbage input raises DecryptionError."""
        with pytest.raises(DecryptionError, match="Failed to decrypt message"):
            service.decrypt_message("not a pgp message", alice_keys.private_key, "correct-horse")

    def test_decrypt_unencrypted_message(self, service, alice_keys) -> None:
        """Test that a plain literal message is rejected rather than passed through."""
        plain = str(pgpy.PGPMessage.new("hello"))

        with pytest.raises(DecryptionError):
            service.decrypt_message(plain, alice_keys.private_key, "correct-horse")

    def test_encrypt_invalid_recipient_key(self, service) -> None:
        """Test that an unparseable recipient key raises KeyParseError."""
        with pytest.raises(KeyParseError, match="Invalid recipient public key"):
            service.encrypt_message("hello", "-----BEGIN PGP PUBLIC KEY BLOCK-----\nbroken")

    def test_decrypt_with_public_key_instead_of_private(self, service, alice_keys) -> None:
        """Test that a public key is refused where a private key is needed."""
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        with pytest.raises(KeyParseError, match="expected a private key"):
            service.decrypt_message(ciphertext, alice_keys.public_key, "correct-horse")

    def test_encrypt_accepts_private_key_as_recipient(self, service, alice_keys) -> None:
        """Test that the public half of a private key is used for encryption."""
        ciphertext = service.encrypt_message("hello", alice_keys.private_key)

        assert service.decrypt_message(ciphertext, alice_keys.private_key, "correct-horse").message == "hello"

    def test_crypto_errors_share_a_base(self, service) -> None:
        """Test that callers can catch every crypto failure in one clause."""
        with pytest.raises(CryptoOperationError):
            service.encrypt_message("hello", "garbage")


class TestSignatures:
    """Test cases for signing and signature verification."""

    def test_signed_message_verifies(self, service, alice_keys, bob_keys) -> None:
        """Test that a message signed by Alice verifies against her public key."""
        ciphertext = service.encrypt_message(
            "meet at noon",
            bob_keys.public_key,
            SignWith(alice_keys.private_key, "correct-horse"),
        )
        result = service.decrypt_message(
            ciphertext,
            bob_keys.private_key,
            "battery-staple",
            VerifyWith(alice_keys.public_key),
        )

        assert result.message == "meet at noon"
        assert result.verified is True

    def test_signature_from_other_sender_does_not_verify(
        self,
        service,
        alice_keys,
        bob_keys,
        mallory_keys,
    ) -> None:
        """Test that verifying against the wrong sender still returns the message."""
        ciphertext = service.encrypt_message(
            "meet at noon",
            bob_keys.public_key,
            SignWith(alice_keys.private_key, "correct-horse"),
        )
        result = service.decrypt_message(
            ciphertext,
            bob_keys.private_key,
            "battery-staple",
            VerifyWith(mallory_keys.public_key),
        )

        assert result.message == "meet at noon"
        assert result.verified is False

    def test_signed_message_without_verification(self, service, alice_keys, bob_keys) -> None:
        """Test that a signature is not reported as verified when no key is given."""
        ciphertext = service.encrypt_message(
            "meet at noon",
            bob_keys.public_key,
            SignWith(alice_keys.private_key, "correct-horse"),
        )
        result = service.decrypt_message(ciphertext, bob_keys.private_key, "battery-staple")

        assert result.message == "meet at noon"
        assert result.verified is False

    def test_unsigned_message_with_verification_key(self, service, alice_keys, bob_keys) -> None:
        """Test that an unsigned message is unverified even with a sender key."""
        ciphertext = service.encrypt_message("meet at noon", bob_keys.public_key)
        result = service.decrypt_message(
            ciphertext,
            bob_keys.private_key,
            "battery-staple",
            VerifyWith(alice_keys.public_key),
        )

        assert result.message == "meet at noon"
        assert result.verified is False

    def test_signing_with_wrong_passphrase_aborts(self, service, alice_keys, bob_keys) -> None:
        """Test that a requested signature never silently degrades to unsigned."""
        with pytest.raises(KeyUnlockError):
            service.encrypt_message(
                "meet at noon",
                bob_keys.public_key,
                SignWith(alice_keys.private_key, "wrong-horse"),
            )

    def test_signing_with_empty_passphrase_aborts(self, service, alice_keys, bob_keys) -> None:
        """Test that an empty signing passphrase is an unlock failure."""
        with pytest.raises(KeyUnlockError):
            service.encrypt_message(
                "meet at noon",
                bob_keys.public_key,
                SignWith(alice_keys.private_key, ""),
            )

    def test_signing_with_unparseable_key(self, service, bob_keys) -> None:
        """Test that a broken signing key raises KeyParseError."""
        with pytest.raises(KeyParseError, match="Invalid signing private key"):
            service.encrypt_message(
                "meet at noon",
                bob_keys.public_key,
                SignWith("garbage", "correct-horse"),
            )

    def test_invalid_verification_key(self, service, bob_keys) -> None:
        """Test that a broken sender key raises KeyParseError."""
        ciphertext = service.encrypt_message("meet at noon", bob_keys.public_key)

        with pytest.raises(KeyParseError, match="Invalid sender public key"):
            service.decrypt_message(
                ciphertext,
                bob_keys.private_key,
                "battery-staple",
                VerifyWith("garbage"),
            )

    def test_encryption_failure_is_wrapped(self, service, alice_keys) -> None:
        """Test that an encryption primitive failure raises EncryptionError."""
        with patch("pgpy.PGPKey.encrypt", side_effect=ValueError("boom")):
            with pytest.raises(EncryptionError, match="Failed to encrypt message"):
                service.encrypt_message("hello", alice_keys.public_key)


class TestFileEncryption:
    """Test cases for binary file encryption."""

    def test_file_round_trip(self, service, alice_keys) -> None:
        """Test that binary data and filename survive encryption."""
        payload = bytes(range(256)) * 4

        encrypted = service.encrypt_file(payload, "report.bin", alice_keys.public_key)
        decrypted = service.decrypt_file(encrypted.data, alice_keys.private_key, "correct-horse")

        assert encrypted.filename == "report.bin.pgp"
        assert isinstance(encrypted.data, bytes)
        assert not encrypted.data.startswith(b"-----BEGIN")
        assert decrypted.data == payload
        assert decrypted.filename == "report.bin"
        assert decrypted.verified is False

    def test_file_filename_strips_directories(self, service, alice_keys) -> None:
        """Test that only the base name of the file is embedded."""
        encrypted = service.encrypt_file(b"data", "/tmp/nested/notes.txt", alice_keys.public_key)
        decrypted = service.decrypt_file(encrypted.data, alice_keys.private_key, "correct-horse")

        assert encrypted.filename == "notes.txt.pgp"
        assert decrypted.filename == "notes.txt"

    def test_signed_file_verifies(self, service, alice_keys, bob_keys) -> None:
        """Test that a signed file verifies against the sender's public key."""
        encrypted = service.encrypt_file(
            b"\x00\x01binary\xff",
            "blob.dat",
            bob_keys.public_key,
            SignWith(alice_keys.private_key, "correct-horse"),
        )
        decrypted = service.decrypt_file(
            encrypted.data,
            bob_keys.private_key,
            "battery-staple",
            VerifyWith(alice_keys.public_key),
        )

        assert decrypted.data == b"\x00\x01binary\xff"
        assert decrypted.verified is True

    def test_signed_file_wrong_sender(self, service, alice_keys, bob_keys, mallory_keys) -> None:
        """Test that a file verified against another sender is still returned."""
        encrypted = service.encrypt_file(
            b"payload",
            "blob.dat",
            bob_keys.public_key,
            SignWith(alice_keys.private_key, "correct-horse"),
        )
        decrypted = service.decrypt_file(
            encrypted.data,
            bob_keys.private_key,
            "battery-staple",
            VerifyWith(mallory_keys.public_key),
        )

        assert decrypted.data == b"payload"
        assert decrypted.verified is False

    def test_file_empty_filename(self, service, alice_keys) -> None:
        """Test that an empty filename is rejected."""
        with pytest.raises(EncryptionError, match="A filename is required"):
            service.encrypt_file(b"data", "", alice_keys.public_key)

    def test_file_wrong_passphrase(self, service, alice_keys) -> None:
        """Test that a wrong passphrase raises KeyUnlockError for files."""
        encrypted = service.encrypt_file(b"data", "a.txt", alice_keys.public_key)

        with pytest.raises(KeyUnlockError):
            service.decrypt_file(encrypted.data, alice_keys.private_key, "wrong-horse")

    def test_file_corrupted(self, service, alice_keys) -> None:
        """Test that truncated ciphertext raises DecryptionError."""
        encrypted = service.encrypt_file(b"data" * 100, "a.txt", alice_keys.public_key)

        with pytest.raises(DecryptionError):
            service.decrypt_file(encrypted.data[:20], alice_keys.private_key, "correct-horse")


class TestKeyInspection:
    """Test cases for key validation and inspection helpers."""

    def test_validate_public_key(self, service, alice_keys) -> None:
        """Test public key validation results."""
        assert service.validate_public_key(alice_keys.public_key) is True
        assert service.validate_public_key(alice_keys.private_key) is False
        assert service.validate_public_key("garbage") is False
        assert service.validate_public_key("") is False

    def test_validate_private_key(self, service, alice_keys) -> None:
        """Test private key validation results."""
        assert service.validate_private_key(alice_keys.private_key, "correct-horse") is True
        assert service.validate_private_key(alice_keys.private_key, "wrong-horse") is False
        assert service.validate_private_key(alice_keys.private_key, "") is False
        assert service.validate_private_key(alice_keys.public_key, "correct-horse") is False
        assert service.validate_private_key("garbage", "correct-horse") is False

    def test_validate_private_key_unprotected(self, service) -> None:
        """Test that a key without passphrase protection never validates."""
        bare = pgpy.PGPKey.new(
            pgpy.constants.PubKeyAlgorithm.EdDSA,
            pgpy.constants.EllipticCurveOID.Ed25519,
        )

        assert service.validate_private_key(str(bare), "any-passphrase") is False

    def test_validate_private_key_leaves_key_usable(self, service, alice_keys) -> None:
        """Test that validation does not consume or alter the armored key."""
        service.validate_private_key(alice_keys.private_key, "correct-horse")
        ciphertext = service.encrypt_message("hello", alice_keys.public_key)

        assert service.decrypt_message(ciphertext, alice_keys.private_key, "correct-horse").message == "hello"

    def test_get_key_email(self, service, alice_keys) -> None:
        """Test that the bound identity is read back from the key."""
        assert service.get_key_email(alice_keys.public_key) == "alice@example.com"

    def test_get_key_email_unparseable(self, service) -> None:
        """Test that an unparseable key yields None rather than an error."""
        assert service.get_key_email("garbage") is None

    def test_get_key_email_without_user_id(self, service) -> None:
        """Test that a key without a user ID yields None."""
        bare = pgpy.PGPKey.new(
            pgpy.constants.PubKeyAlgorithm.EdDSA,
            pgpy.constants.EllipticCurveOID.Ed25519,
        )

        assert service.get_key_email(str(bare.pubkey)) is None

    def test_export_public_key(self, service, alice_keys) -> None:
        """Test that exporting a private key yields its public half."""
        exported = service.export_public_key(alice_keys.private_key)

        assert "BEGIN PGP PUBLIC KEY BLOCK" in exported
        assert service.get_key_email(exported) == "alice@example.com"
        assert service.validate_public_key(exported) is True

    def test_export_public_key_invalid(self, service) -> None:
        """Test that exporting garbage raises KeyParseError."""
        with pytest.raises(KeyParseError):
            service.export_public_key("garbage")


class TestLoggingHygiene:
    """Test cases ensuring secrets never reach the logs."""

    def test_passphrase_and_plaintext_not_logged(self, alice_keys) -> None:
        """Test that log calls never include the passphrase or plaintext."""
        logger = Mock(spec=logging.Logger)
        service = PGPEncryptionService(logger)

        ciphertext = service.encrypt_message("top secret body", alice_keys.public_key)
        service.decrypt_message(ciphertext, alice_keys.private_key, "correct-horse")
        with pytest.raises(KeyUnlockError):
            service.decrypt_message(ciphertext, alice_keys.private_key, "wrong-horse")

        logged = " ".join(str(call) for call in logger.mock_calls)
        assert "top secret body" not in logged
        assert "correct-horse" not in logged
        assert "wrong-horse" not in logged
