"""Shared fixtures for MailCrypt tests."""

import logging
from unittest.mock import Mock

import pytest

from mailcrypt.logging import get_logger
from mailcrypt.pgp import KeyPair, PGPEncryptionService

ALICE = "alice@example.com"
ALICE_PASSPHRASE = "correct-horse"
BOB = "bob@example.com"
BOB_PASSPHRASE = "battery-staple"
MALLORY = "mallory@example.com"
MALLORY_PASSPHRASE = "not-to-be-trusted"


@pytest.fixture
def logger() -> Mock:
    """Create a mock logger for testing."""
    return Mock(spec=logging.Logger)


@pytest.fixture(scope="session")
def key_factory() -> PGPEncryptionService:
    """Service used only to mint key pairs shared across the session."""
    return PGPEncryptionService(get_logger("mailcrypt.tests"))


@pytest.fixture(scope="session")
def alice_keys(key_factory) -> KeyPair:
    """Key pair for alice@example.com."""
    return key_factory.generate_key_pair(ALICE, ALICE_PASSPHRASE)


@pytest.fixture(scope="session")
def bob_keys(key_factory) -> KeyPair:
    """Key pair for bob@example.com."""
    return key_factory.generate_key_pair(BOB, BOB_PASSPHRASE)


@pytest.fixture(scope="session")
def mallory_keys(key_factory) -> KeyPair:
    """Key pair for a third party whose signatures must not verify as Alice's."""
    return key_factory.generate_key_pair(MALLORY, MALLORY_PASSPHRASE)
