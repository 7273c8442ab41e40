"""MailCrypt - end-to-end encryption core for mail services.

Provides OpenPGP key generation, message and file encryption with optional
signatures, and authenticated symmetric envelopes for data at rest.
"""

__version__ = "0.1.0"
__author__ = "MailCrypt Team"
__email__ = "mailcrypt@example.com"

from . import exceptions, logging

__all__ = ["exceptions", "logging"]
