"""Authenticated symmetric encryption for data at rest."""

from .cipher import SymmetricCipher, build_kdf
from .envelope_format import CURRENT, V1, FormatVersion, looks_like_envelope

__all__ = ["CURRENT", "V1", "FormatVersion", "SymmetricCipher", "build_kdf", "looks_like_envelope"]
