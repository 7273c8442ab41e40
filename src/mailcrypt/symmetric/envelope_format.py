"""Binary layout of symmetric envelopes and salted hashes.

Envelope (hex encoded)::

    version (1) | salt (64) | iv (16) | tag (16) | ciphertext (n)

Salted hash (hex encoded)::

    version (1) | salt (64) | digest (32)

Field lengths and KDF parameters are fixed per version byte.
"""

from dataclasses import dataclass

from mailcrypt.exceptions import MalformedEnvelopeError


@dataclass(frozen=True)
class FormatVersion:
    """Cipher and KDF parameters bound to one version byte."""

    version: int
    salt_length: int
    iv_length: int
    tag_length: int
    key_length: int
    iterations: int

    @property
    def header_length(self) -> int:
        """Bytes before the ciphertext."""
        return 1 + self.salt_length + self.iv_length + self.tag_length


V1 = FormatVersion(
    version=0x01,
    salt_length=64,
    iv_length=16,
    tag_length=16,
    key_length=32,
    iterations=100_000,
)

CURRENT = V1
VERSIONS = {V1.version: V1}


@dataclass(frozen=True)
class Envelope:
    """Fields of one symmetric envelope."""

    params: FormatVersion
    salt: bytes
    iv: bytes
    tag: bytes
    ciphertext: bytes


@dataclass(frozen=True)
class SaltedHash:
    """Fields of one salted hash."""

    params: FormatVersion
    salt: bytes
    digest: bytes


def pack_envelope(envelope: Envelope) -> str:
    """Serialise an envelope to its hex string form."""
    raw = (
        bytes([envelope.params.version])
        + envelope.salt
        + envelope.iv
        + envelope.tag
        + envelope.ciphertext
    )
    return raw.hex()


def unpack_envelope(value: str) -> Envelope:
    """Split a hex envelope into its fields by fixed-length slicing.

    Raises:
        MalformedEnvelopeError: On bad hex, unknown version or short input

    """
    raw = _decode(value)
    params = _params_for(raw)
    if len(raw) < params.header_length:
        error_msg = "Envelope is too short"
        raise MalformedEnvelopeError(error_msg)

    salt_end = 1 + params.salt_length
    iv_end = salt_end + params.iv_length
    tag_end = iv_end + params.tag_length
    return Envelope(
        params=params,
        salt=raw[1:salt_end],
        iv=raw[salt_end:iv_end],
        tag=raw[iv_end:tag_end],
        ciphertext=raw[tag_end:],
    )


def pack_hash(salted_hash: SaltedHash) -> str:
    """Serialise a salted hash to its hex string form."""
    return (bytes([salted_hash.params.version]) + salted_hash.salt + salted_hash.digest).hex()


def unpack_hash(value: str) -> SaltedHash:
    """Split a hex salted hash into salt and digest.

    Raises:
        MalformedEnvelopeError: On bad hex, unknown version or wrong length

    """
    raw = _decode(value)
    params = _params_for(raw)
    if len(raw) != 1 + params.salt_length + params.key_length:
        error_msg = "Hash has the wrong length"
        raise MalformedEnvelopeError(error_msg)

    salt_end = 1 + params.salt_length
    return SaltedHash(params=params, salt=raw[1:salt_end], digest=raw[salt_end:])


def looks_like_envelope(value: object) -> bool:
    """Check the format marker and minimum length without decrypting."""
    if not isinstance(value, str):
        return False
    try:
        unpack_envelope(value)
    except MalformedEnvelopeError:
        return False
    return True


def _decode(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (ValueError, TypeError) as e:
        error_msg = "Value is not hex encoded"
        raise MalformedEnvelopeError(error_msg, e) from e


def _params_for(raw: bytes) -> FormatVersion:
    if not raw:
        error_msg = "Value is empty"
        raise MalformedEnvelopeError(error_msg)
    params = VERSIONS.get(raw[0])
    if params is None:
        error_msg = f"Unknown format version {raw[0]}"
        raise MalformedEnvelopeError(error_msg)
    return params
