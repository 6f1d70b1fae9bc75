import base64
import binascii
import hashlib
import os

# AES-256 is the only algorithm Cloud Storage accepts for customer-supplied keys
KEY_LEN = 32


class InvalidKeyError(ValueError):
    """Raised when a customer-supplied key cannot be used."""


class EncryptionKey:
    """A customer-supplied AES-256 key.

    The storage service never keeps the key itself, only its SHA-256 hash, so
    the same key must be presented on every read or rewrite of an object.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if not isinstance(raw, (bytes, bytearray)):
            raise InvalidKeyError("Encryption key must be bytes")
        if len(raw) != KEY_LEN:
            raise InvalidKeyError(
                f"Encryption key must be {KEY_LEN} bytes, got {len(raw)}"
            )
        self._raw = bytes(raw)

    @classmethod
    def from_base64(cls, text: str) -> "EncryptionKey":
        """Parse an RFC 4648 base64 key as printed by generate-encryption-key."""
        if not text:
            raise InvalidKeyError("Encryption key is empty")
        try:
            raw = base64.b64decode(text.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidKeyError(f"Encryption key is not valid base64: {e}") from e
        return cls(raw)

    @classmethod
    def coerce(cls, key) -> "EncryptionKey":
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            return cls.from_base64(key)
        return cls(key)

    @property
    def raw(self) -> bytes:
        return self._raw

    @property
    def base64(self) -> str:
        return base64.b64encode(self._raw).decode("ascii")

    @property
    def sha256(self) -> str:
        """Base64 SHA-256 of the key, as reported in object metadata."""
        return base64.b64encode(hashlib.sha256(self._raw).digest()).decode("ascii")

    def __eq__(self, other):
        if not isinstance(other, EncryptionKey):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self):
        return hash(self._raw)

    def __str__(self):
        return f"<EncryptionKey sha256={self.sha256}>"

    __repr__ = __str__


def generate_encryption_key() -> EncryptionKey:
    """Generate a new random 256-bit key."""
    return EncryptionKey(os.urandom(KEY_LEN))
