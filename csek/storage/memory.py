import logging
import os
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from csek.crypto.keys import EncryptionKey
from csek.storage.provider import (
    BucketNotEmpty,
    BucketNotFound,
    DecryptionError,
    ObjectNotFound,
    StorageError,
    StorageProvider,
)

logger = logging.getLogger(__name__)


class _StoredObject:
    __slots__ = ("key_sha256", "blob")

    def __init__(self, key_sha256: str, blob: bytes):
        self.key_sha256 = key_sha256
        self.blob = blob


def seal_object(data: bytes, key: EncryptionKey, aad: bytes) -> bytes:
    """AES-256-GCM under the customer key, nonce prefixed."""
    nonce = os.urandom(12)
    return nonce + AESGCM(key.raw).encrypt(nonce, data, aad)


def open_object(key_sha256: str, blob: bytes, key: EncryptionKey, aad: bytes) -> bytes:
    if key_sha256 != key.sha256:
        raise DecryptionError(
            "The provided encryption key is incorrect "
            f"(expected sha256={key_sha256})"
        )
    nonce, enc = blob[:12], blob[12:]
    try:
        return AESGCM(key.raw).decrypt(nonce, enc, aad)
    except InvalidTag as e:
        raise DecryptionError("Object failed integrity check") from e


class InMemoryStorageProvider(StorageProvider):
    """Process-local storage for tests; nothing survives the process.

    Seals each object with AES-256-GCM under the customer key and keeps only
    the key's SHA-256 alongside it, so an object can only be read back with
    the exact key that wrote it.
    """

    name = "memory"

    def __init__(self):
        self._buckets: dict[str, dict[str, _StoredObject]] = {}
        self._lock = threading.Lock()

    def _bucket(self, bucket_name: str) -> dict:
        try:
            return self._buckets[bucket_name]
        except KeyError:
            raise BucketNotFound(f"Bucket {bucket_name} not found") from None

    def _object(self, bucket_name: str, blob_name: str) -> _StoredObject:
        try:
            return self._bucket(bucket_name)[blob_name]
        except KeyError:
            raise ObjectNotFound(f"gs://{bucket_name}/{blob_name} not found") from None

    def create_bucket(self, bucket_name: str):
        with self._lock:
            if bucket_name in self._buckets:
                raise StorageError(f"Bucket {bucket_name} already exists")
            self._buckets[bucket_name] = {}
        logger.info("Created bucket %s", bucket_name)

    def delete_bucket(self, bucket_name: str):
        with self._lock:
            if self._bucket(bucket_name):
                raise BucketNotEmpty(f"Bucket {bucket_name} is not empty")
            del self._buckets[bucket_name]
        logger.info("Deleted bucket %s", bucket_name)

    def delete_objects(self, bucket_name: str) -> int:
        with self._lock:
            objects = self._bucket(bucket_name)
            deleted = len(objects)
            objects.clear()
        return deleted

    def object_exists(self, bucket_name: str, blob_name: str) -> bool:
        with self._lock:
            return blob_name in self._bucket(bucket_name)

    def upload_file(self, bucket_name: str, local_path: str, blob_name: str, key: EncryptionKey):
        with open(local_path, 'rb') as f:
            data = f.read()
        sealed = seal_object(data, key, blob_name.encode())
        with self._lock:
            self._bucket(bucket_name)[blob_name] = _StoredObject(key.sha256, sealed)
        logger.info("Uploaded %s to gs://%s/%s (key sha256=%s)",
                    local_path, bucket_name, blob_name, key.sha256)

    def download_file(self, bucket_name: str, blob_name: str, local_path: str, key: EncryptionKey):
        with self._lock:
            stored = self._object(bucket_name, blob_name)
        data = open_object(stored.key_sha256, stored.blob, key, blob_name.encode())
        with open(local_path, 'wb') as f:
            f.write(data)
        logger.info("Downloaded gs://%s/%s to %s", bucket_name, blob_name, local_path)

    def rewrite_key(self, bucket_name: str, blob_name: str, old_key: EncryptionKey, new_key: EncryptionKey):
        aad = blob_name.encode()
        with self._lock:
            stored = self._object(bucket_name, blob_name)
            data = open_object(stored.key_sha256, stored.blob, old_key, aad)
            self._bucket(bucket_name)[blob_name] = _StoredObject(
                new_key.sha256, seal_object(data, new_key, aad)
            )
        logger.info("Rotated key of gs://%s/%s from sha256=%s to sha256=%s",
                    bucket_name, blob_name, old_key.sha256, new_key.sha256)
