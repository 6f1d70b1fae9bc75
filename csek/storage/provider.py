from abc import ABC, abstractmethod

from csek.crypto.keys import EncryptionKey


class StorageError(Exception):
    """Base error for storage backend failures."""


class BucketNotFound(StorageError):
    pass


class ObjectNotFound(StorageError):
    pass


class BucketNotEmpty(StorageError):
    pass


class DecryptionError(StorageError):
    """The supplied key does not match the key the object was written with."""


class StorageProvider(ABC):
    """Abstract object storage interface for customer-supplied key operations."""

    name = "abstract"

    @abstractmethod
    def create_bucket(self, bucket_name: str):
        """Create an empty bucket."""

    @abstractmethod
    def delete_bucket(self, bucket_name: str):
        """Delete a bucket. Raises BucketNotEmpty while it still holds objects."""

    @abstractmethod
    def delete_objects(self, bucket_name: str) -> int:
        """Force-delete every object in the bucket and return how many went."""

    @abstractmethod
    def object_exists(self, bucket_name: str, blob_name: str) -> bool:
        """Return True if the object exists. Needs no key."""

    @abstractmethod
    def upload_file(self, bucket_name: str, local_path: str, blob_name: str, key: EncryptionKey):
        """Store the local file as `blob_name`, encrypted with `key`."""

    @abstractmethod
    def download_file(self, bucket_name: str, blob_name: str, local_path: str, key: EncryptionKey):
        """Fetch and decrypt `blob_name` into `local_path`.
        Raises DecryptionError if `key` is not the object's key.
        """

    @abstractmethod
    def rewrite_key(self, bucket_name: str, blob_name: str, old_key: EncryptionKey, new_key: EncryptionKey):
        """Re-encrypt the object server-side, replacing `old_key` with `new_key`."""
