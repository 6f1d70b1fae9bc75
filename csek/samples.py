"""
Customer-supplied encryption key (CSEK) samples for Cloud Storage.

Each operation returns a small result object whose `message` is the line the
command-line sample prints, so callers can assert on structured values
instead of scraping output.
"""

import logging
import os
from dataclasses import dataclass
from typing import Union

from csek.crypto.keys import EncryptionKey, InvalidKeyError, generate_encryption_key
from csek.storage.provider import StorageProvider

logger = logging.getLogger(__name__)

KeyLike = Union[EncryptionKey, str, bytes]

ROTATED_MESSAGE = "Encryption key rotated successfully."


@dataclass
class GeneratedKey:
    key: EncryptionKey

    @property
    def message(self) -> str:
        return f"Base 64 encoded encryption key: {self.key.base64}"


@dataclass
class UploadResult:
    bucket_name: str
    local_path: str
    blob_name: str
    key_sha256: str

    @property
    def uri(self) -> str:
        return f"gs://{self.bucket_name}/{self.blob_name}"

    @property
    def message(self) -> str:
        return f"File {self.local_path} uploaded to {self.uri}."


@dataclass
class DownloadResult:
    bucket_name: str
    blob_name: str
    local_path: str

    @property
    def message(self) -> str:
        return f"File {self.blob_name} downloaded to {self.local_path}."


@dataclass
class RotateResult:
    bucket_name: str
    blob_name: str
    old_key_sha256: str
    new_key_sha256: str

    @property
    def message(self) -> str:
        return ROTATED_MESSAGE


@dataclass
class WorkflowResult:
    key: EncryptionKey
    new_key: EncryptionKey
    upload: UploadResult
    download: DownloadResult
    rotate: RotateResult


def generate_key() -> GeneratedKey:
    """Generate a random 256-bit key for use as a customer-supplied key."""
    return GeneratedKey(generate_encryption_key())


def upload_encrypted_blob(provider: StorageProvider, bucket_name: str, local_path: str,
                          blob_name: str, key: KeyLike) -> UploadResult:
    """Upload a local file, encrypted server-side with the supplied key."""
    key = EncryptionKey.coerce(key)
    if not os.path.isfile(local_path):
        raise FileNotFoundError(f"Local file not found: {local_path}")

    provider.upload_file(bucket_name, local_path, blob_name, key)
    return UploadResult(bucket_name, local_path, blob_name, key.sha256)


def download_encrypted_blob(provider: StorageProvider, bucket_name: str, blob_name: str,
                            local_path: str, key: KeyLike) -> DownloadResult:
    """Download an object encrypted with a customer-supplied key.

    The key must be the one the object was last written with; any other key
    raises DecryptionError.
    """
    key = EncryptionKey.coerce(key)
    provider.download_file(bucket_name, blob_name, local_path, key)
    return DownloadResult(bucket_name, blob_name, local_path)


def rotate_encryption_key(provider: StorageProvider, bucket_name: str, blob_name: str,
                          old_key: KeyLike, new_key: KeyLike) -> RotateResult:
    """Re-encrypt an existing object under a new key without changing its content."""
    old_key = EncryptionKey.coerce(old_key)
    new_key = EncryptionKey.coerce(new_key)
    if old_key == new_key:
        raise InvalidKeyError("New encryption key must differ from the current key")

    provider.rewrite_key(bucket_name, blob_name, old_key, new_key)
    return RotateResult(bucket_name, blob_name, old_key.sha256, new_key.sha256)


def run_workflow(provider: StorageProvider, bucket_name: str, local_path: str,
                 blob_name: str, download_path: str) -> WorkflowResult:
    """Run generate, upload, download, generate-new and rotate in order.

    Each step consumes what the previous one produced, so the keys are passed
    along explicitly.
    """
    key = generate_key().key
    uploaded = upload_encrypted_blob(provider, bucket_name, local_path, blob_name, key)
    logger.debug(uploaded.message, extra={'bucket': bucket_name, 'blob': blob_name, 'key_sha256': key.sha256})
    downloaded = download_encrypted_blob(provider, bucket_name, blob_name, download_path, key)
    logger.debug(downloaded.message, extra={'bucket': bucket_name, 'blob': blob_name})
    new_key = generate_key().key
    rotated = rotate_encryption_key(provider, bucket_name, blob_name, key, new_key)
    logger.debug(rotated.message, extra={'bucket': bucket_name, 'blob': blob_name, 'key_sha256': new_key.sha256})
    return WorkflowResult(key, new_key, uploaded, downloaded, rotated)
