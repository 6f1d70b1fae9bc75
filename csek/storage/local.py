import logging
import os
import shutil
from urllib.parse import quote

from csek.crypto.keys import EncryptionKey
from csek.storage.memory import open_object, seal_object
from csek.storage.provider import (
    BucketNotEmpty,
    BucketNotFound,
    ObjectNotFound,
    StorageError,
    StorageProvider,
)

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = '.enc'


class LocalStorageProvider(StorageProvider):
    """Directory-backed storage for offline use of the command-line sample.

    Each bucket is a directory under `root_dir`. Each object is one file: the
    key's SHA-256 on the first line, then the AES-256-GCM sealed body. The key
    itself is never written to disk.
    """

    name = "local"

    def __init__(self, root_dir: str, auto_create_buckets: bool = False):
        self.root_dir = os.path.abspath(root_dir)
        self.auto_create_buckets = auto_create_buckets
        os.makedirs(self.root_dir, exist_ok=True)

    def _bucket_dir(self, bucket_name: str) -> str:
        if not bucket_name or bucket_name in ('.', '..') or os.sep in bucket_name or '/' in bucket_name:
            raise StorageError(f"Invalid bucket name: {bucket_name!r}")
        return os.path.join(self.root_dir, bucket_name)

    def _existing_bucket_dir(self, bucket_name: str) -> str:
        path = self._bucket_dir(bucket_name)
        if not os.path.isdir(path):
            raise BucketNotFound(f"Bucket {bucket_name} not found")
        return path

    def _object_path(self, bucket_name: str, blob_name: str) -> str:
        return os.path.join(self._existing_bucket_dir(bucket_name),
                            quote(blob_name, safe='') + OBJECT_SUFFIX)

    def _read(self, bucket_name: str, blob_name: str):
        path = self._object_path(bucket_name, blob_name)
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            raise ObjectNotFound(f"gs://{bucket_name}/{blob_name} not found") from None
        key_sha256, _, blob = data.partition(b'\n')
        return path, key_sha256.decode('ascii'), blob

    @staticmethod
    def _write(path: str, key: EncryptionKey, blob: bytes):
        temp_path = path + '.tmp'
        with open(temp_path, 'wb') as f:
            f.write(key.sha256.encode('ascii') + b'\n' + blob)
        os.replace(temp_path, path)
        os.chmod(path, 0o600)

    def create_bucket(self, bucket_name: str):
        try:
            os.mkdir(self._bucket_dir(bucket_name))
        except FileExistsError:
            raise StorageError(f"Bucket {bucket_name} already exists") from None
        logger.info("Created bucket %s", bucket_name)

    def delete_bucket(self, bucket_name: str):
        path = self._existing_bucket_dir(bucket_name)
        if os.listdir(path):
            raise BucketNotEmpty(f"Bucket {bucket_name} is not empty")
        os.rmdir(path)
        logger.info("Deleted bucket %s", bucket_name)

    def delete_objects(self, bucket_name: str) -> int:
        path = self._existing_bucket_dir(bucket_name)
        deleted = 0
        for entry in os.listdir(path):
            entry_path = os.path.join(path, entry)
            if os.path.isdir(entry_path):
                shutil.rmtree(entry_path)
            else:
                os.remove(entry_path)
            if entry.endswith(OBJECT_SUFFIX):
                deleted += 1
        return deleted

    def object_exists(self, bucket_name: str, blob_name: str) -> bool:
        return os.path.isfile(self._object_path(bucket_name, blob_name))

    def upload_file(self, bucket_name: str, local_path: str, blob_name: str, key: EncryptionKey):
        if self.auto_create_buckets and not os.path.isdir(self._bucket_dir(bucket_name)):
            os.makedirs(self._bucket_dir(bucket_name), exist_ok=True)
            logger.info("Created bucket %s", bucket_name)
        path = self._object_path(bucket_name, blob_name)
        with open(local_path, 'rb') as f:
            data = f.read()
        self._write(path, key, seal_object(data, key, blob_name.encode()))
        logger.info("Uploaded %s to gs://%s/%s (key sha256=%s)",
                    local_path, bucket_name, blob_name, key.sha256)

    def download_file(self, bucket_name: str, blob_name: str, local_path: str, key: EncryptionKey):
        _, key_sha256, blob = self._read(bucket_name, blob_name)
        data = open_object(key_sha256, blob, key, blob_name.encode())
        with open(local_path, 'wb') as f:
            f.write(data)
        logger.info("Downloaded gs://%s/%s to %s", bucket_name, blob_name, local_path)

    def rewrite_key(self, bucket_name: str, blob_name: str, old_key: EncryptionKey, new_key: EncryptionKey):
        aad = blob_name.encode()
        path, key_sha256, blob = self._read(bucket_name, blob_name)
        data = open_object(key_sha256, blob, old_key, aad)
        self._write(path, new_key, seal_object(data, new_key, aad))
        logger.info("Rotated key of gs://%s/%s from sha256=%s to sha256=%s",
                    bucket_name, blob_name, old_key.sha256, new_key.sha256)
