import logging
import os
from typing import Optional

from google.api_core import exceptions as api_exceptions
from google.cloud import storage

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


class GCSStorageProvider(StorageProvider):
    """Google Cloud Storage provider using customer-supplied encryption keys.

    Expects Application Default Credentials in the environment (a service
    account file in GOOGLE_APPLICATION_CREDENTIALS, gcloud user credentials,
    or the metadata server).
    """

    name = "gcs"

    def __init__(self, project: Optional[str] = None, client=None):
        self.client = client or storage.Client(project=project)

    def create_bucket(self, bucket_name: str):
        try:
            self.client.create_bucket(bucket_name)
        except api_exceptions.Conflict as e:
            raise StorageError(f"Bucket {bucket_name} already exists: {e}") from e
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS create_bucket failed: {e}") from e
        logger.info("Created bucket %s", bucket_name)

    def delete_bucket(self, bucket_name: str):
        try:
            self.client.bucket(bucket_name).delete()
        except api_exceptions.NotFound as e:
            raise BucketNotFound(f"Bucket {bucket_name} not found") from e
        except api_exceptions.Conflict as e:
            raise BucketNotEmpty(f"Bucket {bucket_name} is not empty") from e
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS delete_bucket failed: {e}") from e
        logger.info("Deleted bucket %s", bucket_name)

    def delete_objects(self, bucket_name: str) -> int:
        deleted = 0
        try:
            for blob in self.client.list_blobs(bucket_name):
                try:
                    blob.delete()
                except api_exceptions.NotFound:
                    # Already gone; listings lag behind deletes.
                    continue
                deleted += 1
        except api_exceptions.NotFound as e:
            raise BucketNotFound(f"Bucket {bucket_name} not found") from e
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS delete_objects failed: {e}") from e
        logger.debug("Deleted %d objects from %s", deleted, bucket_name)
        return deleted

    def object_exists(self, bucket_name: str, blob_name: str) -> bool:
        try:
            return self.client.bucket(bucket_name).blob(blob_name).exists()
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS exists check failed: {e}") from e

    def _blob(self, bucket_name: str, blob_name: str, key: EncryptionKey):
        return self.client.bucket(bucket_name).blob(blob_name, encryption_key=key.raw)

    def upload_file(self, bucket_name: str, local_path: str, blob_name: str, key: EncryptionKey):
        blob = self._blob(bucket_name, blob_name, key)
        try:
            blob.upload_from_filename(local_path)
        except api_exceptions.NotFound as e:
            raise BucketNotFound(f"Bucket {bucket_name} not found") from e
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS upload failed: {e}") from e
        logger.info("Uploaded %s to gs://%s/%s (key sha256=%s)",
                    local_path, bucket_name, blob_name, key.sha256)

    def download_file(self, bucket_name: str, blob_name: str, local_path: str, key: EncryptionKey):
        blob = self._blob(bucket_name, blob_name, key)
        try:
            blob.download_to_filename(local_path)
        except api_exceptions.GoogleAPIError as e:
            # Do not leave a truncated plaintext file behind
            if os.path.exists(local_path):
                os.remove(local_path)
            if isinstance(e, api_exceptions.NotFound):
                raise ObjectNotFound(f"gs://{bucket_name}/{blob_name} not found") from e
            if isinstance(e, api_exceptions.BadRequest):
                raise DecryptionError(
                    f"Could not decrypt gs://{bucket_name}/{blob_name}: {e}"
                ) from e
            raise StorageError(f"GCS download failed: {e}") from e
        logger.info("Downloaded gs://%s/%s to %s", bucket_name, blob_name, local_path)

    def rewrite_key(self, bucket_name: str, blob_name: str, old_key: EncryptionKey, new_key: EncryptionKey):
        source = self._blob(bucket_name, blob_name, old_key)
        destination = self._blob(bucket_name, blob_name, new_key)
        try:
            token, bytes_rewritten, total_bytes = destination.rewrite(source)
            # Large objects take several rewrite calls
            while token is not None:
                logger.debug("Rewrote %s/%s bytes of gs://%s/%s",
                             bytes_rewritten, total_bytes, bucket_name, blob_name)
                token, bytes_rewritten, total_bytes = destination.rewrite(source, token=token)
        except api_exceptions.NotFound as e:
            raise ObjectNotFound(f"gs://{bucket_name}/{blob_name} not found") from e
        except api_exceptions.BadRequest as e:
            raise DecryptionError(
                f"Could not rewrite gs://{bucket_name}/{blob_name} with the old key: {e}"
            ) from e
        except api_exceptions.GoogleAPIError as e:
            raise StorageError(f"GCS rewrite failed: {e}") from e
        logger.info("Rotated key of gs://%s/%s from sha256=%s to sha256=%s",
                    bucket_name, blob_name, old_key.sha256, new_key.sha256)
