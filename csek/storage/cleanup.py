import logging
import os

from csek.storage.provider import StorageError, StorageProvider

logger = logging.getLogger(__name__)


def remove_file_quietly(path: str) -> bool:
    """Delete a local file if it is there. Returns True if it was removed."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    return True


def force_delete_bucket(provider: StorageProvider, bucket_name: str, attempts: int = 2) -> bool:
    """Best-effort removal of a bucket and everything in it.

    Object deletion is repeated `attempts` times since listings can still show
    objects that were just deleted. Storage errors are logged and suppressed,
    so this is safe to call on a bucket that is already gone.
    Returns True if the bucket delete itself went through.
    """
    for attempt in range(1, max(attempts, 1) + 1):
        try:
            provider.delete_objects(bucket_name)
        except StorageError as e:
            logger.debug("delete_objects attempt %d on %s failed: %s", attempt, bucket_name, e)

    try:
        provider.delete_bucket(bucket_name)
    except StorageError as e:
        logger.debug("delete_bucket on %s failed: %s", bucket_name, e)
        return False
    return True
