import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


# Environment variables
STORAGE_PROVIDER = os.getenv('CSEK_STORAGE_PROVIDER', 'gcs').lower()
GOOGLE_CLOUD_PROJECT = os.getenv('GOOGLE_CLOUD_PROJECT')
LOCAL_STORAGE_ROOT = os.getenv('CSEK_LOCAL_STORAGE_ROOT',
                               os.path.join(os.path.expanduser('~'), '.csek_local_storage'))
LOG_LEVEL = os.getenv('CSEK_LOG_LEVEL', 'WARNING').upper()
JSON_LOGS = os.getenv('CSEK_JSON_LOGS', '0').lower() in ('1', 'true', 'yes')
CLEANUP_ATTEMPTS = _int_env('CSEK_CLEANUP_ATTEMPTS', 2)

# Backends selectable from the command line; 'memory' is process-local and
# only reachable programmatically.
CLI_PROVIDERS = ('gcs', 'local')
PROVIDERS = CLI_PROVIDERS + ('memory',)


def get_log_level() -> int:
    level = logging.getLevelName(LOG_LEVEL)
    return level if isinstance(level, int) else logging.WARNING


def get_provider(name: str | None = None):
    """Build the storage provider named by `name` or CSEK_STORAGE_PROVIDER."""
    name = (name or STORAGE_PROVIDER).lower()
    if name == 'gcs':
        from csek.storage.gcs import GCSStorageProvider
        return GCSStorageProvider(project=GOOGLE_CLOUD_PROJECT)
    if name == 'local':
        from csek.storage.local import LocalStorageProvider
        return LocalStorageProvider(LOCAL_STORAGE_ROOT, auto_create_buckets=True)
    if name == 'memory':
        from csek.storage.memory import InMemoryStorageProvider
        return InMemoryStorageProvider()
    raise ValueError(f"Unknown storage provider: {name!r} (expected one of {', '.join(PROVIDERS)})")
