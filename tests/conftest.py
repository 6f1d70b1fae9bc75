import logging
import os
import sys
import uuid

import pytest

# Ensure project root is importable for tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from csek.storage.memory import InMemoryStorageProvider

RESOURCES_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'resources'))


@pytest.fixture
def provider():
    return InMemoryStorageProvider()


@pytest.fixture
def bucket_name(provider):
    name = f"python-storage-samples-{uuid.uuid4()}"
    provider.create_bucket(name)
    return name


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / 'test.txt'
    path.write_bytes(b'hello world - csek test\n')
    return path


@pytest.fixture(autouse=True)
def restore_root_logging():
    # cli.main() installs a stderr handler and sets the root level
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if getattr(handler, '_csek_handler', False):
            root.removeHandler(handler)
    root.setLevel(level)
