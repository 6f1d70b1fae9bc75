from unittest.mock import MagicMock, call, patch

import pytest
from google.api_core import exceptions as api_exceptions

from csek.crypto.keys import generate_encryption_key
from csek.storage.gcs import GCSStorageProvider
from csek.storage.provider import (
    BucketNotEmpty,
    BucketNotFound,
    DecryptionError,
    ObjectNotFound,
    StorageError,
)


def _provider():
    client = MagicMock()
    return GCSStorageProvider(client=client), client


def test_default_client_uses_project():
    with patch('csek.storage.gcs.storage.Client') as client_cls:
        GCSStorageProvider(project='my-project')
    client_cls.assert_called_once_with(project='my-project')


def test_upload_passes_raw_key_to_blob():
    gcs, client = _provider()
    key = generate_encryption_key()
    gcs.upload_file('bucket', '/tmp/test.txt', 'test.txt', key)

    client.bucket.assert_called_with('bucket')
    client.bucket.return_value.blob.assert_called_with('test.txt', encryption_key=key.raw)
    client.bucket.return_value.blob.return_value.upload_from_filename.assert_called_once_with('/tmp/test.txt')


def test_download_bad_request_maps_to_decryption_error(tmp_path):
    gcs, client = _provider()
    out = tmp_path / 'downloaded.txt'

    def partial_write(path):
        with open(path, 'wb') as f:
            f.write(b'partial')
        raise api_exceptions.BadRequest('The provided encryption key is incorrect')

    client.bucket.return_value.blob.return_value.download_to_filename.side_effect = partial_write
    with pytest.raises(DecryptionError):
        gcs.download_file('bucket', 'test.txt', str(out), generate_encryption_key())
    assert not out.exists()


def test_download_not_found():
    gcs, client = _provider()
    client.bucket.return_value.blob.return_value.download_to_filename.side_effect = \
        api_exceptions.NotFound('missing')
    with pytest.raises(ObjectNotFound):
        gcs.download_file('bucket', 'test.txt', '/nonexistent/out.txt', generate_encryption_key())


def test_rewrite_loops_until_token_is_none():
    gcs, client = _provider()
    old, new = generate_encryption_key(), generate_encryption_key()
    source, destination = MagicMock(), MagicMock()
    client.bucket.return_value.blob.side_effect = [source, destination]
    destination.rewrite.side_effect = [('tok1', 10, 30), ('tok2', 20, 30), (None, 30, 30)]

    gcs.rewrite_key('bucket', 'test.txt', old, new)

    assert client.bucket.return_value.blob.call_args_list == [
        call('test.txt', encryption_key=old.raw),
        call('test.txt', encryption_key=new.raw),
    ]
    assert destination.rewrite.call_args_list == [
        call(source),
        call(source, token='tok1'),
        call(source, token='tok2'),
    ]


def test_rewrite_with_wrong_key_raises_decryption_error():
    gcs, client = _provider()
    client.bucket.return_value.blob.return_value.rewrite.side_effect = \
        api_exceptions.BadRequest('The provided encryption key is incorrect')
    with pytest.raises(DecryptionError):
        gcs.rewrite_key('bucket', 'test.txt', generate_encryption_key(), generate_encryption_key())


def test_delete_objects_skips_already_deleted_blobs():
    gcs, client = _provider()
    gone = MagicMock()
    gone.delete.side_effect = api_exceptions.NotFound('gone')
    client.list_blobs.return_value = [MagicMock(), gone, MagicMock()]
    assert gcs.delete_objects('bucket') == 2


def test_bucket_errors_are_wrapped():
    gcs, client = _provider()
    client.bucket.return_value.delete.side_effect = api_exceptions.Conflict('not empty')
    with pytest.raises(BucketNotEmpty):
        gcs.delete_bucket('bucket')

    client.bucket.return_value.delete.side_effect = api_exceptions.NotFound('gone')
    with pytest.raises(BucketNotFound):
        gcs.delete_bucket('bucket')

    client.create_bucket.side_effect = api_exceptions.Forbidden('denied')
    with pytest.raises(StorageError) as excinfo:
        gcs.create_bucket('bucket')
    assert isinstance(excinfo.value.__cause__, api_exceptions.Forbidden)


def test_object_exists_delegates_to_blob():
    gcs, client = _provider()
    client.bucket.return_value.blob.return_value.exists.return_value = True
    assert gcs.object_exists('bucket', 'test.txt') is True
