import re

import pytest

from csek import cli, config
from csek.crypto.keys import EncryptionKey

KEY_LINE = re.compile(r'^Base 64 encoded encryption key: (.+)$')


def _generate(capsys):
    assert cli.main(['generate-encryption-key']) == 0
    output = capsys.readouterr().out.strip()
    match = KEY_LINE.match(output)
    assert match, output
    return match.group(1)


def test_generate_encryption_key(capsys):
    key = _generate(capsys)
    assert len(EncryptionKey.from_base64(key).raw) == 32


def test_cli_workflow(capsys, provider, bucket_name, sample_file, tmp_path):
    key = _generate(capsys)

    assert cli.main(['upload', bucket_name, str(sample_file), 'test.txt', key], provider=provider) == 0
    out = capsys.readouterr().out
    assert f'File {sample_file} uploaded to gs://{bucket_name}/test.txt.' in out
    assert provider.object_exists(bucket_name, 'test.txt')

    download_path = tmp_path / 'downloaded.txt'
    assert cli.main(['download', bucket_name, 'test.txt', str(download_path), key], provider=provider) == 0
    out = capsys.readouterr().out
    assert f'File test.txt downloaded to {download_path}.' in out
    assert download_path.exists()

    new_key = _generate(capsys)
    assert cli.main(['rotate', bucket_name, 'test.txt', key, new_key], provider=provider) == 0
    assert capsys.readouterr().out.strip() == 'Encryption key rotated successfully.'


def test_download_with_wrong_key_exits_nonzero(capsys, provider, bucket_name, sample_file, tmp_path):
    key = _generate(capsys)
    other = _generate(capsys)
    cli.main(['upload', bucket_name, str(sample_file), 'test.txt', key], provider=provider)
    capsys.readouterr()

    rc = cli.main(['download', bucket_name, 'test.txt', str(tmp_path / 'd.txt'), other], provider=provider)
    captured = capsys.readouterr()
    assert rc == 1
    assert captured.out == ''
    assert captured.err.startswith('Error:')


def test_invalid_key_exits_nonzero(capsys, provider, bucket_name, sample_file):
    rc = cli.main(['upload', bucket_name, str(sample_file), 'test.txt', 'bad-key'], provider=provider)
    assert rc == 1
    assert 'Error:' in capsys.readouterr().err


def test_missing_command_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2


def test_local_provider_persists_across_runs(capsys, monkeypatch, sample_file, tmp_path):
    monkeypatch.setattr(config, 'LOCAL_STORAGE_ROOT', str(tmp_path / 'store'))
    key = _generate(capsys)

    rc = cli.main(['--provider', 'local', 'upload', 'demo-bucket', str(sample_file), 'test.txt', key])
    assert rc == 0
    assert 'uploaded to gs://demo-bucket/test.txt.' in capsys.readouterr().out

    # Each invocation builds a fresh provider over the same directory
    download_path = tmp_path / 'downloaded.txt'
    assert cli.main(['--provider', 'local', 'download', 'demo-bucket', 'test.txt', str(download_path), key]) == 0
    capsys.readouterr()
    assert download_path.read_bytes() == sample_file.read_bytes()

    new_key = _generate(capsys)
    assert cli.main(['--provider', 'local', 'rotate', 'demo-bucket', 'test.txt', key, new_key]) == 0
    assert capsys.readouterr().out.strip() == 'Encryption key rotated successfully.'

    rc = cli.main(['--provider', 'local', 'download', 'demo-bucket', 'test.txt', str(download_path), key])
    assert rc == 1
    assert 'Error:' in capsys.readouterr().err


def test_memory_provider_not_offered_on_command_line(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(['--provider', 'memory', 'generate-encryption-key'])
    assert excinfo.value.code == 2
