"""Command-line sample for customer-supplied encryption keys on Cloud Storage.

    generate-encryption-key
    upload <bucket> <localFilePath> <remoteFileName> <key>
    download <bucket> <remoteFileName> <localFilePath> <key>
    rotate <bucket> <remoteFileName> <oldKey> <newKey>
"""
import argparse
import logging
import sys

from csek import config, samples
from csek.crypto.keys import InvalidKeyError
from csek.logging.json_logger import configure_json_logging
from csek.storage.provider import StorageError

logger = logging.getLogger(__name__)


def build_parser():
    p = argparse.ArgumentParser(
        prog='encryption.py',
        description='Customer-supplied encryption key (CSEK) samples for Cloud Storage.',
    )
    p.add_argument('--provider', choices=config.CLI_PROVIDERS, default=None,
                   help='Storage backend (default: CSEK_STORAGE_PROVIDER or gcs)')
    sub = p.add_subparsers(dest='command', required=True)

    sub.add_parser('generate-encryption-key', help='Generate a sample encryption key')

    up = sub.add_parser('upload', help='Upload a file encrypted with a key')
    up.add_argument('bucket_name')
    up.add_argument('local_path')
    up.add_argument('blob_name')
    up.add_argument('key', help='Base64 encoded AES-256 key')

    down = sub.add_parser('download', help='Download and decrypt a file')
    down.add_argument('bucket_name')
    down.add_argument('blob_name')
    down.add_argument('local_path')
    down.add_argument('key', help='Base64 encoded AES-256 key')

    rot = sub.add_parser('rotate', help='Re-encrypt a file with a new key')
    rot.add_argument('bucket_name')
    rot.add_argument('blob_name')
    rot.add_argument('old_key')
    rot.add_argument('new_key')
    return p


def run(args, provider=None):
    """Dispatch a parsed command and return its result."""
    if args.command == 'generate-encryption-key':
        return samples.generate_key()

    provider = provider or config.get_provider(args.provider)
    if args.command == 'upload':
        return samples.upload_encrypted_blob(
            provider, args.bucket_name, args.local_path, args.blob_name, args.key)
    if args.command == 'download':
        return samples.download_encrypted_blob(
            provider, args.bucket_name, args.blob_name, args.local_path, args.key)
    if args.command == 'rotate':
        return samples.rotate_encryption_key(
            provider, args.bucket_name, args.blob_name, args.old_key, args.new_key)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None, provider=None):
    args = build_parser().parse_args(argv)
    configure_json_logging(level=config.get_log_level(), json_format=config.JSON_LOGS)

    try:
        result = run(args, provider)
    except (StorageError, InvalidKeyError, FileNotFoundError) as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(result.message)
    return 0


if __name__ == '__main__':
    sys.exit(main())
