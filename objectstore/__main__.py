"""CLI entry point for working with a storage engine.

Usage:
    python -m objectstore --storage ./data/objects put docs/a.txt ./a.txt
    python -m objectstore --config storage.yaml get docs/a.txt --output ./a.txt
    python -m objectstore --config storage.yaml upload big.bin ./big.bin --part-size 8388608
    python -m objectstore check-config storage.yaml

The engine comes from --storage (a path or URI), --config (a YAML file), or
the file named by $OBJECTSTORE_CONFIG.
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from typing import List, Optional

from objectstore.lib.config_loader import load_storage, validate_storage_config
from objectstore.lib.env import load_env_file
from objectstore.lib.errors import StorageError
from objectstore.lib.logging import setup_logging
from objectstore.lib.storage import FileObject, FilePart, MultipartUpload, get_storage, parse_uri
from objectstore.lib.streams import ByteSource, copy_stream

logger = logging.getLogger(__name__)

DEFAULT_PART_SIZE = 8 * 1024 * 1024


def _open_storage(args: argparse.Namespace) -> MultipartUpload:
    if not args.storage:
        return load_storage(args.config)
    if parse_uri(args.storage)[0] == "s3":
        return get_storage(args.storage)
    return get_storage(args.storage, base_url=args.base_url or "")


def _metadata(args: argparse.Namespace) -> dict:
    content_type = getattr(args, "content_type", None)
    return {"ContentType": content_type} if content_type else {}


def cmd_put(storage: MultipartUpload, args: argparse.Namespace) -> int:
    obj = FileObject(args.key, ByteSource.from_path(args.file), _metadata(args))
    storage.put(obj).result()
    print(storage.url(args.key))
    return 0


def cmd_get(storage: MultipartUpload, args: argparse.Namespace) -> int:
    obj = storage.get(args.key).result()
    with obj.data as source:
        if args.output:
            with open(args.output, "wb") as f:
                copy_stream(source, f)
        else:
            copy_stream(source, sys.stdout.buffer)
            sys.stdout.buffer.flush()
    return 0


def cmd_has(storage: MultipartUpload, args: argparse.Namespace) -> int:
    exists = storage.has(args.key).result()
    print("yes" if exists else "no")
    return 0 if exists else 1


def cmd_delete(storage: MultipartUpload, args: argparse.Namespace) -> int:
    storage.delete(args.key).result()
    return 0


def cmd_url(storage: MultipartUpload, args: argparse.Namespace) -> int:
    print(storage.url(args.key))
    return 0


def cmd_upload(storage: MultipartUpload, args: argparse.Namespace) -> int:
    """Upload a file in chunks through the multipart protocol.

    The session is aborted if any chunk fails, so no parts are left behind.
    """
    if args.part_size <= 0:
        print("Error: --part-size must be positive", file=sys.stderr)
        return 2

    obj = FileObject(args.key, metadata=_metadata(args))
    token = storage.multipart_init(obj).result()
    parts: List[FilePart] = []
    try:
        with open(args.file, "rb") as f:
            number = 1
            while True:
                chunk = f.read(args.part_size)
                if not chunk and parts:
                    break
                digest = storage.multipart_upload(
                    obj, token, FilePart(number, ByteSource(io.BytesIO(chunk)))
                ).result()
                parts.append(FilePart(number, hash=digest))
                logger.debug("Uploaded part %d of %s (%d bytes)", number, args.key, len(chunk))
                if len(chunk) < args.part_size:
                    break
                number += 1
        storage.multipart_finalize(obj, token, *parts).result()
    except (StorageError, OSError):
        storage.multipart_abort(obj, token).result()
        raise

    print(storage.url(args.key))
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    errors = validate_storage_config(args.path)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1
    print(f"{args.path}: OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m objectstore",
        description="Store and retrieve objects through a storage engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Store a file on the local filesystem engine
    python -m objectstore --storage ./data/objects put docs/a.txt ./a.txt

    # Read it back to stdout
    python -m objectstore --storage ./data/objects get docs/a.txt

    # Chunked upload using a YAML configuration
    python -m objectstore --config storage.yaml upload big.bin ./big.bin

    # Validate a configuration file
    python -m objectstore check-config storage.yaml
        """,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--storage", help="Storage path or URI (./dir, file://, s3://bucket/prefix)")
    source.add_argument("--config", help="YAML configuration file (default: $OBJECTSTORE_CONFIG)")
    parser.add_argument("--base-url", help="Public base URL for --storage engines")
    parser.add_argument("--env-file", help="Load environment variables from a .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument("--log-file", help="Write logs to a file in addition to console")

    commands = parser.add_subparsers(dest="command", required=True)

    put = commands.add_parser("put", help="Store a file under a key")
    put.add_argument("key")
    put.add_argument("file")
    put.add_argument("--content-type")
    put.set_defaults(handler=cmd_put)

    get = commands.add_parser("get", help="Read an object")
    get.add_argument("key")
    get.add_argument("--output", "-o", help="Write to a file instead of stdout")
    get.set_defaults(handler=cmd_get)

    has = commands.add_parser("has", help="Check whether an object exists (exit 1 if not)")
    has.add_argument("key")
    has.set_defaults(handler=cmd_has)

    delete = commands.add_parser("delete", help="Delete an object")
    delete.add_argument("key")
    delete.set_defaults(handler=cmd_delete)

    url = commands.add_parser("url", help="Print the public URL of a key")
    url.add_argument("key")
    url.set_defaults(handler=cmd_url)

    upload = commands.add_parser("upload", help="Upload a file with the multipart protocol")
    upload.add_argument("key")
    upload.add_argument("file")
    upload.add_argument("--part-size", type=int, default=DEFAULT_PART_SIZE)
    upload.add_argument("--content-type")
    upload.set_defaults(handler=cmd_upload)

    check = commands.add_parser("check-config", help="Validate a configuration file")
    check.add_argument("path")
    check.set_defaults(handler=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_env_file(args.env_file)
    setup_logging(verbose=args.verbose, json_format=args.json_log, log_file=args.log_file)

    if args.command == "check-config":
        return cmd_check_config(args)

    try:
        storage = _open_storage(args)
        return args.handler(storage, args)
    except StorageError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
