"""
CLI for inspecting images and managing record attachments.
"""

import argparse
import sys
from pathlib import Path

from attachery.cli.utils import build_record_class, parse_styles, validate_database_path
from attachery.core.config import AttacheryConfig
from attachery.core.geometry import Geometry
from attachery.core.logging_config import get_logger, setup_logging, shutdown_logging
from attachery.core.upload import UploadedFile
from attachery.services.context import AttachmentContext
from attachery.services.processors.thumbnail import transformation_arguments
from attachery.services.repositories.record_repository import RecordRepository

logger = get_logger(__name__)


def _build_context(args: argparse.Namespace) -> AttachmentContext:
    config = AttacheryConfig.from_env()
    if args.root:
        config.root = Path(args.root)
    return AttachmentContext(config=config)


def _build_record_class(args: argparse.Namespace, context: AttachmentContext):
    options = {"styles": parse_styles(args.style)}
    if args.url_template:
        options["url_template"] = args.url_template
    if args.path_template:
        options["path_template"] = args.path_template
    if args.storage:
        options["storage"] = args.storage
    return build_record_class(args.type, args.name, context, **options)


def _load_record(repo: RecordRepository, record_cls, args: argparse.Namespace):
    record = repo.get(record_cls, args.id)
    if record is None:
        print(f"✗ No {args.type} with id {args.id}")
    return record


def identify_image(args: argparse.Namespace) -> int:
    """Print the dimensions of an image."""
    try:
        geometry = Geometry.from_file(args.file)
        print(f"✓ {args.file}: {geometry}")
        return 0
    except Exception as e:
        logger.error(f"Failed to identify {args.file}: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1


def transform_image(args: argparse.Namespace) -> int:
    """Print the convert arguments that turn an image into a geometry."""
    try:
        current = Geometry.from_file(args.file)
        target = Geometry.parse(args.geometry)
        arguments = transformation_arguments(current, target, target.is_cropping)
        print(f"✓ {current} -> {' '.join(arguments)}")
        return 0
    except Exception as e:
        logger.error(f"Failed to compute transformation for {args.file}: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1


def attach_file(args: argparse.Namespace) -> int:
    """Attach a file to a record, creating the record if needed."""
    repo = None
    try:
        context = _build_context(args)
        record_cls = _build_record_class(args, context)
        repo = RecordRepository.open(args.database)
        repo.ensure_table(record_cls)

        record = repo.get(record_cls, args.id) if args.id is not None else None
        if record is None:
            record = record_cls()
            record.id = args.id

        attachment = record.attachment_for(args.name)
        with UploadedFile.from_path(args.file) as upload:
            attachment.assign(upload)

        if not record.attachments_valid():
            for kind, messages in attachment.errors.items():
                for message in messages:
                    print(f"✗ {args.name} {kind}: {message}")
            return 1

        repo.save(record)
        print(f"✓ Attached {attachment.original_filename} to {args.type} {record.id}")
        for style in attachment.spec.style_names:
            print(f"  {style}: {attachment.url(style)}")
        return 0
    except Exception as e:
        logger.error(f"Failed to attach {args.file}: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1
    finally:
        if repo:
            repo.close()


def show_url(args: argparse.Namespace) -> int:
    """Print the URL of a record's attachment."""
    repo = None
    try:
        context = _build_context(args)
        record_cls = _build_record_class(args, context)
        repo = RecordRepository.open(args.database)

        record = _load_record(repo, record_cls, args)
        if record is None:
            return 1

        print(record.attachment_for(args.name).url(args.show_style))
        return 0
    except Exception as e:
        logger.error(f"Failed to resolve url: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1
    finally:
        if repo:
            repo.close()


def reprocess_attachment(args: argparse.Namespace) -> int:
    """Regenerate every style of a record's attachment."""
    repo = None
    try:
        context = _build_context(args)
        record_cls = _build_record_class(args, context)
        repo = RecordRepository.open(args.database)

        record = _load_record(repo, record_cls, args)
        if record is None:
            return 1

        attachment = record.attachment_for(args.name)
        if not attachment:
            print(f"✗ {args.type} {args.id} has no {args.name}")
            return 1

        if attachment.reprocess():
            print(f"✓ Reprocessed {args.name} of {args.type} {args.id}")
            return 0

        for message in attachment.errors.get("processing", []):
            print(f"✗ {message}")
        return 1
    except Exception as e:
        logger.error(f"Failed to reprocess: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1
    finally:
        if repo:
            repo.close()


def remove_attachment(args: argparse.Namespace) -> int:
    """Remove a record's attachment, or the whole record with --destroy."""
    repo = None
    try:
        context = _build_context(args)
        record_cls = _build_record_class(args, context)
        repo = RecordRepository.open(args.database)

        record = _load_record(repo, record_cls, args)
        if record is None:
            return 1

        if not args.force:
            target = f"{args.type} {args.id}" if args.destroy else f"{args.name} of {args.type} {args.id}"
            print(f"About to remove {target}")
            if input("Are you sure? (y/n): ").lower() != "y":
                return 0

        if args.destroy:
            repo.delete(record)
            print(f"✓ Deleted {args.type} {args.id} and its files")
        else:
            record.attachment_for(args.name).assign(None)
            repo.save(record)
            print(f"✓ Removed {args.name} of {args.type} {args.id}")
        return 0
    except Exception as e:
        logger.error(f"Failed to remove attachment: {e}")
        print(f"✗ Error: {e}")
        if args.verbose:
            raise
        return 1
    finally:
        if repo:
            repo.close()


def _add_record_arguments(parser: argparse.ArgumentParser, id_required: bool = True) -> None:
    parser.add_argument("--database", "-d", required=True)
    parser.add_argument("--type", required=True, help="Record type, e.g. user")
    parser.add_argument("--id", type=int, required=id_required, help="Record ID")
    parser.add_argument("--name", "-n", required=True, help="Attachment name, e.g. avatar")
    parser.add_argument(
        "--style",
        "-s",
        action="append",
        metavar="NAME=GEOMETRY",
        help="Style declaration (repeatable)",
    )
    parser.add_argument("--root", help="Application root for stored files")
    parser.add_argument("--url-template")
    parser.add_argument("--path-template")
    parser.add_argument("--storage", choices=["filesystem", "s3"])


def main() -> None:
    """Main entry point for the attachment CLI tool."""
    parser = argparse.ArgumentParser(description="Manage file attachments")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument("--log-dir", help="Also write logs to this directory")

    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # Identify
    id_p = subparsers.add_parser("identify", help="Print image dimensions")
    id_p.add_argument("file")
    id_p.set_defaults(func=identify_image)

    # Transform
    tr_p = subparsers.add_parser("transform", help="Show the resize/crop for a geometry")
    tr_p.add_argument("file")
    tr_p.add_argument("geometry", help='Target geometry, e.g. "100x100#"')
    tr_p.set_defaults(func=transform_image)

    # Attach
    at_p = subparsers.add_parser("attach", help="Attach a file to a record")
    _add_record_arguments(at_p, id_required=False)
    at_p.add_argument("file")
    at_p.set_defaults(func=attach_file)

    # Url
    url_p = subparsers.add_parser("url", help="Print an attachment URL")
    _add_record_arguments(url_p)
    url_p.add_argument("--show-style", help="Style to print (default: original)")
    url_p.set_defaults(func=show_url)

    # Reprocess
    rep_p = subparsers.add_parser("reprocess", help="Regenerate all styles")
    _add_record_arguments(rep_p)
    rep_p.set_defaults(func=reprocess_attachment)

    # Remove
    rem_p = subparsers.add_parser("remove", help="Remove an attachment")
    _add_record_arguments(rem_p)
    rem_p.add_argument("--destroy", action="store_true", help="Delete the record too")
    rem_p.add_argument("--force", "-f", action="store_true")
    rem_p.set_defaults(func=remove_attachment)

    args = parser.parse_args()

    setup_logging(debug_mode=args.verbose, log_to_console=args.verbose, log_dir=args.log_dir)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if hasattr(args, "database"):
        allow_create = args.command == "attach"
        if not validate_database_path(args.database, allow_create=allow_create):
            sys.exit(1)

    exit_code = args.func(args)
    shutdown_logging()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
