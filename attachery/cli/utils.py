"""
CLI Utilities Module.

Common utility functions for CLI tools.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

from attachery.core.record import AttachedRecord, has_attached_file

logger = logging.getLogger(__name__)


def validate_database_path(db_path: str, allow_create: bool = False) -> bool:
    """
    Validate that a database file exists.

    Args:
        db_path: Path to the database file.
        allow_create: If True, allows non-existent databases (for create
            operations).

    Returns:
        True if valid, False otherwise.
    """
    path = Path(db_path)

    if not path.exists():
        if allow_create:
            # sqlite3 creates the file on connect
            logger.debug(f"Database will be created: {db_path}")
            return True
        else:
            logger.error(f"Database file not found: {db_path}")
            return False

    return True


def parse_styles(declarations: Optional[List[str]]) -> Dict[str, str]:
    """
    Parses ``name=geometry`` style declarations.

    Args:
        declarations: Values of repeated --style options.

    Returns:
        Dict mapping style name to geometry, in the order given.

    Raises:
        ValueError: If a declaration has no "=" or an empty side.
    """
    styles: Dict[str, str] = {}
    for declaration in declarations or []:
        name, sep, geometry = declaration.partition("=")
        if not sep or not name.strip() or not geometry.strip():
            raise ValueError(f"Invalid style {declaration!r}, expected name=geometry")
        styles[name.strip()] = geometry.strip()
    return styles


def camelize(name: str) -> str:
    """Converts ``blog_post`` to ``BlogPost``."""
    return "".join(part.capitalize() for part in name.split("_") if part)


def build_record_class(
    type_name: str, attachment_name: str, context, **options
) -> Type[AttachedRecord]:
    """
    Creates a record class for ``type_name`` carrying one attachment.

    Args:
        type_name: Singular record type (e.g. "user"); the table is its plural.
        attachment_name: Name of the attachment (e.g. "avatar").
        context: AttachmentContext used for the declaration.
        **options: AttachmentSpec options (styles, url_template, ...).

    Returns:
        The new AttachedRecord subclass.
    """
    record_cls = type(camelize(type_name), (AttachedRecord,), {})
    has_attached_file(record_cls, attachment_name, context=context, **options)
    return record_cls
