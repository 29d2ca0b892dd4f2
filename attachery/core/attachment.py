"""
Attachment Module.

The per-record, per-attribute controller for an attached file. It tracks a
pending assignment, generates style variants into staged files, and commits
queued writes and deletes when the owning record is saved or destroyed.

Nothing reaches permanent storage between ``assign`` and the next ``save``:
a record that is discarded or rolled back leaves no storage side effects.
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union

from attachery.core.definition import ORIGINAL_STYLE, AttachmentSpec, StyleDefinition
from attachery.core.errors import AttacheryError, ProcessingError, StorageError
from attachery.core.staged_file import StagedFile
from attachery.core.upload import UploadedFile, is_blank, is_upload_source

logger = logging.getLogger(__name__)

FIELDS = ("file_name", "content_type", "file_size", "updated_at")
UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]+")


class AttachmentState(Enum):
    """
    Lifecycle states of an Attachment.

    Reassigning while ASSIGNED discards the pending staged files and returns
    to ASSIGNED with the new file; there is no separate discarded state.
    """

    UNSET = "unset"
    ASSIGNED = "assigned"
    SAVED = "saved"
    DESTROYED = "destroyed"


def sanitize_filename(filename: str) -> str:
    """Replaces runs of characters unsafe in paths and URLs with "_"."""
    return UNSAFE_FILENAME_CHARS.sub("_", filename.strip())


class Attachment:
    """
    Controller for one named file attribute of one record.

    The four persisted fields live on the record as ``<name>_file_name``,
    ``<name>_content_type``, ``<name>_file_size`` and ``<name>_updated_at``.

    Attributes:
        name: Attachment name.
        record: The owning record.
        spec: Shared, read-only definition of this attachment.
        context: Shared setup-time context (tokens, processors, runner).
        storage: Storage backend resolving paths and holding the bytes.
        queued_for_write: Staged files keyed by style, written on save.
        queued_for_delete: Storage paths removed after a successful save.
        errors: Validation and processing errors keyed by kind.
        dirty: True while there is an assignment not yet saved.
        state: Current lifecycle state.
    """

    def __init__(self, name: str, record, spec: AttachmentSpec, context, storage=None) -> None:
        """
        Initialize the attachment.

        Args:
            name: Attachment name.
            record: The owning record.
            spec: The attachment definition.
            context: The AttachmentContext shared by all attachments.
            storage: Storage backend; built from ``spec`` when omitted.

        Raises:
            AttacheryError: If the record lacks the file name field.
        """
        self.name = name
        self.record = record
        self.spec = spec
        self.context = context
        self.storage = storage or context.build_storage(spec)

        if not hasattr(record, f"{name}_file_name"):
            raise AttacheryError(
                f"{type(record).__name__} is missing the required attribute '{name}_file_name'"
            )

        self.queued_for_write: Dict[str, StagedFile] = {}
        self.queued_for_delete: List[str] = []
        self.errors: Dict[str, List[str]] = {}
        self.dirty = False
        self.state = AttachmentState.SAVED if self.is_present else AttachmentState.UNSET

    # Persisted fields

    def _read(self, field: str):
        return getattr(self.record, f"{self.name}_{field}", None)

    def _write(self, field: str, value) -> None:
        setattr(self.record, f"{self.name}_{field}", value)

    @property
    def original_filename(self) -> Optional[str]:
        return self._read("file_name")

    @property
    def content_type(self) -> Optional[str]:
        return self._read("content_type")

    @property
    def size(self) -> Optional[int]:
        return self._read("file_size")

    @property
    def updated_at(self) -> Optional[datetime]:
        value = self._read("updated_at")
        if isinstance(value, str) and value:
            return datetime.fromisoformat(value)
        return value

    @property
    def default_style(self) -> str:
        return self.spec.default_style

    @property
    def is_present(self) -> bool:
        filename = self.original_filename
        return bool(filename and filename.strip())

    def __bool__(self) -> bool:
        return self.is_present

    # Assignment

    def assign(self, value) -> None:
        """
        Assigns a new file, or clears the attachment when ``value`` is blank.

        The upload is copied to a staged file and every style is generated
        from it. Variants already in storage are queued for deletion; nothing
        is written or deleted until ``save``.

        If staging or processing raises, the attachment is left exactly as it
        was before the call.

        Args:
            value: An upload source, another Attachment, or None / "" to clear.

        Raises:
            TypeError: If ``value`` is not an upload source.
            CommandNotFoundError: If a processor's external tool is missing.
        """
        if isinstance(value, Attachment):
            value = value.to_file(ORIGINAL_STYLE) if value.is_present else None

        if is_blank(value):
            self.clear()
            return

        if not is_upload_source(value):
            raise TypeError(
                f"Cannot assign {type(value).__name__} to {self.name}: "
                "an original_filename and a readable stream are required"
            )

        previous = self._snapshot()
        pending = self.queued_for_write
        self.queued_for_write = {}
        self.queue_existing_for_delete()
        self.errors = {}

        try:
            original = StagedFile.from_upload(value)
            self.queued_for_write[ORIGINAL_STYLE] = original

            self._write("file_name", sanitize_filename(value.original_filename))
            self._write("content_type", value.content_type or original.content_type)
            self._write("file_size", original.size)
            self._write("updated_at", datetime.now(timezone.utc))
            self.dirty = True
            self.state = AttachmentState.ASSIGNED

            if self.validate():
                self.post_process()
        except Exception:
            self._discard_pending()
            self._restore(previous, pending)
            raise

        for staged in pending.values():
            staged.close()

    def clear(self) -> None:
        """
        Removes the file: pending work is discarded and stored variants are
        queued for deletion on the next save.
        """
        self._discard_pending()
        self.queue_existing_for_delete()
        self.errors = {}
        for field in FIELDS:
            self._write(field, None)

        if self.queued_for_delete:
            self.dirty = True
            self.state = AttachmentState.ASSIGNED
        else:
            self.dirty = False
            self.state = AttachmentState.UNSET

    def queue_existing_for_delete(self) -> None:
        """
        Queues every stored variant of the current file for deletion.

        A pending file has never been written, so there is nothing to queue
        while the attachment is dirty.
        """
        if self.dirty or not self.is_present:
            return

        for style in self.spec.style_names:
            path = self.storage.path(self, style)
            if path not in self.queued_for_delete:
                self.queued_for_delete.append(path)

    def _snapshot(self) -> Dict[str, object]:
        return {
            "fields": {field: self._read(field) for field in FIELDS},
            "queued_for_delete": list(self.queued_for_delete),
            "errors": self.errors,
            "dirty": self.dirty,
            "state": self.state,
        }

    def _restore(self, snapshot: Dict[str, object], pending: Dict[str, StagedFile]) -> None:
        for field, value in snapshot["fields"].items():
            self._write(field, value)
        self.queued_for_write = pending
        self.queued_for_delete = snapshot["queued_for_delete"]
        self.errors = snapshot["errors"]
        self.dirty = snapshot["dirty"]
        self.state = snapshot["state"]

    def _discard_pending(self) -> None:
        for staged in self.queued_for_write.values():
            staged.close()
        self.queued_for_write = {}

    # Processing

    def post_process(self) -> None:
        """
        Generates every style from the staged original, one after another
        in declaration order.
        """
        original = self.queued_for_write.get(ORIGINAL_STYLE)
        if original is None:
            return

        for style in self.spec.styles.values():
            try:
                variant = self._process_style(style, original)
            except ProcessingError as e:
                logger.error(f"Error processing {self.name} style {style.name}: {e}")
                self.errors.setdefault("processing", []).append(str(e))
                continue

            if variant is not None:
                self.queued_for_write[style.name] = variant

    def _process_style(
        self, style: StyleDefinition, original: StagedFile
    ) -> Optional[StagedFile]:
        options = style.processor_options()
        current: Optional[StagedFile] = original
        try:
            for name in style.processors:
                processor = self.context.processor(name)
                result = processor.make_from(current, options, self)
                if current is not original:
                    current.close()
                current = result
                if current is None:
                    return None
        except Exception:
            if current is not None and current is not original:
                current.close()
            raise

        return current if current is not original else None

    def reprocess(self) -> bool:
        """
        Regenerates every style from the stored original and saves.

        Returns:
            bool: True if the variants were regenerated without errors.

        Raises:
            StorageError: If reading the original or writing a variant fails.
        """
        if not self.is_present:
            return True

        source = self.to_file(ORIGINAL_STYLE)
        original = StagedFile.from_upload(source)
        self._discard_pending()

        self.errors = {}
        self.queued_for_write[ORIGINAL_STYLE] = original
        self.post_process()
        self.dirty = True
        self.save()
        return not self.errors

    # Validation

    def validate(self) -> bool:
        """
        Runs the declared validations.

        Returns:
            bool: True if there are no errors.
        """
        for validation in self.spec.validations:
            self.errors.pop(validation.kind, None)

        for validation in self.spec.validations:
            message = validation.validate(self)
            if message:
                self.errors.setdefault(validation.kind, []).append(message)

        return not self.errors

    @property
    def valid(self) -> bool:
        return self.validate()

    # Committing

    def save(self) -> bool:
        """
        Writes every queued variant, then performs the queued deletes.

        Called by the owning record after it has been persisted. Deletes
        are best effort: failures are logged and leave orphaned files.

        Returns:
            bool: True once both queues are flushed.

        Raises:
            StorageError: If a write fails. Variants not yet written stay
                queued and no delete is performed.
        """
        written = self.flush_writes()
        self.flush_deletes(skip=written)
        self.dirty = False
        self.state = AttachmentState.SAVED if self.is_present else AttachmentState.UNSET
        return True

    def flush_writes(self) -> FrozenSet[str]:
        """
        Writes the queued staged files, original first.

        Returns:
            FrozenSet[str]: Paths that were written.
        """
        written = set()
        for style in list(self.queued_for_write):
            staged = self.queued_for_write[style]
            path = self.storage.path(self, style)
            logger.debug(f"Writing {self.name} style {style} to {path}")
            self.storage.write(staged.read_bytes(), path, staged.content_type)
            written.add(path)
            staged.close()
            del self.queued_for_write[style]
        return frozenset(written)

    def flush_deletes(self, skip: FrozenSet[str] = frozenset()) -> None:
        """
        Deletes the queued paths, logging and skipping failures.

        Args:
            skip: Paths just written by this save, which must survive.
        """
        for path in self.queued_for_delete:
            if path in skip:
                continue
            try:
                self.storage.delete(path)
            except StorageError as e:
                logger.warning(f"Could not delete {path}, leaving it orphaned: {e}")
        self.queued_for_delete = []

    def destroy_attached_files(self) -> None:
        """
        Deletes every stored variant immediately.

        Called by the owning record before it is deleted. Failures are
        logged and do not prevent the record from being destroyed.
        """
        self._discard_pending()
        self.queue_existing_for_delete()
        for field in FIELDS:
            self._write(field, None)
        self.flush_deletes()
        self.dirty = False
        self.state = AttachmentState.DESTROYED

    # Locations

    def url(self, style: Optional[str] = None, timestamp: bool = True) -> str:
        """
        Returns the public URL of ``style``.

        Without a file the default (missing) URL is returned instead.

        Args:
            style: Style name; defaults to the default style.
            timestamp: If True, the update time is appended as a query
                string so caches notice a replaced file.
        """
        style = style or self.default_style
        if not self.is_present:
            return self.context.interpolations.expand(
                self.spec.default_url_template, self, style
            )

        url = self.storage.url(self, style)
        updated_at = self.updated_at
        if timestamp and isinstance(updated_at, datetime):
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{int(updated_at.timestamp())}"
        return url

    def path(self, style: Optional[str] = None) -> Optional[str]:
        """Returns the storage path of ``style``, or None without a file."""
        if not self.is_present:
            return None
        return self.storage.path(self, style or self.default_style)

    def exists(self, style: Optional[str] = None) -> bool:
        path = self.path(style)
        return bool(path) and self.storage.exists(path)

    def to_file(self, style: Optional[str] = None) -> Union[StagedFile, UploadedFile, None]:
        """
        Returns the file of ``style``: the staged file while an assignment
        is pending, otherwise the stored bytes.
        """
        style = style or ORIGINAL_STYLE
        staged = self.queued_for_write.get(style)
        if staged is not None:
            return staged
        if not self.is_present:
            return None

        data = self.storage.read(self.path(style))
        return UploadedFile.from_bytes(data, self.original_filename, self.content_type)

    def __str__(self) -> str:
        return self.url()

    def __call__(self, style: Optional[str] = None) -> str:
        return self.url(style)

    def __repr__(self) -> str:
        return f"<Attachment {self.name} {self.state.value} {self.original_filename!r}>"
