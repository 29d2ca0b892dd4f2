"""
Record Integration Module.

Connects attachments to host records: declaring an attachment on a record
class, reaching it from an instance, and the save / destroy hooks the host
persistence layer calls.
"""

import logging
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple

from attachery.core.attachment import FIELDS, Attachment
from attachery.core.definition import AttachmentSpec
from attachery.core.errors import AttacheryError

logger = logging.getLogger(__name__)


class AttachmentHandle:
    """
    Class-level accessor for one declared attachment.

    Used as a descriptor: ``record.avatar`` returns the record's Attachment
    and ``record.avatar = upload`` assigns to it.

    Attributes:
        spec: The attachment definition.
        context: The AttachmentContext the attachment was declared with.
        storage: Storage backend shared by every record of the class.
    """

    def __init__(self, spec: AttachmentSpec, context) -> None:
        self.spec = spec
        self.context = context
        self.storage = context.build_storage(spec)

    @property
    def name(self) -> str:
        return self.spec.name

    def build(self, record) -> Attachment:
        return Attachment(self.name, record, self.spec, self.context, storage=self.storage)

    def get(self, record) -> Attachment:
        return record.attachment_for(self.name)

    def assign(self, record, value) -> None:
        self.get(record).assign(value)

    def url(self, record, style: Optional[str] = None) -> str:
        return self.get(record).url(style)

    def is_present(self, record) -> bool:
        return self.get(record).is_present

    def __get__(self, record, owner=None):
        if record is None:
            return self
        return self.get(record)

    def __set__(self, record, value) -> None:
        self.assign(record, value)

    def __repr__(self) -> str:
        return f"<AttachmentHandle {self.name} styles={list(self.spec.styles)}>"


class AttachedRecord:
    """
    Mixin for record classes that carry attachments.

    The host persistence layer calls ``save_attached_files`` after the
    record is persisted and ``destroy_attached_files`` before it is deleted.
    """

    attachment_definitions: ClassVar[Dict[str, AttachmentHandle]] = {}
    id: Any = None

    def attachment_for(self, name: str) -> Attachment:
        """
        Returns the Attachment named ``name``, creating it on first access.

        Raises:
            AttacheryError: If no such attachment is declared.
        """
        attachments = self.__dict__.setdefault("_attachments", {})
        if name not in attachments:
            handle = type(self).attachment_definitions.get(name)
            if handle is None:
                raise AttacheryError(
                    f"{type(self).__name__} has no attachment named {name!r}"
                )
            attachments[name] = handle.build(self)
        return attachments[name]

    def each_attachment(self) -> Iterator[Tuple[str, Attachment]]:
        for name in type(self).attachment_definitions:
            yield name, self.attachment_for(name)

    def save_attached_files(self) -> bool:
        logger.debug(f"Saving attachments of {type(self).__name__} {self.id}")
        for _, attachment in self.each_attachment():
            attachment.save()
        return True

    def destroy_attached_files(self) -> None:
        logger.debug(f"Deleting attachments of {type(self).__name__} {self.id}")
        for _, attachment in self.each_attachment():
            attachment.destroy_attached_files()

    def attachments_valid(self) -> bool:
        """Validates every attachment; all of them are checked."""
        results = [attachment.validate() for _, attachment in self.each_attachment()]
        return all(results)

    def attachment_errors(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            name: dict(attachment.errors)
            for name, attachment in self.each_attachment()
            if attachment.errors
        }


def has_attached_file(record_cls: type, name: str, *, context, **options: Any) -> AttachmentHandle:
    """
    Declares an attachment on a record class.

    Args:
        record_cls: An AttachedRecord subclass.
        name: Attachment name, used as the attribute name.
        context: The AttachmentContext to use.
        **options: AttachmentSpec options (styles, url_template, storage, ...).

    Returns:
        AttachmentHandle: The installed class attribute.

    Raises:
        TypeError: If ``record_cls`` is not an AttachedRecord.
    """
    if not (isinstance(record_cls, type) and issubclass(record_cls, AttachedRecord)):
        raise TypeError(f"{record_cls!r} must be an AttachedRecord subclass")

    options.setdefault("whiny", context.config.whiny)
    spec = AttachmentSpec.build(name, **options)
    handle = AttachmentHandle(spec, context)

    # Copy so that sibling classes do not share declarations
    definitions = dict(record_cls.attachment_definitions)
    definitions[name] = handle
    record_cls.attachment_definitions = definitions

    for field in FIELDS:
        attribute = f"{name}_{field}"
        if not hasattr(record_cls, attribute):
            setattr(record_cls, attribute, None)

    setattr(record_cls, name, handle)
    logger.debug(f"Declared attachment {name} on {record_cls.__name__}")
    return handle
