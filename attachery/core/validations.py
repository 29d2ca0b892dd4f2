"""
Validations Module.

Constraint descriptors that can be declared on an attachment. Each descriptor
checks an attachment and returns an error message, or None when it passes.
"""

from dataclasses import dataclass
from typing import Optional, Pattern, Tuple, Union


@dataclass(frozen=True)
class PresenceValidation:
    """Requires a file to be assigned."""

    message: str = "must be set"
    kind: str = "presence"

    def validate(self, attachment) -> Optional[str]:
        if not attachment.is_present:
            return self.message
        return None


@dataclass(frozen=True)
class SizeValidation:
    """
    Requires the file size to fall within a range (in bytes).

    Attributes:
        minimum: Smallest accepted size.
        maximum: Largest accepted size, or None for no upper bound.
    """

    minimum: int = 0
    maximum: Optional[int] = None
    message: str = ""
    kind: str = "size"

    def validate(self, attachment) -> Optional[str]:
        if not attachment.is_present:
            return None

        size = attachment.size or 0
        if size < self.minimum or (self.maximum is not None and size > self.maximum):
            if self.message:
                return self.message
            if self.maximum is None:
                return f"file size must be at least {self.minimum} bytes"
            return f"file size must be between {self.minimum} and {self.maximum} bytes"
        return None


@dataclass(frozen=True)
class ContentTypeValidation:
    """
    Requires the content type to match one of the allowed values.

    Allowed values are exact strings or compiled regular expressions.
    """

    allowed: Tuple[Union[str, Pattern], ...] = ()
    message: str = ""
    kind: str = "content_type"

    def validate(self, attachment) -> Optional[str]:
        if not attachment.is_present:
            return None

        content_type = attachment.content_type or ""
        for allowed in self.allowed:
            if isinstance(allowed, str):
                if allowed == content_type:
                    return None
            elif allowed.fullmatch(content_type):
                return None

        return self.message or f"content type {content_type!r} is not allowed"
