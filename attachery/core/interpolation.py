"""
Interpolation Module.

Expands path and URL templates such as "/:class/:attachment/:id/:style_:filename"
into concrete strings for a given attachment and style.

The registry is an explicit object: it is populated once at setup time and
treated as read-only afterwards, so it can be shared between threads.
"""

import logging
import re
import threading
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Iterator, Optional, Pattern

from attachery.core.errors import InfiniteInterpolationError

logger = logging.getLogger(__name__)

Resolver = Callable[[Any, Optional[str]], Any]

MAX_DEPTH = 10
TOKEN_NAME = re.compile(r"^[a-z_]+$")


def underscore(name: str) -> str:
    """
    Converts a CamelCase class name to snake_case.

    Args:
        name: The name to convert (e.g. "BlogPost").

    Returns:
        str: The converted name (e.g. "blog_post").
    """
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", name)
    return name.replace("-", "_").lower()


def pluralize(word: str) -> str:
    """
    Returns a simple English plural of ``word``.

    Handles the common cases used for directory names: "entity" -> "entities",
    "box" -> "boxes", "user" -> "users".
    """
    if not word:
        return word
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u"):
        return f"{word[:-1]}ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return f"{word}es"
    return f"{word}s"


class Interpolations:
    """
    Registry of template tokens and the engine that expands them.

    Each token maps to a resolver called as ``resolver(attachment, style)``.
    Resolvers must not have side effects, so that paths can be computed
    before anything is written.
    """

    def __init__(self, max_depth: int = MAX_DEPTH) -> None:
        """
        Initialize an empty registry.

        Args:
            max_depth: Maximum number of expansion passes, and of nested
                expansions on one thread, before giving up.
        """
        self.max_depth = max_depth
        self._resolvers: Dict[str, Resolver] = {}
        self._pattern: Optional[Pattern] = None
        self._frozen = False
        self._local = threading.local()

    @classmethod
    def with_defaults(cls, max_depth: int = MAX_DEPTH) -> "Interpolations":
        """Returns a registry populated with the default tokens."""
        interpolations = cls(max_depth=max_depth)
        for token, resolver in DEFAULT_TOKENS.items():
            interpolations.register(token, resolver)
        return interpolations

    def register(self, token: str, resolver: Resolver) -> None:
        """
        Registers (or replaces) a token.

        Args:
            token: Token name without the leading colon.
            resolver: Callable returning the replacement text.

        Raises:
            RuntimeError: If the registry has been frozen.
            ValueError: If the token name is not made of lowercase letters
                and underscores.
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register :{token} on a frozen registry")
        if not TOKEN_NAME.match(token):
            raise ValueError(f"Invalid interpolation token name: {token!r}")

        self._resolvers[token] = resolver
        self._pattern = None

    def freeze(self) -> None:
        """Marks the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, token: str) -> bool:
        return token in self._resolvers

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._resolvers))

    def __len__(self) -> int:
        return len(self._resolvers)

    @property
    def pattern(self) -> Pattern:
        # Longest names first so ":id_partition" is not read as ":id" + "_partition"
        if self._pattern is None:
            names = sorted(self._resolvers, key=len, reverse=True)
            alternatives = "|".join(re.escape(name) for name in names) or r"(?!)"
            self._pattern = re.compile(f":({alternatives})")
        return self._pattern

    def has_tokens(self, text: str) -> bool:
        return bool(self._resolvers) and self.pattern.search(text) is not None

    def expand(self, template: str, attachment: Any, style: Optional[str] = None) -> str:
        """
        Expands every token in ``template``.

        Replacement text is expanded again until no tokens remain.

        Args:
            template: The template to expand.
            attachment: The attachment passed to every resolver.
            style: The style name passed to every resolver.

        Returns:
            str: The expanded string.

        Raises:
            InfiniteInterpolationError: If the template is still not fully
                expanded after ``max_depth`` passes, or expansion re-enters
                itself more than ``max_depth`` times.
        """
        depth = getattr(self._local, "depth", 0)
        if depth >= self.max_depth:
            raise InfiniteInterpolationError(
                f"Interpolation of {template!r} re-entered itself more than {self.max_depth} times"
            )

        self._local.depth = depth + 1
        try:
            result = template
            passes = 0
            while self.has_tokens(result):
                if passes >= self.max_depth:
                    raise InfiniteInterpolationError(
                        f"Interpolation of {template!r} did not terminate after {self.max_depth} passes"
                    )
                result = self.pattern.sub(
                    lambda match: str(self._resolvers[match.group(1)](attachment, style)),
                    result,
                )
                passes += 1
            return result
        finally:
            self._local.depth = depth


# Default tokens


def _class(attachment, style):
    return pluralize(underscore(type(attachment.record).__name__))


def _attachment(attachment, style):
    return pluralize(attachment.name)


def _id(attachment, style):
    record_id = attachment.record.id
    return "" if record_id is None else record_id


def _id_partition(attachment, style):
    if attachment.record.id is None:
        return ""
    digits = "%09d" % int(attachment.record.id)
    return "/".join(digits[i : i + 3] for i in range(0, len(digits), 3))


def _style(attachment, style):
    return style if style and str(style).strip() else attachment.default_style


def _filename(attachment, style):
    basename = _basename(attachment, style)
    extension = _extension(attachment, style)
    return f"{basename}.{extension}" if extension else basename


def _basename(attachment, style):
    filename = attachment.original_filename or ""
    return PurePosixPath(filename).stem if filename else ""


def _extension(attachment, style):
    """The style's output format if it converts, otherwise the upload's extension."""
    definition = attachment.spec.styles.get(_style(attachment, style))
    if definition is not None and definition.format:
        return definition.format.lstrip(".")
    return PurePosixPath(attachment.original_filename or "").suffix.lstrip(".")


def _timestamp(attachment, style):
    updated_at = attachment.updated_at
    return updated_at.isoformat() if isinstance(updated_at, datetime) else ""


def _updated_at(attachment, style):
    updated_at = attachment.updated_at
    return int(updated_at.timestamp()) if isinstance(updated_at, datetime) else ""


def _root(attachment, style):
    return str(attachment.context.config.root)


def _env(attachment, style):
    return attachment.context.config.env


def _url(attachment, style):
    return attachment.url(style, timestamp=False)


DEFAULT_TOKENS: Dict[str, Resolver] = {
    "class": _class,
    "attachment": _attachment,
    "id": _id,
    "id_partition": _id_partition,
    "style": _style,
    "filename": _filename,
    "basename": _basename,
    "extension": _extension,
    "timestamp": _timestamp,
    "updated_at": _updated_at,
    "root": _root,
    "env": _env,
    "url": _url,
}
