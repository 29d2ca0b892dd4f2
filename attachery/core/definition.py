"""
Attachment Definition Module.

Defines the immutable configuration of a named attachment: its styles,
templates, storage backend and validations. A definition is built once when
the attachment is declared and shared by every record of that type.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from attachery.core.geometry import Geometry

ORIGINAL_STYLE = "original"
DEFAULT_URL = "/:class/:attachment/:id/:style_:filename"
DEFAULT_MISSING_URL = "/:class/:attachment/missing_:style.png"
DEFAULT_PROCESSORS = ("thumbnail",)


@dataclass(frozen=True)
class StyleDefinition:
    """
    A named variant of an attachment.

    Attributes:
        name: Style name used in paths and URLs.
        geometry: Target geometry string (e.g. "100x100#").
        format: Output format extension (e.g. "png"), or None to keep the source's.
        convert_options: Extra options appended to the conversion command.
        processors: Names of the processors applied in order.
        whiny: Whether processing failures are reported as errors.
    """

    name: str
    geometry: str
    format: Optional[str] = None
    convert_options: str = ""
    processors: Tuple[str, ...] = DEFAULT_PROCESSORS
    whiny: bool = True

    def processor_options(self) -> Dict[str, Any]:
        """Returns the options handed to each processor for this style."""
        return {
            "geometry": self.geometry,
            "format": self.format,
            "convert_options": self.convert_options,
            "whiny": self.whiny,
            "style": self.name,
        }


@dataclass(frozen=True)
class AttachmentSpec:
    """
    Declaration-time configuration for one named attachment.

    Attributes:
        name: Attachment name (e.g. "avatar").
        styles: Read-only mapping of style name to StyleDefinition.
        default_style: Style used when none is given.
        url_template: Template for the public URL of a stored file.
        default_url_template: Template for the URL used when no file is set.
        path_template: Storage path template, or None for the backend default.
        storage: Storage backend kind ("filesystem" or "s3"), or None for
            the configured default.
        storage_options: Backend-specific options.
        whiny: Whether processing failures are reported as errors.
        validations: Constraint descriptors checked after assignment.
    """

    name: str
    styles: Mapping[str, StyleDefinition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    default_style: str = ORIGINAL_STYLE
    url_template: str = DEFAULT_URL
    default_url_template: str = DEFAULT_MISSING_URL
    path_template: Optional[str] = None
    storage: Optional[str] = None
    storage_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    whiny: bool = True
    validations: Tuple[Any, ...] = ()

    @classmethod
    def build(
        cls,
        name: str,
        styles: Optional[Mapping[str, Any]] = None,
        convert_options: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> "AttachmentSpec":
        """
        Builds a definition from loosely-typed declaration options.

        Style values may be a geometry string, a ``(geometry, format)`` pair,
        or a mapping with ``geometry``, ``format``, ``processors`` and
        ``convert_options`` keys. ``convert_options`` may hold an ``"all"``
        entry that is prepended to every style's own options.

        Args:
            name: Attachment name.
            styles: Style declarations keyed by style name.
            convert_options: Extra conversion options keyed by style name.
            **options: Any other AttachmentSpec field.

        Returns:
            AttachmentSpec: The normalized definition.

        Raises:
            ValueError: If a style is named "original" or is missing a geometry.
            FormatError: If a style geometry cannot be parsed.
        """
        whiny = options.get("whiny", True)
        convert_options = dict(convert_options or {})
        normalized: Dict[str, StyleDefinition] = {}

        for style_name, declaration in (styles or {}).items():
            style_name = str(style_name)
            if style_name == ORIGINAL_STYLE:
                raise ValueError(
                    f"'{ORIGINAL_STYLE}' is reserved for the unprocessed upload "
                    f"and cannot be declared as a style on {name}"
                )
            normalized[style_name] = _normalize_style(
                style_name, declaration, convert_options, whiny
            )

        options["validations"] = tuple(options.get("validations", ()))
        options["storage_options"] = MappingProxyType(
            dict(options.get("storage_options") or {})
        )
        return cls(name=name, styles=MappingProxyType(normalized), **options)

    @property
    def style_names(self) -> List[str]:
        """The original style followed by every declared style."""
        return [ORIGINAL_STYLE, *self.styles]


def _normalize_style(
    name: str, declaration: Any, convert_options: Mapping[str, str], whiny: bool
) -> StyleDefinition:
    if isinstance(declaration, str):
        values: Dict[str, Any] = {"geometry": declaration}
    elif isinstance(declaration, (tuple, list)):
        values = {"geometry": declaration[0]}
        if len(declaration) > 1:
            values["format"] = declaration[1]
    elif isinstance(declaration, Mapping):
        values = dict(declaration)
    else:
        raise ValueError(f"Unsupported declaration for style {name}: {declaration!r}")

    if not values.get("geometry"):
        raise ValueError(f"Style {name} has no geometry")
    Geometry.parse(values["geometry"])

    extra = [
        convert_options.get("all", ""),
        values.pop("convert_options", None) or convert_options.get(name, ""),
    ]
    processors = values.pop("processors", None) or DEFAULT_PROCESSORS

    return StyleDefinition(
        name=name,
        geometry=values["geometry"],
        format=values.get("format"),
        convert_options=" ".join(part for part in extra if part).strip(),
        processors=tuple(processors),
        whiny=values.get("whiny", whiny),
    )
