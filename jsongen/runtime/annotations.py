"""Marker annotations for classes handled by jsongen.

Markers are attached to fields through ``typing.Annotated`` or ``json_field()``,
to methods and properties through ``annotate()``, and to constructor
parameters through ``Annotated`` hints on ``__init__``.

Example:
    @annotate(JsonIgnoreProperties(ignore_unknown=True))
    @dataclass
    class Image:
        id: int
        uri: Annotated[str, JsonProperty("url"), JsonAlias("link")]
        tags: list[Tag] = json_field(Nullable(), default_factory=list)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

ANNOTATIONS_ATTR = "__jsongen_annotations__"
FIELD_METADATA_KEY = "jsongen"


class CreatorMode(StrEnum):
    """How a ``JsonCreator`` binds the decoded value."""

    DEFAULT = "DEFAULT"
    DELEGATING = "DELEGATING"
    PROPERTIES = "PROPERTIES"
    DISABLED = "DISABLED"


@dataclass(frozen=True)
class Marker:
    """Base class for jsongen markers."""


@dataclass(frozen=True)
class JsonProperty(Marker):
    """Marks a member as a property, optionally with an explicit wire name."""

    value: str | None = None
    required: bool | None = None


@dataclass(frozen=True)
class JsonIgnore(Marker):
    value: bool = True


@dataclass(frozen=True)
class JsonCreator(Marker):
    """Designates the constructor or static factory used for decoding."""

    mode: CreatorMode = CreatorMode.DEFAULT


@dataclass(frozen=True)
class JsonUnwrapped(Marker):
    """Flattens the properties of this member into the enclosing object."""


@dataclass(frozen=True)
class JsonAlias(Marker):
    """Alternate wire names accepted when decoding."""

    values: tuple[str, ...] = ()

    def __init__(self, *values: str) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class JsonIgnoreProperties(Marker):
    ignore_unknown: bool = False
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class Nullable(Marker):
    pass


@dataclass(frozen=True)
class NonNull(Marker):
    pass


@dataclass(frozen=True)
class RecursiveSerialization(Marker):
    """Permits a recursive reference, resolved lazily at runtime."""


@dataclass(frozen=True)
class SerializableBean(Marker):
    """Class level options. ``inline=True`` expands the codec into its users."""

    inline: bool = False


@dataclass(frozen=True)
class ExternalCodec(Marker):
    """The codec for this class is supplied at runtime instead of generated."""


T = TypeVar("T")


def annotate(*markers: Marker) -> Callable[[T], T]:
    """Attach markers to a class, function, property, staticmethod or classmethod."""

    def decorator(target: T) -> T:
        holder: Any = target
        if isinstance(target, property):
            holder = target.fget
        elif isinstance(target, (staticmethod, classmethod)):
            holder = target.__func__
        if isinstance(holder, type):
            # class attributes are inherited, only keep our own
            existing = holder.__dict__.get(ANNOTATIONS_ATTR, ())
        else:
            existing = getattr(holder, ANNOTATIONS_ATTR, ())
        setattr(holder, ANNOTATIONS_ATTR, tuple(existing) + markers)
        return target

    return decorator


_MISSING: Any = object()


def json_field(
    *markers: Marker,
    default: Any = _MISSING,
    default_factory: Any = _MISSING,
    **kwargs: Any,
) -> Any:
    """Define a dataclass field carrying jsongen markers.

    Args:
        *markers: Markers for this field.
        default: Default value for the field.
        default_factory: Factory function for the default value.
        **kwargs: Passed through to ``dataclasses.field``.

    Returns:
        A dataclass field with the markers attached as metadata.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[FIELD_METADATA_KEY] = markers

    if default is not _MISSING:
        return field(default=default, metadata=metadata, **kwargs)
    if default_factory is not _MISSING:
        return field(default_factory=default_factory, metadata=metadata, **kwargs)
    return field(metadata=metadata, **kwargs)


def markers_of(target: Any) -> tuple[Marker, ...]:
    """Return the markers attached to ``target`` with ``annotate()``."""
    if isinstance(target, property):
        target = target.fget
    elif isinstance(target, (staticmethod, classmethod)):
        target = target.__func__
    if isinstance(target, type):
        return tuple(target.__dict__.get(ANNOTATIONS_ATTR, ()))
    return tuple(getattr(target, ANNOTATIONS_ATTR, ()))
