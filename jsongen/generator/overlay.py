"""Annotations declared outside of the annotated classes.

An overlay file attaches markers to classes the user cannot, or does not
want to, edit:

    # third party types
    type shop.models.Image {
        @JsonIgnoreProperties(ignore_unknown=true)
        uri: @JsonProperty("url") @JsonAlias("link", "href");
        __init__: @JsonCreator(mode="PROPERTIES");
        __init__.uri: @JsonProperty("url");
    }

Member annotations apply to the field, property or method of that name;
``method.param`` addresses a parameter of a creator.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any

from lark import Lark, Token
from lark.exceptions import LarkError
from lark.visitors import Transformer

from .types import KNOWN_ANNOTATIONS, Annotation, AnnotationArg

_g_parser: Lark | None = None


class OverlayError(RuntimeError):
    """Raised when an overlay definition is invalid."""


@dataclass
class OverlayType:
    name: str
    annotations: list[Annotation] = field(default_factory=list)
    members: dict[str, list[Annotation]] = field(default_factory=dict)


@dataclass
class _Member:
    name: str
    annotations: list[Annotation]


class TreeTransformer(Transformer):
    """Transform parse tree into overlay types."""

    def start(self, args: list[Any]) -> list[OverlayType]:
        return list(args)

    def type_block(self, args: list[Any]) -> OverlayType:
        overlay_type = OverlayType(name=args[0])
        for arg in args[1:]:
            if isinstance(arg, Annotation):
                overlay_type.annotations.append(arg)
            else:
                overlay_type.members.setdefault(arg.name, []).extend(arg.annotations)
        return overlay_type

    def member(self, args: list[Any]) -> _Member:
        return _Member(name=args[0], annotations=list(args[1:]))

    def annotation(self, args: list[Any]) -> Annotation:
        name = str(args[0])
        if name not in KNOWN_ANNOTATIONS:
            raise OverlayError(f"Unknown annotation @{name}")
        arguments = args[1] if len(args) > 1 else []
        return Annotation(name=name, arguments=arguments)

    def arguments(self, args: list[Any]) -> list[AnnotationArg]:
        return [arg for arg in args if arg is not None]

    def named_argument(self, args: list[Any]) -> AnnotationArg:
        return AnnotationArg(name=str(args[0]), value=args[1])

    def positional_argument(self, args: list[Any]) -> AnnotationArg:
        return AnnotationArg(name=None, value=args[0])

    def string(self, args: list[Token]) -> str:
        return json.loads(args[0])

    def number(self, args: list[Token]) -> int | float:
        text = str(args[0])
        if "." in text or "e" in text.lower():
            return float(text)
        return int(text)

    def true(self, _args: list[Any]) -> bool:
        return True

    def false(self, _args: list[Any]) -> bool:
        return False

    def null(self, _args: list[Any]) -> None:
        return None

    def array(self, args: list[Any]) -> tuple[Any, ...]:
        return tuple(arg for arg in args if arg is not None)

    def dotted_name(self, args: list[Token]) -> str:
        return ".".join(str(arg) for arg in args)


class AnnotationOverlay:
    """Additional annotation source, merged after a type's own annotations."""

    def __init__(self, types: list[OverlayType] | None = None):
        self._types: dict[str, OverlayType] = {}
        for overlay_type in types or ():
            self.add(overlay_type)

    def add(self, overlay_type: OverlayType) -> None:
        if overlay_type.name in self._types:
            raise OverlayError(f"Type {overlay_type.name} is declared more than once")
        self._types[overlay_type.name] = overlay_type

    def merge(self, other: "AnnotationOverlay") -> "AnnotationOverlay":
        merged = AnnotationOverlay(list(self._types.values()))
        for overlay_type in other._types.values():
            merged.add(overlay_type)
        return merged

    @property
    def type_names(self) -> list[str]:
        return list(self._types)

    def class_annotations(self, type_name: str) -> list[Annotation]:
        overlay_type = self._types.get(type_name)
        return list(overlay_type.annotations) if overlay_type else []

    def member_annotations(self, type_name: str, member: str) -> list[Annotation]:
        overlay_type = self._types.get(type_name)
        if overlay_type is None:
            return []
        return list(overlay_type.members.get(member, ()))

    @classmethod
    def parse(cls, text: str) -> "AnnotationOverlay":
        """Parse an overlay definition."""
        global _g_parser

        if not _g_parser:
            with open(f"{os.path.dirname(__file__)}/overlay.lark", encoding="utf-8") as f:
                grammar = f.read()
            _g_parser = Lark(grammar, parser="lalr")

        try:
            tree = _g_parser.parse(text)
            types = TreeTransformer().transform(tree)
        except OverlayError:
            raise
        except LarkError as e:
            # errors raised in callbacks arrive wrapped in VisitError
            original = getattr(e, "orig_exc", None)
            if isinstance(original, OverlayError):
                raise original from None
            raise OverlayError(f"Invalid overlay definition: {e}") from e

        return cls(types)

    @classmethod
    def load(cls, path: str) -> "AnnotationOverlay":
        with open(path, encoding="utf-8") as f:
            return cls.parse(f.read())
