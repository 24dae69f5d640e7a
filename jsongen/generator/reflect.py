"""Describe live Python classes as type descriptors.

Fields come from class annotations (or dataclass fields), methods and
properties from the class dictionaries along the MRO, and constructor
parameters from ``__init__``. Markers attached through ``Annotated``,
``json_field()`` and ``annotate()`` become annotation records.
"""

import dataclasses
import enum
import inspect
import logging
import types
from typing import Annotated, Any, ClassVar, Final, TypeVar, get_args, get_origin, get_type_hints

from jsongen.runtime.annotations import FIELD_METADATA_KEY, Marker, markers_of

from .types import (
    JSON_CREATOR,
    NULLABLE,
    Annotation,
    AnnotationArg,
    Declaration,
    FieldElement,
    MethodElement,
    MethodKind,
    Modifier,
    ParameterElement,
    TypeDescriptor,
    TypeKind,
    primitive,
)

logger = logging.getLogger(__name__)

OPTIONAL = "typing.Optional"
_PRIMITIVES = {int: "int", float: "float", bool: "bool"}


def _is_union_origin(origin: Any) -> bool:
    return origin is types.UnionType or (
        getattr(origin, "__module__", "") == "typing"
        and getattr(origin, "__qualname__", "") == "Union"
    )


def qualified_name(cls: type) -> str:
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def to_annotation(marker: Marker) -> Annotation:
    """Convert a marker instance into an annotation record.

    A ``value`` field becomes the positional argument and a ``values`` field
    is spread into positional arguments, as they are written in overlays.
    """
    arguments: list[AnnotationArg] = []
    for f in dataclasses.fields(marker):
        value = getattr(marker, f.name)
        if f.name == "value":
            arguments.append(AnnotationArg(name=None, value=value))
        elif f.name == "values":
            arguments.extend(AnnotationArg(name=None, value=v) for v in value)
        else:
            arguments.append(AnnotationArg(name=f.name, value=value))
    return Annotation(name=type(marker).__name__, arguments=arguments)


def _annotations(markers: Any) -> list[Annotation]:
    return [to_annotation(m) for m in markers if isinstance(m, Marker)]


class _Hint:
    """A type hint with its wrappers peeled off."""

    def __init__(self, hint: Any):
        self.markers: list[Marker] = []
        self.final = False
        self.class_var = False
        self.optional = False
        while True:
            origin = get_origin(hint)
            if origin is Annotated:
                args = get_args(hint)
                self.markers.extend(m for m in args[1:] if isinstance(m, Marker))
                hint = args[0]
            elif hint is Final or origin is Final:
                self.final = True
                hint = get_args(hint)[0] if get_args(hint) else Any
            elif hint is ClassVar or origin is ClassVar:
                self.class_var = True
                hint = get_args(hint)[0] if get_args(hint) else Any
            elif _is_union_origin(origin) and type(None) in get_args(hint):
                non_none = [arg for arg in get_args(hint) if arg is not type(None)]
                if len(non_none) != 1:
                    break
                self.optional = True
                hint = non_none[0]
            else:
                break
        self.hint = hint

    def annotations(self) -> list[Annotation]:
        annotations = _annotations(self.markers)
        if self.optional:
            annotations.append(Annotation(name=NULLABLE))
        return annotations


class Reflector:
    """Builds descriptors, memoized per class.

    Example:
        reflector = Reflector()
        image = reflector.describe(Image)
        [f.name for f in image.fields]   # ["id", "uri", "tags"]
    """

    def __init__(self) -> None:
        self._classes: dict[type, TypeDescriptor] = {}

    def describe(self, tp: Any) -> TypeDescriptor:
        if tp is None or tp is type(None):
            return primitive("None")
        if tp in _PRIMITIVES:
            return primitive(_PRIMITIVES[tp])
        if isinstance(tp, TypeVar):
            return TypeDescriptor(name=tp.__name__, kind=TypeKind.TYPE_VAR)

        origin = get_origin(tp)
        args = get_args(tp)
        if origin is Annotated or origin is Final:
            return self.describe(args[0])
        if _is_union_origin(origin):
            non_none = [arg for arg in args if arg is not type(None)]
            if len(non_none) == 1 and len(args) == 2:
                return TypeDescriptor(
                    name=OPTIONAL,
                    kind=TypeKind.CLASS,
                    module="typing",
                    qualname="Optional",
                    type_arguments=(self.describe(non_none[0]),),
                )
            return TypeDescriptor(
                name="typing.Union",
                kind=TypeKind.CLASS,
                type_arguments=tuple(self.describe(arg) for arg in args),
            )
        if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
            return TypeDescriptor(
                name="tuple",
                kind=TypeKind.ARRAY,
                module="builtins",
                qualname="tuple",
                component=self.describe(args[0]),
            )
        if isinstance(origin, type):
            base = self._describe_class(origin)
            return TypeDescriptor(
                name=base.name,
                kind=base.kind,
                module=base.module,
                qualname=base.qualname,
                type_arguments=tuple(self.describe(arg) for arg in args if arg is not Ellipsis),
                loader=base.loader,
            )
        if isinstance(tp, type):
            return self._describe_class(tp)

        # Any, unresolved forward references and other typing constructs
        name = getattr(tp, "__qualname__", None) or repr(tp)
        return TypeDescriptor(name=str(name), kind=TypeKind.CLASS)

    def _describe_class(self, cls: type) -> TypeDescriptor:
        descriptor = self._classes.get(cls)
        if descriptor is not None:
            return descriptor

        kind = TypeKind.ENUM if issubclass(cls, enum.Enum) else TypeKind.CLASS
        loader = None
        if cls.__module__ != "builtins":

            def loader() -> Declaration:
                return self._load(cls)

        descriptor = TypeDescriptor(
            name=qualified_name(cls),
            kind=kind,
            module=cls.__module__,
            qualname=cls.__qualname__,
            loader=loader,
        )
        self._classes[cls] = descriptor
        return descriptor

    def _hints(self, target: Any) -> dict[str, Any]:
        try:
            return get_type_hints(target, include_extras=True)
        except (NameError, TypeError) as e:
            logger.warning("Cannot resolve type hints of %r: %s", target, e)
            return {}

    def _load(self, cls: type) -> Declaration:
        logger.debug("Loading declaration of %s", qualified_name(cls))
        owner = qualified_name(cls)
        declaration = Declaration(
            fields=self._fields(cls, owner),
            methods=self._methods(cls, owner),
            annotations=[
                a for klass in cls.__mro__ for a in _annotations(markers_of(klass))
            ],
            supertypes=[self.describe(base) for base in cls.__bases__ if base is not object],
        )
        if issubclass(cls, enum.Enum):
            declaration.enum_constants = [member.name for member in cls]
        else:
            declaration.constructors = [self._constructor(cls, owner, declaration)]
        return declaration

    def _fields(self, cls: type, owner: str) -> list[FieldElement]:
        hints = self._hints(cls)
        metadata: dict[str, Any] = {}
        frozen = False
        if dataclasses.is_dataclass(cls):
            dc_fields = dataclasses.fields(cls)
            names = [f.name for f in dc_fields]
            metadata = {f.name: f.metadata.get(FIELD_METADATA_KEY, ()) for f in dc_fields}
            frozen = cls.__dataclass_params__.frozen  # type: ignore[attr-defined]
        else:
            names = []
            for klass in reversed(cls.__mro__):
                for name in inspect.get_annotations(klass):
                    if name not in names:
                        names.append(name)

        fields = []
        for name in names:
            raw = hints.get(name)
            hint = _Hint(raw)
            if hint.class_var:
                continue
            modifiers = set()
            if name.startswith("_"):
                modifiers.add(Modifier.PRIVATE)
            if hint.final or frozen:
                modifiers.add(Modifier.FINAL)
            fields.append(
                FieldElement(
                    name=name,
                    owner=owner,
                    annotations=_annotations(metadata.get(name, ())) + hint.annotations(),
                    modifiers=frozenset(modifiers),
                    type=self.describe(hint.hint) if raw is not None else None,
                )
            )
        return fields

    def _methods(self, cls: type, owner: str) -> list[MethodElement]:
        members: dict[str, Any] = {}
        for klass in reversed(cls.__mro__[:-1]):
            members.update(klass.__dict__)

        methods = []
        for name, attr in members.items():
            if name.startswith("__") and name.endswith("__"):
                continue
            modifiers = {Modifier.PRIVATE} if name.startswith("_") else set()
            if isinstance(attr, property):
                methods.extend(self._property(name, attr, owner, modifiers))
            elif isinstance(attr, (staticmethod, classmethod)):
                func = attr.__func__
                methods.append(
                    self._method(
                        name,
                        func,
                        owner,
                        modifiers | {Modifier.STATIC},
                        skip_first=isinstance(attr, classmethod),
                    )
                )
            elif inspect.isfunction(attr):
                methods.append(self._method(name, attr, owner, modifiers, skip_first=True))
        return methods

    def _method(
        self,
        name: str,
        func: Any,
        owner: str,
        modifiers: set[Modifier],
        skip_first: bool,
        kind: MethodKind = MethodKind.METHOD,
    ) -> MethodElement:
        hints = self._hints(func)
        parameters = self._parameters(func, f"{owner}.{name}", hints, skip_first)
        annotations = _annotations(markers_of(func))
        return_type = None
        if "return" in hints:
            hint = _Hint(hints["return"])
            annotations += hint.annotations()
            return_type = self.describe(hint.hint)
        if len(parameters) == 1 and parameters[0].annotation(NULLABLE):
            # a setter taking an optional value
            if not any(a.name == NULLABLE for a in annotations):
                annotations.append(Annotation(name=NULLABLE))
        return MethodElement(
            name=name,
            owner=owner,
            annotations=annotations,
            modifiers=frozenset(modifiers),
            kind=kind,
            parameters=parameters,
            return_type=return_type,
        )

    def _property(
        self, name: str, prop: property, owner: str, modifiers: set[Modifier]
    ) -> list[MethodElement]:
        methods = []
        if prop.fget is not None:
            methods.append(
                self._method(name, prop.fget, owner, modifiers, True, kind=MethodKind.PROPERTY)
            )
        if prop.fset is not None:
            setter = self._method(name, prop.fset, owner, modifiers, True, MethodKind.PROPERTY)
            # markers are attached to the getter, they apply to the whole property
            if prop.fget is not None:
                setter.annotations = _annotations(markers_of(prop.fget)) + [
                    a for a in setter.annotations if a.name == NULLABLE
                ]
            setter.return_type = None
            methods.append(setter)
        return methods

    def _parameters(
        self, func: Any, owner: str, hints: dict[str, Any], skip_first: bool
    ) -> list[ParameterElement]:
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            return []
        params = list(signature.parameters.values())
        if skip_first:
            params = params[1:]

        parameters = []
        for param in params:
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            raw = hints.get(param.name)
            hint = _Hint(raw)
            parameters.append(
                ParameterElement(
                    name=param.name,
                    owner=owner,
                    annotations=hint.annotations(),
                    type=self.describe(hint.hint) if raw is not None else None,
                    has_default=param.default is not param.empty,
                    keyword_only=param.kind is param.KEYWORD_ONLY,
                )
            )
        return parameters

    def _constructor(self, cls: type, owner: str, declaration: Declaration) -> MethodElement:
        init = cls.__init__  # type: ignore[misc]
        if init is object.__init__:
            return MethodElement(name="__init__", owner=owner, kind=MethodKind.CONSTRUCTOR)

        constructor = self._method("__init__", init, owner, set(), True, MethodKind.CONSTRUCTOR)
        constructor.return_type = None
        constructor.annotations = [a for a in constructor.annotations if a.name != NULLABLE]

        if self._is_generated_init(cls, constructor) and not self._has_creator(
            constructor, declaration
        ):
            self._bind_implicit_creator(cls, constructor, declaration)
        return constructor

    @staticmethod
    def _is_generated_init(cls: type, constructor: MethodElement) -> bool:
        if not dataclasses.is_dataclass(cls) or not constructor.parameters:
            return False
        init_fields = [f.name for f in dataclasses.fields(cls) if f.init]
        return init_fields == [p.name for p in constructor.parameters]

    @staticmethod
    def _has_creator(constructor: MethodElement, declaration: Declaration) -> bool:
        for element in [constructor, *declaration.methods]:
            annotation = element.annotation(JSON_CREATOR)
            if annotation is not None and str(annotation.get("mode", "")).upper() != "DISABLED":
                return True
        return False

    @staticmethod
    def _bind_implicit_creator(
        cls: type, constructor: MethodElement, declaration: Declaration
    ) -> None:
        """Let a dataclass ``__init__`` create instances from its fields."""
        fields = {f.name: f for f in declaration.fields}
        for param in constructor.parameters:
            field = fields.get(param.name)
            if field is not None:
                param.annotations = list(field.annotations)
                param.type = field.type
        constructor.annotations.append(
            Annotation(
                name=JSON_CREATOR,
                arguments=[
                    AnnotationArg(name="mode", value="PROPERTIES"),
                    AnnotationArg(name="implicit", value=True),
                ],
            )
        )
        logger.debug("Using dataclass __init__ of %s as creator", qualified_name(cls))


_g_reflector = Reflector()


def describe(tp: Any) -> TypeDescriptor:
    """Describe ``tp`` with the shared reflector."""
    return _g_reflector.describe(tp)
