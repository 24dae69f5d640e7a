"""Type definitions describing host classes for codec generation."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum, auto
from functools import cached_property
from typing import Any

from dataclasses_json import DataClassJsonMixin


@dataclass(frozen=True)
class AnnotationArg(DataClassJsonMixin):
    """Represents an argument to an annotation."""

    name: str | None
    value: Any


@dataclass(frozen=True)
class Annotation(DataClassJsonMixin):
    """Represents a marker annotation on a class or member."""

    name: str
    arguments: list[AnnotationArg] = field(default_factory=list)

    def value(self, default: Any = None) -> Any:
        """Return the first positional (or ``value=``) argument."""
        for arg in self.arguments:
            if arg.name is None or arg.name == "value":
                return arg.value
        return default

    def values(self) -> list[Any]:
        """Return all positional arguments."""
        return [arg.value for arg in self.arguments if arg.name is None]

    def get(self, name: str, default: Any = None) -> Any:
        for arg in self.arguments:
            if arg.name == name:
                return arg.value
        return default


class TypeKind(StrEnum):
    """Shape family of a type."""

    PRIMITIVE = auto()  # int, float, bool and None
    ARRAY = auto()  # homogeneous tuple[T, ...]
    CLASS = auto()
    ENUM = auto()
    TYPE_VAR = auto()


class Modifier(StrEnum):
    PRIVATE = auto()
    FINAL = auto()
    STATIC = auto()


class MethodKind(StrEnum):
    """How a method is invoked from generated code."""

    METHOD = auto()  # obj.name(...)
    PROPERTY = auto()  # obj.name / obj.name = value
    CONSTRUCTOR = auto()  # Type(...)


@dataclass(eq=False)
class Element:
    """A member of a class that can carry annotations."""

    name: str
    owner: str
    annotations: list[Annotation] = field(default_factory=list)
    modifiers: frozenset[Modifier] = frozenset()

    def annotation(self, name: str) -> Annotation | None:
        for annotation in self.annotations:
            if annotation.name == name:
                return annotation
        return None

    def has_annotation(self, name: str) -> bool:
        return self.annotation(name) is not None

    @property
    def is_private(self) -> bool:
        return Modifier.PRIVATE in self.modifiers

    @property
    def is_final(self) -> bool:
        return Modifier.FINAL in self.modifiers

    @property
    def is_static(self) -> bool:
        return Modifier.STATIC in self.modifiers

    def describe(self) -> str:
        return f"{self.owner}.{self.name}"


@dataclass(eq=False)
class FieldElement(Element):
    type: "TypeDescriptor | None" = None


@dataclass(eq=False)
class ParameterElement(Element):
    type: "TypeDescriptor | None" = None
    has_default: bool = False
    keyword_only: bool = False

    def describe(self) -> str:
        return f"{self.owner}({self.name})"


@dataclass(eq=False)
class MethodElement(Element):
    kind: MethodKind = MethodKind.METHOD
    parameters: list[ParameterElement] = field(default_factory=list)
    return_type: "TypeDescriptor | None" = None

    @property
    def is_constructor(self) -> bool:
        return self.kind == MethodKind.CONSTRUCTOR


@dataclass
class Declaration:
    """Members of a class, as reported by the host."""

    fields: list[FieldElement] = field(default_factory=list)
    methods: list[MethodElement] = field(default_factory=list)
    constructors: list[MethodElement] = field(default_factory=list)
    annotations: list[Annotation] = field(default_factory=list)
    enum_constants: list[str] = field(default_factory=list)
    supertypes: list["TypeDescriptor"] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """Handle to a type of the host type system.

    ``name`` is the qualified name (``pkg.mod.Outer.Inner``, ``int``, ``list``).
    Members are loaded lazily through ``loader`` since descriptors of
    recursive classes refer to each other.
    """

    name: str
    kind: TypeKind
    module: str | None = None
    qualname: str | None = None
    type_arguments: tuple["TypeDescriptor", ...] = ()
    component: "TypeDescriptor | None" = None
    loader: Callable[[], Declaration] | None = field(default=None, repr=False)

    @cached_property
    def declaration(self) -> Declaration:
        if self.loader is None:
            return Declaration()
        return self.loader()

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def has_declaration(self) -> bool:
        return self.loader is not None

    @property
    def is_primitive(self) -> bool:
        return self.kind == TypeKind.PRIMITIVE

    @property
    def is_void(self) -> bool:
        return self.kind == TypeKind.PRIMITIVE and self.name == "None"

    @property
    def is_array(self) -> bool:
        return self.kind == TypeKind.ARRAY

    @property
    def is_enum(self) -> bool:
        return self.kind == TypeKind.ENUM

    @property
    def is_type_var(self) -> bool:
        return self.kind == TypeKind.TYPE_VAR

    @property
    def fields(self) -> list[FieldElement]:
        return self.declaration.fields

    @property
    def methods(self) -> list[MethodElement]:
        return self.declaration.methods

    @property
    def constructors(self) -> list[MethodElement]:
        return self.declaration.constructors

    @property
    def annotations(self) -> list[Annotation]:
        return self.declaration.annotations

    @property
    def enum_constants(self) -> list[str]:
        return self.declaration.enum_constants

    @property
    def supertypes(self) -> list["TypeDescriptor"]:
        return self.declaration.supertypes

    def annotation(self, name: str) -> Annotation | None:
        for annotation in self.annotations:
            if annotation.name == name:
                return annotation
        return None

    def default_constructor(self) -> MethodElement | None:
        """Return the accessible constructor that can be called without arguments."""
        for constructor in self.constructors:
            if constructor.is_private:
                continue
            if all(p.has_default for p in constructor.parameters):
                return constructor
        return None

    def is_assignable(self, name: str) -> bool:
        """Check whether this type is, or derives from, the type called ``name``."""
        if self.name == name:
            return True
        return any(supertype.is_assignable(name) for supertype in self.supertypes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeDescriptor):
            return NotImplemented
        return same_type(self, other)

    def __hash__(self) -> int:
        return hash((self.name, len(self.type_arguments)))

    def __str__(self) -> str:
        if self.is_array and self.component is not None:
            return f"tuple[{self.component}, ...]"
        if self.type_arguments:
            return f"{self.name}[{', '.join(str(a) for a in self.type_arguments)}]"
        return self.name


def same_type(a: TypeDescriptor, b: TypeDescriptor) -> bool:
    """Structural equality, comparing generic arguments."""
    if a is b:
        return True
    if a.name != b.name or a.kind != b.kind:
        return False
    if len(a.type_arguments) != len(b.type_arguments):
        return False
    if (a.component is None) != (b.component is None):
        return False
    if a.component is not None and b.component is not None:
        if not same_type(a.component, b.component):
            return False
    return all(same_type(x, y) for x, y in zip(a.type_arguments, b.type_arguments))


# Annotation names understood by the introspector
JSON_PROPERTY = "JsonProperty"
JSON_IGNORE = "JsonIgnore"
JSON_CREATOR = "JsonCreator"
JSON_UNWRAPPED = "JsonUnwrapped"
JSON_ALIAS = "JsonAlias"
JSON_IGNORE_PROPERTIES = "JsonIgnoreProperties"
NULLABLE = "Nullable"
NON_NULL = "NonNull"
RECURSIVE_SERIALIZATION = "RecursiveSerialization"
SERIALIZABLE_BEAN = "SerializableBean"
EXTERNAL_CODEC = "ExternalCodec"

KNOWN_ANNOTATIONS = frozenset(
    [
        JSON_PROPERTY,
        JSON_IGNORE,
        JSON_CREATOR,
        JSON_UNWRAPPED,
        JSON_ALIAS,
        JSON_IGNORE_PROPERTIES,
        NULLABLE,
        NON_NULL,
        RECURSIVE_SERIALIZATION,
        SERIALIZABLE_BEAN,
        EXTERNAL_CODEC,
    ]
)

SCALAR_TYPES = frozenset(["bool", "int", "float"])


def primitive(name: str) -> TypeDescriptor:
    """Descriptor for a primitive (``int``, ``float``, ``bool`` or ``None``)."""
    return TypeDescriptor(name=name, kind=TypeKind.PRIMITIVE, module="builtins", qualname=name)
