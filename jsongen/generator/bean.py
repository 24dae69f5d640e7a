"""Introspected property model of a bean type."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin

from .types import Element, FieldElement, MethodElement, ParameterElement, TypeDescriptor


@dataclass(frozen=True, eq=False)
class Property:
    """One logical member of a bean, as seen in one direction.

    Serialization reads through ``getter`` or ``field``; deserialization
    writes through ``creator_parameter``, ``setter`` or ``field``.
    """

    name: str
    type: TypeDescriptor
    field: FieldElement | None = None
    getter: MethodElement | None = None
    setter: MethodElement | None = None
    creator_parameter: ParameterElement | None = None
    aliases: tuple[str, ...] = ()
    nullable: bool = False
    unwrapped: bool = False
    permit_recursive_serialization: bool = False
    required: bool = False

    @property
    def is_readable(self) -> bool:
        return self.getter is not None or self.field is not None

    @property
    def is_writable(self) -> bool:
        return (
            self.setter is not None or self.field is not None or self.creator_parameter is not None
        )

    @property
    def wire_names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    def elements(self) -> list[Element]:
        members: list[Element | None] = [
            self.getter,
            self.setter,
            self.field,
            self.creator_parameter,
        ]
        return [m for m in members if m is not None]

    def describe(self) -> str:
        elements = self.elements()
        return elements[0].describe() if elements else self.name


@dataclass(eq=False)
class BeanDefinition:
    type: TypeDescriptor
    properties: list[Property] = field(default_factory=list)
    creator: MethodElement | None = None
    creator_properties: list[Property] = field(default_factory=list)
    ignore_unknown_properties: bool = False
    ignored_names: frozenset[str] = frozenset()

    def find_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def summary(self) -> "BeanSummary":
        return BeanSummary(
            type=str(self.type),
            creator=self.creator.describe() if self.creator else None,
            ignore_unknown_properties=self.ignore_unknown_properties,
            ignored_names=sorted(self.ignored_names),
            properties=[
                PropertySummary(
                    name=prop.name,
                    type=str(prop.type),
                    accessors=[element.describe() for element in prop.elements()],
                    aliases=list(prop.aliases),
                    nullable=prop.nullable,
                    required=prop.required,
                    unwrapped=prop.unwrapped,
                    recursive=prop.permit_recursive_serialization,
                )
                for prop in self.properties
            ],
        )


@dataclass
class PropertySummary(DataClassJsonMixin):
    name: str
    type: str
    accessors: list[str]
    aliases: list[str]
    nullable: bool
    required: bool
    unwrapped: bool
    recursive: bool


@dataclass
class BeanSummary(DataClassJsonMixin):
    """Printable form of a definition, used by ``jsongen info``."""

    type: str
    creator: str | None
    ignore_unknown_properties: bool
    ignored_names: list[str]
    properties: list[PropertySummary]
