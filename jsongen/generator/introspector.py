"""Build bean definitions from type descriptors.

Fields, accessors and creator parameters are grouped by the name they
imply, then reconciled into one property per wire name:

- getters are properties and zero-argument ``get_x``/``is_x`` methods,
  setters are property setters and one-argument ``set_x`` methods; any
  method marked with ``JsonProperty`` counts whatever its name
- an explicit ``JsonProperty`` name wins over the implied one, looked up
  getter first when serializing and setter first when deserializing
- underscore-prefixed members are never used, and final fields cannot be
  written
- modifiers (nullable, unwrapped, aliases, ...) are taken from the first
  contributing member that declares them

Problems are reported, not raised, so one pass finds all of them.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .bean import BeanDefinition, Property
from .problems import ProblemReporter
from .types import (
    JSON_ALIAS,
    JSON_CREATOR,
    JSON_IGNORE,
    JSON_IGNORE_PROPERTIES,
    JSON_PROPERTY,
    JSON_UNWRAPPED,
    NON_NULL,
    NULLABLE,
    RECURSIVE_SERIALIZATION,
    Annotation,
    Element,
    FieldElement,
    MethodElement,
    MethodKind,
    ParameterElement,
    TypeDescriptor,
)

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay

logger = logging.getLogger(__name__)

GETTER_PREFIXES = ("get_", "is_")
SETTER_PREFIX = "set_"


@dataclass(eq=False)
class _Draft:
    """Members sharing one implied name."""

    implicit_name: str
    fields: list[FieldElement] = field(default_factory=list)
    getters: list[MethodElement] = field(default_factory=list)
    setters: list[MethodElement] = field(default_factory=list)
    parameter: ParameterElement | None = None
    name: str | None = None

    @property
    def field(self) -> FieldElement | None:
        return self.fields[0] if self.fields else None

    @property
    def getter(self) -> MethodElement | None:
        return self.getters[0] if self.getters else None

    @property
    def setter(self) -> MethodElement | None:
        return self.setters[0] if self.setters else None

    def accessors(self) -> list[Element]:
        return [*self.getters, *self.setters, *self.fields]

    def remove(self, element: Element) -> None:
        for members in (self.fields, self.getters, self.setters):
            if element in members:
                members.remove(element)


def introspect(
    reporter: ProblemReporter,
    type: TypeDescriptor,
    sources: "AnnotationOverlay | None" = None,
    for_serialization: bool = True,
) -> BeanDefinition | None:
    """Describe the properties of ``type`` for one direction.

    Returns None, with the problems reported, if the type cannot be used.
    """
    return _Introspector(reporter.child(), type, sources, for_serialization).run()


class _Introspector:
    def __init__(
        self,
        reporter: ProblemReporter,
        type: TypeDescriptor,
        sources: "AnnotationOverlay | None",
        for_serialization: bool,
    ):
        self.reporter = reporter
        self.type = type
        self.sources = sources
        self.for_serialization = for_serialization
        self.drafts: dict[str, _Draft] = {}
        self.ignored_names: set[str] = set()

    def run(self) -> BeanDefinition | None:
        if not self.type.has_declaration:
            self.reporter.fail(f"Type {self.type} has no members to introspect", self.type.name)
            return None

        self._collect_accessors()
        self._apply_ignores()
        self._trim()
        creator, implicit = self._find_creator()
        if creator is not None:
            self._bind_creator(creator, implicit)
        for draft in self.drafts.values():
            draft.name = self._resolve_name(draft)

        drafts = [draft for draft in self.drafts.values() if self._is_included(draft)]
        self._check_names(drafts)
        properties = [p for p in (self._build(draft) for draft in drafts) if p is not None]

        if creator is None and not self.for_serialization:
            if self.type.default_constructor() is None:
                self.reporter.fail(
                    "Missing default constructor or @JsonCreator", self.type.name
                )

        creator_properties: list[Property] = []
        if self.for_serialization:
            creator = None
        elif creator is not None:
            creator_properties = self._creator_properties(creator, properties, implicit)

        if self.reporter.has_errors:
            return None

        ignore_unknown, ignored_names = self._class_options()
        definition = BeanDefinition(
            type=self.type,
            properties=properties,
            creator=creator,
            creator_properties=creator_properties,
            ignore_unknown_properties=ignore_unknown,
            ignored_names=frozenset(ignored_names | self.ignored_names),
        )
        logger.debug(
            "Introspected %s for %s: %s",
            self.type,
            "serialization" if self.for_serialization else "deserialization",
            [p.name for p in properties],
        )
        return definition

    # annotations

    def annotations(self, element: Element) -> list[Annotation]:
        """An element's own annotations followed by those of the overlay."""
        if self.sources is None:
            return element.annotations
        key = element.name
        if isinstance(element, ParameterElement):
            key = f"{element.owner.rsplit('.', 1)[-1]}.{element.name}"
        return element.annotations + self.sources.member_annotations(self.type.name, key)

    def annotation(self, element: Element, name: str) -> Annotation | None:
        for annotation in self.annotations(element):
            if annotation.name == name:
                return annotation
        return None

    def explicit_name(self, element: Element) -> str | None:
        annotation = self.annotation(element, JSON_PROPERTY)
        if annotation is None:
            return None
        return annotation.value() or None

    # steps

    def _draft(self, implicit_name: str) -> _Draft:
        draft = self.drafts.get(implicit_name)
        if draft is None:
            draft = self.drafts[implicit_name] = _Draft(implicit_name)
        return draft

    def _collect_accessors(self) -> None:
        for f in self.type.fields:
            if not f.is_static:
                self._draft(f.name).fields.append(f)

        for method in self.type.methods:
            if method.is_static or method.is_constructor:
                continue
            accessor = self._classify(method)
            if accessor is None:
                continue
            role, implicit_name = accessor
            draft = self._draft(implicit_name)
            members = draft.getters if role == "getter" else draft.setters
            members.append(method)

        for draft in self.drafts.values():
            for role, members in (("getters", draft.getters), ("setters", draft.setters)):
                if len(members) > 1:
                    names = ", ".join(m.describe() for m in members)
                    self.reporter.fail(
                        f"Conflicting {role} for property '{draft.implicit_name}': {names}",
                        members[0].describe(),
                    )

    def _classify(self, method: MethodElement) -> tuple[str, str] | None:
        explicit = self.annotation(method, JSON_PROPERTY) is not None
        parameters = method.parameters

        if method.kind == MethodKind.PROPERTY:
            if not parameters:
                typed = method.return_type is not None
                return ("getter", method.name) if typed or explicit else None
            typed = parameters[0].type is not None
            return ("setter", method.name) if typed or explicit else None

        if not parameters:
            if method.return_type is None:
                return ("getter", method.name) if explicit else None
            if method.return_type.is_void:
                return None
            for prefix in GETTER_PREFIXES:
                if method.name.startswith(prefix) and len(method.name) > len(prefix):
                    return "getter", method.name[len(prefix) :]
            return ("getter", method.name) if explicit else None

        if len(parameters) == 1:
            typed = parameters[0].type is not None
            name = method.name
            if name.startswith(SETTER_PREFIX) and len(name) > len(SETTER_PREFIX):
                return ("setter", name[len(SETTER_PREFIX) :]) if typed or explicit else None
            return ("setter", name) if explicit else None

        return None

    def _apply_ignores(self) -> None:
        for implicit_name, draft in list(self.drafts.items()):
            ignored = [e for e in draft.accessors() if self._is_ignored(e)]
            if not ignored:
                continue
            explicit = [
                e
                for e in draft.accessors()
                if e not in ignored and self.annotation(e, JSON_PROPERTY) is not None
            ]
            if explicit:
                for element in ignored:
                    draft.remove(element)
                continue
            names = [n for n in (self.explicit_name(e) for e in draft.accessors()) if n]
            self.ignored_names.add(names[0] if names else implicit_name)
            del self.drafts[implicit_name]

    def _is_ignored(self, element: Element) -> bool:
        annotation = self.annotation(element, JSON_IGNORE)
        return annotation is not None and annotation.value(True) is not False

    def _trim(self) -> None:
        for draft in self.drafts.values():
            for element in draft.accessors():
                if element.is_private:
                    draft.remove(element)
                elif (
                    not self.for_serialization
                    and isinstance(element, FieldElement)
                    and element.is_final
                ):
                    draft.remove(element)

    def _find_creator(self) -> tuple[MethodElement | None, bool]:
        # creator problems only matter when deserializing
        reporter = self.reporter if not self.for_serialization else ProblemReporter(log=False)

        candidates = []
        for constructor in self.type.constructors:
            annotation = self.annotation(constructor, JSON_CREATOR)
            if annotation is not None:
                candidates.append((constructor, annotation))
        for method in self.type.methods:
            annotation = self.annotation(method, JSON_CREATOR)
            if annotation is not None:
                candidates.append((method, annotation))

        creator: MethodElement | None = None
        implicit = False
        for element, annotation in candidates:
            mode = str(annotation.get("mode", "DEFAULT")).upper()
            if mode == "DISABLED":
                continue
            if not element.is_constructor and not element.is_static:
                reporter.fail(
                    "@JsonCreator must be placed on a constructor or a static or class method",
                    element.describe(),
                )
                continue
            if creator is not None:
                reporter.fail(
                    f"Multiple creators: {creator.describe()} and {element.describe()}",
                    element.describe(),
                )
                continue
            creator = element
            implicit = bool(annotation.get("implicit", False))

            if mode == "DELEGATING":
                reporter.fail("Delegating creators are not supported", element.describe())
                continue
            if implicit:
                continue
            unnamed = [p for p in element.parameters if self.explicit_name(p) is None]
            if mode == "DEFAULT" and len(element.parameters) == 1 and unnamed:
                reporter.fail(
                    "Delegating creators are not supported, name the parameter with "
                    "@JsonProperty to use it as a property",
                    element.describe(),
                )
            else:
                for param in unnamed:
                    reporter.fail(
                        f"Creator parameter '{param.name}' needs an explicit @JsonProperty name",
                        param.describe(),
                    )
        return creator, implicit

    def _bind_creator(self, creator: MethodElement, implicit: bool) -> None:
        reporter = self.reporter if not self.for_serialization else ProblemReporter(log=False)
        names = {draft.implicit_name: self._resolve_name(draft) for draft in self.drafts.values()}
        private = {f.name for f in self.type.fields if f.is_private}

        for param in creator.parameters:
            if implicit:
                if self._is_ignored(param) or param.name in private:
                    continue
                draft = self._draft(param.name)
            else:
                name = self.explicit_name(param)
                if name is None:
                    continue
                draft = next(
                    (self.drafts[key] for key, wire in names.items() if wire == name),
                    None,
                ) or self._draft(name)
            if draft.parameter is not None:
                reporter.fail(
                    f"Duplicate creator property '{draft.implicit_name}'", param.describe()
                )
                continue
            draft.parameter = param

    def _creator_properties(
        self, creator: MethodElement, properties: list[Property], implicit: bool
    ) -> list[Property]:
        """Properties bound to creator parameters, in parameter order.

        Explicit creators already failed on unnamed parameters; an implicit
        one may only leave out ignored or private parameters that have a
        default.
        """
        by_parameter = {id(p.creator_parameter): p for p in properties if p.creator_parameter}
        bound = []
        for param in creator.parameters:
            prop = by_parameter.get(id(param))
            if prop is not None:
                bound.append(prop)
            elif implicit and not param.has_default:
                self.reporter.fail(
                    f"Creator parameter '{param.name}' is not bound to a property",
                    param.describe(),
                )
        return bound

    def _ordered(self, draft: _Draft) -> list[Element]:
        """Members in the priority order of the current direction."""
        if self.for_serialization:
            members = [draft.getter, draft.setter, draft.field, draft.parameter]
        else:
            members = [draft.parameter, draft.setter, draft.getter, draft.field]
        return [m for m in members if m is not None]

    def _resolve_name(self, draft: _Draft) -> str:
        for element in self._ordered(draft):
            name = self.explicit_name(element)
            if name:
                return name
        return draft.implicit_name

    def _is_included(self, draft: _Draft) -> bool:
        if self.for_serialization:
            return draft.getter is not None or draft.field is not None
        return draft.setter is not None or draft.field is not None or draft.parameter is not None

    def _check_names(self, drafts: list[_Draft]) -> None:
        seen: dict[str, _Draft] = {}
        for draft in drafts:
            assert draft.name is not None
            other = seen.get(draft.name)
            if other is not None:
                self.reporter.fail(
                    f"Duplicate property name '{draft.name}' "
                    f"(from '{other.implicit_name}' and '{draft.implicit_name}')",
                    self.type.name,
                )
            seen[draft.name] = draft

    def _property_type(self, draft: _Draft) -> TypeDescriptor | None:
        if self.for_serialization:
            if draft.getter is not None:
                return draft.getter.return_type
            return draft.field.type if draft.field else None
        if draft.parameter is not None:
            return draft.parameter.type
        if draft.setter is not None:
            return draft.setter.parameters[0].type if draft.setter.parameters else None
        return draft.field.type if draft.field else None

    def _build(self, draft: _Draft) -> Property | None:
        elements = self._ordered(draft)
        described = elements[0].describe() if elements else self.type.name
        assert draft.name is not None

        property_type = self._property_type(draft)
        if property_type is None:
            self.reporter.fail(f"Cannot determine type of property '{draft.name}'", described)
            return None

        nullable = False
        required: bool | None = None
        aliases: list[str] = []
        unwrapped = False
        recursive = False
        nullability_found = False
        for element in elements:
            for annotation in self.annotations(element):
                if not nullability_found and annotation.name in (NULLABLE, NON_NULL):
                    nullable = annotation.name == NULLABLE
                    nullability_found = True
                elif annotation.name == JSON_PROPERTY and required is None:
                    if annotation.get("required") is not None:
                        required = bool(annotation.get("required"))
                elif annotation.name == JSON_ALIAS:
                    aliases.extend(a for a in annotation.values() if a not in aliases)
                elif annotation.name == JSON_UNWRAPPED:
                    unwrapped = True
                elif annotation.name == RECURSIVE_SERIALIZATION:
                    recursive = True
        if required is None:
            required = draft.parameter is not None and not draft.parameter.has_default

        if unwrapped and recursive:
            self.reporter.fail(
                f"Property '{draft.name}' cannot be both @JsonUnwrapped and "
                "@RecursiveSerialization",
                described,
            )
            return None

        return Property(
            name=draft.name,
            type=property_type,
            field=draft.field,
            getter=draft.getter,
            setter=draft.setter,
            creator_parameter=draft.parameter if not self.for_serialization else None,
            aliases=tuple(a for a in aliases if a != draft.name),
            nullable=nullable,
            unwrapped=unwrapped,
            permit_recursive_serialization=recursive,
            required=required,
        )

    def _class_options(self) -> tuple[bool, set[str]]:
        annotations = list(self.type.annotations)
        if self.sources is not None:
            annotations += self.sources.class_annotations(self.type.name)
        ignore_unknown: bool | None = None
        names: set[str] = set()
        for annotation in annotations:
            if annotation.name != JSON_IGNORE_PROPERTIES:
                continue
            if ignore_unknown is None and annotation.get("ignore_unknown") is not None:
                ignore_unknown = bool(annotation.get("ignore_unknown"))
            names.update(annotation.get("names") or ())
            names.update(annotation.values())
        return bool(ignore_unknown), names
