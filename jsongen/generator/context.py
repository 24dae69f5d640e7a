"""State shared while generating the code of one codec class."""

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from .names import NameAllocator
from .problems import ProblemReporter
from .types import TypeDescriptor

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay
    from .registry import StrategyRegistry


class UnimportableTypeError(ValueError):
    """Raised when generated code cannot refer to a type by import."""


class ImportScope:
    """Module aliases used by one generated module.

    Aliases start with an underscore so they never clash with generated
    locals, which never do.
    """

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}
        self._names = NameAllocator()

    def alias(self, module: str) -> str:
        alias = self._aliases.get(module)
        if alias is None:
            alias = "_" + self._names.new_name(module.rsplit(".", 1)[-1])
            self._aliases[module] = alias
        return alias

    def imports(self, modules: set[str] | None = None) -> list[tuple[str, str]]:
        """Return ``(module, alias)`` pairs, optionally limited to ``modules``."""
        return sorted(
            (module, alias)
            for module, alias in self._aliases.items()
            if modules is None or module in modules
        )


@dataclass(frozen=True)
class Injection:
    """A codec the generated class receives from the runtime registry."""

    attribute: str
    type: TypeDescriptor
    type_ref: str
    lazy: bool

    @property
    def expression(self) -> str:
        if self.lazy:
            return f"self.{self.attribute}()"
        return f"self.{self.attribute}"


@dataclass
class ClassScope:
    """Per codec class: attribute names, injections and referenced modules."""

    attributes: NameAllocator = field(default_factory=NameAllocator)
    injections: dict[tuple[TypeDescriptor, bool], Injection] = field(default_factory=dict)
    modules: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class GeneratorContext:
    """Everything a strategy needs to emit code, passed down explicitly.

    ``path`` is the readable location inside the root type (for messages),
    ``locals`` is the name scope of the method being generated; both change
    as generation descends, while the class scope is shared.
    """

    reporter: ProblemReporter
    registry: "StrategyRegistry"
    imports: ImportScope
    sources: "AnnotationOverlay | None" = None
    path: tuple[str, ...] = ()
    locals: NameAllocator = field(default_factory=NameAllocator)
    scope: ClassScope = field(default_factory=ClassScope)

    @property
    def readable_path(self) -> str:
        parts: list[str] = []
        for segment in self.path:
            if segment.startswith("[") and parts:
                parts[-1] += segment
            else:
                parts.append(segment)
        return ".".join(parts)

    def with_sub_path(self, segment: str) -> "GeneratorContext":
        return replace(self, path=self.path + (segment,))

    def with_reporter(self, reporter: ProblemReporter) -> "GeneratorContext":
        return replace(self, reporter=reporter)

    def new_method_context(self, *used: str) -> "GeneratorContext":
        """Start a method body with its own locals; ``used`` are its parameters."""
        names = NameAllocator()
        for name in used:
            names.claim(name)
        return replace(self, locals=names)

    def new_local(self, hint: str) -> str:
        return self.locals.new_name(hint)

    def type_ref(self, type: TypeDescriptor) -> str:
        """Expression naming ``type``'s class in generated code."""
        if type.module in (None, "builtins"):
            return type.qualname or type.name
        qualname = type.qualname or type.simple_name
        if "<" in qualname:
            raise UnimportableTypeError(
                f"{type.name} is defined inside a function and cannot be imported"
            )
        self.scope.modules.add(type.module)
        return f"{self.imports.alias(type.module)}.{qualname}"

    def inject(self, type: TypeDescriptor, lazy: bool = False) -> str:
        """Return the expression evaluating to the injected codec for ``type``."""
        key = (type, lazy)
        injection = self.scope.injections.get(key)
        if injection is None:
            hint = f"{type.simple_name}_codec_provider" if lazy else f"{type.simple_name}_codec"
            injection = Injection(
                attribute="_" + self.scope.attributes.new_name(hint.lower()),
                type=type,
                type_ref=self.type_ref(type),
                lazy=lazy,
            )
            self.scope.injections[key] = injection
        return injection.expression

    def injections(self) -> Iterator[Injection]:
        yield from self.scope.injections.values()


def literal(text: str) -> str:
    """Python string literal for ``text``."""
    return repr(text)
