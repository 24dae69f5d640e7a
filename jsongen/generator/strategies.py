"""Codec strategies: how values of a family of types are encoded and decoded.

A strategy emits Python statements. Encoding statements write the value of
a read expression to ``encoder``; decoding statements read the value the
decoder is positioned on and hand the resulting expression to a setter,
leaving the decoder on the value's last token.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from .codeblock import CodeBlock
from .context import GeneratorContext, literal
from .types import EXTERNAL_CODEC, SCALAR_TYPES, TypeDescriptor, TypeKind, same_type

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay

Setter = Callable[[str], str]

LIST_SHAPES = frozenset(
    [
        "list",
        "collections.abc.Sequence",
        "collections.abc.MutableSequence",
        "collections.abc.Collection",
        "collections.abc.Iterable",
    ]
)


class CodecResolutionError(RuntimeError):
    """Raised when no code can be generated for a type."""


class NoCodecError(CodecResolutionError):
    pass


class UnsupportedTypeError(CodecResolutionError):
    pass


class DependencyVisitor(Protocol):
    """Receives the types a strategy's generated code depends on."""

    def visit(self, type: TypeDescriptor, segment: str | None, recursive: bool = False) -> None:
        ...

    def visit_bean(self, type: TypeDescriptor) -> None:
        ...


class CodecStrategy:
    """Base class of all strategies. Strategies hold configuration only."""

    def can_handle(self, type: TypeDescriptor) -> bool:
        raise NotImplementedError()

    def with_recursive_serialization(self) -> "CodecStrategy":
        """Variant used for properties that may refer back to an enclosing type."""
        return self

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        pass

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        raise NotImplementedError()

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def bind(ctx: GeneratorContext, block: CodeBlock, read_expression: str, hint: str) -> str:
    """Evaluate ``read_expression`` once, returning a name holding its value."""
    if read_expression.isidentifier():
        return read_expression
    local = ctx.new_local(hint)
    block.add(f"{local} = {read_expression}")
    return local


def expect_token(block: CodeBlock, *tokens: str) -> CodeBlock:
    """Raise unless the current token is one of ``tokens`` (JsonToken member names)."""
    refs = [f"JsonToken.{token}" for token in tokens]
    if len(refs) == 1:
        block.begin_control_flow(f"if decoder.current_token() is not {refs[0]}")
    else:
        block.begin_control_flow(f"if decoder.current_token() not in ({', '.join(refs)})")
    block.add(f"raise JsonParseError.unexpected_token(decoder, {', '.join(refs)})")
    return block.end_control_flow()


class ScalarStrategy(CodecStrategy):
    """``int``, ``float`` and ``bool``."""

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.is_primitive and type.name in SCALAR_TYPES

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        if type.name == "bool":
            return CodeBlock().add(f"encoder.write_boolean({read_expression})")
        return CodeBlock().add(f"encoder.write_number({read_expression})")

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        block = CodeBlock()
        if type.name == "bool":
            expect_token(block, "VALUE_TRUE", "VALUE_FALSE")
            return block.add(setter("decoder.get_boolean_value()"))
        if type.name == "float":
            expect_token(block, "VALUE_NUMBER_INT", "VALUE_NUMBER_FLOAT")
            return block.add(setter("decoder.get_float_value()"))
        expect_token(block, "VALUE_NUMBER_INT")
        return block.add(setter("decoder.get_int_value()"))


class StringStrategy(CodecStrategy):
    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.kind == TypeKind.CLASS and type.name == "str"

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        return CodeBlock().add(f"encoder.write_string({read_expression})")

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        block = expect_token(CodeBlock(), "VALUE_STRING")
        return block.add(setter("decoder.get_text()"))


class IterableStrategy(CodecStrategy):
    """Homogeneous sequences, encoded as arrays."""

    def __init__(self, recursive: bool = False):
        self.recursive = recursive

    def element_type(self, type: TypeDescriptor) -> TypeDescriptor:
        raise NotImplementedError()

    def collect(self, items: str) -> str:
        """Expression turning the decoded list ``items`` into the value."""
        return items

    def with_recursive_serialization(self) -> "CodecStrategy":
        return type(self)(recursive=True)

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        visitor.visit(self.element_type(type), "[*]", self.recursive)

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        element = self.element_type(type)
        strategy = ctx.registry.resolve_for_property(element, self.recursive)
        item = ctx.new_local("item")

        block = CodeBlock()
        block.add("encoder.write_start_array()")
        block.begin_control_flow(f"for {item} in {read_expression}")
        block.add_block(strategy.serialize(ctx.with_sub_path("[*]"), element, item))
        block.end_control_flow()
        block.add("encoder.write_end_array()")
        return block

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        element = self.element_type(type)
        strategy = ctx.registry.resolve_for_property(element, self.recursive)
        items = ctx.new_local("items")

        block = expect_token(CodeBlock(), "START_ARRAY")
        block.add(f"{items} = []")
        block.begin_control_flow("while decoder.next_token() is not JsonToken.END_ARRAY")
        block.add_block(
            strategy.deserialize(
                ctx.with_sub_path("[*]"), element, lambda value: f"{items}.append({value})"
            )
        )
        block.end_control_flow()
        return block.add(setter(self.collect(items)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(recursive={self.recursive})"


class ArrayStrategy(IterableStrategy):
    """``tuple[T, ...]``."""

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.is_array

    def element_type(self, type: TypeDescriptor) -> TypeDescriptor:
        if type.component is None:
            raise UnsupportedTypeError(f"Array type {type} has no component type")
        return type.component

    def collect(self, items: str) -> str:
        return f"tuple({items})"


class ListStrategy(IterableStrategy):
    """``list[T]`` and the abstract sequence shapes, decoded into a list."""

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.kind == TypeKind.CLASS and type.name in LIST_SHAPES

    def element_type(self, type: TypeDescriptor) -> TypeDescriptor:
        if len(type.type_arguments) != 1:
            raise UnsupportedTypeError(
                f"Raw collection type {type} is not supported, declare its element type"
            )
        return type.type_arguments[0]


class NullableStrategy(CodecStrategy):
    """Wraps a strategy so ``None`` is encoded as, and decoded from, null."""

    def __init__(self, delegate: CodecStrategy):
        self.delegate = delegate

    def can_handle(self, type: TypeDescriptor) -> bool:
        return self.delegate.can_handle(type)

    def with_recursive_serialization(self) -> "CodecStrategy":
        return NullableStrategy(self.delegate.with_recursive_serialization())

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        self.delegate.visit_dependencies(visitor, type)

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        block = CodeBlock()
        hint = ctx.path[-1] if ctx.path and not ctx.path[-1].startswith("[") else "item"
        local = bind(ctx, block, read_expression, hint)
        block.begin_control_flow(f"if {local} is None")
        block.add("encoder.write_null()")
        block.next_control_flow("else")
        block.add_block(self.delegate.serialize(ctx, type, local))
        return block.end_control_flow()

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        block = CodeBlock()
        block.begin_control_flow("if decoder.current_token() is JsonToken.VALUE_NULL")
        block.add(setter("None"))
        block.next_control_flow("else")
        block.add_block(self.delegate.deserialize(ctx, type, setter))
        return block.end_control_flow()

    def __repr__(self) -> str:
        return f"NullableStrategy({self.delegate!r})"


class OptionalStrategy(CodecStrategy):
    """``T | None`` where it appears as a type argument, e.g. ``list[int | None]``."""

    def __init__(self, recursive: bool = False):
        self.recursive = recursive

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.name == "typing.Optional" and len(type.type_arguments) == 1

    def with_recursive_serialization(self) -> "CodecStrategy":
        return OptionalStrategy(recursive=True)

    def _delegate(self, ctx: GeneratorContext, type: TypeDescriptor) -> CodecStrategy:
        argument = type.type_arguments[0]
        return NullableStrategy(ctx.registry.resolve_for_property(argument, self.recursive))

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        visitor.visit(type.type_arguments[0], None, self.recursive)

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        argument = type.type_arguments[0]
        return self._delegate(ctx, type).serialize(ctx, argument, read_expression)

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        argument = type.type_arguments[0]
        return self._delegate(ctx, type).deserialize(ctx, argument, setter)


class EnumStrategy(CodecStrategy):
    """Enum members, written as their name."""

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.is_enum

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        return CodeBlock().add(f"encoder.write_string({read_expression}.name)")

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        ref = ctx.type_ref(type)
        text = ctx.new_local("name")

        block = expect_token(CodeBlock(), "VALUE_STRING")
        block.add(f"{text} = decoder.get_text()")
        for index, constant in enumerate(type.enum_constants):
            member = f"{ref}.{constant}" if constant.isidentifier() else f"{ref}[{literal(constant)}]"
            header = f"{text} == {literal(constant)}"
            if index == 0:
                block.begin_control_flow(f"if {header}")
            else:
                block.next_control_flow(f"elif {header}")
            block.add(setter(member))
        message = f'f"Unknown {type.simple_name} constant {{{text}!r}}"'
        if type.enum_constants:
            block.next_control_flow("else")
        block.add(f"raise JsonParseError.from_decoder(decoder, {message})")
        if type.enum_constants:
            block.end_control_flow()
        return block


class InjectedStrategy(CodecStrategy):
    """Delegates to a codec instance obtained from the runtime registry.

    With ``type`` set the strategy only handles that exact type; the
    generating registry uses this to memoize types it already generated.
    ``lazy`` injects a provider, resolved on first use, which lets codecs
    refer to each other recursively.
    """

    def __init__(self, type: TypeDescriptor | None = None, lazy: bool = False):
        self.type = type
        self.lazy = lazy

    def can_handle(self, type: TypeDescriptor) -> bool:
        return self.type is not None and same_type(self.type, type)

    def with_recursive_serialization(self) -> "CodecStrategy":
        return InjectedStrategy(self.type, lazy=True)

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        # an eagerly injected codec is constructed with ours, so its structure counts
        if not self.lazy:
            visitor.visit_bean(type)

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        codec = ctx.inject(type, self.lazy)
        return CodeBlock().add(f"{codec}.serialize(encoder, {read_expression})")

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        codec = ctx.inject(type, self.lazy)
        return CodeBlock().add(setter(f"{codec}.deserialize(decoder)"))

    def __repr__(self) -> str:
        return f"InjectedStrategy({self.type}, lazy={self.lazy})"


class ExternalCodecStrategy(InjectedStrategy):
    """Types whose codec is written by hand and registered at runtime."""

    def __init__(
        self,
        names: frozenset[str] = frozenset(),
        sources: "AnnotationOverlay | None" = None,
        lazy: bool = False,
    ):
        super().__init__(None, lazy)
        self.names = names
        self.sources = sources

    def can_handle(self, type: TypeDescriptor) -> bool:
        if type.name in self.names:
            return True
        if type.kind != TypeKind.CLASS or not type.has_declaration:
            return False
        if type.annotation(EXTERNAL_CODEC) is not None:
            return True
        if self.sources is not None:
            return any(
                a.name == EXTERNAL_CODEC for a in self.sources.class_annotations(type.name)
            )
        return False

    def with_recursive_serialization(self) -> "CodecStrategy":
        return ExternalCodecStrategy(self.names, self.sources, lazy=True)

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        pass

    def __repr__(self) -> str:
        return f"ExternalCodecStrategy(lazy={self.lazy})"
