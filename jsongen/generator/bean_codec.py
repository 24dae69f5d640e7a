"""Encoding and decoding of bean types, property by property."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .bean import BeanDefinition, Property
from .codeblock import CodeBlock
from .context import GeneratorContext, UnimportableTypeError, literal
from .introspector import introspect
from .strategies import (
    CodecResolutionError,
    CodecStrategy,
    DependencyVisitor,
    InjectedStrategy,
    NullableStrategy,
    Setter,
    bind,
    expect_token,
)
from .types import SERIALIZABLE_BEAN, MethodKind, TypeDescriptor, TypeKind

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay

logger = logging.getLogger(__name__)

MASK_BITS = 64

_ZERO_VALUES = {"bool": "False", "int": "0", "float": "0.0"}


def is_inline(type: TypeDescriptor, sources: "AnnotationOverlay | None" = None) -> bool:
    """Whether the bean is expanded into its users instead of getting its own codec."""
    annotations = list(type.annotations)
    if sources is not None:
        annotations += sources.class_annotations(type.name)
    for annotation in annotations:
        if annotation.name == SERIALIZABLE_BEAN:
            return bool(annotation.get("inline", False))
    return False


def property_strategy(ctx: GeneratorContext, prop: Property) -> CodecStrategy:
    strategy = ctx.registry.resolve_for_property(prop.type, prop.permit_recursive_serialization)
    if prop.nullable:
        strategy = NullableStrategy(strategy)
    return strategy


def read_expression(prop: Property, bean: str) -> str:
    if prop.getter is not None:
        if prop.getter.kind == MethodKind.PROPERTY:
            return f"{bean}.{prop.getter.name}"
        return f"{bean}.{prop.getter.name}()"
    if prop.field is not None:
        return f"{bean}.{prop.field.name}"
    raise AssertionError(f"Property {prop.name} has nothing to read from")


def write_statement(prop: Property, bean: str, value: str) -> str:
    if prop.setter is not None:
        if prop.setter.kind == MethodKind.PROPERTY:
            return f"{bean}.{prop.setter.name} = {value}"
        return f"{bean}.{prop.setter.name}({value})"
    if prop.field is not None:
        return f"{bean}.{prop.field.name} = {value}"
    raise AssertionError(f"Property {prop.name} has nothing to write to")


class BeanStrategy(CodecStrategy):
    """Nested beans, written as objects with one member per property.

    This is the catch-all for classes the host can describe.
    """

    def can_handle(self, type: TypeDescriptor) -> bool:
        return type.kind == TypeKind.CLASS and type.has_declaration

    def with_recursive_serialization(self) -> CodecStrategy:
        return InjectedStrategy(lazy=True)

    def visit_dependencies(self, visitor: DependencyVisitor, type: TypeDescriptor) -> None:
        visitor.visit_bean(type)

    def serialize(
        self, ctx: GeneratorContext, type: TypeDescriptor, read_expression: str
    ) -> CodeBlock:
        block = CodeBlock()
        definition = introspect(ctx.reporter, type, ctx.sources, for_serialization=True)
        if definition is None:
            return block

        bean = bind(ctx, block, read_expression, type.simple_name.lower())
        block.add("encoder.write_start_object()")
        self._write_properties(ctx, definition, bean, block)
        block.add("encoder.write_end_object()")
        return block

    def _write_properties(
        self, ctx: GeneratorContext, definition: BeanDefinition, bean: str, block: CodeBlock
    ) -> None:
        for prop in definition.properties:
            sub = ctx.with_sub_path(prop.name)
            if prop.unwrapped:
                self._write_unwrapped(sub, prop, bean, block)
                continue
            try:
                code = property_strategy(sub, prop).serialize(
                    sub, prop.type, read_expression(prop, bean)
                )
            except (CodecResolutionError, UnimportableTypeError) as e:
                ctx.reporter.fail(str(e), prop.describe())
                continue
            block.add(f"encoder.write_field_name({literal(prop.name)})")
            block.add_block(code)

    def _write_unwrapped(
        self, ctx: GeneratorContext, prop: Property, bean: str, block: CodeBlock
    ) -> None:
        nested = introspect(ctx.reporter, prop.type, ctx.sources, for_serialization=True)
        if nested is None:
            return
        local = ctx.new_local(prop.name)
        block.add(f"{local} = {read_expression(prop, bean)}")
        if prop.nullable:
            block.begin_control_flow(f"if {local} is not None")
            self._write_properties(ctx, nested, local, block)
            block.end_control_flow()
        else:
            self._write_properties(ctx, nested, local, block)

    def deserialize(self, ctx: GeneratorContext, type: TypeDescriptor, setter: Setter) -> CodeBlock:
        definition = introspect(ctx.reporter, type, ctx.sources, for_serialization=False)
        if definition is None:
            return CodeBlock()
        return DeserGen(ctx, definition, setter).generate()


@dataclass(eq=False)
class _Leaf:
    """A property decoded from one member of the object."""

    prop: Property
    local: str
    index: int
    ctx: GeneratorContext


@dataclass(eq=False)
class _Node:
    """A definition whose instance is assembled after the loop."""

    definition: BeanDefinition
    ctx: GeneratorContext
    leaves: list[_Leaf] = field(default_factory=list)
    children: list[tuple[Property, "_Node"]] = field(default_factory=list)
    # a nullable unwrapped member, None when none of its leaves is present
    optional: bool = False

    def subtree_leaves(self) -> list[_Leaf]:
        leaves = list(self.leaves)
        for _, child in self.children:
            leaves += child.subtree_leaves()
        return leaves

    def checked_leaves(self) -> list[_Leaf]:
        """Leaves whose presence is checked together with this node's."""
        leaves = list(self.leaves)
        for _, child in self.children:
            if not child.optional:
                leaves += child.checked_leaves()
        return leaves


class DuplicatePropertyManager:
    """Tracks which leaf properties were seen, one bit each.

    Bits live in words of ``MASK_BITS`` bits; bit ``i`` is bit ``i % 64`` of
    word ``i // 64``.
    """

    def __init__(self, ctx: GeneratorContext, leaves: list[_Leaf]):
        count = (len(leaves) + MASK_BITS - 1) // MASK_BITS
        self.words = [ctx.new_local("seen") for _ in range(count)]

    def word(self, leaf: _Leaf) -> str:
        return self.words[leaf.index // MASK_BITS]

    @staticmethod
    def bit(leaf: _Leaf) -> str:
        return hex(1 << (leaf.index % MASK_BITS))

    def declare(self, block: CodeBlock) -> None:
        for word in self.words:
            block.add(f"{word} = 0")

    def is_set(self, leaf: _Leaf) -> str:
        return f"{self.word(leaf)} & {self.bit(leaf)}"

    def _by_word(self, leaves: list[_Leaf]) -> dict[str, list[_Leaf]]:
        groups: dict[str, list[_Leaf]] = {}
        for leaf in leaves:
            groups.setdefault(self.word(leaf), []).append(leaf)
        return groups

    def any_set(self, leaves: list[_Leaf]) -> str:
        """Condition that holds when any of ``leaves`` was seen."""
        return " or ".join(
            f"{word} & {hex(sum(1 << (leaf.index % MASK_BITS) for leaf in group))}"
            for word, group in self._by_word(leaves).items()
        )

    def mark_unique(self, block: CodeBlock, leaf: _Leaf) -> None:
        """Fail if the leaf was already seen, then mark it."""
        block.begin_control_flow(f"if {self.is_set(leaf)}")
        message = literal(f"Duplicate property {leaf.prop.name}")
        block.add(f"raise JsonParseError.from_decoder(decoder, {message})")
        block.end_control_flow()
        block.add(f"{self.word(leaf)} |= {self.bit(leaf)}")

    def check_required(self, block: CodeBlock, leaves: list[_Leaf]) -> None:
        """Compare each word once; only on mismatch look for the missing property."""
        required = [leaf for leaf in leaves if leaf.prop.required]
        for word, group in self._by_word(required).items():
            mask = hex(sum(1 << (leaf.index % MASK_BITS) for leaf in group))
            block.begin_control_flow(f"if {word} & {mask} != {mask}")
            for leaf in group:
                block.begin_control_flow(f"if not {self.is_set(leaf)}")
                message = literal(f"Missing property {leaf.prop.name}")
                block.add(f"raise JsonParseError.from_decoder(decoder, {message})")
                block.end_control_flow()
            block.end_control_flow()


class DeserGen:
    """Generates the decoding state machine of one bean.

    The object is read member by member into one local per leaf property,
    properties of unwrapped members included. After the end of the object
    the required properties are checked and the instances are assembled,
    innermost unwrapped bean first. A nullable unwrapped bean none of whose
    members were present decodes to None.
    """

    def __init__(self, ctx: GeneratorContext, definition: BeanDefinition, setter: Setter):
        self.ctx = ctx
        self.definition = definition
        self.setter = setter
        self.leaves: list[_Leaf] = []
        self.definitions: list[BeanDefinition] = []
        self.failed = False

    def generate(self) -> CodeBlock:
        root = self._collect(self.definition, self.ctx)
        if self.failed or not self._check_wire_names():
            return CodeBlock()

        block = expect_token(CodeBlock(), "START_OBJECT")
        for leaf in self.leaves:
            block.add(f"{leaf.local} = {_ZERO_VALUES.get(leaf.prop.type.name, 'None')}")
        masks = DuplicatePropertyManager(self.ctx, self.leaves)
        masks.declare(block)

        self._read_loop(block, masks)
        masks.check_required(block, root.checked_leaves())
        result = self._assemble(root, block, masks, "result")
        return block.add(self.setter(result))

    def _collect(self, definition: BeanDefinition, ctx: GeneratorContext) -> _Node:
        node = _Node(definition, ctx)
        self.definitions.append(definition)
        for prop in definition.properties:
            sub = ctx.with_sub_path(prop.name)
            if prop.unwrapped:
                nested = introspect(ctx.reporter, prop.type, ctx.sources, for_serialization=False)
                if nested is None:
                    self.failed = True
                    continue
                child = self._collect(nested, sub)
                child.optional = prop.nullable and bool(child.subtree_leaves())
                node.children.append((prop, child))
                continue
            leaf = _Leaf(prop, self.ctx.new_local(prop.name), len(self.leaves), sub)
            self.leaves.append(leaf)
            node.leaves.append(leaf)
        return node

    def _check_wire_names(self) -> bool:
        owners: dict[str, _Leaf] = {}
        ok = True
        for leaf in self.leaves:
            for name in leaf.prop.wire_names:
                other = owners.get(name)
                if other is not None:
                    self.ctx.reporter.fail(
                        f"Wire name '{name}' is used by both '{other.ctx.readable_path}' "
                        f"and '{leaf.ctx.readable_path}'",
                        leaf.prop.describe(),
                    )
                    ok = False
                owners[name] = leaf
        return ok

    def _ignored_names(self) -> list[str]:
        known = {name for leaf in self.leaves for name in leaf.prop.wire_names}
        names: set[str] = set()
        for definition in self.definitions:
            names.update(definition.ignored_names)
        return sorted(names - known)

    def _read_loop(self, block: CodeBlock, masks: DuplicatePropertyManager) -> None:
        field_name = self.ctx.new_local("field_name")
        block.begin_control_flow("while decoder.next_token() is JsonToken.FIELD_NAME")
        block.add(f"{field_name} = decoder.current_name()")
        block.add("decoder.next_token()")

        branches = 0
        for leaf in self.leaves:
            names = leaf.prop.wire_names
            if len(names) == 1:
                condition = f"{field_name} == {literal(names[0])}"
            else:
                condition = f"{field_name} in ({', '.join(literal(n) for n in names)})"
            self._branch(block, branches, condition)
            branches += 1
            masks.mark_unique(block, leaf)
            try:
                code = property_strategy(leaf.ctx, leaf.prop).deserialize(
                    leaf.ctx, leaf.prop.type, lambda value, local=leaf.local: f"{local} = {value}"
                )
            except (CodecResolutionError, UnimportableTypeError) as e:
                self.ctx.reporter.fail(str(e), leaf.prop.describe())
                continue
            block.add_block(code)

        ignored = self._ignored_names()
        if ignored:
            names = ", ".join(literal(n) for n in ignored)
            self._branch(block, branches, f"{field_name} in ({names},)")
            branches += 1
            block.add("decoder.skip_children()")

        if branches:
            block.next_control_flow("else")
        if self.definition.ignore_unknown_properties:
            block.add("decoder.skip_children()")
        else:
            message = f'f"Unknown property {{{field_name}!r}}"'
            block.add(f"raise JsonParseError.from_decoder(decoder, {message})")
        if branches:
            block.end_control_flow()
        block.end_control_flow()
        expect_token(block, "END_OBJECT")

    @staticmethod
    def _branch(block: CodeBlock, index: int, condition: str) -> None:
        if index == 0:
            block.begin_control_flow(f"if {condition}")
        else:
            block.next_control_flow(f"elif {condition}")

    def _assemble(
        self,
        node: _Node,
        block: CodeBlock,
        masks: DuplicatePropertyManager,
        hint: str,
        result: str | None = None,
    ) -> str:
        """Emit the construction of ``node``'s instance, returning its local."""
        values: dict[int, str] = {}
        for prop, child in node.children:
            if child.optional:
                values[id(prop)] = self._assemble_optional(child, block, masks, prop.name)
            else:
                values[id(prop)] = self._assemble(child, block, masks, prop.name)
        leaves = {id(leaf.prop): leaf for leaf in node.leaves}
        for leaf in node.leaves:
            values[id(leaf.prop)] = leaf.local

        definition = node.definition
        ref = self.ctx.type_ref(definition.type)
        if result is None:
            result = self.ctx.new_local(hint)
        creator = definition.creator
        if creator is None:
            block.add(f"{result} = {ref}()")
        else:
            target = ref if creator.is_constructor else f"{ref}.{creator.name}"
            arguments: list[str] = []
            optional: list[tuple[_Leaf, str]] = []
            by_keyword = False
            for position, prop in enumerate(definition.creator_properties):
                param = prop.creator_parameter
                assert param is not None
                if creator.parameters[position] is not param:
                    # an unbound parameter with a default was skipped
                    by_keyword = True
                leaf = leaves.get(id(prop))
                if param.has_default and leaf is not None:
                    optional.append((leaf, param.name))
                    by_keyword = True
                elif param.keyword_only or by_keyword:
                    arguments.append(f"{param.name}={values[id(prop)]}")
                else:
                    arguments.append(values[id(prop)])
            if optional:
                creator_args = self.ctx.new_local("creator_args")
                block.add(f"{creator_args} = {{}}")
                for leaf, name in optional:
                    block.begin_control_flow(f"if {masks.is_set(leaf)}")
                    block.add(f"{creator_args}[{literal(name)}] = {leaf.local}")
                    block.end_control_flow()
                arguments.append(f"**{creator_args}")
            block.add(f"{result} = {target}({', '.join(arguments)})")

        for prop in definition.properties:
            if prop.creator_parameter is not None:
                continue
            statement = write_statement(prop, result, values[id(prop)])
            leaf = leaves.get(id(prop))
            if leaf is None:
                block.add(statement)
            else:
                block.begin_control_flow(f"if {masks.is_set(leaf)}")
                block.add(statement)
                block.end_control_flow()
        return result

    def _assemble_optional(
        self, node: _Node, block: CodeBlock, masks: DuplicatePropertyManager, hint: str
    ) -> str:
        """Assemble ``node`` if any of its members was present, else use None."""
        result = self.ctx.new_local(hint)
        block.begin_control_flow(f"if {masks.any_set(node.subtree_leaves())}")
        masks.check_required(block, node.checked_leaves())
        self._assemble(node, block, masks, hint, result)
        block.next_control_flow("else")
        block.add(f"{result} = None")
        block.end_control_flow()
        return result
