"""Synthesis of one standalone codec class."""

import logging
from dataclasses import dataclass, field

from . import python
from .bean_codec import BeanStrategy
from .context import GeneratorContext, UnimportableTypeError
from .cycles import DependencyGraphChecker
from .names import DECODER, ENCODER, VALUE
from .registry import GeneratingRegistry, StrategyRegistry, default_strategies
from .types import TypeDescriptor

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """The generated codec class of one type."""

    qualified_name: str
    class_name: str
    value_type: str
    source: str
    type: TypeDescriptor
    dependencies: list[str] = field(default_factory=list)
    modules: set[str] = field(default_factory=set)
    failed: bool = False


def synthesize(registry: GeneratingRegistry, type: TypeDescriptor) -> GenerationResult:
    reporter = registry.reporter.child()
    class_name = registry.class_names.new_name(f"{type.simple_name}{registry.codec_suffix}")
    logger.debug("Generating %s for %s", class_name, type.name)

    strategy = BeanStrategy()
    checker = DependencyGraphChecker(
        StrategyRegistry(default_strategies(registry.external_types, registry.sources)),
        registry.sources,
        reporter,
    )
    if not checker.check(strategy, type, type.name):
        return GenerationResult(type.name, class_name, "", "", type, failed=True)

    ctx = GeneratorContext(
        reporter=reporter,
        registry=registry,
        imports=registry.imports,
        sources=registry.sources,
        path=(type.simple_name,),
    )
    try:
        value_type = ctx.type_ref(type)
    except UnimportableTypeError as e:
        reporter.fail(str(e), type.name)
        return GenerationResult(type.name, class_name, "", "", type, failed=True)

    serialize = strategy.serialize(ctx.new_method_context("self", ENCODER, VALUE), type, VALUE)
    deserialize = strategy.deserialize(
        ctx.new_method_context("self", DECODER), type, lambda value: f"return {value}"
    )

    injections = list(ctx.injections())
    source = python.render_codec(
        class_name=class_name,
        value_type=value_type,
        type_name=type.name,
        injections=injections,
        serialize_block=serialize,
        deserialize_block=deserialize,
    )
    logger.debug("Generated %s:\n%s", class_name, source)
    return GenerationResult(
        qualified_name=type.name,
        class_name=class_name,
        value_type=value_type,
        source=source,
        type=type,
        dependencies=[i.type.name for i in injections],
        modules=set(ctx.scope.modules),
        failed=reporter.has_errors,
    )
