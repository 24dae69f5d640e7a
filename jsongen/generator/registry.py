"""Strategy resolution: the first strategy that can handle a type wins."""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .bean_codec import BeanStrategy, is_inline
from .context import ImportScope
from .names import NameAllocator
from .problems import ProblemReporter
from .strategies import (
    ArrayStrategy,
    CodecStrategy,
    EnumStrategy,
    ExternalCodecStrategy,
    InjectedStrategy,
    ListStrategy,
    NoCodecError,
    OptionalStrategy,
    ScalarStrategy,
    StringStrategy,
)
from .types import TypeDescriptor

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay
    from .singleton import GenerationResult

logger = logging.getLogger(__name__)


def default_strategies(
    external_types: Iterable[str] = (), sources: "AnnotationOverlay | None" = None
) -> list[CodecStrategy]:
    return [
        ArrayStrategy(),
        ListStrategy(),
        OptionalStrategy(),
        ScalarStrategy(),
        StringStrategy(),
        EnumStrategy(),
        ExternalCodecStrategy(frozenset(external_types), sources),
        BeanStrategy(),
    ]


class StrategyRegistry:
    """An ordered list of strategies.

    Order matters: the nested-bean strategy accepts any class it can
    describe, so it comes last.
    """

    def __init__(self, strategies: list[CodecStrategy] | None = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    @classmethod
    def default(
        cls, external_types: Iterable[str] = (), sources: "AnnotationOverlay | None" = None
    ) -> "StrategyRegistry":
        return cls(default_strategies(external_types, sources))

    def prepend(self, strategy: CodecStrategy) -> None:
        self.strategies.insert(0, strategy)

    def resolve(self, type: TypeDescriptor) -> CodecStrategy:
        for strategy in self.strategies:
            if strategy.can_handle(type):
                logger.debug("Resolved %s to %r", type, strategy)
                return strategy
        raise NoCodecError(f"No codec for type {type}")

    def resolve_for_property(self, type: TypeDescriptor, recursive: bool = False) -> CodecStrategy:
        strategy = self.resolve(type)
        if recursive:
            strategy = strategy.with_recursive_serialization()
        return strategy


class GeneratingRegistry(StrategyRegistry):
    """Registry of one generation request.

    Bean types that are not inline get their own codec class: the first
    resolution synthesizes it, and from then on the type resolves to an
    injected codec. Inline beans are expanded into each user instead.
    """

    def __init__(
        self,
        reporter: ProblemReporter,
        sources: "AnnotationOverlay | None" = None,
        external_types: Iterable[str] = (),
        codec_suffix: str = "Codec",
        imports: ImportScope | None = None,
    ):
        self.external_types = frozenset(external_types)
        super().__init__(default_strategies(self.external_types, sources))
        self.reporter = reporter
        self.sources = sources
        self.codec_suffix = codec_suffix
        self.imports = imports if imports is not None else ImportScope()
        self.results: list["GenerationResult"] = []
        self.class_names = NameAllocator({"CODECS"})
        self._generated: dict[TypeDescriptor, InjectedStrategy] = {}

    def resolve(self, type: TypeDescriptor) -> CodecStrategy:
        strategy = super().resolve(type)
        if isinstance(strategy, BeanStrategy) and not is_inline(type, self.sources):
            return self.generate(type)
        return strategy

    def resolve_for_property(self, type: TypeDescriptor, recursive: bool = False) -> CodecStrategy:
        strategy = self.resolve(type)
        if recursive and isinstance(strategy, BeanStrategy):
            # an inline bean referring back to its user still needs a codec of its own
            strategy = self.generate(type)
        if recursive:
            strategy = strategy.with_recursive_serialization()
        return strategy

    def generate(self, type: TypeDescriptor) -> InjectedStrategy:
        """Synthesize the codec class of ``type`` unless already done."""
        strategy = self._generated.get(type)
        if strategy is not None:
            return strategy

        from .singleton import synthesize

        strategy = InjectedStrategy(type)
        self._generated[type] = strategy
        self.prepend(strategy)
        self.results.append(synthesize(self, type))
        return strategy

    def result(self, type: TypeDescriptor) -> "GenerationResult | None":
        for result in self.results:
            if result.type == type:
                return result
        return None
