"""Static detection of types that embed themselves."""

import logging
from typing import TYPE_CHECKING

from .introspector import introspect
from .problems import ProblemReporter
from .strategies import CodecResolutionError, CodecStrategy
from .types import TypeDescriptor, same_type

if TYPE_CHECKING:
    from .overlay import AnnotationOverlay
    from .registry import StrategyRegistry

logger = logging.getLogger(__name__)


class DependencyGraphChecker:
    """Walks the types a codec's code embeds, looking for repetitions.

    The walk follows the same edges as code generation: nested beans and
    eagerly injected codecs are embedded, while lazily injected codecs
    (recursive properties) and external codecs end the walk. Both the
    serialization and the deserialization properties are followed.

    Example:
        checker = DependencyGraphChecker(StrategyRegistry.default(), None, reporter)
        checker.check(BeanStrategy(), node_type)
        # fail: Circular dependency: Node -> children[*]
    """

    def __init__(
        self,
        registry: "StrategyRegistry",
        sources: "AnnotationOverlay | None",
        reporter: ProblemReporter,
    ):
        self.registry = registry
        self.sources = sources
        self.reporter = reporter
        self._path: list[str] = []
        self._ancestors: list[TypeDescriptor] = []
        self._reported: set[str] = set()
        # beans whose whole dependency graph was walked without finding a cycle
        self._acyclic: list[TypeDescriptor] = []
        self._cycles = 0
        self._element: str | None = None

    def check(
        self, strategy: CodecStrategy, type: TypeDescriptor, element: str | None = None
    ) -> bool:
        """Return False, with the cycles reported, if ``type`` embeds itself."""
        self._path = [type.simple_name]
        self._ancestors = []
        self._acyclic = []
        self._element = element or type.name
        found = len(self._reported)
        strategy.visit_dependencies(self, type)
        return len(self._reported) == found

    def visit(self, type: TypeDescriptor, segment: str | None, recursive: bool = False) -> None:
        try:
            strategy = self.registry.resolve_for_property(type, recursive)
        except CodecResolutionError:
            # reported when generating the code
            return
        if segment is not None:
            self._path.append(segment)
        try:
            strategy.visit_dependencies(self, type)
        except CodecResolutionError:
            pass
        finally:
            if segment is not None:
                self._path.pop()

    def visit_bean(self, type: TypeDescriptor) -> None:
        if any(same_type(ancestor, type) for ancestor in self._ancestors):
            self._report()
            return
        if any(same_type(done, type) for done in self._acyclic):
            return

        cycles = self._cycles
        self._ancestors.append(type)
        try:
            for for_serialization in (True, False):
                # problems of the type itself are reported by code generation
                definition = introspect(
                    ProblemReporter(log=False), type, self.sources, for_serialization
                )
                if definition is None:
                    continue
                for prop in definition.properties:
                    self.visit(prop.type, prop.name, prop.permit_recursive_serialization)
        finally:
            self._ancestors.pop()
        if self._cycles == cycles:
            self._acyclic.append(type)

    def _report(self) -> None:
        self._cycles += 1
        parts: list[str] = []
        for segment in self._path:
            if segment.startswith("[") and parts:
                parts[-1] += segment
            else:
                parts.append(segment)
        message = f"Circular dependency: {' -> '.join(parts)}"
        if message in self._reported:
            return
        self._reported.add(message)
        logger.debug("%s", message)
        self.reporter.fail(message, self._element)
