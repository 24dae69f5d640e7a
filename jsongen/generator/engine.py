"""Entry point of a generation request."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from . import python
from .bean_codec import BeanStrategy
from .options import GeneratorOptions
from .overlay import AnnotationOverlay
from .problems import Problem, ProblemReporter, Severity
from .registry import GeneratingRegistry, StrategyRegistry
from .singleton import GenerationResult
from .strategies import CodecResolutionError
from .types import TypeDescriptor

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutput:
    results: list[GenerationResult] = field(default_factory=list)
    problems: list[Problem] = field(default_factory=list)
    source: str = ""

    @property
    def failed(self) -> bool:
        return any(p.severity == Severity.FAIL for p in self.problems)

    def result(self, name: str) -> GenerationResult | None:
        for result in self.results:
            if result.qualified_name == name:
                return result
        return None


def generate(
    types: Iterable[TypeDescriptor],
    options: GeneratorOptions | None = None,
    overlay: AnnotationOverlay | None = None,
) -> GenerationOutput:
    """Generate one module holding the codecs of ``types`` and their dependencies.

    Problems do not stop the request: codecs that failed, and codecs that
    depend on them, are left out of the module, and the problems are
    returned alongside it.
    """
    options = options or GeneratorOptions()
    types = list(types)
    reporter = ProblemReporter()
    registry = GeneratingRegistry(
        reporter,
        sources=overlay,
        external_types=options.external_types,
        codec_suffix=options.codec_suffix,
    )
    plain = StrategyRegistry.default(options.external_types, overlay)

    for type in types:
        try:
            strategy = plain.resolve(type)
        except CodecResolutionError as e:
            reporter.fail(str(e), type.name)
            continue
        if not isinstance(strategy, BeanStrategy):
            reporter.fail(f"{type} is not a bean type", type.name)
            continue
        registry.generate(type)

    _fail_dependents(registry.results, reporter)
    rendered = [r for r in registry.results if not r.failed]
    logger.debug(
        "Generated %d codecs, %d failed", len(rendered), len(registry.results) - len(rendered)
    )
    source = python.render(
        rendered,
        registry.imports,
        runtime_import=options.runtime_import,
        comments=[f"Root type: {type.name}" for type in types],
    )
    return GenerationOutput(registry.results, reporter.problems, source)


def _fail_dependents(results: list[GenerationResult], reporter: ProblemReporter) -> None:
    """Fail every codec that injects a failed one, until nothing changes."""
    failed = {r.qualified_name for r in results if r.failed}
    changed = True
    while changed:
        changed = False
        for result in results:
            if result.failed:
                continue
            broken = [d for d in result.dependencies if d in failed]
            if broken:
                reporter.fail(f"Depends on failed codec of {broken[0]}", result.qualified_name)
                result.failed = True
                failed.add(result.qualified_name)
                changed = True
