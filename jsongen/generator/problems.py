"""Diagnostics collected during codec generation."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    INFO = auto()
    WARN = auto()
    FAIL = auto()


@dataclass(frozen=True)
class Problem(DataClassJsonMixin):
    """One diagnostic, attached to the element that caused it."""

    severity: Severity
    message: str
    element: str | None = None

    def __str__(self) -> str:
        if self.element:
            return f"{self.severity}: {self.element}: {self.message}"
        return f"{self.severity}: {self.message}"


_LOG_LEVELS = {
    Severity.INFO: logging.DEBUG,
    Severity.WARN: logging.WARNING,
    Severity.FAIL: logging.ERROR,
}


@dataclass
class ProblemReporter:
    """Collects problems instead of raising, so one pass reports all of them.

    Reporters can be nested with ``child()``; problems are shared with the
    parent, but ``has_errors`` only looks at the child's own failures.
    Reporters created with ``log=False`` collect without logging, for
    problems that are discarded.
    """

    problems: list[Problem] = field(default_factory=list)
    log: bool = True
    _failed: bool = field(default=False, repr=False)
    _parent: "ProblemReporter | None" = field(default=None, repr=False)

    def report(self, severity: Severity, message: str, element: str | None = None) -> None:
        problem = Problem(severity, message, element)
        if self.log:
            logger.log(_LOG_LEVELS[severity], "%s", problem)
        self._add(problem)

    def _add(self, problem: Problem) -> None:
        if problem.severity == Severity.FAIL:
            self._failed = True
        if self._parent is not None:
            self._parent._add(problem)
        else:
            self.problems.append(problem)

    def info(self, message: str, element: str | None = None) -> None:
        self.report(Severity.INFO, message, element)

    def warn(self, message: str, element: str | None = None) -> None:
        self.report(Severity.WARN, message, element)

    def fail(self, message: str, element: str | None = None) -> None:
        self.report(Severity.FAIL, message, element)

    def child(self) -> "ProblemReporter":
        return ProblemReporter(log=self.log, _parent=self)

    @property
    def has_errors(self) -> bool:
        return self._failed

    @property
    def errors(self) -> list[Problem]:
        return [p for p in self._root().problems if p.severity == Severity.FAIL]

    def _root(self) -> "ProblemReporter":
        return self if self._parent is None else self._parent._root()
