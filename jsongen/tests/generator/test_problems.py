"""Tests for diagnostics collection"""

import logging

from jsongen.generator import ProblemReporter, Severity


def describe_problem_reporter():
    def collects_problems_of_children(expect):
        reporter = ProblemReporter()
        child = reporter.child()
        child.warn("odd", "a.B")
        expect(child.has_errors) == False
        child.fail("broken", "a.B")
        expect(child.has_errors) == True
        expect(reporter.has_errors) == True
        expect(reporter.child().has_errors) == False
        expect([p.severity for p in reporter.problems]) == [Severity.WARN, Severity.FAIL]
        expect(str(reporter.problems[1])) == "fail: a.B: broken"

    def logs_failures_as_errors(expect, caplog):
        reporter = ProblemReporter()
        with caplog.at_level(logging.DEBUG, logger="jsongen"):
            reporter.info("note")
            reporter.warn("odd")
            reporter.fail("broken")
        expect([r.levelno for r in caplog.records]) == [
            logging.DEBUG,
            logging.WARNING,
            logging.ERROR,
        ]

    def stays_silent_when_discarding(expect, caplog):
        reporter = ProblemReporter(log=False).child()
        with caplog.at_level(logging.DEBUG, logger="jsongen"):
            reporter.fail("broken")
        expect(caplog.records) == []
        expect(reporter.has_errors) == True
