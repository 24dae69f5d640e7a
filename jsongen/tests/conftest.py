"""Unit tests configuration file."""

import pytest

from jsongen.generator import generate, reflect
from jsongen.runtime import CodecRegistry


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def exec_codecs(source):
    """Run a generated module and return a registry holding its codecs."""
    namespace = {}
    exec(source, namespace)
    codecs = CodecRegistry()
    codecs.register_module(namespace)
    return codecs


@pytest.fixture
def codecs_for():
    """Generate codecs for classes; fails the test on generation problems."""

    def build(*classes, **kwargs):
        output = generate([reflect.describe(cls) for cls in classes], **kwargs)
        assert not output.failed, "\n".join(str(p) for p in output.problems)
        return exec_codecs(output.source)

    return build
