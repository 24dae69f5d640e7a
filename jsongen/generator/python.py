"""Renders generated codec classes into a Python module."""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader

from .. import __version__
from .codeblock import CodeBlock
from .context import ImportScope, Injection

if TYPE_CHECKING:
    from .singleton import GenerationResult

env = Environment(
    loader=PackageLoader("jsongen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

codec_template = env.get_template("codec.py.j2")
module_template = env.get_template("module.py.j2")


def _body(block: CodeBlock) -> str:
    """Method body at class-method indentation, ``pass`` when empty."""
    if block.is_empty:
        return "        pass"
    return block.render(2).rstrip("\n")


def render_codec(
    class_name: str,
    value_type: str,
    type_name: str,
    injections: Iterable[Injection],
    serialize_block: CodeBlock,
    deserialize_block: CodeBlock,
) -> str:
    """Render one codec class."""
    return codec_template.render(
        class_name=class_name,
        value_type=value_type,
        type_name=type_name,
        injections=list(injections),
        serialize_body=_body(serialize_block),
        deserialize_body=_body(deserialize_block),
    ).rstrip("\n")


def render(
    results: Iterable["GenerationResult"],
    imports: ImportScope,
    runtime_import: str = "jsongen.runtime",
    comments: Iterable[str] = (),
) -> str:
    """Render generated codec classes as a module listing them in ``CODECS``."""
    results = list(results)
    modules: set[str] = set()
    for result in results:
        modules |= result.modules
    return module_template.render(
        version=__version__,
        comments=list(comments),
        runtime_import=runtime_import,
        imports=imports.imports(modules),
        results=results,
    )
