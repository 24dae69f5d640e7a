"""Command-line interface for jsongen code generation."""

from __future__ import annotations

import importlib
import json
import logging
import sys
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jsongen.generator import engine
from jsongen.generator.introspector import introspect
from jsongen.generator.options import GeneratorOptions
from jsongen.generator.overlay import AnnotationOverlay, OverlayError
from jsongen.generator.problems import ProblemReporter, Severity
from jsongen.generator.reflect import Reflector

_SEVERITY_STYLES = {
    Severity.INFO: "dim",
    Severity.WARN: "yellow",
    Severity.FAIL: "bold red",
}


def _import_type(spec: str) -> Any:
    """Load ``module:Qualified.Name``."""
    module_name, sep, qualname = spec.partition(":")
    if not sep or not module_name or not qualname:
        raise click.BadParameter(f"Expected module:Class, got {spec!r}", param_hint="TYPES")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import {module_name}: {e}", param_hint="TYPES") from e
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise click.BadParameter(
                f"{module_name} has no attribute {qualname}", param_hint="TYPES"
            ) from e
    return target


def _load_overlays(paths: tuple[str, ...]) -> AnnotationOverlay | None:
    overlay = None
    for path in paths:
        try:
            loaded = AnnotationOverlay.load(path)
        except OverlayError as e:
            raise click.ClickException(f"{path}: {e}") from e
        overlay = loaded if overlay is None else overlay.merge(loaded)
    return overlay


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generator decisions")
def cli(verbose: bool) -> None:
    """jsongen JSON codec generator."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@cli.command()
@click.argument("types", nargs=-1, required=True)
@click.option("--output", "-o", "output_file", default=None, help="Output file (default: stdout)")
@click.option("--overlay", "overlays", multiple=True, help="Additional annotation source file")
@click.option(
    "--external",
    "external_types",
    multiple=True,
    help="Qualified name of a type with a hand-written codec",
)
@click.option("--runtime-import", "runtime_import", default=None, help="Import path for runtime")
@click.option("--options", "options_file", default=None, help="JSON file with generator options")
def gen(
    types: tuple[str, ...],
    output_file: str | None,
    overlays: tuple[str, ...],
    external_types: tuple[str, ...],
    runtime_import: str | None,
    options_file: str | None,
) -> None:
    """Generate codecs for TYPES, given as module:Class."""
    options = GeneratorOptions.load(options_file) if options_file else GeneratorOptions()
    if runtime_import is not None:
        options.runtime_import = runtime_import
    options.external_types = [*options.external_types, *external_types]

    reflector = Reflector()
    descriptors = [reflector.describe(_import_type(spec)) for spec in types]
    output = engine.generate(descriptors, options, _load_overlays(overlays))

    console = Console(stderr=True)
    for problem in output.problems:
        console.print(str(problem), style=_SEVERITY_STYLES[problem.severity], markup=False)

    if output_file is None:
        click.echo(output.source, nl=False)
    else:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output.source)

    if output.failed:
        sys.exit(1)


@cli.command()
@click.argument("type_spec", metavar="TYPE")
@click.option("--overlay", "overlays", multiple=True, help="Additional annotation source file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(type_spec: str, overlays: tuple[str, ...], output_json: bool) -> None:
    """Display the properties jsongen finds on TYPE."""
    descriptor = Reflector().describe(_import_type(type_spec))
    overlay = _load_overlays(overlays)

    reporter = ProblemReporter()
    definitions = {
        "serialization": introspect(reporter, descriptor, overlay, for_serialization=True),
        "deserialization": introspect(reporter, descriptor, overlay, for_serialization=False),
    }

    if output_json:
        data = {
            direction: definition.summary().to_dict() if definition else None
            for direction, definition in definitions.items()
        }
        data["problems"] = [problem.to_dict() for problem in reporter.problems]
        print(json.dumps(data, indent=2))
    else:
        _output_plain(definitions, reporter)

    if reporter.errors:
        sys.exit(1)


def _output_plain(definitions: dict, reporter: ProblemReporter) -> None:
    """Output definitions using rich text formatting."""
    console = Console()

    for direction, definition in definitions.items():
        console.print(f"[bold cyan]{direction.capitalize()}[/bold cyan]")
        if definition is None:
            console.print("  [red]not available[/red]")
            console.print()
            continue

        summary = definition.summary()
        if summary.creator:
            console.print(f"  Creator: {summary.creator}", markup=False)
        if summary.ignored_names:
            console.print(f"  Ignored: {', '.join(summary.ignored_names)}", markup=False)
        if summary.ignore_unknown_properties:
            console.print("  Unknown properties are skipped")

        table = Table(show_header=True, box=None, padding=(0, 2, 0, 2))
        table.add_column("Name", style="white")
        table.add_column("Type", style="yellow")
        table.add_column("Accessors", style="dim")
        table.add_column("Flags", style="green")
        for prop in summary.properties:
            flags = [
                flag
                for flag, enabled in (
                    ("required", prop.required),
                    ("nullable", prop.nullable),
                    ("unwrapped", prop.unwrapped),
                    ("recursive", prop.recursive),
                )
                if enabled
            ]
            if prop.aliases:
                flags.append(f"aliases={','.join(prop.aliases)}")
            table.add_row(prop.name, prop.type, ", ".join(prop.accessors), " ".join(flags))
        console.print(table)
        console.print()

    for problem in reporter.problems:
        console.print(str(problem), style=_SEVERITY_STYLES[problem.severity], markup=False)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
