"""Command-line interface for ttgen."""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.logging import RichHandler

from .errors import TemplateError
from .generator import CodeGenerator
from .models import GenerationConfig
from .template import Template
from .templates import (
    discover_templates,
    file_type,
    find_template,
    template_search_paths,
)


def parse_definitions(definitions: list[str]) -> dict[str, Any]:
    """Parse ``name=value`` pairs given with ``-D``.

    Values are read as YAML scalars, so ``-D count=3`` binds an integer.

    Raises:
        ValueError: If a definition has no ``=``.
    """
    bindings: dict[str, Any] = {}
    for definition in definitions:
        name, sep, value = definition.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid definition '{definition}', expected name=value")
        bindings[name.strip()] = yaml.safe_load(value) if value else ""
    return bindings


def add_template_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "template",
        type=Path,
        help="Template file (searched in the current and templates directories)",
    )


def cmd_render(args: argparse.Namespace, search_paths: list[Path]) -> int:
    log = logging.getLogger("ttgen")

    template_path = find_template(args.template, search_paths)
    code_gen = CodeGenerator(args.output)

    if args.input:
        config = code_gen.validate(code_gen.load_data(args.input))
    else:
        config = GenerationConfig(name=template_path.name.split(".", 1)[0])
    config.bindings.update(parse_definitions(args.define))

    if args.stdout:
        sys.stdout.write(code_gen.render(config, template_path))
        return 0

    code_gen.generate(config, [template_path])
    log.debug(f"Rendered {template_path.as_posix()}")
    return 0


def cmd_show(args: argparse.Namespace, search_paths: list[Path]) -> int:
    template = Template.from_file(find_template(args.template, search_paths))
    sys.stdout.write(template.program.source)
    return 0


def cmd_spans(args: argparse.Namespace, search_paths: list[Path]) -> int:
    template = Template.from_file(find_template(args.template, search_paths))
    for span in template.spans:
        marker = " (standalone)" if span.standalone else ""
        print(f"{span}{marker}")
    return 0


def cmd_list(args: argparse.Namespace, search_paths: list[Path]) -> int:
    log = logging.getLogger("ttgen")

    directories = [args.directory] if args.directory else search_paths
    found = 0
    for directory in directories:
        for info in discover_templates(directory).values():
            print(f"{info.filename}\t{file_type(info.output_ext)}\t{directory}")
            found += 1
    if not found:
        log.warning("No templates found")
    return 0


COMMANDS = {
    "render": cmd_render,
    "show": cmd_show,
    "spans": cmd_spans,
    "list": cmd_list,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="ttgen",
        description="Text template generator - Render .tt templates with YAML data",
    )
    ap.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    ap.add_argument(
        "--templates-dir",
        type=Path,
        default=None,
        metavar="PATH",
        help="Additional directory containing templates (also: TTGEN_TEMPLATES_DIR env var)",
    )

    subparsers = ap.add_subparsers(dest="command", help="Command to run")

    render = subparsers.add_parser("render", help="Render a template")
    add_template_argument(render)
    render.add_argument("-i", "--input", type=Path, help="Input YAML data file")
    render.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path.cwd() / "generated",
        help="Output directory (relative to invocation directory)",
    )
    render.add_argument(
        "--stdout", action="store_true", help="Write the output to stdout instead"
    )
    render.add_argument(
        "-D",
        "--define",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Bind a name for the template (may be repeated)",
    )

    show = subparsers.add_parser("show", help="Print the generated Python program")
    add_template_argument(show)

    spans = subparsers.add_parser("spans", help="Print the normalized spans")
    add_template_argument(spans)

    list_sub = subparsers.add_parser("list", help="List available templates")
    list_sub.add_argument("directory", type=Path, nargs="?", default=None)

    return ap


def main(argv: list[str] | None = None) -> int:
    """Main entry point for ttgen CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()

    ap = build_parser()
    args = ap.parse_args(argv)

    # Setup logging
    log = logging.getLogger("ttgen")
    log_level = logging.DEBUG if args.debug else logging.INFO
    log.handlers = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
            show_time=False,
        )
    ]
    log.setLevel(log_level)

    if args.command is None:
        ap.print_help()
        return 1

    search_paths = template_search_paths(args.templates_dir)
    try:
        code = COMMANDS[args.command](args, search_paths)
    except TemplateError as e:
        log.error(f"Template error: {e}")
        if args.debug:
            raise
        return 1
    except Exception as e:
        log.error(f"{args.command.capitalize()} failed: {e}")
        if args.debug:
            raise
        return 1

    end_time = time.time()
    log.debug(f"Done after {end_time - start_time:.2f} seconds.")
    return code


if __name__ == "__main__":
    sys.exit(main())
