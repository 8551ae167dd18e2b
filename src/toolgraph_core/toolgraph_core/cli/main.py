# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI commands for descriptors in a local checkout."""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from toolgraph_common.errors import RenderingError, UnsupportedLanguageError
from toolgraph_common.models import DescriptorLanguage, Entry, FileKind, Version

from ..config import load_and_validate_config
from ..fetchers import LocalCheckoutFetcher
from ..languages import LanguageHandler, RenderMode, create_handler
from ..logconfig import DescriptorContext, configure_logging
from .errors import show_error, show_success

console = Console()

REPOSITORY_ID = "local"


def _add_descriptor_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("path", help="Descriptor path, relative to the repository root")
    parser.add_argument(
        "--language",
        "-l",
        default=None,
        help="Descriptor language: cwl, wdl or nfl (default: inferred from the file extension)",
    )
    parser.add_argument(
        "--repo-root",
        type=str,
        default=".",
        help="Root directory of the checked out repository (default: current directory)",
    )
    parser.add_argument(
        "--reference",
        type=str,
        default="",
        help="Branch or tag; used as a subdirectory of the repository root when it exists",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for descriptor commands."""
    parser = argparse.ArgumentParser(
        description="Inspect workflow descriptors: validity, imports, metadata and call graphs",
        prog="toolgraph",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override TOOLGRAPH_LOG_LEVEL for this run",
    )

    subparsers = parser.add_subparsers(dest="action", help="Action to perform", required=True)

    validate_parser = subparsers.add_parser("validate", help="Check whether a descriptor is valid")
    _add_descriptor_arguments(validate_parser)

    imports_parser = subparsers.add_parser(
        "imports", help="List every file transitively imported by a descriptor"
    )
    _add_descriptor_arguments(imports_parser)

    metadata_parser = subparsers.add_parser(
        "metadata", help="Show the author, email and description found in a descriptor"
    )
    _add_descriptor_arguments(metadata_parser)

    tools_parser = subparsers.add_parser("tools", help="List the distinct container images used")
    _add_descriptor_arguments(tools_parser)
    tools_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    dag_parser = subparsers.add_parser("dag", help="Print the call graph as cytoscape JSON")
    _add_descriptor_arguments(dag_parser)

    return parser


def load_descriptor(
    args: argparse.Namespace,
) -> Tuple[LanguageHandler, Version, str]:
    """Resolve handler, version and primary descriptor content from the arguments.

    Raises:
        UnsupportedLanguageError: the language is unknown or cannot be inferred.
        FileNotFoundError: the descriptor does not exist in the checkout.
    """
    language = args.language or DescriptorLanguage.from_path(args.path)
    if language is None:
        raise UnsupportedLanguageError(Path(args.path).suffix or args.path, None)

    fetcher = LocalCheckoutFetcher(args.repo_root)
    handler = create_handler(language, fetcher=fetcher)
    version = Version(reference=args.reference, name=args.reference or None)
    content = fetcher.read_file(REPOSITORY_ID, FileKind.PRIMARY_DESCRIPTOR, version, args.path)
    if content is None:
        raise FileNotFoundError(f"Descriptor not found: {args.path}")
    return handler, version, content


def cmd_validate(handler: LanguageHandler, version: Version, content: str, args) -> int:
    if handler.is_valid_workflow(content):
        show_success(f"{args.path} is a valid {handler.language_name} descriptor")
        return 0
    console.print(f"[red]{args.path} is not a valid {handler.language_name} descriptor[/red]")
    return 1


def cmd_imports(handler: LanguageHandler, version: Version, content: str, args) -> int:
    files = handler.process_imports(REPOSITORY_ID, content, version, args.path)
    if not files:
        console.print(f"{args.path} imports no files.")
        return 0

    table = Table(title=f"Imports of {args.path}")
    table.add_column("Path", style="cyan")
    table.add_column("Lines", style="magenta", justify="right")
    for path in sorted(files):
        table.add_row(path, str(len(files[path].content.splitlines())))
    console.print(table)
    return 0


def cmd_metadata(handler: LanguageHandler, version: Version, content: str, args) -> int:
    entry = Entry(name=args.path, language=handler.language, default_descriptor_path=args.path)
    handler.parse_workflow_content(entry, content)

    table = Table(title=f"Metadata of {args.path}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("author", entry.author or "-")
    table.add_row("email", entry.email or "-")
    table.add_row("description", entry.description or "-")
    console.print(table)
    return 0


def _render(handler: LanguageHandler, version: Version, content: str, args, mode: RenderMode) -> str:
    secondary = handler.process_imports(REPOSITORY_ID, content, version, args.path)
    return handler.get_content(args.path, content, secondary, mode)


def cmd_tools(handler: LanguageHandler, version: Version, content: str, args) -> int:
    output = _render(handler, version, content, args, RenderMode.TOOLS)
    if args.format == "json":
        console.print_json(output)
        return 0

    rows = json.loads(output)
    if not rows:
        console.print("No container images found.")
        return 0
    table = Table(title=f"Tools used by {args.path}")
    table.add_column("Call", style="cyan")
    table.add_column("File")
    table.add_column("Image", style="green")
    table.add_column("Link", style="blue")
    for row in rows:
        table.add_row(row["id"], row["file"] or "-", row["docker"], row["link"] or "-")
    console.print(table)
    return 0


def cmd_dag(handler: LanguageHandler, version: Version, content: str, args) -> int:
    console.print_json(_render(handler, version, content, args, RenderMode.DAG))
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "imports": cmd_imports,
    "metadata": cmd_metadata,
    "tools": cmd_tools,
    "dag": cmd_dag,
}


def dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate command handler."""
    command = COMMANDS.get(args.action)
    if command is None:
        console.print(f"[red]Unknown action: {args.action}[/red]")
        return 1

    try:
        handler, version, content = load_descriptor(args)
    except (UnsupportedLanguageError, FileNotFoundError, OSError) as e:
        show_error(f"Cannot load {args.path}", str(e))
        return 1

    with DescriptorContext.bind(REPOSITORY_ID, version.reference, args.path):
        try:
            return command(handler, version, content, args)
        except RenderingError as e:
            show_error(f"Rendering {args.path} failed", e.message)
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the toolgraph command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_and_validate_config()
    except ValidationError as e:
        show_error("Invalid configuration", str(e))
        return 1
    configure_logging((args.log_level or config.log_level).upper(), config.log_format)

    return dispatch(args)


if __name__ == "__main__":
    sys.exit(main())
