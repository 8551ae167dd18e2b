# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Actionable error messages for descriptor problems."""

import re
from typing import Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)

ERROR_PATTERNS = {
    "language": {
        "pattern": r"(no language handler exists|unknown descriptor language|cannot infer.*language)",
        "message": "Descriptor language not recognized",
        "action": "Pass `--language cwl`, `--language wdl` or `--language nfl`",
    },
    "syntax": {
        "pattern": r"(invalid (wdl|cwl)|unexpected (token|character|eof)|not a mapping)",
        "message": "The descriptor does not parse",
        "action": "Fix the syntax near the reported line and column",
    },
    "missing": {
        "pattern": r"(could not read|not among the descriptors|no such file|not found)",
        "message": "A descriptor or one of its imports is missing",
        "action": "Check import paths are relative to the repository root (`--repo-root`)",
    },
    "unsupported": {
        "pattern": r"(not supported)",
        "message": "Rendering is not available for this language",
        "action": "Use `validate` or `imports` for Nextflow descriptors",
    },
    "config": {
        "pattern": r"(validation error.*toolgraph|log_level=|log_format=|scratch_dir=|default_render_mode=)",
        "message": "Invalid configuration",
        "action": "Check the TOOLGRAPH_* environment variables",
    },
    "permission": {
        "pattern": r"(permission denied|access denied)",
        "message": "Permission denied",
        "action": "Check file permissions of the checkout and the scratch directory",
    },
}


def detect_error_pattern(output: str) -> Optional[Tuple[str, str]]:
    for pattern_info in ERROR_PATTERNS.values():
        if re.search(pattern_info["pattern"], output, re.IGNORECASE):
            return (pattern_info["message"], pattern_info["action"])
    return None


def show_error(title: str, output: str):
    """Display a formatted error with a hint when the cause is recognized."""
    console.print()
    detected = detect_error_pattern(output)
    if detected:
        message, action = detected
        error_text = Text()
        error_text.append(f"✗ {title}\n\n", style="bold red")
        error_text.append(f"{message}\n\n", style="red")
        error_text.append("→ Fix: ", style="bold yellow")
        error_text.append(f"{action}\n", style="yellow")
        console.print(Panel(error_text, border_style="red", expand=False))
    else:
        console.print(Panel(Text(f"✗ {title}", style="bold red"), border_style="red", expand=False))

    lines = output.strip().split("\n")
    context = lines[-10:] if len(lines) > 10 else lines
    if context and context != [""]:
        console.print("\n[dim]Details:[/dim]")
        for line in context:
            console.print(f"  [dim]│[/dim] {line}")
    console.print()


def show_success(message: str):
    console.print(f"[green]✓[/green] {message}", style="green")
