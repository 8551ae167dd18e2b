# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Language-neutral descriptor core shared by every language handler.

Public API
----------
Ast, AstList, Terminal  Syntax tree every parser normalizes into.
find_target             Depth-first search returning a node and its ancestors.
resolve_imports         Cycle-safe recursive import resolution.
ImportClosure           Logical import path -> SourceFile map with claim tracking.
extract_metadata        Collect authors, emails and description from a tree.
apply_metadata          Copy extracted metadata onto an Entry.
build_graph             Merge call->image and call->dependencies into ToolInfo.
find_dependency_cycle   Report a dependency cycle between calls.
"""

from .ast import Ast, AstList, AstNode, Terminal, find_target, terminal_text, walk
from .errors import (
    DescriptorSyntaxError,
    MissingImportError,
    RenderingError,
    UnsupportedLanguageError,
)
from .graph import ToolInfo, build_graph, find_dependency_cycle, images
from .imports import ImportClosure, RepositoryFileFetcher, resolve_imports
from .metadata import Metadata, apply_metadata, extract_metadata
from .models import DescriptorLanguage, Entry, FileKind, SourceFile, Version

__all__ = [
    "Ast",
    "AstList",
    "AstNode",
    "Terminal",
    "find_target",
    "terminal_text",
    "walk",
    "DescriptorSyntaxError",
    "MissingImportError",
    "RenderingError",
    "UnsupportedLanguageError",
    "ToolInfo",
    "build_graph",
    "find_dependency_cycle",
    "images",
    "ImportClosure",
    "RepositoryFileFetcher",
    "resolve_imports",
    "Metadata",
    "apply_metadata",
    "extract_metadata",
    "DescriptorLanguage",
    "Entry",
    "FileKind",
    "SourceFile",
    "Version",
]
