# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""WDL language handler."""

import logging
import os
import posixpath
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from toolgraph_common.ast import Ast, AstList, AstNode, Terminal, terminal_text
from toolgraph_common.imports import is_external, scan_lines, strip_file_scheme
from toolgraph_common.models import DescriptorLanguage

from .base import CallDiscovery, LanguageHandler
from .wdl_parser import parse_wdl

LOGGER = logging.getLogger(__name__)

IMPORT_PATTERN = re.compile(r"^\s*import\s+[\"']([^\"'\s]+)[\"']")
_PLACEHOLDER = re.compile(r"[$~]\{([^}]*)\}")
_ROOT_NAME = re.compile(r"(?<![\w.\"'])([A-Za-z_]\w*)")
_IMAGE_KEYS = ("docker", "container")
_REQUIREMENT_SECTIONS = ("Runtime", "Requirements")


def _namespace(import_node: Ast) -> str:
    alias = terminal_text(import_node.get_attribute("namespace"))
    if alias:
        return alias
    uri = terminal_text(import_node.get_attribute("uri")) or ""
    name = posixpath.basename(uri)
    return name[: -len(".wdl")] if name.endswith(".wdl") else name


def _items(node: Optional[AstNode]) -> List[AstNode]:
    return list(node) if isinstance(node, AstList) else []


def _units(document: Ast, name: str) -> Iterator[Ast]:
    for unit in _items(document.get_attribute("body")):
        if isinstance(unit, Ast) and unit.name == name:
            yield unit


def expression_names(node: Optional[AstNode]) -> Iterator[str]:
    """Names an expression reads: identifiers, member-access roots and
    identifiers used inside ``${...}``/``~{...}`` placeholders."""
    if isinstance(node, Terminal):
        if node.kind == "identifier":
            yield node.source_string
        elif node.kind == "string":
            for placeholder in _PLACEHOLDER.findall(node.source_string):
                yield from _ROOT_NAME.findall(placeholder)
    elif isinstance(node, AstList):
        for item in node:
            yield from expression_names(item)
    elif isinstance(node, Ast):
        if node.name == "MemberAccess":
            yield from expression_names(node.get_attribute("lhs"))
        elif node.name == "FunctionCall":
            yield from expression_names(node.get_attribute("params"))
        elif node.name == "ObjectKV":
            yield from expression_names(node.get_attribute("value"))
        else:
            for value in node.attributes.values():
                yield from expression_names(value)


def call_name(call: Ast) -> str:
    alias = terminal_text(call.get_attribute("alias"))
    if alias:
        return alias
    return (terminal_text(call.get_attribute("task")) or "").rsplit(".", 1)[-1]


def workflow_elements(body: Optional[AstNode]) -> Iterator[Ast]:
    """Every element of a workflow body, descending into scatter and if blocks."""
    for element in _items(body):
        if not isinstance(element, Ast):
            continue
        yield element
        if element.name in ("Scatter", "If"):
            yield from workflow_elements(element.get_attribute("body"))


def _task_declarations(task: Ast) -> Iterator[Ast]:
    for section in _items(task.get_attribute("sections")):
        if not isinstance(section, Ast):
            continue
        if section.name == "Declaration":
            yield section
        elif section.name == "Inputs":
            for declaration in _items(section.get_attribute("declarations")):
                if isinstance(declaration, Ast):
                    yield declaration


def _image_value(task: Ast, value: Optional[AstNode]) -> Optional[str]:
    if isinstance(value, Ast) and value.name == "ArrayLiteral":
        values = _items(value.get_attribute("values"))
        value = values[0] if values else None
    if isinstance(value, Terminal) and value.kind == "identifier":
        # Runtime values often refer to an input carrying a default image.
        for declaration in _task_declarations(task):
            if terminal_text(declaration.get_attribute("name")) == value.source_string:
                default = declaration.get_attribute("expression")
                if isinstance(default, Terminal) and default.kind == "string":
                    return default.source_string
        return None
    if isinstance(value, Terminal) and value.kind == "string":
        return value.source_string
    return None


def task_image(task: Ast) -> Optional[str]:
    """Container image declared in the task's ``runtime`` or ``requirements``."""
    for section in _items(task.get_attribute("sections")):
        if not isinstance(section, Ast) or section.name not in _REQUIREMENT_SECTIONS:
            continue
        for attribute in _items(section.get_attribute("map")):
            key = terminal_text(attribute.get_attribute("key")) if isinstance(attribute, Ast) else None
            if key and key.lower() in _IMAGE_KEYS:
                return _image_value(task, attribute.get_attribute("value"))
    return None


class WDLHandler(LanguageHandler):
    language = DescriptorLanguage.WDL

    def parse(self, content: str) -> Ast:
        return parse_wdl(content)

    def is_valid_workflow(self, content: str) -> bool:
        # Any non-blank WDL is accepted; syntax problems only surface during
        # metadata extraction and rendering.
        return bool(content and content.strip())

    def scan_imports(self, content: str, path: Optional[str]) -> Set[str]:
        imports = set()
        for import_path in scan_lines(content, IMPORT_PATTERN):
            if is_external(import_path):
                continue
            imports.add(strip_file_scheme(import_path))
        return imports

    # ── Call discovery ─────────────────────────────────────────────────────

    def _load(self, path: Path) -> Ast:
        return self.parse(path.read_text(encoding=self.config.file_encoding))

    def _locate_import(self, scratch_dir: Path, importer: Path, uri: str) -> Path:
        relative = strip_file_scheme(uri).lstrip("/")
        for candidate in (scratch_dir / relative, importer.parent / relative):
            candidate = Path(os.path.normpath(candidate))
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(f"Imported file {uri} is not among the descriptors")

    def index_tasks(self, scratch_dir: Path, main_path: Path) -> Tuple[Ast, Dict[str, Tuple[Ast, str]]]:
        """Parse the primary descriptor and its imports.

        Returns the primary document and a map from namespace-qualified task
        name to ``(task, file)``, where file is the repository path of the
        document defining the task.
        """
        main_document = self._load(main_path)
        tasks: Dict[str, Tuple[Ast, str]] = {}
        visited = {main_path.resolve()}
        pending: List[Tuple[Ast, Path, str]] = [(main_document, main_path, "")]
        while pending:
            document, path, prefix = pending.pop()
            logical = path.relative_to(scratch_dir).as_posix()
            for task in _units(document, "Task"):
                name = terminal_text(task.get_attribute("name")) or ""
                tasks[prefix + name] = (task, logical)
            for import_node in _items(document.get_attribute("imports")):
                uri = terminal_text(import_node.get_attribute("uri")) or ""
                if is_external(uri):
                    LOGGER.debug(f"Not following remote import {uri}")
                    continue
                imported = self._locate_import(scratch_dir, path, uri)
                if imported.resolve() in visited:
                    continue
                visited.add(imported.resolve())
                pending.append((self._load(imported), imported, f"{prefix}{_namespace(import_node)}."))
        return main_document, tasks

    def discover_calls(self, scratch_dir: Path, main_path: Path) -> CallDiscovery:
        main_document, tasks = self.index_tasks(scratch_dir, main_path)
        main_file = main_path.relative_to(scratch_dir).as_posix()
        discovery = CallDiscovery()

        workflow = next(_units(main_document, "Workflow"), None)
        if workflow is None:
            # A tool descriptor: each task is its own call.
            for name, (task, file) in tasks.items():
                if "." in name:
                    continue
                discovery.call_to_image[name] = task_image(task)
                discovery.call_to_deps[name] = []
                discovery.call_to_file[name] = file
            return discovery

        elements = list(workflow_elements(workflow.get_attribute("body")))
        calls = [e for e in elements if e.name == "Call"]
        call_names = {call_name(call) for call in calls}

        declared: Dict[str, Set[str]] = {}
        for element in elements:
            if element.name == "Declaration":
                name = terminal_text(element.get_attribute("name"))
                declared[name] = set(expression_names(element.get_attribute("expression")))
            elif element.name == "Scatter":
                name = terminal_text(element.get_attribute("item"))
                declared[name] = set(expression_names(element.get_attribute("collection")))

        for call in calls:
            name = call_name(call)
            task_name = terminal_text(call.get_attribute("task")) or ""
            task, file = tasks.get(task_name, (None, main_file))
            if task is None:
                LOGGER.debug(f"Call {name} does not resolve to a known task ({task_name})")

            referenced: List[str] = []
            for call_input in _items(call.get_attribute("inputs")):
                value = call_input.get_attribute("value")
                if value is None:
                    referenced.append(terminal_text(call_input.get_attribute("key")) or "")
                else:
                    referenced.extend(expression_names(value))
            referenced.extend(t.source_string for t in _items(call.get_attribute("after")))

            deps = self._resolve_dependencies(referenced, call_names, declared)
            deps.pop(name, None)
            discovery.call_to_image[name] = task_image(task) if task is not None else None
            discovery.call_to_deps[name] = list(deps)
            discovery.call_to_file[name] = file
        return discovery

    @staticmethod
    def _resolve_dependencies(
        names: List[str], call_names: Set[str], declared: Dict[str, Set[str]]
    ) -> Dict[str, None]:
        """Calls reached from *names*, following workflow declarations."""
        deps: Dict[str, None] = {}
        seen: Set[str] = set()
        stack = list(reversed(names))
        while stack:
            name = stack.pop()
            if name in call_names:
                deps.setdefault(name, None)
            elif name in declared and name not in seen:
                seen.add(name)
                stack.extend(sorted(declared[name], reverse=True))
        return deps
