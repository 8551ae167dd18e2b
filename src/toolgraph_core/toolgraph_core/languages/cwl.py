# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CWL language handler."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from toolgraph_common.ast import Ast
from toolgraph_common.errors import DescriptorSyntaxError
from toolgraph_common.imports import is_external, resolve_relative, strip_file_scheme
from toolgraph_common.metadata import units
from toolgraph_common.models import DescriptorLanguage

from .base import CallDiscovery, LanguageHandler
from .cwl_parser import load_document, parse_cwl, process_objects

LOGGER = logging.getLogger(__name__)

_IMPORT_KEYS = ("run", "$import", "$include")
_DOCKER_CLASS = "DockerRequirement"


def _short_id(value: Any) -> str:
    """``"file.cwl#main/step"`` and ``"#step"`` both become ``"step"``."""
    text = str(value or "")
    return text.rsplit("#", 1)[-1].rsplit("/", 1)[-1]


def _strip_fragment(path: str) -> str:
    return path.split("#", 1)[0]


def _import_references(node: Any) -> Iterator[str]:
    if isinstance(node, dict):
        for key, value in node.items():
            if key in _IMPORT_KEYS and isinstance(value, str):
                yield value
            else:
                yield from _import_references(value)
    elif isinstance(node, list):
        for item in node:
            yield from _import_references(item)


def _requirement_entries(section: Any) -> Iterator[Tuple[str, Mapping[str, Any]]]:
    if isinstance(section, dict):
        for name, body in section.items():
            if isinstance(body, dict):
                yield name, body
    elif isinstance(section, list):
        for body in section:
            if isinstance(body, dict):
                yield str(body.get("class", "")), body


def docker_image(process: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Image from a ``DockerRequirement`` in requirements, then hints."""
    if not process:
        return None
    for section in ("requirements", "hints"):
        for name, body in _requirement_entries(process.get(section)):
            if name == _DOCKER_CLASS:
                image = body.get("dockerPull") or body.get("dockerImageId")
                if image:
                    return str(image)
    return None


def workflow_steps(process: Mapping[str, Any]) -> List[Tuple[str, Mapping[str, Any]]]:
    steps = process.get("steps") or []
    if isinstance(steps, dict):
        return [(_short_id(k), v) for k, v in steps.items() if isinstance(v, dict)]
    return [(_short_id(s.get("id")), s) for s in steps if isinstance(s, dict)]


def step_sources(step: Mapping[str, Any]) -> Iterator[str]:
    """Every ``source`` referenced by a step's inputs."""
    inputs = step.get("in") or []
    if isinstance(inputs, dict):
        values = list(inputs.values())
    else:
        values = [i.get("source") if isinstance(i, dict) else None for i in inputs]
    for value in values:
        if isinstance(value, dict):
            value = value.get("source")
        if isinstance(value, str):
            yield value
        elif isinstance(value, list):
            yield from (v for v in value if isinstance(v, str))


def source_step(source: str) -> Optional[str]:
    """Step name of a ``step/output`` source, ``None`` for workflow inputs."""
    parts = source.rsplit("#", 1)[-1].split("/")
    return parts[-2] if len(parts) >= 2 else None


class CWLHandler(LanguageHandler):
    language = DescriptorLanguage.CWL

    def parse(self, content: str) -> Ast:
        return parse_cwl(content)

    def is_valid_workflow(self, content: str) -> bool:
        try:
            tree = parse_cwl(content)
        except DescriptorSyntaxError as e:
            LOGGER.info(f"Invalid CWL descriptor: {e}")
            return False
        return bool(units(tree))

    def scan_imports(self, content: str, path: Optional[str]) -> Set[str]:
        try:
            document = load_document(content)
        except DescriptorSyntaxError as e:
            LOGGER.debug(f"Not scanning imports of unparseable CWL {path or ''}: {e}")
            return set()
        imports = set()
        for reference in _import_references(document):
            if reference.startswith("#") or is_external(reference):
                continue
            imports.add(resolve_relative(_strip_fragment(strip_file_scheme(reference)), path))
        return imports

    # ── Call discovery ─────────────────────────────────────────────────────

    def _load(self, path: Path) -> Dict[str, Any]:
        return load_document(path.read_text(encoding=self.config.file_encoding))

    @staticmethod
    def _select(processes: List[Dict[str, Any]], fragment: Optional[str] = None) -> Dict[str, Any]:
        if not processes:
            raise DescriptorSyntaxError("CWL document holds no process objects")
        wanted = [fragment] if fragment else ["main"]
        for process in processes:
            if _short_id(process.get("id")) in wanted:
                return process
        for process in processes:
            if process.get("class") == "Workflow":
                return process
        return processes[0]

    def _resolve_run(
        self,
        run: Any,
        scratch_dir: Path,
        current_file: str,
        packed: Dict[str, Dict[str, Any]],
    ) -> Tuple[Optional[Mapping[str, Any]], str]:
        """Process object a step runs and the repository path it lives in."""
        if isinstance(run, dict):
            return run, current_file
        if not isinstance(run, str):
            return None, current_file
        if run.startswith("#"):
            return packed.get(_short_id(run)), current_file
        if is_external(run):
            return None, run
        reference = strip_file_scheme(run)
        logical = resolve_relative(_strip_fragment(reference), current_file)
        path = scratch_dir.joinpath(*logical.split("/"))
        if not path.is_file():
            raise FileNotFoundError(f"Step tool {run} is not among the descriptors")
        processes = list(process_objects(self._load(path)))
        fragment = reference.split("#", 1)[1] if "#" in reference else None
        return self._select(processes, fragment), logical

    def discover_calls(self, scratch_dir: Path, main_path: Path) -> CallDiscovery:
        main_file = main_path.relative_to(scratch_dir).as_posix()
        processes = list(process_objects(self._load(main_path)))
        packed = {_short_id(p.get("id")): p for p in processes if p.get("id")}
        main = self._select(processes)
        discovery = CallDiscovery()

        if main.get("class") != "Workflow":
            name = _short_id(main.get("id")) or os.path.splitext(main_path.name)[0]
            discovery.call_to_image[name] = docker_image(main)
            discovery.call_to_deps[name] = []
            discovery.call_to_file[name] = main_file
            return discovery

        workflow_image = docker_image(main)
        steps = workflow_steps(main)
        step_names = {name for name, _ in steps}
        for name, step in steps:
            tool, file = self._resolve_run(step.get("run"), scratch_dir, main_file, packed)
            deps: Dict[str, None] = {}
            for source in step_sources(step):
                dep = source_step(source)
                if dep in step_names and dep != name:
                    deps.setdefault(dep, None)
            discovery.call_to_image[name] = docker_image(step) or docker_image(tool) or workflow_image
            discovery.call_to_deps[name] = list(deps)
            discovery.call_to_file[name] = file
        return discovery
