# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Nextflow language handler.

Nextflow scripts are Groovy and can only be understood by the Nextflow
interpreter itself, so this handler limits itself to validity checks and
import discovery based on pattern scans. Metadata is left alone and no call
graph is produced.
"""

import logging
import posixpath
import re
from pathlib import Path
from typing import Optional, Set

from toolgraph_common.ast import Ast
from toolgraph_common.errors import DescriptorSyntaxError, RenderingError
from toolgraph_common.imports import is_external, resolve_relative, strip_file_scheme
from toolgraph_common.models import DescriptorLanguage, Entry

from .base import CallDiscovery, LanguageHandler
from .render import RenderMode

LOGGER = logging.getLogger(__name__)

DEFAULT_MAIN_SCRIPT = "main.nf"

_MANIFEST = re.compile(r"^\s*manifest\s*\{", re.MULTILINE)
_BLOCK = re.compile(r"^\s*(?:process|workflow)\b[^\n{]*\{", re.MULTILINE)
_MAIN_SCRIPT = re.compile(r"mainScript\s*=\s*[\"']([^\"']+)[\"']")
_INCLUDE = re.compile(r"\binclude\s*\{[^}]*\}\s*from\s*[\"']([^\"']+)[\"']")
_INCLUDE_CONFIG = re.compile(r"\bincludeConfig\s+[\"']([^\"']+)[\"']")


class NextflowHandler(LanguageHandler):
    language = DescriptorLanguage.NEXTFLOW

    def parse(self, content: str) -> Ast:
        raise DescriptorSyntaxError("Nextflow scripts are not parsed")

    def parse_workflow_content(self, entry: Entry, content: str) -> Entry:
        LOGGER.debug(f"Leaving metadata of {entry.name} unchanged for a Nextflow descriptor")
        return entry

    def is_valid_workflow(self, content: str) -> bool:
        return bool(_MANIFEST.search(content) or _BLOCK.search(content))

    def scan_imports(self, content: str, path: Optional[str]) -> Set[str]:
        references = set(_INCLUDE_CONFIG.findall(content))
        for module in _INCLUDE.findall(content):
            references.add(module if module.endswith(".nf") else module + ".nf")
        if _MANIFEST.search(content):
            main_script = _MAIN_SCRIPT.search(content)
            references.add(main_script.group(1) if main_script else DEFAULT_MAIN_SCRIPT)

        imports = set()
        for reference in references:
            if is_external(reference):
                continue
            resolved = resolve_relative(strip_file_scheme(reference), path)
            if posixpath.normpath(resolved) != posixpath.normpath((path or "").lstrip("/")):
                imports.add(resolved)
        return imports

    def discover_calls(self, scratch_dir: Path, main_path: Path) -> CallDiscovery:
        raise DescriptorSyntaxError("Nextflow call graphs are not supported")

    def get_content(
        self,
        main_descriptor_path,
        main_descriptor,
        secondary_descriptors,
        mode: Optional[RenderMode] = None,
    ) -> str:
        raise RenderingError(
            f"could not process {self.language_name} into DAG: rendering Nextflow descriptors is not supported"
        )
