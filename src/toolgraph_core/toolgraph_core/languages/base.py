# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Abstract language handler shared by the CWL, WDL and Nextflow handlers."""

import logging
import posixpath
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Set

import yaml

from toolgraph_common.ast import Ast
from toolgraph_common.errors import DescriptorSyntaxError, RenderingError
from toolgraph_common.graph import build_graph
from toolgraph_common.imports import RepositoryFileFetcher, resolve_imports
from toolgraph_common.metadata import apply_metadata, extract_metadata
from toolgraph_common.models import DescriptorLanguage, Entry, FileKind, SourceFile, Version

from ..config import ToolgraphConfig, get_config
from ..logconfig import DescriptorContext
from .render import RenderMode, render

LOGGER = logging.getLogger(__name__)


@dataclass
class CallDiscovery:
    """What call discovery found in a set of written descriptors."""

    call_to_image: Dict[str, Optional[str]] = field(default_factory=dict)
    call_to_deps: Dict[str, list] = field(default_factory=dict)
    call_to_file: Dict[str, str] = field(default_factory=dict)


def scratch_path(scratch_dir: Path, logical_path: str) -> Path:
    """Map a repository path to a location inside *scratch_dir*.

    Raises:
        ValueError: the path escapes the scratch directory.
    """
    relative = posixpath.normpath(logical_path.lstrip("/"))
    if relative.startswith("..") or relative == ".":
        raise ValueError(f"Descriptor path {logical_path!r} is outside the repository")
    return scratch_dir.joinpath(*relative.split("/"))


class LanguageHandler(ABC):
    """Validity, metadata, import resolution and rendering for one language.

    The fetcher is only needed for ``process_imports``; the tool catalog maps
    container images to registry pages and is only used for rendering.
    """

    language: DescriptorLanguage

    def __init__(
        self,
        fetcher: Optional[RepositoryFileFetcher] = None,
        tool_catalog: Optional[Mapping[str, str]] = None,
        config: Optional[ToolgraphConfig] = None,
    ):
        self.fetcher = fetcher
        self.tool_catalog = tool_catalog or {}
        self.config = config or get_config()

    @property
    def language_name(self) -> str:
        return self.language.name.lower()

    @abstractmethod
    def parse(self, content: str) -> Ast:
        """Parse *content* into the shared tree, raising ``DescriptorSyntaxError``."""

    @abstractmethod
    def is_valid_workflow(self, content: str) -> bool:
        pass

    @abstractmethod
    def scan_imports(self, content: str, path: Optional[str]) -> Set[str]:
        """Import paths referenced by one file, relative to the repository root."""

    @abstractmethod
    def discover_calls(self, scratch_dir: Path, main_path: Path) -> CallDiscovery:
        pass

    def parse_workflow_content(self, entry: Entry, content: str) -> Entry:
        """Fill author, email and description of *entry* from *content*.

        Unparseable content leaves the entry untouched.
        """
        try:
            tree = self.parse(content)
        except DescriptorSyntaxError as e:
            LOGGER.info(f"Could not parse {self.language_name} descriptor for {entry.name}: {e}")
            return entry
        return apply_metadata(entry, extract_metadata(tree))

    def process_imports(
        self,
        repository_id: str,
        content: str,
        version: Version,
        path: Optional[str] = None,
    ) -> Dict[str, SourceFile]:
        """Every file transitively imported by *content*, keyed by import path."""
        if self.fetcher is None:
            raise ValueError(f"{type(self).__name__} needs a fetcher to resolve imports")
        with DescriptorContext.bind(repository_id, version.reference, path):
            closure = resolve_imports(
                repository_id,
                content,
                version,
                self.fetcher,
                self.scan_imports,
                root_path=path,
                file_kind=FileKind.SECONDARY_DESCRIPTOR,
                language=self.language,
            )
        LOGGER.debug(f"Resolved {len(closure)} import(s) for {path or 'primary descriptor'}")
        return closure.as_dict()

    def _write(self, target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding=self.config.file_encoding)

    def get_content(
        self,
        main_descriptor_path: str,
        main_descriptor: str,
        secondary_descriptors: Mapping[str, SourceFile],
        mode: Optional[RenderMode] = None,
    ) -> str:
        """Render the call graph of a descriptor set as a tool table or a DAG.

        Without *mode* the configured ``default_render_mode`` is used.

        Raises:
            RenderingError: the descriptors could not be turned into a graph.
        """
        scratch_parent = str(self.config.scratch_dir) if self.config.scratch_dir else None
        try:
            with tempfile.TemporaryDirectory(prefix="toolgraph-", dir=scratch_parent) as tmp:
                scratch_dir = Path(tmp)
                for path, source_file in secondary_descriptors.items():
                    self._write(scratch_path(scratch_dir, path), source_file.content)
                main_path = scratch_path(scratch_dir, main_descriptor_path)
                self._write(main_path, main_descriptor)
                discovery = self.discover_calls(scratch_dir, main_path)
        except (DescriptorSyntaxError, OSError, ValueError, yaml.YAMLError) as e:
            raise RenderingError(f"could not process {self.language_name} into DAG: {e}") from e

        if mode is None:
            mode = RenderMode.from_string(self.config.default_render_mode)
        graph = build_graph(discovery.call_to_image, discovery.call_to_deps)
        LOGGER.debug(f"Rendering {len(graph)} call(s) from {main_descriptor_path} as {mode.value}")
        return render(mode, graph, discovery.call_to_file, self.tool_catalog, self.config)
