# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Recursive import resolution over a remote repository.

Resolution is driven by an explicit worklist. Every path is claimed in the
``ImportClosure`` before it is fetched, so a file that imports itself (directly
or through others) is seen as already claimed the second time round and the
walk terminates on any import graph.
"""

import logging
import posixpath
import re
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Set, Tuple

from .errors import MissingImportError
from .models import DescriptorLanguage, FileKind, SourceFile, Version

LOGGER = logging.getLogger(__name__)

_URL_PREFIXES = ("http://", "https://")
_FILE_PREFIX = "file://"

# Returns the import paths referenced by one file's content. The second
# argument is the logical path of that file (None for the root descriptor).
ImportScanner = Callable[[str, Optional[str]], Set[str]]


class RepositoryFileFetcher(Protocol):
    def read_file(
        self, repository_id: str, file_kind: FileKind, version: Version, path: str
    ) -> Optional[str]:
        """Return the file content, or ``None`` when the file cannot be read."""
        ...


def is_external(path: str) -> bool:
    return path.startswith(_URL_PREFIXES)


def strip_file_scheme(path: str) -> str:
    if path.startswith(_FILE_PREFIX):
        return path[len(_FILE_PREFIX):]
    return path


def resolve_relative(path: str, importer: Optional[str]) -> str:
    """Resolve *path* against the directory of *importer* (repository-relative)."""
    if not path.startswith("/") and importer:
        path = posixpath.join(posixpath.dirname(importer), path)
    return posixpath.normpath(path).lstrip("/")


def scan_lines(content: str, pattern: "re.Pattern[str]") -> Iterator[str]:
    """Yield every first group of *pattern* found on any line of *content*."""
    for line in content.split("\n"):
        for match in pattern.finditer(line):
            yield match.group(1)


class ImportClosure:
    """Logical import path -> ``SourceFile``, built incrementally.

    ``claimed`` records every path the resolver has taken responsibility for,
    including those whose fetch failed; ``files`` only holds paths that were
    actually read.
    """

    def __init__(self) -> None:
        self.files: Dict[str, SourceFile] = {}
        self.claimed: Set[str] = set()

    def claim(self, path: str) -> bool:
        """Mark *path* as seen. Returns ``False`` if it was already claimed."""
        if path in self.claimed:
            return False
        self.claimed.add(path)
        return True

    def add(self, source_file: SourceFile) -> None:
        self.files[source_file.path] = source_file

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def __getitem__(self, path: str) -> SourceFile:
        return self.files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def as_dict(self) -> Dict[str, SourceFile]:
        return dict(self.files)


def _fetch(
    fetcher: RepositoryFileFetcher,
    repository_id: str,
    file_kind: FileKind,
    version: Version,
    path: str,
) -> Optional[str]:
    try:
        return fetcher.read_file(repository_id, file_kind, version, path)
    except (MissingImportError, OSError, UnicodeDecodeError) as e:
        LOGGER.debug(f"Fetcher raised for {path}: {e}")
        return None


def resolve_imports(
    repository_id: str,
    root_content: str,
    version: Version,
    fetcher: RepositoryFileFetcher,
    scanner: ImportScanner,
    root_path: Optional[str] = None,
    file_kind: FileKind = FileKind.SECONDARY_DESCRIPTOR,
    language: Optional[DescriptorLanguage] = None,
    closure: Optional[ImportClosure] = None,
) -> ImportClosure:
    """Fetch every file transitively imported by *root_content*.

    Unreadable imports are logged and left out of the result; everything else
    that is reachable is returned.
    """
    if closure is None:
        closure = ImportClosure()

    worklist: List[Tuple[str, Optional[str]]] = [(root_content, root_path)]
    while worklist:
        content, current_path = worklist.pop()
        for import_path in sorted(scanner(content, current_path)):
            if not closure.claim(import_path):
                continue

            fetched = _fetch(fetcher, repository_id, file_kind, version, import_path)
            if fetched is None:
                LOGGER.error(f"Could not read: {import_path}")
                continue

            closure.add(
                SourceFile(path=import_path, content=fetched, kind=file_kind, language=language)
            )
            worklist.append((fetched, import_path))

    return closure
