# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Entries, versions and the source files cached for each version."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Set


class DescriptorLanguage(Enum):
    CWL = "cwl"
    WDL = "wdl"
    NEXTFLOW = "nfl"

    @property
    def extensions(self) -> List[str]:
        return {
            DescriptorLanguage.CWL: [".cwl", ".yaml", ".yml", ".json"],
            DescriptorLanguage.WDL: [".wdl"],
            DescriptorLanguage.NEXTFLOW: [".nf", ".config"],
        }[self]

    @classmethod
    def from_string(cls, value: str) -> "DescriptorLanguage":
        """Parse a user supplied language name such as ``"WDL"`` or ``"nextflow"``."""
        lowered = value.strip().lower()
        for language in cls:
            if lowered in (language.value, language.name.lower()):
                return language
        raise ValueError(f"Unknown descriptor language '{value}'")

    @classmethod
    def from_path(cls, path: str) -> Optional["DescriptorLanguage"]:
        """Guess the language from a file extension, ``None`` when ambiguous."""
        lowered = path.lower()
        if lowered.endswith(".wdl"):
            return cls.WDL
        if lowered.endswith(".cwl"):
            return cls.CWL
        if lowered.endswith(".nf") or lowered.endswith("nextflow.config"):
            return cls.NEXTFLOW
        return None


class FileKind(Enum):
    PRIMARY_DESCRIPTOR = "primary_descriptor"
    SECONDARY_DESCRIPTOR = "secondary_descriptor"
    CONTAINER_BUILD = "container_build"
    TEST_PARAMETER = "test_parameter"


@dataclass(frozen=True)
class SourceFile:
    """A file fetched from the repository for one version.

    Two source files are the same file when path and kind match; the content
    does not take part in identity.
    """

    path: str
    content: str = field(compare=False)
    kind: FileKind = FileKind.SECONDARY_DESCRIPTOR
    language: Optional[DescriptorLanguage] = field(default=None, compare=False)


@dataclass
class Version:
    """One point-in-time snapshot (branch, tag or commit) of an entry."""

    reference: str
    name: Optional[str] = None
    valid: bool = False
    dirty: bool = False
    hidden: bool = False
    last_modified: Optional[datetime] = None
    source_files: Set[SourceFile] = field(default_factory=set)

    def add_source_file(self, source_file: SourceFile) -> None:
        # A refreshed copy of the same file replaces the stale one.
        self.source_files.discard(source_file)
        self.source_files.add(source_file)

    def replace_source_files(self, source_files: Iterable[SourceFile]) -> None:
        """Supersede every cached file with the result of a refresh."""
        self.source_files = set(source_files)
        self.dirty = False

    def source_file(self, path: str, kind: Optional[FileKind] = None) -> Optional[SourceFile]:
        for source_file in self.source_files:
            if source_file.path == path and (kind is None or source_file.kind == kind):
                return source_file
        return None

    def release(self) -> None:
        self.source_files = set()

    def update(self, other: "Version") -> None:
        self.name = other.name
        self.last_modified = other.last_modified

    def update_by_user(self, other: "Version") -> None:
        self.reference = other.reference
        self.hidden = other.hidden


@dataclass
class Entry:
    """A registered tool or workflow whose metadata is filled from descriptors."""

    name: str
    language: DescriptorLanguage
    default_descriptor_path: str
    author: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    versions: List[Version] = field(default_factory=list)

    def version(self, reference: str) -> Optional[Version]:
        for version in self.versions:
            if version.reference == reference:
                return version
        return None
