# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Author, email and description extraction from parsed descriptors.

Every top-level ``Task`` or ``Workflow`` unit may carry at most one ``Meta``
block. Key/value pairs inside it whose key is ``author``, ``email`` or
``description`` (any case) feed the entry metadata.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from .ast import Ast, AstList, AstNode, find_target, terminal_text
from .models import Entry

UNIT_NAMES = ("Task", "Workflow")
META_NAME = "Meta"


@dataclass
class Metadata:
    authors: Set[str] = field(default_factory=set)
    emails: Set[str] = field(default_factory=set)
    description: Optional[str] = None

    @property
    def author(self) -> str:
        return ", ".join(sorted(self.authors))

    @property
    def email(self) -> str:
        return ", ".join(sorted(self.emails))


def extract_attribute(node: Optional[AstNode], key: str) -> Optional[str]:
    """Return the value of the first key/value node under *node* keyed by *key*."""
    if node is None:
        return None
    if isinstance(node, AstList):
        for member in node:
            result = extract_attribute(member, key)
            if result is not None:
                return result
        return None
    if isinstance(node, Ast):
        node_key = terminal_text(node.get_attribute("key"))
        if node_key is not None and node_key.lower() == key:
            return terminal_text(node.get_attribute("value"))
    return None


def units(tree: Ast) -> List[Ast]:
    """Top-level task/workflow units found in the document body."""
    body = tree.get_attribute("body")
    if not isinstance(body, AstList):
        return []
    return [node for node in body if isinstance(node, Ast) and node.name in UNIT_NAMES]


def extract_metadata(tree: Ast) -> Metadata:
    metadata = Metadata()
    for unit in units(tree):
        path = find_target(unit, META_NAME)
        if path is None:
            continue
        for value in path[0].attributes.values():
            email = extract_attribute(value, "email")
            if email is not None:
                metadata.emails.add(email)
            author = extract_attribute(value, "author")
            if author is not None:
                metadata.authors.add(author)
            description = extract_attribute(value, "description")
            if description:
                metadata.description = description
    return metadata


def apply_metadata(entry: Entry, metadata: Metadata) -> Entry:
    """Copy *metadata* onto *entry* without wiping values a descriptor lacks."""
    if metadata.authors or entry.author is None:
        entry.author = metadata.author
    if metadata.emails or entry.email is None:
        entry.email = metadata.email
    if metadata.description:
        entry.description = metadata.description
    return entry
