# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Language-neutral syntax tree shared by every descriptor parser.

Each parser adapter normalizes its own output into three node kinds:

``Ast``       a named internal node with keyed child attributes
``AstList``   an ordered list of child nodes
``Terminal``  a leaf carrying the source text it was built from

Trees are strict: a node is reachable from exactly one parent and references
between files are represented by path strings only.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union


@dataclass(frozen=True)
class Terminal:
    """Leaf node holding raw source text (string literals are unquoted)."""

    source_string: str
    kind: str = "token"
    line: Optional[int] = None

    def __str__(self) -> str:
        return self.source_string


@dataclass
class AstList:
    items: List["AstNode"] = field(default_factory=list)

    def __iter__(self) -> Iterator["AstNode"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> "AstNode":
        return self.items[index]

    def append(self, node: "AstNode") -> None:
        self.items.append(node)


@dataclass
class Ast:
    name: str
    attributes: Dict[str, Optional["AstNode"]] = field(default_factory=dict)

    def get_attribute(self, key: str) -> Optional["AstNode"]:
        return self.attributes.get(key)

    def children(self) -> Iterator["Ast"]:
        """Yield the direct ``Ast`` children, flattening attribute lists."""
        for value in self.attributes.values():
            if isinstance(value, Ast):
                yield value
            elif isinstance(value, AstList):
                for item in value:
                    if isinstance(item, Ast):
                        yield item


AstNode = Union[Ast, AstList, Terminal]


def terminal_text(node: Optional[AstNode]) -> Optional[str]:
    """Return the source text of *node* if it is a ``Terminal``, else ``None``."""
    if isinstance(node, Terminal):
        return node.source_string
    return None


def find_target(node: Optional[AstNode], keyword: str) -> Optional[List[Ast]]:
    """Return the path from the first node named *keyword* up to *node*.

    The search is depth-first in attribute order and the name comparison is
    case-insensitive. The returned list starts with the matching node and ends
    with the outermost ``Ast`` ancestor, or is ``None`` when nothing matches.
    """
    if node is None:
        return None

    keyword = keyword.lower()
    # Each frame holds the node to visit and the chain of ancestors above it.
    stack: List[tuple] = [(node, [])]
    while stack:
        current, ancestors = stack.pop()
        if isinstance(current, AstList):
            for item in reversed(current.items):
                stack.append((item, ancestors))
            continue
        if not isinstance(current, Ast):
            continue
        if current.name.lower() == keyword:
            return [current] + list(reversed(ancestors))
        chain = ancestors + [current]
        for value in reversed(list(current.attributes.values())):
            if isinstance(value, (Ast, AstList)):
                stack.append((value, chain))
    return None


def walk(node: Optional[AstNode]) -> Iterator[Ast]:
    """Yield every ``Ast`` below (and including) *node* in pre-order."""
    if node is None:
        return
    stack: List[AstNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, AstList):
            stack.extend(reversed(current.items))
        elif isinstance(current, Ast):
            yield current
            for value in reversed(list(current.attributes.values())):
                if isinstance(value, (Ast, AstList)):
                    stack.append(value)
