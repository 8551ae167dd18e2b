# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Call-level dependency graph: each call, its container image and its dependencies."""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence


@dataclass
class ToolInfo:
    image: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)


def build_graph(
    call_to_image: Mapping[str, Optional[str]],
    call_to_deps: Mapping[str, Sequence[str]],
) -> Dict[str, ToolInfo]:
    """Merge the image map and the dependency map into one ``ToolInfo`` per call.

    Dependencies naming calls that have no image entry are kept as they are;
    no edge validation happens here.
    """
    graph: Dict[str, ToolInfo] = {}
    for call, image in call_to_image.items():
        info = graph.get(call)
        if info is None:
            graph[call] = ToolInfo(image=image)
        else:
            info.image = image

    for call, deps in call_to_deps.items():
        info = graph.get(call)
        if info is None:
            graph[call] = ToolInfo(image=None, dependencies=list(deps))
        else:
            info.dependencies.extend(deps)
    return graph


def images(graph: Mapping[str, ToolInfo]) -> Dict[str, str]:
    """Distinct non-empty images, in call-name order, each with the first call using it."""
    first_call: Dict[str, str] = {}
    for call in sorted(graph):
        image = graph[call].image
        if image:
            first_call.setdefault(image, call)
    return first_call


def find_dependency_cycle(graph: Mapping[str, ToolInfo]) -> Optional[List[str]]:
    """Return call names forming a dependency cycle, or ``None``.

    The path starts and ends with the same call. Dependencies on calls that are
    not part of *graph* are ignored.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    color: Dict[str, int] = {name: WHITE for name in graph}

    for start in sorted(graph):
        if color[start] != WHITE:
            continue
        color[start] = GRAY
        path: List[str] = [start]
        # Each frame is (call, iterator over its dependencies).
        stack = [(start, iter(sorted(set(graph[start].dependencies))))]
        while stack:
            node, deps = stack[-1]
            advanced = False
            for dep in deps:
                if dep not in color:
                    continue
                if color[dep] == GRAY:
                    return path[path.index(dep):] + [dep]
                if color[dep] == WHITE:
                    color[dep] = GRAY
                    path.append(dep)
                    stack.append((dep, iter(sorted(set(graph[dep].dependencies)))))
                    advanced = True
                    break
            if not advanced:
                color[node] = BLACK
                path.pop()
                stack.pop()
    return None
