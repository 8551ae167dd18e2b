# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Rendering of a call graph as a tool table or a cytoscape DAG."""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from toolgraph_common.graph import ToolInfo, find_dependency_cycle, images

from ..config import ToolgraphConfig, get_config

LOGGER = logging.getLogger(__name__)

NODE_PREFIX = "dockstore_"
BEGIN_KEY = "UniqueBeginKey"
END_KEY = "UniqueEndKey"

_DOCKER_HUB_HOSTS = ("docker.io", "registry.hub.docker.com", "index.docker.io")


class RenderMode(Enum):
    TOOLS = "tools"
    DAG = "dag"

    @classmethod
    def from_string(cls, value: str) -> "RenderMode":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown render mode '{value}'. Valid modes: {valid}") from None


def _repository(image: str) -> str:
    """Drop the tag and digest from an image reference."""
    image = image.split("@", 1)[0]
    last = image.rsplit("/", 1)[-1]
    if ":" in last:
        image = image[: len(image) - len(last)] + last.split(":", 1)[0]
    return image


def image_link(
    image: Optional[str],
    tool_catalog: Optional[Mapping[str, str]] = None,
    config: Optional[ToolgraphConfig] = None,
) -> Optional[str]:
    """Registry page for *image*: the catalog entry if any, else the public page.

    Only Docker Hub and quay.io images get a fallback link.
    """
    if not image:
        return None
    if tool_catalog:
        link = tool_catalog.get(image) or tool_catalog.get(_repository(image))
        if link:
            return link

    config = config or get_config()
    repository = _repository(image.strip())
    parts = repository.split("/")
    host = parts[0] if len(parts) > 1 and ("." in parts[0] or ":" in parts[0]) else None

    if host == "quay.io":
        return config.link_quay.format(name="/".join(parts[1:]))
    if host in _DOCKER_HUB_HOSTS:
        parts = parts[1:]
        if parts[:1] == ["library"]:
            parts = parts[1:]
        host = None
    if host is not None:
        return None
    if len(parts) == 1:
        return config.link_docker_hub_official.format(name=parts[0])
    return config.link_docker_hub.format(name="/".join(parts))


def _warn_on_cycle(graph: Mapping[str, ToolInfo]) -> None:
    cycle = find_dependency_cycle(graph)
    if cycle is not None:
        LOGGER.warning(f"Dependency cycle between calls: {' -> '.join(cycle)}")


def render_tools(
    graph: Mapping[str, ToolInfo],
    call_to_file: Mapping[str, str],
    tool_catalog: Optional[Mapping[str, str]] = None,
    config: Optional[ToolgraphConfig] = None,
) -> str:
    """One row per distinct image, in call-name order."""
    rows: List[Dict[str, Any]] = [
        {
            "id": call,
            "file": call_to_file.get(call),
            "docker": image,
            "link": image_link(image, tool_catalog, config),
        }
        for image, call in images(graph).items()
    ]
    return json.dumps(rows)


def render_dag(
    graph: Mapping[str, ToolInfo],
    call_to_file: Mapping[str, str],
    tool_catalog: Optional[Mapping[str, str]] = None,
    config: Optional[ToolgraphConfig] = None,
) -> str:
    """Cytoscape elements with a begin and an end node framing the calls."""
    _warn_on_cycle(graph)

    nodes: List[Dict[str, Any]] = [{"data": {"id": BEGIN_KEY, "name": "", "type": "start"}}]
    edges: List[Dict[str, Any]] = []
    depended_on = set()

    for call in sorted(graph):
        info = graph[call]
        nodes.append(
            {
                "data": {
                    "id": NODE_PREFIX + call,
                    "name": call,
                    "type": "call",
                    "file": call_to_file.get(call),
                    "tool": image_link(info.image, tool_catalog, config),
                    "docker": info.image,
                }
            }
        )
        deps = [dep for dep in dict.fromkeys(info.dependencies) if dep in graph]
        for dangling in set(info.dependencies) - set(deps):
            LOGGER.debug(f"Call {call} depends on unknown call {dangling}")
        if not deps:
            edges.append({"data": {"source": BEGIN_KEY, "target": NODE_PREFIX + call}})
        for dep in deps:
            depended_on.add(dep)
            edges.append({"data": {"source": NODE_PREFIX + dep, "target": NODE_PREFIX + call}})

    for call in sorted(graph):
        if call not in depended_on:
            edges.append({"data": {"source": NODE_PREFIX + call, "target": END_KEY}})
    nodes.append({"data": {"id": END_KEY, "name": "", "type": "end"}})

    return json.dumps({"nodes": nodes, "edges": edges})


def render(
    mode: RenderMode,
    graph: Mapping[str, ToolInfo],
    call_to_file: Mapping[str, str],
    tool_catalog: Optional[Mapping[str, str]] = None,
    config: Optional[ToolgraphConfig] = None,
) -> str:
    if mode is RenderMode.TOOLS:
        return render_tools(graph, call_to_file, tool_catalog, config)
    return render_dag(graph, call_to_file, tool_catalog, config)
