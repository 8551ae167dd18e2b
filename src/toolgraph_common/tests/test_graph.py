# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import pytest

from toolgraph_common.graph import ToolInfo, build_graph, find_dependency_cycle, images


class TestBuildGraph:
    def test_merges_images_and_dependencies(self):
        graph = build_graph({"A": "ubuntu:18.04", "B": "quay.io/x/y:1"}, {"B": ["A"], "A": []})
        assert graph["A"] == ToolInfo("ubuntu:18.04", [])
        assert graph["B"] == ToolInfo("quay.io/x/y:1", ["A"])

    def test_result_does_not_depend_on_map_order(self):
        images_map = {"A": "a:1", "B": "b:1", "C": None}
        deps_map = {"C": ["A", "B"], "B": ["A"], "D": ["C"]}

        forward = build_graph(images_map, deps_map)
        backward = build_graph(
            dict(reversed(list(images_map.items()))), dict(reversed(list(deps_map.items())))
        )

        assert forward == backward

    def test_call_only_in_dependency_map_has_no_image(self):
        graph = build_graph({}, {"B": ["A"]})
        assert graph["B"] == ToolInfo(None, ["A"])

    def test_dangling_dependencies_are_kept(self):
        graph = build_graph({"B": "b:1"}, {"B": ["ghost"]})
        assert graph["B"].dependencies == ["ghost"]
        assert "ghost" not in graph

    def test_input_lists_are_not_aliased(self):
        deps = ["A"]
        graph = build_graph({}, {"B": deps})
        graph["B"].dependencies.append("C")
        assert deps == ["A"]


def test_images_are_distinct_in_call_order():
    graph = build_graph({"b": "x:1", "a": "x:1", "c": "y:1", "d": None}, {})
    assert images(graph) == {"x:1": "a", "y:1": "c"}
    assert list(images(graph)) == ["x:1", "y:1"]


# ---------------------------------------------------------------------------
# find_dependency_cycle
# ---------------------------------------------------------------------------


class TestFindDependencyCycle:
    def test_no_cycle_in_diamond(self):
        graph = build_graph({}, {"A": [], "B": ["A"], "C": ["A"], "D": ["B", "C"]})
        assert find_dependency_cycle(graph) is None

    def test_two_node_cycle(self):
        graph = build_graph({}, {"A": ["B"], "B": ["A"]})
        cycle = find_dependency_cycle(graph)
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"A", "B"}

    def test_self_loop(self):
        graph = build_graph({}, {"A": ["A"]})
        assert find_dependency_cycle(graph) == ["A", "A"]

    def test_cycle_in_disconnected_part(self):
        graph = build_graph({}, {"A": [], "B": ["A"], "X": ["Y"], "Y": ["Z"], "Z": ["X"]})
        cycle = find_dependency_cycle(graph)
        assert cycle is not None
        assert set(cycle) == {"X", "Y", "Z"}

    @pytest.mark.parametrize("graph", [{}, {"A": ToolInfo("a", ["missing"])}])
    def test_empty_or_dangling_graph(self, graph):
        assert find_dependency_cycle(graph) is None
