# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from toolgraph_common.ast import Ast, AstList, Terminal, find_target, terminal_text, walk


def _kv(key, value):
    return Ast("MetaKvPair", {"key": Terminal(key), "value": Terminal(value)})


def _task(name, *sections):
    return Ast("Task", {"name": Terminal(name), "sections": AstList(list(sections))})


def _document(*units):
    return Ast("Document", {"body": AstList(list(units))})


class TestFindTarget:
    def test_returns_match_then_ancestors_outermost_last(self):
        meta = Ast("Meta", {"map": AstList([_kv("author", "Jane")])})
        task = _task("t", Ast("Runtime", {"map": AstList()}), meta)
        document = _document(task)

        path = find_target(document, "Meta")

        assert path is not None
        assert [node.name for node in path] == ["Meta", "Task", "Document"]
        assert path[0] is meta
        assert path[1] is task

    def test_name_match_is_case_insensitive(self):
        task = _task("t", Ast("Meta", {}))
        assert find_target(task, "meta")[0].name == "Meta"
        assert find_target(task, "META")[0].name == "Meta"

    def test_first_match_in_depth_first_order_wins(self):
        first = Ast("Meta", {"map": AstList([_kv("author", "first")])})
        second = Ast("Meta", {"map": AstList([_kv("author", "second")])})
        document = _document(_task("a", first), _task("b", second))

        assert find_target(document, "Meta")[0] is first

    def test_search_descends_before_moving_to_siblings(self):
        nested = Ast("Meta", {"where": Terminal("nested")})
        document = _document(
            _task("a", Ast("Scatter", {"body": AstList([nested])})),
            _task("b", Ast("Meta", {"where": Terminal("sibling")})),
        )
        assert find_target(document, "Meta")[0] is nested

    def test_missing_keyword_returns_none(self):
        assert find_target(_document(_task("t")), "Meta") is None

    def test_none_input_returns_none(self):
        assert find_target(None, "Meta") is None

    def test_root_itself_can_match(self):
        meta = Ast("Meta", {})
        assert find_target(meta, "Meta") == [meta]


class TestWalk:
    def test_pre_order(self):
        document = _document(_task("a", Ast("Meta", {})), _task("b"))
        assert [node.name for node in walk(document)] == ["Document", "Task", "Meta", "Task"]

    def test_walk_none_yields_nothing(self):
        assert list(walk(None)) == []


def test_terminal_text():
    assert terminal_text(Terminal("hello")) == "hello"
    assert terminal_text(Ast("Meta", {})) is None
    assert terminal_text(None) is None


def test_children_flattens_lists_and_skips_terminals():
    meta = Ast("Meta", {})
    runtime = Ast("Runtime", {})
    task = Ast("Task", {"name": Terminal("t"), "meta": meta, "sections": AstList([runtime, Terminal("x")])})
    assert list(task.children()) == [meta, runtime]
