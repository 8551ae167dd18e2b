# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import json
from unittest.mock import patch

import pytest

from toolgraph_core.cli.errors import detect_error_pattern
from toolgraph_core.cli.main import build_parser, main

MAIN = """version 1.0

import "sub/helper.wdl" as helper

task Foo {
  command <<<
    echo hi
  >>>
  runtime {
    docker: "ubuntu:18.04"
  }
  meta {
    author: "Jane Doe"
    email: "jane@example.org"
  }
}

workflow wf {
  call Foo
  call helper.Bar { input: x = Foo.out }
}
"""

HELPER = """version 1.0

task Bar {
  input {
    String x
  }
  command <<< cat ~{x} >>>
  runtime {
    docker: "quay.io/biocontainers/coreutils:8.31"
  }
}
"""


@pytest.fixture
def repo(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "main.wdl").write_text(MAIN)
    (tmp_path / "sub" / "helper.wdl").write_text(HELPER)
    (tmp_path / "main.nf").write_text("process hello {\n  script:\n  'echo hi'\n}\n")
    (tmp_path / "broken.cwl").write_text("class: Workflow\nsteps: [\n")
    return tmp_path


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("toolgraph_core.cli.main.configure_logging") as configure:
        yield configure


def _run(repo, *argv):
    args = list(argv)
    return main(args[:2] + ["--repo-root", str(repo)] + args[2:])


class TestParser:
    def test_subcommands(self):
        parser = build_parser()
        args = parser.parse_args(["tools", "main.wdl", "--format", "json", "-l", "wdl"])
        assert (args.action, args.path, args.format, args.language) == ("tools", "main.wdl", "json", "wdl")
        assert args.repo_root == "."

    def test_action_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    def test_validate(self, repo):
        assert _run(repo, "validate", "main.wdl") == 0

    def test_validate_invalid_cwl(self, repo):
        assert _run(repo, "validate", "broken.cwl") == 1

    def test_imports(self, repo, capsys):
        assert _run(repo, "imports", "main.wdl") == 0
        assert "sub/helper.wdl" in capsys.readouterr().out

    def test_metadata(self, repo, capsys):
        assert _run(repo, "metadata", "main.wdl") == 0
        out = capsys.readouterr().out
        assert "Jane Doe" in out
        assert "jane@example.org" in out

    def test_tools_json(self, repo, capsys):
        assert _run(repo, "tools", "main.wdl", "--format", "json") == 0
        rows = json.loads(capsys.readouterr().out)
        assert [row["docker"] for row in rows] == ["quay.io/biocontainers/coreutils:8.31", "ubuntu:18.04"]

    def test_dag(self, repo, capsys):
        assert _run(repo, "dag", "main.wdl") == 0
        dag = json.loads(capsys.readouterr().out)
        edges = [(e["data"]["source"], e["data"]["target"]) for e in dag["edges"]]
        assert ("dockstore_Foo", "dockstore_Bar") in edges

    def test_log_level_override(self, repo, no_logging_setup):
        assert main(["--log-level", "debug", "validate", "main.wdl", "--repo-root", str(repo)]) == 0
        assert no_logging_setup.call_args[0][0] == "DEBUG"


class TestFailures:
    def test_unknown_extension(self, repo):
        assert _run(repo, "validate", "README.txt") == 1

    def test_unknown_language(self, repo):
        assert _run(repo, "validate", "main.wdl", "--language", "wld") == 1

    def test_missing_descriptor(self, repo):
        assert _run(repo, "metadata", "nope.wdl") == 1

    def test_nextflow_rendering_is_reported(self, repo):
        assert _run(repo, "dag", "main.nf") == 1

    def test_missing_import_is_reported(self, repo):
        (repo / "sub" / "helper.wdl").unlink()
        assert _run(repo, "tools", "main.wdl") == 1

    def test_undecodable_descriptor_is_reported(self, repo):
        (repo / "binary.wdl").write_bytes(b"\xff\xfe")
        assert _run(repo, "validate", "binary.wdl") == 1

    def test_undecodable_import_is_skipped(self, repo, capsys):
        (repo / "binary.wdl").write_bytes(b"\xff\xfe")
        (repo / "both.wdl").write_text('version 1.0\nimport "binary.wdl"\nimport "sub/helper.wdl"\n')
        assert _run(repo, "imports", "both.wdl") == 0
        out = capsys.readouterr().out
        assert "sub/helper.wdl" in out


@pytest.mark.parametrize(
    "output, message",
    [
        ("No language handler exists for 'wld'", "Descriptor language not recognized"),
        ("could not process wdl into DAG: Invalid WDL: unexpected token '}'", "The descriptor does not parse"),
        ("Imported file x.wdl is not among the descriptors", "A descriptor or one of its imports is missing"),
        ("rendering Nextflow descriptors is not supported", "Rendering is not available for this language"),
    ],
)
def test_detect_error_pattern(output, message):
    assert detect_error_pattern(output)[0] == message


def test_unrecognized_error_has_no_hint():
    assert detect_error_pattern("something odd happened") is None
