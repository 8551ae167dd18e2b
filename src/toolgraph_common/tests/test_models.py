# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from datetime import datetime

import pytest

from toolgraph_common.errors import DescriptorSyntaxError, MissingImportError, RenderingError, UnsupportedLanguageError
from toolgraph_common.models import DescriptorLanguage, Entry, FileKind, SourceFile, Version


class TestDescriptorLanguage:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("WDL", DescriptorLanguage.WDL),
            ("wdl", DescriptorLanguage.WDL),
            (" cwl ", DescriptorLanguage.CWL),
            ("nfl", DescriptorLanguage.NEXTFLOW),
            ("Nextflow", DescriptorLanguage.NEXTFLOW),
        ],
    )
    def test_from_string(self, value, expected):
        assert DescriptorLanguage.from_string(value) is expected

    def test_from_string_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown descriptor language"):
            DescriptorLanguage.from_string("galaxy")

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/Dockstore.wdl", DescriptorLanguage.WDL),
            ("tools/x.CWL", DescriptorLanguage.CWL),
            ("main.nf", DescriptorLanguage.NEXTFLOW),
            ("nextflow.config", DescriptorLanguage.NEXTFLOW),
            ("README.md", None),
        ],
    )
    def test_from_path(self, path, expected):
        assert DescriptorLanguage.from_path(path) is expected

    def test_extensions(self):
        assert DescriptorLanguage.WDL.extensions == [".wdl"]
        assert ".cwl" in DescriptorLanguage.CWL.extensions


class TestVersion:
    def test_source_file_identity_ignores_content(self):
        old = SourceFile("a.wdl", "old")
        new = SourceFile("a.wdl", "new")
        assert old == new
        assert SourceFile("a.wdl", "x", FileKind.TEST_PARAMETER) != old

    def test_add_source_file_replaces_stale_copy(self):
        version = Version(reference="main")
        version.add_source_file(SourceFile("a.wdl", "old"))
        version.add_source_file(SourceFile("a.wdl", "new"))
        assert len(version.source_files) == 1
        assert version.source_file("a.wdl").content == "new"

    def test_replace_source_files_supersedes_everything(self):
        version = Version(reference="main", dirty=True)
        version.add_source_file(SourceFile("a.wdl", "a"))
        version.replace_source_files([SourceFile("b.wdl", "b")])
        assert version.source_file("a.wdl") is None
        assert version.source_file("b.wdl").content == "b"
        assert not version.dirty

    def test_source_file_lookup_by_kind(self):
        version = Version(reference="main")
        version.add_source_file(SourceFile("test.json", "{}", FileKind.TEST_PARAMETER))
        assert version.source_file("test.json", FileKind.TEST_PARAMETER) is not None
        assert version.source_file("test.json", FileKind.PRIMARY_DESCRIPTOR) is None

    def test_release_drops_files(self):
        version = Version(reference="main", source_files={SourceFile("a.wdl", "a")})
        version.release()
        assert version.source_files == set()

    def test_update_and_update_by_user(self):
        version = Version(reference="main", name="old", hidden=False)
        other = Version(reference="develop", name="new", hidden=True, last_modified=datetime(2020, 1, 1))

        version.update(other)
        assert version.name == "new"
        assert version.last_modified == datetime(2020, 1, 1)
        assert version.reference == "main"

        version.update_by_user(other)
        assert version.reference == "develop"
        assert version.hidden


def test_entry_version_lookup():
    entry = Entry("wf", DescriptorLanguage.WDL, "/main.wdl", versions=[Version("main"), Version("v1")])
    assert entry.version("v1").reference == "v1"
    assert entry.version("missing") is None


# ---------------------------------------------------------------------------
# errors
# ---------------------------------------------------------------------------


def test_descriptor_syntax_error_includes_location():
    assert str(DescriptorSyntaxError("bad")) == "bad"
    assert str(DescriptorSyntaxError("bad", line=3)) == "bad (line 3)"
    assert str(DescriptorSyntaxError("bad", line=3, column=7)) == "bad (line 3, column 7)"


def test_missing_import_error_message():
    assert str(MissingImportError("a.wdl")) == "Could not read: a.wdl"
    assert isinstance(MissingImportError("a.wdl"), LookupError)


def test_rendering_error_defaults_to_internal_server_error():
    error = RenderingError("boom")
    assert error.status_code == 500
    assert RenderingError("boom", status_code=400).status_code == 400


def test_unsupported_language_error_suggests():
    error = UnsupportedLanguageError("wld", "'wdl'")
    assert "Did you mean 'wdl'?" in str(error)
    assert isinstance(error, ValueError)
