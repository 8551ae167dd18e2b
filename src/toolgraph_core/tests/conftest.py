# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from typing import Dict, List

import pytest

from toolgraph_common.models import Version
from toolgraph_core.config import ToolgraphConfig


class DictFetcher:
    """Serves repository files from a dict and records every requested path."""

    def __init__(self, files: Dict[str, str]):
        self.files = files
        self.calls: List[str] = []

    def read_file(self, repository_id, file_kind, version, path):
        self.calls.append(path)
        return self.files.get(path)


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def config(scratch_dir):
    return ToolgraphConfig(scratch_dir=scratch_dir)


@pytest.fixture
def version():
    return Version(reference="main")


@pytest.fixture
def make_fetcher():
    return DictFetcher
