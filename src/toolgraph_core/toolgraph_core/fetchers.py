# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Repository file fetchers backed by the local filesystem."""

import logging
from pathlib import Path
from typing import Optional, Union

from toolgraph_common.models import FileKind, Version

from .config import get_config

LOGGER = logging.getLogger(__name__)


class LocalCheckoutFetcher:
    """Read repository files from a local checkout.

    When ``<root>/<version.reference>`` is a directory it is used as the
    checkout of that version, otherwise *root* itself is. Paths that leave the
    checkout are treated as missing.
    """

    def __init__(self, root: Union[str, Path], encoding: Optional[str] = None):
        self.root = Path(root).resolve()
        self.encoding = encoding or get_config().file_encoding

    def checkout(self, version: Version) -> Path:
        candidate = self.root / version.reference
        if version.reference and candidate.is_dir():
            return candidate.resolve()
        return self.root

    def read_file(
        self, repository_id: str, file_kind: FileKind, version: Version, path: str
    ) -> Optional[str]:
        checkout = self.checkout(version)
        target = (checkout / path.lstrip("/")).resolve()
        if checkout != target and checkout not in target.parents:
            LOGGER.warning(f"Refusing to read {path}: outside of the checkout of {repository_id}")
            return None
        if not target.is_file():
            return None
        try:
            return target.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            LOGGER.warning(f"Could not decode {path} in {repository_id} as {self.encoding}: {e}")
            return None
