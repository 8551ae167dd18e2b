# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Dispatch from a descriptor language to its handler."""

import difflib
from typing import Dict, Mapping, Optional, Type, Union

from toolgraph_common.errors import UnsupportedLanguageError
from toolgraph_common.imports import RepositoryFileFetcher
from toolgraph_common.models import DescriptorLanguage

from ..config import ToolgraphConfig
from .base import LanguageHandler
from .cwl import CWLHandler
from .nextflow import NextflowHandler
from .wdl import WDLHandler

HANDLERS: Dict[DescriptorLanguage, Type[LanguageHandler]] = {
    DescriptorLanguage.CWL: CWLHandler,
    DescriptorLanguage.WDL: WDLHandler,
    DescriptorLanguage.NEXTFLOW: NextflowHandler,
}


def _close_language_names(language: str) -> Optional[str]:
    """Quoted language names and short names that look like *language*."""
    names = {}
    for lang in DescriptorLanguage:
        names.setdefault(lang.name.lower(), None)
        names.setdefault(lang.value, None)
    matches = difflib.get_close_matches(language.lower(), list(names), n=3, cutoff=0.5)
    if not matches:
        return None
    return " or ".join(f"'{name}'" for name in matches)


def _language(language: Union[DescriptorLanguage, str]) -> DescriptorLanguage:
    if isinstance(language, DescriptorLanguage):
        return language
    try:
        return DescriptorLanguage.from_string(language)
    except ValueError:
        raise UnsupportedLanguageError(language, _close_language_names(language)) from None


def create_handler(
    language: Union[DescriptorLanguage, str],
    fetcher: Optional[RepositoryFileFetcher] = None,
    tool_catalog: Optional[Mapping[str, str]] = None,
    config: Optional[ToolgraphConfig] = None,
) -> LanguageHandler:
    """Build the handler for *language* (an enum member or a name like ``"wdl"``)."""
    resolved = _language(language)
    handler_class = HANDLERS.get(resolved)
    if handler_class is None:
        raise UnsupportedLanguageError(resolved.value)
    return handler_class(fetcher=fetcher, tool_catalog=tool_catalog, config=config)
