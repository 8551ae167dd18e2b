# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Per-language descriptor handlers and the factory that picks one."""

from .base import CallDiscovery, LanguageHandler
from .cwl import CWLHandler
from .factory import create_handler
from .nextflow import NextflowHandler
from .render import RenderMode
from .wdl import WDLHandler

__all__ = [
    "CallDiscovery",
    "LanguageHandler",
    "CWLHandler",
    "NextflowHandler",
    "WDLHandler",
    "RenderMode",
    "create_handler",
]
