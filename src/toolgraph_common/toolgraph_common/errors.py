# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exceptions raised while reading, resolving and rendering descriptors.

``DescriptorSyntaxError`` and ``MissingImportError`` are recovered where they
happen and only logged. ``RenderingError`` is meant to reach the caller.
"""

from http import HTTPStatus
from typing import Optional


class DescriptorSyntaxError(Exception):
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        loc = f"line {self.line}"
        if self.column is not None:
            loc += f", column {self.column}"
        return f"{self.message} ({loc})"


class MissingImportError(LookupError):
    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        msg = f"Could not read: {path}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class RenderingError(RuntimeError):
    """Call discovery or scratch file handling failed while rendering."""

    def __init__(self, message: str, status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR):
        self.message = message
        self.status_code = int(status_code)
        super().__init__(message)


class UnsupportedLanguageError(ValueError):
    def __init__(self, language: str, suggestion: Optional[str] = None):
        self.language = language
        self.suggestion = suggestion
        msg = f"No language handler exists for '{language}'"
        if suggestion:
            msg += f". Did you mean {suggestion}?"
        super().__init__(msg)
