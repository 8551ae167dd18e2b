# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging setup with per-descriptor context.

The repository, version and descriptor path being processed are kept in
context variables. ``DescriptorContextFilter`` copies them onto every record
so both the text and the JSON formats can show which descriptor a message
belongs to.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

repository_id_var: ContextVar[str] = ContextVar("repository_id", default="")
version_var: ContextVar[str] = ContextVar("version", default="")
descriptor_path_var: ContextVar[str] = ContextVar("descriptor_path", default="")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(repository_id)s@%(version)s:%(descriptor_path)s] %(message)s"
JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"repository_id": "%(repository_id)s", "version": "%(version)s", '
    '"descriptor_path": "%(descriptor_path)s", "message": "%(message)s"}'
)

LOGGER_NAMES = ("toolgraph_common", "toolgraph_core")


class DescriptorContext:
    @staticmethod
    def set(repository_id: str = "", version: str = "", descriptor_path: str = "") -> None:
        repository_id_var.set(repository_id)
        version_var.set(version)
        descriptor_path_var.set(descriptor_path)

    @staticmethod
    def clear() -> None:
        DescriptorContext.set()

    @staticmethod
    @contextmanager
    def bind(
        repository_id: str = "", version: str = "", descriptor_path: Optional[str] = None
    ) -> Iterator[None]:
        """Set the context for the duration of a ``with`` block, then restore it."""
        tokens = (
            repository_id_var.set(repository_id),
            version_var.set(version),
            descriptor_path_var.set(descriptor_path or ""),
        )
        try:
            yield
        finally:
            descriptor_path_var.reset(tokens[2])
            version_var.reset(tokens[1])
            repository_id_var.reset(tokens[0])


class DescriptorContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.repository_id = repository_id_var.get()
        record.version = version_var.get()
        record.descriptor_path = descriptor_path_var.get()
        return True


def configure_logging(level: str = "INFO", fmt: str = "text") -> logging.Handler:
    """Install one stream handler on the toolgraph loggers, replacing any earlier one."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(JSON_FORMAT if fmt == "json" else TEXT_FORMAT))
    handler.addFilter(DescriptorContextFilter())
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        for old in [h for h in logger.handlers if getattr(h, "_toolgraph", False)]:
            logger.removeHandler(old)
        handler._toolgraph = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        logger.setLevel(level)
    return handler
