# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""Central toolgraph configuration.

All values have sensible defaults and can be overridden via environment variables
using the ``TOOLGRAPH_`` prefix:

  TOOLGRAPH_LOG_LEVEL              Log level (default: INFO)
  TOOLGRAPH_LOG_FORMAT             ``text`` or ``json`` (default: text)
  TOOLGRAPH_SCRATCH_DIR            Parent directory for temporary descriptor
                                   copies (default: system temp dir)
  TOOLGRAPH_DEFAULT_RENDER_MODE    ``tools`` or ``dag`` (default: dag)
  TOOLGRAPH_FILE_ENCODING          Encoding used for descriptor files
                                   (default: utf-8)
  TOOLGRAPH_LINK_DOCKER_HUB        Docker Hub page template for namespaced images
  TOOLGRAPH_LINK_DOCKER_HUB_OFFICIAL
                                   Docker Hub page template for official images
  TOOLGRAPH_LINK_QUAY              Quay.io repository page template
"""

from __future__ import annotations

import codecs
import logging
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"})
_VALID_LOG_FORMATS = frozenset({"text", "json"})
_VALID_RENDER_MODES = frozenset({"tools", "dag"})


class ToolgraphConfig(BaseSettings):
    """Central toolgraph configuration.

    Instantiate with ``ToolgraphConfig()`` to read defaults and any
    ``TOOLGRAPH_*`` environment variable overrides automatically.
    """

    model_config = SettingsConfigDict(env_prefix="TOOLGRAPH_")

    # ── Logging configuration ──────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "text"

    # ── Rendering configuration ────────────────────────────────────────────
    scratch_dir: Optional[Path] = None
    default_render_mode: str = "dag"
    file_encoding: str = "utf-8"

    # ── Registry links ─────────────────────────────────────────────────────
    link_docker_hub: str = "https://hub.docker.com/r/{name}"
    link_docker_hub_official: str = "https://hub.docker.com/_/{name}"
    link_quay: str = "https://quay.io/repository/{name}"

    # ── Validators ─────────────────────────────────────────────────────────

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        if v.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level={v!r} is not a valid log level. "
                f"Valid values: {', '.join(sorted(_VALID_LOG_LEVELS))}"
            )
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def _valid_log_format(cls, v: str) -> str:
        if v.lower() not in _VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format={v!r} is not a valid log format. "
                f"Valid values: {', '.join(sorted(_VALID_LOG_FORMATS))}"
            )
        return v.lower()

    @field_validator("default_render_mode")
    @classmethod
    def _valid_render_mode(cls, v: str) -> str:
        if v.lower() not in _VALID_RENDER_MODES:
            raise ValueError(
                f"default_render_mode={v!r} is not a valid render mode. "
                f"Valid values: {', '.join(sorted(_VALID_RENDER_MODES))}"
            )
        return v.lower()

    @field_validator("scratch_dir")
    @classmethod
    def _existing_scratch_dir(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_dir():
            raise ValueError(f"scratch_dir={str(v)!r} is not an existing directory")
        return v

    @field_validator("file_encoding")
    @classmethod
    def _known_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"file_encoding={v!r} is not a known codec") from None
        return v

    @field_validator("link_docker_hub", "link_docker_hub_official", "link_quay")
    @classmethod
    def _has_name_placeholder(cls, v: str) -> str:
        if "{name}" not in v:
            raise ValueError(f"link template {v!r} must contain a '{{name}}' placeholder")
        return v

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


# ── Module-level singleton ─────────────────────────────────────────────────────

_config: Optional[ToolgraphConfig] = None


def get_config() -> ToolgraphConfig:
    """Return the process-wide config singleton.

    Creates a fresh ``ToolgraphConfig`` on first call (reading env vars).
    Subsequent calls return the cached instance.
    """
    global _config
    if _config is None:
        _config = ToolgraphConfig()
    return _config


def load_and_validate_config() -> ToolgraphConfig:
    """Build, validate, cache and return the config.

    Raises ``pydantic.ValidationError`` if any value is invalid. The CLI calls
    this once at startup so configuration problems surface before any
    descriptor is read.
    """
    global _config
    cfg = ToolgraphConfig()
    _config = cfg
    return cfg
