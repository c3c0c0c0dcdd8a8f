#!/usr/bin/env python3
"""
TFDIFF SETTINGS
---------------
Defaults for the comparison, optionally overridden by a `.tfdiff.yml` file:

    pattern: "*.tf"
    base_branches: [master, main]
    target_flag: "-target"
    noop_flag: "-refresh=false"
    track_references: false

Command-line flags override the file.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import List, Optional

from ruamel.yaml import YAML, YAMLError

from tfdiff.core.errors import ConfigError

logger = logging.getLogger("tfdiff.config")

DEFAULT_CONFIG_FILE = ".tfdiff.yml"


@dataclass(frozen=True)
class Settings:
    pattern: str = "*.tf"
    base_branches: List[str] = field(default_factory=lambda: ["master", "main"])
    target_flag: str = "-target"
    noop_flag: str = "-refresh=false"
    track_references: bool = False

    def override(self, **changes) -> "Settings":
        """Returns a copy with every non-None change applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _check(name: str, value, expected: type):
    if expected == List[str]:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(f"'{name}' must be a list of strings")
        if not value:
            raise ConfigError(f"'{name}' must not be empty")
        return [str(item) for item in value]
    if type(value) is not expected:
        raise ConfigError(f"'{name}' must be a {expected.__name__}, got {type(value).__name__}")
    return value


def parse_settings(text: str, source: str = DEFAULT_CONFIG_FILE) -> Settings:
    """Builds Settings from YAML text. Missing keys keep their defaults."""
    yaml = YAML(typ="safe")
    try:
        data = yaml.load(text)
    except YAMLError as e:
        raise ConfigError(f"{source}: invalid YAML: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping at the top level")

    types = {f.name: f.type for f in fields(Settings)}
    unknown = sorted(set(data) - set(types))
    if unknown:
        raise ConfigError(f"{source}: unknown setting(s): {', '.join(map(str, unknown))}")

    try:
        values = {name: _check(name, value, types[name]) for name, value in data.items()}
    except ConfigError as e:
        raise ConfigError(f"{source}: {e}") from None
    return Settings(**values)


def load_settings(path: Optional[str] = None, directory: str = ".") -> Settings:
    """
    Loads settings from `path`, or from `.tfdiff.yml` in `directory` when it
    exists. An explicitly given path must exist.
    """
    if path is None:
        candidate = Path(directory) / DEFAULT_CONFIG_FILE
        if not candidate.is_file():
            return Settings()
        config_path = candidate
    else:
        config_path = Path(path)

    try:
        text = config_path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ConfigError(f"Unable to read {config_path}: {e}") from e

    logger.debug("Loading settings from %s", config_path)
    return parse_settings(text, str(config_path))
