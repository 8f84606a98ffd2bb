"""Configuration for command parsing and diagnostics.

Defaults live in code. A project may override them with a ``.commonbin.yaml``
file in the working directory, and the environment overrides both:

    COMMON_BIN_DEBUG=1                  enable the debug log channel
    COMMON_BIN_DEBUG_OPTION_ENV=NAME    read exec-argv overrides from $NAME
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = ".commonbin.yaml"

DEBUG_KEYS = (
    "debug",
    "debug-brk",
    "debug-port",
    "inspect",
    "inspect-brk",
    "inspect-port",
)


@dataclass
class ParserOptions:
    """How a command turns parsed argv into its execution context."""

    # Extract debug/inspect/harmony flags into context.exec_argv
    exec_argv: bool = True
    # Drop alias keys, keep only the canonical key of each declared flag
    remove_alias: bool = True
    # Drop the camelCase twin of every hyphenated key
    remove_camel_case: bool = False

    debug_keys: tuple[str, ...] = DEBUG_KEYS
    # Exact names or regular expressions (anchored with ^) of exec flags
    exec_argv_patterns: tuple[str, ...] = ("es_staging", "expose_debug_as", r"^harmony.*")

    # Environment variable holding extra exec flags, e.g. "--inspect=9230"
    debug_env: str = "COMMON_BIN_DEBUG_OPTION"


@dataclass
class CommonBinConfig:
    """Top-level configuration shared by every command of one invocation."""

    parser: ParserOptions = field(default_factory=ParserOptions)
    debug: bool = False
    completion_marker: str = "--get-completions"
    completion_key: str = "AUTO_COMPLETIONS"


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parser_options_from_dict(data: dict[str, Any]) -> ParserOptions:
    known = {f.name for f in fields(ParserOptions)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown parser options: {', '.join(sorted(unknown))}")

    values = dict(data)
    for key in ("debug_keys", "exec_argv_patterns"):
        if key in values:
            values[key] = tuple(values[key])
    for key in ("exec_argv", "remove_alias", "remove_camel_case"):
        if key in values:
            values[key] = _coerce_bool(values[key])
    return ParserOptions(**values)


def load_config(
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> CommonBinConfig:
    """Load configuration from ``.commonbin.yaml`` and the environment.

    Args:
        cwd: Directory to look for the config file in (default: current directory)
        env: Environment mapping (default: os.environ)

    Returns:
        CommonBinConfig with file values applied over defaults, then env values.

    Raises:
        ValueError: If the config file is not a mapping or names unknown options
    """
    cwd = cwd or Path.cwd()
    env = os.environ if env is None else env
    config = CommonBinConfig()

    config_path = cwd / CONFIG_FILENAME
    if config_path.is_file():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path} must contain a mapping")

        if "parser" in data:
            config.parser = _parser_options_from_dict(data["parser"] or {})
        if "debug" in data:
            config.debug = _coerce_bool(data["debug"])
        if "completion_marker" in data:
            config.completion_marker = str(data["completion_marker"])

    if "COMMON_BIN_DEBUG" in env:
        config.debug = _coerce_bool(env["COMMON_BIN_DEBUG"])
    if env.get("COMMON_BIN_DEBUG_OPTION_ENV"):
        config.parser.debug_env = env["COMMON_BIN_DEBUG_OPTION_ENV"]

    return config
