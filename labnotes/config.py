"""Configuration loading and management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
import tomllib

from .constants import (
    DEFAULT_EXAM_PREP_TOOLS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_LINE_LENGTH,
    DEFAULT_STORAGE_PATH,
    EXAM_PREP_FALLBACK,
    LEGACY_EXAM_PREP_FALLBACK,
)

STORAGE_ENV_VAR = "LABNOTES_STORAGE"


@dataclass
class NotebookConfig:
    """Configuration for the lab notebook.

    Attributes:
        storage_path: JSON file backing the key/value store. Relative paths
            are resolved against the directory the config was loaded for.
        exam_prep_tools: Tool names retained by exam prep mode in addition to
            the built-in ones.
        legacy_fallback: Use the fallback message exactly as older versions
            stored it, mis-encoded em dash included.
        max_file_size: Maximum note file size in bytes.
        max_line_length: Maximum line length accepted in note files.

    Examples:
        NotebookConfig(exam_prep_tools=("gobuster",), legacy_fallback=True)
    """

    # Storage
    storage_path: str = DEFAULT_STORAGE_PATH

    # Exam prep
    exam_prep_tools: tuple[str, ...] = field(default_factory=tuple)
    legacy_fallback: bool = False

    # Limits
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH

    def retained_tools(self) -> tuple[str, ...]:
        """Built-in exam prep tools followed by the configured extras."""
        return (*DEFAULT_EXAM_PREP_TOOLS, *self.exam_prep_tools)

    def fallback_message(self) -> str:
        """Message shown when exam prep mode hides every line."""
        return LEGACY_EXAM_PREP_FALLBACK if self.legacy_fallback else EXAM_PREP_FALLBACK


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`max_file_size` must be a positive integer")
    """


def load_config(search_path: Path) -> NotebookConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.labnotes]`` table from `pyproject.toml` and the ``[labnotes]``
    or ``[tool.labnotes]`` table from `.labnotes.toml` when present. Returns
    default values when no configuration is found. TOML files that cannot be
    read or decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        NotebookConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("notes"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "labnotes")]
        )
        if pyproject_config is not None:
            return normalize_config(pyproject_config)

        dotfile_config = _load_from_file(
            current / ".labnotes.toml",
            table_paths=[("labnotes",), ("tool", "labnotes")],
        )
        if dotfile_config is not None:
            return normalize_config(dotfile_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return NotebookConfig()


_MISSING = object()


def _load_from_file(
    config_file: Path, table_paths: list[tuple[str, ...]]
) -> NotebookConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> NotebookConfig:
    table_display = ".".join(table_path)

    if raw_config is None:
        return NotebookConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    if not raw_config:
        return NotebookConfig()

    try:
        config = NotebookConfig(**raw_config)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error

    if not isinstance(config.storage_path, str) or not config.storage_path:
        return config

    storage_path = Path(config.storage_path).expanduser()
    if not storage_path.is_absolute():
        storage_path = config_file.parent / storage_path
    return replace(config, storage_path=str(storage_path))


def normalize_config(config: NotebookConfig) -> NotebookConfig:
    """Coerce list-valued settings read from TOML into tuples."""
    tools = config.exam_prep_tools
    if isinstance(tools, str):
        tools = (tools,)
    elif isinstance(tools, list):
        tools = tuple(tools)
    return replace(config, exam_prep_tools=tools)


def validate_config(config: NotebookConfig) -> None:
    """Validate a `NotebookConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If the storage path is empty, tool names are not
            non-empty strings, the fallback flag is not a boolean, or numeric
            limits are not positive integers.

    Examples:
        validate_config(NotebookConfig(max_file_size=1024))
    """
    config = normalize_config(config)

    if not isinstance(config.storage_path, str) or not config.storage_path:
        raise ConfigError("`storage_path` must be a non-empty string")

    if not isinstance(config.exam_prep_tools, tuple) or not all(
        isinstance(tool, str) and tool.strip() for tool in config.exam_prep_tools
    ):
        raise ConfigError("`exam_prep_tools` must be a list of non-empty strings")

    if not isinstance(config.legacy_fallback, bool):
        raise ConfigError("`legacy_fallback` must be a boolean")

    _ensure_integers(
        {
            "max_file_size": config.max_file_size,
            "max_line_length": config.max_line_length,
        }
    )
    _ensure_positive(
        {
            "max_file_size": config.max_file_size,
            "max_line_length": config.max_line_length,
        }
    )


def apply_overrides(config: NotebookConfig, **overrides: object) -> NotebookConfig:
    """Apply override values to a `NotebookConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        NotebookConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `NotebookConfig`.

    Examples:
        updated = apply_overrides(config, storage_path="/tmp/labs.json")
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> NotebookConfig:
    """Load, override, and validate configuration.

    The `LABNOTES_STORAGE` environment variable takes precedence over the
    configured storage path; explicit overrides take precedence over both.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        NotebookConfig: Validated configuration.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), legacy_fallback=True)
    """
    config = load_config(search_path)
    env_storage = os.environ.get(STORAGE_ENV_VAR)
    if env_storage:
        config = replace(config, storage_path=env_storage)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
