"""Configuration file loader for renvkeeper.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``renvkeeper.toml`` — settings under ``[renvkeeper]`` table
- ``pyproject.toml`` — settings under ``[tool.renvkeeper]`` table

Discovery order:

1. Explicit path from ``--config`` or ``RENVKEEPER_CONFIG``
2. ``renvkeeper.toml`` in the project directory
3. ``pyproject.toml`` with ``[tool.renvkeeper]`` section in the project directory

Configuration precedence: defaults < config file < CLI args.

Typical usage::

    config = load_config(project_dir=Path("my-analysis"))  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``renvkeeper.toml``)::

    [renvkeeper]
    strict = false
    extra_placeholders = ["mydata"]
    skip_dirs = ["sandbox"]
    bioconductor_version = "3.20"
"""

from __future__ import annotations


import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type
from dataclasses import dataclass, field, fields

from packaging.version import InvalidVersion, Version

from renvkeeper.exceptions import ConfigError
from renvkeeper.utils.logger import get_logger
from renvkeeper.constants import (
    DEFAULT_BIOC_VERSION,
    DEFAULT_CRAN_URL,
    DEFAULT_DEPENDENCY_FIELD,
    DEFAULT_R_VERSION,
    DEPENDENCY_FIELDS,
)

logger = get_logger("config")

CONFIG_FILE_NAME = "renvkeeper.toml"
SECTION_NAME = "renvkeeper"


@dataclass
class RenvKeeperConfig:
    """Parsed and validated renvkeeper configuration.

    Contains settings from ``renvkeeper.toml`` or ``pyproject.toml``.
    All fields have defaults, so empty config files are valid.

    Attributes:
        strict: Also scan ``tests``, ``vignettes`` and ``inst``.
        validate_sources: Check registries before pinning a package.
        dependency_field: DESCRIPTION field that is read and edited.
        extra_base_packages: Additional names treated like base packages.
        extra_placeholders: Additional names never reported as packages.
        skip_files: Basenames excluded from scanning, on top of the defaults.
        skip_dirs: Path fragments excluded from scanning, on top of the
            defaults.
        check_cran: Query CRAN during source validation.
        check_bioconductor: Query Bioconductor during source validation.
        check_github: Query GitHub for ``owner/repo`` names.
        bioconductor_version: Bioconductor release to consult.
        r_version: R version written by ``init-lock``.
        cran_url: CRAN mirror written by ``init-lock``.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    strict: bool = True
    validate_sources: bool = True
    dependency_field: str = DEFAULT_DEPENDENCY_FIELD
    extra_base_packages: List[str] = field(default_factory=list)
    extra_placeholders: List[str] = field(default_factory=list)
    skip_files: List[str] = field(default_factory=list)
    skip_dirs: List[str] = field(default_factory=list)
    check_cran: bool = True
    check_bioconductor: bool = True
    check_github: bool = True
    bioconductor_version: str = DEFAULT_BIOC_VERSION
    r_version: str = DEFAULT_R_VERSION
    cran_url: str = DEFAULT_CRAN_URL

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Excludes ``source_path`` metadata.
        """
        return {
            f.name: getattr(self, f.name) for f in fields(self) if f.name != "source_path"
        }


# Option name -> expected TOML type. Lists are lists of strings.
_OPTION_TYPES: Dict[str, Type[Any]] = {
    "strict": bool,
    "validate_sources": bool,
    "dependency_field": str,
    "extra_base_packages": list,
    "extra_placeholders": list,
    "skip_files": list,
    "skip_dirs": list,
    "check_cran": bool,
    "check_bioconductor": bool,
    "check_github": bool,
    "bioconductor_version": str,
    "r_version": str,
    "cran_url": str,
}

_VERSION_OPTIONS: Tuple[str, ...] = ("bioconductor_version", "r_version")


def discover_config_file(
    explicit_path: Optional[Path] = None,
    project_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``RENVKEEPER_CONFIG``)
    2. ``renvkeeper.toml`` in ``project_dir``
    3. ``pyproject.toml`` with ``[tool.renvkeeper]`` section in ``project_dir``

    Args:
        explicit_path: Explicit config path. If provided, must exist.
        project_dir: Directory searched for config files. Defaults to the
            current working directory.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    base = project_dir if project_dir is not None else Path.cwd()

    renvkeeper_toml = base / CONFIG_FILE_NAME
    if renvkeeper_toml.is_file():
        logger.debug("Found %s: %s", CONFIG_FILE_NAME, renvkeeper_toml)
        return renvkeeper_toml

    pyproject_toml = base / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_section(pyproject_toml):
        logger.debug("Found [tool.%s] in pyproject.toml: %s", SECTION_NAME, pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found in %s", base)
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if pyproject.toml contains a ``[tool.renvkeeper]`` section.

    An unparsable pyproject.toml is treated as having no section.
    """
    try:
        raw = _read_toml(path)
    except ConfigError as exc:
        logger.debug("Ignoring unreadable %s: %s", path, exc)
        return False
    tool = raw.get("tool", {})
    return isinstance(tool, dict) and SECTION_NAME in tool


def load_config(
    config_path: Optional[Path] = None,
    *,
    project_dir: Optional[Path] = None,
) -> RenvKeeperConfig:
    """Load and validate renvkeeper configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).
        project_dir: Directory searched during auto-discovery.

    Returns:
        Validated :class:`RenvKeeperConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path, project_dir)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return RenvKeeperConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get(SECTION_NAME, {})
    else:
        section = raw.get(SECTION_NAME, {})

    if not isinstance(section, dict):
        raise ConfigError(
            f"[{SECTION_NAME}] must be a table",
            config_path=str(resolved),
        )

    if not section:
        logger.debug("Config file found but no %s section, using defaults", SECTION_NAME)
        return RenvKeeperConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _check_type(name: str, value: Any, config_path: str) -> None:
    expected = _OPTION_TYPES[name]

    if expected is list:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(
                f"{name} must be a list of strings",
                config_path=config_path,
                option=name,
            )
        return

    if not isinstance(value, expected):
        raise ConfigError(
            f"{name} must be a {_type_label(expected)}, got {type(value).__name__}",
            config_path=config_path,
            option=name,
        )


def _type_label(expected: Type[Any]) -> str:
    return "boolean" if expected is bool else "string"


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> RenvKeeperConfig:
    """Parse and validate the ``[renvkeeper]`` or ``[tool.renvkeeper]`` table.

    Rejects unknown keys, type mismatches, unknown dependency fields and
    malformed version strings.

    Raises:
        ConfigError: Unknown keys or invalid values.
    """
    unknown = set(section) - set(_OPTION_TYPES)
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    config = RenvKeeperConfig()

    for name, value in section.items():
        _check_type(name, value, config_path)
        setattr(config, name, list(value) if isinstance(value, list) else value)

    if config.dependency_field not in DEPENDENCY_FIELDS:
        raise ConfigError(
            f"dependency_field must be one of {', '.join(DEPENDENCY_FIELDS)}, "
            f"got {config.dependency_field!r}",
            config_path=config_path,
            option="dependency_field",
        )

    for name in _VERSION_OPTIONS:
        value = getattr(config, name)
        try:
            Version(value)
        except InvalidVersion as exc:
            raise ConfigError(
                f"{name} is not a valid version: {value!r}",
                config_path=config_path,
                option=name,
            ) from exc

    return config
