"""Configuration files: XDG paths, discovery, reading, writing, and merging.

This module handles all persistent configuration for apinav:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apinav/`` on macOS and Windows. See :func:`get_config_dir`.
* **Global registry** -- a single ``apis.json`` in the config directory
  holding every API configured for the user.
* **Local files** -- ``.apinav.json`` or ``.apinav.yaml`` files found by
  walking from the working directory up to the filesystem root
  (:func:`find_local_configs`). Closer files override farther ones.
* **Merging** -- :func:`merge_api_config` layers one
  :class:`~apinav.models.APIConfig` over another.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
The :class:`~apinav.registry.Registry` builds on these helpers.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml

from apinav.exceptions import ConfigError
from apinav.models import APIConfig, APIProfile, PKCS11Config, TLSConfig

logger = logging.getLogger(__name__)

_APP_NAME = "apinav"
GLOBAL_CONFIG_FILENAME = "apis.json"
LOCAL_CONFIG_FILENAMES = (".apinav.json", ".apinav.yaml")
"""Local config candidates checked in each directory, most preferred first."""

CONFIG_OVERRIDE_ENV = "APINAV_CONFIG"
SCHEMA_KEY = "$schema"
SCHEMA_URL = "https://apinav.dev/schemas/apis.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apinav/`` (default ``~/.config/apinav/``).
    On macOS/Windows: ``~/.apinav/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def global_config_path(config_dir: Optional[Path] = None) -> Path:
    """Path of the global ``apis.json`` registry file."""
    return (config_dir or get_config_dir()) / GLOBAL_CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Reading and writing config files ---


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON or YAML config file into a dict.

    The format is chosen from the file suffix (``.yaml``/``.yml`` for YAML,
    JSON otherwise). An empty file yields an empty dict.

    Args:
        path: The file to read.

    Returns:
        The top-level mapping, keyed by API short name.

    Raises:
        ConfigError: If the file cannot be read, does not parse, or its top
            level is not an object.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not text.strip():
        return {}

    try:
        data = yaml.safe_load(text) if _is_yaml(path) else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid config file {path}: expected an object, got {type(data).__name__}"
        )
    return data


def write_config_file(path: Path, data: dict[str, Any]) -> None:
    """Atomically write *data* to *path* in the format implied by its suffix.

    Raises:
        ConfigError: If the file cannot be written.
    """
    if _is_yaml(path):
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2) + "\n"
    try:
        _atomic_write(path, text)
    except OSError as exc:
        raise ConfigError(f"Cannot write config file {path}: {exc}") from exc


def ensure_global_config(config_dir: Optional[Path] = None) -> Path:
    """Create an empty global registry file when none exists yet.

    Returns:
        The path of the global registry file.
    """
    path = global_config_path(config_dir)
    if not path.is_file():
        logger.debug("Creating empty API registry at %s", path)
        write_config_file(path, {SCHEMA_KEY: SCHEMA_URL})
        try:
            os.chmod(path, 0o600)
        except OSError:
            pass
    return path


def parse_api_entry(name: str, value: Any, source: Path) -> APIConfig:
    """Validate one raw config entry into an :class:`~apinav.models.APIConfig`.

    Raises:
        ConfigError: If the entry is not an object or fails validation.
    """
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid entry for API '{name}' in {source}: expected an object")
    try:
        config = APIConfig.model_validate(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid entry for API '{name}' in {source}: {exc}") from exc
    config.name = name
    return config


# --- Local config discovery ---


def find_local_configs(
    start: Optional[Path] = None, override: Optional[str] = None
) -> list[Path]:
    """Find local config files from the filesystem root down to *start*.

    In every directory from *start* up to the root, the first existing name
    in :data:`LOCAL_CONFIG_FILENAMES` is collected. The result is reversed so
    that merging proceeds root first and the working directory last.

    An explicit *override* (or the ``APINAV_CONFIG`` environment variable)
    that names an existing file replaces the walk entirely.

    Args:
        start: Directory to start from. Defaults to the working directory.
        override: Explicit config file path.

    Returns:
        Config file paths ordered root-to-leaf.
    """
    override = override or os.environ.get(CONFIG_OVERRIDE_ENV) or None
    if override:
        override_path = Path(override).expanduser()
        if override_path.is_file():
            return [override_path.resolve()]
        logger.debug("Specified config file does not exist: %s", override_path)

    found: list[Path] = []
    directory = (start or Path.cwd()).resolve()
    while True:
        for filename in LOCAL_CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                found.append(candidate)
                break
        if directory.parent == directory:
            break
        directory = directory.parent

    found.reverse()
    return found


def resolve_spec_files(spec_files: list[str], config_dir: Path) -> list[str]:
    """Resolve relative spec file paths against the declaring file's directory.

    URLs and absolute paths are returned untouched.
    """
    resolved: list[str] = []
    for spec_file in spec_files:
        if spec_file.startswith(("http://", "https://")) or os.path.isabs(spec_file):
            resolved.append(spec_file)
        else:
            resolved.append(str(config_dir / spec_file))
    return resolved


# --- Deep merge ---


def merge_profile(dest: APIProfile, source: APIProfile) -> None:
    """Merge *source* into *dest* in place.

    A non-empty base overrides; headers, query parameters, and auth params
    are merged key by key; a given auth name overrides.
    """
    if source.base:
        dest.base = source.base
    dest.headers.update(source.headers)
    dest.query.update(source.query)

    if source.auth is not None:
        if dest.auth is None:
            dest.auth = source.auth.model_copy(deep=True)
        else:
            dest.auth.name = source.auth.name
            dest.auth.params.update(source.auth.params)


def _merge_tls(dest: TLSConfig, source: TLSConfig) -> None:
    if source.insecure:
        dest.insecure = True
    for field in ("cert", "key", "ca_cert"):
        value = getattr(source, field)
        if value:
            setattr(dest, field, value)

    if source.pkcs11 is not None:
        if dest.pkcs11 is None:
            dest.pkcs11 = PKCS11Config()
        if source.pkcs11.path:
            dest.pkcs11.path = source.pkcs11.path
        if source.pkcs11.label:
            dest.pkcs11.label = source.pkcs11.label


def merge_api_config(dest: APIConfig, source: APIConfig) -> None:
    """Deep-merge *source* into *dest* in place.

    This lets one API's configuration be built up across several files:

    * ``base`` and ``operation_base`` are replaced when *source* sets them.
    * ``spec_files`` are appended, skipping values already present.
    * ``profiles`` are merged by name via :func:`merge_profile`.
    * ``tls`` is merged field by field, including the PKCS#11 settings.
    """
    if source.base:
        dest.base = source.base
    if source.operation_base:
        dest.operation_base = source.operation_base

    for spec_file in source.spec_files:
        if spec_file not in dest.spec_files:
            dest.spec_files.append(spec_file)

    for profile_name, profile in source.profiles.items():
        if profile_name not in dest.profiles:
            dest.profiles[profile_name] = APIProfile()
        merge_profile(dest.profiles[profile_name], profile)

    if source.tls is not None:
        if dest.tls is None:
            dest.tls = TLSConfig()
        _merge_tls(dest.tls, source.tls)
