"""The in-memory registry of configured APIs.

A :class:`Registry` is built once at startup by :meth:`Registry.load` and then
passed by reference to everything that needs API configuration. It owns:

* the merged :class:`~apinav.models.APIConfig` entries, in registration order;
* the provenance of each entry (which local files contributed to it);
* the document loaders registered for API descriptions;
* the compiled :class:`~apinav.models.API` of each API, built lazily on first
  use and cached for the life of the registry.

Load order is global registry first, then local files root-to-leaf, so the
file closest to the working directory has the last word. Loading is not
safe against concurrent edits of the backing files, and saving takes no
locks: a single writer process is assumed.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional
from urllib.parse import urljoin

from apinav.config import (
    SCHEMA_KEY,
    ensure_global_config,
    find_local_configs,
    global_config_path,
    merge_api_config,
    parse_api_entry,
    read_config_file,
    resolve_spec_files,
    write_config_file,
)
from apinav.exceptions import ConfigError, SpecError, UnknownAPIError, UnknownProfileError
from apinav.models import API, APIConfig, APIProfile, Operation

if TYPE_CHECKING:
    from apinav.openapi.base import SpecLoader

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
GLOBAL_TARGET = "Global config"
"""Save-target option that stands for the global registry file."""

Fetcher = Callable[[str], tuple[str, str]]
"""Callable returning ``(text, content_type)`` for a document location."""

Chooser = Callable[[list[str]], str]
"""Callable picking one save target out of the offered options."""


class Registry:
    """Named API configurations plus their compiled descriptions.

    Args:
        config_dir: Directory holding the global ``apis.json``. Defaults to
            :func:`~apinav.config.get_config_dir`.
        cwd: Working directory used for discovery and for displaying save
            targets. Defaults to the process working directory.

    Example::

        registry = Registry.load()
        registry.register_loader(OpenAPILoader())
        match = registry.find_api("https://api.example.com/items/1")
        if match is not None:
            name, config = match
            for op in registry.operations(name):
                print(op.name, op.method, op.uri_template)
    """

    def __init__(self, config_dir: Optional[Path] = None, cwd: Optional[Path] = None) -> None:
        self.config_dir = config_dir
        self.cwd = cwd
        self.apis: dict[str, APIConfig] = {}
        self.sources: dict[str, list[Path]] = {}
        self._loaders: list[SpecLoader] = []
        self._compiled: dict[str, API] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        config_dir: Optional[Path] = None,
        cwd: Optional[Path] = None,
        override: Optional[str] = None,
    ) -> Registry:
        """Build a registry from the global file and all local config files.

        The global ``apis.json`` is created empty when missing. Its entries
        are registered in file order, then every local file found by
        :func:`~apinav.config.find_local_configs` is merged root-to-leaf.
        Relative ``spec_files`` in a local file are resolved against that
        file's directory.

        Args:
            config_dir: Directory of the global registry file.
            cwd: Directory to start local discovery from.
            override: Explicit local config file replacing discovery.

        Returns:
            The loaded registry.

        Raises:
            ConfigError: If any file is unreadable or invalid, or two APIs
                share the same base URI. Startup cannot continue without a
                usable registry.
        """
        registry = cls(config_dir=config_dir, cwd=cwd)

        global_path = ensure_global_config(config_dir)
        for name, value in read_config_file(global_path).items():
            if name == SCHEMA_KEY:
                continue
            registry.apis[name] = parse_api_entry(name, value, global_path)

        local_paths = find_local_configs(start=cwd, override=override)
        logger.debug("Found %d local config(s)", len(local_paths))
        for path in local_paths:
            registry._merge_local_file(path)

        registry._check_unique_bases()
        return registry

    def _merge_local_file(self, path: Path) -> None:
        logger.debug("Loading local config: %s", path)
        for name, value in read_config_file(path).items():
            if name == SCHEMA_KEY:
                continue
            local = parse_api_entry(name, value, path)
            local.spec_files = resolve_spec_files(local.spec_files, path.parent)

            existing = self.apis.get(name)
            if existing is not None:
                merge_api_config(existing, local)
            else:
                self.apis[name] = local
            self.sources.setdefault(name, []).append(path)

    def _check_unique_bases(self) -> None:
        seen: dict[str, str] = {}
        for name, config in self.apis.items():
            if config.base in seen:
                raise ConfigError(
                    f"multiple APIs configured with the same base URL: {config.base} "
                    f"('{seen[config.base]}' and '{name}')"
                )
            seen[config.base] = name

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """Configured API names in registration order."""
        return list(self.apis)

    def get(self, name: str) -> APIConfig:
        """Return the configuration registered under *name*.

        Raises:
            UnknownAPIError: If no API with that name is configured.
        """
        try:
            return self.apis[name]
        except KeyError:
            raise UnknownAPIError(name, list(self.apis)) from None

    def find_api(
        self,
        uri: str,
        api_name: Optional[str] = None,
        profile: str = DEFAULT_PROFILE,
    ) -> Optional[tuple[str, APIConfig]]:
        """Find the configured API whose base URI is a prefix of *uri*.

        APIs are checked in registration order and the first match wins; no
        longest-prefix disambiguation is done. With a non-default *profile*,
        APIs that do not declare it are skipped. The selected profile's base
        is used when it defines one, the same as :meth:`effective_base`, and
        this includes a declared default profile.

        Args:
            uri: The request URI.
            api_name: Only consider the API with this name.
            profile: Active profile name.

        Returns:
            ``(name, config)`` of the first match, or ``None``.
        """
        for name, config in self.apis.items():
            if api_name and name != api_name:
                continue

            selected = config.profiles.get(profile)
            if selected is None and profile != DEFAULT_PROFILE:
                continue
            base = selected.base if selected is not None and selected.base else config.base
            if base and uri.startswith(base):
                return name, config
        return None

    def validate_profile(self, name: str, profile: str) -> None:
        """Check that *profile* may be used with the API *name*.

        The default profile is always valid, even when not declared.

        Raises:
            UnknownAPIError: If the API is not configured.
            UnknownProfileError: If the API does not declare the profile.
        """
        config = self.get(name)
        if profile == DEFAULT_PROFILE or profile in config.profiles:
            return
        raise UnknownProfileError(profile, name, list(config.profiles))

    def effective_profile(self, name: str, profile: str = DEFAULT_PROFILE) -> APIProfile:
        """Return the selected profile, validated, or an empty default one."""
        self.validate_profile(name, profile)
        return self.get(name).profiles.get(profile) or APIProfile()

    def effective_base(self, name: str, profile: str = DEFAULT_PROFILE) -> str:
        """Base URI for *name* under *profile*: the profile base, else the API base."""
        return self.effective_profile(name, profile).base or self.get(name).base

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def add(self, config: APIConfig) -> None:
        """Register a new API or merge *config* into an existing entry.

        Raises:
            ConfigError: If another API already uses the same base URI.
        """
        existing = self.apis.get(config.name)
        candidate = config
        if existing is not None:
            candidate = existing.model_copy(deep=True)
            merge_api_config(candidate, config)

        self.apis[config.name] = candidate
        try:
            self._check_unique_bases()
        except ConfigError:
            if existing is None:
                del self.apis[config.name]
            else:
                self.apis[config.name] = existing
            raise
        self._compiled.pop(config.name, None)

    def save_targets(self, name: str) -> list[str]:
        """Options offered to a chooser when saving *name*.

        Each local source, shown relative to the working directory where
        possible, followed by :data:`GLOBAL_TARGET`. APIs without local
        sources only offer the global target.
        """
        cwd = self.cwd or Path.cwd()
        options = []
        for path in self.sources.get(name, []):
            try:
                options.append(os.path.relpath(path, cwd))
            except ValueError:
                options.append(str(path))
        options.append(GLOBAL_TARGET)
        return options

    def save(self, name: str, choose: Optional[Chooser] = None) -> Path:
        """Write the configuration of *name* back to disk.

        An API that came from local files is saved to its only local source,
        or, when several local files contributed, to the one *choose* picks
        out of :meth:`save_targets`. Without a chooser the most-local file is
        used. APIs without local sources are saved to the global registry.

        Args:
            name: The API to save.
            choose: Optional interactive chooser.

        Returns:
            The file that was written.

        Raises:
            ConfigError: If the API is unknown or the file cannot be written.
        """
        config = self.get(name)
        sources = self.sources.get(name, [])

        target = global_config_path(self.config_dir)
        if len(sources) == 1:
            target = sources[0]
        elif len(sources) > 1:
            target = sources[-1]
            if choose is not None:
                options = self.save_targets(name)
                choice = choose(options)
                if choice == GLOBAL_TARGET:
                    target = global_config_path(self.config_dir)
                elif choice in options:
                    target = sources[options.index(choice)]

        self._write_entry(target, config)
        return target

    def _write_entry(self, path: Path, config: APIConfig) -> None:
        data = read_config_file(path) if path.is_file() else {}
        data[config.name] = config.to_file_entry()
        write_config_file(path, data)
        logger.debug("Saved API '%s' to %s", config.name, path)

    # ------------------------------------------------------------------
    # API descriptions
    # ------------------------------------------------------------------

    def register_loader(self, loader: SpecLoader) -> None:
        """Add a document loader; loaders are tried in registration order."""
        self._loaders.append(loader)

    def _operation_base(self, config: APIConfig) -> str:
        if config.operation_base:
            return urljoin(config.base, config.operation_base)
        return config.base

    def _pick_loader(self, text: str, content_type: str, location: str) -> SpecLoader:
        for loader in self._loaders:
            if loader.detect(text, content_type):
                return loader
        raise SpecError(f"No registered loader understands the API description at {location}")

    def load_api(self, name: str, fetch: Optional[Fetcher] = None) -> API:
        """Compile the API descriptions of *name*, at most once per registry.

        Every entry of ``spec_files`` is fetched and compiled and the results
        are combined. When no spec files are configured, each loader's
        location hints are tried relative to the API base and the first
        description found is used.

        Args:
            name: The API to compile.
            fetch: Document fetcher, defaults to
                :func:`~apinav.openapi.loader.load_document`.

        Returns:
            The compiled API, cached for later calls.

        Raises:
            UnknownAPIError: If the API is not configured.
            SpecError: If no description can be found or compiled. Nothing is
                cached in that case and other APIs are unaffected.
        """
        if name in self._compiled:
            return self._compiled[name]

        config = self.get(name)
        if fetch is None:
            from apinav.openapi.loader import load_document

            fetch = load_document

        base = self._operation_base(config)
        compiled: list[API] = []
        if config.spec_files:
            for location in config.spec_files:
                text, content_type = fetch(location)
                loader = self._pick_loader(text, content_type, location)
                logger.debug("Compiling %s for API '%s'", location, name)
                compiled.append(loader.load(base, location, text))
        else:
            compiled.append(self._discover(name, config, base, fetch))

        api = _combine(compiled)
        self._compiled[name] = api
        return api

    def _discover(self, name: str, config: APIConfig, base: str, fetch: Fetcher) -> API:
        for loader in self._loaders:
            for hint in loader.location_hints:
                location = urljoin(config.base, hint)
                try:
                    text, content_type = fetch(location)
                except SpecError as exc:
                    logger.debug("No description at %s: %s", location, exc)
                    continue
                if loader.detect(text, content_type):
                    logger.debug("Discovered description for API '%s' at %s", name, location)
                    return loader.load(base, location, text)
        raise SpecError(f"No API description found for API '{name}' at {config.base}")

    def operations(self, name: str) -> list[Operation]:
        """Compiled operations of *name*, compiling on first use."""
        return self.load_api(name).operations


def _combine(apis: list[API]) -> API:
    combined = API()
    for api in apis:
        combined.short = combined.short or api.short
        combined.long = combined.long or api.long
        combined.operations.extend(api.operations)
        combined.auth.extend(api.auth)
        if combined.auto_config is None:
            combined.auto_config = api.auto_config
    return combined


def create_default_registry(
    config_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
    override: Optional[str] = None,
) -> Registry:
    """Load the registry and register the built-in document loaders.

    The following loaders are registered:

    - :class:`~apinav.openapi.loader.OpenAPILoader` -- OpenAPI 3.x.

    Returns:
        A loaded :class:`Registry`.

    Raises:
        ConfigError: If the configuration cannot be loaded.
    """
    from apinav.openapi.loader import OpenAPILoader

    registry = Registry.load(config_dir=config_dir, cwd=cwd, override=override)
    registry.register_loader(OpenAPILoader())
    return registry
