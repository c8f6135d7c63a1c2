"""
Run user plugins named in the ``plugins`` section of the site config.

A plugin name resolves to an installed entry point in the ``sitepipe.plugins``
group, or else to ``<plugin_path>/<name>.py``. The factory found there is
called with ``file=`` and ``data=`` and its ``init()`` result is awaited when
it is awaitable::

    class Plugin:
        def __init__(self, file, data):
            self.file = file

        async def init(self):
            self.file.source = self.file.source.replace("{{year}}", "2024")

Plugins run one after another. Any failure aborts the build.
"""

import importlib.util
import inspect
import logging
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from mkdocs.exceptions import PluginError
from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, project_dir
from sitepipe.core.files import FileRecord
from sitepipe.core.store import BuildStore

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "sitepipe.plugins"
FACTORY_NAME = "Plugin"
PHASES = ("before", "default", "after")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=ENTRY_POINT_GROUP)


def load_module(name: str, path: Path):
    spec = importlib.util.spec_from_file_location(f"sitepipe_plugins.{name}", path)
    if spec is None or spec.loader is None:
        raise PluginError(f"[custom] unable to load plugin '{name}' from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def find_factory(module) -> Optional[Callable]:
    """The module's ``Plugin`` attribute, else its first class defining ``init``."""
    factory = getattr(module, FACTORY_NAME, None)
    if factory is not None:
        return factory
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if obj.__module__ == module.__name__ and callable(getattr(obj, "init", None)):
            return obj
    return None


class CustomPluginsPlugin(BasePlugin):
    def resolve(self, name: str, config: SiteConfig, store: BuildStore) -> Callable:
        """Return the factory for ``name``, loading it on first use."""
        if name in store.plugin_cache:
            return store.plugin_cache[name]

        factory = None
        for entry in _iter_entry_points():
            if entry.name == name:
                try:
                    factory = entry.load()
                except Exception as e:
                    raise PluginError(f"[custom] failed to load plugin entry point '{name}': {e}") from e
                break

        if factory is None:
            path = project_dir(config) / config["plugin_path"] / f"{name}.py"
            if not path.is_file():
                raise PluginError(f"[custom] plugin '{name}' not found (looked for entry point and {path})")
            try:
                module = load_module(name, path)
            except PluginError:
                raise
            except Exception as e:
                raise PluginError(f"[custom] failed to import plugin '{name}' from {path}: {e}") from e
            factory = find_factory(module)
            if factory is None:
                raise PluginError(f"[custom] plugin '{name}' defines no '{FACTORY_NAME}' or class with init()")

        store.plugin_cache[name] = factory
        log.debug(f"[custom] loaded plugin '{name}'")
        return factory

    async def run(
        self,
        phase: str,
        *,
        config: SiteConfig,
        store: BuildStore,
        data: dict,
        file: Optional[FileRecord] = None,
    ) -> None:
        """Run every plugin configured for ``phase``, in order."""
        for name in config["plugins"][phase] or []:
            factory = self.resolve(name, config, store)
            try:
                result: Any = factory(file=file, data=data).init()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                raise PluginError(f"[custom] plugin '{name}' failed: {e}") from e
            log.debug(f"[custom] ran '{name}' ({phase})")

    async def on_file(self, file: FileRecord, *, config: SiteConfig, store: BuildStore, data: dict) -> None:
        await self.run("default", config=config, store=store, data=data, file=file)
