"""
The build pipeline.

A run has three phases: *before* (fresh dist, copy of the sources, custom
``before`` plugins, discovery, directory conversion), a strictly sequential
per-file loop, and *after* (sitemap, bundle build, custom ``after`` plugins).
Within the loop every stage sees the same ``FileRecord`` and ``BuildStore``.
"""

import asyncio
import inspect
import logging
import shutil
import time
from typing import List, Optional

from mkdocs.exceptions import Abort, BuildError

from sitepipe.config import SiteConfig, dist_dir, load_data, src_dir
from sitepipe.core import files
from sitepipe.core.files import FileRecord
from sitepipe.core.store import BuildStore
from sitepipe.plugins.active_links.plugin import ActiveLinksPlugin
from sitepipe.plugins.bundle.plugin import BundlePlugin
from sitepipe.plugins.custom.plugin import CustomPluginsPlugin
from sitepipe.plugins.external_links.plugin import ExternalLinksPlugin
from sitepipe.plugins.include.plugin import IncludePlugin
from sitepipe.plugins.inline.plugin import InlinePlugin
from sitepipe.plugins.minify.plugin import MinifyPlugin
from sitepipe.plugins.page_directory.plugin import PageDirectoryPlugin
from sitepipe.plugins.sitemap.plugin import SitemapPlugin
from sitepipe.plugins.template_strings.plugin import TemplateStringsPlugin

log = logging.getLogger(__name__)

# Source files that are never copied to the dist directory.
IGNORED_SOURCES = ("*.md",)


class Build:
    def __init__(self, config: SiteConfig, data: Optional[dict] = None):
        self.config = config
        self.data = load_data(config) if data is None else data
        self.store = BuildStore()
        self.files: List[FileRecord] = []

        self.custom = CustomPluginsPlugin()
        self.page_directory = PageDirectoryPlugin()
        self.template_strings = TemplateStringsPlugin(self.data)
        self.external_links = ExternalLinksPlugin(config["replace_external_link_protocol"])
        self.include = IncludePlugin()
        self.inline = InlinePlugin()
        self.active_links = ActiveLinksPlugin(config["active_link"])
        self.bundle = BundlePlugin(config["bundle"])
        self.minify = MinifyPlugin(config["minify"])
        self.sitemap = SitemapPlugin(config["sitemap"])

    @property
    def stages(self) -> list:
        """Per-file stages, in the order they run."""
        return [
            self.template_strings,
            self.external_links,
            self.include,
            self.inline,
            self.active_links,
            self.bundle,
            self.minify,
        ]

    # -------------------------------
    # Before
    # -------------------------------

    def prepare_dist(self) -> None:
        """Recreate the dist directory from the source tree."""
        src, dist = src_dir(self.config), dist_dir(self.config)
        if not src.is_dir():
            raise BuildError(f"[build] source directory {src} does not exist")
        if dist.exists():
            shutil.rmtree(dist)
        shutil.copytree(src, dist, ignore=shutil.ignore_patterns(*IGNORED_SOURCES))
        log.info(f"[build] content from {src} copied to {dist}")

    def discover(self) -> List[FileRecord]:
        dist = dist_dir(self.config)
        found = files.discover_files(dist, self.config["include_paths"], self.config["exclude_paths"])
        return files.add_dynamic_files(found, dist, self.data)

    # -------------------------------
    # Per file
    # -------------------------------

    async def process_file(self, file: FileRecord) -> FileRecord:
        await files.load_source(file)
        await self.custom.on_file(file, config=self.config, store=self.store, data=self.data)
        for stage in self.stages:
            result = stage.on_file(file, config=self.config, store=self.store)
            if inspect.isawaitable(result):
                await result
        await files.write_text(file.path, file.source)
        log.debug(f"[build] wrote {file.path}")
        return file

    # -------------------------------
    # Run
    # -------------------------------

    async def run(self) -> List[FileRecord]:
        start = time.monotonic()
        self.prepare_dist()
        await self.custom.run("before", config=self.config, store=self.store, data=self.data)

        self.files = self.discover()
        await self.page_directory.on_files(self.files, config=self.config)

        log.info(f"[build] processing {len(self.files)} files")
        for file in self.files:
            await self.process_file(file)

        await self.sitemap.on_post_build(config=self.config, store=self.store)
        await self.bundle.on_post_build(config=self.config, store=self.store)
        await self.custom.run("after", config=self.config, store=self.store, data=self.data)

        log.info(f"[build] site built in {time.monotonic() - start:.2f} seconds")
        return self.files


def build(config: SiteConfig, data: Optional[dict] = None) -> List[FileRecord]:
    """Run a complete build; a ``BuildError`` aborts the process."""
    try:
        return asyncio.run(Build(config, data).run())
    except Exception as e:
        if isinstance(e, BuildError):
            log.error(str(e))
            raise Abort("Aborted with a BuildError!")
        raise
