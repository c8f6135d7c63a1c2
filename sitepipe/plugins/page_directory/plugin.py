"""
Convert ``name.html`` pages into ``name/index.html`` so URLs need no extension.
"""

import asyncio
import logging
from pathlib import Path
from typing import List

from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, dist_dir
from sitepipe.core.files import FileRecord, is_allowed_type

log = logging.getLogger(__name__)


def directory_path(path: Path) -> Path:
    return path.with_suffix("") / "index.html"


def _move(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        log.warning(f"[page_directory] {target} already exists and will be replaced by {source}")
    source.replace(target)


class PageDirectoryPlugin(BasePlugin):
    def should_convert(self, file: FileRecord, root: Path, exclude_paths: List[str]) -> bool:
        if file.is_dynamic or not is_allowed_type(file, allow=("html",)):
            return False
        if file.name == "index":
            return False
        try:
            rel = file.path.relative_to(root).as_posix()
        except ValueError:
            rel = file.path.as_posix()
        return not any(excluded and excluded in rel for excluded in exclude_paths)

    async def convert(self, file: FileRecord) -> None:
        target = directory_path(file.path)
        await asyncio.to_thread(_move, file.path, target)
        log.debug(f"[page_directory] {file.path} converted to {target}")
        file.path = target

    async def on_files(self, files: List[FileRecord], *, config: SiteConfig) -> List[FileRecord]:
        """Move every eligible page on disk and update its record in place."""
        options = config["convert_page_to_directory"]
        if options["disabled"]:
            return files

        root = dist_dir(config)
        targets = [f for f in files if self.should_convert(f, root, options["exclude_paths"])]
        await asyncio.gather(*(self.convert(f) for f in targets))
        if targets:
            log.info(f"[page_directory] converted {len(targets)} pages to directories")
        return files
