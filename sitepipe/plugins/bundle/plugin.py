"""
Bundle grouped stylesheets and scripts into one file per group.

Pages mark assets with ``bundle="<group>"`` (or ``data-bundle``)::

    <script bundle="vendor" src="/assets/scripts/a.js"></script>
    <script bundle="vendor" src="/assets/scripts/b.js" no-minify></script>

*Add* runs per page: entries are recorded in the build store and every marker
is removed. A single reference to ``/<dist_path>/bundle-<group>.<kind>`` is
inserted where the last marker of each group stood, so same-page code declared
after the group still runs after it.

*Build* runs once after every page is written: each group's sources are read
from the source tree in encounter order, minified unless marked
``no-minify``, and concatenated.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Tuple
from urllib.parse import urlsplit

from bs4 import Tag
from mkdocs.config import config_options as c
from mkdocs.exceptions import BuildError
from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, dist_dir, is_development, load_plugin_config, src_dir
from sitepipe.core import files
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, is_allowed_type
from sitepipe.core.store import BuildStore, BundleEntry
from sitepipe.plugins.minify.plugin import minify_asset

log = logging.getLogger(__name__)

# kind -> (element, attribute holding the asset path)
KINDS: Dict[str, Tuple[str, str]] = {
    "css": ("link", "href"),
    "js": ("script", "src"),
}
DEFAULT_GROUP = "default"
LOCAL_ORIGIN = "localhost"


def group_name(raw: str) -> str:
    """Normalize a group name: lowercase, spaces to hyphens."""
    name = (raw or "").strip().replace(" ", "-").lower()
    return name or DEFAULT_GROUP


def asset_path(value: str) -> str:
    """Root-relative asset path with any local preview origin stripped."""
    value = (value or "").strip()
    parts = urlsplit(value)
    if parts.hostname == LOCAL_ORIGIN:
        value = parts.path
    elif parts.scheme or parts.netloc:
        return value
    return "/" + value.lstrip("/")


def should_minify(el: Tag) -> bool:
    return not (el.has_attr("no-minify") or el.has_attr("data-no-minify"))


class BundlePlugin(BasePlugin):
    config_scheme = (
        ('enabled',        c.Type(bool, default=True)),
        ('dist_path',      c.Type(str, default="assets/bundle")),
        ('in_development', c.Type(bool, default=False)),
    )

    def __init__(self, options=None):
        super().__init__()
        load_plugin_config(self, options, "bundle")

    def bundle_url(self, kind: str, group: str) -> str:
        parts = [p for p in (self.config["dist_path"].strip("/"), f"bundle-{group}.{kind}") if p]
        return "/" + "/".join(parts)

    def reference_tag(self, doc: Document, kind: str, group: str) -> Tag:
        if kind == "css":
            return doc.new_tag("link", rel="stylesheet", href=self.bundle_url(kind, group))
        return doc.new_tag("script", src=self.bundle_url(kind, group))

    # -------------------------------
    # Add
    # -------------------------------

    def group_and_insert(self, doc: Document, targets: List[Tag], kind: str, store: BuildStore) -> None:
        """Record every target in the store, then swap markers for one reference per group."""
        _, path_attr = KINDS[kind]
        counters: Dict[str, int] = {}
        indexed: List[Tuple[Tag, str, int]] = []

        for el in targets:
            group = group_name(el.get("data-bundle") or el.get("bundle"))
            path = el.get(path_attr)
            if path:
                store.add_bundle_entry(kind, group, asset_path(path), should_minify(el))
            index = counters.get(group, 0)
            counters[group] = index + 1
            indexed.append((el, group, index))

        for el, group, index in indexed:
            if index == counters[group] - 1:
                doc.insert_before(el, self.reference_tag(doc, kind, group))
            doc.remove(el)

    def on_file(self, file: FileRecord, *, config: SiteConfig, store: BuildStore) -> None:
        if not self.config["enabled"]:
            return
        if is_development(config) and not self.config["in_development"]:
            return
        if not is_allowed_type(file, allow=("html",)) or "bundle" not in file.source:
            return

        doc = Document.parse(file.source)
        found = 0
        for kind, (tag, _) in KINDS.items():
            targets = doc.select(f"{tag}[data-bundle], {tag}[bundle]")
            if targets:
                self.group_and_insert(doc, targets, kind, store)
                found += len(targets)

        if found:
            file.source = doc.serialize()
            log.debug(f"[bundle] found {found} bundle targets in {file.path}")

    # -------------------------------
    # Build
    # -------------------------------

    async def read_entry(self, entry: BundleEntry, kind: str, root: Path) -> str:
        if "://" in entry.path or entry.path.startswith("//"):
            raise BuildError(f"[bundle] cannot bundle remote asset {entry.path}")
        target = root / entry.path.lstrip("/")
        try:
            text = await files.read_text(target)
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(f"[bundle] error fetching the source from {target}: {e}") from e
        return minify_asset(text, kind) if entry.minify else text

    async def build_bundle(self, kind: str, group: str, entries: List[BundleEntry], config: SiteConfig) -> Path:
        root = src_dir(config)
        parts = [await self.read_entry(entry, kind, root) for entry in entries]
        output = dist_dir(config) / self.config["dist_path"].strip("/") / f"bundle-{group}.{kind}"
        await files.write_text(output, "\n".join(parts))
        log.debug(f"[bundle] wrote {output} ({len(entries)} sources)")
        return output

    async def on_post_build(self, *, config: SiteConfig, store: BuildStore) -> List[Path]:
        if not self.config["enabled"]:
            return []
        jobs = [
            self.build_bundle(kind, group, entries, config)
            for kind, groups in store.bundle_groups.items()
            for group, entries in groups.items()
        ]
        if not jobs:
            return []
        written = await asyncio.gather(*jobs)
        plural = "" if len(written) == 1 else "s"
        log.info(f"[bundle] created {len(written)} bundle file{plural}")
        return list(written)
