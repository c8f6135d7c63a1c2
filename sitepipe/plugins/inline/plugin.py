"""
Replace ``<link inline href="/x.css">`` and ``<script inline src="/x.js">``
with ``<style>``/``<script>`` elements holding the file content.
"""

import asyncio
import logging

from bs4 import Tag
from mkdocs.exceptions import BuildError
from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, dist_dir, is_development
from sitepipe.core import files
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, is_allowed_type
from sitepipe.core.store import BuildStore

log = logging.getLogger(__name__)

LOCAL_ORIGIN = "https://localhost"


def inline_selector(tag: str, attr: str) -> str:
    return f"{tag}[{attr}], {tag}[data-{attr}]"


def format_path(path: str) -> str:
    """Strip a local preview origin from an asset reference."""
    return path.split(LOCAL_ORIGIN)[-1]


class InlinePlugin(BasePlugin):
    async def fetch(self, path: str, config: SiteConfig, store: BuildStore) -> str:
        cached = store.cached_inline.get(path)
        if cached is not None:
            return cached
        target = dist_dir(config) / path.lstrip("/")
        try:
            text = await files.read_text(target)
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(f"[inline] unable to read {target}: {e}") from e
        return store.cache_inline(path, text)

    async def replace_tag(self, doc: Document, el: Tag, source_attr: str, *, config, store) -> bool:
        path = format_path(el.get(source_attr, "") or "")
        if not path.startswith("/"):
            return False
        content = await self.fetch(path, config, store)
        new_el = doc.new_tag("style" if source_attr == "href" else "script")
        new_el.string = content
        doc.insert_before(el, new_el)
        doc.remove(el)
        return True

    async def on_file(self, file: FileRecord, *, config: SiteConfig, store: BuildStore) -> None:
        if not is_allowed_type(file, allow=("html",)) or is_development(config):
            return
        attr = config["inline_attr"]
        if attr not in file.source:
            return

        doc = Document.parse(file.source)
        links = doc.select(inline_selector("link", attr))
        scripts = doc.select(inline_selector("script", attr))
        if not links and not scripts:
            return

        results = await asyncio.gather(
            *(self.replace_tag(doc, el, "href", config=config, store=store) for el in links),
            *(self.replace_tag(doc, el, "src", config=config, store=store) for el in scripts),
        )
        if any(results):
            file.source = doc.serialize()
            log.debug(f"[inline] inlined {sum(results)} assets in {file.path}")
