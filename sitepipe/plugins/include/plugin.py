"""
Replace ``<div include="/includes/header.html"></div>`` markers with the
content of the referenced file.

Resolution is a single pass: markers inside included markup are left as-is.
"""

import logging
from pathlib import Path, PurePosixPath

from bs4 import Tag
from mkdocs.exceptions import BuildError
from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, dist_dir
from sitepipe.core import files
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, is_allowed_type
from sitepipe.core.store import BuildStore

log = logging.getLogger(__name__)

# Elements that cannot carry the marker's extra attributes.
INVALID_TARGETS = ("description", "link", "meta", "script", "style", "template", "title")


def marker_selector(attr: str) -> str:
    return f"[{attr}], [data-{attr}]"


def marker_value(el: Tag, attr: str) -> str:
    return (el.get(attr) or el.get(f"data-{attr}") or "").strip()


def resolve_include_path(value: str, root: Path, convert_pages: bool) -> Path:
    """Map an include reference to the file it names under ``root``.

    * conversion on, ``name.html``: ``name/index.html``
    * conversion off, no extension: ``name.html``
    * conversion on, no extension: the path itself if it is a file, otherwise
      ``name/index.html``
    * anything else is used as-is

    A rewritten path that does not exist falls back to the literal path when
    that one does (pages excluded from directory conversion).
    """
    rel = PurePosixPath(value.strip().lstrip("/"))
    literal = root / rel
    suffix = rel.suffix

    if convert_pages:
        if suffix == ".html" and rel.stem != "index":
            resolved = root / rel.with_suffix("") / "index.html"
        elif not suffix and not literal.is_file():
            resolved = literal / "index.html"
        else:
            resolved = literal
    elif not suffix:
        resolved = root / f"{rel}.html"
    else:
        resolved = literal

    if resolved != literal and not resolved.is_file() and literal.is_file():
        return literal
    return resolved


def copy_marker_attributes(marker: Tag, attr: str) -> None:
    """Copy the marker's other attributes onto the first valid following element."""
    extra = {k: v for k, v in marker.attrs.items() if k not in (attr, f"data-{attr}")}
    if not extra:
        return
    for sibling in marker.find_next_siblings():
        if sibling.name not in INVALID_TARGETS:
            for key, value in extra.items():
                sibling[key] = value
            return


class IncludePlugin(BasePlugin):
    async def fetch(self, path: Path, store: BuildStore) -> str:
        key = str(path)
        cached = store.cached_includes.get(key)
        if cached is not None:
            return cached
        try:
            text = await files.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(f"[include] unable to read include {path}: {e}") from e
        log.debug(f"[include] cached {path}")
        return store.cache_include(key, text)

    async def on_file(self, file: FileRecord, *, config: SiteConfig, store: BuildStore) -> None:
        if not is_allowed_type(file, allow=("html",)):
            return
        attr = config["include_attr"]
        if attr not in file.source:
            return

        doc = Document.parse(file.source)
        markers = doc.select(marker_selector(attr))
        if not markers:
            return

        root = dist_dir(config)
        convert_pages = not config["convert_page_to_directory"]["disabled"]
        total = 0
        for marker in markers:
            # Markers nested in an already replaced marker went with it.
            if marker.decomposed:
                continue
            value = marker_value(marker, attr)
            if not value:
                continue
            path = resolve_include_path(value, root, convert_pages)
            content = await self.fetch(path, store)
            doc.insert_after(marker, content)
            copy_marker_attributes(marker, attr)
            doc.remove(marker)
            total += 1

        if total:
            file.source = doc.serialize()
            log.debug(f"[include] replaced {total} includes in {file.path}")
