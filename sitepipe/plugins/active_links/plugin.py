"""
Mark navigation links that point at the current page or one of its parents.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit

from bs4 import Tag
from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin

from sitepipe.config import SiteConfig, dist_dir, load_plugin_config
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, get_file_name, is_allowed_type

log = logging.getLogger(__name__)

ACTIVE = "active"
ACTIVE_PARENT = "active-parent"


def kebab_case(value: str) -> str:
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", value.strip())
    return re.sub(r"[\s_]+", "-", value).lower()


def link_name(href: str) -> Optional[str]:
    """Page name of an internal link, or None for external links and bare fragments."""
    parts = urlsplit((href or "").strip())
    if parts.scheme or parts.netloc or not parts.path:
        return None
    return get_file_name(parts.path)


def page_parts(page_path: str) -> List[str]:
    """Directory segments of a site-relative page path."""
    segments = [s for s in page_path.replace("\\", "/").split("/") if s]
    if segments and "." in segments[-1]:
        segments.pop()
    return segments


def classify_link(page_path: str, href: str) -> Optional[str]:
    """Return ``"active"``, ``"active-parent"`` or None for ``href`` on ``page_path``.

    >>> classify_link("/docs/guide/install", "/docs/guide")
    'active-parent'
    """
    name = link_name(href)
    if name is None:
        return None
    if name == get_file_name(page_path):
        return ACTIVE
    parts = page_parts(page_path)
    if name in parts and name != parts[-1]:
        return ACTIVE_PARENT
    return None


def site_path(file: FileRecord, root: Path) -> str:
    try:
        return "/" + file.path.relative_to(root).as_posix()
    except ValueError:
        return file.path.as_posix()


class ActiveLinksPlugin(BasePlugin):
    config_scheme = (
        ('type',         c.Choice(("class", "attr", "attribute"), default="class")),
        ('active_state', c.Type(str, default=ACTIVE)),
        ('parent_state', c.Type(str, default=ACTIVE_PARENT)),
    )

    def __init__(self, options=None):
        super().__init__()
        load_plugin_config(self, options, "active_links")

    def mark(self, el: Tag, state: str) -> None:
        if self.config["type"] in ("attr", "attribute"):
            el[f"data-{state}"] = ""
            return
        classes = el.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        if state not in classes:
            classes.append(state)
        el["class"] = classes

    def on_file(self, file: FileRecord, *, config: SiteConfig, store) -> None:
        if not is_allowed_type(file, allow=("html",)) or "href" not in file.source:
            return

        doc = Document.parse(file.source)
        links = doc.select("a[href]")
        if not links:
            return

        states = {
            ACTIVE: kebab_case(self.config["active_state"]),
            ACTIVE_PARENT: kebab_case(self.config["parent_state"]),
        }
        page = site_path(file, dist_dir(config))
        total = 0
        for el in links:
            state = classify_link(page, el["href"])
            if state:
                self.mark(el, states[state])
                total += 1

        if total:
            file.source = doc.serialize()
            log.debug(f"[active_links] marked {total} links in {file.path}")
