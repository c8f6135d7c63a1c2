"""
Add ``http://`` to protocol-less external references such as ``www.example.com``.

Without it, browsers resolve the value as a path relative to the current page.
"""

import logging

from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin

from sitepipe.config import load_plugin_config
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, is_allowed_type

log = logging.getLogger(__name__)

SELECTOR = "a[href], link[href], script[src]"
LOCAL_PREFIXES = ("/", "#", ".", "?")


def add_missing_protocol(value: str, match) -> str:
    """Return ``value`` with ``http://`` prepended if its host label is in ``match``."""
    value = (value or "").strip()
    if not value or value.startswith(LOCAL_PREFIXES) or "://" in value or ":" in value.split("/", 1)[0]:
        return value
    host = value.split("/", 1)[0]
    if "." not in host:
        return value
    if host.split(".", 1)[0] in match:
        return f"http://{value}"
    return value


class ExternalLinksPlugin(BasePlugin):
    config_scheme = (
        ('enabled', c.Type(bool, default=True)),
        ('match',   c.Type(list, default=["www", "cdn"])),
    )

    def __init__(self, options=None):
        super().__init__()
        load_plugin_config(self, options, "external_links")

    def on_file(self, file: FileRecord, *, config, store) -> None:
        if not self.config["enabled"] or not is_allowed_type(file, allow=("html",)):
            return

        doc = Document.parse(file.source)
        total = 0
        for el in doc.select(SELECTOR):
            attr = "src" if el.name == "script" else "href"
            value = el.get(attr, "")
            fixed = add_missing_protocol(value, self.config["match"])
            if fixed != value.strip():
                el[attr] = fixed
                total += 1

        if total:
            file.source = doc.serialize()
            log.debug(f"[external_links] added protocol to {total} links in {file.path}")
