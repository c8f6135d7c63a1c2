"""
Write ``sitemap.xml`` listing every page of the built site.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin
from mkdocs.utils import get_build_date

from sitepipe.config import SiteConfig, dist_dir, load_plugin_config
from sitepipe.core import files

log = logging.getLogger(__name__)

DEFAULT_EXCLUDES = (r"^/assets", r"^/includes", r"^/404\.html")
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def page_url(path: Path, root: Path) -> str:
    """Site path for a page: ``/about/index.html`` becomes ``/about``, the home page ``""``."""
    rel = "/" + path.relative_to(root).as_posix()
    if rel.endswith("/index.html"):
        rel = rel[: -len("/index.html")]
    return rel


def collect_pages(root: Path, exclude_paths: List[str]) -> List[str]:
    patterns = [re.compile(p) for p in (*DEFAULT_EXCLUDES, *exclude_paths)]
    pages = [page_url(p, root) for p in root.rglob("*.html") if p.is_file()]
    return sorted(p for p in pages if not any(pattern.search(p) for pattern in patterns))


def build_xml(domain: str, pages: List[str], date: str) -> str:
    domain = domain[:-1] if domain.endswith("/") else domain
    entries = []
    for page in pages:
        priority = "1.0" if page == "" else "0.9"
        entries.append(
            "<url>"
            f"<loc>{escape(domain + page)}</loc>"
            f"<lastmod>{date}</lastmod>"
            "<changefreq>monthly</changefreq>"
            f"<priority>{priority}</priority>"
            "</url>"
        )
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<urlset xmlns="{SITEMAP_NS}">{"".join(entries)}</urlset>\n'


class SitemapPlugin(BasePlugin):
    config_scheme = (
        ('url',           c.Type(str, default="")),
        ('exclude_paths', c.Type(list, default=[])),
    )

    def __init__(self, options=None):
        super().__init__()
        load_plugin_config(self, options, "sitemap")

    async def on_post_build(self, *, config: SiteConfig, store=None) -> Optional[Path]:
        if not self.config["url"]:
            return None

        root = dist_dir(config)
        pages = collect_pages(root, self.config["exclude_paths"])
        output = root / "sitemap.xml"
        await files.write_text(output, build_xml(self.config["url"], pages, get_build_date()))
        log.info(f"[sitemap] generated {len(pages)} site entries")
        return output
