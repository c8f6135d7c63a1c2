"""
A build stage to minify HTML, JS or CSS files prior to being written to disk
"""

import logging
import re
from typing import Callable, Dict, Optional, Tuple, Union

import csscompressor
import htmlmin
import jsmin
from mkdocs.config import config_options as c
from mkdocs.exceptions import BuildError
from mkdocs.plugins import BasePlugin
from packaging import version

from sitepipe.config import SiteConfig, is_development, load_plugin_config, src_dir
from sitepipe.core import files
from sitepipe.core.document import Document
from sitepipe.core.files import FileRecord, is_allowed_type

logger = logging.getLogger(__name__)

# Minifier dispatch table for JS/CSS. HTML is handled via `htmlmin2` package.
MINIFIERS: Dict[str, Callable] = {
    "js": jsmin.jsmin,
    "css": csscompressor.compress,
}

# `@import url(...)` as emitted by csscompressor.
CSS_IMPORT_PATTERN = re.compile(r"@import\s*url\(\s*['\"]?([^'\")]+?)['\"]?\s*\)\s*;", re.IGNORECASE)

# Inline script types that hold JavaScript.
JS_SCRIPT_TYPES = ("", "text/javascript", "application/javascript", "module")

# Compatibility: csscompressor<=0.9.5. Preserve whitespace in url() to avoid breaking SVG data URIs.
if version.parse(csscompressor.__version__) <= version.parse("0.9.5"):
    # Monkey patch csscompressor 0.9.5
    # See https://github.com/sprymix/csscompressor/issues/9#issuecomment-1024417374
    _preserve_call_tokens_original = csscompressor._preserve_call_tokens
    _url_re = csscompressor._url_re

    def my_new_preserve_call_tokens(*args, **kwargs):
        """If regex is for url pattern, switch the keyword remove_ws to False.
        This preserves svg code in url() pattern of CSS files for old versions."""
        if _url_re == args[1]:
            kwargs["remove_ws"] = False
        return _preserve_call_tokens_original(*args, **kwargs)

    csscompressor._preserve_call_tokens = my_new_preserve_call_tokens


def minify_asset(file_data: str, file_type: str) -> str:
    """Minify a CSS or JS source."""
    return MinifyPlugin._minify_file_data_with_func(file_data, MINIFIERS[file_type])


class MinifyPlugin(BasePlugin):
    """Build stage that minifies pages, stylesheets and scripts.

    Configuration options (all optional, under `minify:`):
    - enabled (bool): Turn the stage off entirely.
    - minify_html (bool): Minify HTML pages, including inline `<style>` and `<script>` content.
    - minify_css (bool): Minify CSS files and inline local `@import url(...)` statements.
    - minify_js (bool): Minify JS files.
    - htmlmin_opts (dict): Extra options forwarded to `htmlmin.minify` (safely merged).

    Development builds are never minified.
    """

    config_scheme = (
        ('enabled',     c.Type(bool, default=True)),
        ('minify_html', c.Type(bool, default=True)),
        ('minify_js',   c.Type(bool, default=True)),
        ('minify_css',  c.Type(bool, default=True)),
        ('htmlmin_opts',c.Type(dict, default={})),
        ('debug', c.Type(bool, default=False)),
    )

    def __init__(self, options=None):
        super().__init__()
        load_plugin_config(self, options, "minify")

    # -------------------------------
    # Helpers
    # -------------------------------

    def _debug_enabled(self) -> bool:
        return bool(self.config.get("debug", False))

    def _dbg(self, msg: str, *args) -> None:
        """Debug log gated by stage config.

        DEBUG records only show with `-v/--verbose`.
        """
        if not self._debug_enabled():
            return

        logger.debug("[minify] " + msg, *args)

    @staticmethod
    def _minify_file_data_with_func(file_data: str, minify_func: Callable) -> str:
        """Run the correct minifier with safe parameters."""
        if minify_func.__name__ == "jsmin":
            return minify_func(file_data, quote_chars="'\"`")
        else:
            return minify_func(file_data)

    def _minify_html_page(self, output: str) -> Optional[str]:
        """Minify HTML using stage config and merged options."""
        output_opts: Dict[str, Union[bool, str, Tuple[str, ...]]] = {
            "remove_comments": True,
            "remove_empty_space": True,
            "remove_all_empty_space": False,
            "reduce_empty_attributes": True,
            "reduce_boolean_attributes": False,
            "remove_optional_attribute_quotes": False,
            "convert_charrefs": True,
            "keep_pre": False,
            "pre_tags": ("pre", "textarea"),
            "pre_attr": "pre",
        }

        selected_opts: Dict = self.config.get("htmlmin_opts", {}) or {}
        for key in selected_opts:
            if key in output_opts:
                output_opts[key] = selected_opts[key]
            else:
                logger.warning("htmlmin option '%s' not recognized", key)

        return htmlmin.minify(output, **output_opts)

    def _minify_inline(self, output: str) -> str:
        """Minify the content of inline `<style>` and JavaScript `<script>` elements."""
        if "<style" not in output and "<script" not in output:
            return output

        doc = Document.parse(output)
        total = 0
        for el in doc.select("style"):
            if el.string:
                el.string = self._minify_file_data_with_func(str(el.string), MINIFIERS["css"])
                total += 1
        for el in doc.select("script"):
            script_type = (el.get("type") or "").strip().lower()
            if el.has_attr("src") or script_type not in JS_SCRIPT_TYPES or not el.string:
                continue
            el.string = self._minify_file_data_with_func(str(el.string), MINIFIERS["js"])
            total += 1

        if not total:
            return output
        self._dbg("minified %d inline blocks", total)
        return doc.serialize()

    async def _replace_css_imports(self, output: str, config: SiteConfig) -> str:
        """Replace local `@import url(...)` statements with the minified imported file."""
        root = src_dir(config)
        for match in list(CSS_IMPORT_PATTERN.finditer(output)):
            path = match.group(1).strip()
            if "//" in path or path.startswith("data:"):
                continue
            path = re.sub(r"^/src(?=/)", "", path)
            target = root / path.lstrip("/")
            try:
                imported = await files.read_text(target)
            except (OSError, UnicodeDecodeError) as e:
                raise BuildError(f"[minify] unable to read CSS import {target}: {e}") from e
            self._dbg("inlined CSS import %s", path)
            output = output.replace(match.group(0), minify_asset(imported, "css"), 1)
        return output

    # -------------------------------
    # Build hooks
    # -------------------------------

    async def on_file(self, file: FileRecord, *, config: SiteConfig, store) -> None:
        """Minify the current file according to its type."""
        if not self.config["enabled"] or is_development(config):
            return
        if not is_allowed_type(file, allow=("html", "css", "js")):
            return
        if not self.config.get(f"minify_{file.extension}", False):
            return

        self._dbg("start %s", file.path)
        if file.extension == "html":
            output = self._minify_html_page(file.source)
            file.source = self._minify_inline(output)
        elif file.extension == "css":
            output = self._minify_file_data_with_func(file.source, MINIFIERS["css"])
            file.source = await self._replace_css_imports(output, config)
        else:
            file.source = self._minify_file_data_with_func(file.source, MINIFIERS["js"])
        self._dbg("done %s", file.path)
