"""
Replace ``${key}`` placeholders with values from the page data.

``${{...}}`` is a client-side framework's syntax and is never touched.
"""

import logging
import re

from mkdocs.plugins import BasePlugin

from sitepipe.core.files import FileRecord, is_allowed_type

log = logging.getLogger(__name__)

# The first character inside the braces may not be `{`, so `${{x}}` never matches.
TEMPLATE_PATTERN = re.compile(r"\$\{([^{}\n][^}\n]*)\}")
ALLOWED_TYPES = ("html", "json", "webmanifest")


def get_value_from_path(data, path):
    """Simple dotted lookup (dicts only, no arrays)."""
    if not path:
        return None
    keys = [k.strip() for k in path.split(".") if k.strip()]
    if not keys:
        return None
    value = data
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            return None
        value = value[key]
    return value


def replace_template_vars(text: str, data: dict) -> str:
    """Replace ``${dotted.keys}`` using ``data``; leave unknowns intact."""

    def replacer(match):
        value = get_value_from_path(data, match.group(1))
        return str(value) if value is not None else match.group(0)

    return TEMPLATE_PATTERN.sub(replacer, text)


class TemplateStringsPlugin(BasePlugin):
    def __init__(self, data=None):
        super().__init__()
        self.data = data if data is not None else {}

    def on_file(self, file: FileRecord, *, config, store) -> None:
        if not is_allowed_type(file, allow=ALLOWED_TYPES):
            return
        if "${" not in file.source:
            return
        file.source = replace_template_vars(file.source, self.data)
        log.debug(f"[template_strings] replaced placeholders in {file.path}")
