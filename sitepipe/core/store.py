from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class BundleEntry:
    path: str
    minify: bool = True


def _empty_groups() -> Dict[str, Dict[str, List[BundleEntry]]]:
    return {"css": {}, "js": {}}


@dataclass
class BuildStore:
    """State shared by every stage for the duration of one build run.

    Nothing here is persisted. Access is unsynchronized: the per-file loop is
    strictly sequential and only independent items fan out concurrently.
    """

    # kind ("css" | "js") -> group -> entries in encounter order
    bundle_groups: Dict[str, Dict[str, List[BundleEntry]]] = field(default_factory=_empty_groups)
    # normalized path -> text, write-once
    cached_includes: Dict[str, str] = field(default_factory=dict)
    cached_inline: Dict[str, str] = field(default_factory=dict)
    # plugin identifier -> factory
    plugin_cache: Dict[str, Any] = field(default_factory=dict)

    def add_bundle_entry(self, kind: str, group: str, path: str, minify: bool = True) -> bool:
        """Append ``path`` to a bundle group. Return False if it was already there."""
        entries = self.bundle_groups.setdefault(kind, {}).setdefault(group, [])
        if any(entry.path == path for entry in entries):
            return False
        entries.append(BundleEntry(path=path, minify=minify))
        return True

    def cache_include(self, path: str, text: str) -> str:
        return self.cached_includes.setdefault(path, text)

    def cache_inline(self, path: str, text: str) -> str:
        return self.cached_inline.setdefault(path, text)
