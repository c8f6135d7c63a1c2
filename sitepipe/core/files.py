"""
File records and the disk I/O used by the build.

Reads and writes are pushed to a worker thread with ``asyncio.to_thread`` so
the event loop only suspends at I/O boundaries.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from mkdocs.exceptions import BuildError
from mkdocs.utils import write_file

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("css", "html", "js")
VENDOR_DIR = "assets/scripts/vendor"
INCLUDES_DIR = "includes"


@dataclass
class FileRecord:
    """One unit of work in the per-file loop.

    ``source`` is the only channel between stages: every stage reads it and
    writes the new text back when it changes the document.
    """

    path: Path
    source: str = ""
    is_dynamic: bool = False

    @property
    def name(self) -> str:
        return self.path.name.split(".")[0]

    @property
    def extension(self) -> Optional[str]:
        suffix = self.path.suffix
        return suffix[1:].lower() if suffix else None

    @property
    def name_if_index(self) -> str:
        """Directory name for ``x/index.html`` pages, otherwise the file name."""
        if self.name == "index" and self.path.parent.name:
            return self.path.parent.name
        return self.name


def is_allowed_type(
    file: FileRecord,
    allow: Optional[Sequence[str]] = None,
    disallow: Optional[Sequence[str]] = None,
) -> bool:
    """Return True if a stage may touch ``file``. Files without an extension never qualify."""
    ext = file.extension
    if ext is None:
        return False
    if allow is not None and ext not in allow:
        return False
    if disallow is not None and ext in disallow:
        return False
    return True


def get_file_name(path: str, dist_name: str = "dist") -> str:
    """Normalized page name for a path or URL.

    The last non-empty segment without its extension; ``index`` collapses to
    its parent segment and the dist root collapses to ``/``.
    """
    segments = [s for s in str(path).replace("\\", "/").split("/") if s]
    if not segments:
        return "/"
    name = segments[-1].split(".")[0]
    if name == "index":
        name = segments[-2] if len(segments) > 1 else "/"
    if name == dist_name:
        return "/"
    return name


async def read_text(path: Path) -> str:
    return await asyncio.to_thread(Path(path).read_text, encoding="utf8")


async def write_text(path: Path, text: str) -> None:
    await asyncio.to_thread(write_file, text.encode("utf8"), str(path))


async def load_source(file: FileRecord) -> FileRecord:
    """Fill ``file.source`` from disk unless the record is dynamic."""
    if file.is_dynamic:
        return file
    try:
        file.source = await read_text(file.path)
    except (OSError, UnicodeDecodeError) as e:
        raise BuildError(f"[files] unable to read {file.path}: {e}") from e
    return file


def _compile(patterns: Iterable[str]) -> List[re.Pattern]:
    return [re.compile(p) for p in patterns or []]


def discover_files(
    dist_dir: Path,
    include_paths: Sequence[str] = (),
    exclude_paths: Sequence[str] = (),
) -> List[FileRecord]:
    """Return the files under ``dist_dir`` the per-file loop should process.

    ``css``, ``html`` and ``js`` files are kept, plus any path matching an
    ``include_paths`` regex. Paths matching ``exclude_paths`` and vendored
    scripts are skipped. Patterns match the dist-relative POSIX path. Files in
    an ``includes`` directory come first so the include cache is warm.
    """
    allowed = _compile(include_paths)
    excluded = _compile(exclude_paths)

    found: List[Path] = []
    for path in sorted(Path(dist_dir).rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(dist_dir).as_posix()
        if rel.startswith(VENDOR_DIR + "/") or any(p.search(rel) for p in excluded):
            continue
        ext = path.suffix[1:].lower()
        if ext in ALLOWED_EXTENSIONS or any(p.search(rel) for p in allowed):
            found.append(path)

    found.sort(key=lambda p: INCLUDES_DIR not in p.relative_to(dist_dir).parts[:-1])
    log.debug(f"[files] discovered {len(found)} files in {dist_dir}")
    return [FileRecord(path=p) for p in found]


def add_dynamic_page(path: str, source: str, data: dict) -> dict:
    """Register an in-memory page on the shared page data."""
    if not path or source is None:
        raise BuildError("[files] a dynamic page needs both a path and a source")
    data.setdefault("dynamic_pages", []).append({"path": path, "source": source})
    return data


def add_dynamic_files(files: List[FileRecord], dist_dir: Path, data: dict) -> List[FileRecord]:
    """Append a record for every entry of ``data["dynamic_pages"]``.

    Each page lands at ``<dist>/<path>/index.html``.
    """
    pages = (data or {}).get("dynamic_pages") or []
    dist_dir = Path(dist_dir)
    for page in pages:
        rel = str(page.get("path", "")).replace("\\", "/").strip("/")
        if rel == dist_dir.name or rel.startswith(dist_dir.name + "/"):
            rel = rel[len(dist_dir.name):].strip("/")
        files.append(FileRecord(path=dist_dir / rel / "index.html", source=page.get("source", ""), is_dynamic=True))
    if pages:
        log.debug(f"[files] added {len(pages)} dynamic pages")
    return files
