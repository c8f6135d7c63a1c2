"""
Mutable document tree shared by the markup stages of a single file.

Pages are parsed with BeautifulSoup's permissive ``html.parser`` backend, which
never adds a synthetic ``<html>``/``<head>``/``<body>`` wrapper. Serialization
re-emits a full document only when the input carried a doctype.
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Doctype, Tag
from mkdocs.exceptions import BuildError

log = logging.getLogger(__name__)

PARSER = "html.parser"

# Namespace artifacts left behind by XML-aware serializers.
XMLNS_PATTERN = re.compile(r'\s+xmlns="http://www\.w3\.org/1999/xhtml"')
NS_HREF_PATTERN = re.compile(r"\bns\d*:href=")


def strip_namespaces(markup: str) -> str:
    """Remove xhtml namespace declarations and ``nsN:href`` prefixes."""
    markup = XMLNS_PATTERN.sub("", markup)
    return NS_HREF_PATTERN.sub("href=", markup)


class Document:
    """A parsed page or fragment.

    A ``Document`` is owned by the stage that parsed it. Stages must call
    ``serialize()`` and store the result on the file record before returning;
    no handle is kept across stages.
    """

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        self.has_doctype = any(isinstance(node, Doctype) for node in soup.contents)

    @classmethod
    def parse(cls, text: str) -> "Document":
        try:
            soup = BeautifulSoup(text, PARSER)
        except Exception as e:
            raise BuildError(f"[document] unable to parse markup: {e}") from e
        return cls(soup)

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def new_tag(self, name: str, **attrs) -> Tag:
        return self.soup.new_tag(name, attrs=attrs)

    @staticmethod
    def fragment(markup: str) -> list:
        """Parse ``markup`` and return its top-level nodes, detached."""
        try:
            soup = BeautifulSoup(markup, PARSER)
        except Exception as e:
            raise BuildError(f"[document] unable to parse markup: {e}") from e
        return [node.extract() for node in list(soup.contents)]

    def insert_after(self, node: Tag, markup: str) -> None:
        """Insert ``markup`` immediately after ``node``, keeping its order."""
        nodes = self.fragment(markup)
        if nodes:
            node.insert_after(*nodes)

    def insert_before(self, node: Tag, new_node: Tag) -> None:
        node.insert_before(new_node)

    @staticmethod
    def remove(node: Tag) -> None:
        node.decompose()

    def _root(self) -> Optional[Tag]:
        return self.soup.find("html", recursive=False)

    def serialize(self) -> str:
        """Return the document text.

        Full documents (with a doctype) are emitted whole. Anything else is
        emitted as its head content followed by its body content, or as-is
        when there is no ``<html>`` element at all.
        """
        if self.has_doctype:
            output = str(self.soup)
        else:
            root = self._root()
            if root is None:
                output = str(self.soup)
            else:
                parts = [
                    part
                    for part in (root.find("head", recursive=False), root.find("body", recursive=False))
                    if part is not None
                ]
                if parts:
                    output = "".join(part.decode_contents() for part in parts)
                else:
                    output = root.decode_contents()
        return strip_namespaces(output)
