import pytest
from mkdocs.exceptions import BuildError

from sitepipe.core import document
from sitepipe.core.document import Document, strip_namespaces


class TestDocument:
    """Parsing and serialization of pages and fragments."""

    def test_fragment_round_trip(self):
        """Test: A fragment is serialized without a synthetic wrapper."""
        doc = Document.parse('<div class="card"><p>Hi</p></div>')
        out = doc.serialize()
        assert out == '<div class="card"><p>Hi</p></div>'
        assert "<html" not in out and "<body" not in out

    def test_full_document_keeps_doctype_and_root(self):
        """Test: Input with a doctype is re-emitted whole."""
        html = '<!DOCTYPE html><html lang="en"><head><title>T</title></head><body><p>x</p></body></html>'
        out = Document.parse(html).serialize()
        assert out.startswith("<!DOCTYPE html>")
        assert '<html lang="en">' in out
        assert "<title>T</title>" in out

    def test_html_without_doctype_emits_head_and_body_content(self):
        """Test: Without a doctype only head content followed by body content is emitted."""
        html = '<html lang="en"><head><title>T</title></head><body><p>x</p></body></html>'
        out = Document.parse(html).serialize()
        assert out == "<title>T</title><p>x</p>"

    def test_namespace_artifacts_are_stripped(self):
        """Test: xhtml namespaces and nsN:href prefixes are removed."""
        assert strip_namespaces('<div xmlns="http://www.w3.org/1999/xhtml">a</div>') == "<div>a</div>"
        out = Document.parse('<svg><use ns1:href="#icon"></use></svg>').serialize()
        assert 'href="#icon"' in out
        assert "ns1:" not in out

    def test_insert_after_keeps_order(self):
        """Test: Inserted markup lands right after the node, in order."""
        doc = Document.parse('<div id="m"></div><p>end</p>')
        marker = doc.select("#m")[0]
        doc.insert_after(marker, "<a>1</a><b>2</b>")
        doc.remove(marker)
        assert doc.serialize() == "<a>1</a><b>2</b><p>end</p>"

    def test_new_tag_and_insert_before(self):
        """Test: New elements can be placed before an existing one."""
        doc = Document.parse("<p>x</p>")
        p = doc.select("p")[0]
        doc.insert_before(p, doc.new_tag("script", src="/a.js"))
        reparsed = Document.parse(doc.serialize())
        scripts = reparsed.select("script")
        assert len(scripts) == 1 and scripts[0]["src"] == "/a.js"
        assert doc.serialize().index("<script") < doc.serialize().index("<p>")

    def test_parser_failure_is_fatal(self, monkeypatch):
        """Test: A parser exception surfaces as a BuildError."""

        def broken(*args, **kwargs):
            raise ValueError("boom")

        monkeypatch.setattr(document, "BeautifulSoup", broken)
        with pytest.raises(BuildError):
            Document.parse("<p>x</p>")
