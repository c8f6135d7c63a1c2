from pathlib import Path

from sitepipe.core.files import FileRecord
from sitepipe.plugins.template_strings.plugin import TemplateStringsPlugin, replace_template_vars


class TestReplaceTemplateVars:
    def test_simple_replacement(self):
        """Test: ${name} is replaced with the data value."""
        assert replace_template_vars("Hello ${name}", {"name": "Ada"}) == "Hello Ada"

    def test_double_brace_is_never_touched(self):
        """Test: ${{...}} is left unchanged whatever the data holds."""
        data = {"count": 3, "{count": 4, "{count}": 5}
        assert replace_template_vars("${{count}}", data) == "${{count}}"
        assert replace_template_vars("<p>${{ count }}</p> ${count}", data) == "<p>${{ count }}</p> 3"

    def test_unknown_keys_are_kept(self):
        """Test: Missing keys and None values leave the placeholder."""
        data = {"empty": None}
        assert replace_template_vars("${missing} ${empty}", data) == "${missing} ${empty}"

    def test_dotted_and_adjacent_placeholders(self):
        """Test: Dotted keys resolve through nested mappings; adjacent placeholders all match."""
        data = {"site": {"title": "Docs", "year": 2024}, "a": "x", "b": "y"}
        assert replace_template_vars("${site.title} (c) ${ site.year }", data) == "Docs (c) 2024"
        assert replace_template_vars("${a}${b}$${a}", data) == "xy$x"
        assert replace_template_vars("€${a}", data) == "€x"


class TestTemplateStringsPlugin:
    def test_allowed_types(self):
        """Test: html, json and webmanifest files are interpolated; others are not."""
        plugin = TemplateStringsPlugin({"name": "Site"})
        for name in ("index.html", "data.json", "manifest.webmanifest"):
            file = FileRecord(path=Path("dist") / name, source='{"name": "${name}"}')
            plugin.on_file(file, config=None, store=None)
            assert file.source == '{"name": "Site"}'

        css = FileRecord(path=Path("dist/app.css"), source="a::after { content: '${name}'; }")
        plugin.on_file(css, config=None, store=None)
        assert css.source == "a::after { content: '${name}'; }"

    def test_shares_empty_data(self):
        """Test: Values added later to an initially empty data mapping are used."""
        data = {}
        plugin = TemplateStringsPlugin(data)
        data["title"] = "Seeded"

        file = FileRecord(path=Path("dist/index.html"), source="<p>${title}</p>")
        plugin.on_file(file, config=None, store=None)

        assert file.source == "<p>Seeded</p>"
