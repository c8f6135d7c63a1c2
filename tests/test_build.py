import asyncio

import pytest
from click.testing import CliRunner
from mkdocs.exceptions import Abort, BuildError

from sitepipe import cli as cli_module
from sitepipe.build import Build, build
from sitepipe.cli import cli
from sitepipe.config import dist_dir

INDEX = (
    "<!DOCTYPE html>"
    "<html lang=\"en\"><head><title>${site.title}</title>"
    '<link rel="stylesheet" bundle="main" href="/css/a.css">'
    '<link rel="stylesheet" bundle="main" href="/css/b.css">'
    "</head><body>"
    '<div include="/includes/header.html"></div>'
    "<main><p>Welcome   home</p></main>"
    '<script bundle="app" src="/js/app.js"></script>'
    "</body></html>"
)

ABOUT = '<div include="/includes/header.html"></div><h1>About ${{ vue }}</h1>'

HEADER = '<header><a href="/">Home</a><a href="/about">About</a><a href="www.example.com">Ext</a></header>'


@pytest.fixture
def site(write):
    write("src/index.html", INDEX)
    write("src/about.html", ABOUT)
    write("src/includes/header.html", HEADER)
    write("src/css/a.css", ".a {\n  color: red;\n}")
    write("src/css/b.css", ".b {\n  color: blue;\n}")
    write("src/js/app.js", "var app = 1;")
    write("src/README.md", "# not copied")
    write("data.yml", "site:\n  title: Demo\n")


class TestBuild:
    """End-to-end builds."""

    def test_full_build(self, site, make_config):
        """Test: Every stage runs and the outputs land where pages point."""
        config = make_config(sitemap={"url": "https://example.com/"})
        files = build(config)
        root = dist_dir(config)

        index = (root / "index.html").read_text(encoding="utf8")
        assert "<title>Demo</title>" in index
        assert "include=" not in index
        assert "<header>" in index
        assert "/assets/bundle/bundle-main.css" in index
        assert "/assets/bundle/bundle-app.js" in index
        assert "bundle=" not in index
        assert "Welcome home" in index
        assert 'href="http://www.example.com"' in index

        about = (root / "about/index.html").read_text(encoding="utf8")
        assert not (root / "about.html").exists()
        assert 'class="active"' in about
        assert "${{ vue }}" in about

        bundle_css = (root / "assets/bundle/bundle-main.css").read_text(encoding="utf8")
        assert bundle_css.index(".a{") < bundle_css.index(".b{")
        assert (root / "assets/bundle/bundle-app.js").read_text(encoding="utf8") == "var app=1;"

        sitemap = (root / "sitemap.xml").read_text(encoding="utf8")
        assert "<loc>https://example.com</loc>" in sitemap
        assert "<loc>https://example.com/about</loc>" in sitemap
        assert "includes" not in sitemap

        assert not (root / "README.md").exists()
        assert files[0].path == root / "includes/header/index.html"

    def test_development_build(self, site, make_config):
        """Test: Development builds skip bundling and minification."""
        config = make_config(mode="development")
        build(config)
        index = (dist_dir(config) / "index.html").read_text(encoding="utf8")

        assert 'bundle="main"' in index
        assert "Welcome   home" in index
        assert not (dist_dir(config) / "assets/bundle").exists()

    def test_dynamic_pages(self, site, make_config, write):
        """Test: Dynamic pages from the page data are written without a source file."""
        write(
            "data.yml",
            "site:\n  title: Demo\n"
            "dynamic_pages:\n"
            "  - path: /blog/hello\n"
            "    source: '<h1>${site.title} blog</h1>'\n",
        )
        config = make_config()
        build(config)

        page = dist_dir(config) / "blog/hello/index.html"
        assert page.read_text(encoding="utf8") == "<h1>Demo blog</h1>"

    def test_fatal_error_stops_the_loop(self, write, make_config):
        """Test: A missing include aborts before later files are processed."""
        write("src/a.html", "<p>${name}</p>")
        write("src/b.html", '<div include="/includes/missing.html"></div>')
        write("src/c.html", "<p>${name}</p>")
        write("data.yml", "name: Ada\n")
        config = make_config(convert_page_to_directory={"disabled": True}, minify={"enabled": False})

        with pytest.raises(BuildError):
            asyncio.run(Build(config).run())

        root = dist_dir(config)
        assert (root / "a.html").read_text(encoding="utf8") == "<p>Ada</p>"
        assert (root / "c.html").read_text(encoding="utf8") == "<p>${name}</p>"

    def test_build_error_becomes_abort(self, write, make_config):
        """Test: build() turns a BuildError into Abort."""
        write("src/b.html", '<div include="/includes/missing.html"></div>')
        with pytest.raises(Abort):
            build(make_config())

    def test_before_plugin_seeds_page_data(self, write, make_config):
        """Test: Data added by a before plugin reaches interpolation without a data file."""
        write("src/index.html", "<p>${title}</p>")
        write(
            "plugins/seed.py",
            "class Plugin:\n"
            "    def __init__(self, file, data):\n"
            "        self.data = data\n\n"
            "    def init(self):\n"
            "        self.data['title'] = 'Seeded'\n",
        )
        config = make_config(plugins={"before": ["seed"]}, minify={"enabled": False})

        build(config)

        assert (dist_dir(config) / "index.html").read_text(encoding="utf8") == "<p>Seeded</p>"

    def test_undecodable_source_becomes_abort(self, write, make_config, tmp_path):
        """Test: A page that is not UTF-8 aborts the build."""
        write("src/index.html", "<p>ok</p>")
        (tmp_path / "src/a.html").write_bytes(b"<p>\xff\xfe</p>")
        with pytest.raises(Abort):
            build(make_config())

    def test_missing_source_directory(self, make_config):
        """Test: Building without a source tree aborts."""
        with pytest.raises(Abort):
            build(make_config())


class TestCli:
    def test_build_command(self, site, tmp_path, monkeypatch):
        """Test: The build command loads the config and applies flags."""
        monkeypatch.setattr(cli_module, "configure_logging", lambda verbose=False: None)
        config_file = tmp_path / "sitepipe.yml"
        config_file.write_text("sitemap:\n  url: https://example.com\n", encoding="utf8")

        result = CliRunner().invoke(cli, ["build", "-f", str(config_file), "--no-minify"])

        assert result.exit_code == 0, result.output
        index = (tmp_path / "dist/index.html").read_text(encoding="utf8")
        assert "Welcome   home" in index
        assert (tmp_path / "dist/assets/bundle/bundle-main.css").exists()

    def test_build_command_failure(self, write, tmp_path, monkeypatch):
        """Test: A fatal build error exits non-zero."""
        monkeypatch.setattr(cli_module, "configure_logging", lambda verbose=False: None)
        write("src/b.html", '<div include="/includes/missing.html"></div>')
        config_file = tmp_path / "sitepipe.yml"
        config_file.write_text("{}\n", encoding="utf8")

        result = CliRunner().invoke(cli, ["build", "-f", str(config_file)])

        assert result.exit_code == 1
