"""Command line entry point."""

import click

from sitepipe.build import build
from sitepipe.config import load_config
from sitepipe.logging import configure_logging


@click.group()
def cli():
    """sitepipe - build a static site from src/ into dist/."""


@cli.command(name="build")
@click.option("-f", "--config-file", type=click.Path(dir_okay=False), default=None,
              help="Provide a specific sitepipe config file (default: sitepipe.yml).")
@click.option("--dev", is_flag=True, help="Development build: no inlining, no minification, no bundling.")
@click.option("--bundle", "bundle_in_dev", is_flag=True, help="Bundle assets in development builds too.")
@click.option("--no-minify", is_flag=True, help="Skip minification.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
def build_command(config_file, dev, bundle_in_dev, no_minify, verbose):
    """Build the site."""
    configure_logging(verbose=verbose)
    config = load_config(config_file, mode="development" if dev else None)
    if bundle_in_dev:
        config["bundle"]["in_development"] = True
    if no_minify:
        config["minify"]["enabled"] = False
    build(config)
