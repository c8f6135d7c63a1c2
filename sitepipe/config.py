"""
Site configuration.

The configuration file is YAML, validated with MkDocs' config machinery. Stage
sections (``bundle``, ``minify``, ...) are kept as plain mappings here and
validated by each stage's own ``config_scheme``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from mkdocs.config import base
from mkdocs.config import config_options as c
from mkdocs.exceptions import ConfigurationError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "sitepipe.yml"


class ConvertPageConfig(base.Config):
    disabled = c.Type(bool, default=False)
    exclude_paths = c.Type(list, default=["404.html"])


class PluginPhasesConfig(base.Config):
    before = c.Type(list, default=[])
    default = c.Type(list, default=[])
    after = c.Type(list, default=[])


class SiteConfig(base.Config):
    src_path = c.Type(str, default="src")
    dist_path = c.Type(str, default="dist")
    mode = c.Choice(("production", "development"), default="production")
    data_file = c.Type(str, default="data.yml")
    plugin_path = c.Type(str, default="plugins")
    include_paths = c.Type(list, default=[r"manifest\.webmanifest$"])
    exclude_paths = c.Type(list, default=[])
    include_attr = c.Type(str, default="include")
    inline_attr = c.Type(str, default="inline")
    convert_page_to_directory = c.SubConfig(ConvertPageConfig)
    plugins = c.SubConfig(PluginPhasesConfig)
    bundle = c.Type(dict, default={})
    active_link = c.Type(dict, default={})
    minify = c.Type(dict, default={})
    replace_external_link_protocol = c.Type(dict, default={})
    sitemap = c.Type(dict, default={})


def is_development(config: SiteConfig) -> bool:
    return config["mode"] == "development"


def project_dir(config: SiteConfig) -> Path:
    """Directory relative paths in the config resolve against."""
    if config.config_file_path:
        return Path(os.fspath(config.config_file_path)).resolve().parent
    return Path.cwd()


def src_dir(config: SiteConfig) -> Path:
    return project_dir(config) / config["src_path"]


def dist_dir(config: SiteConfig) -> Path:
    return project_dir(config) / config["dist_path"]


def load_yaml(yaml_file: Path) -> dict:
    """Load a YAML mapping; return {} if missing/empty."""
    if not Path(yaml_file).exists():
        return {}
    try:
        with open(yaml_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Unable to parse YAML file {yaml_file}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {yaml_file}")
    return data


def _report(errors, warnings, prefix: str = "") -> None:
    for key, warning in warnings:
        log.warning(f"{prefix}Config value '{key}': {warning}")
    for key, error in errors:
        log.error(f"{prefix}Config value '{key}': {error}")
    if errors:
        raise ConfigurationError(f"{prefix}Aborted with {len(errors)} configuration errors!")


def load_config(config_file: Optional[str] = None, **options) -> SiteConfig:
    """Load, validate and return the site configuration.

    A missing default config file yields defaults; a missing explicit one is
    an error. Keyword ``options`` override values from the file.
    """
    path = Path(config_file or DEFAULT_CONFIG_FILE)
    if config_file and not path.exists():
        raise ConfigurationError(f"Config file '{path}' does not exist.")

    user_config = load_yaml(path)
    user_config.update({k: v for k, v in options.items() if v is not None})

    config = SiteConfig(config_file_path=str(path.resolve()) if path.exists() else None)
    config.load_dict(user_config)
    errors, warnings = config.validate()
    _report(errors, warnings)
    log.debug(f"[config] loaded {path} (mode={config['mode']})")
    return config


def load_data(config: SiteConfig) -> dict:
    """Page data used by template interpolation and custom plugins."""
    data = load_yaml(project_dir(config) / config["data_file"])
    log.debug(f"[config] data keys: {list(data.keys())}")
    return data


def load_plugin_config(plugin, options: Optional[dict], name: str) -> None:
    """Validate a stage's section against its ``config_scheme``."""
    errors, warnings = plugin.load_config(dict(options or {}))
    _report(errors, warnings, prefix=f"[{name}] ")
