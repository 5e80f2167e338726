"""Configuration management for FastNginx."""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml
from jinja2 import Environment, PackageLoader, select_autoescape

from .exceptions import IOFailure, ValidationError
from .index import IndexStore

logger = logging.getLogger(__name__)

CONFIG_FILE = Path(os.environ.get("FASTNGINX_CONFIG", Path.home() / ".fastnginx.yaml"))

DATA_DIR_NAME = "nginx_data"
INDEX_FILE_NAME = "config_index"
HOSTS_MARKER = "# Added by FastNginx"


@dataclass
class Settings:
    """Paths and commands used by every operation."""
    base_path: str = ""
    sites_available: str = "/etc/nginx/sites-available"
    sites_enabled: str = "/etc/nginx/sites-enabled"
    hosts_file: str = "/etc/hosts"
    hosts_marker: str = HOSTS_MARKER
    validate_command: List[str] = field(default_factory=lambda: ["sudo", "nginx", "-t"])
    reload_command: List[str] = field(default_factory=lambda: ["sudo", "systemctl", "reload", "nginx"])
    status_command: List[str] = field(default_factory=lambda: ["systemctl", "is-active", "nginx"])
    ports_command: List[str] = field(default_factory=lambda: ["ss", "-tlnp"])

    @property
    def data_dir(self) -> Path:
        return Path(self.base_path) / DATA_DIR_NAME

    @property
    def index_file(self) -> Path:
        return self.data_dir / INDEX_FILE_NAME


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Load settings from YAML. Missing file or keys fall back to defaults."""
    config_file = Path(config_file or CONFIG_FILE)
    if not config_file.exists():
        return Settings()

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise IOFailure(f"Cannot read settings {config_file}: {e}", config_file) from e
    if not isinstance(data, dict):
        raise IOFailure(f"Cannot read settings {config_file}: expected a mapping", config_file)

    known = {f.name for f in fields(Settings)}
    return Settings(**{k: v for k, v in data.items() if k in known})


def save_settings(settings: Settings, config_file: Optional[Path] = None):
    """Save settings to YAML."""
    config_file = Path(config_file or CONFIG_FILE)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.dump(asdict(settings), f, default_flow_style=False)


def initialize(settings: Settings, config_file: Optional[Path] = None) -> List[str]:
    """First-run setup: check the base path, create data dir and empty index.

    Returns a list of what was done.
    """
    if not settings.base_path:
        raise ValidationError("Base path is required")
    if not Path(settings.base_path).is_dir():
        raise ValidationError(f"System path not found: {settings.base_path}")

    done = []
    if not settings.data_dir.exists():
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        done.append(f"Data directory created: {settings.data_dir}")
    if IndexStore(settings.index_file).ensure_exists():
        done.append(f"Configuration index initialized: {settings.index_file}")

    save_settings(settings, config_file)
    done.append(f"Settings saved: {config_file or CONFIG_FILE}")
    logger.info(f"Initialized FastNginx at {settings.base_path}")
    return done


def get_jinja_env():
    """Get Jinja2 environment for templates."""
    return Environment(
        loader=PackageLoader("fastnginx", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_site_config(domain: str, port: str, host: str, generated: Optional[datetime] = None) -> str:
    """Render the reverse-proxy server block for a site."""
    template = get_jinja_env().get_template("site.conf.j2")
    return template.render(
        domain=domain,
        port=port,
        host=host,
        generated=(generated or datetime.now()).isoformat(sep=" ", timespec="seconds"),
    )
