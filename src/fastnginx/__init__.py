"""FastNginx - Deploy and manage nginx reverse-proxy sites."""

__version__ = "1.2.0"

# Export programmatic API
from .config import Settings, load_settings, save_settings, initialize, render_site_config
from .lifecycle import SiteManager, validate_site_input
from .records import ConfigurationRecord, encode, decode, primary_domain
from .report import OperationReport, Step

__all__ = [
    "Settings",
    "load_settings",
    "save_settings",
    "initialize",
    "render_site_config",
    "SiteManager",
    "validate_site_input",
    "ConfigurationRecord",
    "encode",
    "decode",
    "primary_domain",
    "OperationReport",
    "Step",
]
