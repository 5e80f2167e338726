"""Configuration records and their single-line index encoding.

A record is stored as ``key=value`` pairs joined with ``,``::

    domain=app.test www.app.test,port=3000,host=127.0.0.1,type=proxy,...

Values are not escaped, so they must never contain ``,`` or ``=``.
Decoding never fails: parts without ``=`` are dropped and missing keys
fall back to defaults. Keys and values are stripped of surrounding
whitespace, so only records whose values have none round-trip exactly.
Domains are kept on one line by ``normalize_domain``.
"""

import time
from dataclasses import dataclass, field
from typing import Dict

DEFAULT_HOST = "127.0.0.1"
DEFAULT_IP = "127.0.0.1"
SITE_TYPE_PROXY = "proxy"
STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"

FIELDS = ("domain", "port", "host", "type", "ip", "path", "status", "created")

_DEFAULTS = {
    "host": DEFAULT_HOST,
    "type": SITE_TYPE_PROXY,
    "ip": DEFAULT_IP,
    "status": STATUS_ACTIVE,
}


def primary_domain(domain: str) -> str:
    """First whitespace-separated token of a domain field."""
    tokens = domain.split()
    return tokens[0] if tokens else ""


def normalize_domain(domain: str) -> str:
    """Collapse any whitespace run (tabs, newlines) into a single space."""
    return " ".join((domain or "").split())


def now_millis() -> str:
    return str(int(time.time() * 1000))


@dataclass
class ConfigurationRecord:
    """One managed site."""
    domain: str = ""
    port: str = ""
    host: str = DEFAULT_HOST
    type: str = SITE_TYPE_PROXY
    ip: str = DEFAULT_IP
    path: str = ""
    status: str = STATUS_ACTIVE
    created: str = ""
    # Keys written by newer versions, kept as-is
    extra: Dict[str, str] = field(default_factory=dict)

    @property
    def primary_domain(self) -> str:
        return primary_domain(self.domain)

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def as_dict(self) -> Dict[str, str]:
        data = {key: getattr(self, key) for key in FIELDS}
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


def encode(record: ConfigurationRecord) -> str:
    """Serialize a record to one index line (no trailing newline)."""
    return ",".join(f"{key}={value}" for key, value in record.as_dict().items())


def decode(line: str) -> ConfigurationRecord:
    """Parse one index line into a record."""
    values: Dict[str, str] = {}
    for part in line.split(","):
        key, sep, value = part.partition("=")
        if not sep:
            continue
        values[key.strip()] = value.strip()

    known = {key: values.get(key, _DEFAULTS.get(key, "")) for key in FIELDS}
    extra = {key: value for key, value in values.items() if key not in FIELDS}
    return ConfigurationRecord(extra=extra, **known)
