"""Create, edit, delete and toggle managed sites.

Each site exists in four places: the index record, the config file in
sites-available, the enable link in sites-enabled and (optionally) a hosts
file entry. ``SiteManager`` keeps them in step. Nothing is rolled back:
every operation runs its steps in order, keeps going where it safely can,
and returns an ``OperationReport`` listing what succeeded and what did not.

Selections are 1-based positions into ``SiteManager.records``, which is
reloaded after every mutating operation. A selection taken before an
operation must not be reused after it.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from .config import Settings, render_site_config
from .exceptions import HostsFileError, IOFailure, ValidationError
from .hosts import HostsFile
from .index import IndexStore
from .nginx import NginxService
from .projector import SiteFiles
from .records import (
    DEFAULT_HOST,
    DEFAULT_IP,
    SITE_TYPE_PROXY,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    ConfigurationRecord,
    now_millis,
    normalize_domain,
    primary_domain,
)
from .report import OperationReport, Step

logger = logging.getLogger(__name__)

_RESERVED_CHARS = (",", "=")


def validate_site_input(domain: str, port: str, host: str, ip: str, site_type: str = SITE_TYPE_PROXY):
    """Raise ValidationError for input that cannot be rendered or indexed."""
    if site_type.lower() != SITE_TYPE_PROXY:
        raise ValidationError("Only proxy protocol supported in current build")
    if not domain or not domain.strip():
        raise ValidationError("Domain parameter required")
    if any(c in domain for c in "\t\r\n"):
        raise ValidationError("The domain may only be separated by spaces")
    if not port or not port.strip().isdigit():
        raise ValidationError("Valid port number required")
    if not 0 < int(port) < 65536:
        raise ValidationError("Valid port number required")
    for label, value in (("domain", domain), ("port", port), ("host", host), ("ip", ip)):
        if any(c in value for c in _RESERVED_CHARS):
            raise ValidationError(f"The {label} may not contain ',' or '='")
        if label != "domain" and (not value or len(value.split()) != 1):
            raise ValidationError(f"Invalid {label}: {value!r}")


class SiteManager:
    """Coordinates the index, site files, hosts file and nginx."""

    def __init__(
        self,
        index: IndexStore,
        files: SiteFiles,
        hosts: HostsFile,
        nginx: NginxService,
    ):
        self.index = index
        self.files = files
        self.hosts = hosts
        self.nginx = nginx
        self.records: List[ConfigurationRecord] = []
        self.refresh()

    @classmethod
    def from_settings(cls, settings: Settings, nginx: Optional[NginxService] = None) -> "SiteManager":
        return cls(
            IndexStore(settings.index_file),
            SiteFiles(Path(settings.sites_available), Path(settings.sites_enabled)),
            HostsFile(Path(settings.hosts_file), settings.hosts_marker),
            nginx or NginxService.from_settings(settings),
        )

    def refresh(self) -> List[ConfigurationRecord]:
        """Reload the session's record list from the index."""
        self.records = self.index.load()
        return self.records

    def select(self, selection: int) -> Tuple[int, ConfigurationRecord]:
        """Map a 1-based selection to ``(position, record)``."""
        if type(selection) is not int or not 1 <= selection <= len(self.records):
            raise ValidationError("Invalid selection")
        position = selection - 1
        return position, self.records[position]

    def _finish(self, report: OperationReport) -> OperationReport:
        try:
            report.records = self.refresh()
        except IOFailure as e:
            report.add(Step.fail("reload index", str(e), required=False))
            report.records = []
        return report

    def _sync_hosts(self, report: OperationReport, name: str, action, *args):
        try:
            changed = action(*args)
        except HostsFileError as e:
            logger.error(str(e))
            report.manual_hosts_line = e.manual_line
            report.add(Step.fail(name, str(e), required=False))
            return
        if changed:
            report.add(Step(name, detail=str(self.hosts.path)))
        else:
            report.add(Step.skip(name, "no change needed"))

    def deploy(
        self,
        domain: str,
        port: str,
        host: str = DEFAULT_HOST,
        ip: str = DEFAULT_IP,
        add_hosts: bool = False,
        site_type: str = SITE_TYPE_PROXY,
    ) -> OperationReport:
        """Create a site. The index is only touched once nginx accepts it."""
        domain = normalize_domain(domain)
        host = (host or "").strip() or DEFAULT_HOST
        ip = (ip or "").strip() or DEFAULT_IP
        port = (port or "").strip()
        report = OperationReport("deploy", domain)

        try:
            validate_site_input(domain, port, host, ip, site_type)
        except ValidationError as e:
            return report.abort(str(e))

        primary = primary_domain(domain)
        if any(r.primary_domain == primary for r in self.records):
            return report.abort(f"Domain {primary} is already managed")

        record = ConfigurationRecord(
            domain=domain,
            port=port,
            host=host,
            type=SITE_TYPE_PROXY,
            ip=ip,
            path=str(self.files.config_path(primary)),
            status=STATUS_ACTIVE,
            created=now_millis(),
        )

        try:
            report.extend(self.files.materialize(record, render_site_config(domain, port, host)))
        except IOFailure as e:
            return report.abort(str(e))

        ok, output = self.nginx.validate()
        if not ok:
            report.add(Step.fail("validate", output))
            return self._finish(report)
        report.add(Step("validate", detail="Configuration validation PASSED"))

        ok, output = self.nginx.reload()
        if not ok:
            report.add(Step.fail("reload", output))
            return self._finish(report)
        report.add(Step("reload"))

        if add_hosts:
            self._sync_hosts(report, "hosts entry", self.hosts.add_or_skip, domain, ip)

        try:
            self.index.append(record)
        except IOFailure as e:
            report.add(Step.fail("register", str(e)))
        else:
            report.add(Step("register", detail=str(self.index.index_file)))
        return self._finish(report)

    def edit(
        self,
        selection: int,
        domain: Optional[str] = None,
        port: Optional[str] = None,
        host: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> OperationReport:
        """Change a site's fields. Empty/None values keep the current ones.

        The index is rewritten before nginx validates the new config, so it
        always matches the file on disk. A failed validation leaves nginx
        serving the last valid config until the site is fixed.
        """
        report = OperationReport("edit")
        try:
            position, old = self.select(selection)
        except ValidationError as e:
            return report.abort(str(e))

        new = replace(
            old,
            domain=normalize_domain(domain) or old.domain,
            port=(port or "").strip() or old.port,
            host=(host or "").strip() or old.host or DEFAULT_HOST,
            ip=(ip or "").strip() or old.ip or DEFAULT_IP,
            extra=dict(old.extra),
        )
        report.domain = new.domain
        try:
            validate_site_input(new.domain, new.port, new.host, new.ip, new.type or SITE_TYPE_PROXY)
        except ValidationError as e:
            return report.abort(str(e))

        new_primary = new.primary_domain
        if new_primary != old.primary_domain:
            if any(r.primary_domain == new_primary for i, r in enumerate(self.records) if i != position):
                return report.abort(f"Domain {new_primary} is already managed")
            old_path = Path(old.path) if old.path else self.files.config_path(old.primary_domain)
            new_path, steps = self.files.rename(old_path, new_primary, enabled=new.is_active)
            report.extend(steps)
            new.path = str(new_path)
        elif not new.path:
            new.path = str(self.files.config_path(new_primary))

        try:
            self.files.write_config(Path(new.path), render_site_config(new.domain, new.port, new.host))
        except IOFailure as e:
            report.add(Step.fail("write config", str(e)))
        else:
            report.add(Step("write config", detail=new.path))

        records = list(self.records)
        records[position] = new
        try:
            self.index.save(records)
        except IOFailure as e:
            report.add(Step.fail("update index", str(e)))
        else:
            report.add(Step("update index"))

        self._sync_hosts(report, "hosts entry", self.hosts.update_by_old_domain, old.domain, new.domain, new.ip)

        ok, output = self.nginx.validate()
        if not ok:
            report.add(Step.fail(
                "validate",
                output + "\nIndex already holds the new values; nginx keeps the last valid configuration.",
            ))
            return self._finish(report)
        report.add(Step("validate", detail="Configuration test PASSED"))

        ok, output = self.nginx.reload()
        report.add(Step("reload", detail=output) if ok else Step.fail("reload", output))
        return self._finish(report)

    def delete(self, selection: int) -> OperationReport:
        """Remove a site's files, hosts entries and index record."""
        report = OperationReport("delete")
        try:
            position, record = self.select(selection)
        except ValidationError as e:
            return report.abort(str(e))
        report.domain = record.domain

        for step in self.files.remove(record):
            step.required = False
            report.add(step)

        self._sync_hosts(report, "hosts entry", self.hosts.remove_by_domain, record.domain)

        records = self.records[:position] + self.records[position + 1:]
        try:
            self.index.save(records)
        except IOFailure as e:
            report.add(Step.fail("update index", str(e)))
            return self._finish(report)
        report.add(Step("update index"))

        ok, output = self.nginx.reload()
        report.add(Step("reload") if ok else Step.fail("reload", output, required=False))
        return self._finish(report)

    def toggle(self, selection: int) -> OperationReport:
        """Flip a site between active and inactive."""
        report = OperationReport("toggle")
        try:
            position, record = self.select(selection)
        except ValidationError as e:
            return report.abort(str(e))
        report.domain = record.domain

        enable = not record.is_active
        updated = replace(record, status=STATUS_ACTIVE if enable else STATUS_INACTIVE, extra=dict(record.extra))
        report.add(self.files.set_enabled(updated, enable))

        records = list(self.records)
        records[position] = updated
        try:
            self.index.save(records)
        except IOFailure as e:
            report.add(Step.fail("update index", str(e)))
            return self._finish(report)
        report.add(Step("update index", detail=f"status={updated.status}"))

        ok, output = self.nginx.reload()
        report.add(Step("reload") if ok else Step.fail("reload", output))
        return self._finish(report)
