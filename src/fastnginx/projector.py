"""Project records onto nginx's sites-available / sites-enabled layout.

The config file lives at ``record.path``; the enable link is
``<sites_enabled>/<primary domain>`` and points at that file. The link
exists exactly when the record is active.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Tuple

from .exceptions import IOFailure
from .records import ConfigurationRecord
from .report import Step

logger = logging.getLogger(__name__)

ELEVATED_LINK_COMMAND = ["sudo", "ln", "-sf"]


class SiteFiles:
    """Config files and enable links for managed sites."""

    def __init__(self, sites_available: Path, sites_enabled: Path):
        self.sites_available = Path(sites_available)
        self.sites_enabled = Path(sites_enabled)

    def config_path(self, primary: str) -> Path:
        return self.sites_available / primary

    def link_path(self, primary: str) -> Path:
        return self.sites_enabled / primary

    def write_config(self, path: Path, content: str):
        """Write a rendered config, raising IOFailure on error."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            os.chmod(path, 0o644)
        except OSError as e:
            raise IOFailure(f"Failed to write nginx config {path}: {e}", path) from e
        logger.info(f"Wrote nginx config {path}")

    def materialize(self, record: ConfigurationRecord, content: str) -> List[Step]:
        """Write the config file and, for an active record, its enable link.

        A write failure raises IOFailure; a link failure is reported.
        """
        self.write_config(Path(record.path), content)
        steps = [Step("write config", detail=record.path)]
        if record.is_active:
            steps.append(self.enable(record.primary_domain, Path(record.path)))
        return steps

    def enable(self, primary: str, target: Path) -> Step:
        link = self.link_path(primary)
        if os.path.lexists(link):
            return Step.skip("enable link", f"{link} already exists")
        return self._create_link(Path(target), link)

    def disable(self, primary: str) -> Step:
        link = self.link_path(primary)
        if not os.path.lexists(link):
            return Step.skip("disable link", f"{link} not present")
        try:
            os.unlink(link)
        except OSError as e:
            logger.warning(f"Could not delete symlink {link}: {e}")
            return Step.fail("disable link", f"Could not delete symlink {link}: {e}")
        logger.info(f"Deleted symlink {link}")
        return Step("disable link", detail=str(link))

    def set_enabled(self, record: ConfigurationRecord, enabled: bool) -> Step:
        """Create or remove the enable link. Idempotent either way."""
        if enabled:
            return self.enable(record.primary_domain, Path(record.path))
        return self.disable(record.primary_domain)

    def rename(self, old_path: Path, new_primary: str, enabled: bool = True) -> Tuple[Path, List[Step]]:
        """Move a config and its link to a new primary domain name.

        Best effort: each sub-step is reported on its own and later steps
        still run when an earlier one fails.
        """
        old_path = Path(old_path)
        new_path = old_path.parent / new_primary
        steps = [self.disable(old_path.name)]

        if old_path.exists():
            try:
                os.rename(old_path, new_path)
            except OSError as e:
                logger.error(f"Failed to move config file {old_path}: {e}")
                steps.append(Step.fail("move config", f"Failed to move config file: {e}"))
            else:
                logger.info(f"Moved config file {old_path.name} -> {new_primary}")
                steps.append(Step("move config", detail=f"{old_path.name} -> {new_primary}"))
        else:
            steps.append(Step.skip("move config", f"{old_path} not present"))

        if enabled:
            steps.append(self.enable(new_primary, new_path))
        return new_path, steps

    def remove(self, record: ConfigurationRecord) -> List[Step]:
        """Delete the config file and the enable link. Missing is fine."""
        steps = [self.disable(record.primary_domain)]

        path = Path(record.path) if record.path else None
        if path is None or not path.exists():
            steps.append(Step.skip("remove config", f"{path} not present"))
            return steps
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Could not delete config {path}: {e}")
            steps.append(Step.fail("remove config", f"Could not delete config {path}: {e}"))
        else:
            logger.info(f"Deleted config {path}")
            steps.append(Step("remove config", detail=str(path)))
        return steps

    def _create_link(self, target: Path, link: Path) -> Step:
        try:
            link.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(target, link)
        except OSError as e:
            logger.warning(f"Could not create symlink {link}: {e}; retrying with {' '.join(ELEVATED_LINK_COMMAND)}")
            first_error = str(e)
        else:
            logger.info(f"Created symlink {link} -> {target}")
            return Step("enable link", detail=str(link))

        try:
            result = subprocess.run(
                ELEVATED_LINK_COMMAND + [str(target), str(link)],
                capture_output=True, text=True
            )
        except OSError as e:
            return Step.fail("enable link", f"Could not create symlink: {first_error}; ln failed: {e}")
        if result.returncode != 0:
            return Step.fail(
                "enable link",
                f"Could not create symlink: {first_error}; ln failed: {result.stderr.strip()}",
            )
        logger.info(f"Created symlink {link} using ln command")
        return Step("enable link", detail=f"{link} (created with ln command)")
