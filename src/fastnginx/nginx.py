"""External nginx commands: syntax check, reload and diagnostics."""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)


@dataclass
class Diagnostics:
    service_active: bool
    syntax_valid: bool
    syntax_output: str
    ports_ok: bool
    ports_output: str


class NginxService:
    """Runs the configured nginx commands and reports ``(ok, output)``."""

    def __init__(
        self,
        validate_command: List[str],
        reload_command: List[str],
        status_command: List[str] = None,
        ports_command: List[str] = None,
    ):
        self.validate_command = list(validate_command)
        self.reload_command = list(reload_command)
        self.status_command = list(status_command or ["systemctl", "is-active", "nginx"])
        self.ports_command = list(ports_command or ["ss", "-tlnp"])

    @classmethod
    def from_settings(cls, settings) -> "NginxService":
        return cls(
            settings.validate_command,
            settings.reload_command,
            settings.status_command,
            settings.ports_command,
        )

    def _run(self, command: List[str]) -> Tuple[bool, str]:
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            logger.error(f"Could not run {' '.join(command)}: {e}")
            return False, str(e)
        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            logger.warning(f"{' '.join(command)} exited {result.returncode}")
        return result.returncode == 0, output.strip()

    def validate(self) -> Tuple[bool, str]:
        """Check configuration syntax (``nginx -t``)."""
        return self._run(self.validate_command)

    def reload(self) -> Tuple[bool, str]:
        """Apply configuration to the running service."""
        return self._run(self.reload_command)

    def is_active(self) -> bool:
        return self._run(self.status_command)[0]

    def diagnose(self) -> Diagnostics:
        syntax_ok, syntax_output = self.validate()
        ports_ok, ports_output = self._run(self.ports_command)
        return Diagnostics(
            service_active=self.is_active(),
            syntax_valid=syntax_ok,
            syntax_output=syntax_output,
            ports_ok=ports_ok,
            ports_output=ports_output,
        )
