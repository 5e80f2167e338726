"""Keep FastNginx entries in the hosts file in step with the index.

Managed lines look like ``<ip>\\t<domain>\\t# Added by FastNginx``. Every
change reads the whole file and writes it back atomically. Lines without
the marker are never rewritten, except by ``update_by_old_domain`` which
matches on the old domain alone.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Tuple

from .config import HOSTS_MARKER
from .exceptions import HostsFileError

logger = logging.getLogger(__name__)


class HostsFile:
    """Managed region of a hosts file."""

    def __init__(self, path: Path, marker: str = HOSTS_MARKER):
        self.path = Path(path)
        self.marker = marker

    def entry(self, domain: str, ip: str) -> str:
        return f"{ip}\t{domain}\t{self.marker}"

    def is_managed_entry(self, line: str, domain: str) -> bool:
        suffix = f"\t{domain}\t{self.marker}"
        stripped = line.strip()
        if not stripped.endswith(suffix):
            return False
        ip = stripped[:-len(suffix)]
        return bool(ip) and "\t" not in ip

    def add_or_skip(self, domain: str, ip: str) -> bool:
        """Append a managed entry unless some line already mentions ``domain``.

        Returns True when a line was added.
        """
        wanted = self.entry(domain, ip)
        lines, mode, uid, gid = self._read(wanted)
        if any(domain in line for line in lines):
            logger.warning(f"Domain {domain} already exists in hosts file")
            return False
        lines.append(wanted)
        self._write(lines, mode, uid, gid, wanted)
        logger.info(f"Added hosts entry: {domain}")
        return True

    def update_by_old_domain(self, old_domain: str, new_domain: str, new_ip: str) -> bool:
        """Rewrite the managed entry for ``old_domain``.

        Without one, the first line merely mentioning ``old_domain`` is
        rewritten, which can be another site's line (``aa.test`` for
        ``a.test``) or an unmanaged one. Falls back to ``add_or_skip``
        for the new domain when nothing matches. Returns True when the
        file changed.
        """
        wanted = self.entry(new_domain, new_ip)
        lines, mode, uid, gid = self._read(wanted)
        matches = [i for i, line in enumerate(lines) if self.is_managed_entry(line, old_domain)]
        matches = matches or [i for i, line in enumerate(lines) if old_domain in line]
        if not matches:
            return self.add_or_skip(new_domain, new_ip)

        i = matches[0]
        if lines[i] == wanted:
            return False
        lines[i] = wanted
        self._write(lines, mode, uid, gid, wanted)
        logger.info(f"Updated hosts entry: {old_domain} -> {new_domain}")
        return True

    def remove_by_domain(self, domain: str) -> int:
        """Drop every managed entry for ``domain``. Returns lines removed."""
        lines, mode, uid, gid = self._read("")
        kept = [line for line in lines if not self.is_managed_entry(line, domain)]
        removed = len(lines) - len(kept)
        if removed:
            self._write(kept, mode, uid, gid, "")
            logger.info(f"Removed {removed} hosts entr{'y' if removed == 1 else 'ies'} for {domain}")
        return removed

    def _read(self, manual_line: str) -> Tuple[List[str], int, int, int]:
        try:
            content = self.path.read_text()
            st = self.path.stat()
        except OSError as e:
            raise HostsFileError(
                f"Failed to read hosts file {self.path}: {e}", self.path, manual_line
            ) from e
        return content.splitlines(), st.st_mode, st.st_uid, st.st_gid

    def _write(self, lines: List[str], mode: int, uid: int, gid: int, manual_line: str):
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w", delete=False, dir=str(self.path.parent), prefix=".hosts."
            ) as tmp:
                tmp.write("\n".join(lines) + "\n")
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_path = tmp.name
            os.chmod(tmp_path, mode & 0o7777)
            if os.geteuid() == 0:
                os.chown(tmp_path, uid, gid)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise HostsFileError(
                f"Failed to update hosts file {self.path}: {e}", self.path, manual_line
            ) from e
