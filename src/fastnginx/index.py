"""Flat-file index of managed sites.

One encoded record per line, in insertion order. The whole file is
rewritten on every change; there is no locking, so two concurrent writers
can lose an update.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List

from .exceptions import IOFailure
from .records import ConfigurationRecord, decode, encode

logger = logging.getLogger(__name__)


class IndexStore:
    """Load and persist the ordered record list."""

    def __init__(self, index_file: Path):
        self.index_file = Path(index_file)

    def load(self) -> List[ConfigurationRecord]:
        """Read all records. A missing index is an empty one."""
        if not self.index_file.exists():
            return []
        try:
            content = self.index_file.read_text()
        except OSError as e:
            raise IOFailure(f"Cannot read index {self.index_file}: {e}", self.index_file) from e
        return [decode(line) for line in content.splitlines() if line.strip()]

    def save(self, records: List[ConfigurationRecord]):
        """Replace the index with ``records`` via write-temp-then-rename."""
        content = "\n".join(encode(r) for r in records)
        if content:
            content += "\n"

        directory = self.index_file.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", delete=False, dir=str(directory), prefix=".config_index."
            ) as tmp:
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_path = tmp.name
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.index_file)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise IOFailure(f"Cannot write index {self.index_file}: {e}", self.index_file) from e

        logger.info(f"Index rewritten with {len(records)} record(s): {self.index_file}")

    def append(self, record: ConfigurationRecord):
        """Add one record at the end without rewriting existing lines."""
        try:
            self.index_file.parent.mkdir(parents=True, exist_ok=True)
            prefix = ""
            if self.index_file.exists() and self.index_file.stat().st_size > 0:
                with open(self.index_file, "rb") as f:
                    f.seek(-1, os.SEEK_END)
                    if f.read(1) != b"\n":
                        prefix = "\n"
            with open(self.index_file, "a") as f:
                f.write(prefix + encode(record) + "\n")
        except OSError as e:
            raise IOFailure(f"Cannot append to index {self.index_file}: {e}", self.index_file) from e

        logger.info(f"Registered {record.primary_domain} in index")

    def ensure_exists(self):
        """Create an empty index file if there is none."""
        if self.index_file.exists():
            return False
        self.index_file.parent.mkdir(parents=True, exist_ok=True)
        self.index_file.write_text("")
        return True
