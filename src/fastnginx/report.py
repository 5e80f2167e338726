"""Per-step outcome of a lifecycle operation.

Operations never roll back. Each step that touched (or tried to touch) a
resource is recorded so the administrator can reconcile by hand.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .records import ConfigurationRecord


@dataclass
class Step:
    name: str
    ok: bool = True
    detail: str = ""
    # A failed optional step does not fail the operation
    required: bool = True
    skipped: bool = False

    @classmethod
    def skip(cls, name: str, detail: str = "") -> "Step":
        return cls(name, ok=True, detail=detail, skipped=True)

    @classmethod
    def fail(cls, name: str, detail: str = "", required: bool = True) -> "Step":
        return cls(name, ok=False, detail=detail, required=required)


@dataclass
class OperationReport:
    action: str
    domain: str = ""
    steps: List[Step] = field(default_factory=list)
    error: Optional[str] = None
    # Index as reloaded after the operation; earlier selections are stale
    records: List[ConfigurationRecord] = field(default_factory=list)
    manual_hosts_line: str = ""

    @property
    def success(self) -> bool:
        return self.error is None and all(s.ok for s in self.steps if s.required)

    @property
    def failed_steps(self) -> List[Step]:
        return [s for s in self.steps if not s.ok]

    def add(self, step: Step) -> Step:
        self.steps.append(step)
        return step

    def extend(self, steps: List[Step]):
        self.steps.extend(steps)

    def abort(self, message: str) -> "OperationReport":
        self.error = message
        return self
