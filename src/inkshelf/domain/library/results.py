"""Result objects returned by pipeline passes instead of printing directly."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class PassResult:
    """Outcome of one enrichment pass over the staging database."""

    name: str
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # identity -> reason
    skipped: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def summary(self) -> str:
        return (
            f"{self.name}: {len(self.succeeded)} succeeded, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        )
