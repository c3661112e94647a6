from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class EntryResult:
    """Outcome of writing one archive entry."""
    name: str
    ok: bool
    size: int = 0
    error: Optional[str] = None


@dataclass
class WriteReport:
    """Per-entry results of a write/append call.

    The archive itself opened and closed fine if a report exists at all;
    container failures are raised instead.
    """
    path: str
    append: bool = False
    results: List[EntryResult] = field(default_factory=list)

    def add_success(self, name: str, size: int) -> None:
        self.results.append(EntryResult(name=name, ok=True, size=size))

    def add_failure(self, name: str, error: str) -> None:
        self.results.append(EntryResult(name=name, ok=False, error=error))

    @property
    def succeeded(self) -> List[str]:
        return [r.name for r in self.results if r.ok]

    @property
    def failed(self) -> Dict[str, str]:
        return {r.name: (r.error or "") for r in self.results if not r.ok}

    @property
    def ok(self) -> bool:
        """True when every requested entry was written."""
        return all(r.ok for r in self.results)

    @property
    def partial(self) -> bool:
        """True when some, but not all, entries failed."""
        return bool(self.succeeded) and bool(self.failed)

    @property
    def bytes_written(self) -> int:
        return sum(r.size for r in self.results if r.ok)
