"""Typed records shared by the patch resolver and applier."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Tuple


class ApplyOutcome(str, Enum):
    """Per-candidate result of an apply pass."""

    APPLIED = "APPLIED"
    SKIPPED_DOES_NOT_APPLY = "SKIPPED_DOES_NOT_APPLY"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"


@dataclass(frozen=True, slots=True)
class PatchSource:
    """A remote package directory that may hold patch files."""

    identifier: str
    reference: str
    priority: int = 0


@dataclass(frozen=True, slots=True)
class PatchCandidate:
    """One discovered patch file.

    ``path`` is only set once the file has been retrieved to local storage.
    Deduplication uses :attr:`key`, so the strategy that found a candidate is
    informational only.
    """

    source: str
    name: str
    url: str
    strategy: str = ""
    priority: int = 0
    path: Path | None = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.name)

    @property
    def local_name(self) -> str:
        """Path below the download directory, one subdirectory per source."""
        return f"{self.source}/{self.name}" if self.source else self.name

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.priority, self.name)

    def with_path(self, path: Path) -> "PatchCandidate":
        return replace(self, path=path)


@dataclass(slots=True)
class PatchSet:
    """Ordered, deduplicated patches that are ready to apply."""

    patches: Tuple[PatchCandidate, ...] = ()
    failed: Tuple[PatchCandidate, ...] = ()
    unreachable: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[PatchCandidate]:
        return iter(self.patches)

    def __len__(self) -> int:
        return len(self.patches)

    @property
    def paths(self) -> Tuple[Path, ...]:
        return tuple(candidate.path for candidate in self.patches if candidate.path is not None)


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """Outcome of one candidate within an apply pass."""

    name: str
    outcome: ApplyOutcome
    path: Path | None = None
    detail: str = ""


@dataclass(slots=True)
class ApplyReport:
    """Aggregated results of one or more apply passes."""

    results: list[ApplyResult] = field(default_factory=list)

    def record(self, result: ApplyResult) -> None:
        self.results.append(result)

    def _count(self, outcome: ApplyOutcome) -> int:
        return sum(1 for result in self.results if result.outcome is outcome)

    @property
    def applied(self) -> int:
        return self._count(ApplyOutcome.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(ApplyOutcome.SKIPPED_DOES_NOT_APPLY)

    @property
    def download_failed(self) -> int:
        return self._count(ApplyOutcome.DOWNLOAD_FAILED)

    @property
    def outcomes(self) -> Tuple[ApplyOutcome, ...]:
        return tuple(result.outcome for result in self.results)

    @classmethod
    def combine(cls, reports: Iterable["ApplyReport"]) -> "ApplyReport":
        merged = cls()
        for report in reports:
            merged.results.extend(report.results)
        return merged

    def format_summary(self) -> str:
        """Return the human readable applied/skipped tally."""
        return f"Patches: {self.applied} applied, {self.skipped} skipped"


__all__ = [
    "ApplyOutcome",
    "ApplyReport",
    "ApplyResult",
    "PatchCandidate",
    "PatchSet",
    "PatchSource",
]
