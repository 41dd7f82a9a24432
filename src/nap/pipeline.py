"""End-to-end patch run: resolve remote patches, then apply remote and local sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import Settings
from .errors import NapError
from .http import Transport
from .patches.applier import PatchApplier, load_local_patches
from .patches.resolver import PatchResolver
from .patches.schema import ApplyReport, PatchSet

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineReport:
    """Outcome of a full run.

    ``remote`` and ``local`` hold the two apply passes; ``combined`` is the
    tally surfaced to the user.
    """

    patch_set: PatchSet = field(default_factory=PatchSet)
    remote: ApplyReport = field(default_factory=ApplyReport)
    local: ApplyReport = field(default_factory=ApplyReport)

    @property
    def combined(self) -> ApplyReport:
        return ApplyReport.combine([self.remote, self.local])


def run_pipeline(
    settings: Settings,
    *,
    tree: Path | None = None,
    reference: str | None = None,
    sources: Sequence[str] | None = None,
    include_remote: bool = True,
    include_local: bool = True,
    transport: Transport | None = None,
    applier: PatchApplier | None = None,
) -> PipelineReport:
    """Resolve, download and apply patches according to ``settings``."""
    source_tree = Path(tree) if tree is not None else settings.paths.source_tree
    if not source_tree.is_dir():
        raise NapError(f"Source tree not found: {source_tree}")
    active_applier = applier or PatchApplier(strip=settings.patches.strip)
    report = PipelineReport()

    if include_remote:
        resolver = PatchResolver.from_settings(
            settings.patches,
            download_dir=settings.paths.download_dir,
            transport=transport,
        )
        report.patch_set = resolver.resolve(
            list(sources) if sources is not None else settings.patches.sources,
            reference or settings.patches.ref,
        )
        LOGGER.info("Applying %d remote patch(es) to %s", len(report.patch_set), source_tree)
        report.remote = active_applier.apply(source_tree, report.patch_set)

    if include_local:
        local_set = load_local_patches(settings.paths.local_patches, suffix=settings.patches.suffix)
        LOGGER.info("Applying %d local patch(es) to %s", len(local_set), source_tree)
        report.local = active_applier.apply(source_tree, local_set)

    LOGGER.info("%s", report.combined.format_summary())
    return report


__all__ = ["PipelineReport", "run_pipeline"]
