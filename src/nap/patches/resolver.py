"""Resolve and download patches from an ordered list of sources."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from ..config import PatchSettings
from ..errors import CandidateFetchFailed, NapError, SourceUnreachable
from ..http import Transport, make_transport
from ..telemetry import emit_event
from .discovery import ContentsApiStrategy, DirectoryListingStrategy, DiscoveryStrategy
from .schema import PatchCandidate, PatchSet, PatchSource

LOGGER = logging.getLogger(__name__)


def default_strategies(settings: PatchSettings, transport: Transport) -> List[DiscoveryStrategy]:
    """Build the listing scrape and contents API strategies, in that order."""
    common = {
        "transport": transport,
        "repository": settings.repository,
        "packages_path": settings.packages_path,
        "suffix": settings.suffix,
    }
    return [
        DirectoryListingStrategy(raw_base_url=settings.raw_base_url, **common),
        ContentsApiStrategy(api_base_url=settings.api_base_url, **common),
    ]


class PatchResolver:
    """Discovers, deduplicates, orders and downloads patch files.

    Resolution and download are fused: a candidate only makes it into the
    returned :class:`PatchSet` once its content is on disk. Every failure is
    local to the source or candidate that caused it.
    """

    def __init__(
        self,
        strategies: Sequence[DiscoveryStrategy],
        *,
        transport: Transport,
        download_dir: Path,
        suffix: str = ".patch",
    ) -> None:
        self.strategies = list(strategies)
        self._transport = transport
        self.download_dir = Path(download_dir)
        self.suffix = suffix

    @classmethod
    def from_settings(
        cls,
        settings: PatchSettings,
        *,
        download_dir: Path,
        transport: Transport | None = None,
    ) -> "PatchResolver":
        active_transport = transport or make_transport(settings.timeout)
        return cls(
            default_strategies(settings, active_transport),
            transport=active_transport,
            download_dir=download_dir,
            suffix=settings.suffix,
        )

    def resolve(self, sources: Sequence[str], reference: str) -> PatchSet:
        """Return the downloaded patches for ``sources`` in priority order."""
        self.download_dir.mkdir(parents=True, exist_ok=True)

        patches: List[PatchCandidate] = []
        failed: List[PatchCandidate] = []
        unreachable: List[str] = []
        seen: set[Tuple[str, str]] = set()

        for priority, identifier in enumerate(sources):
            source = PatchSource(identifier=identifier, reference=reference, priority=priority)
            LOGGER.info("Resolving patches for %s at %s", identifier, reference)
            try:
                candidates = self.discover(source)
            except SourceUnreachable as error:
                LOGGER.warning("%s", error)
                unreachable.append(identifier)
                continue

            for candidate in candidates:
                if candidate.key in seen:
                    continue
                seen.add(candidate.key)
                try:
                    fetched = self.fetch(candidate)
                except CandidateFetchFailed as error:
                    LOGGER.warning("%s", error)
                    emit_event("patch.download_failed", source=candidate.source, name=candidate.name, url=candidate.url)
                    failed.append(candidate)
                    continue
                patches.append(fetched)

        emit_event(
            "patch.resolved",
            reference=reference,
            sources=list(sources),
            downloaded=[candidate.local_name for candidate in patches],
            failed=[candidate.local_name for candidate in failed],
            unreachable=unreachable,
        )
        return PatchSet(patches=tuple(patches), failed=tuple(failed), unreachable=tuple(unreachable))

    def discover(self, source: PatchSource) -> List[PatchCandidate]:
        """Merge every strategy's listing for ``source``, deduplicated by name.

        Raises :class:`SourceUnreachable` when no strategy returned a listing.
        """
        merged: Dict[Tuple[str, str], PatchCandidate] = {}
        errors: List[str] = []
        reached = False

        for strategy in self.strategies:
            try:
                found = strategy.list_patches(source.identifier, source.reference)
            except NapError as error:
                LOGGER.debug("%s listing failed for %s: %s", strategy.name, source.identifier, error)
                errors.append(f"{strategy.name}: {error}")
                continue
            reached = True
            LOGGER.debug("%s listed %d patch(es) for %s", strategy.name, len(found), source.identifier)
            for candidate in found:
                if not candidate.name.endswith(self.suffix):
                    continue
                merged.setdefault(candidate.key, replace(candidate, priority=source.priority))

        if not reached:
            raise SourceUnreachable(
                f"Source {source.identifier} at {source.reference} is unreachable",
                details={"source": source.identifier, "errors": errors},
            )
        return sorted(merged.values(), key=lambda candidate: candidate.sort_key)

    def fetch(self, candidate: PatchCandidate) -> PatchCandidate:
        """Download ``candidate`` into the download directory."""
        target = self.download_dir / candidate.local_name
        LOGGER.info("Downloading %s/%s", candidate.source, candidate.name)
        try:
            payload = self._transport(candidate.url)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except (NapError, OSError) as error:
            raise CandidateFetchFailed(
                f"Failed to download {candidate.source}/{candidate.name}: {error}",
                details={"url": candidate.url},
            ) from error
        return candidate.with_path(target)


__all__ = ["PatchResolver", "default_strategies"]
