"""Patch discovery, download and application."""

from .applier import PatchApplier, apply_patch_sets, load_local_patches
from .discovery import ContentsApiStrategy, DirectoryListingStrategy, DiscoveryStrategy
from .resolver import PatchResolver, default_strategies
from .schema import ApplyOutcome, ApplyReport, ApplyResult, PatchCandidate, PatchSet, PatchSource

__all__ = [
    "ApplyOutcome",
    "ApplyReport",
    "ApplyResult",
    "ContentsApiStrategy",
    "DirectoryListingStrategy",
    "DiscoveryStrategy",
    "PatchApplier",
    "PatchCandidate",
    "PatchResolver",
    "PatchSet",
    "PatchSource",
    "apply_patch_sets",
    "default_strategies",
    "load_local_patches",
]
