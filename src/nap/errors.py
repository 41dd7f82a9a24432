"""Error taxonomy for patch resolution and application."""

from __future__ import annotations

from typing import Any, Mapping


class NapError(RuntimeError):
    """Base error raised by the patcher."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class ConfigError(NapError):
    """Raised when the configuration file cannot be read or validated."""


class TransportError(NapError):
    """Raised when an HTTP request fails to return a usable response."""


class SourceUnreachable(NapError):
    """Raised when no discovery strategy could list a patch source."""


class CandidateFetchFailed(NapError):
    """Raised when a discovered patch file cannot be downloaded."""


class PatchDoesNotApply(NapError):
    """Raised when a patch fails its dry-run verification."""


class PatchToolError(NapError):
    """Raised when the ``patch`` executable is unavailable."""


__all__ = [
    "CandidateFetchFailed",
    "ConfigError",
    "NapError",
    "PatchDoesNotApply",
    "PatchToolError",
    "SourceUnreachable",
    "TransportError",
]
