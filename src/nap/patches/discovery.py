"""Patch discovery strategies.

Each strategy lists the patch files published for one package directory of a
GitHub-hosted packages repository. The resolver runs every registered strategy
against every source and merges what they find, so a strategy only has to
report its own view of the listing and raise on failure.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any, List
from urllib.parse import quote, unquote, urljoin, urlsplit

from ..errors import TransportError
from ..http import Transport
from .schema import PatchCandidate

_HREF_RE = re.compile(r"""href=["']([^"'#?]+)""", re.IGNORECASE)


class DiscoveryStrategy(ABC):
    """Lists candidate patch files for a package at a given reference."""

    name: str = "strategy"

    def __init__(
        self,
        *,
        transport: Transport,
        repository: str,
        packages_path: str = "packages",
        suffix: str = ".patch",
    ) -> None:
        self._transport = transport
        self.repository = repository.strip("/")
        self.packages_path = packages_path.strip("/")
        self.suffix = suffix

    def _package_path(self, source: str) -> str:
        parts = [self.packages_path, source.strip("/")]
        return "/".join(part for part in parts if part)

    def _fetch_text(self, url: str) -> str:
        return self._transport(url).decode("utf-8", errors="replace")

    def _accepts(self, name: str) -> bool:
        return bool(name) and "/" not in name and name != self.suffix and name.endswith(self.suffix)

    @abstractmethod
    def list_patches(self, source: str, reference: str) -> List[PatchCandidate]:
        """Return the patch files visible for ``source`` at ``reference``.

        Raises :class:`~nap.errors.TransportError` when the listing cannot be
        retrieved or understood.
        """


class DirectoryListingStrategy(DiscoveryStrategy):
    """Scrapes ``href`` tokens from an HTML directory listing."""

    name = "listing"

    def __init__(self, *, raw_base_url: str = "https://raw.githubusercontent.com", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.raw_base_url = raw_base_url.rstrip("/")

    def listing_url(self, source: str, reference: str) -> str:
        return f"{self.raw_base_url}/{self.repository}/{reference}/{self._package_path(source)}/"

    def list_patches(self, source: str, reference: str) -> List[PatchCandidate]:
        listing_url = self.listing_url(source, reference)
        body = self._fetch_text(listing_url)

        candidates: List[PatchCandidate] = []
        seen: set[str] = set()
        for href in _HREF_RE.findall(body):
            target = urljoin(listing_url, href)
            name = unquote(urlsplit(target).path.rstrip("/").rsplit("/", 1)[-1])
            if not self._accepts(name) or name in seen:
                continue
            seen.add(name)
            candidates.append(PatchCandidate(source=source, name=name, url=target, strategy=self.name))
        return candidates


class ContentsApiStrategy(DiscoveryStrategy):
    """Queries the GitHub contents API for the package directory."""

    name = "contents-api"

    def __init__(self, *, api_base_url: str = "https://api.github.com", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_base_url = api_base_url.rstrip("/")

    def contents_url(self, source: str, reference: str) -> str:
        return (
            f"{self.api_base_url}/repos/{self.repository}/contents/"
            f"{self._package_path(source)}?ref={quote(reference, safe='')}"
        )

    def list_patches(self, source: str, reference: str) -> List[PatchCandidate]:
        url = self.contents_url(source, reference)
        body = self._fetch_text(url)
        try:
            items = json.loads(body)
        except json.JSONDecodeError as error:
            raise TransportError(f"Malformed contents listing from {url}", details={"url": url}) from error
        if not isinstance(items, list):
            message = items.get("message") if isinstance(items, dict) else None
            raise TransportError(
                f"Unexpected contents listing from {url}: {message or type(items).__name__}",
                details={"url": url},
            )

        candidates: List[PatchCandidate] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            download_url = item.get("download_url")
            if not isinstance(name, str) or not self._accepts(name):
                continue
            if item.get("type", "file") != "file":
                continue
            if not isinstance(download_url, str) or not download_url:
                continue
            candidates.append(PatchCandidate(source=source, name=name, url=download_url, strategy=self.name))
        return candidates


__all__ = ["ContentsApiStrategy", "DirectoryListingStrategy", "DiscoveryStrategy"]
