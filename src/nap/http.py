"""Minimal HTTP GET transport used by the discovery strategies.

The transport is a plain callable ``(url) -> bytes`` so tests and callers can
swap in their own implementation without touching the network.
"""

from __future__ import annotations

import http.client
import urllib.error
import urllib.request
from typing import Callable

from .errors import TransportError

Transport = Callable[[str], bytes]

USER_AGENT = "node-android-patcher/0.1"
DEFAULT_TIMEOUT = 30.0


def http_get(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Fetch ``url`` and return the raw response body."""
    try:
        request = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
            method="GET",
        )
    except ValueError as error:
        raise TransportError(f"Invalid URL: {url}", details={"url": url}) from error

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            raw = response.read()
            status = getattr(response, "status", None) or 200
    except TimeoutError as error:  # pragma: no cover - network-dependent
        raise TransportError(f"Request to {url} timed out.", details={"url": url}) from error
    except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
        raise TransportError(f"HTTP {error.code} for {url}", details={"url": url, "status": error.code}) from error
    except urllib.error.URLError as error:  # pragma: no cover - network-dependent
        raise TransportError(f"Failed to reach {url}: {error.reason}", details={"url": url}) from error
    except (http.client.InvalidURL, ValueError) as error:
        raise TransportError(f"Invalid URL: {url}", details={"url": url}) from error
    except http.client.HTTPException as error:
        raise TransportError(f"Malformed HTTP response from {url}: {error!r}", details={"url": url}) from error
    except OSError as error:  # pragma: no cover - network-dependent
        raise TransportError(f"Connection error for {url}: {error}", details={"url": url}) from error

    if status >= 400:
        raise TransportError(f"Unexpected HTTP status {status} for {url}", details={"url": url, "status": status})
    return raw


def make_transport(timeout: float = DEFAULT_TIMEOUT) -> Transport:
    """Return an :func:`http_get` transport bound to ``timeout``."""

    def _transport(url: str) -> bytes:
        return http_get(url, timeout=timeout)

    return _transport


__all__ = ["DEFAULT_TIMEOUT", "Transport", "http_get", "make_transport"]
