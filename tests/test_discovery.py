from __future__ import annotations

import json

import pytest

from helpers import API_BASE, RAW_BASE, REPOSITORY, contents_url, listing_url, raw_url
from nap.errors import TransportError
from nap.patches.discovery import ContentsApiStrategy, DirectoryListingStrategy


def _listing(transport) -> DirectoryListingStrategy:
    return DirectoryListingStrategy(transport=transport, repository=REPOSITORY, raw_base_url=RAW_BASE)


def _contents(transport) -> ContentsApiStrategy:
    return ContentsApiStrategy(transport=transport, repository=REPOSITORY, api_base_url=API_BASE)


def test_listing_urls_follow_repository_layout(fake_transport) -> None:
    transport = fake_transport({})

    assert _listing(transport).listing_url("nodejs-lts", "v1.2") == (
        "https://raw.example/termux/termux-packages/v1.2/packages/nodejs-lts/"
    )
    assert _contents(transport).contents_url("nodejs", "feature/x") == (
        "https://api.example/repos/termux/termux-packages/contents/packages/nodejs?ref=feature%2Fx"
    )


def test_listing_scrapes_patch_hrefs_and_ignores_other_files(fake_transport) -> None:
    html = "\n".join(
        [
            '<a href="002-feature.patch">002-feature.patch</a>',
            '<a href="build.sh">build.sh</a>',
            "<a href='/termux/termux-packages/blob/master/packages/nodejs/001-fix.patch'>x</a>",
            '<a href="002-feature.patch">again</a>',
            '<a href="notes.patch.txt">notes</a>',
        ]
    )
    transport = fake_transport({listing_url("nodejs"): html})

    candidates = _listing(transport).list_patches("nodejs", "master")

    assert [candidate.name for candidate in candidates] == ["002-feature.patch", "001-fix.patch"]
    assert candidates[0].url == raw_url("nodejs", "002-feature.patch")
    assert candidates[1].url == f"{RAW_BASE}/termux/termux-packages/blob/master/packages/nodejs/001-fix.patch"
    assert {candidate.strategy for candidate in candidates} == {"listing"}
    assert {candidate.source for candidate in candidates} == {"nodejs"}


def test_listing_propagates_transport_errors(fake_transport) -> None:
    with pytest.raises(TransportError):
        _listing(fake_transport({})).list_patches("nodejs", "master")


def test_contents_api_keeps_patch_files_with_download_urls(fake_transport) -> None:
    items = [
        {"name": "001-fix.patch", "type": "file", "download_url": raw_url("nodejs", "001-fix.patch")},
        {"name": "build.sh", "type": "file", "download_url": raw_url("nodejs", "build.sh")},
        {"name": "nested.patch", "type": "dir", "download_url": None},
        {"name": "003-missing-url.patch", "type": "file", "download_url": None},
        "garbage",
    ]
    transport = fake_transport({contents_url("nodejs"): json.dumps(items)})

    candidates = _contents(transport).list_patches("nodejs", "master")

    assert [(candidate.name, candidate.url) for candidate in candidates] == [
        ("001-fix.patch", raw_url("nodejs", "001-fix.patch"))
    ]
    assert candidates[0].strategy == "contents-api"


@pytest.mark.parametrize("body", ["not json", json.dumps({"message": "Not Found"})])
def test_contents_api_rejects_unexpected_payloads(fake_transport, body: str) -> None:
    transport = fake_transport({contents_url("nodejs"): body})

    with pytest.raises(TransportError):
        _contents(transport).list_patches("nodejs", "master")
