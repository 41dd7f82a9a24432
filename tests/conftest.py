from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Callable, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from helpers import API_BASE, RAW_BASE, REPOSITORY, FakeTransport, PatchWorkspace, build_tree  # noqa: E402


@pytest.fixture()
def fake_transport() -> Callable[[Mapping[str, object]], FakeTransport]:
    def _factory(responses: Mapping[str, object]) -> FakeTransport:
        return FakeTransport(responses=dict(responses))

    return _factory


@pytest.fixture()
def make_tree(tmp_path: Path) -> Callable[[str], Path]:
    def _make(name: str = "node-src") -> Path:
        return build_tree(tmp_path / name)

    return _make


@pytest.fixture()
def workspace(tmp_path: Path) -> PatchWorkspace:
    """Create a source tree, empty patch directories and a config file."""

    root = tmp_path / "build"
    root.mkdir()
    tree = build_tree(root / "node-src")
    local_dir = root / "patches"
    local_dir.mkdir()

    config_path = root / "config.yaml"
    config_path.write_text(
        textwrap.dedent(
            f"""
            patches:
              repository: {REPOSITORY}
              ref: master
              sources: [nodejs-lts, nodejs]
              raw_base_url: {RAW_BASE}
              api_base_url: {API_BASE}
            paths:
              source_tree: node-src
              download_dir: termux-patches
              local_patches: patches
            """
        ).lstrip(),
        encoding="utf-8",
    )

    return PatchWorkspace(
        root=root,
        tree=tree,
        download_dir=root / "termux-patches",
        local_dir=local_dir,
        config_path=config_path,
    )


@pytest.fixture(autouse=True)
def _isolate_ref_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TERMUX_REF", raising=False)
