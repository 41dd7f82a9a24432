"""Shared patch texts, URL builders and fakes for the test-suite."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pytest

from nap.errors import TransportError

SRC = Path(__file__).resolve().parents[1] / "src"

RAW_BASE = "https://raw.example"
API_BASE = "https://api.example"
REPOSITORY = "termux/termux-packages"

GREETING = "hello\nworld\n"
MAIN_CC = "int main() {\n  return 0;\n}\n"


def _diff(path: str, header: str, lines: List[str]) -> str:
    body = "".join(f"{line}\n" for line in lines)
    return f"--- a/{path}\n+++ b/{path}\n{header}\n{body}"


FIX_PATCH = _diff("lib/greeting.txt", "@@ -1,2 +1,2 @@", ["-hello", "+hello android", " world"])
FEATURE_PATCH = _diff("src/node.cc", "@@ -1,3 +1,4 @@", ["+// arm64", " int main() {", "   return 0;", " }"])
BROKEN_PATCH = _diff("lib/greeting.txt", "@@ -1,2 +1,2 @@", ["-goodbye", "+farewell", " moon"])
PARTIAL_PATCH = FEATURE_PATCH + BROKEN_PATCH


def listing_url(source: str, ref: str = "master") -> str:
    return f"{RAW_BASE}/{REPOSITORY}/{ref}/packages/{source}/"


def raw_url(source: str, name: str, ref: str = "master") -> str:
    return f"{listing_url(source, ref)}{name}"


def contents_url(source: str, ref: str = "master") -> str:
    return f"{API_BASE}/repos/{REPOSITORY}/contents/packages/{source}?ref={ref}"


def listing_html(*names: str) -> str:
    links = "\n".join(f'<a href="{name}">{name}</a>' for name in names)
    return f"<html><body>\n{links}\n</body></html>\n"


@dataclass(slots=True)
class FakeTransport:
    """In-memory stand-in for the HTTP transport; unknown URLs answer 404."""

    responses: Dict[str, object] = field(default_factory=dict)
    calls: List[str] = field(default_factory=list)

    def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        value = self.responses.get(url)
        if value is None:
            raise TransportError(f"HTTP 404 for {url}", details={"url": url, "status": 404})
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)  # type: ignore[arg-type]


@dataclass(slots=True)
class PatchWorkspace:
    """Fixture payload: a fresh source tree plus patch directories."""

    root: Path
    tree: Path
    download_dir: Path
    local_dir: Path
    config_path: Path

    def write_local_patch(self, name: str, text: str) -> Path:
        path = self.local_dir / name
        path.write_text(text, encoding="utf-8")
        return path

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m nap.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "nap.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


def build_tree(root: Path) -> Path:
    (root / "lib").mkdir(parents=True)
    (root / "src").mkdir()
    (root / "lib" / "greeting.txt").write_text(GREETING, encoding="utf-8")
    (root / "src" / "node.cc").write_text(MAIN_CC, encoding="utf-8")
    return root


def snapshot(tree: Path) -> Dict[str, bytes]:
    return {
        path.relative_to(tree).as_posix(): path.read_bytes()
        for path in sorted(tree.rglob("*"))
        if path.is_file()
    }


requires_patch = pytest.mark.skipif(shutil.which("patch") is None, reason="GNU patch is not installed")
