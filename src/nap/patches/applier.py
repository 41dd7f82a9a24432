"""Apply unified diffs to a source tree with ``patch``.

Every patch is verified with ``--dry-run`` against the current tree before it
is applied for real. A patch that fails verification is skipped and the tree
is left untouched, so a run never needs to undo anything.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Sequence

from ..errors import NapError, PatchDoesNotApply, PatchToolError
from ..telemetry import emit_event
from .schema import ApplyOutcome, ApplyReport, ApplyResult, PatchCandidate, PatchSet

LOGGER = logging.getLogger(__name__)

DEFAULT_PATCH_EXECUTABLE = "patch"


def load_local_patches(directory: Path, *, suffix: str = ".patch") -> PatchSet:
    """Collect the patch files placed directly in ``directory``, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        LOGGER.debug("Local patch directory %s does not exist", root)
        return PatchSet()

    patches = [
        PatchCandidate(source="", name=path.name, url=path.resolve().as_uri(), strategy="local", path=path)
        for path in sorted(root.iterdir(), key=lambda item: item.name)
        if path.is_file() and path.name.endswith(suffix)
    ]
    return PatchSet(patches=tuple(patches))


class PatchApplier:
    """Dry-run then commit each patch of a :class:`PatchSet` in order."""

    def __init__(self, *, strip: int = 1, executable: str = DEFAULT_PATCH_EXECUTABLE) -> None:
        self.strip = strip
        self.executable = executable

    def _resolve_executable(self) -> str:
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise PatchToolError(f"Executable not available: {self.executable}")
        return resolved

    def _command(self, executable: str, patch_path: Path, *, dry_run: bool) -> List[str]:
        command = [
            executable,
            f"-p{self.strip}",
            "--forward",
            "--batch",
            "--no-backup-if-mismatch",
            "--input",
            str(patch_path.resolve()),
        ]
        if dry_run:
            command.append("--dry-run")
        return command

    def _run(self, executable: str, tree: Path, patch_path: Path, *, dry_run: bool) -> subprocess.CompletedProcess[str]:
        process = subprocess.run(  # noqa: S603 - arguments are built from known values
            self._command(executable, patch_path, dry_run=dry_run),
            cwd=tree,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=False,
            check=False,
        )
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)

    def check(self, tree: Path, patch_path: Path, *, executable: str | None = None) -> None:
        """Raise :class:`PatchDoesNotApply` unless ``patch_path`` applies cleanly."""
        if not patch_path.is_file():
            raise PatchDoesNotApply(f"Patch file missing: {patch_path}")
        result = self._run(executable or self._resolve_executable(), tree, patch_path, dry_run=True)
        if result.returncode != 0:
            output = result.stdout.strip() or result.stderr.strip()
            raise PatchDoesNotApply(
                f"{patch_path.name} does not apply cleanly",
                details={"returncode": result.returncode, "output": output},
            )

    def apply(self, tree: Path, patches: PatchSet) -> ApplyReport:
        """Apply ``patches`` to ``tree`` and report the per-patch outcomes.

        Candidates whose download failed are reported first. Raises
        :class:`PatchToolError` when ``patch`` is not installed and
        :class:`NapError` when ``tree`` is not a directory; a single patch
        never aborts the pass.
        """
        tree = Path(tree)
        if not tree.is_dir():
            raise NapError(f"Source tree not found: {tree}")

        report = ApplyReport()
        for candidate in patches.failed:
            report.record(ApplyResult(name=candidate.local_name, outcome=ApplyOutcome.DOWNLOAD_FAILED, detail=candidate.url))

        if not patches.patches:
            LOGGER.info("%s", report.format_summary())
            return report

        executable = self._resolve_executable()
        for candidate in patches:
            report.record(self._apply_one(executable, tree, candidate))

        LOGGER.info("%s", report.format_summary())
        return report

    def _apply_one(self, executable: str, tree: Path, candidate: PatchCandidate) -> ApplyResult:
        name = candidate.local_name
        if candidate.path is None:
            return ApplyResult(name=name, outcome=ApplyOutcome.DOWNLOAD_FAILED, detail=candidate.url)

        try:
            self.check(tree, candidate.path, executable=executable)
        except PatchDoesNotApply as error:
            LOGGER.warning("Skipping %s: does not apply cleanly", name)
            emit_event("patch.skipped", name=name, path=candidate.path, details=error.details)
            return ApplyResult(
                name=name,
                outcome=ApplyOutcome.SKIPPED_DOES_NOT_APPLY,
                path=candidate.path,
                detail=str(error.details.get("output") or error),
            )

        result = self._run(executable, tree, candidate.path, dry_run=False)
        if result.returncode != 0:
            output = result.stdout.strip() or result.stderr.strip()
            LOGGER.error("Applying %s failed after a clean dry run: %s", name, output)
            emit_event("patch.skipped", name=name, path=candidate.path, returncode=result.returncode)
            return ApplyResult(name=name, outcome=ApplyOutcome.SKIPPED_DOES_NOT_APPLY, path=candidate.path, detail=output)

        LOGGER.info("Applied %s", name)
        emit_event("patch.applied", name=name, path=candidate.path)
        return ApplyResult(name=name, outcome=ApplyOutcome.APPLIED, path=candidate.path)


def apply_patch_sets(tree: Path, patch_sets: Sequence[PatchSet], *, applier: PatchApplier | None = None) -> ApplyReport:
    """Run one apply pass per patch set and combine the reports."""
    active = applier or PatchApplier()
    return ApplyReport.combine(active.apply(tree, patch_set) for patch_set in patch_sets)


__all__ = ["DEFAULT_PATCH_EXECUTABLE", "PatchApplier", "apply_patch_sets", "load_local_patches"]
