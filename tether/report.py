"""Render verification reports and map them to process exit codes.

Usage
-----
>>> from tether.report import exit_code_for, render_report_markdown
>>> markdown = render_report_markdown(report)
>>> raise SystemExit(exit_code_for(report))

"""

from __future__ import annotations

import typing as typ

import msgspec

from tether.build import Failure, Success
from tether.pipeline import Stage

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tether.pipeline import VerificationReport

EXIT_SUCCESS = 0
EXIT_BUILD_FAILED = 1
EXIT_INVALID_CONTEXT = 2
EXIT_CONFIG_ERROR = 3

_STAGE_TITLES: dict[Stage, str] = {
    Stage.RESOLVE: "Could not resolve the override target",
    Stage.PATCH: "Could not patch the manifest",
    Stage.BUILD: "Build failed",
    Stage.COMPLETE: "Build passed",
}


def exit_code_for(report: VerificationReport) -> int:
    """Return the process exit code for ``report``."""
    if report.succeeded:
        return EXIT_SUCCESS
    if report.stage is Stage.BUILD:
        return EXIT_BUILD_FAILED
    return EXIT_INVALID_CONTEXT


def _render_target(lines: list[str], report: VerificationReport) -> None:
    if report.target is None:
        return
    lines.append(f"- Repository: {report.target.repository_url}")
    lines.append(f"- Branch: `{report.target.branch_name}`")


def _render_outcome(lines: list[str], report: VerificationReport) -> None:
    match report.outcome:
        case Success(duration=duration):
            lines.append(f"- Duration: {duration:.1f}s")
        case Failure(detail=detail, duration=duration):
            lines.append(f"- Failure: {detail.kind} ({detail.message})")
            if detail.exit_code is not None:
                lines.append(f"- Exit code: {detail.exit_code}")
            if detail.signal is not None:
                lines.append(f"- Signal: {detail.signal}")
            lines.append(f"- Duration: {duration:.1f}s")
            if detail.output_tail:
                lines.extend(["", "```text", detail.output_tail, "```"])


def render_report_markdown(report: VerificationReport) -> str:
    """Render ``report`` as Markdown for CI logs and job summaries."""
    lines = [f"## {report.dependency_name}: {_STAGE_TITLES[report.stage]}", ""]
    _render_target(lines, report)
    if report.error and report.stage is not Stage.BUILD:
        lines.append(f"- Error: {report.error}")
    _render_outcome(lines, report)
    return "\n".join(lines) + "\n"


def write_report_json(path: Path, report: VerificationReport) -> None:
    """Write ``report`` to ``path`` as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(msgspec.json.format(msgspec.json.encode(report), indent=2))


def append_step_summary(path: Path, markdown: str) -> None:
    """Append ``markdown`` to a GitHub Actions job summary file."""
    with path.open("a", encoding="utf-8") as handle:
        handle.write(markdown)
