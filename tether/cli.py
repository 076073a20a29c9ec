"""Command-line entry points for cross-repository verification.

Usage:
    tether resolve                       # Print the override target
    tether patch                         # Patch the manifest for this run
    tether patch --repository URL --branch NAME
    tether verify                        # Resolve, patch and build

Trigger context is read from the GitHub Actions environment; run settings
come from ``TETHER_*`` variables, which the options below override.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from cyclopts import App

from tether.build import SubprocessBuilder
from tether.config import VerifierConfig
from tether.errors import ConfigError, ContextError, PatchError
from tether.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from tether.pipeline import (
    Stage,
    VerificationReport,
    apply_override,
    run_verification,
)
from tether.report import (
    EXIT_CONFIG_ERROR,
    EXIT_INVALID_CONTEXT,
    EXIT_SUCCESS,
    append_step_summary,
    exit_code_for,
    render_report_markdown,
    write_report_json,
)
from tether.trigger import ManualDispatch, OverrideTarget, resolve, trigger_from_env

logger = get_logger(__name__)

app = App(
    name="tether",
    help="Build a downstream repository against an upstream branch or fork",
    version="0.1.0",
)


def _load_config(overrides: dict[str, str | None]) -> VerifierConfig:
    """Read configuration with command-line values layered over the environment."""
    environ = dict(os.environ)
    environ.update({key: value for key, value in overrides.items() if value is not None})
    config = VerifierConfig.from_env(environ)
    level, invalid = configure_logging(config.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid TETHER_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            level,
        )
    return config


def _override_target(repository: str | None, branch: str | None) -> OverrideTarget:
    """Return the explicit target if given, else resolve the current trigger."""
    if repository is None and branch is None:
        return resolve(trigger_from_env())
    if repository is None or branch is None:
        msg = "--repository and --branch must be given together"
        raise ConfigError(msg)
    return resolve(ManualDispatch(canonical_url=repository, ref_name=branch))


def _publish_report(config: VerifierConfig, report: VerificationReport) -> None:
    """Print ``report`` and copy it to the JSON file and job summary.

    The exit code reflects the verification, so a copy that cannot be
    written is logged and skipped.
    """
    markdown = render_report_markdown(report)
    print(markdown)
    if config.report_path is not None:
        try:
            write_report_json(config.report_path, report)
        except OSError as exc:
            log_error(logger, "Cannot write report to %s: %s", config.report_path, exc)
    summary_path = os.environ.get("GITHUB_STEP_SUMMARY", "").strip()
    if summary_path:
        try:
            append_step_summary(Path(summary_path), markdown)
        except OSError as exc:
            log_error(logger, "Cannot append job summary to %s: %s", summary_path, exc)


@app.command(name="resolve")
def resolve_target() -> int:
    """Print the repository and branch the current trigger resolves to.

    Returns:
        Exit code (0 on success, 2 when the trigger context is unusable).

    """
    configure_logging(os.environ.get("TETHER_LOG_LEVEL", "INFO"))
    try:
        target = resolve(trigger_from_env())
    except ContextError as exc:
        log_error(logger, "%s", exc)
        return EXIT_INVALID_CONTEXT
    print(f"repository={target.repository_url}")
    print(f"branch={target.branch_name}")
    return EXIT_SUCCESS


@app.command
def patch(
    *,
    dependency: str | None = None,
    manifest: str | None = None,
    workspace: str | None = None,
    repository: str | None = None,
    branch: str | None = None,
) -> int:
    """Rewrite the dependency declaration in the manifest.

    Args:
        dependency: Name of the dependency to override.
        manifest: Manifest path relative to the workspace.
        workspace: Repository root of the downstream project.
        repository: Explicit repository URL (requires ``--branch``).
        branch: Explicit branch name (requires ``--repository``).

    Returns:
        Exit code (0 on success, 2 for context or patch errors, 3 for
        configuration errors).

    """
    try:
        config = _load_config(
            {
                "TETHER_DEPENDENCY_NAME": dependency,
                "TETHER_MANIFEST_PATH": manifest,
                "TETHER_WORKSPACE": workspace,
            }
        )
        target = _override_target(repository, branch)
    except ConfigError as exc:
        log_error(logger, "Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except ContextError as exc:
        log_error(logger, "%s", exc)
        return EXIT_INVALID_CONTEXT

    try:
        declaration = apply_override(config, target)
    except PatchError as exc:
        log_error(logger, "%s", exc)
        return EXIT_INVALID_CONTEXT
    log_info(logger, "Patched %s", config.resolved_manifest_path)
    print(declaration)
    return EXIT_SUCCESS


@app.command
def verify(
    *,
    dependency: str | None = None,
    manifest: str | None = None,
    workspace: str | None = None,
    build_command: str | None = None,
    timeout: int | None = None,
    report_json: str | None = None,
) -> int:
    """Resolve the override target, patch the manifest and run the build.

    Args:
        dependency: Name of the dependency to override.
        manifest: Manifest path relative to the workspace.
        workspace: Repository root of the downstream project.
        build_command: Build and test command, split like a shell would.
        timeout: Build time limit in seconds.
        report_json: Optional path for a JSON copy of the report.

    Returns:
        Exit code (0 when the build passes, 1 when it fails, 2 for context
        or patch errors, 3 for configuration errors).

    """
    try:
        config = _load_config(
            {
                "TETHER_DEPENDENCY_NAME": dependency,
                "TETHER_MANIFEST_PATH": manifest,
                "TETHER_WORKSPACE": workspace,
                "TETHER_BUILD_COMMAND": build_command,
                "TETHER_BUILD_TIMEOUT": None if timeout is None else str(timeout),
                "TETHER_REPORT_PATH": report_json,
            }
        )
        builder = SubprocessBuilder(
            command=config.build_command,
            timeout=config.build_timeout,
            tail_lines=config.output_tail_lines,
        )
    except ConfigError as exc:
        log_error(logger, "Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    try:
        trigger = trigger_from_env()
    except ContextError as exc:
        log_error(logger, "%s", exc)
        report = VerificationReport(
            dependency_name=config.dependency_name,
            stage=Stage.RESOLVE,
            error=str(exc),
        )
    else:
        report = run_verification(config, trigger, builder)
    _publish_report(config, report)
    return exit_code_for(report)


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
