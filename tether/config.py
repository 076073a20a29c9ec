"""Configuration for a verification run.

Usage
-----
Create a configuration directly:

>>> config = VerifierConfig(dependency_name="pallet-parachain-staking")
>>> config.build_command
('cargo', 'build')

Or load from environment variables:

>>> import os
>>> os.environ["TETHER_DEPENDENCY_NAME"] = "pallet-parachain-staking"
>>> VerifierConfig.from_env().manifest_path
PosixPath('runtime/Cargo.toml')

"""

from __future__ import annotations

import dataclasses as dc
import os
import shlex
import typing as typ
from pathlib import Path

from tether.build.subprocess_builder import DEFAULT_BUILD_TIMEOUT, DEFAULT_TAIL_LINES
from tether.errors import ConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_MANIFEST_PATH = Path("runtime/Cargo.toml")
DEFAULT_BUILD_COMMAND = ("cargo", "build")


@dc.dataclass(frozen=True, slots=True)
class VerifierConfig:
    """Settings for one resolve, patch and build run.

    Attributes
    ----------
    dependency_name
        Name of the upstream dependency whose declaration is overridden.
    manifest_path
        Manifest location, relative to ``workspace`` unless absolute.
    build_command
        Build and test command run at the workspace root.
    build_timeout
        Upper bound on the build in seconds.
    output_tail_lines
        Lines of build output kept for the report.
    workspace
        Repository root of the downstream project.
    log_level
        femtologging level name.
    report_path
        Optional path for a JSON copy of the report.

    """

    dependency_name: str
    manifest_path: Path = DEFAULT_MANIFEST_PATH
    build_command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    build_timeout: int = DEFAULT_BUILD_TIMEOUT
    output_tail_lines: int = DEFAULT_TAIL_LINES
    workspace: Path = dc.field(default_factory=Path.cwd)
    log_level: str = "INFO"
    report_path: Path | None = None

    @property
    def resolved_manifest_path(self) -> Path:
        """Return the manifest path anchored at the workspace."""
        return self.workspace / self.manifest_path

    @staticmethod
    def _parse_positive_int(
        environ: cabc.Mapping[str, str], env_var: str, default: int
    ) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError.invalid(env_var, raw, "must be an integer") from exc
        if value < 1:
            raise ConfigError.invalid(env_var, raw, "must be positive")
        return value

    @staticmethod
    def _parse_command(raw: str) -> tuple[str, ...]:
        try:
            command = tuple(shlex.split(raw))
        except ValueError as exc:
            raise ConfigError.invalid("TETHER_BUILD_COMMAND", raw, str(exc)) from exc
        if not command:
            raise ConfigError.invalid("TETHER_BUILD_COMMAND", raw, "must not be empty")
        return command

    @classmethod
    def from_env(cls, environ: cabc.Mapping[str, str] | None = None) -> VerifierConfig:
        """Create configuration from environment variables.

        Reads ``TETHER_DEPENDENCY_NAME`` (required), ``TETHER_MANIFEST_PATH``,
        ``TETHER_BUILD_COMMAND`` (split like a shell would),
        ``TETHER_BUILD_TIMEOUT`` and ``TETHER_OUTPUT_TAIL_LINES`` (positive
        integers), ``TETHER_WORKSPACE``, ``TETHER_LOG_LEVEL`` and
        ``TETHER_REPORT_PATH``.

        Raises
        ------
        ConfigError
            If the dependency name is missing or a value is invalid.

        """
        env = os.environ if environ is None else environ
        dependency_name = env.get("TETHER_DEPENDENCY_NAME", "").strip()
        if not dependency_name:
            raise ConfigError.missing("TETHER_DEPENDENCY_NAME")

        raw_command = env.get("TETHER_BUILD_COMMAND", "")
        build_command = (
            cls._parse_command(raw_command) if raw_command.strip() else DEFAULT_BUILD_COMMAND
        )
        manifest_path = env.get("TETHER_MANIFEST_PATH", "").strip()
        workspace = env.get("TETHER_WORKSPACE", "").strip()
        report_path = env.get("TETHER_REPORT_PATH", "").strip()

        return cls(
            dependency_name=dependency_name,
            manifest_path=Path(manifest_path) if manifest_path else DEFAULT_MANIFEST_PATH,
            build_command=build_command,
            build_timeout=cls._parse_positive_int(
                env, "TETHER_BUILD_TIMEOUT", DEFAULT_BUILD_TIMEOUT
            ),
            output_tail_lines=cls._parse_positive_int(
                env, "TETHER_OUTPUT_TAIL_LINES", DEFAULT_TAIL_LINES
            ),
            workspace=Path(workspace) if workspace else Path.cwd(),
            log_level=env.get("TETHER_LOG_LEVEL", "INFO"),
            report_path=Path(report_path) if report_path else None,
        )
