"""Build a :data:`TriggerEvent` from GitHub Actions run context.

This is the only place Tether reads trigger metadata from the process
environment; :func:`tether.trigger.resolve` stays a pure function.

Variables read
--------------
- ``GITHUB_EVENT_NAME``: ``workflow_dispatch``, ``push``, ``pull_request``
  or ``pull_request_target``.
- ``GITHUB_REF``: qualified ref for pushes and dispatches;
  ``GITHUB_REF_NAME`` is the dispatch fallback.
- ``GITHUB_HEAD_REF``: head branch of a pull request.
- ``GITHUB_EVENT_PATH``: JSON payload; supplies the pull request head
  repository URL.
- ``GITHUB_SERVER_URL`` and ``GITHUB_REPOSITORY``: canonical repository.
- ``TETHER_CANONICAL_REPOSITORY``: full canonical URL, overriding the two
  above.

"""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import msgspec

from tether.errors import ContextError
from tether.logging import get_logger, log_info
from tether.trigger.models import (
    ManualDispatch,
    PullRequestFromFork,
    PushToBranch,
    TriggerEvent,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

DEFAULT_SERVER_URL = "https://github.com"
PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})


class _HeadRepository(msgspec.Struct, kw_only=True):
    html_url: str | None = None


class _PullRequestHead(msgspec.Struct, kw_only=True):
    ref: str | None = None
    repo: _HeadRepository | None = None


class _PullRequest(msgspec.Struct, kw_only=True):
    head: _PullRequestHead | None = None


class PullRequestPayload(msgspec.Struct, kw_only=True):
    """The parts of a ``pull_request`` webhook payload Tether reads."""

    pull_request: _PullRequest | None = None

    @property
    def head_ref(self) -> str | None:
        """Return the head branch name, if present."""
        if self.pull_request is None or self.pull_request.head is None:
            return None
        return self.pull_request.head.ref

    @property
    def head_repository_url(self) -> str | None:
        """Return the HTML URL of the head repository, if present."""
        if self.pull_request is None or self.pull_request.head is None:
            return None
        repo = self.pull_request.head.repo
        return None if repo is None else repo.html_url


def _get(environ: cabc.Mapping[str, str], name: str) -> str | None:
    value = environ.get(name, "").strip()
    return value or None


def canonical_repository_url(environ: cabc.Mapping[str, str]) -> str:
    """Return the canonical repository URL for the run.

    Raises
    ------
    ContextError
        If neither ``TETHER_CANONICAL_REPOSITORY`` nor ``GITHUB_REPOSITORY``
        is set.

    """
    override = _get(environ, "TETHER_CANONICAL_REPOSITORY")
    if override is not None:
        return override
    repository = _get(environ, "GITHUB_REPOSITORY")
    if repository is None:
        raise ContextError.missing_repository()
    server = _get(environ, "GITHUB_SERVER_URL") or DEFAULT_SERVER_URL
    return f"{server.rstrip('/')}/{repository}"


def load_pull_request_payload(path: Path) -> PullRequestPayload:
    """Decode the pull request fields from the event payload at ``path``.

    Raises
    ------
    ContextError
        If the file cannot be read or is not a JSON object of the
        expected shape.

    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ContextError.unreadable_payload(str(path), exc.strerror or str(exc)) from exc
    try:
        return msgspec.json.decode(raw, type=PullRequestPayload)
    except msgspec.DecodeError as exc:
        raise ContextError.unreadable_payload(str(path), str(exc)) from exc


def _pull_request_event(
    environ: cabc.Mapping[str, str], canonical_url: str
) -> PullRequestFromFork:
    head_ref = _get(environ, "GITHUB_HEAD_REF")
    fork_url: str | None = None
    event_path = _get(environ, "GITHUB_EVENT_PATH")
    if event_path is not None:
        payload = load_pull_request_payload(Path(event_path))
        head_ref = head_ref or payload.head_ref
        fork_url = payload.head_repository_url
    return PullRequestFromFork(
        canonical_url=canonical_url,
        head_ref=head_ref,
        fork_url=fork_url,
    )


def trigger_from_env(environ: cabc.Mapping[str, str] | None = None) -> TriggerEvent:
    """Construct the trigger event for the current run.

    Parameters
    ----------
    environ
        Environment mapping; defaults to ``os.environ``.

    Returns
    -------
    TriggerEvent
        The variant matching ``GITHUB_EVENT_NAME``. Missing refs are left as
        ``None`` for :func:`tether.trigger.resolve` to reject.

    Raises
    ------
    ContextError
        If the event kind is unset or unsupported, the canonical repository
        is unknown, or the pull request payload is unreadable.

    """
    env = os.environ if environ is None else environ
    event_name = _get(env, "GITHUB_EVENT_NAME")
    if event_name is None or (
        event_name not in PULL_REQUEST_EVENTS
        and event_name not in {"workflow_dispatch", "push"}
    ):
        raise ContextError.unknown_event(event_name)

    canonical_url = canonical_repository_url(env)
    event: TriggerEvent
    if event_name == "workflow_dispatch":
        event = ManualDispatch(
            canonical_url=canonical_url,
            # The qualified ref keeps tag dispatches distinguishable from branches.
            ref_name=_get(env, "GITHUB_REF") or _get(env, "GITHUB_REF_NAME"),
        )
    elif event_name == "push":
        event = PushToBranch(canonical_url=canonical_url, ref=_get(env, "GITHUB_REF"))
    else:
        event = _pull_request_event(env, canonical_url)

    log_info(logger, "Trigger %s on %s", event_name, canonical_url)
    return event
