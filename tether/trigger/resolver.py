"""Map a trigger event to the dependency override it calls for.

Usage
-----
>>> from tether.trigger import PushToBranch, resolve
>>> resolve(
...     PushToBranch(canonical_url="https://github.com/acme/pallets", ref="refs/heads/main")
... )
OverrideTarget(repository_url='https://github.com/acme/pallets', branch_name='main')

"""

from __future__ import annotations

from urllib.parse import urlsplit

from tether.errors import ContextError
from tether.trigger.models import (
    ManualDispatch,
    OverrideTarget,
    PullRequestFromFork,
    PushToBranch,
    TriggerEvent,
)

BRANCH_REF_PREFIX = "refs/heads/"
_REF_NAMESPACE = "refs/"

_HOSTED_SCHEMES = frozenset({"https", "http", "ssh", "git"})


def _require(value: str | None, event_kind: str, field: str) -> str:
    if value is None or not value.strip():
        raise ContextError.missing_field(event_kind, field)
    return value.strip()


def branch_from_ref(ref: str) -> str:
    """Return the branch name for ``ref``, stripping ``refs/heads/``.

    Short names pass through unchanged. Any other ``refs/`` namespace
    (tags, pull request merge refs) is rejected.

    Raises
    ------
    ContextError
        If ``ref`` is qualified but not a branch ref, or empty once stripped.

    """
    if ref.startswith(BRANCH_REF_PREFIX):
        branch = ref.removeprefix(BRANCH_REF_PREFIX)
    elif ref.startswith(_REF_NAMESPACE):
        raise ContextError.not_a_branch(ref)
    else:
        branch = ref
    if not branch:
        raise ContextError.not_a_branch(ref)
    return branch


def normalize_repository_url(url: str) -> str:
    """Return a comparison key for ``url``.

    Case, a trailing slash and a ``.git`` suffix do not distinguish
    repositories on any mainstream host.
    """
    key = url.strip().rstrip("/").lower()
    return key.removesuffix(".git")


def _validated_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        if parts.scheme == "file":
            well_formed = bool(parts.path)
        else:
            well_formed = parts.scheme in _HOSTED_SCHEMES and bool(parts.hostname)
    except ValueError as exc:
        # urlsplit rejects unbalanced IPv6 brackets.
        raise ContextError.malformed_url(url) from exc
    if not well_formed or any(char.isspace() for char in url):
        raise ContextError.malformed_url(url)
    return url


def _target(repository_url: str, branch_name: str) -> OverrideTarget:
    return OverrideTarget(
        repository_url=_validated_url(repository_url),
        branch_name=branch_name,
    )


def resolve(trigger: TriggerEvent) -> OverrideTarget:
    """Resolve ``trigger`` to the repository and branch to build against.

    Parameters
    ----------
    trigger
        The event that started the run.

    Returns
    -------
    OverrideTarget
        The fork URL and head branch for pull requests from forks; the
        canonical URL and the dispatched or pushed branch otherwise.

    Raises
    ------
    ContextError
        If the event kind is unknown, a required field is missing, the ref
        is not a branch, or a URL is malformed. There is no fallback to a
        default branch.

    """
    match trigger:
        case ManualDispatch():
            kind = "workflow_dispatch"
            canonical = _require(trigger.canonical_url, kind, "canonical_url")
            ref = _require(trigger.ref_name, kind, "ref_name")
            return _target(canonical, branch_from_ref(ref))
        case PushToBranch():
            canonical = _require(trigger.canonical_url, "push", "canonical_url")
            ref = _require(trigger.ref, "push", "ref")
            return _target(canonical, branch_from_ref(ref))
        case PullRequestFromFork():
            kind = "pull_request"
            canonical = _require(trigger.canonical_url, kind, "canonical_url")
            branch = _require(trigger.head_ref, kind, "head_ref")
            fork = _require(trigger.fork_url, kind, "fork_url")
            # Same-repository pull requests build against the canonical URL.
            if normalize_repository_url(fork) == normalize_repository_url(canonical):
                return _target(canonical, branch)
            return _target(fork, branch)
        case _:
            raise ContextError.unknown_event(type(trigger).__name__)
