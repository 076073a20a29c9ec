"""Trigger event variants and the override target they resolve to."""

from __future__ import annotations

import typing as typ

import msgspec


class ManualDispatch(msgspec.Struct, kw_only=True, frozen=True, tag="workflow_dispatch"):
    """A run started by hand against a chosen ref.

    Attributes
    ----------
    canonical_url : str
        URL of the canonical (non-fork) repository.
    ref_name : str | None
        The ref the run was invoked on, short (``main``) or qualified
        (``refs/heads/main``).

    """

    canonical_url: str
    ref_name: str | None = None


class PushToBranch(msgspec.Struct, kw_only=True, frozen=True, tag="push"):
    """A push to a branch of the canonical repository.

    Attributes
    ----------
    canonical_url : str
        URL of the canonical (non-fork) repository.
    ref : str | None
        The pushed ref, usually fully qualified (``refs/heads/main``).

    """

    canonical_url: str
    ref: str | None = None


class PullRequestFromFork(msgspec.Struct, kw_only=True, frozen=True, tag="pull_request"):
    """A pull request whose head lives in ``fork_url``.

    Same-repository pull requests use this variant too, with ``fork_url``
    equal to ``canonical_url``.

    Attributes
    ----------
    canonical_url : str
        URL of the canonical (non-fork) repository.
    head_ref : str | None
        Head branch of the pull request.
    fork_url : str | None
        HTML URL of the repository holding the head branch.

    """

    canonical_url: str
    head_ref: str | None = None
    fork_url: str | None = None


TriggerEvent: typ.TypeAlias = ManualDispatch | PushToBranch | PullRequestFromFork


class OverrideTarget(msgspec.Struct, kw_only=True, frozen=True):
    """Repository and branch that replace a dependency's pinned source.

    Attributes
    ----------
    repository_url : str
        Clone URL written into the manifest's ``git`` field.
    branch_name : str
        Branch written into the manifest's ``branch`` field.

    """

    repository_url: str
    branch_name: str
