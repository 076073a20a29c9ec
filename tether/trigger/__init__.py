"""Trigger context resolution."""

from __future__ import annotations

from .environment import canonical_repository_url, trigger_from_env
from .models import (
    ManualDispatch,
    OverrideTarget,
    PullRequestFromFork,
    PushToBranch,
    TriggerEvent,
)
from .resolver import branch_from_ref, normalize_repository_url, resolve

__all__ = [
    "ManualDispatch",
    "OverrideTarget",
    "PullRequestFromFork",
    "PushToBranch",
    "TriggerEvent",
    "branch_from_ref",
    "canonical_repository_url",
    "normalize_repository_url",
    "resolve",
    "trigger_from_env",
]
