"""Tether: build a downstream repository against an upstream branch or fork.

Typical flow:

>>> from tether.trigger import trigger_from_env, resolve
>>> from tether.manifest import read_manifest, patch
>>> from tether.build import SubprocessBuilder, verify

or, end to end, :func:`tether.pipeline.run_verification`.
"""

from __future__ import annotations

__version__ = "0.1.0"
