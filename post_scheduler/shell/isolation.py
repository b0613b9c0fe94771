"""
Failure isolation for non-essential collaborator calls.

Logging, metrics persistence and performance checks must never change the
outcome of a scheduler execution. best_effort runs such a call and, if it
raises, reports on stderr and returns None.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


def best_effort(fn: Callable[..., T], *args: Any, label: str = "", **kwargs: Any) -> T | None:
    """Call fn(*args, **kwargs); on any Exception print to stderr and return None."""
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        name = label or getattr(fn, "__name__", repr(fn))
        print(f"{name} failed: {e}", file=sys.stderr)
        return None
