from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CallerContext:
    """The authenticated user on whose behalf a service call runs."""

    caller_id: int
    display_name: str
