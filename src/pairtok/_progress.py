"""Progress reporting for streamed encoding."""

import os
from dataclasses import dataclass
from typing import Callable

_enabled: bool = True


@dataclass(frozen=True)
class TokenizationProgress:
    """Cumulative counts reported after each streamed item."""

    processed_tokens: int
    items_processed: int


type ProgressCallback = Callable[[TokenizationProgress], None]


def enable_progress() -> None:
    """Enable progress logging for all pairtok operations."""
    global _enabled
    _enabled = True


def disable_progress() -> None:
    """Disable progress logging for all pairtok operations."""
    global _enabled
    _enabled = False


def _is_enabled() -> bool:
    """Check if progress is enabled (respects env var override)."""
    if os.environ.get("PAIRTOK_DISABLE_PROGRESS", "").strip() == "1":
        return False
    return _enabled
