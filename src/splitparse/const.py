"""
General use constants.
"""

from __future__ import annotations
from typing import Final

DECIMAL: Final[frozenset[str]] = frozenset({"0", "1", "2", "3", "4", "5", "6", "7", "8", "9"})

CHECK_PROGRESS: bool = False
"""
Default for the `check_progress` parameter of the repetition combinators.

When enabled, a repeated parser that succeeds without consuming anything raises `NoProgressError` instead of looping forever.
"""
