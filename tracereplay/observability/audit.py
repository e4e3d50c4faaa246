"""
Navigation Audit
================

Append-only record of the navigation calls made on a session.

WHAT THIS MODULE MUST NOT DO:
- Modify playback behavior
- Filter or interpret navigation results (only record them)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from ..contracts.base import ErrorCode
from ..temporal.cursor import NavigationResult


@dataclass(frozen=True)
class NavigationRecord:
    """Immutable record of one navigation call."""
    sequence: int
    action: str
    timestamp: datetime
    success: bool
    applied: int
    step_count: int
    frame_index: int
    step_index: int
    error_code: Optional[ErrorCode] = None


class NavigationAudit:
    """
    Bounded, append-only collector of navigation records.

    When max_entries is reached the oldest records are discarded;
    sequence numbers keep increasing.
    """

    def __init__(self, max_entries: int = 1000):
        self._entries: List[NavigationRecord] = []
        self._sequence = 0
        self._max_entries = max_entries

    def collect(self, action: str, result: NavigationResult) -> NavigationRecord:
        self._sequence += 1
        record = NavigationRecord(
            sequence=self._sequence,
            action=action,
            timestamp=datetime.now(timezone.utc),
            success=result.success,
            applied=result.applied,
            step_count=result.step_count,
            frame_index=result.frame_index,
            step_index=result.step_index,
            error_code=result.error.code if result.error else None
        )
        self._entries.append(record)
        if len(self._entries) > self._max_entries:
            del self._entries[0]
        return record

    def get_entries(self, action: Optional[str] = None) -> List[NavigationRecord]:
        if action is None:
            return list(self._entries)
        return [e for e in self._entries if e.action == action]

    def last(self) -> Optional[NavigationRecord]:
        return self._entries[-1] if self._entries else None

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries = []
