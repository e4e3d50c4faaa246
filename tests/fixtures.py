"""
Replay Test Fixtures

Explicit graphs, logs and run files for deterministic testing.
All fixtures are fixed - no random generation.
"""

import json
from pathlib import Path
from typing import Any, Callable, List

from tracereplay.contracts.graph import GraphSnapshot, Link, Node
from tracereplay.graph.model import GraphModel
from tracereplay.temporal.autoplay import Scheduler
from tracereplay.temporal.cursor import NavigationResult
from tracereplay.temporal.trace_log import TraceLog


# =============================================================================
# GRAPHS
# =============================================================================

def triangle_snapshot() -> GraphSnapshot:
    """Nodes 1, 2, 3 with links 10 (1->2), 11 (2->3), 12 (3->1)."""
    return GraphSnapshot(
        nodes=(Node(1, label="a"), Node(2, label="b"), Node(3, label="c")),
        links=(Link(10, 1, 2), Link(11, 2, 3), Link(12, 3, 1)),
    )


def triangle_graph() -> GraphModel:
    return GraphModel.from_snapshot(triangle_snapshot())


# =============================================================================
# LOGS
# =============================================================================

def build_log(*frames: List[Any]) -> TraceLog:
    """Trace log from wire-format frames."""
    return TraceLog.parse(list(frames))


# Builds a path 1-2-3, styles it, skips an empty frame, then deletes node 2.
PATH_FRAMES = [
    [["n", [1]], ["n", [2]], ["e", [10, 1, 2]]],
    [["n", [3, 2]], ["e", [11, 2, 3]], ["nc", [1, "visited"]]],
    [],
    [["ew", [10, 4]], ["et", [11]]],
    [["N", [2]]],
]


def path_log() -> TraceLog:
    return build_log(*PATH_FRAMES)


# =============================================================================
# SCHEDULING
# =============================================================================

class ManualHandle:
    """Timer handle of the manual scheduler."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Fake clock: timers fire only when advance() moves time past them."""

    def __init__(self):
        self.now = 0.0
        self._handles: List[ManualHandle] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay_seconds, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target

    def run_all(self, limit: int = 1000) -> int:
        """Fire timers until none is pending; returns the number fired."""
        fired = 0
        while self.pending and fired < limit:
            handle = min(self.pending, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
            fired += 1
        return fired


def navigation_result(
    success: bool = True,
    at_boundary: bool = False,
    error=None,
    step_count: int = 0
) -> NavigationResult:
    return NavigationResult(
        success=success,
        applied=1 if success else 0,
        step_count=step_count,
        frame_index=0,
        step_index=0,
        at_boundary=at_boundary,
        error=error
    )


# =============================================================================
# RUN FILES
# =============================================================================

def path_run_content(title: str = "Path walk") -> dict:
    return {
        "meta": {"title": title, "style": "default"},
        "graph": {"nodes": [{"id": 7, "label": "seed"}], "links": []},
        "frames": PATH_FRAMES,
    }


def write_run(run_dir: Path, run_id: str, content: Any) -> Path:
    path = Path(run_dir) / f"{run_id}.mcg"
    if isinstance(content, str):
        path.write_text(content, encoding="utf-8")
    else:
        path.write_text(json.dumps(content), encoding="utf-8")
    return path
