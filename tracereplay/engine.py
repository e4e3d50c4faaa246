"""
Replay Backend Engine
=====================

Orchestration of replay sessions over recorded runs.

LAYER FLOW:
===========
1. Ingestion: run file -> RunData (metadata, initial snapshot, trace log)
2. Graph: initial snapshot -> GraphModel
3. Temporal: GraphModel + TraceLog -> PlaybackCursor / AutoPlayer
4. Core: current state -> GraphMetrics
5. Observability: every navigation call -> NavigationAudit

INVARIANTS:
- A session owns exactly one graph, one inverse stack, one cursor and one
  auto-player; reset() resets all of them together
- Listeners observe state; they never drive navigation
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .contracts.base import (
    Error, ErrorCode, SessionNotFoundError,
)
from .contracts.graph import GraphSnapshot, Link, Node
from .core.topology import GraphMetrics, compute_metrics
from .graph.model import GraphModel
from .ingestion.runs import RunData, RunRepository, RunSummary
from .observability.audit import NavigationAudit
from .observability.log_config import resolve_level
from .temporal.autoplay import (
    AutoPlayer, Scheduler, DEFAULT_SPEED_MS, DEFAULT_INITIAL_DELAY_MS,
)
from .temporal.cursor import NavigationResult, PlaybackCursor
from .temporal.inverse_stack import InverseStack

logger = logging.getLogger(__name__)

DEFAULT_RUN_DIR = os.path.join(os.getcwd(), "runs")
DEFAULT_MAX_SESSIONS = 4


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class SessionConfig:
    """Playback settings applied to every new session."""
    speed_ms: int = DEFAULT_SPEED_MS
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    stepwise: bool = False
    audit_entries: int = 1000


@dataclass
class BackendConfig:
    """Unified configuration for the replay backend."""
    run_dir: str = None
    max_sessions: int = DEFAULT_MAX_SESSIONS
    session: SessionConfig = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.run_dir = self.run_dir or DEFAULT_RUN_DIR
        self.session = self.session or SessionConfig()
        if self.max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        resolve_level(self.log_level)

    @staticmethod
    def from_env() -> BackendConfig:
        """Configuration with TRACEREPLAY_* environment overrides."""
        return BackendConfig(
            run_dir=os.environ.get("TRACEREPLAY_RUN_DIR", DEFAULT_RUN_DIR),
            log_level=os.environ.get("TRACEREPLAY_LOG_LEVEL", "INFO")
        )


# =============================================================================
# SESSION
# =============================================================================

@dataclass(frozen=True)
class PlaybackState:
    """Point-in-time view of a session's playback position and controls."""
    name: str
    title: str
    step_count: int
    max_steps: int
    frame_index: int
    step_index: int
    is_playing: bool
    reverse: bool
    stepwise: bool
    speed_ms: int
    has_frame: bool
    has_previous: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "step_count": self.step_count,
            "max_steps": self.max_steps,
            "frame_index": self.frame_index,
            "step_index": self.step_index,
            "is_playing": self.is_playing,
            "reverse": self.reverse,
            "stepwise": self.stepwise,
            "speed_ms": self.speed_ms,
            "has_frame": self.has_frame,
            "has_previous": self.has_previous,
        }


Listener = Callable[[PlaybackState], None]


class ReplaySession:
    """
    One replay of one run.

    Manual navigation and auto-play go through the same cursor, so a
    navigation call issued from a listener while a tick is running is
    rejected by the cursor rather than interleaved.
    """

    def __init__(
        self,
        run: RunData,
        config: Optional[SessionConfig] = None,
        scheduler: Optional[Scheduler] = None
    ):
        self._run = run
        self._config = config or SessionConfig()
        self._initial = run.snapshot
        self._graph = GraphModel.from_snapshot(run.snapshot)
        self._stack = InverseStack()
        self._cursor = PlaybackCursor(run.log, self._stack)
        self._audit = NavigationAudit(max_entries=self._config.audit_entries)
        self._listeners: List[Listener] = []
        self._player = AutoPlayer(
            self._advance,
            scheduler=scheduler,
            speed_ms=self._config.speed_ms,
            initial_delay_ms=self._config.initial_delay_ms,
            stepwise=self._config.stepwise,
            on_change=self._emit
        )
        logger.info(
            "Opened session for run %s (%d frames, %d steps)",
            run.run_id, len(run.log), run.log.max_steps
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def name(self) -> str:
        return self._run.name

    @property
    def title(self) -> str:
        return self._run.title

    @property
    def run(self) -> RunData:
        return self._run

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._graph.nodes

    @property
    def links(self) -> Tuple[Link, ...]:
        return self._graph.links

    @property
    def graph(self) -> GraphModel:
        return self._graph

    @property
    def cursor(self) -> PlaybackCursor:
        return self._cursor

    @property
    def player(self) -> AutoPlayer:
        return self._player

    @property
    def audit(self) -> NavigationAudit:
        return self._audit

    @property
    def is_playing(self) -> bool:
        return self._player.is_playing

    def snapshot(self) -> GraphSnapshot:
        return self._graph.snapshot()

    def state(self) -> PlaybackState:
        return PlaybackState(
            name=self.name,
            title=self.title,
            step_count=self._cursor.step_count,
            max_steps=self._cursor.max_steps,
            frame_index=self._cursor.frame_index,
            step_index=self._cursor.step_index,
            is_playing=self._player.is_playing,
            reverse=self._player.reverse,
            stepwise=self._player.stepwise,
            speed_ms=self._player.speed_ms,
            has_frame=self._cursor.has_frame(),
            has_previous=self._cursor.has_previous()
        )

    def topology(self) -> GraphMetrics:
        return compute_metrics(self._graph.snapshot())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    def do_step(self) -> NavigationResult:
        return self._manual("do_step", self._cursor.do_step, reverse=False)

    def do_frame(self) -> NavigationResult:
        return self._manual("do_frame", self._cursor.do_frame, reverse=False)

    def prev_step(self) -> NavigationResult:
        return self._manual("prev_step", self._cursor.prev_step, reverse=True)

    def prev_frame(self) -> NavigationResult:
        return self._manual("prev_frame", self._cursor.prev_frame, reverse=True)

    # =========================================================================
    # PLAYBACK CONTROL
    # =========================================================================

    def play(self, reverse: Optional[bool] = None) -> None:
        self._player.play(reverse)

    def pause(self) -> None:
        self._player.pause()

    def toggle_play(self, reverse: bool = False) -> None:
        """
        Play/pause button behavior.

        Stopped: start playing in the requested direction.
        Playing the same direction: pause.
        Playing the other direction: switch direction and keep playing.
        """
        if not self._player.is_playing:
            self._player.play(reverse)
            return
        current = self._player.reverse
        self._player.pause()
        if current != reverse:
            self._player.play(reverse)

    def set_speed(self, speed_ms: int) -> None:
        self._player.set_speed(speed_ms)
        self._emit()

    def set_stepwise(self, stepwise: bool) -> None:
        self._player.set_stepwise(stepwise)
        self._emit()

    def reset(self, snapshot: Optional[GraphSnapshot] = None) -> None:
        """
        Return to the start of the log.

        Graph, inverse stack, cursor and auto-player are reset together.
        A given snapshot replaces the initial graph for later resets.
        """
        self._player.reset()
        if snapshot is not None:
            self._initial = snapshot
        self._cursor.reset()
        self._graph = GraphModel.from_snapshot(self._initial)
        logger.info("Session %s reset to initial graph", self.name)
        self._emit()

    def rebuild(self, snapshot: Optional[GraphSnapshot] = None) -> NavigationResult:
        """
        Rebuild the graph from a snapshot and replay up to the current position.

        Counters and the inverse stack are kept.
        """
        if snapshot is not None:
            self._initial = snapshot
        graph = GraphModel.from_snapshot(self._initial)
        result = self._cursor.replay_to_position(graph)
        if result.success:
            self._graph = graph
        self._audit.collect("rebuild", result)
        self._emit()
        return result

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _manual(
        self,
        action: str,
        navigate: Callable[[GraphModel], NavigationResult],
        reverse: bool
    ) -> NavigationResult:
        result = self._navigate(action, navigate)
        if result.at_boundary and self._player.is_playing and self._player.reverse == reverse:
            self._player.pause()
        return result

    def _advance(self, reverse: bool, stepwise: bool) -> NavigationResult:
        if reverse:
            if stepwise:
                return self._navigate("prev_step", self._cursor.prev_step)
            return self._navigate("prev_frame", self._cursor.prev_frame)
        if stepwise:
            return self._navigate("do_step", self._cursor.do_step)
        return self._navigate("do_frame", self._cursor.do_frame)

    def _navigate(
        self,
        action: str,
        navigate: Callable[[GraphModel], NavigationResult]
    ) -> NavigationResult:
        result = navigate(self._graph)
        self._audit.collect(action, result)
        if result.success:
            logger.debug(
                "%s applied %d (step %d/%d)",
                action, result.applied, result.step_count, self._cursor.max_steps
            )
            self._emit()
        return result

    def _emit(self) -> None:
        if not self._listeners:
            return
        state = self.state()
        for listener in list(self._listeners):
            listener(state)


# =============================================================================
# BACKEND
# =============================================================================

class ReplayBackend:
    """
    Holds a fixed number of session slots over one run repository.

    Slots are numbered from 0 to max_sessions - 1; opening a run in an
    occupied slot replaces the previous session.
    """

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        scheduler: Optional[Scheduler] = None
    ):
        self._config = config or BackendConfig()
        self._scheduler = scheduler
        self._repository = RunRepository(self._config.run_dir)
        self._sessions: Dict[int, ReplaySession] = {}

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def repository(self) -> RunRepository:
        return self._repository

    @property
    def run_dir(self) -> Path:
        return self._repository.run_dir

    def list_runs(self) -> List[RunSummary]:
        return self._repository.list_runs()

    def open_run(self, slot: int, run_id: str) -> ReplaySession:
        self._check_slot(slot)
        run = self._repository.load(run_id)
        previous = self._sessions.get(slot)
        if previous is not None:
            previous.pause()
        session = ReplaySession(run, self._config.session, self._scheduler)
        self._sessions[slot] = session
        return session

    def session(self, slot: int) -> ReplaySession:
        self._check_slot(slot)
        session = self._sessions.get(slot)
        if session is None:
            raise SessionNotFoundError(Error.create(
                ErrorCode.SESSION_NOT_FOUND, "No run open in slot", slot=slot
            ))
        return session

    def refresh(self, slot: int) -> ReplaySession:
        """Reload the run's initial graph from disk and reset the session."""
        session = self.session(slot)
        session.reset(self._repository.refresh(session.name))
        return session

    def close(self, slot: int) -> None:
        session = self._sessions.pop(slot, None)
        if session is not None:
            session.pause()

    def close_all(self) -> None:
        for slot in list(self._sessions):
            self.close(slot)

    @property
    def open_slots(self) -> List[int]:
        return sorted(self._sessions)

    def _check_slot(self, slot: int) -> None:
        if not 0 <= slot < self._config.max_sessions:
            raise SessionNotFoundError(Error.create(
                ErrorCode.SESSION_NOT_FOUND,
                f"Slot must be between 0 and {self._config.max_sessions - 1}",
                slot=slot
            ))
