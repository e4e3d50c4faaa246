"""
Replay Engine Tests
===================

Tests for session orchestration, configuration and the slot backend.
"""

import pytest

from tracereplay.contracts.base import ErrorCode, RunNotFoundError, SessionNotFoundError
from tracereplay.contracts.graph import GraphSnapshot, Node
from tracereplay.engine import BackendConfig, ReplayBackend, ReplaySession, SessionConfig
from tracereplay.ingestion.runs import RunRepository

from tests.fixtures import ManualScheduler, path_run_content, write_run


@pytest.fixture
def run_dir(tmp_path):
    write_run(tmp_path, "walk", path_run_content())
    return tmp_path


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def session(run_dir, scheduler):
    run = RunRepository(run_dir).load("walk")
    return ReplaySession(run, SessionConfig(), scheduler)


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestConfig:

    def test_defaults(self):
        config = BackendConfig()
        assert config.max_sessions == 4
        assert config.session.speed_ms == 800
        assert config.session.initial_delay_ms == 500
        assert config.session.stepwise is False
        assert config.run_dir

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TRACEREPLAY_RUN_DIR", str(tmp_path))
        monkeypatch.setenv("TRACEREPLAY_LOG_LEVEL", "debug")
        config = BackendConfig.from_env()
        assert config.run_dir == str(tmp_path)
        assert config.log_level == "debug"

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            BackendConfig(max_sessions=0)
        with pytest.raises(ValueError):
            BackendConfig(log_level="chatty")


# =============================================================================
# SESSION
# =============================================================================

class TestSessionNavigation:

    def test_initial_state(self, session):
        state = session.state()
        assert state.name == "walk"
        assert state.title == "Path walk"
        assert (state.step_count, state.max_steps) == (0, 9)
        assert (state.frame_index, state.step_index) == (-1, -1)
        assert state.has_frame and not state.has_previous
        assert [n.id for n in session.nodes] == [7]

    def test_navigation_updates_graph(self, session):
        session.do_frame()
        assert [n.id for n in session.nodes] == [7, 1, 2]
        session.prev_step()
        assert session.links == ()
        session.do_step()
        session.prev_frame()
        assert [n.id for n in session.nodes] == [7]

    def test_topology_of_current_graph(self, session):
        session.do_frame()
        metrics = session.topology()
        assert metrics.node_count == 3
        assert metrics.edge_count == 1
        assert metrics.connected_components_count == 2

    def test_audit_records_every_call(self, session):
        session.do_step()
        session.prev_frame()
        session.prev_frame()

        entries = session.audit.get_entries()
        assert [e.action for e in entries] == ["do_step", "prev_frame", "prev_frame"]
        assert entries[-1].success is False
        assert entries[-1].error_code is ErrorCode.STACK_EMPTY
        assert len(session.audit.get_entries("prev_frame")) == 2

    def test_listeners_receive_state(self, session):
        states = []
        unsubscribe = session.subscribe(states.append)
        session.do_step()
        session.do_step()
        unsubscribe()
        session.do_step()

        assert [s.step_count for s in states] == [1, 2]


class TestSessionPlayback:

    def test_auto_play_runs_to_end(self, session, scheduler):
        session.play()
        scheduler.run_all()

        state = session.state()
        assert state.step_count == state.max_steps
        assert not state.is_playing

    def test_stepwise_reverse_play(self, session, scheduler):
        session.do_frame()
        session.set_stepwise(True)
        session.play(reverse=True)
        scheduler.advance(0.5)

        assert session.state().step_count == 2
        session.pause()

    def test_toggle_play_semantics(self, session):
        session.toggle_play()
        assert session.is_playing and not session.state().reverse

        session.toggle_play(reverse=True)
        assert session.is_playing and session.state().reverse

        session.toggle_play(reverse=True)
        assert not session.is_playing

    def test_manual_step_at_end_pauses_forward_play(self, session):
        while session.state().has_frame:
            session.do_frame()
        session.play()
        result = session.do_step()

        assert result.at_boundary
        assert not session.is_playing

    def test_set_speed(self, session):
        session.set_speed(100)
        assert session.state().speed_ms == 100
        with pytest.raises(ValueError):
            session.set_speed(0)


class TestSessionReset:

    def test_reset_restores_initial_graph(self, session):
        session.do_frame()
        session.do_frame()
        session.play()
        session.reset()

        state = session.state()
        assert state.step_count == 0
        assert not state.is_playing
        assert not state.has_previous
        assert session.cursor.stack.is_empty()
        assert [n.id for n in session.nodes] == [7]

    def test_reset_with_new_snapshot(self, session):
        session.do_step()
        session.reset(GraphSnapshot(nodes=(Node(42),)))
        assert [n.id for n in session.nodes] == [42]

        session.do_step()
        session.reset()
        assert [n.id for n in session.nodes] == [42]

    def test_rebuild_keeps_position(self, session):
        session.do_frame()
        session.do_step()
        before = session.snapshot()

        result = session.rebuild()

        assert result.success
        assert session.snapshot() == before
        assert session.state().step_count == 4
        session.prev_frame()
        session.prev_frame()
        assert [n.id for n in session.nodes] == [7]


# =============================================================================
# BACKEND
# =============================================================================

class TestBackend:

    def test_open_run_in_slot(self, run_dir, scheduler):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)), scheduler)
        session = backend.open_run(0, "walk")

        assert backend.session(0) is session
        assert backend.open_slots == [0]
        assert [r.file for r in backend.list_runs()] == ["walk"]

    def test_slot_bounds(self, run_dir):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir), max_sessions=2))
        with pytest.raises(SessionNotFoundError):
            backend.open_run(2, "walk")
        with pytest.raises(SessionNotFoundError):
            backend.session(-1)

    def test_empty_slot(self, run_dir):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)))
        with pytest.raises(SessionNotFoundError) as excinfo:
            backend.session(1)
        assert excinfo.value.code is ErrorCode.SESSION_NOT_FOUND

    def test_unknown_run(self, run_dir):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)))
        with pytest.raises(RunNotFoundError):
            backend.open_run(0, "missing")

    def test_replacing_a_session_stops_its_playback(self, run_dir, scheduler):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)), scheduler)
        first = backend.open_run(0, "walk")
        first.play()
        backend.open_run(0, "walk")

        assert not first.is_playing
        assert backend.session(0) is not first

    def test_refresh_reloads_initial_graph(self, run_dir, scheduler):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)), scheduler)
        session = backend.open_run(0, "walk")
        session.do_frame()

        content = path_run_content()
        content["graph"]["nodes"] = [{"id": 8}]
        write_run(run_dir, "walk", content)
        backend.refresh(0)

        assert [n.id for n in session.nodes] == [8]
        assert session.state().step_count == 0

    def test_close(self, run_dir, scheduler):
        backend = ReplayBackend(BackendConfig(run_dir=str(run_dir)), scheduler)
        backend.open_run(0, "walk").play()
        backend.open_run(1, "walk")
        backend.close_all()
        assert backend.open_slots == []
