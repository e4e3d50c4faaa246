"""
API Mapper
==========

Transforms sessions and navigation results into JSON-ready DTOs.
"""
from typing import Any, Dict

from ..engine import ReplaySession
from ..ingestion.runs import RunData
from ..temporal.cursor import NavigationResult


def map_session_to_dto(session: ReplaySession) -> Dict[str, Any]:
    """Playback state plus the current graph."""
    return {
        "state": session.state().to_dict(),
        "graph": session.snapshot().to_dict(),
    }


def map_result_to_dto(result: NavigationResult) -> Dict[str, Any]:
    return {
        "success": result.success,
        "applied": result.applied,
        "step_count": result.step_count,
        "frame_index": result.frame_index,
        "step_index": result.step_index,
        "at_boundary": result.at_boundary,
        "error": result.error.code.name if result.error else None,
    }


def map_run_to_dto(run: RunData) -> Dict[str, Any]:
    """Run content as served to viewers: metadata, initial graph, raw frames."""
    return {
        "meta": run.meta,
        "data": run.snapshot.to_dict(),
        "frames": run.raw_frames,
    }
