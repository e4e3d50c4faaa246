"""
Run Repository
==============

Loads recorded runs from a directory of `.mcg` files.

FILE FORMAT (JSON):
    {
      "meta":   {"title": "...", ...},        # free-form, opaque to replay
      "graph":  {"nodes": [...], "links": [...]},
      "frames": [[step-or-frame, ...], ...]
    }

The repository only decodes files; it never replays or validates traces.
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from ..contracts.base import Error, ErrorCode, RunNotFoundError, RunFormatError
from ..contracts.graph import GraphSnapshot
from ..temporal.trace_log import TraceLog

logger = logging.getLogger(__name__)

RUN_SUFFIX = ".mcg"
RUN_ID_PATTERN = re.compile(r"^[\w-]+$")


@dataclass(frozen=True)
class RunSummary:
    """Entry of the run listing."""
    name: str
    file: str


@dataclass(frozen=True)
class RunData:
    """Decoded run: metadata, initial graph and trace log."""
    run_id: str
    meta: Dict[str, Any]
    snapshot: GraphSnapshot
    log: TraceLog
    raw_frames: List[Any] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Identifier under which the run was loaded (file stem)."""
        return self.meta.get("filename", self.run_id)

    @property
    def title(self) -> str:
        return self.meta.get("title", self.run_id)


class RunRepository:
    """Read-only access to the run directory."""

    def __init__(self, run_dir: Union[str, Path]):
        self._run_dir = Path(run_dir)

    @property
    def run_dir(self) -> Path:
        return self._run_dir

    def list_runs(self) -> List[RunSummary]:
        """Summaries of all decodable runs, ordered by file name."""
        if not self._run_dir.is_dir():
            logger.warning("Run directory %s does not exist", self._run_dir)
            return []
        runs = []
        for path in sorted(self._run_dir.glob(f"*{RUN_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                content = self._read(path, path.stem)
            except RunFormatError as exc:
                logger.warning("Skipping run %s: %s", path.name, exc)
                continue
            meta = content.get("meta") or {}
            runs.append(RunSummary(name=meta.get("title", path.stem), file=path.stem))
        return runs

    def load(self, run_id: str) -> RunData:
        path = self._path_for(run_id)
        content = self._read(path, run_id)

        meta = dict(content.get("meta") or {})
        meta["filename"] = run_id
        raw_frames = content.get("frames") or []
        if not isinstance(raw_frames, list):
            raise RunFormatError(Error.create(
                ErrorCode.MALFORMED_RUN, "'frames' must be a list", run_id=run_id
            ))
        return RunData(
            run_id=run_id,
            meta=meta,
            snapshot=self._snapshot(content, run_id),
            log=TraceLog.parse(raw_frames),
            raw_frames=raw_frames
        )

    def refresh(self, run_id: str) -> GraphSnapshot:
        """Initial graph snapshot only (used to reset a session)."""
        path = self._path_for(run_id)
        return self._snapshot(self._read(path, run_id), run_id)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _path_for(self, run_id: str) -> Path:
        if not isinstance(run_id, str) or not RUN_ID_PATTERN.match(run_id):
            raise RunNotFoundError(Error.create(
                ErrorCode.RUN_NOT_FOUND, "Invalid run id", run_id=run_id
            ))
        path = self._run_dir / f"{run_id}{RUN_SUFFIX}"
        if not path.is_file():
            raise RunNotFoundError(Error.create(
                ErrorCode.RUN_NOT_FOUND, "Run file not found", run_id=run_id
            ))
        return path

    @staticmethod
    def _read(path: Path, run_id: str) -> Dict[str, Any]:
        try:
            content = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RunFormatError(Error.create(
                ErrorCode.MALFORMED_RUN, f"Cannot decode run file: {exc}", run_id=run_id
            )) from exc
        if not isinstance(content, dict):
            raise RunFormatError(Error.create(
                ErrorCode.MALFORMED_RUN, "Run file must contain a JSON object", run_id=run_id
            ))
        return content

    @staticmethod
    def _snapshot(content: Dict[str, Any], run_id: str) -> GraphSnapshot:
        graph = content.get("graph", content.get("data")) or {}
        try:
            return GraphSnapshot.from_dict(graph)
        except (AttributeError, KeyError, TypeError) as exc:
            raise RunFormatError(Error.create(
                ErrorCode.MALFORMED_RUN, f"Invalid initial graph: {exc}", run_id=run_id
            )) from exc
