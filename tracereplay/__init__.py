"""
Trace Replay Engine

This package replays recorded traces of graph mutations (algorithm
execution logs) forward and backward, exposing the graph state at every
position of the trace.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Shared immutable types (errors, graph items, log elements)
   - MUST NOT: Hold behavior beyond construction and conversion

2. GRAPH MODEL (graph/)
   - Responsibility: Indexed mutable node/link arenas with O(1) id lookup
   - Outputs: Node, Link, GraphSnapshot
   - MUST NOT: Know about opcodes, frames or playback

3. TEMPORAL LAYER (temporal/)
   - Responsibility: Log parsing, operation interpretation, inverse stack,
     playback cursor and timed auto-play
   - Allowed inputs: TraceLog + a GraphModel handle per call
   - MUST NOT: Retain the graph handle across calls

4. INGESTION (ingestion/)
   - Responsibility: Loading run files from a run directory
   - MUST NOT: Replay or validate traces

5. CORE ANALYSIS (core/)
   - Responsibility: Structural metrics of the current graph state

6. OBSERVABILITY (observability/)
   - Responsibility: Logging configuration, navigation audit trail
   - MUST NOT: Modify playback behavior

7. API (api/)
   - Responsibility: HTTP surface for run listing and session control

CONSTRAINTS ENFORCED:
=====================
- The trace log is immutable for the lifetime of a session
- Every forward step records its exact inverse at apply time
- Replay never aborts: malformed steps degrade to no-ops
- Errors are data carried in results, never silent
"""

__version__ = "0.1.0"
