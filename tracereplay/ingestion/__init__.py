"""
Ingestion Layer

RESPONSIBILITY: Decode run files into metadata, initial graph and trace log
MUST NOT: Replay, validate or transform traces
"""

from .runs import RunRepository, RunData, RunSummary, RUN_SUFFIX

__all__ = [
    'RunRepository',
    'RunData',
    'RunSummary',
    'RUN_SUFFIX',
]
