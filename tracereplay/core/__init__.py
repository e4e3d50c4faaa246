"""
Core Analysis Layer

RESPONSIBILITY: Structural metrics of the current graph state
MUST NOT: Mutate the replayed graph
"""

from .topology import TopologyEngine, GraphMetrics, compute_metrics

__all__ = [
    'TopologyEngine',
    'GraphMetrics',
    'compute_metrics',
]
