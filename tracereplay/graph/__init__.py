"""
Graph Layer

Mutable, id-indexed graph state driven by the replay engine.
"""

from .model import GraphModel

__all__ = [
    'GraphModel',
]
