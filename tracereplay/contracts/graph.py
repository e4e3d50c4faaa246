"""
Graph Item Contracts

Immutable node and link records plus the snapshot type exchanged between
the run loader, the graph model and rendering consumers.

WHY FROZEN:
- The graph model replaces an entry on every mutation
- Captured snapshots (e.g. the inverse of a clear) never alias live state
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple, Union

Value = Union[int, float, Tuple[float, ...]]

DEFAULT_LABEL = "no label"


def normalize_value(value: Any, default: Value = 1) -> Value:
    """Coerce a wire value into a scalar or a tuple of numbers."""
    if value is None:
        return default
    if isinstance(value, (list, tuple)):
        if not value:
            return default
        return tuple(value)
    return value


def scalar_value(value: Value) -> float:
    """
    Reduce a scalar or vector value to a single display magnitude.

    Vector values are summed; the result is never below 1
    (used for link widths and node sizes, which cannot be 0).
    """
    if isinstance(value, (list, tuple)):
        total = sum(value)
    else:
        total = value
    return max(1, total)


def _style_class(data: Mapping[str, Any]) -> str:
    for key in ("styleClass", "style_class", "class"):
        if data.get(key):
            return str(data[key])
    return ""


@dataclass(frozen=True)
class Node:
    """Immutable graph node."""
    id: int
    value: Value = 1
    label: str = DEFAULT_LABEL
    style_class: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'value', normalize_value(self.value))
        if self.style_class is None:
            object.__setattr__(self, 'style_class', "")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Node:
        return Node(
            id=data["id"],
            value=data.get("value", 1),
            label=data.get("label", DEFAULT_LABEL),
            style_class=_style_class(data)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
            "label": self.label,
            "styleClass": self.style_class,
        }


@dataclass(frozen=True)
class Link:
    """
    Immutable graph link.

    direction is a display flag only: 0 draws the arrow source->target,
    1 draws it reversed. It has no traversal semantics.
    """
    id: int
    source: int
    target: int
    value: Value = 1
    label: str = DEFAULT_LABEL
    direction: int = 0
    style_class: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'value', normalize_value(self.value))
        if self.style_class is None:
            object.__setattr__(self, 'style_class', "")
        if self.direction is None:
            object.__setattr__(self, 'direction', 0)

    def touches(self, node_id: int) -> bool:
        """True if the link is incident to node_id."""
        return self.source == node_id or self.target == node_id

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Link:
        return Link(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            value=data.get("value", 1),
            label=data.get("label", DEFAULT_LABEL),
            direction=data.get("direction", 0),
            style_class=_style_class(data)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
            "label": self.label,
            "direction": self.direction,
            "styleClass": self.style_class,
        }


def as_node(item: Union[Node, Mapping[str, Any]]) -> Node:
    return item if isinstance(item, Node) else Node.from_dict(item)


def as_link(item: Union[Link, Mapping[str, Any]]) -> Link:
    return item if isinstance(item, Link) else Link.from_dict(item)


@dataclass(frozen=True)
class GraphSnapshot:
    """
    Immutable point-in-time copy of a graph's nodes and links.

    Sequence order is preserved; use canonical() to compare states
    independently of arena order.
    """
    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    links: Tuple[Link, ...] = field(default_factory=tuple)

    @staticmethod
    def from_items(
        nodes: Iterable[Union[Node, Mapping[str, Any]]] = (),
        links: Iterable[Union[Link, Mapping[str, Any]]] = ()
    ) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=tuple(as_node(n) for n in nodes),
            links=tuple(as_link(l) for l in links)
        )

    @staticmethod
    def from_dict(data: Mapping[str, Sequence[Mapping[str, Any]]]) -> GraphSnapshot:
        return GraphSnapshot.from_items(data.get("nodes", ()), data.get("links", ()))

    def to_dict(self) -> Dict[str, list]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
        }

    def canonical(self) -> GraphSnapshot:
        """Same content with nodes and links sorted by id."""
        return GraphSnapshot(
            nodes=tuple(sorted(self.nodes, key=lambda n: n.id)),
            links=tuple(sorted(self.links, key=lambda l: l.id))
        )

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.links
