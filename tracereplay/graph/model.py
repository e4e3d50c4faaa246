"""
Graph Model
===========

Indexed mutable collection of nodes and links.

INVARIANTS:
- Nodes and links live in arenas (lists) in insertion order
- id -> index maps are consistent with the arenas whenever a call returns
- Removal shifts later entries down and patches their map slots
- Bulk replacement rebuilds the corresponding map fully

Lookups of absent ids return None/False. Callers (the interpreter) treat
that as a no-op signal, never as a fatal error.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar, Union

from ..contracts.graph import (
    Node, Link, GraphSnapshot, Value, as_node, as_link, normalize_value
)

Item = TypeVar("Item", Node, Link)


class GraphModel:
    """
    Mutable graph owned by a replay session.

    Items are immutable records; every setter replaces the record in its
    arena slot. Read accessors return tuples, so no caller can mutate
    the arenas behind the index maps.
    """

    def __init__(
        self,
        nodes: Iterable[Union[Node, Mapping[str, Any]]] = (),
        links: Iterable[Union[Link, Mapping[str, Any]]] = ()
    ):
        self._nodes: List[Node] = []
        self._links: List[Link] = []
        self._node_index: Dict[int, int] = {}
        self._link_index: Dict[int, int] = {}
        self.bulk_replace(nodes, links)

    @staticmethod
    def from_snapshot(snapshot: GraphSnapshot) -> GraphModel:
        return GraphModel(snapshot.nodes, snapshot.links)

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes)

    @property
    def links(self) -> Tuple[Link, ...]:
        return tuple(self._links)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def link_count(self) -> int:
        return len(self._links)

    def has_nodes(self) -> bool:
        return bool(self._nodes)

    def has_links(self) -> bool:
        return bool(self._links)

    def node(self, node_id: int) -> Optional[Node]:
        index = self._node_index.get(node_id)
        if index is None:
            return None
        return self._nodes[index]

    def link(self, link_id: int) -> Optional[Link]:
        index = self._link_index.get(link_id)
        if index is None:
            return None
        return self._links[index]

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=tuple(self._nodes), links=tuple(self._links))

    # =========================================================================
    # ADD
    # =========================================================================

    def add_node(self, node: Node) -> Optional[Node]:
        """
        Append node, or replace the entry with the same id in place.

        Returns the replaced node, None if the id was new.
        """
        index = self._node_index.get(node.id)
        if index is not None:
            previous = self._nodes[index]
            self._nodes[index] = node
            return previous
        self._nodes.append(node)
        self._node_index[node.id] = len(self._nodes) - 1
        return None

    def add_link(self, link: Link) -> Optional[Link]:
        """
        Append link, or replace the entry with the same id in place.

        Returns the replaced link, None if the id was new.
        """
        index = self._link_index.get(link.id)
        if index is not None:
            previous = self._links[index]
            self._links[index] = link
            return previous
        self._links.append(link)
        self._link_index[link.id] = len(self._links) - 1
        return None

    # =========================================================================
    # REMOVE
    # =========================================================================

    def remove_node(self, node_id: int) -> Optional[Tuple[Node, Tuple[Link, ...]]]:
        """
        Remove node and every link incident to it.

        Returns (removed node, removed links) or None if absent.
        """
        index = self._node_index.get(node_id)
        if index is None:
            return None
        node = self._nodes[index]
        removed_links = self.remove_links_matching(lambda l: l.touches(node_id))
        del self._nodes[index]
        del self._node_index[node_id]
        self._reindex_nodes(index)
        return node, removed_links

    def remove_link(self, link_id: int) -> Optional[Link]:
        index = self._link_index.get(link_id)
        if index is None:
            return None
        link = self._links[index]
        del self._links[index]
        del self._link_index[link_id]
        self._reindex_links(index)
        return link

    def remove_links_matching(self, predicate: Callable[[Link], bool]) -> Tuple[Link, ...]:
        """Remove all links satisfying predicate; returns them in arena order."""
        removed = tuple(l for l in self._links if predicate(l))
        if removed:
            self._links = [l for l in self._links if not predicate(l)]
            self._rebuild_link_index()
        return removed

    def remove_nodes_matching(
        self,
        predicate: Callable[[Node], bool]
    ) -> Tuple[Tuple[Node, ...], Tuple[Link, ...]]:
        """
        Remove all nodes satisfying predicate, plus links incident to them.

        Returns (removed nodes, removed links).
        """
        removed = tuple(n for n in self._nodes if predicate(n))
        if not removed:
            return (), ()
        ids = {n.id for n in removed}
        removed_links = self.remove_links_matching(
            lambda l: l.source in ids or l.target in ids
        )
        self._nodes = [n for n in self._nodes if n.id not in ids]
        self._rebuild_node_index()
        return removed, removed_links

    def clear(self) -> None:
        self._nodes = []
        self._links = []
        self._node_index = {}
        self._link_index = {}

    def bulk_replace(
        self,
        nodes: Iterable[Union[Node, Mapping[str, Any]]],
        links: Iterable[Union[Link, Mapping[str, Any]]]
    ) -> None:
        """
        Replace both arenas wholesale and rebuild both maps.

        Both item lists are parsed before anything is assigned, so a bad
        item leaves the model untouched. A repeated id replaces the earlier
        entry in place, as add_node/add_link do.
        """
        new_nodes, node_index = _unique_by_id(as_node(n) for n in nodes)
        new_links, link_index = _unique_by_id(as_link(l) for l in links)
        self._nodes, self._node_index = new_nodes, node_index
        self._links, self._link_index = new_links, link_index

    # =========================================================================
    # SETTERS (return False when the id is absent)
    # =========================================================================

    def set_node_value(self, node_id: int, value: Value) -> bool:
        return self._update_node(node_id, value=normalize_value(value))

    def set_node_class(self, node_id: int, style_class: str) -> bool:
        return self._update_node(node_id, style_class=style_class or "")

    def set_node_label(self, node_id: int, label: str) -> bool:
        return self._update_node(node_id, label=label)

    def set_link_value(self, link_id: int, value: Value) -> bool:
        return self._update_link(link_id, value=normalize_value(value))

    def set_link_class(self, link_id: int, style_class: str) -> bool:
        return self._update_link(link_id, style_class=style_class or "")

    def set_link_label(self, link_id: int, label: str) -> bool:
        return self._update_link(link_id, label=label)

    def set_link_direction(self, link_id: int, direction: int) -> bool:
        return self._update_link(link_id, direction=direction)

    # =========================================================================
    # INDEX MAINTENANCE
    # =========================================================================

    def _update_node(self, node_id: int, **changes: Any) -> bool:
        index = self._node_index.get(node_id)
        if index is None:
            return False
        self._nodes[index] = replace(self._nodes[index], **changes)
        return True

    def _update_link(self, link_id: int, **changes: Any) -> bool:
        index = self._link_index.get(link_id)
        if index is None:
            return False
        self._links[index] = replace(self._links[index], **changes)
        return True

    def _reindex_nodes(self, start: int) -> None:
        for i in range(start, len(self._nodes)):
            self._node_index[self._nodes[i].id] = i

    def _reindex_links(self, start: int) -> None:
        for i in range(start, len(self._links)):
            self._link_index[self._links[i].id] = i

    def _rebuild_node_index(self) -> None:
        self._node_index = {n.id: i for i, n in enumerate(self._nodes)}

    def _rebuild_link_index(self) -> None:
        self._link_index = {l.id: i for i, l in enumerate(self._links)}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._node_index


def _unique_by_id(items: Iterable[Item]) -> Tuple[List[Item], Dict[int, int]]:
    arena: List[Item] = []
    index: Dict[int, int] = {}
    for item in items:
        slot = index.get(item.id)
        if slot is None:
            index[item.id] = len(arena)
            arena.append(item)
        else:
            arena[slot] = item
    return arena, index
