"""The page graph: a centre page, its best-visited links and their links."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

FIRST_LEVEL_LIMIT = 10
SECOND_LEVEL_LIMIT = 3


@dataclass(frozen=True)
class NeighborInfo:
    """A page referenced by another page, with its recent visitor count."""

    id: int
    name: str
    visitors: int


@dataclass
class Node:
    """A page shown in the graph; ``position`` is set once it is laid out."""

    id: int
    label: str
    position: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Edge:
    """A reference from page ``source`` to page ``target``."""

    source: int
    target: int


def adjust_name(name):
    """Turn a stored page name into a display label."""
    return name.replace("_", " ")


class Graph:
    """Nodes and edges around one page, loaded from a :class:`DatabaseManager`."""

    def __init__(self, db):
        self.db = db
        self.nodes = {}
        self.edges = []

    def get_sorted_neighbors(self, node_id):
        """All pages referenced by ``node_id``, most visited first."""
        return [
            NeighborInfo(page_id, name, visitors)
            for page_id, name, visitors in self.db.get_neighbors_sorted_by_visitors(node_id)
        ]

    def load_from_database(self, start_page_id=None):
        """Rebuild the graph around ``start_page_id``.

        Without a start page the most referencing page is the centre. An
        unknown start page leaves the graph empty.
        """
        self.nodes.clear()
        self.edges.clear()

        if start_page_id is not None:
            page = self.db.get_page_by_id(start_page_id)
            if page is None:
                return
        else:
            page = self.db.get_most_referenced_page()
        center_id, center_name = page

        self.nodes[center_id] = Node(center_id, adjust_name(center_name))
        passed = {center_id}
        first_level = []

        for page_id, name in self.db.get_references_sorted(center_id, FIRST_LEVEL_LIMIT):
            self.nodes[page_id] = Node(page_id, adjust_name(name))
            self.edges.append(Edge(center_id, page_id))
            passed.add(page_id)
            first_level.append(page_id)

        for parent in first_level:
            second = self.db.get_references_excluding(
                parent, sorted(passed), SECOND_LEVEL_LIMIT
            )
            for page_id, name in second:
                if page_id in passed:
                    continue
                passed.add(page_id)
                self.nodes[page_id] = Node(page_id, adjust_name(name))
                self.edges.append(Edge(parent, page_id))