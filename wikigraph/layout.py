"""Placement of graph nodes on two rings, and helpers for the page popup."""

from __future__ import annotations

import math
import subprocess
import sys
from collections import defaultdict

from .graph import Node, adjust_name

CENTER = (750.0, 450.0)
INNER_RADIUS = 220.0
OUTER_RADIUS = 440.0
MAX_CHILDREN = 6
CHILD_SPREAD = math.radians(30.0)
WIKI_BASE = "https://en.wikipedia.org/wiki/"


def _place(graph, node_id, position):
    node = graph.nodes.get(node_id)
    if node is None:
        graph.nodes[node_id] = Node(node_id, "", position)
    else:
        node.position = position


def randomize_node_positions(graph, center_id):
    """Lay the graph out around ``center_id`` and return the positions by node id.

    Direct neighbours of the centre sit evenly on an inner ring; up to six
    of each one's own neighbours fan out over 30 degrees on an outer ring.
    """
    cx, cy = CENTER
    positions = {center_id: CENTER}
    _place(graph, center_id, CENTER)

    level1 = [edge.target for edge in graph.edges if edge.source == center_id]
    parents = set(level1)
    children = defaultdict(list)
    for edge in graph.edges:
        if edge.source in parents and edge.target != center_id:
            children[edge.source].append(edge.target)

    step = math.tau / max(1, len(level1))
    for i, parent in enumerate(level1):
        parent_angle = i * step
        position = (
            cx + INNER_RADIUS * math.cos(parent_angle),
            cy + INNER_RADIUS * math.sin(parent_angle),
        )
        positions[parent] = position
        _place(graph, parent, position)

        kids = children[parent][:MAX_CHILDREN]
        start_angle = parent_angle - CHILD_SPREAD / 2.0
        child_step = CHILD_SPREAD / max(1, len(kids) - 1)
        for j, child in enumerate(kids):
            angle = start_angle + j * child_step
            position = (
                cx + OUTER_RADIUS * math.cos(angle),
                cy + OUTER_RADIUS * math.sin(angle),
            )
            positions[child] = position
            _place(graph, child, position)
    return positions


def neighbor_label(neighbor):
    """Popup text for a neighbour: its name and visitor count."""
    return f"{adjust_name(neighbor.name)} ({neighbor.visitors})"


def wiki_url(label):
    """Address of the article with display label ``label``."""
    return WIKI_BASE + label.replace(" ", "_")


def browser_command(url, platform=None):
    """Command that opens ``url`` in the desktop's browser."""
    platform = sys.platform if platform is None else platform
    if platform.startswith("win"):
        return ["cmd", "/c", "start", "", url]
    if platform == "darwin":
        return ["open", url]
    return ["xdg-open", url]


def open_in_browser(url):
    """Start the browser on ``url`` without waiting for it."""
    return subprocess.Popen(browser_command(url))