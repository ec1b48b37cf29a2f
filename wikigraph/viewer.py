"""Window that draws the page graph and lets the user walk through it."""

from __future__ import annotations

import argparse
import sys
import time

import pygame
import pymysql

from .config import VIEWER_DATABASE
from .database import DatabaseManager
from .graph import Graph
from .layout import neighbor_label, open_in_browser, randomize_node_positions, wiki_url

WINDOW_SIZE = (2480, 1420)
FRAME_RATE = 60

NODE_WIDTH = 170
NODE_HEIGHT = 58
NODE_PADDING = 6
TITLE_OFFSET = 6
ROW_OFFSET = 30
PIN_OFFSET = 6
PIN_RADIUS = 4
FONT_SIZE = 18

POPUP_WIDTH = 300
POPUP_LIST_HEIGHT = 200
POPUP_PADDING = 8
POPUP_ROW_HEIGHT = 22
BUTTON_HEIGHT = 26
DOUBLE_CLICK_SECONDS = 0.4

BACKGROUND = (26, 26, 26)
NODE_FILL = (60, 60, 70)
NODE_BORDER = (100, 100, 110)
SELECTED_BORDER = (240, 200, 80)
TEXT_COLOR = (230, 230, 230)
EDGE_COLOR = (90, 140, 220)
PIN_COLOR = (150, 150, 160)
POPUP_FILL = (40, 40, 48)
LIST_FILL = (30, 30, 36)
BUTTON_FILL = (70, 90, 130)


class GraphViewer:
    """Draws a :class:`Graph` and reacts to mouse input.

    Left drag moves a node, a double click recentres on it, a right click
    opens the list of its neighbours and middle drag pans the view.
    """

    def __init__(self, graph):
        self.graph = graph
        self.current_node_id = 0
        self.positions = {}
        self.offset = (0.0, 0.0)
        self.selected = None
        self.popup_open = False
        self.popup_origin = (0, 0)
        self.popup_scroll = 0
        self.neighbors = []
        self._font = None
        self._dragging = False
        self._panning = False
        self._last_click = None
        self._running = False

    def _arrange(self, center_id):
        self.positions = randomize_node_positions(self.graph, center_id)

    def load_subgraph(self, node_id):
        """Reload the graph centred on ``node_id`` and lay it out."""
        self.current_node_id = node_id
        self.selected = None
        self.graph.load_from_database(node_id)
        self._arrange(node_id)

    def _position(self, node_id):
        node = self.graph.nodes[node_id]
        if node.position is None:
            node.position = self.positions.get(node_id, (0.0, 0.0))
        return node.position

    def _node_rect(self, node_id):
        x, y = self._position(node_id)
        ox, oy = self.offset
        return pygame.Rect(round(x + ox), round(y + oy), NODE_WIDTH, NODE_HEIGHT)

    def node_at(self, point):
        """Id of the topmost node under the screen ``point``, or None."""
        for node_id in reversed(list(self.graph.nodes)):
            if self._node_rect(node_id).collidepoint(point):
                return node_id
        return None

    def open_neighbors(self, node_id):
        """Show the neighbour list of ``node_id`` and return it."""
        self.current_node_id = node_id
        self.neighbors = self.graph.get_sorted_neighbors(node_id)
        self.popup_scroll = 0
        self.popup_open = True
        return self.neighbors

    def select_neighbor(self, index):
        """Recentre on the neighbour at ``index`` of the open list."""
        if index < 0:
            raise IndexError("neighbor index out of range")
        neighbor = self.neighbors[index]
        self.popup_open = False
        self.load_subgraph(neighbor.id)
        return neighbor

    def open_current_in_browser(self):
        """Open the current node's article; return its URL, or None if it is not shown."""
        node = self.graph.nodes.get(self.current_node_id)
        if node is None:
            return None
        url = wiki_url(node.label)
        open_in_browser(url)
        return url

    def _popup_rect(self):
        x, y = self.popup_origin
        return pygame.Rect(
            x,
            y,
            POPUP_WIDTH + 2 * POPUP_PADDING,
            POPUP_LIST_HEIGHT + BUTTON_HEIGHT + 3 * POPUP_PADDING,
        )

    def _popup_list_rect(self):
        x, y = self.popup_origin
        return pygame.Rect(x + POPUP_PADDING, y + POPUP_PADDING, POPUP_WIDTH, POPUP_LIST_HEIGHT)

    def _popup_button_rect(self):
        listing = self._popup_list_rect()
        return pygame.Rect(listing.x, listing.bottom + POPUP_PADDING, POPUP_WIDTH, BUTTON_HEIGHT)

    @staticmethod
    def _visible_rows():
        return POPUP_LIST_HEIGHT // POPUP_ROW_HEIGHT

    def _popup_item_at(self, point):
        listing = self._popup_list_rect()
        if not listing.collidepoint(point):
            return None
        index = self.popup_scroll + (point[1] - listing.y) // POPUP_ROW_HEIGHT
        return index if index < len(self.neighbors) else None

    def _left_click(self, pos):
        if self.popup_open:
            if self._popup_rect().collidepoint(pos):
                index = self._popup_item_at(pos)
                if index is not None:
                    self.select_neighbor(index)
                elif self._popup_button_rect().collidepoint(pos):
                    self.open_current_in_browser()
                return
            self.popup_open = False

        node_id = self.node_at(pos)
        if node_id is None:
            self.selected = None
            self._last_click = None
            return
        now = time.monotonic()
        last = self._last_click
        if last is not None and last[0] == node_id and now - last[1] <= DOUBLE_CLICK_SECONDS:
            self._last_click = None
            self.load_subgraph(node_id)
            return
        self._last_click = (node_id, now)
        self.selected = node_id
        self._dragging = True

    def _handle_event(self, event):
        if event.type == pygame.QUIT:
            self._running = False
        elif event.type == pygame.MOUSEBUTTONDOWN:
            if event.button == 1:
                self._left_click(event.pos)
            elif event.button == 2:
                self._panning = True
            elif event.button == 3:
                node_id = self.node_at(event.pos)
                if node_id is not None:
                    self.popup_origin = event.pos
                    self.open_neighbors(node_id)
        elif event.type == pygame.MOUSEBUTTONUP:
            if event.button == 1:
                self._dragging = False
            elif event.button == 2:
                self._panning = False
        elif event.type == pygame.MOUSEMOTION:
            dx, dy = event.rel
            if self._dragging and self.selected in self.graph.nodes:
                x, y = self._position(self.selected)
                self.graph.nodes[self.selected].position = (x + dx, y + dy)
            elif self._panning:
                ox, oy = self.offset
                self.offset = (ox + dx, oy + dy)
        elif event.type == pygame.MOUSEWHEEL and self.popup_open:
            max_scroll = max(0, len(self.neighbors) - self._visible_rows())
            self.popup_scroll = min(max(self.popup_scroll - event.y, 0), max_scroll)
        elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self.popup_open = False

    def _get_font(self):
        if self._font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self._font = pygame.font.Font(None, FONT_SIZE)
        return self._font

    @staticmethod
    def _input_pin(rect):
        return (rect.left, rect.top + ROW_OFFSET + PIN_OFFSET)

    @staticmethod
    def _output_pin(rect):
        return (rect.right - 1, rect.top + ROW_OFFSET + PIN_OFFSET)

    def _draw_node(self, surface, font, node_id, rect):
        pygame.draw.rect(surface, NODE_FILL, rect)
        border = SELECTED_BORDER if node_id == self.selected else NODE_BORDER
        pygame.draw.rect(surface, border, rect, 1)

        label = font.render(self.graph.nodes[node_id].label, True, TEXT_COLOR)
        clip = pygame.Rect(0, 0, rect.width - 2 * NODE_PADDING, label.get_height())
        surface.blit(label, (rect.x + NODE_PADDING, rect.y + TITLE_OFFSET), clip)

        from_text = font.render("From", True, TEXT_COLOR)
        surface.blit(from_text, (rect.x + NODE_PADDING + PIN_RADIUS, rect.y + ROW_OFFSET))
        to_text = font.render("To", True, TEXT_COLOR)
        surface.blit(
            to_text,
            (rect.right - NODE_PADDING - PIN_RADIUS - to_text.get_width(), rect.y + ROW_OFFSET),
        )
        pygame.draw.circle(surface, PIN_COLOR, self._input_pin(rect), PIN_RADIUS)
        pygame.draw.circle(surface, PIN_COLOR, self._output_pin(rect), PIN_RADIUS)

    def _draw_popup(self, surface, font):
        frame = self._popup_rect()
        pygame.draw.rect(surface, POPUP_FILL, frame)
        pygame.draw.rect(surface, NODE_BORDER, frame, 1)

        listing = self._popup_list_rect()
        pygame.draw.rect(surface, LIST_FILL, listing)
        rows = self._visible_rows()
        shown = self.neighbors[self.popup_scroll:self.popup_scroll + rows]
        for row, neighbor in enumerate(shown):
            text = font.render(neighbor_label(neighbor), True, TEXT_COLOR)
            y = listing.y + row * POPUP_ROW_HEIGHT + (POPUP_ROW_HEIGHT - text.get_height()) // 2
            clip = pygame.Rect(0, 0, listing.width - 8, text.get_height())
            surface.blit(text, (listing.x + 4, y), clip)

        button = self._popup_button_rect()
        pygame.draw.rect(surface, BUTTON_FILL, button)
        caption = font.render("Open in Browser", True, TEXT_COLOR)
        surface.blit(caption, caption.get_rect(center=button.center))

    def draw(self, surface):
        """Draw edges, nodes and, when open, the neighbour popup onto ``surface``."""
        font = self._get_font()
        surface.fill(BACKGROUND)
        rects = {node_id: self._node_rect(node_id) for node_id in self.graph.nodes}
        for edge in self.graph.edges:
            start = rects.get(edge.source)
            end = rects.get(edge.target)
            if start is None or end is None:
                continue
            pygame.draw.line(surface, EDGE_COLOR, self._output_pin(start), self._input_pin(end), 2)
        for node_id, rect in rects.items():
            self._draw_node(surface, font, node_id, rect)
        if self.popup_open:
            self._draw_popup(surface, font)

    def run(self):
        """Open the window and process frames until it is closed."""
        pygame.init()
        try:
            screen = pygame.display.set_mode(WINDOW_SIZE)
            pygame.display.set_caption("Wikipedia Graph")
            clock = pygame.time.Clock()
            self._running = True
            while self._running:
                for event in pygame.event.get():
                    self._handle_event(event)
                if not self.graph.nodes:
                    self.load_subgraph(self.current_node_id)
                self.draw(screen)
                pygame.display.flip()
                clock.tick(FRAME_RATE)
        finally:
            pygame.quit()


def main(argv=None):
    """Show the graph around the most referencing page."""
    parser = argparse.ArgumentParser(
        prog="wikigraph",
        description="Browse the stored Wikipedia pages as a graph.",
    )
    parser.parse_args(argv)

    print("Start application", flush=True)
    try:
        db = DatabaseManager.connect(VIEWER_DATABASE)
    except pymysql.MySQLError as exc:
        print(f"Cannot connect to the database: {exc}", file=sys.stderr)
        return 1

    with db:
        graph = Graph(db)
        try:
            graph.load_from_database()
            center_id, _ = db.get_most_referenced_page()
        except (LookupError, pymysql.MySQLError) as exc:
            print(f"Cannot create graph: {exc}", file=sys.stderr)
            return 1
        print("Graph created", flush=True)

        viewer = GraphViewer(graph)
        viewer.current_node_id = center_id
        viewer._arrange(center_id)
        viewer.run()
    return 0