"""Queries over the page and reference tables used to build the graph."""

from __future__ import annotations

from contextlib import closing

import pymysql


class DatabaseManager:
    """Runs the graph queries over an open DB-API connection (``%s`` placeholders)."""

    def __init__(self, connection):
        self._connection = connection

    @classmethod
    def connect(cls, settings):
        """Open a MySQL connection described by ``settings``."""
        return cls(pymysql.connect(**settings.connect_kwargs()))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _fetch_all(self, sql, params=()):
        with closing(self._connection.cursor()) as cursor:
            cursor.execute(sql, params)
            return cursor.fetchall()

    def get_neighbors_sorted_by_visitors(self, node_id):
        """Pages referenced by ``node_id`` as ``(id, name, visitors)``, most visited first."""
        rows = self._fetch_all(
            "SELECT wp.id, wp.name, wp.visitors_last_5_days "
            "FROM pagereferences pr "
            "JOIN wikipediapages wp ON pr.referenced_page_id = wp.id "
            "WHERE pr.page_id = %s ORDER BY wp.visitors_last_5_days DESC",
            (node_id,),
        )
        return [(int(pid), str(name), int(visitors)) for pid, name, visitors in rows]

    def get_page_by_id(self, page_id):
        """Return ``(id, name)`` of a page, or ``None`` when there is no such page."""
        rows = self._fetch_all(
            "SELECT id, name FROM wikipediapages WHERE id = %s", (page_id,)
        )
        if not rows:
            return None
        pid, name = rows[0]
        return int(pid), str(name)

    def get_most_referenced_page(self):
        """Return ``(id, name)`` of the page with the most outgoing references."""
        rows = self._fetch_all(
            "SELECT id, name FROM wikipediapages WHERE id = ("
            "SELECT page_id FROM (SELECT page_id, COUNT(*) cnt FROM pagereferences "
            "GROUP BY page_id ORDER BY cnt DESC LIMIT 1) tmp)"
        )
        if not rows:
            raise LookupError("no referenced pages in the database")
        pid, name = rows[0]
        return int(pid), str(name)

    def get_references_sorted(self, from_id, limit):
        """Up to ``limit`` pages referenced by ``from_id``, most visited first."""
        rows = self._fetch_all(
            "SELECT p.referenced_page_id, w.name FROM pagereferences p "
            "JOIN wikipediapages w ON p.referenced_page_id = w.id "
            "WHERE p.page_id = %s ORDER BY w.visitors_last_5_days DESC LIMIT %s",
            (from_id, limit),
        )
        return [(int(pid), str(name)) for pid, name in rows]

    def get_references_excluding(self, from_id, excluded_ids, limit):
        """Like :meth:`get_references_sorted`, skipping pages in ``excluded_ids``."""
        excluded = [int(pid) for pid in excluded_ids]
        exclusion = ""
        if excluded:
            placeholders = ", ".join(["%s"] * len(excluded))
            exclusion = f"AND p.referenced_page_id NOT IN ({placeholders}) "
        rows = self._fetch_all(
            "SELECT p.referenced_page_id, w.name FROM pagereferences p "
            "JOIN wikipediapages w ON p.referenced_page_id = w.id "
            "WHERE p.page_id = %s " + exclusion +
            "ORDER BY w.visitors_last_5_days DESC LIMIT %s",
            (from_id, *excluded, limit),
        )
        return [(int(pid), str(name)) for pid, name in rows]

    def close(self):
        """Close the underlying connection."""
        self._connection.close()