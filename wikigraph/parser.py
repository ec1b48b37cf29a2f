"""Daily crawler that stores the most viewed articles and the links between them."""

from __future__ import annotations

import argparse
import json
import logging
import re
import string
import time
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta

import pymysql
import requests

from .config import (
    PAGE_BY_NAME,
    PARSER_DATABASE,
    SECONDS_IN_DAY,
    TOP_ARTICLES_LIMIT,
    TOP_ARTICLES_URL,
)

log = logging.getLogger(__name__)

_UNRESERVED = frozenset((string.ascii_letters + string.digits + "-_.~").encode("ascii"))
_REFERENCE = re.compile(r"\[\[(?:[^\]|]*\|)?([^\]]+)\]\]")


@dataclass(frozen=True)
class Article:
    """One entry of the daily top-articles list."""

    id: int
    title: str
    views: int
    volume: int


def url_encode(value):
    """Percent-encode the UTF-8 bytes of ``value``.

    Hex digits are upper case and not zero padded, so bytes below 0x10
    come out as a single digit.
    """
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:X}"
        for byte in value.encode("utf-8")
    )


def extract_references(text):
    """Return the link targets of ``[[...]]`` markup, spaces turned into underscores."""
    return [match.group(1).replace(" ", "_") for match in _REFERENCE.finditer(text)]


def top_articles_url(day):
    """URL of the top-articles list for ``day``."""
    return TOP_ARTICLES_URL + day.strftime("%Y/%m/%d")


def _as_int(value):
    return 0 if value is None else int(value)


def _as_str(value):
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def parse_top_articles(data, limit=TOP_ARTICLES_LIMIT):
    """Read the articles of a top-articles response; raises ValueError on bad JSON."""
    root = json.loads(data)
    items = root.get("items") if isinstance(root, dict) else None
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return []
    entries = items[0].get("articles")
    if not isinstance(entries, list):
        return []

    articles = []
    for entry in entries:
        articles.append(
            Article(
                id=_as_int(entry.get("rank")),
                title=_as_str(entry.get("article")),
                views=_as_int(entry.get("views")),
                volume=_as_int(entry.get("size")),
            )
        )
        if len(articles) >= limit:
            break
    return articles


def article_url(title):
    """URL of the revision-content query for one article."""
    return PAGE_BY_NAME.format(url_encode(title))


def parse_article_contents(data):
    """Return the wikitext of every page in a revisions response.

    Raises ValueError when ``data`` is not valid JSON.
    """
    root = json.loads(data)
    query = root.get("query") if isinstance(root, dict) else None
    pages = query.get("pages") if isinstance(query, dict) else None
    if isinstance(pages, dict):
        entries = pages.values()
    elif isinstance(pages, list):
        entries = pages
    else:
        return []

    contents = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        revisions = entry.get("revisions")
        if not isinstance(revisions, list) or not revisions:
            continue
        slots = revisions[0].get("slots") or {}
        main_slot = slots.get("main") or {}
        contents.append(_as_str(main_slot.get("*")))
    return contents


def fetch_url(url, session=None):
    """Return the body at ``url``, or an empty string when the request fails."""
    get = session.get if session is not None else requests.get
    try:
        response = get(url, allow_redirects=True, timeout=60)
    except requests.RequestException as exc:
        log.error("HTTP error: %s", exc)
        return ""
    return response.text


class PageStore:
    """Writes pages and references, opening a fresh connection for each statement."""

    def __init__(self, connect):
        self._connect = connect
        self.page_map = {}

    def _execute(self, sql, params, context=""):
        try:
            with closing(self._connect()) as connection:
                with closing(connection.cursor()) as cursor:
                    cursor.execute(sql, params)
                connection.commit()
        except pymysql.MySQLError as exc:
            log.error("MySQL Error%s: %s", context, exc)
            return False
        return True

    def insert_page(self, article):
        """Insert or refresh a page and remember its id by title."""
        stored = self._execute(
            "INSERT INTO wikipediapages (id, name, visitors_last_5_days, volume) "
            "VALUES (%s, %s, %s, %s) "
            "ON DUPLICATE KEY UPDATE visitors_last_5_days = %s, volume = %s",
            (
                article.id,
                article.title,
                article.views,
                article.volume,
                article.views,
                article.volume,
            ),
        )
        if stored:
            self.page_map[article.title] = article.id

    def insert_reference(self, page_id, referenced_page_id):
        """Record that ``page_id`` links to ``referenced_page_id``."""
        self._execute(
            "INSERT IGNORE INTO pagereferences (page_id, referenced_page_id) "
            "VALUES (%s, %s)",
            (page_id, referenced_page_id),
        )

    def delete_old_entries(self):
        """Drop pages stored more than a day ago."""
        self._execute(
            "DELETE FROM wikipediapages WHERE created_at < NOW() - INTERVAL 1 DAY",
            None,
            " (delete_old_entries)",
        )

    def delete_old_references(self):
        """Drop references stored more than a day ago."""
        self._execute(
            "DELETE FROM pagereferences WHERE created_at < NOW() - INTERVAL 1 DAY",
            None,
            " (delete_old_references)",
        )


class Crawler:
    """Fetches the daily top articles and records the links between them."""

    def __init__(self, store, fetch=None):
        self.store = store
        self._fetch = fetch if fetch is not None else fetch_url

    def fetch_top_articles(self, now=None):
        """Top articles of the day before ``now`` (default: the current time)."""
        moment = now if now is not None else datetime.now()
        day = (moment - timedelta(seconds=SECONDS_IN_DAY)).date()
        try:
            return parse_top_articles(self._fetch(top_articles_url(day)))
        except ValueError as exc:
            log.error("JSON Parse Error (top articles): %s", exc)
            return []

    def parse_references(self, text, page_id):
        """Store a reference for every link in ``text`` to a known page."""
        for name in extract_references(text):
            referenced_id = self.store.page_map.get(name)
            if referenced_id is not None:
                self.store.insert_reference(page_id, referenced_id)

    def fetch_and_parse_article(self, title):
        """Download one article and store its references."""
        try:
            contents = parse_article_contents(self._fetch(article_url(title)))
        except ValueError as exc:
            log.error("JSON parsing error: %s", exc)
            return
        for content in contents:
            self.parse_references(content, self.store.page_map.setdefault(title, 0))

    def process_articles(self, now=None):
        """Store the top articles, then the references between them."""
        articles = self.fetch_top_articles(now)
        for article in articles:
            self.store.insert_page(article)
        for article in articles:
            self.fetch_and_parse_article(article.title)

    def update(self, now=None):
        """One full refresh: drop stale rows, then crawl again."""
        self.store.delete_old_entries()
        self.store.delete_old_references()
        self.process_articles(now)


def main(argv=None):
    """Run the crawler every 24 hours, or once with ``--once``."""
    parser = argparse.ArgumentParser(
        prog="wikigraph-parser",
        description="Store the most viewed Wikipedia articles and their links.",
    )
    parser.add_argument("--once", action="store_true", help="run a single update and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    connect_kwargs = PARSER_DATABASE.connect_kwargs()
    session = requests.Session()
    store = PageStore(lambda: pymysql.connect(**connect_kwargs))
    crawler = Crawler(store, lambda url: fetch_url(url, session))

    print("Starting Wikipedia data processing daemon", flush=True)
    with closing(session):
        while True:
            print("Updating database...", flush=True)
            crawler.update()
            if args.once:
                print("Update complete.", flush=True)
                break
            print("Update complete. Sleeping for 24 hours...", flush=True)
            time.sleep(SECONDS_IN_DAY)
    return 0