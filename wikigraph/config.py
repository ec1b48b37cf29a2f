"""Database connection settings and the fixed web endpoints."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PORT = 3306
SECONDS_IN_DAY = 24 * 60 * 60
TOP_ARTICLES_LIMIT = 1000
TOP_ARTICLES_URL = (
    "https://wikimedia.org/api/rest_v1/metrics/pageviews/top/en.wikipedia/all-access/"
)
PAGE_BY_NAME = (
    "https://en.wikipedia.org/w/api.php?action=query&titles={}"
    "&prop=revisions&rvprop=content&rvslots=main&format=json"
)
PASSWORD = "password"


def parse_host(host):
    """Split a ``tcp://name:port`` address into ``(name, port)``.

    The scheme and the port are optional; the port defaults to 3306.
    """
    rest = host.strip()
    scheme, sep, tail = rest.partition("://")
    if sep:
        if scheme.lower() != "tcp":
            raise ValueError(f"unsupported scheme {scheme!r} in {host!r}")
        rest = tail
    if "/" in rest:
        raise ValueError(f"unexpected path in database address {host!r}")

    name, sep, port_text = rest.rpartition(":")
    if not sep:
        name, port = rest, DEFAULT_PORT
    else:
        if not port_text.isdigit():
            raise ValueError(f"invalid port {port_text!r} in {host!r}")
        port = int(port_text)
        if not 0 < port < 65536:
            raise ValueError(f"port out of range in {host!r}")
    if not name:
        raise ValueError(f"missing host name in {host!r}")
    return name, port


@dataclass(frozen=True)
class DatabaseSettings:
    """Where the page database lives and how to log in to it."""

    host: str = "tcp://localhost:3306"
    user: str = "root"
    password: str = PASSWORD
    schema: str = "wikipediadb"

    def connect_kwargs(self):
        """Keyword arguments for a MySQL client's ``connect``."""
        name, port = parse_host(self.host)
        return {
            "host": name,
            "port": port,
            "user": self.user,
            "password": self.password,
            "database": self.schema,
        }


VIEWER_DATABASE = DatabaseSettings()
PARSER_DATABASE = DatabaseSettings(host="tcp://127.0.0.1:3306")