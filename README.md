# wikigraph

wikigraph has two commands that share one MySQL database.

* **`wikigraph-parser`** fetches the list of the most viewed English
  Wikipedia articles for the previous day (at most 1000 of them). It stores
  each page with its view count and size in the `wikipediapages` table, then
  downloads the wikitext of every stored page and records each `[[link]]` to
  another stored page in the `pagereferences` table. Before each update it
  deletes rows that were created more than one day ago.
* **`wikigraph-viewer`** opens a window and draws part of that link graph.
  The page with the most outgoing references is placed in the centre. Its ten
  most visited linked pages sit evenly on an inner ring, and up to three
  further pages, not already shown, hang off each of them on an outer ring.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Database

Both commands expect an existing MySQL schema named `wikipediadb` with two
tables:

* `wikipediapages` with the columns `id`, `name`, `visitors_last_5_days`,
  `volume` and `created_at`
* `pagereferences` with the columns `page_id`, `referenced_page_id` and
  `created_at`

The connection settings are `wikigraph.config.DatabaseSettings` values:
`VIEWER_DATABASE` (host `tcp://localhost:3306`) for the viewer and
`PARSER_DATABASE` (host `tcp://127.0.0.1:3306`) for the parser, both with user
`root`. `DatabaseSettings.connect_kwargs()` turns a settings value into the
keyword arguments of `pymysql.connect`; `wikigraph.config.parse_host` splits a
host string such as `tcp://localhost:3306` into a host name and a port (the
`tcp://` prefix and the port are optional, the port defaulting to 3306).

## Collecting data

```
wikigraph-parser
```

The command runs until it is stopped and repeats the update every 24 hours.
`wikigraph-parser --once` runs a single update and exits. Failed HTTP requests
and MySQL errors are logged and the update carries on.

## Browsing the graph

```
wikigraph-viewer
```

The command exits with status 1 if it cannot connect to the database or if no
page has any references yet. In the window:

* **left-drag** a node to move it;
* **double-click** a node to make it the new centre and reload the graph
  around it;
* **right-click** a node to list every page it links to, with its visitor
  count, most visited first. Scroll the list with the mouse wheel, click an
  entry to recentre the graph on that page, or click *Open in Browser* to open
  the node's article in the system web browser (`xdg-open`, `open` or
  `start`, depending on the platform). Escape or a click outside the list
  closes it;
* **middle-drag** to pan the view.

## Using it from Python

```python
from wikigraph.config import DatabaseSettings
from wikigraph.database import DatabaseManager
from wikigraph.graph import Graph
from wikigraph.layout import randomize_node_positions

with DatabaseManager.connect(DatabaseSettings()) as db:
    graph = Graph(db)
    graph.load_from_database(None)

    center_id, _ = db.get_most_referenced_page()
    randomize_node_positions(graph, center_id)

    for node in graph.nodes.values():
        print(node.label, node.position)
```

`DatabaseManager` works over any DB-API connection that uses `%s`
placeholders. `Graph.get_sorted_neighbors` returns `NeighborInfo` records for
every page a node links to.

The parser's building blocks can be used on their own:
`wikigraph.parser.extract_references` returns the link targets found in a
piece of wikitext, `parse_top_articles` reads a page-view ranking response
into `Article` records, and `parse_article_contents` returns the wikitext held
in a revisions response. `Crawler` takes a `PageStore` and, optionally, any
function that maps a URL to a response body.

## What it does not do

* It does not create the database schema or its tables; they must exist.
* The connection settings are fixed in `wikigraph.config`; neither command
  takes options to change them.