import json
import logging
import re
from datetime import date, datetime
from unittest.mock import patch
from urllib.parse import parse_qs, unquote, urlsplit

import pymysql
import pytest
import requests
import responses

from wikigraph.config import TOP_ARTICLES_URL
from wikigraph.parser import (
    Article,
    Crawler,
    PageStore,
    article_url,
    extract_references,
    fetch_url,
    main,
    parse_article_contents,
    parse_top_articles,
    top_articles_url,
    url_encode,
)


class _Recorder:
    def __init__(self, fail=False):
        self.fail = fail
        self.executed = []
        self.commits = 0
        self.closed = 0

    def __call__(self):
        return _FakeConnection(self)

    def statements(self, fragment):
        return [params for sql, params in self.executed if fragment in sql]


class _FakeConnection:
    def __init__(self, recorder):
        self._recorder = recorder

    def cursor(self):
        return _FakeCursor(self._recorder)

    def commit(self):
        self._recorder.commits += 1

    def close(self):
        self._recorder.closed += 1


class _FakeCursor:
    def __init__(self, recorder):
        self._recorder = recorder

    def execute(self, sql, params=None):
        if self._recorder.fail:
            raise pymysql.MySQLError("connection refused")
        self._recorder.executed.append((sql, params))

    def close(self):
        pass


def _top_payload(entries):
    return json.dumps({"items": [{"articles": entries}]})


def _article_payload(text):
    return json.dumps(
        {"query": {"pages": {"1": {"revisions": [{"slots": {"main": {"*": text}}}]}}}}
    )


def test_url_encode_keeps_unreserved():
    value = "Abc-123_x.y~z"
    assert url_encode(value) == value


def test_url_encode_space():
    assert url_encode("Albert Einstein") == "Albert%20Einstein"


@pytest.mark.parametrize("title", ["Café", "C++ (language)", "東京", "AT&T"])
def test_url_encode_round_trips(title):
    encoded = url_encode(title)
    assert set(encoded) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~%")
    assert unquote(encoded) == title


def test_url_encode_low_byte_is_not_padded():
    assert url_encode("\t") == "%9"


def test_extract_references():
    text = "See [[Paris|the capital]] and [[New York]]."
    assert extract_references(text) == ["the_capital", "New_York"]


def test_extract_references_ignores_unclosed_links():
    assert extract_references("no [[closing here") == []


def test_top_articles_url_round_trip():
    day = date(2024, 1, 2)
    url = top_articles_url(day)
    assert url.startswith(TOP_ARTICLES_URL)
    assert datetime.strptime(url[len(TOP_ARTICLES_URL):], "%Y/%m/%d").date() == day


@pytest.mark.parametrize("title", ["Albert_Einstein", "C++ (language)", "Café"])
def test_article_url_carries_title(title):
    url = article_url(title)
    assert url.startswith("https://en.wikipedia.org/w/api.php?action=query&titles=")
    query = parse_qs(urlsplit(url).query)
    assert query["titles"] == [title]
    assert query["format"] == ["json"]


def test_parse_top_articles_reads_fields():
    data = _top_payload(
        [
            {"rank": 1, "article": "Main_Page", "views": 5000, "size": 42},
            {"rank": 2, "article": "Paris", "views": 300, "size": 7},
        ]
    )
    assert parse_top_articles(data) == [
        Article(1, "Main_Page", 5000, 42),
        Article(2, "Paris", 300, 7),
    ]


def test_parse_top_articles_missing_size_is_zero():
    data = _top_payload([{"rank": 3, "article": "Seine", "views": 10}])
    assert parse_top_articles(data) == [Article(3, "Seine", 10, 0)]


def test_parse_top_articles_limit():
    entries = [{"rank": i, "article": f"A{i}", "views": i} for i in range(1, 6)]
    articles = parse_top_articles(_top_payload(entries), limit=3)
    assert [a.id for a in articles] == [1, 2, 3]


def test_parse_top_articles_without_items():
    assert parse_top_articles(json.dumps({"items": []})) == []
    assert parse_top_articles(json.dumps({})) == []


@pytest.mark.parametrize("data", ["", "{not json"])
def test_parse_top_articles_rejects_bad_json(data):
    with pytest.raises(ValueError):
        parse_top_articles(data)


def test_parse_article_contents():
    data = json.dumps(
        {
            "query": {
                "pages": {
                    "1": {"revisions": [{"slots": {"main": {"*": "wikitext"}}}]},
                    "2": {"missing": ""},
                    "3": {"revisions": []},
                }
            }
        }
    )
    assert parse_article_contents(data) == ["wikitext"]


def test_parse_article_contents_rejects_bad_json():
    with pytest.raises(ValueError):
        parse_article_contents("")


def test_fetch_url_returns_body():
    url = "https://en.wikipedia.org/w/api.php?action=query"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body="hello")
        assert fetch_url(url) == "hello"


def test_fetch_url_returns_body_on_http_error_with_session():
    url = "https://wikimedia.org/api/rest_v1/metrics"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body="error page", status=500)
        with requests.Session() as session:
            assert fetch_url(url, session) == "error page"


def test_fetch_url_returns_empty_on_connection_failure(caplog):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://wikimedia.org/down",
            body=requests.ConnectionError("down"),
        )
        with caplog.at_level(logging.ERROR):
            assert fetch_url("https://wikimedia.org/down") == ""
    assert "HTTP error" in caplog.text


def test_insert_page_records_and_maps():
    recorder = _Recorder()
    store = PageStore(recorder)
    store.insert_page(Article(7, "Paris", 300, 12))
    assert store.page_map == {"Paris": 7}
    assert recorder.statements("wikipediapages") == [(7, "Paris", 300, 12, 300, 12)]
    assert recorder.commits == 1
    assert recorder.closed == 1


def test_insert_page_failure_is_logged(caplog):
    store = PageStore(_Recorder(fail=True))
    with caplog.at_level(logging.ERROR):
        store.insert_page(Article(7, "Paris", 300, 12))
    assert store.page_map == {}
    assert "MySQL Error" in caplog.text


def test_insert_reference():
    recorder = _Recorder()
    PageStore(recorder).insert_reference(1, 2)
    assert recorder.statements("INSERT IGNORE INTO pagereferences") == [(1, 2)]


def test_delete_old_rows():
    recorder = _Recorder()
    store = PageStore(recorder)
    store.delete_old_entries()
    store.delete_old_references()
    sqls = [sql for sql, _ in recorder.executed]
    assert sqls[0].startswith("DELETE FROM wikipediapages")
    assert sqls[1].startswith("DELETE FROM pagereferences")
    assert recorder.commits == 2


def test_delete_failure_is_logged(caplog):
    with caplog.at_level(logging.ERROR):
        PageStore(_Recorder(fail=True)).delete_old_references()
    assert "delete_old_references" in caplog.text


def test_fetch_top_articles_uses_previous_day():
    requested = []

    def fetch(url):
        requested.append(url)
        return _top_payload([{"rank": 1, "article": "Paris", "views": 3, "size": 1}])

    crawler = Crawler(PageStore(_Recorder()), fetch)
    articles = crawler.fetch_top_articles(datetime(2024, 1, 2, 12, 0))
    assert requested == [top_articles_url(date(2024, 1, 1))]
    assert articles == [Article(1, "Paris", 3, 1)]


def test_fetch_top_articles_bad_response(caplog):
    crawler = Crawler(PageStore(_Recorder()), lambda url: "")
    with caplog.at_level(logging.ERROR):
        assert crawler.fetch_top_articles(datetime(2024, 1, 2)) == []
    assert "JSON Parse Error" in caplog.text


def test_parse_references_only_known_pages():
    recorder = _Recorder()
    store = PageStore(recorder)
    store.page_map.update({"France": 2, "New_York": 9})
    Crawler(store, lambda url: "").parse_references(
        "[[France]], [[Nowhere]] and [[city|New York]]", 1
    )
    assert recorder.statements("pagereferences") == [(1, 2), (1, 9)]


def test_fetch_and_parse_article_bad_json(caplog):
    recorder = _Recorder()
    store = PageStore(recorder)
    store.page_map["Paris"] = 1
    with caplog.at_level(logging.ERROR):
        Crawler(store, lambda url: "oops").fetch_and_parse_article("Paris")
    assert recorder.executed == []
    assert "JSON parsing error" in caplog.text


def test_update_runs_full_cycle():
    now = datetime(2024, 1, 2, 12, 0)
    pages = {
        top_articles_url(date(2024, 1, 1)): _top_payload(
            [
                {"rank": 1, "article": "Paris", "views": 500, "size": 10},
                {"rank": 2, "article": "France", "views": 900, "size": 20},
            ]
        ),
        article_url("Paris"): _article_payload("Capital of [[France]], see [[Nowhere]]."),
        article_url("France"): _article_payload("No links here."),
    }
    recorder = _Recorder()
    store = PageStore(recorder)
    Crawler(store, lambda url: pages.get(url, "")).update(now)

    sqls = [sql for sql, _ in recorder.executed]
    assert sqls[0].startswith("DELETE FROM wikipediapages")
    assert sqls[1].startswith("DELETE FROM pagereferences")
    assert store.page_map == {"Paris": 1, "France": 2}
    assert recorder.statements("INSERT IGNORE INTO pagereferences") == [(1, 2)]
    assert len(recorder.statements("INSERT INTO wikipediapages")) == 2


def test_main_once(capsys):
    with patch("pymysql.connect") as mock_connect:
        with responses.RequestsMock() as rsps:
            rsps.add(
                responses.GET,
                re.compile(r"https://wikimedia\.org/api/rest_v1/metrics/pageviews/top/.*"),
                body=json.dumps({"items": []}),
            )
            assert main(["--once"]) == 0
    assert mock_connect.call_args.kwargs["host"] == "127.0.0.1"
    executed = [
        call.args[0]
        for call in mock_connect.return_value.cursor.return_value.execute.call_args_list
    ]
    assert any(sql.startswith("DELETE FROM wikipediapages") for sql in executed)
    assert any(sql.startswith("DELETE FROM pagereferences") for sql in executed)
    assert "Starting Wikipedia data processing daemon" in capsys.readouterr().out