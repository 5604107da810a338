import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

from examdesk.ingestion.archive import (
    ArchiveClient,
    build_query,
    parse_articles,
    parse_seendate,
)


def _resp(status=200, text="", payload=None):
    r = mock.Mock()
    r.status_code = status
    r.text = text
    if payload is None:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = payload
    return r


class TestArchiveQuery(unittest.TestCase):
    def test_build_query(self):
        self.assertEqual(build_query(["India"]), "India")
        self.assertEqual(build_query(["India", "Reserve Bank"]), '(India OR "Reserve Bank")')

    def test_params_cover_whole_month(self):
        params = ArchiveClient().build_params(2024, 2, "rbi-news", 500)
        self.assertEqual(params["startdatetime"], "20240201000000")
        self.assertEqual(params["enddatetime"], "20240229235959")
        self.assertEqual(params["maxrecords"], "250")
        self.assertEqual(params["mode"], "ArtList")
        self.assertIn("RBI", params["query"])

    def test_unknown_category_uses_default_keywords(self):
        params = ArchiveClient().build_params(2025, 3, "no-such-category", 10)
        self.assertEqual(params["query"], '(India OR "current affairs")')


class TestSeenDate(unittest.TestCase):
    def test_compact_stamp(self):
        self.assertEqual(parse_seendate("20250305T101500Z"), datetime(2025, 3, 5, 10, 15, tzinfo=timezone.utc))
        self.assertEqual(parse_seendate("20250305"), datetime(2025, 3, 5, tzinfo=timezone.utc))

    def test_out_of_range_is_none(self):
        self.assertIsNone(parse_seendate("20251345T000000Z"))
        self.assertIsNone(parse_seendate("20250230T000000Z"))
        self.assertIsNone(parse_seendate("20250305T250000Z"))
        self.assertIsNone(parse_seendate("2025"))
        self.assertIsNone(parse_seendate(None))


class TestFetchArchive(unittest.TestCase):
    def test_articles_parsed(self):
        payload = {
            "articles": [
                {"title": "RBI cuts CRR", "url": "https://www.thehindu.com/x", "seendate": "20250305T101500Z"},
                {"title": "", "url": "https://skip.example/"},
                {"title": "No domain field", "url": "https://www.livemint.com/y", "seendate": "garbage"},
            ]
        }
        with mock.patch("examdesk.ingestion.archive.requests.get", return_value=_resp(200, "{}", payload)):
            items = ArchiveClient().fetch_archive(2025, 3, "rbi-news")
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0].source, "thehindu.com")
        self.assertEqual(items[0].provider, "archive")
        self.assertIsNone(items[1].published_at)

    def test_text_error_body_yields_empty(self):
        body = "Queries must be at least 3 characters"
        with mock.patch("examdesk.ingestion.archive.requests.get", return_value=_resp(200, body)):
            self.assertEqual(ArchiveClient().fetch_archive(2025, 3, "rbi-news"), [])

    def test_network_failure_yields_empty(self):
        with mock.patch("examdesk.ingestion.archive.requests.get", side_effect=requests.ConnectionError("down")):
            self.assertEqual(ArchiveClient().fetch_archive(2025, 3, "rbi-news"), [])

    def test_http_error_yields_empty(self):
        with mock.patch("examdesk.ingestion.archive.requests.get", return_value=_resp(500, "oops")):
            self.assertEqual(ArchiveClient().fetch_archive(2025, 3, "rbi-news"), [])

    def test_parse_articles_prefers_domain_field(self):
        items = parse_articles([{"title": "T", "url": "https://a.example/x", "domain": "a.example"}])
        self.assertEqual(items[0].source, "a.example")


if __name__ == "__main__":
    unittest.main()
