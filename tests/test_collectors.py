"""
Tests for the collectors module.

This module contains tests for the signal formatter, the RSS, Reddit, API and HTML
collectors and the collection manager.
"""

import os
import sys
import asyncio
import unittest
from unittest.mock import patch, MagicMock, AsyncMock

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sentinel.collectors.api_collector import APICollector
from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.formatter import ThreatFormatter
from sentinel.collectors.html_collector import HTMLCollector
from sentinel.collectors.reddit_collector import RedditCollector
from sentinel.collectors.rss_collector import RSSCollector
from sentinel.collectors.sources import API_SOURCES, HTML_SOURCES, REDDIT_SOURCES, RSS_SOURCES
from sentinel.schemas.threat import ForwardOutcome
from sentinel.services.collection_manager import CollectionManager


SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Security Feed</title>
    <link>https://security.example.com</link>
    <description>Security news</description>
    <item>
      <title>Ransomware attack cripples regional hospital network</title>
      <link>https://security.example.com/ransomware-hospital</link>
      <description>&lt;p&gt;A ransomware breach has encrypted patient records across the region.&lt;/p&gt;</description>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Celebrity sports gala announced</title>
      <link>https://security.example.com/gala</link>
      <description>Tickets go on sale next week.</description>
      <pubDate>Mon, 06 Jan 2025 11:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

SAMPLE_LISTING = {
    "data": {
        "children": [
            {"data": {"title": "Subreddit rules", "stickied": True, "selftext": "Read them"}},
            {"data": {
                "title": "Massive flood warning issued for coastal cities",
                "selftext": "Authorities warn of flood risk along the coast.",
                "score": 2500,
                "num_comments": 340,
                "permalink": "/r/worldnews/comments/abc123/flood/",
                "created_utc": 1736157600,
            }},
        ]
    }
}


SAMPLE_GDELT = {
    "articles": [
        {
            "url": "https://news.example.org/border",
            "title": "Border conflict escalates as talks collapse",
            "seendate": "20250106T100000Z",
            "domain": "news.example.org",
        },
        {"url": "https://news.example.org/empty", "title": ""},
        "not an article",
    ]
}

SAMPLE_QUAKES = {
    "type": "FeatureCollection",
    "features": [
        {
            "properties": {
                "mag": 6.4,
                "place": "45 km SSW of Hualien City, Taiwan",
                "time": 1736157600000,
                "url": "https://earthquake.usgs.gov/earthquakes/eventpage/us7000test",
            },
            "geometry": {"type": "Point", "coordinates": [121.5, 23.6, 10.0]},
        },
        {
            "properties": {"mag": None, "place": "somewhere", "time": 1736157600000},
            "geometry": {"type": "Point", "coordinates": [0, 0, 5]},
        },
    ],
}

SAMPLE_PAGE = """<html><body>
<ul>
  <li class="list-item">
    <h3 class="list-item-title"><a href="/phpr/alerts/measles.html">Measles outbreak declared in three states</a></h3>
    <p class="list-item-description">Health officials report a disease outbreak linked to travel.</p>
    <span class="list-item-date">January 6, 2025</span>
  </li>
  <li class="list-item">
    <h3 class="list-item-title"><a href="https://partner.example.org/flu">Flu season update</a></h3>
    <span class="list-item-date">not a date</span>
  </li>
</ul>
</body></html>
"""

CDC_SOURCE = {
    "name": "CDC Emergency Preparedness",
    "url": "https://www.cdc.gov/phpr/whatsnew.htm",
    "type": "Health",
    "selectors": {
        "title": ".list-item-title a",
        "summary": ".list-item-description",
        "date": ".list-item-date",
        "link": ".list-item-title a",
    },
}


class TestThreatFormatter(unittest.TestCase):
    """Tests for the ThreatFormatter class."""

    def setUp(self):
        """Set up test fixtures."""
        self.formatter = ThreatFormatter(min_severity=25)

    def test_clean_title(self):
        self.assertEqual(self.formatter.clean_title("  <b>Breaking</b>   news  "), "Breaking news")
        self.assertEqual(self.formatter.clean_title(""), "Untitled")
        self.assertEqual(len(self.formatter.clean_title("x" * 500)), 200)

    def test_detect_category(self):
        self.assertEqual(self.formatter.detect_category("new ransomware strain"), "Cyber")
        self.assertEqual(self.formatter.detect_category("drought hits farms"), "Climate")
        self.assertEqual(self.formatter.detect_category("rogue ai agents"), "AI")
        self.assertEqual(self.formatter.detect_category("recession fears grow"), "Economic")
        self.assertEqual(self.formatter.detect_category("nothing to see", "Conflict"), "Conflict")
        self.assertIsNone(self.formatter.detect_category("nothing to see"))

    def test_calculate_severity(self):
        self.assertEqual(self.formatter.calculate_severity("quiet day"), 20)
        self.assertEqual(self.formatter.calculate_severity("nuclear war crisis"), 85)
        self.assertEqual(
            self.formatter.calculate_severity(
                "pandemic outbreak nuclear war invasion crisis emergency disaster"
            ),
            100,
        )

    def test_keywords_match_whole_words(self):
        self.assertEqual(self.formatter.calculate_severity("software award ceremony"), 20)
        self.assertEqual(self.formatter.calculate_severity("civil wars spread"), 45)
        self.assertIsNone(self.formatter.detect_category("the whole hackathon went well"))
        self.assertEqual(self.formatter.detect_category("who issues guidance"), "Health")
        self.assertEqual(self.formatter.detect_category("ai-generated robocalls"), "AI")
        self.assertIsNone(self.formatter.detect_category("said the chair"))
        self.assertTrue(self.formatter.is_relevant(
            {"title": "Gamers targeted by credential hack", "severity": 60, "type": "Cyber"}
        ))

    def test_engagement_severity(self):
        self.assertEqual(self.formatter.calculate_engagement_severity("quiet day", 5000, 500), 35)
        self.assertEqual(self.formatter.calculate_engagement_severity("quiet day", 10, 10), 20)

    def test_format_item(self):
        candidate = self.formatter.format_item(
            title="Hackers breach power utility",
            summary="<p>A cyber intrusion was detected.</p>",
            url="https://example.com/story",
            source_name="Example Wire",
            provenance="rss",
            published="2025-01-06T10:00:00Z",
            regions=["Europe"],
        )

        self.assertEqual(candidate["title"], "Hackers breach power utility")
        self.assertEqual(candidate["summary"], "A cyber intrusion was detected.")
        self.assertEqual(candidate["type"], "Cyber")
        self.assertEqual(candidate["sources"], ["Example Wire", "https://example.com/story"])
        self.assertEqual(candidate["regions"], ["Europe"])
        self.assertEqual(candidate["provenance"], "rss")
        self.assertEqual(candidate["timestamp"], "2025-01-06T10:00:00+00:00")

    def test_is_relevant(self):
        relevant = {"title": "Ransomware hits hospitals", "severity": 60, "type": "Cyber"}
        self.assertTrue(self.formatter.is_relevant(relevant))
        self.assertFalse(self.formatter.is_relevant(dict(relevant, title="Short")))
        self.assertFalse(self.formatter.is_relevant(dict(relevant, severity=10)))
        self.assertFalse(self.formatter.is_relevant(dict(relevant, type=None)))
        self.assertFalse(self.formatter.is_relevant(dict(relevant, title="Celebrity hack gossip")))


class FailingCollector(BaseCollector):
    """Collector whose source is always down."""

    async def fetch_items(self):
        raise RuntimeError("source offline")


class TestBaseCollector(unittest.TestCase):
    """Tests for the BaseCollector class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.collector = FailingCollector()

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def test_init(self):
        """Test initialization."""
        self.assertEqual(self.collector.name, "base")
        self.assertEqual(self.collector.source_url, "")
        self.assertEqual(self.collector.source_type, "")
        self.assertEqual(self.collector.request_timeout, 30)
        self.assertIsNone(self.collector.session)

    def test_abstract(self):
        with self.assertRaises(TypeError):
            BaseCollector()

    def test_collect_failure_returns_empty(self):
        self.assertEqual(self.loop.run_until_complete(self.collector.collect()), [])

    @patch('aiohttp.ClientSession')
    def test_ensure_session(self, mock_session):
        """Test ensure_session method."""
        self.loop.run_until_complete(self.collector.ensure_session())
        self.assertIsNotNone(self.collector.session)

        old_session = self.collector.session
        self.loop.run_until_complete(self.collector.ensure_session())
        self.assertEqual(self.collector.session, old_session)

    def test_close_session(self):
        """Test close_session method."""
        mock_session_instance = AsyncMock()
        mock_session_instance.closed = False
        self.collector.session = mock_session_instance

        self.loop.run_until_complete(self.collector.close_session())
        mock_session_instance.close.assert_called_once()
        self.assertIsNone(self.collector.session)


class TestRSSCollector(unittest.TestCase):
    """Tests for the RSSCollector class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.collector = RSSCollector(
            {
                "name": "Example Security",
                "url": "https://security.example.com/rss",
                "type": "Cyber",
                "regions": ["Global"],
            },
            formatter=ThreatFormatter(min_severity=25),
        )

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def test_init(self):
        """Test initialization."""
        self.assertEqual(self.collector.name, "Example Security")
        self.assertEqual(self.collector.source_url, "https://security.example.com/rss")
        self.assertEqual(self.collector.source_type, "rss")
        self.assertEqual(self.collector.threat_type, "Cyber")

    def test_collect(self):
        with patch.object(self.collector, "fetch_url", AsyncMock(return_value=SAMPLE_FEED)):
            candidates = self.loop.run_until_complete(self.collector.collect())

        self.assertEqual(len(candidates), 1)
        candidate = candidates[0]
        self.assertNotIn("id", candidate)
        self.assertEqual(candidate["title"], "Ransomware attack cripples regional hospital network")
        self.assertEqual(candidate["type"], "Cyber")
        self.assertEqual(candidate["severity"], 60)
        self.assertEqual(candidate["regions"], ["Global"])
        self.assertEqual(
            candidate["sources"],
            ["Example Security", "https://security.example.com/ransomware-hospital"],
        )
        self.assertEqual(candidate["provenance"], "rss")
        self.assertEqual(candidate["timestamp"], "2025-01-06T10:00:00+00:00")
        self.assertNotIn("<p>", candidate["summary"])

    def test_collect_unreachable_feed(self):
        with patch.object(self.collector, "fetch_url", AsyncMock(return_value=None)):
            candidates = self.loop.run_until_complete(self.collector.collect())
        self.assertEqual(candidates, [])


class TestRedditCollector(unittest.TestCase):
    """Tests for the RedditCollector class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.collector = RedditCollector(
            {"subreddit": "worldnews", "type": "Conflict"},
            formatter=ThreatFormatter(min_severity=25),
        )

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def test_init(self):
        """Test initialization."""
        self.assertEqual(self.collector.name, "Reddit r/worldnews")
        self.assertEqual(self.collector.source_type, "reddit")
        self.assertTrue(self.collector.source_url.startswith("https://www.reddit.com/r/worldnews/hot.json"))

    def test_collect(self):
        with patch.object(self.collector, "fetch_json", AsyncMock(return_value=SAMPLE_LISTING)):
            candidates = self.loop.run_until_complete(self.collector.collect())

        self.assertEqual(len(candidates), 1)
        candidate = candidates[0]
        self.assertEqual(candidate["title"], "Massive flood warning issued for coastal cities")
        self.assertEqual(candidate["type"], "Climate")
        self.assertEqual(candidate["severity"], 55)
        self.assertEqual(
            candidate["sources"],
            ["Reddit r/worldnews", "https://reddit.com/r/worldnews/comments/abc123/flood/"],
        )
        self.assertEqual(candidate["provenance"], "reddit")
        self.assertEqual(candidate["timestamp"], "2025-01-06T10:00:00+00:00")


class TestAPICollector(unittest.TestCase):
    """Tests for the APICollector class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.formatter = ThreatFormatter(min_severity=25)

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def collect(self, collector, document):
        fetch = AsyncMock(return_value=document)
        with patch.object(collector, "fetch_json", fetch):
            candidates = self.loop.run_until_complete(collector.collect())
        return candidates, fetch

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            APICollector({"name": "Mystery", "url": "https://api.example.com", "format": "xml"})

    def test_gdelt(self):
        collector = APICollector(API_SOURCES[0], formatter=self.formatter)
        self.assertEqual(collector.source_type, "api")

        candidates, fetch = self.collect(collector, SAMPLE_GDELT)

        fetch.assert_awaited_once()
        args, kwargs = fetch.call_args
        self.assertEqual(args[0], "https://api.gdeltproject.org/api/v2/doc/doc")
        self.assertEqual(kwargs["params"]["format"], "json")
        self.assertEqual(kwargs["params"]["maxrecords"], "20")

        self.assertEqual(len(candidates), 1)
        candidate = candidates[0]
        self.assertEqual(candidate["title"], "Border conflict escalates as talks collapse")
        self.assertEqual(candidate["type"], "Conflict")
        self.assertEqual(candidate["severity"], 60)
        self.assertEqual(candidate["sources"], ["news.example.org", "https://news.example.org/border"])
        self.assertEqual(candidate["timestamp"], "2025-01-06T10:00:00+00:00")
        self.assertEqual(candidate["provenance"], "api")

    def test_usgs(self):
        collector = APICollector(API_SOURCES[1], formatter=self.formatter)

        candidates, fetch = self.collect(collector, SAMPLE_QUAKES)

        _, kwargs = fetch.call_args
        self.assertIsNone(kwargs["params"])
        # The feature without a magnitude is skipped
        self.assertEqual(len(candidates), 1)
        candidate = candidates[0]
        self.assertEqual(candidate["title"], "Magnitude 6.4 Earthquake - 45 km SSW of Hualien City, Taiwan")
        self.assertEqual(
            candidate["summary"],
            "6.4 magnitude earthquake occurred 45 km SSW of Hualien City, Taiwan. Depth: 10km",
        )
        self.assertEqual(candidate["type"], "Climate")
        self.assertEqual(candidate["severity"], 75)
        self.assertEqual(candidate["timestamp"], "2025-01-06T10:00:00+00:00")

    def test_earthquake_severity(self):
        self.assertEqual(ThreatFormatter.earthquake_severity(7.8), 90)
        self.assertEqual(ThreatFormatter.earthquake_severity(6.0), 75)
        self.assertEqual(ThreatFormatter.earthquake_severity(5.5), 60)
        self.assertEqual(ThreatFormatter.earthquake_severity(4.1), 45)
        self.assertEqual(ThreatFormatter.earthquake_severity(2.5), 30)

    def test_unusable_response(self):
        collector = APICollector(API_SOURCES[1], formatter=self.formatter)
        for document in (None, ["not", "a", "feed"], {"features": None}):
            candidates, _ = self.collect(collector, document)
            self.assertEqual(candidates, [])


class TestHTMLCollector(unittest.TestCase):
    """Tests for the HTMLCollector class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.collector = HTMLCollector(CDC_SOURCE, formatter=ThreatFormatter(min_severity=25))

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def test_extract_page_items(self):
        with patch.object(self.collector, "fetch_url", AsyncMock(return_value=SAMPLE_PAGE)):
            entries = self.loop.run_until_complete(self.collector.extract_page_items(
                self.collector.source_url, self.collector.selectors, 10
            ))

        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0]["url"], "https://www.cdc.gov/phpr/alerts/measles.html")
        self.assertEqual(
            entries[0]["summary"], "Health officials report a disease outbreak linked to travel."
        )
        self.assertEqual(entries[0]["published"], "January 6, 2025")
        self.assertEqual(entries[1]["url"], "https://partner.example.org/flu")
        self.assertEqual(entries[1]["summary"], "")

    def test_collect(self):
        with patch.object(self.collector, "fetch_url", AsyncMock(return_value=SAMPLE_PAGE)):
            candidates = self.loop.run_until_complete(self.collector.collect())

        # The flu entry scores below the relevance threshold
        self.assertEqual(len(candidates), 1)
        candidate = candidates[0]
        self.assertEqual(candidate["title"], "Measles outbreak declared in three states")
        self.assertEqual(candidate["type"], "Health")
        self.assertEqual(candidate["severity"], 45)
        self.assertEqual(candidate["provenance"], "html")
        self.assertEqual(candidate["timestamp"], "2025-01-06T00:00:00+00:00")
        self.assertEqual(
            candidate["sources"],
            ["CDC Emergency Preparedness", "https://www.cdc.gov/phpr/alerts/measles.html"],
        )

    def test_unreachable_page(self):
        with patch.object(self.collector, "fetch_url", AsyncMock(return_value=None)):
            candidates = self.loop.run_until_complete(self.collector.collect())
        self.assertEqual(candidates, [])


class StaticCollector:
    """Stand-in collector returning a fixed list of candidates."""

    def __init__(self, name, candidates):
        self.name = name
        self.collect = AsyncMock(return_value=candidates)


class TestCollectionManager(unittest.TestCase):
    """Tests for the CollectionManager class."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        self.forwarder = MagicMock()
        self.forwarder.session = None
        self.forwarder.forward_batch = AsyncMock(side_effect=lambda items: [
            ForwardOutcome(title=item["title"], success=item["title"] != "rejected", attempts=1)
            for item in items
        ])

        self.collectors = [
            StaticCollector("Source A", [{"title": "first"}, {"title": "rejected"}]),
            StaticCollector("Source B", []),
            StaticCollector("Source C", [{"title": "second"}]),
        ]
        self.manager = CollectionManager(collectors=self.collectors, forwarder=self.forwarder)
        self.manager.session = MagicMock()
        self.manager.source_delay = 0

    def tearDown(self):
        """Tear down test fixtures."""
        self.loop.close()

    def test_run_collection(self):
        result = self.loop.run_until_complete(self.manager.run_collection())

        self.assertEqual(result["status"], "completed")
        self.assertEqual(result["sources_processed"], 3)
        self.assertEqual(result["signals_collected"], 3)
        self.assertEqual(result["signals_forwarded"], 2)
        self.assertEqual(result["errors"], 1)
        # Empty sources are not forwarded
        self.assertEqual(self.forwarder.forward_batch.await_count, 2)

        self.assertEqual(self.manager.source_stats["Source A"]["total_forwarded"], 1)
        self.assertEqual(self.manager.source_stats["Source A"]["total_failed"], 1)
        self.assertEqual(self.manager.source_stats["Source B"]["total_collected"], 0)
        self.assertIsNotNone(self.manager.last_collection_time)
        self.assertFalse(self.manager.running)

    def test_run_single_source(self):
        result = self.loop.run_until_complete(self.manager.run_collection("Source C"))

        self.assertEqual(result["sources_processed"], 1)
        self.collectors[0].collect.assert_not_awaited()
        self.collectors[2].collect.assert_awaited_once()

    def test_already_running(self):
        self.manager.running = True
        result = self.loop.run_until_complete(self.manager.run_collection())
        self.assertEqual(result, {"status": "already_running"})

    def test_default_collectors(self):
        collectors = CollectionManager(forwarder=self.forwarder).default_collectors()

        self.assertEqual(
            len(collectors),
            len(RSS_SOURCES) + len(REDDIT_SOURCES) + len(API_SOURCES) + len(HTML_SOURCES),
        )
        kinds = {collector.source_type for collector in collectors}
        self.assertEqual(kinds, {"rss", "reddit", "api", "html"})
        self.assertEqual(
            sorted(c.format for c in collectors if isinstance(c, APICollector)), ["gdelt", "usgs"]
        )
        self.assertEqual(sum(1 for c in collectors if isinstance(c, HTMLCollector)), len(HTML_SOURCES))

    def test_forwarder_shares_session(self):
        self.loop.run_until_complete(self.manager.initialize())
        self.assertIs(self.forwarder.session, self.manager.session)


if __name__ == "__main__":
    unittest.main()
