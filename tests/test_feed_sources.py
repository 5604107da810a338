import unittest

from examdesk.ingestion.feed_sources import (
    CATEGORY_FEEDS,
    DEFAULT_REGISTRY,
    PIB_ALL,
    RBI_PRESS,
    SECTION_NAMES,
    CategoryFeeds,
    FeedRegistry,
    FeedSource,
)


class TestFeedRegistry(unittest.TestCase):
    def test_lookup_known_category(self):
        feeds, keywords = DEFAULT_REGISTRY.lookup("banking-finance", "rbi-news")
        self.assertIn(RBI_PRESS, feeds)
        self.assertIn("repo rate", keywords)

    def test_unknown_category_is_empty(self):
        self.assertEqual(DEFAULT_REGISTRY.lookup("national", "does-not-exist"), ([], []))
        self.assertIsNone(DEFAULT_REGISTRY.get("nowhere", "nothing"))

    def test_every_category_has_a_feed_and_known_section(self):
        for entry in CATEGORY_FEEDS:
            self.assertTrue(entry.feeds, entry.category)
            self.assertIn(entry.section, SECTION_NAMES)

    def test_unique_feeds_are_deduplicated(self):
        feeds = DEFAULT_REGISTRY.all_unique_feeds()
        urls = [f.url for f in feeds]
        self.assertEqual(len(urls), len(set(urls)))
        self.assertEqual(urls[0], PIB_ALL.url)

    def test_shared_feed_serves_many_categories(self):
        users = DEFAULT_REGISTRY.categories_using_feed(PIB_ALL.url)
        self.assertGreater(len(users), 10)

    def test_sections_listing(self):
        reg = FeedRegistry([
            CategoryFeeds("national", "a", "A", (PIB_ALL,)),
            CategoryFeeds("national", "b", "B", (PIB_ALL,)),
            CategoryFeeds("custom", "c", "C", (FeedSource("https://c.example/rss", "C"),)),
        ])
        sections = reg.sections()
        self.assertEqual([s["id"] for s in sections], ["national", "custom"])
        self.assertEqual(sections[0]["name"], "NATIONAL AFFAIRS")
        self.assertEqual([c["id"] for c in sections[0]["categories"]], ["a", "b"])
        self.assertEqual(sections[1]["name"], "CUSTOM")


if __name__ == "__main__":
    unittest.main()
