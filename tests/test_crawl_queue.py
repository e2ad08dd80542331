import re
import sqlite3

import pytest

from searchlens import crawl_queue, indexed_document
from searchlens.crawl_queue import CrawlStatus, CrawlType, EnqueueSettings
from searchlens.db import setup_test_db
from searchlens.rules import Lens, Limit, LimitURLDepth, SkipURL, UserSettings


@pytest.fixture
def db():
    conn = setup_test_db()
    yield conn
    conn.close()


def _matches(patterns, url):
    return any(re.search(p, url) is not None for p in patterns)


def test_insert(db):
    url = "oldschool.runescape.wiki/"
    crawl_queue.insert(db, "oldschool.runescape.wiki", url)
    found = crawl_queue.find_by_url(db, url)
    assert found is not None
    assert found.url == url
    assert found.status is CrawlStatus.QUEUED
    assert found.crawl_type is CrawlType.NORMAL


def test_insert_duplicate_raises(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    with pytest.raises(sqlite3.IntegrityError):
        crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    assert crawl_queue.num_queued(db, CrawlStatus.QUEUED) == 1


def test_priority_sql():
    settings = UserSettings()
    p_domains = crawl_queue.gen_priority_values(["en.wikipedia.org"], False)
    p_prefixes = crawl_queue.gen_priority_values(["https://roll20.net/compendium/dnd5e"], True)
    sql = crawl_queue.gen_priority_sql(p_domains, p_prefixes, settings)
    assert str(sql) == (
        "WITH\n                p_domain(domain, priority) AS (values (\"en.wikipedia.org\", 1)),\n                p_prefix(prefix, priority) AS (values (\"https://roll20.net/compendium/dnd5e%\", 1)), indexed AS (\n    SELECT\n        domain,\n        count(*) as count\n    FROM indexed_document\n    GROUP BY domain\n),\ninflight AS (\n    SELECT\n        domain,\n        count(*) as count\n    FROM crawl_queue\n    WHERE status = \"Processing\"\n    GROUP BY domain\n)\nSELECT\n    cq.*\nFROM crawl_queue cq\nLEFT JOIN p_domain ON cq.domain like p_domain.domain\nLEFT JOIN p_prefix ON cq.url like p_prefix.prefix\nLEFT JOIN indexed ON indexed.domain = cq.domain\nLEFT JOIN inflight ON inflight.domain = cq.domain\nWHERE\n    COALESCE(indexed.count, 0) < 500000 AND\n    COALESCE(inflight.count, 0) < 2 AND\n    status = \"Queued\"\nORDER BY\n    p_prefix.priority DESC,\n    p_domain.priority DESC,\n    cq.updated_at ASC"
    )


def test_priority_values_empty_and_wildcards():
    assert crawl_queue.gen_priority_values([], False) == '("", 0)'
    assert crawl_queue.gen_priority_values(["*.wiki.com", "b.com"], False) == (
        '("%.wiki.com", 1),("b.com", 1)'
    )


def test_enqueue(db):
    url = ["https://oldschool.runescape.wiki/"]
    lens = Lens(domains=["oldschool.runescape.wiki"])
    crawl_queue.enqueue_all(db, url, [lens], UserSettings(), EnqueueSettings())
    found = crawl_queue.find_by_url(db, url[0])
    assert found is not None
    assert found.domain == "oldschool.runescape.wiki"
    assert len(crawl_queue.find_by_status(db, CrawlStatus.QUEUED)) == 1


def test_enqueue_with_recrawl(db):
    url = "https://oldschool.runescape.wiki/"
    crawl_queue.insert(
        db, "oldschool.runescape.wiki", url, CrawlStatus.COMPLETED, CrawlType.BOOTSTRAP
    )
    assert len(crawl_queue.find_by_status(db, CrawlStatus.COMPLETED)) == 1

    overrides = EnqueueSettings(force_allow=True, is_recrawl=True)
    crawl_queue.enqueue_all(db, [url], [], UserSettings(), overrides)

    assert len(crawl_queue.find_by_status(db, CrawlStatus.QUEUED)) == 1


def test_enqueue_without_recrawl_keeps_status(db):
    url = "https://oldschool.runescape.wiki/"
    crawl_queue.insert(db, "oldschool.runescape.wiki", url, CrawlStatus.COMPLETED)
    crawl_queue.enqueue_all(db, [url], [], UserSettings(), EnqueueSettings(force_allow=True))
    assert crawl_queue.find_by_url(db, url).status is CrawlStatus.COMPLETED


def test_enqueue_with_rules(db):
    url = ["https://oldschool.runescape.wiki/w/Worn_Equipment?veaction=edit"]
    lens = Lens(
        domains=["oldschool.runescape.wiki"],
        rules=[SkipURL("https://oldschool.runescape.wiki/*veaction=*")],
    )
    crawl_queue.enqueue_all(db, url, [lens], UserSettings(), EnqueueSettings())
    assert crawl_queue.find_by_url(db, url[0]) is None


def test_enqueue_skips_indexed(db):
    url = "https://oldschool.runescape.wiki/"
    indexed_document.insert(db, "oldschool.runescape.wiki", url, "docid")
    lens = Lens(domains=["oldschool.runescape.wiki"])
    crawl_queue.enqueue_all(db, [url], [lens], UserSettings(), EnqueueSettings())
    assert crawl_queue.find_by_url(db, url) is None


def test_dequeue(db):
    settings = UserSettings()
    url = ["https://oldschool.runescape.wiki/"]
    lens = Lens(domains=["oldschool.runescape.wiki"])
    crawl_queue.enqueue_all(db, url, [lens], settings, EnqueueSettings())

    task = crawl_queue.dequeue(db, settings, [], [])
    assert task is not None
    assert task.url == url[0]
    assert task.status is CrawlStatus.PROCESSING


def test_dequeue_with_limit(db):
    settings = UserSettings(domain_crawl_limit=Limit.finite(2))
    url = ["https://oldschool.runescape.wiki/"]
    lens = Lens(domains=["oldschool.runescape.wiki"])
    crawl_queue.enqueue_all(db, url, [lens], settings, EnqueueSettings())
    indexed_document.insert(db, "oldschool.runescape.wiki", url[0], "docid")

    task = crawl_queue.dequeue(db, settings, [], [])
    assert task is not None
    assert task.url == url[0]

    settings = UserSettings(domain_crawl_limit=Limit.finite(1))
    assert crawl_queue.dequeue(db, settings, [], []) is None


def test_dequeue_prefers_bootstrap(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    crawl_queue.insert(
        db, "b.example.com", "https://b.example.com/", crawl_type=CrawlType.BOOTSTRAP
    )
    task = crawl_queue.dequeue(db, UserSettings(), [], [])
    assert task.url == "https://b.example.com/"


def test_dequeue_prefers_prioritized_domain(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    crawl_queue.insert(db, "b.example.com", "https://b.example.com/")
    task = crawl_queue.dequeue(db, UserSettings(), ["b.example.com"], [])
    assert task.url == "https://b.example.com/"


def test_dequeue_respects_inflight_limit(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    settings = UserSettings(inflight_crawl_limit=Limit.finite(0))
    assert crawl_queue.dequeue(db, settings, [], []) is None
    assert crawl_queue.num_queued(db, CrawlStatus.QUEUED) == 1


def test_remove_by_rule(db):
    lens = Lens(domains=["en.wikipedia.com"])
    urls = [
        "https://en.wikipedia.com/",
        "https://en.wikipedia.org/wiki/Rust_(programming_language)",
        "https://en.wikipedia.com/wiki/Mozilla",
        "https://en.wikipedia.com/wiki/Cheese?id=13314&action=edit",
        "https://en.wikipedia.com/wiki/Testing?action=edit",
    ]
    crawl_queue.enqueue_all(db, urls, [lens], UserSettings(), EnqueueSettings())
    removed = crawl_queue.remove_by_rule(db, "https://en.wikipedia.com/%action=%")
    assert removed == 2
    assert crawl_queue.num_queued(db, CrawlStatus.QUEUED) == 2


def test_create_ruleset():
    lens = Lens(
        domains=["walkingdead.fandom.com"],
        rules=[SkipURL("https://walkingdead.fandom.com/wiki/*/Gallery")],
    )
    rules = crawl_queue.create_ruleset_from_lens(lens)
    valid = "https://walkingdead.fandom.com/wiki/18_Miles_Out"
    invalid = "https://walkingdead.fandom.com/wiki/Aaron_(Comic_Series)/Gallery"

    assert [_matches(rules.allow_list, url) for url in (valid, invalid)] == [True, True]
    assert [_matches(rules.skip_list, url) for url in (valid, invalid)] == [False, True]


def test_create_ruleset_with_limits():
    lens = Lens(
        urls=["https://www.imdb.com/title"],
        rules=[
            LimitURLDepth("https://www.imdb.com/title", 1),
            SkipURL("https://www.imdb.com/title/*_*"),
        ],
    )
    rules = crawl_queue.create_ruleset_from_lens(lens)
    valid = [
        "https://www.imdb.com/title/tt0094625",
        "https://www.imdb.com/title/tt0094625/",
        "https://www.imdb.com/title",
        "https://www.imdb.com/title/",
    ]
    invalid = [
        "https://www.imdb.com",
        "https://www.imdb.com/blah/blah",
        "https://www.imdb.com/title/tt0094625/reviews",
        "https://www.imdb.com/title/fake_title",
    ]
    for url in valid:
        assert _matches(rules.allow_list, url) is True
        assert _matches(rules.restrict_list, url) is True
        assert _matches(rules.skip_list, url) is False
    for url in invalid:
        allowed = _matches(rules.allow_list, url)
        blocked = not _matches(rules.restrict_list, url) or _matches(rules.skip_list, url)
        assert (not allowed or blocked) is True


def test_filter_urls():
    lens = Lens(domains=["bahai-library.com", "bahaiworld.bahai.org"])
    to_enqueue = [
        "https://bahai-library.com//shoghi-effendi_goals_crusade",
        "https://www.stumbleupon.com/submit?url=https://bahaiworld.bahai.org/library/western-liberal-democracy-as-new-world-order/&title=Western%20Liberal%20Democracy%20as%20New%20World%20Order?",
        "https://www.reddit.com/submit?title=The%20Epic%20of%20Humanity&url=https://bahaiworld.bahai.org/library/the-epic-of-humanity",
    ]
    filtered = crawl_queue.filter_urls([lens], UserSettings(), EnqueueSettings(), to_enqueue)
    assert filtered == ["https://bahai-library.com//shoghi-effendi_goals_crusade"]


def test_filter_urls_normalizes_and_rejects():
    urls = [
        "https://example.com/page#section",
        "ftp://example.com/file",
        "not a url",
        "HTTPS://EXAMPLE.COM",
    ]
    filtered = crawl_queue.filter_urls(
        [], UserSettings(), EnqueueSettings(force_allow=True), urls
    )
    assert filtered == ["https://example.com/page", "https://example.com/"]


def test_filter_urls_block_list_and_external():
    settings = UserSettings(block_list=["blocked.example.com"], crawl_external_links=True)
    urls = ["https://blocked.example.com/a", "https://other.example.com/b"]
    filtered = crawl_queue.filter_urls([], settings, EnqueueSettings(), urls)
    assert filtered == ["https://other.example.com/b"]


def test_filter_urls_without_lens_rejects():
    filtered = crawl_queue.filter_urls(
        [], UserSettings(), EnqueueSettings(), ["https://example.com/"]
    )
    assert filtered == []


def test_mark_done_retries_then_fails(db):
    task = crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    for expected in range(1, 7):
        crawl_queue.mark_done(db, task.id, CrawlStatus.FAILED)
        current = crawl_queue.find_by_url(db, task.url)
        assert current.status is CrawlStatus.QUEUED
        assert current.num_retries == expected
    crawl_queue.mark_done(db, task.id, CrawlStatus.FAILED)
    current = crawl_queue.find_by_url(db, task.url)
    assert current.status is CrawlStatus.FAILED
    assert current.num_retries == 6


def test_mark_done_completed(db):
    task = crawl_queue.insert(db, "a.example.com", "https://a.example.com/")
    crawl_queue.mark_done(db, task.id, CrawlStatus.COMPLETED)
    assert crawl_queue.find_by_url(db, task.url).status is CrawlStatus.COMPLETED


def test_reset_processing(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/", CrawlStatus.PROCESSING)
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/x", CrawlStatus.COMPLETED)
    crawl_queue.reset_processing(db)
    assert crawl_queue.num_queued(db, CrawlStatus.PROCESSING) == 0
    assert crawl_queue.num_queued(db, CrawlStatus.QUEUED) == 1
    assert crawl_queue.num_queued(db, CrawlStatus.COMPLETED) == 1


def test_queue_stats(db):
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/1")
    crawl_queue.insert(db, "a.example.com", "https://a.example.com/2")
    crawl_queue.insert(db, "b.example.com", "https://b.example.com/", CrawlStatus.COMPLETED)
    stats = {(s.domain, s.status): s.count for s in crawl_queue.queue_stats(db)}
    assert stats == {("a.example.com", "Queued"): 2, ("b.example.com", "Completed"): 1}


def test_stored_enum_values_round_trip(db):
    task = crawl_queue.insert(
        db,
        "a.example.com",
        "https://a.example.com/",
        CrawlStatus.PROCESSING,
        CrawlType.API,
    )
    found = crawl_queue.find_by_url(db, task.url)
    assert found.crawl_type is CrawlType.API
    assert str(found.crawl_type) == "Api"
    assert found.crawl_type.value == "API"
    assert str(found.status) == "Processing"