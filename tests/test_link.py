import pytest

from searchlens import link
from searchlens.db import setup_test_db


@pytest.fixture
def conn():
    return setup_test_db()


def test_save_link_round_trip(conn):
    src = "https://en.wikipedia.org/wiki/Rust_(programming_language)"
    dst = "https://oldschool.runescape.wiki/w/Home"
    saved = link.save_link(conn, src, dst)

    assert saved.src_domain == "en.wikipedia.org"
    assert saved.dst_domain == "oldschool.runescape.wiki"
    assert link.all_links(conn) == [saved]


def test_links_keep_order(conn):
    first = link.save_link(conn, "https://a.example.com/", "https://b.example.com/")
    second = link.save_link(conn, "https://b.example.com/", "https://a.example.com/")
    assert link.all_links(conn) == [first, second]


def test_save_link_requires_host(conn):
    with pytest.raises(ValueError):
        link.save_link(conn, "not a url", "https://example.com/")
    assert link.all_links(conn) == []