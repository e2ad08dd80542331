import re

import pytest

from searchlens.rules import (
    Lens,
    Limit,
    LimitURLDepth,
    SkipURL,
    UserSettings,
    regex_for_domain,
    regex_for_prefix,
)


def _match_all(regex, urls):
    return [re.search(regex, url) is not None for url in urls]


def test_finite_limit_value():
    limit = Limit.finite(42)
    assert limit.is_finite
    assert limit.value() == 42


def test_unlimited_exceeds_any_finite():
    unlimited = Limit.unlimited()
    assert not unlimited.is_finite
    assert unlimited.value() > Limit.finite(500_000).value()


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        Limit.finite(-1)


def test_default_user_settings_limits():
    settings = UserSettings()
    assert settings.domain_crawl_limit.value() == 500000
    assert settings.inflight_domain_limit.value() == 2
    assert settings.block_list == []
    assert settings.crawl_external_links is False


def test_domain_regex_matches_urls_on_domain():
    regex = regex_for_domain("oldschool.runescape.wiki")
    urls = [
        "https://oldschool.runescape.wiki/",
        "http://oldschool.runescape.wiki/w/Worn_Equipment",
        "https://en.wikipedia.org/",
        "https://oldschool.runescape.wiki.example.com/",
    ]
    assert _match_all(regex, urls) == [True, True, False, False]


def test_domain_regex_wildcard():
    regex = regex_for_domain("*.fandom.com")
    urls = [
        "https://walkingdead.fandom.com/wiki/18_Miles_Out",
        "https://fandom.example.com/",
    ]
    assert _match_all(regex, urls) == [True, False]


def test_prefix_regex():
    regex = regex_for_prefix("https://roll20.net/compendium/dnd5e")
    urls = [
        "https://roll20.net/compendium/dnd5e/Monsters",
        "https://roll20.net/other",
    ]
    assert _match_all(regex, urls) == [True, False]


def test_prefix_regex_exact():
    regex = regex_for_prefix("https://roll20.net/compendium$")
    urls = [
        "https://roll20.net/compendium",
        "https://roll20.net/compendium/dnd5e",
    ]
    assert _match_all(regex, urls) == [True, False]


def test_skip_url_rule():
    regex = SkipURL("https://oldschool.runescape.wiki/*veaction=*").to_regex()
    urls = [
        "https://oldschool.runescape.wiki/w/Worn_Equipment?veaction=edit",
        "https://oldschool.runescape.wiki/w/Worn_Equipment",
    ]
    assert _match_all(regex, urls) == [True, False]


def test_limit_url_depth_rule():
    regex = LimitURLDepth("https://www.imdb.com/title", 1).to_regex()
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
    ]
    assert _match_all(regex, valid) == [True] * len(valid)
    assert _match_all(regex, invalid) == [False] * len(invalid)


def test_lens_defaults_are_independent():
    first = Lens(domains=["example.com"])
    second = Lens()
    first.rules.append(SkipURL("https://example.com/*"))
    assert second.rules == []
    assert second.domains == []
    assert first.domains == ["example.com"]