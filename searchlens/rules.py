"""Crawl limits, user settings and lens rules expressed as regular expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Union

# Value reported by an unlimited limit.
_UNLIMITED_VALUE = 2**32 - 1


@dataclass(frozen=True)
class Limit:
    """A numeric limit that may be unbounded."""

    limit: Optional[int] = None

    @classmethod
    def finite(cls, value: int) -> "Limit":
        """A limit of ``value``."""
        if value < 0:
            raise ValueError(f"limit must not be negative: {value}")
        return cls(value)

    @classmethod
    def unlimited(cls) -> "Limit":
        """A limit that is never reached."""
        return cls(None)

    @property
    def is_finite(self) -> bool:
        return self.limit is not None

    def value(self) -> int:
        """The limit as a number; an unlimited limit reports the largest value."""
        return _UNLIMITED_VALUE if self.limit is None else self.limit


@dataclass
class UserSettings:
    """Crawl settings chosen by the user."""

    domain_crawl_limit: Limit = field(default_factory=lambda: Limit.finite(500_000))
    inflight_crawl_limit: Limit = field(default_factory=lambda: Limit.finite(10))
    inflight_domain_limit: Limit = field(default_factory=lambda: Limit.finite(2))
    block_list: list[str] = field(default_factory=list)
    crawl_external_links: bool = False


def _wildcard(text: str, wildcard: str = ".*") -> str:
    """Escape ``text`` for a regex, turning each ``*`` into ``wildcard``."""
    return re.escape(text).replace(r"\*", wildcard)


def regex_for_domain(domain: str) -> str:
    """A regex matching http(s) URLs on ``domain``; ``*`` matches part of a host."""
    return rf"^(http://|https://){_wildcard(domain, '[^/]*')}(/.*)?$"


def regex_for_prefix(prefix: str) -> str:
    """A regex matching URLs that start with ``prefix``.

    A trailing ``$`` asks for the exact URL instead of a prefix.
    """
    if prefix.endswith("$"):
        return f"^{_wildcard(prefix[:-1])}$"
    return f"^{_wildcard(prefix)}.*"


@dataclass(frozen=True)
class SkipURL:
    """Skip URLs matching ``pattern``, where ``*`` matches anything."""

    pattern: str

    def to_regex(self) -> str:
        return f"^{_wildcard(self.pattern)}$"


@dataclass(frozen=True)
class LimitURLDepth:
    """Only allow URLs under ``prefix`` at most ``max_depth`` path segments deeper."""

    prefix: str
    max_depth: int

    def to_regex(self) -> str:
        base = _wildcard(self.prefix.rstrip("/"), "[^/]*")
        return rf"^{base}(/[^/]+){{0,{self.max_depth}}}/?$"


LensRule = Union[SkipURL, LimitURLDepth]


@dataclass
class Lens:
    """A curated set of domains, URL prefixes and rules to crawl."""

    name: str = ""
    author: str = ""
    description: Optional[str] = None
    version: str = "1"
    is_enabled: bool = True
    domains: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    rules: list[LensRule] = field(default_factory=list)