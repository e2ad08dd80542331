"""Client-side view models: search results, request state, crawl stats and settings tabs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

# Bars narrower than this percentage would be unreadable.
_MIN_BAR_PERCENT = 5.0


class RequestState(Enum):
    """Progress of a request made to the backend."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ERROR = "error"

    def is_done(self) -> bool:
        """True once the request has finished, successfully or not."""
        return self in (RequestState.FINISHED, RequestState.ERROR)


class ResultListType(Enum):
    """What kind of search produced a result."""

    DOC_SEARCH = "doc_search"
    LENS_SEARCH = "lens_search"


@dataclass(frozen=True)
class ResultListData:
    """One row of the search results list."""

    id: str
    domain: Optional[str]
    title: str
    description: str
    url: Optional[str]
    score: float
    result_type: ResultListType


def lens_result(title: str, description: str) -> ResultListData:
    """A result row for a lens; lenses are identified by their title."""
    return ResultListData(
        id=title,
        domain=None,
        title=title,
        description=description,
        url=None,
        score=1.0,
        result_type=ResultListType.LENS_SEARCH,
    )


def doc_result(
    doc_id: str, domain: str, title: str, description: str, url: str, score: float
) -> ResultListData:
    """A result row for an indexed document."""
    return ResultListData(
        id=doc_id,
        domain=domain,
        title=title,
        description=description,
        url=url,
        score=float(score),
        result_type=ResultListType.DOC_SEARCH,
    )


@dataclass(frozen=True)
class QueueStatus:
    """Crawl progress of one domain."""

    num_queued: int = 0
    num_processing: int = 0
    num_completed: int = 0
    num_indexed: int = 0

    def total(self) -> int:
        """Number of URLs of the domain in every state."""
        return self.num_queued + self.num_processing + self.num_completed + self.num_indexed


def sort_crawl_stats(
    by_domain: Iterable[tuple[str, QueueStatus]],
) -> list[tuple[str, QueueStatus]]:
    """Domains ordered by number of completed crawls, most first; ties keep their order."""
    return sorted(by_domain, key=lambda item: item[1].num_completed, reverse=True)


def stats_bar_percent(count: int, total: float) -> float:
    """Width of a stats bar as a percentage of the whole, never below the minimum."""
    if total == 0:
        if count == 0:
            return _MIN_BAR_PERCENT
        return float("inf")
    return max(count / total * 100.0, _MIN_BAR_PERCENT)


def format_count(count: int) -> str:
    """A count with comma thousands separators."""
    return f"{count:,}"


class Tab(str, Enum):
    """Tabs of the settings page, named as they appear in routes."""

    LENS_MANAGER = "lenses"
    PLUGINS_MANAGER = "plugins"
    STATS = "stats"
    USER_SETTINGS = "user"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "Tab":
        """The tab named ``value``; raises ValueError for an unknown name."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown settings tab: {value!r}") from None


_NAVIGATION = {
    "/settings/lenses": Tab.LENS_MANAGER,
    "/settings/plugins": Tab.PLUGINS_MANAGER,
    "/settings/stats": Tab.STATS,
    "/settings/user": Tab.USER_SETTINGS,
}


def tab_for_navigation(path: str) -> Tab:
    """The tab to show for a navigation request; unknown paths show the stats."""
    return _NAVIGATION.get(path, Tab.STATS)