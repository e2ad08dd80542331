"""The queue of URLs waiting to be crawled."""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from searchlens import indexed_document
from searchlens.rules import (
    Lens,
    LimitURLDepth,
    SkipURL,
    UserSettings,
    regex_for_domain,
    regex_for_prefix,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
BATCH_SIZE = 5_000

_ALLOWED_SCHEMES = ("http", "https", "file")

_DEQUEUE_SQL = """indexed AS (
    SELECT
        domain,
        count(*) as count
    FROM indexed_document
    GROUP BY domain
),
inflight AS (
    SELECT
        domain,
        count(*) as count
    FROM crawl_queue
    WHERE status = "Processing"
    GROUP BY domain
)
SELECT
    cq.*
FROM crawl_queue cq
LEFT JOIN p_domain ON cq.domain like p_domain.domain
LEFT JOIN p_prefix ON cq.url like p_prefix.prefix
LEFT JOIN indexed ON indexed.domain = cq.domain
LEFT JOIN inflight ON inflight.domain = cq.domain
WHERE
    COALESCE(indexed.count, 0) < ? AND
    COALESCE(inflight.count, 0) < ? AND
    status = "Queued"
ORDER BY
    p_prefix.priority DESC,
    p_domain.priority DESC,
    cq.updated_at ASC"""


class CrawlStatus(str, Enum):
    """State of a crawl task."""

    QUEUED = "Queued"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"

    def __str__(self) -> str:
        return self.value


class CrawlType(str, Enum):
    """Why a URL was queued."""

    API = "API"
    BOOTSTRAP = "Bootstrap"
    NORMAL = "Normal"

    def __str__(self) -> str:
        return {"API": "Api"}.get(self.value, self.value)


@dataclass(frozen=True)
class CrawlTask:
    """A URL in the crawl queue."""

    id: int
    domain: str
    url: str
    status: CrawlStatus
    num_retries: int
    crawl_type: CrawlType
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class QueueCountByStatus:
    """Number of tasks of a domain in one status."""

    count: int
    domain: str
    status: str


@dataclass
class EnqueueSettings:
    """Overrides applied when enqueueing URLs."""

    crawl_type: CrawlType = CrawlType.NORMAL
    force_allow: bool = False
    is_recrawl: bool = False


@dataclass
class LensRuleSets:
    """Regex rules derived from lenses."""

    # Allow if any URL matches.
    allow_list: list[str] = field(default_factory=list)
    # Skip if any URL matches.
    skip_list: list[str] = field(default_factory=list)
    # Skip if the URL matches none of these.
    restrict_list: list[str] = field(default_factory=list)


class _Statement(NamedTuple):
    """SQL text with positional parameters."""

    sql: str
    values: tuple

    def __str__(self) -> str:
        values = iter(self.values)
        out: list[str] = []
        quote: Optional[str] = None
        for ch in self.sql:
            if quote is not None:
                if ch == quote:
                    quote = None
            elif ch in "'\"":
                quote = ch
            elif ch == "?":
                out.append(str(next(values)))
                continue
            out.append(ch)
        return "".join(out)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _from_row(row: sqlite3.Row) -> CrawlTask:
    return CrawlTask(
        id=row["id"],
        domain=row["domain"],
        url=row["url"],
        status=CrawlStatus(row["status"]),
        num_retries=row["num_retries"],
        crawl_type=CrawlType(row["crawl_type"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _by_id(conn: sqlite3.Connection, task_id: int) -> Optional[CrawlTask]:
    row = conn.execute("SELECT * FROM crawl_queue WHERE id = ?", (task_id,)).fetchone()
    return _from_row(row) if row is not None else None


def insert(
    conn: sqlite3.Connection,
    domain: str,
    url: str,
    status: CrawlStatus = CrawlStatus.QUEUED,
    crawl_type: CrawlType = CrawlType.NORMAL,
) -> CrawlTask:
    """Add a single task; raises sqlite3.IntegrityError if the URL is queued."""
    now = _now()
    with conn:
        cursor = conn.execute(
            "INSERT INTO crawl_queue "
            "(domain, url, status, num_retries, crawl_type, created_at, updated_at) "
            "VALUES (?, ?, ?, 0, ?, ?, ?)",
            (domain, url, CrawlStatus(status).value, CrawlType(crawl_type).value, now, now),
        )
    task = _by_id(conn, cursor.lastrowid)
    assert task is not None
    return task


def find_by_url(conn: sqlite3.Connection, url: str) -> Optional[CrawlTask]:
    """The task for ``url``, if queued."""
    row = conn.execute("SELECT * FROM crawl_queue WHERE url = ?", (url,)).fetchone()
    return _from_row(row) if row is not None else None


def find_by_status(conn: sqlite3.Connection, status: CrawlStatus) -> list[CrawlTask]:
    """All tasks in ``status`` in insertion order."""
    rows = conn.execute(
        "SELECT * FROM crawl_queue WHERE status = ? ORDER BY id",
        (CrawlStatus(status).value,),
    ).fetchall()
    return [_from_row(row) for row in rows]


def queue_stats(conn: sqlite3.Connection) -> list[QueueCountByStatus]:
    """Number of tasks per domain and status."""
    rows = conn.execute(
        "SELECT count(*) as count, domain, status FROM crawl_queue GROUP BY domain, status"
    ).fetchall()
    return [
        QueueCountByStatus(count=row["count"], domain=row["domain"], status=row["status"])
        for row in rows
    ]


def reset_processing(conn: sqlite3.Connection) -> None:
    """Put every task marked as processing back in the queue."""
    with conn:
        conn.execute(
            "UPDATE crawl_queue SET status = ? WHERE status LIKE ?",
            (CrawlStatus.QUEUED.value, f"%{CrawlStatus.PROCESSING.value}%"),
        )


def num_queued(conn: sqlite3.Connection, status: CrawlStatus) -> int:
    """Number of tasks in ``status``."""
    row = conn.execute(
        "SELECT count(id) AS count FROM crawl_queue WHERE status = ?",
        (CrawlStatus(status).value,),
    ).fetchone()
    return int(row["count"])


def gen_priority_values(items: Sequence[str], is_prefix: bool) -> str:
    """SQL ``VALUES`` rows giving each domain or prefix priority 1."""
    if not items:
        return '("", 0)'
    rows = []
    for item in items:
        # Prefixes match anything after them; domains may use "*" wildcards.
        pattern = item + "%" if is_prefix else item.replace("*", "%")
        rows.append(f'("{pattern}", 1)')
    return ",".join(rows)


def gen_priority_sql(p_domains: str, p_prefixes: str, user_settings: UserSettings) -> _Statement:
    """The query selecting the next task, favouring prioritized domains and prefixes."""
    sql = (
        "WITH\n"
        f"                p_domain(domain, priority) AS (values {p_domains}),\n"
        f"                p_prefix(prefix, priority) AS (values {p_prefixes}), "
        f"{_DEQUEUE_SQL}"
    )
    return _Statement(
        sql,
        (
            user_settings.domain_crawl_limit.value(),
            user_settings.inflight_domain_limit.value(),
        ),
    )


def create_ruleset_from_lens(lens: Lens) -> LensRuleSets:
    """Allow, skip and restrict regexes for a lens."""
    rules = LensRuleSets()
    rules.allow_list.extend(regex_for_domain(domain) for domain in lens.domains)
    rules.allow_list.extend(regex_for_prefix(prefix) for prefix in lens.urls)
    for rule in lens.rules:
        if isinstance(rule, SkipURL):
            rules.skip_list.append(rule.to_regex())
        elif isinstance(rule, LimitURLDepth):
            rules.restrict_list.append(rule.to_regex())
    return rules


def _mark_processing(conn: sqlite3.Connection, task_id: int) -> CrawlTask:
    with conn:
        conn.execute(
            "UPDATE crawl_queue SET status = ?, updated_at = ? WHERE id = ?",
            (CrawlStatus.PROCESSING.value, _now(), task_id),
        )
    task = _by_id(conn, task_id)
    assert task is not None
    return task


def dequeue(
    conn: sqlite3.Connection,
    user_settings: UserSettings,
    p_domains: Sequence[str] = (),
    p_prefixes: Sequence[str] = (),
) -> Optional[CrawlTask]:
    """Take the next task off the queue and mark it as processing.

    Bootstrap tasks go first, then tasks of prioritized prefixes and domains,
    oldest first. Returns None when nothing is eligible or limits are reached.
    """
    inflight_limit = user_settings.inflight_crawl_limit
    if inflight_limit.is_finite:
        in_progress = num_queued(conn, CrawlStatus.PROCESSING)
        if in_progress >= inflight_limit.value():
            return None

    row = conn.execute(
        "SELECT * FROM crawl_queue WHERE status = ? AND crawl_type = ? LIMIT 1",
        (CrawlStatus.QUEUED.value, CrawlType.BOOTSTRAP.value),
    ).fetchone()
    if row is not None:
        return _mark_processing(conn, row["id"])

    statement = gen_priority_sql(
        gen_priority_values(list(p_domains), False),
        gen_priority_values(list(p_prefixes), True),
        user_settings,
    )
    try:
        row = conn.execute(statement.sql, statement.values).fetchone()
    except sqlite3.Error as exc:
        logger.error("unable to dequeue: %s", exc)
        return None
    if row is None:
        return None
    return _mark_processing(conn, row["id"])


def _normalize_url(url: str) -> Optional[str]:
    """Parse ``url``, drop its fragment and normalize it; None if unusable."""
    try:
        parts = urlsplit(url)
        parts.port  # validates the port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        return None
    netloc = parts.netloc
    path = parts.path
    if scheme in ("http", "https"):
        if not parts.hostname:
            return None
        userinfo, at, hostport = netloc.rpartition("@")
        netloc = f"{userinfo}{at}{hostport.lower()}"
        if not path:
            path = "/"
    # Fragments never make a page different.
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def _compile(patterns: Iterable[str]) -> list[re.Pattern]:
    return [re.compile(pattern) for pattern in patterns]


def _any_match(patterns: list[re.Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def filter_urls(
    lenses: Sequence[Lens],
    settings: UserSettings,
    overrides: EnqueueSettings,
    urls: Iterable[str],
) -> list[str]:
    """Normalized URLs that may be crawled under the lenses and settings."""
    skip_patterns = [regex_for_domain(domain) for domain in settings.block_list]
    allow_patterns: list[str] = []
    restrict_patterns: list[str] = []
    for lens in lenses:
        ruleset = create_ruleset_from_lens(lens)
        allow_patterns.extend(ruleset.allow_list)
        skip_patterns.extend(ruleset.skip_list)
        restrict_patterns.extend(ruleset.restrict_list)

    allow_list = _compile(allow_patterns)
    skip_list = _compile(skip_patterns)
    restrict_list = _compile(restrict_patterns)

    allowed: list[str] = []
    for url in urls:
        normalized = _normalize_url(url)
        if normalized is None:
            continue
        if _any_match(skip_list, normalized):
            continue
        if restrict_list and not _any_match(restrict_list, normalized):
            continue
        if settings.crawl_external_links:
            allowed.append(normalized)
        elif overrides.force_allow or _any_match(allow_list, normalized):
            allowed.append(normalized)
    return allowed


def enqueue_all(
    conn: sqlite3.Connection,
    urls: Iterable[str],
    lenses: Sequence[Lens],
    settings: UserSettings,
    overrides: Optional[EnqueueSettings] = None,
) -> None:
    """Queue every allowed URL that is not already indexed.

    On a recrawl, already queued URLs are put back in the queue; otherwise
    they are left alone. Insert errors are logged, not raised.
    """
    overrides = overrides or EnqueueSettings()
    filtered = filter_urls(lenses, settings, overrides, urls)

    is_indexed: set[str] = set()
    if not overrides.is_recrawl:
        is_indexed = {doc.url for doc in indexed_document.find_by_urls(conn, filtered)}

    now = _now()
    to_add = []
    for url in filtered:
        if url in is_indexed:
            continue
        domain = urlsplit(url).hostname
        if domain:
            to_add.append(
                (
                    domain,
                    url,
                    CrawlStatus.QUEUED.value,
                    CrawlType(overrides.crawl_type).value,
                    now,
                    now,
                )
            )
    if not to_add:
        return

    on_conflict = (
        "ON CONFLICT(url) DO UPDATE SET status = excluded.status"
        if overrides.is_recrawl
        else "ON CONFLICT(url) DO NOTHING"
    )
    sql = (
        "INSERT INTO crawl_queue "
        "(domain, url, status, num_retries, crawl_type, created_at, updated_at) "
        f"VALUES (?, ?, ?, 0, ?, ?, ?) {on_conflict}"
    )
    for start in range(0, len(to_add), BATCH_SIZE):
        batch = to_add[start : start + BATCH_SIZE]
        try:
            with conn:
                conn.executemany(sql, batch)
        except sqlite3.Error as exc:
            logger.error("insert_many error: %s", exc)


def mark_done(conn: sqlite3.Connection, task_id: int, status: CrawlStatus) -> None:
    """Record the outcome of a task; failed tasks are retried a few times."""
    task = _by_id(conn, task_id)
    if task is None:
        return
    status = CrawlStatus(status)
    num_retries = task.num_retries
    if status is CrawlStatus.FAILED and task.num_retries <= MAX_RETRIES:
        num_retries += 1
        status = CrawlStatus.QUEUED
    with conn:
        conn.execute(
            "UPDATE crawl_queue SET status = ?, num_retries = ?, updated_at = ? WHERE id = ?",
            (status.value, num_retries, _now(), task_id),
        )


def remove_by_rule(conn: sqlite3.Connection, rule: str) -> int:
    """Delete tasks whose URL matches the SQL LIKE pattern ``rule``; return how many."""
    with conn:
        cursor = conn.execute("DELETE FROM crawl_queue WHERE url LIKE ?", (rule,))
    removed = cursor.rowcount
    if removed > 0:
        logger.info("removed %d tasks due to '%s'", removed, rule)
    return removed