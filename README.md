# searchlens

`searchlens` keeps the state behind a personal search engine in a single SQLite database. The database holds:

- the crawl queue
- the history of fetched pages
- the documents that have been indexed
- the installed lenses, which are curated sets of domains, URL prefixes and rules
- the links found between pages
- the crawl and index rules for each domain

The package also contains the logic for an interactive search box: keyboard navigation, lens selection, and the building and sorting of result rows.

It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Storage

`searchlens.db.create_connection(data_dir, is_test)` opens the database in one of two ways:

- If `is_test` is true, it opens an in-memory database.
- Otherwise, it opens the file `db.sqlite` inside `data_dir`. It creates the directory if needed. It raises `ValueError` if `data_dir` is `None`.

Other functions in `searchlens.db`:

- `connect(path)` opens any SQLite file, with rows addressable by column name.
- `setup_schema(conn)` creates every table that does not exist yet.
- `setup_test_db()` returns an in-memory database that is ready to use.

```python
from searchlens import db, crawl_queue
from searchlens.rules import Lens, UserSettings

conn = db.setup_test_db()
lens = Lens(domains=["oldschool.runescape.wiki"])
crawl_queue.enqueue_all(
    conn,
    ["https://oldschool.runescape.wiki/"],
    [lens],
    UserSettings(),
    crawl_queue.EnqueueSettings(),
)
task = crawl_queue.dequeue(conn, UserSettings(), [], [])
print(task.url, task.status)  # https://oldschool.runescape.wiki/ Processing
```

## Lenses, rules and settings

`searchlens.rules` defines the following.

`Lens` holds `domains`, `urls` (prefixes) and `rules`. A rule is either:

- `SkipURL(pattern)`, where `*` matches anything, or
- `LimitURLDepth(prefix, max_depth)`.

Each rule turns into a regular expression through `to_regex()`. `regex_for_domain` and `regex_for_prefix` build the regular expressions for domains and prefixes. A prefix that ends in `$` means the exact URL and nothing longer.

`UserSettings` holds these settings:

| Setting | Default |
| --- | --- |
| `domain_crawl_limit` | 500,000 |
| `inflight_crawl_limit` | 10 |
| `inflight_domain_limit` | 2 |
| `block_list` | empty |
| `crawl_external_links` | `False` |

`Limit.finite(n)` and `Limit.unlimited()` build the limits.

## Crawl queue

`crawl_queue.filter_urls` decides which URLs may be queued. It normalizes each URL first:

- It keeps only the `http`, `https` and `file` schemes.
- It lowercases the host.
- It drops the fragment.

A normalized URL is then rejected in either of these cases:

- it matches the block list or a lens's skip rules
- the lenses have depth restrictions and the URL matches none of them

A URL that is not rejected is kept in any of these cases:

- external links are allowed
- `EnqueueSettings.force_allow` is set
- a lens's domain or prefix matches it

`enqueue_all` queues the URLs that pass this filter.

- It leaves out URLs that are already indexed, unless `is_recrawl` is set.
- On a recrawl, URLs that are already queued are set back to `Queued`. Otherwise they are left alone.
- Insert errors are logged, not raised.

`dequeue` returns `None` as soon as the number of tasks in `Processing` reaches `inflight_crawl_limit`. Otherwise it takes the next task and marks it `Processing`. It chooses the task as follows:

1. Queued bootstrap tasks come first.
2. If there are none, it looks at the other queued tasks. Two limits apply:
   - A domain must have fewer indexed documents than `domain_crawl_limit`.
   - A domain must have fewer than `inflight_domain_limit` tasks in flight.
3. Among those tasks, prioritized URL prefixes go first, then prioritized domains, then the oldest tasks.

Other functions in `crawl_queue`:

- `mark_done` records the outcome of a task. A failed task goes back to the queue while its retry count is at most `MAX_RETRIES` (5).
- `reset_processing` puts tasks that are in flight back in the queue.
- `remove_by_rule` deletes the tasks whose URLs match a SQL `LIKE` pattern, and returns how many it deleted.
- `queue_stats` gives the counts per domain and status.
- `num_queued` gives the count for one status.
- `find_by_url` and `find_by_status` look up tasks.
- `gen_priority_values`, `gen_priority_sql` and `create_ruleset_from_lens` expose the SQL and the regex sets that `dequeue` and `filter_urls` use.

## Other records

- `bootstrap_queue`: `enqueue`, `has_seed_url` and `dequeue` record the seed URLs that have been used.
- `fetch_history`:
  - `insert`, `find`, `find_by_url` and `upsert` track the HTTP status and content hash of each fetched path.
  - `find_by_url` raises `ValueError` for a URL without a host.
- `indexed_document`:
  - `insert` and `find_by_urls` map URLs to document ids.
  - `indexed_stats` counts the documents per domain.
  - `remove_by_rule` deletes by a `LIKE` pattern and returns the removed document ids.
- `lens`:
  - `add_or_enable` adds a lens or refreshes it. It returns `True` only if it added the lens.
  - Only `LensType.SIMPLE` lenses are enabled automatically.
  - `reset` disables all simple lenses.
  - `find_by_name` looks up a lens.
- `link`:
  - `save_link` records a link. Both URLs need a host.
  - `all_links` lists the links in insertion order.
- `resource_rule`: `insert` and `find_by_domain` store the crawl and index rules for each domain.

## Search document schema

`searchlens.schema` describes the fields of an indexed document:

| Field | Flags |
| --- | --- |
| `id` | `FieldFlag.STRING`, `STORED`, `FAST` |
| `domain` | `FieldFlag.STRING`, `STORED`, `FAST` |
| `title` | `FieldFlag.TEXT`, `STORED`, `FAST` |
| `description` | `FieldFlag.TEXT`, `STORED` |
| `url` | `FieldFlag.STRING`, `STORED`, `FAST` |
| `content` | `FieldFlag.TEXT`, `STORED` |

The functions are:

- `doc_schema()` builds the `Schema` for these fields.
- `doc_fields()` resolves each field to its handle.
- `mapping_to_schema` builds a schema from `(name, flags)` pairs and rejects duplicate names.
- `Schema.get_field` raises `KeyError` for an unknown field.

## Client-side logic

`searchlens.results` contains the following:

- `lens_result` and `doc_result` build `ResultListData` rows.
- `RequestState.is_done()` is true once a request has finished or failed.
- `QueueStatus.total()` adds up a domain's crawl counts.
- `sort_crawl_stats` orders domains by the number of completed crawls, most first.
- `stats_bar_percent` gives the width of a statistics bar, with a minimum of 5%.
- `format_count` adds comma thousands separators.
- `Tab.parse` reads a settings tab name.
- `tab_for_navigation` maps a path such as `/settings/lenses` to a tab. Any unknown path maps to the stats tab.

`searchlens.search.SearchState` holds the state of the search box:

- the selected lenses
- the query
- the results
- the selected index

Its handlers return the side effects to carry out as a list of `Action`s:

- open a URL
- escape
- scroll to a result
- resize the window
- clear the input

`handle_key_down` handles these keys:

- The arrow keys move the selection.
- Enter opens the selected document, or adds the selected lens and clears the query. It raises `IndexError` if there is no result to select.
- Backspace on an empty query removes the last lens. When the query is shorter than two characters, Backspace also clears the results.
- Escape returns an escape action.

`handle_query_change` records the query and returns the `SearchRequest` it calls for, or `None`:

- A query that starts with `/` asks for a lens search.
- Any other query asks for a document search, within the selected lenses, once it is at least two characters long.

Other methods:

- `apply_results` shows new results and keeps the selection inside the new list.
- `clear_results` empties the results.
- `reset` clears everything.

## What it does not do

`searchlens` only manages state. It does not do any of the following:

- fetch pages
- run a crawler loop
- build or query a full-text index; `schema` only describes the fields
- draw any window or screen
- provide a command-line tool or a server

The search box logic produces `SearchRequest`s and `Action`s. The caller has to send the requests and carry out the actions.