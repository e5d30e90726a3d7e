# sanctionwatch

Tools for working with US sanctions and export-control lists:

- **OFAC** Specially Designated Nationals: the `sdn.csv`, `add.csv`,
  `alt.csv` and `sdn_comments.csv` files (`sanctionwatch.ofac`)
- **CSL**, the Consolidated Screening List: Sectoral Sanctions
  Identifications and the BIS Entity List (`sanctionwatch.csl`)
- **DPL**, the BIS Denied Persons List (`sanctionwatch.dpl`)

On top of the parsers it provides:

- a downloader for the source files that reuses local copies
  (`sanctionwatch.download`, `sanctionwatch.sources`)
- SQLite or MySQL storage with schema migrations (`sanctionwatch.database`)
- storage of "watches" on customers and companies (`sanctionwatch.watch`)
- webhook calls and a record of each attempt (`sanctionwatch.webhook`)
- distinct SDN field values for filter lists (`sanctionwatch.values`)
- a small example receiver for webhooks (`sanctionwatch.webhook_receiver`)

Install with `pip install .`. The test extra (`pip install .[test]`) adds
pytest and responses.

## Reading list files

```python
from sanctionwatch import csl, dpl, ofac

sdns = ofac.read("sdn.csv").sdns             # the file name selects the parser
addresses = ofac.read("add.csv").addresses
screening = csl.read("csl.csv")              # .ssis and .els
denied = dpl.read("dpl.txt")                 # list of DPL records
```

`ofac.read` returns a `Results` with only the list for that file filled in.
It raises `ValueError` for an unknown file name. In OFAC files the null
marker `-0-` becomes an empty string, and rows with the wrong number of
fields are skipped. Malformed program lists are normalised:

```python
ofac.split_programs("SDNTK] [FTO] [SDGT")   # ['SDNTK', 'FTO', 'SDGT']
csl.expand_programs_list("IFSR] [SDGT")     # ['IFSR', 'SDGT']
```

`csl.read` accepts files with or without a leading identifier column. Entity
List records read from the newer layout carry that identifier as `EL.id`.
`dpl.read` skips the header row and raises `ValueError` on a malformed file.

## Downloading

`sanctionwatch.sources` provides `download_ofac`, `download_csl` and
`download_dpl`. Each takes an optional directory to check first and an
optional `Downloader`. A file in that directory whose name matches (ignoring
case) is copied and not downloaded. Files are gathered into a fresh temporary
directory, and the caller removes it when done. If any file is missing at the
end, `DownloadError` is raised. Failed requests are retried up to three times.
Requests carry the `User-Agent` header `sanctionwatch:v0.17.1`.

Each download location is a template with one `%s` for the file name. You can
override it with an environment variable:

| Variable                 | Default                                                       |
|--------------------------|---------------------------------------------------------------|
| `OFAC_DOWNLOAD_TEMPLATE` | `https://www.treasury.gov/ofac/downloads/%s`                  |
| `CSL_DOWNLOAD_TEMPLATE`  | `https://api.trade.gov/static/consolidated_screening_list/%s` |
| `DPL_DOWNLOAD_TEMPLATE`  | `https://www.bis.doc.gov/dpl/%s`                              |

## Storage

`sanctionwatch.database.connect(kind)` opens a migrated database. `kind` is
`"sqlite"` (the default, also used for an empty string) or `"mysql"`. Any
other value raises `DatabaseError`.

- SQLite reads its path from `SQLITE_DB_PATH` and falls back to `watchman.db`.
  A path that contains `..` is ignored.
- MySQL reads `MYSQL_USER`, `MYSQL_PASSWORD`, `MYSQL_ADDRESS` (`host:port` or
  `tcp(host:port)`), `MYSQL_DATABASE`, and optionally `MYSQL_TIMEOUT` (seconds,
  or a duration such as `30s`; default `30s`).

`sqlite_connect(path)` and `mysql_connect(...)` open a single backend
directly. `unique_violation(error)` reports whether an error came from a
duplicate key, for either backend.

## Watches and webhooks

`WatchRepository(connection)` stores watches on a customer or company ID, or
on a name. Removing a watch marks it deleted. `get_watches_cursor(batch_size)`
returns a `WatchCursor`. Each `next_batch()` call returns up to a quarter of
the batch size from each of the four watch kinds, oldest first. Iterating the
cursor yields batches until one comes back empty.

```python
from sanctionwatch.database import sqlite_connect
from sanctionwatch.watch import WatchRepository, WatchRequest

repo = WatchRepository(sqlite_connect("watches.db"))
watch_id = repo.add_customer_watch(
    "306", WatchRequest(webhook="https://hooks.example.com/ofac", auth_token="token")
)
for batch in repo.get_watches_cursor(100):
    ...
```

`validate_webhook(url)` accepts only `https` URLs and raises `WebhookError`
for anything else. `call_webhook(watch_id, body, webhook, auth_token)` POSTs
the JSON body and sends the auth token as the `Authorization` header. It
never follows redirects, and at most ten calls run at a time. It returns the
status code. A status outside 2xx raises `WebhookError`, and the error's
`status` attribute holds the code. `WebhookRepository.record_webhook` stores
each attempt. `read_webhook_batch_size(text)` parses a batch size and falls
back to 100 for empty or non-positive values.

`sanctionwatch.values.ui_values(key, sdns, limit)` returns up to `limit`
distinct, sorted values of `sdnType` or `ofacProgram`, compared without
regard to case. Any other key raises `ValueError`.

## Example webhook receiver

This command starts a small HTTP server:

```
sanctionwatch-webhook-receiver -http.addr :10101
```

It accepts webhook posts on `POST /ofac` and answers `PONG` on `GET /ping`.
It logs each customer or company it receives. Bodies it cannot read as either
get a `400` with `{"error": "malformed JSON"}`. `handle_webhook(body)` and
`make_server(address)` give the same behaviour from Python.

## What this package does not do

The package has no name-matching search and no search HTTP API. It also has
no scheduler that re-reads watches after a list refresh and calls their
webhooks. The cursor, `call_webhook` and `WebhookRepository` are the parts
you need to build that loop yourself.