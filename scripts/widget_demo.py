#!/usr/bin/env python3
"""Drive the sync engine against a local widget database.

This script creates (or reuses) a SQLite widget table, loads it into a
synced store, toggles every widget and creates a new one, printing each
store change as it is committed.

Usage
-----
::

    python scripts/widget_demo.py
    python scripts/widget_demo.py --db widgets.sqlite3 --latency 1.0

Options::

    --db FILE            Database file (default: temporary file)
    --latency SECONDS    Artificial delay after each remote call
    --fail               Use a broken update template to exercise rollback
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tempfile
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysynced import SqliteRemote, StoreChange, SyncClient, SyncConfig, Widget  # noqa: E402

_SCHEMA = """
CREATE TABLE IF NOT EXISTS widgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 0
);
INSERT INTO widgets (description, active)
SELECT 'first widget', 0 WHERE NOT EXISTS (SELECT 1 FROM widgets);
INSERT INTO widgets (description, active)
SELECT 'second widget', 1 WHERE (SELECT COUNT(*) FROM widgets) = 1;
"""

SELECT_WIDGETS = "SELECT id, description, active FROM widgets ORDER BY id"
TOGGLE_ON = "UPDATE widgets SET active = 1 WHERE id = ?"
TOGGLE_BROKEN = "UPDATE widgetz SET active = 1 WHERE id = ?"
INSERT_WIDGET = "INSERT INTO widgets (description, active) VALUES (@description, @active) RETURNING *"


def _print_change(client: SyncClient, change: StoreChange) -> None:
    for client_id in change.touched:
        if client_id in client.store:
            item = client.store.get(client_id)
            print(f"[{change.reason:<10}] {client_id} {item.network_status:<12} {item.data}")
        else:
            print(f"[{change.reason:<10}] {client_id} removed")


async def run(db_path: Path, *, latency: float, fail: bool) -> None:
    config = SyncConfig.from_env()
    async with SqliteRemote(db_path, latency=latency) as remote:
        await remote.executescript(_SCHEMA)

        client = SyncClient(remote, config=config)
        await client.load(SELECT_WIDGETS, model=Widget)
        client.store.subscribe(lambda change: _print_change(client, change))

        client.run_synced_mutation(
            client.store.items(),
            key_field="id",
            mutated_field="active",
            new_value=True,
            request_template=TOGGLE_BROKEN if fail else TOGGLE_ON,
        )
        client.run_synced_creation(
            Widget(description="foo widget", active=True).model_dump(exclude={"id"}),
            key_field="id",
            request_template=INSERT_WIDGET,
        )
        await client.drain()

        print()
        for item in client.store.items():
            print(f"{item.client_id} {item.network_status:<12} {item.data}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Optimistic widget sync demo")
    parser.add_argument("--db", type=Path, help="Database file (default: temporary file)")
    parser.add_argument("--latency", type=float, default=0.0, help="Artificial delay after each remote call")
    parser.add_argument("--fail", action="store_true", help="Use a broken update template to exercise rollback")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if args.db is not None:
        asyncio.run(run(args.db, latency=args.latency, fail=args.fail))
        return
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(run(Path(tmp) / "widgets.sqlite3", latency=args.latency, fail=args.fail))


if __name__ == "__main__":
    main()
