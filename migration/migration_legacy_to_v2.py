"""
Migration legacy -> V2
- Trims padding left by fixed-width CHAR columns: logins, item names, role
  names and item statuses ('Manager ' -> 'Manager', 'Ready     ' -> 'Ready')
- Adds 'price' to ItemStatus and backfills it from the current Menu price
- Adds 'seq' to ItemStatus and backfills it from insertion (rowid) order
- Replaces plaintext passwords with passlib hashes
- Recomputes Orders.total from the line prices, repairing totals that drifted

Usage:
  python -m migration.migration_legacy_to_v2 --db path/to/cafe.db
"""
import argparse
import logging
import os
import sqlite3
from contextlib import closing

from cafe.auth import hash_password, is_hashed

logger = logging.getLogger(__name__)

PADDED_COLUMNS = (
    ("Users", "login"),
    ("Users", "type"),
    ("Menu", "itemName"),
    ("Menu", "type"),
    ("Orders", "login"),
    ("ItemStatus", "itemName"),
    ("ItemStatus", "status"),
)


def has_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
    cur = conn.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cur.fetchall())


def trim_padding(conn: sqlite3.Connection) -> int:
    """Strip surrounding blanks from key and status columns. Returns rows changed."""
    changed = 0
    for table, column in PADDED_COLUMNS:
        cur = conn.execute(f"UPDATE {table} SET {column} = TRIM({column}) WHERE {column} <> TRIM({column})")
        changed += cur.rowcount
    return changed


def migrate(db_path: str) -> int:
    """Upgrade the database in place. Returns the number of order totals that were corrected."""
    if db_path == ":memory:":
        raise ValueError("Use a file-backed DB for migration script")

    if not os.path.exists(db_path):
        raise FileNotFoundError(db_path)

    with closing(sqlite3.connect(db_path)) as conn:
        # keys are rewritten in place, references are checked once at the end
        conn.execute("PRAGMA foreign_keys=OFF")

        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        missing = {"Users", "Menu", "Orders", "ItemStatus"} - tables
        if missing:
            raise RuntimeError(f"tables missing; cannot migrate: {sorted(missing)}")

        trimmed = trim_padding(conn)
        if trimmed:
            logger.info("trimmed padding from %d value(s)", trimmed)

        if not has_column(conn, "ItemStatus", "price"):
            conn.execute("ALTER TABLE ItemStatus ADD COLUMN price NUMERIC(10, 2)")
        conn.execute(
            "UPDATE ItemStatus SET price = "
            "(SELECT Menu.price FROM Menu WHERE Menu.itemName = ItemStatus.itemName) "
            "WHERE price IS NULL"
        )

        if not has_column(conn, "ItemStatus", "seq"):
            conn.execute("ALTER TABLE ItemStatus ADD COLUMN seq INTEGER")
        conn.execute("UPDATE ItemStatus SET seq = rowid WHERE seq IS NULL")

        rows = conn.execute("SELECT login, password FROM Users").fetchall()
        for login, password in rows:
            if not is_hashed(password):
                conn.execute("UPDATE Users SET password = ? WHERE login = ?", (hash_password(password), login))

        drifted = conn.execute(
            "SELECT o.orderid FROM Orders o "
            "WHERE ROUND(o.total, 2) <> ROUND(COALESCE("
            "(SELECT SUM(s.price) FROM ItemStatus s WHERE s.orderid = o.orderid), 0), 2)"
        ).fetchall()
        for (orderid,) in drifted:
            conn.execute(
                "UPDATE Orders SET total = ROUND(COALESCE("
                "(SELECT SUM(price) FROM ItemStatus WHERE orderid = ?), 0), 2) WHERE orderid = ?",
                (orderid, orderid),
            )
            logger.warning("order #%s total recomputed from its lines", orderid)

        dangling = conn.execute("PRAGMA foreign_key_check").fetchall()
        if dangling:
            conn.rollback()
            raise RuntimeError(f"dangling references after migration: {dangling}")
        conn.commit()
    return len(drifted)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", required=True, help="Path to SQLite database file")
    args = parser.parse_args()
    migrate(args.db)

if __name__ == "__main__":
    main()
