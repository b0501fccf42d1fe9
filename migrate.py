"""
Idempotent schema helper for the SQLite database.
Run:  python migrate.py [--db instance/scheduler.db]

What it does:
- Create any missing tables (user, event)
- Add columns introduced after the first release to older event tables
- Backfill urgency/importance into the 1-5 range and default empty types to 'event'
"""
import argparse
import sqlite3
from pathlib import Path

DB_PATH = Path("instance") / "scheduler.db"

EVENT_COLUMNS = [
    ("description", "TEXT"),
    ("start_time", "DATETIME"),
    ("end_time", "DATETIME"),
    ("completed", "BOOLEAN NOT NULL DEFAULT 0"),
    ("updated_at", "DATETIME"),
]


def column_exists(cursor, table, column):
    cursor.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cursor.fetchall())


def add_column(cursor, table, column, col_type):
    if column_exists(cursor, table, column):
        print(f"[skip] {column} already exists on {table}")
        return
    cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}")
    print(f"[add] {column} added to {table}")


def create_tables():
    from app import create_app

    create_app()
    print("[create] tables ensured")


def add_event_columns(cur):
    for column, col_type in EVENT_COLUMNS:
        add_column(cur, "event", column, col_type)


def normalize_scores(cur):
    for column in ("urgency", "importance"):
        cur.execute(f"UPDATE event SET {column}=3 WHERE {column} IS NULL")
        cur.execute(f"UPDATE event SET {column}=1 WHERE {column} < 1")
        cur.execute(f"UPDATE event SET {column}=5 WHERE {column} > 5")
    print("[update] clamped urgency/importance into 1-5")


def normalize_types(cur):
    cur.execute("UPDATE event SET type='event' WHERE type IS NULL OR TRIM(type)=''")
    print("[update] defaulted empty event types")


def main():
    parser = argparse.ArgumentParser(description="Bring an existing scheduler SQLite DB up to date.")
    parser.add_argument("--db", default=str(DB_PATH), help="Path to the SQLite database")
    parser.add_argument("--skip-create", action="store_true", help="Do not create missing tables first")
    args = parser.parse_args()

    if not args.skip_create:
        create_tables()

    conn = sqlite3.connect(args.db)
    cur = conn.cursor()
    try:
        add_event_columns(cur)
        normalize_scores(cur)
        normalize_types(cur)
        conn.commit()
        print("Migration complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
