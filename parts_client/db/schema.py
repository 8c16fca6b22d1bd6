import sqlite3

SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS parts (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL UNIQUE,
  type TEXT NOT NULL,
  dimensions TEXT NOT NULL DEFAULT '{}',
  status TEXT NOT NULL DEFAULT 'measured',
  project_id TEXT,
  parent_part_id TEXT REFERENCES parts(id) ON DELETE CASCADE,
  description TEXT,
  designer TEXT,
  cad_drawing TEXT,
  pictures TEXT NOT NULL DEFAULT '[]',
  created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_parts_type ON parts(type);
CREATE INDEX IF NOT EXISTS idx_parts_parent ON parts(parent_part_id);

-- One row per name prefix (U/S/K/...). next_value is the number handed out next.
CREATE TABLE IF NOT EXISTS part_counters (
  prefix TEXT PRIMARY KEY,
  next_value INTEGER NOT NULL
);
"""


def init_db(db_path: str) -> None:
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()
