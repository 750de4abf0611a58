SCHEMA_SQL = r"""
-- Key-value store: one row per logical collection, value is JSON text
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT NOT NULL               -- ISO datetime
);

-- Keys renamed by a migration (old key -> new key), kept for auditing
CREATE TABLE IF NOT EXISTS kv_migrations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  old_key TEXT NOT NULL,
  new_key TEXT NOT NULL,
  migrated_at TEXT NOT NULL
);
"""
