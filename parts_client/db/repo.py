from __future__ import annotations
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

from parts_client.db.schema import init_db
from parts_logic.core.naming import next_number_from_names
from parts_logic.models.errors import AllocationConflict, CatalogUnavailable
from parts_logic.models.types import Part, PartStatus, PartType, coerce_part_type

logger = logging.getLogger(__name__)

# Fields that may change after creation. The name never does.
MUTABLE_FIELDS = (
    "type",
    "dimensions",
    "status",
    "project_id",
    "description",
    "designer",
    "cad_drawing",
    "pictures",
)

_JSON_FIELDS = ("dimensions", "pictures")


class Repo:
    """Part catalog backed by a local SQLite file.

    Used offline and in tests. Exposes the same operations as the HTTP store
    (`parts_client.db.api.ApiRepo`), so the allocator does not care which one
    it talks to.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        try:
            init_db(db_path)
        except sqlite3.Error as e:
            raise CatalogUnavailable(f"Cannot open part catalog at {db_path}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise CatalogUnavailable(f"Cannot open part catalog at {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            logger.warning("Local part catalog query failed: %s", e)
            raise CatalogUnavailable(f"Local part catalog query failed: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _to_part(row: sqlite3.Row) -> Part:
        rec = dict(row)
        for key in _JSON_FIELDS:
            rec[key] = json.loads(rec[key]) if rec.get(key) else None
        return Part.from_record(rec)

    def _select(self, where: str = "", params: tuple = ()) -> List[Part]:
        sql = "SELECT * FROM parts"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY created_at ASC, rowid ASC"
        with self._session() as conn:
            return [self._to_part(r) for r in conn.execute(sql, params).fetchall()]

    # -----------------
    # Queries
    # -----------------
    def query_all_parts(self) -> List[Part]:
        return self._select()

    def query_parts_by_type(self, part_type: Union[PartType, str]) -> List[Part]:
        return self._select("type = ?", (coerce_part_type(part_type).value,))

    def query_sub_parts(self, parent_part_id: str) -> List[Part]:
        return self._select("parent_part_id = ?", (parent_part_id,))

    def count_sub_parts(self, parent_part_id: str) -> int:
        with self._session() as conn:
            row = conn.execute(
                "SELECT COUNT(1) AS n FROM parts WHERE parent_part_id = ?",
                (parent_part_id,),
            ).fetchone()
            return int(row["n"])

    def query_part_names(self, prefix: str) -> List[str]:
        """Names starting with `prefix` (case-sensitive), across all projects."""
        with self._session() as conn:
            rows = conn.execute(
                "SELECT name FROM parts WHERE substr(name, 1, ?) = ?",
                (len(prefix), prefix),
            ).fetchall()
            return [r["name"] for r in rows]

    def get_part(self, part_id: str) -> Optional[Part]:
        parts = self._select("id = ?", (part_id,))
        return parts[0] if parts else None

    def name_exists(self, name: str) -> bool:
        with self._session() as conn:
            row = conn.execute("SELECT 1 FROM parts WHERE name = ?", (name,)).fetchone()
            return row is not None

    # -----------------
    # Writes
    # -----------------
    def insert_part(self, payload: Dict[str, Any]) -> Part:
        """Insert a new part row.

        Raises AllocationConflict if the name is taken. Nothing is renamed here;
        retrying with a fresh name is the caller's job.
        """
        name = payload["name"]
        part_id = str(payload.get("id") or uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    INSERT INTO parts(
                        id, name, type, dimensions, status, project_id, parent_part_id,
                        description, designer, cad_drawing, pictures, created_at
                    )
                    VALUES(?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    (
                        part_id,
                        name,
                        coerce_part_type(payload["type"]).value,
                        json.dumps(payload.get("dimensions") or {}),
                        PartStatus(payload.get("status") or PartStatus.MEASURED).value,
                        payload.get("project_id"),
                        payload.get("parent_part_id"),
                        payload.get("description"),
                        payload.get("designer"),
                        payload.get("cad_drawing"),
                        json.dumps(payload.get("pictures") or []),
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if "parts.name" in str(e):
                raise AllocationConflict(name) from e
            raise ValueError(f"Cannot insert part '{name}': {e}") from e

        part = self.get_part(part_id)
        if part is None:
            raise CatalogUnavailable(f"Part {name} was inserted but cannot be read back.")
        return part

    def update_part(self, part_id: str, changes: Dict[str, Any]) -> Part:
        if "name" in changes:
            raise ValueError("Part names are assigned once and cannot be changed.")
        unknown = set(changes) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown part fields: {', '.join(sorted(unknown))}")

        values: Dict[str, Any] = {}
        for key, val in changes.items():
            if key in _JSON_FIELDS:
                val = json.dumps(val or ({} if key == "dimensions" else []))
            elif key == "type":
                val = coerce_part_type(val).value
            elif key == "status":
                val = PartStatus(val).value
            values[key] = val

        if values:
            assignments = ", ".join(f"{k} = ?" for k in values)
            with self._session() as conn:
                conn.execute(
                    f"UPDATE parts SET {assignments} WHERE id = ?",
                    (*values.values(), part_id),
                )

        part = self.get_part(part_id)
        if part is None:
            raise KeyError(part_id)
        return part

    def delete_part(self, part_id: str) -> bool:
        """Delete a part and, through the foreign key, all of its sub-parts."""
        with self._session() as conn:
            cur = conn.execute("DELETE FROM parts WHERE id = ?", (part_id,))
            return cur.rowcount > 0

    def next_sequence(self, prefix: str) -> int:
        """Atomically hand out the next number for `prefix`.

        The counter never goes below max(existing <prefix><n>) + 1, so parts
        created before the counter existed, or under an explicit name, are
        never collided with.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise CatalogUnavailable(f"Cannot open part catalog at {self.db_path}: {e}") from e
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT next_value FROM part_counters WHERE prefix = ?", (prefix,)
            ).fetchone()
            names = [
                r["name"]
                for r in conn.execute(
                    "SELECT name FROM parts WHERE substr(name, 1, ?) = ?", (len(prefix), prefix)
                )
            ]
            value = next_number_from_names(names, prefix)
            if row is None:
                conn.execute(
                    "INSERT INTO part_counters(prefix, next_value) VALUES(?,?)",
                    (prefix, value + 1),
                )
            else:
                value = max(value, int(row["next_value"]))
                conn.execute(
                    "UPDATE part_counters SET next_value = ? WHERE prefix = ?",
                    (value + 1, prefix),
                )
            conn.execute("COMMIT")
            return value
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.warning("Sequence update for prefix %s failed: %s", prefix, e)
            raise CatalogUnavailable(f"Sequence update for prefix {prefix} failed: {e}") from e
        finally:
            conn.close()
