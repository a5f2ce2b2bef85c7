"""
Versioned variable store.

Every change is appended to the `environments` table; nothing is updated in
place. A row with value NULL marks the key inactive from that moment on. The
current value of (env, key) is the row with the greatest created_at, ties
broken by insertion order (id), and only if that row is not NULL. The
`latest` and `active_variables` views encode that rule once and every query
and multi-row mutation below reads through them.
"""
import logging
import sqlite3
import time

from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from envelope.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError, StoreError
from envelope.utils.dataModels import ActiveVariable, Changed, DiffEntry, InOnlyFirst, InOnlySecond, VariableEvent

logger = logging.getLogger("envelope.store")

SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS environments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    env TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT,
    created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_env_key ON environments(env, key, created_at);

CREATE VIEW IF NOT EXISTS latest AS
    SELECT env, key, value, created_at FROM (
        SELECT env, key, value, created_at,
               ROW_NUMBER() OVER (
                   PARTITION BY env, key ORDER BY created_at DESC, id DESC
               ) AS rn
        FROM environments
    )
    WHERE rn = 1;

CREATE VIEW IF NOT EXISTS active_variables AS
    SELECT env, key, value, created_at FROM latest WHERE value IS NOT NULL;
"""


class SortKey(Enum):
    KEY = "key"
    KEY_DESC = "key-desc"
    VALUE = "value"
    VALUE_DESC = "value-desc"
    DATE = "date"
    DATE_DESC = "date-desc"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SortKey":
        """Accept full names or the short aliases; anything else sorts by date."""
        if raw is None:
            return cls.DATE
        raw = raw.strip().lower()
        alias = _SORT_ALIASES.get(raw)
        if alias is not None:
            return alias
        try:
            return cls(raw)
        except ValueError:
            return cls.DATE


_SORT_ALIASES = {
    "k": SortKey.KEY,
    "kd": SortKey.KEY_DESC,
    "v": SortKey.VALUE,
    "vd": SortKey.VALUE_DESC,
    "d": SortKey.DATE,
    "dd": SortKey.DATE_DESC,
}

_ORDER_BY = {
    SortKey.KEY: "ORDER BY key ASC",
    SortKey.KEY_DESC: "ORDER BY key DESC",
    SortKey.VALUE: "ORDER BY value ASC, key ASC",
    SortKey.VALUE_DESC: "ORDER BY value DESC, key ASC",
    SortKey.DATE: "ORDER BY created_at ASC, key ASC",
    SortKey.DATE_DESC: "ORDER BY created_at DESC, key ASC",
}

_VALUE_COLUMN = {
    False: "value",
    True: "substr(value, 1, :truncate) AS value",
}

# Every (sort, truncated) combination is a fixed statement.
_LIST_ACTIVE = {
    (sort, truncated): (
        f"SELECT env, key, {_VALUE_COLUMN[truncated]}, created_at "
        f"FROM active_variables WHERE env = :env {_ORDER_BY[sort]}"
    )
    for sort in SortKey
    for truncated in (False, True)
}

_ACTIVE_MATCHING = {
    "env_key": "SELECT env, key, created_at FROM active_variables WHERE env = ? AND key = ?",
    "env": "SELECT env, key, created_at FROM active_variables WHERE env = ?",
    "key": "SELECT env, key, created_at FROM active_variables WHERE key = ?",
}

_INSERT = "INSERT INTO environments(env, key, value, created_at) VALUES (?, ?, ?, ?)"

_DIFF = """
SELECT '+' AS type, a.key AS key, a.value AS value, NULL AS other
FROM active_variables a
WHERE a.env = :first AND a.key NOT IN (SELECT key FROM active_variables WHERE env = :second)
UNION ALL
SELECT '-', b.key, b.value, NULL
FROM active_variables b
WHERE b.env = :second AND b.key NOT IN (SELECT key FROM active_variables WHERE env = :first)
UNION ALL
SELECT '/', a.key, a.value, b.value
FROM active_variables a JOIN active_variables b ON a.key = b.key
WHERE a.env = :first AND b.env = :second AND a.value <> b.value
ORDER BY key
"""


def normalize_key(key: str) -> str:
    return key.upper()


class EnvelopeDb:
    """Single-connection handle on an unlocked envelope database."""

    def __init__(self, db_path: Path | str, create: bool = False, clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self.clock = clock
        try:
            if str(db_path) == ":memory:":
                self.conn = sqlite3.connect(":memory:", isolation_level=None)
            else:
                mode = "rwc" if create else "rw"
                uri = f"{Path(db_path).resolve().as_uri()}?mode={mode}"
                self.conn = sqlite3.connect(uri, uri=True, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreError(f"failed to open database: {e}\nfile: {db_path}") from e
        self.conn.row_factory = sqlite3.Row
        self._migrate()

    def _migrate(self) -> None:
        try:
            version = self.conn.execute("PRAGMA user_version").fetchone()[0]
        except sqlite3.Error as e:
            self.conn.close()
            raise StoreError(f"failed to open database: {e}\nfile: {self.db_path}") from e
        if version >= SCHEMA_VERSION:
            return
        try:
            self.conn.executescript(_SCHEMA)
            self.conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        except sqlite3.Error as e:
            raise StoreError(f"failed to run migrations: {e}") from e
        logger.debug("migrated %s to schema v%d", self.db_path, SCHEMA_VERSION)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "EnvelopeDb":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        try:
            yield self.conn
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreError(str(e)) from e
        except BaseException:
            self.conn.rollback()
            raise
        else:
            self.conn.commit()

    def _fetch(self, sql: str, params=()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _now(self, conn: sqlite3.Connection) -> int:
        """Wall clock, never behind the newest row already in the log."""
        newest = conn.execute("SELECT MAX(created_at) FROM environments").fetchone()[0]
        now = int(self.clock())
        return now if newest is None else max(now, newest)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def insert(self, env: str, key: str, value: str) -> None:
        with self._transaction() as conn:
            conn.execute(_INSERT, (env, normalize_key(key), value, self._now(conn)))
        logger.debug("insert %s/%s", env, normalize_key(key))

    def insert_many(self, env: str, pairs: Iterable[Tuple[str, str]]) -> int:
        """Insert several variables of env in one transaction, sharing one timestamp."""
        with self._transaction() as conn:
            now = self._now(conn)
            rows = [(env, normalize_key(key), value, now) for key, value in pairs]
            conn.executemany(_INSERT, rows)
        logger.debug("insert %d variable(s) into %s", len(rows), env)
        return len(rows)

    def _soft_delete(self, variant: str, params: tuple) -> int:
        with self._transaction() as conn:
            rows = conn.execute(_ACTIVE_MATCHING[variant], params).fetchall()
            now = self._now(conn)
            conn.executemany(
                _INSERT,
                [(row["env"], row["key"], None, max(now, row["created_at"] + 1)) for row in rows],
            )
        logger.debug("soft-deleted %d variable(s) by %s", len(rows), variant)
        return len(rows)

    def soft_delete(self, env: str, key: str) -> int:
        return self._soft_delete("env_key", (env, normalize_key(key)))

    def soft_delete_env(self, env: str) -> int:
        return self._soft_delete("env", (env,))

    def soft_delete_key_globally(self, key: str) -> int:
        return self._soft_delete("key", (normalize_key(key),))

    def delete_env(self, env: str) -> int:
        """Hard delete: every event of env is removed, history included."""
        with self._transaction() as conn:
            removed = conn.execute("DELETE FROM environments WHERE env = ?", (env,)).rowcount
        logger.debug("dropped %s (%d rows)", env, removed)
        return removed

    def duplicate(self, source: str, target: str) -> int:
        if source == target:
            raise InvalidArgumentError("source and target are the same environment")
        with self._transaction() as conn:
            if conn.execute("SELECT 1 FROM environments WHERE env = ? LIMIT 1", (target,)).fetchone():
                raise AlreadyExistsError(f"env {target} already exists")
            rows = conn.execute(
                "SELECT key, value FROM active_variables WHERE env = ? ORDER BY key", (source,)
            ).fetchall()
            if not rows:
                raise NotFoundError(f"env {source} has no active variables")
            now = self._now(conn)
            conn.executemany(_INSERT, [(target, row["key"], row["value"], now) for row in rows])
        logger.debug("duplicated %s -> %s (%d variables)", source, target, len(rows))
        return len(rows)

    def sync(self, source: str, target: str, overwrite: bool = False) -> int:
        """Copy the active variables of source into target.

        Without overwrite, keys already active in target keep their value.
        """
        if source == target:
            raise InvalidArgumentError("source and target are the same environment")
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT key, value FROM active_variables WHERE env = ? ORDER BY key", (source,)
            ).fetchall()
            if not overwrite:
                present = {
                    row["key"]
                    for row in conn.execute("SELECT key FROM active_variables WHERE env = ?", (target,))
                }
                rows = [row for row in rows if row["key"] not in present]
            now = self._now(conn)
            conn.executemany(_INSERT, [(target, row["key"], row["value"], now) for row in rows])
        logger.debug("synced %s -> %s (%d variables, overwrite=%s)", source, target, len(rows), overwrite)
        return len(rows)

    def revert(self, env: str, key: str) -> bool:
        """Remove the most recent event of (env, key). Returns False when there was none."""
        with self._transaction() as conn:
            removed = conn.execute(
                """
                DELETE FROM environments WHERE id = (
                    SELECT id FROM environments
                    WHERE env = ? AND key = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT 1
                )
                """,
                (env, normalize_key(key)),
            ).rowcount
        return removed > 0

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def list_active(self, env: str, sort: SortKey = SortKey.DATE, truncate: Optional[int] = None) -> List[ActiveVariable]:
        sql = _LIST_ACTIVE[(sort, truncate is not None)]
        params = {"env": env, "truncate": truncate}
        return [ActiveVariable(r["env"], r["key"], r["value"], r["created_at"]) for r in self._fetch(sql, params)]

    def list_all_active(self) -> List[ActiveVariable]:
        rows = self._fetch("SELECT env, key, value, created_at FROM active_variables ORDER BY env, key")
        return [ActiveVariable(r["env"], r["key"], r["value"], r["created_at"]) for r in rows]

    def events(self, env: Optional[str] = None) -> List[VariableEvent]:
        """The raw log in insertion order."""
        if env is None:
            rows = self._fetch("SELECT env, key, value, created_at FROM environments ORDER BY id")
        else:
            rows = self._fetch("SELECT env, key, value, created_at FROM environments WHERE env = ? ORDER BY id", (env,))
        return [VariableEvent(r["env"], r["key"], r["value"], r["created_at"]) for r in rows]

    def history(self, env: str, key: str) -> List[VariableEvent]:
        rows = self._fetch(
            "SELECT env, key, value, created_at FROM environments WHERE env = ? AND key = ? ORDER BY created_at, id",
            (env, normalize_key(key)),
        )
        return [VariableEvent(r["env"], r["key"], r["value"], r["created_at"]) for r in rows]

    def env_exists(self, env: str) -> bool:
        return bool(self._fetch("SELECT 1 FROM environments WHERE env = ? LIMIT 1", (env,)))

    def list_environments(self) -> List[str]:
        return [row["env"] for row in self._fetch("SELECT DISTINCT env FROM environments ORDER BY env")]

    def diff(self, first: str, second: str) -> List[DiffEntry]:
        for env in (first, second):
            if not self.env_exists(env):
                raise NotFoundError(f"env {env} does not exist")
        return [_diff_entry(row) for row in self._fetch(_DIFF, {"first": first, "second": second})]


def _diff_entry(row: sqlite3.Row) -> DiffEntry:
    kind = row["type"]
    if kind == "+":
        return InOnlyFirst(row["key"], row["value"])
    if kind == "-":
        return InOnlySecond(row["key"], row["value"])
    if kind == "/":
        return Changed(row["key"], row["value"], row["other"])
    raise RuntimeError(f"unknown diff row type {kind!r}")
