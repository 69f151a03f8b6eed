# backend/searchplus/db.py
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from dotenv import load_dotenv
from sqlalchemy import MetaData, Table, create_engine, inspect as sa_inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError

from .config_loader import DEFAULT_HIDDEN_TABLE_PREFIXES, base_dir, env_files
from .errors import UnknownTableError

log = logging.getLogger(__name__)

# Module-level singleton
_ENGINE: Optional[Engine] = None
_INIT_LOCK = threading.Lock()

# relative to config_loader.base_dir()
DEFAULT_SQLITE_PATH = Path("var") / "searchplus.sqlite3"


def load_env_files() -> None:
    """Load env files if present. Safe to call multiple times."""
    # backend/.env first, then the base .env, never overwriting what is already set
    for env_path in env_files():
        if env_path.exists():
            log.debug("loading %s", env_path)
            load_dotenv(env_path, override=False)


def _build_db_url() -> str:
    """DATABASE_URL when set, otherwise a SQLite file under var/."""
    load_env_files()
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    sqlite_path = base_dir() / DEFAULT_SQLITE_PATH
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{sqlite_path}"


def get_engine() -> Engine:
    """
    Return a process-wide SQLAlchemy Engine.
    Creates it on first use, thread-safe.
    """
    global _ENGINE
    if _ENGINE is not None:
        return _ENGINE

    with _INIT_LOCK:
        if _ENGINE is not None:
            return _ENGINE

        db_url = _build_db_url()
        echo = bool(int(os.getenv("SQLALCHEMY_ECHO", "0")))
        kwargs: Dict[str, Any] = {"echo": echo, "future": True}
        if not db_url.startswith("sqlite"):
            # sqlite pools don't take these
            kwargs["pool_size"] = int(os.getenv("SQLALCHEMY_POOL_SIZE", "5"))
            kwargs["max_overflow"] = int(os.getenv("SQLALCHEMY_MAX_OVERFLOW", "10"))
            kwargs["pool_pre_ping"] = bool(int(os.getenv("SQLALCHEMY_POOL_PRE_PING", "1")))

        log.info("Creating DB engine url=%s options=%s", db_url, kwargs)
        _ENGINE = create_engine(db_url, **kwargs)
        return _ENGINE


def dispose_engine() -> None:
    """Close all pooled connections (useful in tests or graceful shutdown)."""
    global _ENGINE
    if _ENGINE is not None:
        _ENGINE.dispose()
        _ENGINE = None


def _split_table_name(table: str) -> tuple[Optional[str], str]:
    if "." in table:
        schema, table_name = table.split(".", 1)
        return schema, table_name
    return None, table


def _reflect_table(engine: Engine, table: str) -> Table:
    schema, table_name = _split_table_name(table)
    md = MetaData()
    try:
        return Table(table_name, md, schema=schema, autoload_with=engine)
    except NoSuchTableError:
        raise UnknownTableError(table) from None


def list_tables(
    engine: Engine,
    hidden_prefixes: Iterable[str] = DEFAULT_HIDDEN_TABLE_PREFIXES,
    schema: Optional[str] = None,
) -> List[str]:
    """Table names the user may pick from, minus internal/hidden ones."""
    prefixes = tuple(hidden_prefixes)
    insp = sa_inspect(engine)
    names = insp.get_table_names(schema=schema)
    return [name for name in names if not (prefixes and name.startswith(prefixes))]


def get_column_types(engine: Engine, table: str) -> Dict[str, str]:
    """
    Return a mapping of column name -> SQL type (as string) for the given table.
    Supports 'schema.table' or just 'table'.
    """
    t = _reflect_table(engine, table)
    return {col.name: str(col.type) for col in t.columns}


def fetch_table_records(engine: Engine, table: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Load every row of ``table`` as a plain dict, ordered by primary key when
    the table has one.
    """
    t = _reflect_table(engine, table)
    stmt = select(t)
    pk_columns = list(t.primary_key.columns)
    if pk_columns:
        stmt = stmt.order_by(*pk_columns)
    if limit is not None:
        stmt = stmt.limit(limit)
    with engine.connect() as conn:
        rows = conn.execute(stmt).mappings().all()
    records = [dict(row) for row in rows]
    log.debug("Fetched %d records from %s", len(records), table)
    return records
