"""Dialect-aware INSERT ... ON CONFLICT helpers (PostgreSQL in production, SQLite in tests)."""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def dialect_insert(db: Session, model):
    """insert() construct supporting on_conflict_do_update / on_conflict_do_nothing."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert(model)
    if name == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert not supported for dialect {name}")
