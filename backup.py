"""Dialect-neutral JSON backup and restore of the shop tables."""
import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, IO

from sqlalchemy import DateTime, Numeric, func, select
from sqlalchemy.engine import Engine

from errors import ConflictError
from models import Base

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = 1


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _decode(column, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(column.type, Numeric):
        return Decimal(value)
    if isinstance(column.type, DateTime):
        return datetime.fromisoformat(value)
    return value


def dump_tables(engine: Engine) -> Dict[str, Any]:
    """Read every table into a JSON-ready document, parents before children."""
    document = {
        "version": BACKUP_FORMAT_VERSION,
        "created_at": datetime.utcnow().isoformat(),
        "tables": {},
    }
    with engine.connect() as conn:
        for table in Base.metadata.sorted_tables:
            rows = conn.execute(select(table).order_by(*table.primary_key.columns)).mappings()
            document["tables"][table.name] = [
                {key: _encode(value) for key, value in row.items()}
                for row in rows
            ]
    logger.info("Backup taken", extra={
        "rows": {name: len(rows) for name, rows in document["tables"].items()}
    })
    return document


def write_backup(engine: Engine, fp: IO[str]) -> Dict[str, Any]:
    document = dump_tables(engine)
    json.dump(document, fp, indent=2)
    return document


def restore_tables(engine: Engine, document: Dict[str, Any]) -> Dict[str, int]:
    """
    Load a backup document into an empty schema in one transaction.

    Raises:
        ValueError: If the document format version is unknown
        ConflictError: If any target table already holds rows
    """
    if document.get("version") != BACKUP_FORMAT_VERSION:
        raise ValueError(f"Unsupported backup version: {document.get('version')!r}")

    counts = {}
    with engine.begin() as conn:
        for table in Base.metadata.sorted_tables:
            existing = conn.execute(select(func.count()).select_from(table)).scalar_one()
            if existing:
                raise ConflictError(
                    f"Table {table.name} is not empty; restore needs a fresh schema",
                    code="restore_target_not_empty"
                )

        for table in Base.metadata.sorted_tables:
            rows = [
                {key: _decode(table.c[key], value) for key, value in row.items()}
                for row in document["tables"].get(table.name, [])
            ]
            if rows:
                conn.execute(table.insert(), rows)
            counts[table.name] = len(rows)

        if conn.dialect.name == "postgresql":
            # Explicit ids were inserted; move each serial past them
            for table in Base.metadata.sorted_tables:
                conn.exec_driver_sql(
                    f"SELECT setval(pg_get_serial_sequence('{table.name}', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM {table.name}), 0) + 1, false)"
                )

    logger.info("Backup restored", extra={"rows": counts})
    return counts


def read_backup(engine: Engine, fp: IO[str]) -> Dict[str, int]:
    return restore_tables(engine, json.load(fp))
