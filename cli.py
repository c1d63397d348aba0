"""Operational commands: provisioning, sample data, backup/restore and reports.

Usage:
    shopdb create-db
    shopdb apply-schema
    shopdb print-schema --dialect postgresql
    shopdb load-sample-data --users 20 --products 30 --orders 60
    shopdb backup shop-backup.json
    shopdb restore shop-backup.json
    shopdb report top-spenders
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateIndex, CreateTable

import database
from backup import read_backup, write_backup
from config import DATABASE_URL
from errors import ShopError
from logging_config import setup_logging
from models import Base
from sample_data import load_sample_data
from services.report_service import REPORTS, ReportService

logger = logging.getLogger(__name__)

DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


def create_database(url: str) -> bool:
    """
    Create the target PostgreSQL database if it does not exist.

    SQLite files are created on first connect, so nothing happens there.

    Returns:
        True if a database was created
    """
    target = make_url(url)
    if target.get_backend_name() != "postgresql":
        logger.info("No database to create", extra={"backend": target.get_backend_name()})
        return False

    admin_engine = create_engine(target.set(database="postgres"), isolation_level="AUTOCOMMIT")
    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": target.database}
            ).first()
            if exists:
                logger.info("Database already exists", extra={"database": target.database})
                return False
            conn.exec_driver_sql(f'CREATE DATABASE "{target.database}"')
    finally:
        admin_engine.dispose()

    logger.info("Database created", extra={"database": target.database})
    return True


def render_schema(dialect_name: str = "postgresql") -> str:
    """Render the DDL for every table and index as SQL text."""
    dialect = DIALECTS[dialect_name]()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip() + ";")
        for index in sorted(table.indexes, key=lambda ix: ix.name):
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip() + ";")
    return "\n\n".join(statements) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shopdb", description="Shop database operations")
    parser.add_argument(
        "--database-url",
        default=DATABASE_URL,
        help="SQLAlchemy URL of the target database (default: $DATABASE_URL)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("create-db", help="Create the PostgreSQL database if missing")
    commands.add_parser("apply-schema", help="Create tables, constraints and indexes")

    print_schema = commands.add_parser("print-schema", help="Print the DDL")
    print_schema.add_argument("--dialect", choices=sorted(DIALECTS), default="postgresql")

    sample = commands.add_parser("load-sample-data", help="Load Faker generated sample rows")
    sample.add_argument("--users", type=int, default=20)
    sample.add_argument("--products", type=int, default=30)
    sample.add_argument("--orders", type=int, default=60)
    sample.add_argument("--seed", type=int, default=42)

    backup = commands.add_parser("backup", help="Write all tables to a JSON file")
    backup.add_argument("path")

    restore = commands.add_parser("restore", help="Load a JSON backup into an empty schema")
    restore.add_argument("path")

    report = commands.add_parser("report", help="Print a catalog report as JSON")
    report.add_argument("name", choices=REPORTS)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # stdout carries command output; logs go to stderr
    setup_logging(stream=sys.stderr)
    args = build_parser().parse_args(argv)

    if args.command == "print-schema":
        sys.stdout.write(render_schema(args.dialect))
        return 0

    if args.command == "create-db":
        create_database(args.database_url)
        return 0

    engine = database.build_engine(args.database_url)
    try:
        if args.command == "apply-schema":
            database.init_db(bind=engine, seed=False)

        elif args.command == "load-sample-data":
            with Session(bind=engine) as db:
                counts = load_sample_data(
                    db,
                    users=args.users,
                    products=args.products,
                    orders=args.orders,
                    seed=args.seed
                )
            print(json.dumps(counts))

        elif args.command == "backup":
            with open(args.path, "w", encoding="utf-8") as fp:
                write_backup(engine, fp)

        elif args.command == "restore":
            with open(args.path, encoding="utf-8") as fp:
                counts = read_backup(engine, fp)
            print(json.dumps(counts))

        elif args.command == "report":
            with Session(bind=engine) as db:
                rows = ReportService().run(db, args.name)
            print(json.dumps(rows, indent=2, default=str))

    except ShopError as e:
        logger.error("Command failed", extra={"command": args.command, "error": e.message})
        return 1
    finally:
        engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
