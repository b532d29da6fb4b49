#!/usr/bin/env python3
"""
Create the MiniDrive tables on the configured database.

Local development only; deployed databases go through ``flask db upgrade``.
Service names restrict the hosted set, e.g. ``python init_db.py identity quota``.
"""
import sys

from sqlalchemy import inspect

from app import create_app
from extensions import db
import models  # noqa: F401  registers every model with SQLAlchemy


def init_database(services=None):
    app = create_app(services or None)
    hosted = app.config["MINIDRIVE_HOSTED_SERVICES"]
    if hosted == ["gateway"]:
        print("The gateway keeps no database.")
        return []

    with app.app_context():
        db.create_all()
        tables = sorted(inspect(db.engine).get_table_names())

    print(f"Database ready for {', '.join(hosted)} ({len(tables)} tables):")
    for name in tables:
        print(f"  - {name}")
    return tables


if __name__ == "__main__":
    init_database(sys.argv[1:])
