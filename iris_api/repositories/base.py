# iris_api/repositories/base.py
"""
Narrow storage interfaces used by the services.

Repositories accept a session from the caller (``db.session`` by default)
and never commit; the service that owns the unit of work commits or rolls
back. Queries use SQLAlchemy 2.0 ``select``/``update`` against the
Flask-SQLAlchemy models.
"""
from __future__ import annotations

from iris_api.extensions import db


class BaseRepository:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def paginate(self, stmt, count_stmt, page: int, size: int):
        total = self.session.scalar(count_stmt) or 0
        offset = (max(page, 1) - 1) * size
        items = list(self.session.scalars(stmt.offset(offset).limit(size)).unique())
        return items, total
