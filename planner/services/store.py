import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from planner.core.db import Base, get_db
from planner.core.errors import NotFoundError
from planner.models import Area, Note, Project, Resource, Task, now_ms

logger = logging.getLogger(__name__)

TABLES: dict[str, type[Base]] = {
    "projects": Project,
    "areas": Area,
    "tasks": Task,
    "notes": Note,
    "resources": Resource,
}

# index name -> column, per table
INDEXES: dict[str, dict[str, str]] = {
    "projects": {"by_user": "user_id"},
    "areas": {"by_project": "project_id", "by_user": "user_id"},
    "tasks": {"by_area": "area_id", "by_project": "project_id", "by_user": "user_id"},
    "notes": {"by_area": "area_id", "by_project": "project_id", "by_user": "user_id"},
    "resources": {"by_area": "area_id", "by_project": "project_id", "by_user": "user_id"},
}

PROTECTED_FIELDS = {"id", "user_id", "created_at"}

QueryKey = tuple[str, str, str]


class UnknownIndexError(LookupError):
    pass


def index_column(table: str, index: str) -> str:
    try:
        return INDEXES[table][index]
    except KeyError:
        raise UnknownIndexError(f"No index {index!r} on table {table!r}") from None


def coerce_index_value(table: str, index: str, value: Any) -> Any:
    """Convert a raw (usually path or query string) value to the indexed column's type."""
    name = index_column(table, index)
    column = TABLES[table].__table__.columns[name]
    if column.type.python_type is int and not isinstance(value, int):
        return int(value)
    return value


def query_key(table: str, index: str, value: Any) -> QueryKey:
    return (table, index, str(value))


def as_dict(row: Base) -> dict[str, Any]:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


class EntityStore:
    """
    Table-oriented access over a SQLAlchemy session.

    Writes are flushed immediately so later reads in the same unit of work see
    them; nothing is durable until commit(). The index keys touched by writes
    are collected and handed to the live-query hub after a successful commit.
    """

    def __init__(self, db: Session, hub=None) -> None:
        self.db = db
        self.hub = hub
        self._touched: set[QueryKey] = set()

    def _model(self, table: str) -> type[Base]:
        try:
            return TABLES[table]
        except KeyError:
            raise UnknownIndexError(f"Unknown table {table!r}") from None

    def _keys(self, table: str, row: Base) -> set[QueryKey]:
        keys = set()
        for index, column in INDEXES[table].items():
            value = getattr(row, column)
            if value is not None:
                keys.add(query_key(table, index, value))
        return keys

    def get(self, table: str, record_id: int) -> Base | None:
        return self.db.get(self._model(table), record_id)

    def require(self, table: str, record_id: int) -> Base:
        row = self.get(table, record_id)
        if row is None:
            raise NotFoundError(table, record_id)
        return row

    def insert(self, table: str, **fields: Any) -> Base:
        model = self._model(table)
        fields.setdefault("created_at", now_ms())
        row = model(**fields)
        self.db.add(row)
        self.db.flush()
        self._touched |= self._keys(table, row)
        return row

    def patch(self, table: str, record_id: int, **fields: Any) -> Base:
        row = self.require(table, record_id)
        columns = row.__table__.columns
        for name in fields:
            if name in PROTECTED_FIELDS or name not in columns:
                raise ValueError(f"Field {name!r} cannot be patched on {table}")
        before = self._keys(table, row)
        for name, value in fields.items():
            setattr(row, name, value)
        self.db.flush()
        self._touched |= before | self._keys(table, row)
        return row

    def delete(self, table: str, record_id: int) -> None:
        row = self.require(table, record_id)
        self._touched |= self._keys(table, row)
        self.db.delete(row)
        self.db.flush()

    def query(self, table: str, index: str, value: Any, order: str = "asc") -> list[Base]:
        model = self._model(table)
        column = getattr(model, index_column(table, index))
        if order == "desc":
            ordering = (model.created_at.desc(), model.id.desc())
        else:
            ordering = (model.created_at.asc(), model.id.asc())
        value = coerce_index_value(table, index, value)
        return self.db.query(model).filter(column == value).order_by(*ordering).all()

    def commit(self) -> None:
        self.db.commit()
        touched, self._touched = self._touched, set()
        if self.hub is not None and touched:
            self.hub.publish(touched)

    def rollback(self) -> None:
        self.db.rollback()
        self._touched.clear()

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        try:
            yield self
        except Exception:
            logger.warning("Rolling back transaction", exc_info=True)
            self.rollback()
            raise
        self.commit()


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    from planner.services.live import get_hub

    return EntityStore(db, hub=get_hub())
