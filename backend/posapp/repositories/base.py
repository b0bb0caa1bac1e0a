# Overview: Generic data-access primitives shared by the per-entity repositories.

from __future__ import annotations

import re
from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..validation import ConflictError

T = TypeVar("T")

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)|Key \((\w+)\)=", re.IGNORECASE)


class BaseRepository(Generic[T]):
    """
    Thin wrapper over a mapped model.

    Repositories flush but never commit: the calling service owns the unit of
    work (see services.concurrency.atomic). Unique-key violations are raised as
    ConflictError naming the column.
    """

    model: type[T]
    unique_fields: tuple[str, ...] = ()

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ---- reads -----------------------------------------------------------

    def find_by_id(self, entity_id: int, *, lock: bool = False) -> T | None:
        if lock:
            q = (
                self.session.query(self.model)
                .filter_by(id=entity_id)
                .with_for_update()
                .populate_existing()
            )
            return q.first()
        return self.session.get(self.model, entity_id)

    def find(self, order_by=None, limit: int | None = None, offset: int | None = None, **criteria) -> list[T]:
        q = self.session.query(self.model).filter_by(**criteria)
        q = q.order_by(*self._ordering(order_by))
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def find_one(self, **criteria) -> T | None:
        return self.session.query(self.model).filter_by(**criteria).first()

    def find_all(self, order_by=None) -> list[T]:
        return self.find(order_by=order_by)

    def count(self, **criteria) -> int:
        return self.session.query(self.model).filter_by(**criteria).count()

    def exists(self, **criteria) -> bool:
        return self.session.query(self.session.query(self.model).filter_by(**criteria).exists()).scalar()

    # ---- writes ----------------------------------------------------------

    def create(self, **fields) -> T:
        entity = self.model(**fields)
        self.session.add(entity)
        self._flush()
        return entity

    def update(self, entity_or_id, **fields) -> T | None:
        entity = self._resolve(entity_or_id)
        if entity is None:
            return None
        for key, value in fields.items():
            setattr(entity, key, value)
        self._flush()
        return entity

    def delete(self, entity_or_id) -> bool:
        entity = self._resolve(entity_or_id)
        if entity is None:
            return False
        self.session.delete(entity)
        self._flush()
        return True

    def delete_where(self, **criteria) -> int:
        deleted = self.session.query(self.model).filter_by(**criteria).delete(synchronize_session="fetch")
        self._flush()
        return deleted

    # ---- raw SQL ---------------------------------------------------------

    def query(self, sql: str, params: dict | None = None) -> list[dict[str, Any]]:
        result = self.session.execute(text(sql), params or {})
        return [dict(row._mapping) for row in result]

    def query_one(self, sql: str, params: dict | None = None) -> dict[str, Any] | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    # ---- helpers ---------------------------------------------------------

    def _ordering(self, order_by) -> Iterable:
        if order_by is None:
            return (self.model.id.asc(),)
        if isinstance(order_by, (list, tuple)):
            return order_by
        return (order_by,)

    def _resolve(self, entity_or_id):
        if isinstance(entity_or_id, self.model):
            return entity_or_id
        return self.session.get(self.model, entity_or_id)

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            field = self._conflicting_field(exc)
            if field is None:
                raise
            raise ConflictError(f"{field} already exists", details={"field": field}) from exc

    def _conflicting_field(self, exc: IntegrityError) -> str | None:
        message = str(exc.orig) if exc.orig is not None else str(exc)
        match = _UNIQUE_RE.search(message)
        if match:
            field = match.group(1) or match.group(2)
            if field in self.unique_fields:
                return field
        for field in self.unique_fields:
            if field in message and "unique" in message.lower():
                return field
        return None
