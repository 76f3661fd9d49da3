"""
Entity Store: the persistence boundary for catalog records.

Views and workflows never touch the ORM directly. They get plain record
dicts (with an "id" key) from an EntityStore and hand plain dicts back for
writes. Every SQLAlchemy failure leaves this module as a StoreError.
"""

import logging
from contextlib import contextmanager
from types import MappingProxyType

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from data_models import db, id_in_range, MODELS
from errors import DuplicateError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

EXTENSION_KEY = "entity_stores"

LABELS = {
    "author": "Author",
    "genre": "Genre",
    "book": "Book",
    "bookinstance": "Book Instance",
}


class EntityStore:
    """
    CRUD operations for one model, expressed in record dicts.
    """

    def __init__(self, name: str, model):
        self.name = name
        self.model = model
        self.label = LABELS.get(name, name)

    def __repr__(self):
        return f"EntityStore({self.name!r})"

    @contextmanager
    def _errors(self, operation: str):
        try:
            yield
        except IntegrityError as exc:
            db.session.rollback()
            logger.warning("%s.%s rejected by constraint: %s", self.name, operation, exc.orig)
            raise DuplicateError(f"{self.label} {operation} violates a uniqueness constraint") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"{self.label} {operation} failed") from exc
        except OverflowError as exc:
            db.session.rollback()
            raise StoreError(f"{self.label} {operation} failed: value out of range") from exc

    @staticmethod
    def _matchable(filter) -> bool:
        # An out-of-range int can never equal a stored value.
        return all(id_in_range(value) for value in (filter or {}).values())

    def _order(self, sort):
        if not sort:
            return [self.model.id.asc()]
        if isinstance(sort, str):
            sort = (sort,)

        clauses = []
        for key in sort:
            descending = key.startswith("-")
            column = self.model.column(key.lstrip("-"))
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    def _populate(self, records: list, populate) -> list:
        """
        Swap reference ids for the referenced records.

        A dangling scalar reference becomes None, dangling ids in a list
        are dropped.
        """
        for field in populate:
            target = get_store(self.model.REFERENCES[field])

            wanted = set()
            for record in records:
                value = record[field]
                wanted.update(value if isinstance(value, list) else [value])
            wanted.discard(None)
            found = target.find_many(wanted)

            for record in records:
                value = record[field]
                if isinstance(value, list):
                    record[field] = [found[ref] for ref in value if ref in found]
                else:
                    record[field] = found.get(value)
        return records

    def find_by_id(self, record_id, populate=()):
        """
        Return the record with this id, or None.
        """
        if not id_in_range(record_id):
            return None
        with self._errors("lookup"):
            row = db.session.get(self.model, record_id)
            if row is None:
                return None
            return self._populate([row.to_record()], populate)[0]

    def find_many(self, ids) -> dict:
        """
        Return {id: record} for the ids that exist.
        """
        ids = [record_id for record_id in ids if id_in_range(record_id)]
        if not ids:
            return {}
        with self._errors("lookup"):
            rows = db.session.scalars(db.select(self.model).where(self.model.id.in_(ids))).all()
            return {row.id: row.to_record() for row in rows}

    def find(self, filter=None, fields=None, populate=(), sort=None) -> list:
        """
        Return the records matching every key of the filter.

        Args:
            filter: {field: value}; for list fields (Book.genre) the value
                must be contained in the list.
            fields: optional projection; "id" is always kept.
            populate: reference fields to replace with records.
            sort: field name or names, "-" prefix for descending.
        """
        if not self._matchable(filter):
            return []

        stmt = db.select(self.model)
        for field, value in (filter or {}).items():
            stmt = stmt.where(self.model.filter_clause(field, value))
        stmt = stmt.order_by(*self._order(sort))

        with self._errors("query"):
            rows = db.session.scalars(stmt).all()
            records = self._populate([row.to_record() for row in rows], populate)

        if fields:
            records = [{"id": r["id"], **{f: r[f] for f in fields}} for r in records]
        return records

    def find_one(self, filter):
        if not self._matchable(filter):
            return None
        with self._errors("query"):
            stmt = db.select(self.model)
            for field, value in filter.items():
                stmt = stmt.where(self.model.filter_clause(field, value))
            row = db.session.scalars(stmt.order_by(self.model.id.asc()).limit(1)).first()
            return row.to_record() if row is not None else None

    def find_all(self, sort=None, populate=()) -> list:
        return self.find(sort=sort, populate=populate)

    def count(self, filter=None) -> int:
        if not self._matchable(filter):
            return 0
        stmt = db.select(db.func.count()).select_from(self.model)
        for field, value in (filter or {}).items():
            stmt = stmt.where(self.model.filter_clause(field, value))
        with self._errors("count"):
            return db.session.scalar(stmt)

    def insert(self, record: dict) -> int:
        """
        Store a new record and return its id.
        """
        with self._errors("insert"):
            row = self.model()
            row.apply_record(record)
            db.session.add(row)
            db.session.commit()
            logger.debug("%s %s inserted", self.name, row.id)
            return row.id

    def update_by_id(self, record_id, record: dict) -> dict:
        """
        Replace every field of an existing record.

        Raises:
            NotFoundError: no record has this id.
        """
        if not id_in_range(record_id):
            raise NotFoundError(self.label, record_id)
        with self._errors("update"):
            row = db.session.get(self.model, record_id)
            if row is None:
                raise NotFoundError(self.label, record_id)
            row.apply_record(record)
            db.session.commit()
            logger.debug("%s %s updated", self.name, record_id)
            return row.to_record()

    def remove_by_id(self, record_id) -> bool:
        """
        Delete a record. Returns False when it was already gone.
        """
        if not id_in_range(record_id):
            return False
        with self._errors("delete"):
            row = db.session.get(self.model, record_id)
            if row is None:
                return False
            db.session.delete(row)
            db.session.commit()
            logger.debug("%s %s removed", self.name, record_id)
            return True


def init_stores(app):
    """
    Build the store registry for this app. Must run once, before requests.
    """
    if EXTENSION_KEY in app.extensions:
        raise RuntimeError("Entity stores are already initialised for this app")
    stores = {name: EntityStore(name, model) for name, model in MODELS.items()}
    app.extensions[EXTENSION_KEY] = MappingProxyType(stores)


def get_store(name: str) -> EntityStore:
    """
    Look up a store in the current app's registry.
    """
    try:
        stores = current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("Entity stores are not initialised; call init_stores(app) first") from None

    try:
        return stores[name]
    except KeyError:
        raise RuntimeError(f"Unknown entity store '{name}'") from None
