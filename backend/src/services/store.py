"""
Table store used by the lifecycle engine and the display.

TableStore is a thin record-level view over one model: it reads rows as
plain dicts (model.to_record()) and writes through ORM objects, so every
write is seen by the change feed exactly as an API write would be.

Each call opens and closes its own session. Failures are rolled back and
surface as StoreError so background loops can log and retry on the next
tick instead of crashing.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.db.database import SessionLocal
from backend.src.services.exceptions import StoreError
from backend.src.utils.logging_config import get_logger


logger = get_logger("db")


class TableStore:
    """
    Record-level access to one table.

    Usage:
        >>> store = TableStore(Event)
        >>> rows = store.select_all(order_by="cue_order")
        >>> store.update({"status": "in_progress"}, guid=rows[0]["guid"])
    """

    def __init__(self, model, session_factory: Callable[[], Session] = SessionLocal):
        self.model = model
        self.session_factory = session_factory

    @property
    def table(self) -> str:
        return self.model.__tablename__

    def _match_filters(self, query, match: Dict[str, Any]):
        for field, value in match.items():
            if field == "guid":
                try:
                    uuid_value = self.model.parse_guid(value)
                except ValueError:
                    return None
                query = query.filter(self.model.uuid == uuid_value)
            else:
                query = query.filter(getattr(self.model, field) == value)
        return query

    def select_all(self, order_by: Optional[str] = None, descending: bool = False) -> List[Dict[str, Any]]:
        """
        Read every row as a plain dict.

        Args:
            order_by: Column name to sort by (ties broken by id)
            descending: Reverse the sort

        Raises:
            StoreError: If the read fails
        """
        session = self.session_factory()
        try:
            query = session.query(self.model)
            if order_by:
                column = getattr(self.model, order_by)
                query = query.order_by(column.desc() if descending else column.asc(), self.model.id)
            else:
                query = query.order_by(self.model.id)
            return [obj.to_record() for obj in query.all()]
        except SQLAlchemyError as e:
            logger.error(f"select on {self.table} failed: {e}")
            raise StoreError("select", self.table, e) from e
        finally:
            session.close()

    def insert(self, records: Iterable[Dict[str, Any]]) -> List[str]:
        """
        Insert rows in one transaction.

        Returns:
            GUIDs of the inserted rows, in input order

        Raises:
            StoreError: If the insert fails (nothing is written)
        """
        session = self.session_factory()
        try:
            objects = [self.model(**record) for record in records]
            session.add_all(objects)
            session.commit()
            return [obj.guid for obj in objects]
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"insert into {self.table} failed: {e}")
            raise StoreError("insert", self.table, e) from e
        finally:
            session.close()

    def update(self, values: Dict[str, Any], **match: Any) -> List[Dict[str, Any]]:
        """
        Set fields on every row matching all of the given field values.

        Args:
            values: Field values to write
            **match: Equality filters; guid is accepted for models with a GUID

        Returns:
            The updated rows as dicts (empty if nothing matched)

        Raises:
            StoreError: If the update fails (nothing is written)
        """
        if not match:
            raise ValueError("update requires at least one match field")

        session = self.session_factory()
        try:
            query = self._match_filters(session.query(self.model), match)
            if query is None:
                return []
            objects = query.all()
            for obj in objects:
                for field, value in values.items():
                    setattr(obj, field, value)
            session.commit()
            return [obj.to_record() for obj in objects]
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"update on {self.table} failed: {e}")
            raise StoreError("update", self.table, e) from e
        finally:
            session.close()

    def delete(self, guid: str) -> bool:
        """
        Delete a row by GUID.

        Returns:
            True if a row was deleted

        Raises:
            StoreError: If the delete fails
        """
        session = self.session_factory()
        try:
            query = self._match_filters(session.query(self.model), {"guid": guid})
            obj = query.first() if query is not None else None
            if obj is None:
                return False
            session.delete(obj)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"delete on {self.table} failed: {e}")
            raise StoreError("delete", self.table, e) from e
        finally:
            session.close()
