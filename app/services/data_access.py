# app/services/data_access.py
"""
Generic data-access capability used by the endpoint, the portal resolution
route and the dashboard controller.

    insert(table, record)            -> record
    update(table, filters, patch)    -> records
    select(table, filters, ...)      -> records
    subscribe_to_inserts(table, cb)  -> Subscription
    unsubscribe(subscription)

Records are plain dicts; callers validate them into schemas at their own
boundary. Every failure surfaces as DataAccessError.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import inspect as sa_inspect, text
from sqlalchemy.exc import SQLAlchemyError

from app.database import build_engine, build_session_factory, create_tables
from app.errors import DataAccessError
from app.models.emergency_alert import EmergencyAlert
from app.models.site import Site
from app.services.notification_channel import InsertCallback, NotificationChannel, Subscription
from app.utils.logger import get_logger

logger = get_logger(__name__)

TABLES = {
    "sites": Site,
    "emergency_alerts": EmergencyAlert,
}


class DataAccess:
    """Interface implemented by SqlDataAccess and by test doubles."""

    async def ping(self) -> None:
        raise NotImplementedError

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    async def update(self, table: str, filters: dict[str, Any], patch: dict[str, Any]) -> list[dict[str, Any]]:
        raise NotImplementedError

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        expand: Iterable[str] = (),
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        raise NotImplementedError

    def subscribe_to_inserts(self, table: str, callback: InsertCallback) -> Subscription:
        raise NotImplementedError

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        raise NotImplementedError


def _row_to_dict(row) -> dict[str, Any]:
    return {attr.key: getattr(row, attr.key) for attr in sa_inspect(row).mapper.column_attrs}


class SqlDataAccess(DataAccess):
    def __init__(self, session_factory, channel: Optional[NotificationChannel] = None):
        self.session_factory = session_factory
        self.channel = channel or NotificationChannel()

    @classmethod
    def from_url(cls, database_url: str, channel: Optional[NotificationChannel] = None) -> "SqlDataAccess":
        """Build engine + session factory, create tables, and wrap them."""
        engine = build_engine(database_url)
        create_tables(engine)
        return cls(build_session_factory(engine), channel)

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise DataAccessError("lookup", table, "unknown table") from None

    def _column(self, model, table: str, name: str):
        if name not in model.__table__.columns:
            raise DataAccessError("lookup", table, f"unknown column '{name}'")
        return getattr(model, name)

    async def ping(self) -> None:
        db = self.session_factory()
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DataAccessError("ping", "database", str(e), cause=e) from e
        finally:
            db.close()

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        for name in record:
            self._column(model, table, name)

        db = self.session_factory()
        try:
            row = model(**record)
            db.add(row)
            db.commit()
            db.refresh(row)
            data = _row_to_dict(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Insert into {table} failed: {e}")
            raise DataAccessError("insert", table, str(e), cause=e) from e
        finally:
            db.close()

        # Publish only once the row is committed and readable
        await self.channel.publish(table, data)
        return data

    async def update(self, table: str, filters: dict[str, Any], patch: dict[str, Any]) -> list[dict[str, Any]]:
        model = self._model(table)
        for name in list(filters) + list(patch):
            self._column(model, table, name)

        db = self.session_factory()
        try:
            q = db.query(model).filter_by(**filters)
            q.update(patch, synchronize_session=False)
            db.commit()
            return [_row_to_dict(row) for row in db.query(model).filter_by(**filters).all()]
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Update on {table} failed: {e}")
            raise DataAccessError("update", table, str(e), cause=e) from e
        finally:
            db.close()

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        expand: Iterable[str] = (),
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        filters = filters or {}
        for name in filters:
            self._column(model, table, name)
        expand = tuple(expand)
        relations = sa_inspect(model).relationships
        for name in expand:
            if name not in relations:
                raise DataAccessError("select", table, f"unknown relation '{name}'")

        db = self.session_factory()
        try:
            q = db.query(model).filter_by(**filters)
            if order_by:
                column = self._column(model, table, order_by)
                q = q.order_by(column.desc() if descending else column.asc())
            if limit is not None:
                q = q.limit(limit)

            records = []
            for row in q.all():
                data = _row_to_dict(row)
                for name in expand:
                    related = getattr(row, name)
                    data[name] = _row_to_dict(related) if related is not None else None
                records.append(data)
            return records
        except SQLAlchemyError as e:
            logger.error(f"Select on {table} failed: {e}")
            raise DataAccessError("select", table, str(e), cause=e) from e
        finally:
            db.close()

    def subscribe_to_inserts(self, table: str, callback: InsertCallback) -> Subscription:
        self._model(table)
        return self.channel.subscribe(table, callback)

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        self.channel.unsubscribe(subscription)
