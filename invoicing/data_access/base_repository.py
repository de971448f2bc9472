# invoicing/data_access/base_repository.py

import sqlite3
import logging
from dataclasses import fields, MISSING
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union, TYPE_CHECKING

from invoicing.constants import DATETIME_FORMAT, DATE_FORMAT, MONEY_QUANTUM
from invoicing.data_access.database_manager import DatabaseManager

if TYPE_CHECKING:
    from invoicing.business_logic.entities.base_entity import BaseEntity

logger = logging.getLogger(__name__)

T = TypeVar('T', bound='BaseEntity')


def to_db_value(value: Any) -> Any:
    """Converts an entity attribute to the value SQLite stores."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return value


class BaseRepository(Generic[T]):
    """
    Maps one table to one entity dataclass.

    Persisted columns are the entity's init fields except `id` and fields
    declared with metadata={"persist": False} (related records filled in on read).
    Every method takes an optional `conn` so that it can join a transaction
    opened by DatabaseManager.transaction().
    """

    def __init__(self, db_manager: DatabaseManager, model_type: Type[T], table_name: str):
        self.db_manager = db_manager
        self.model_type = model_type
        self._table_name = table_name
        self._db_columns = [
            f.name for f in fields(model_type)
            if f.init and f.name != 'id' and f.metadata.get('persist', True)
        ]
        logger.debug(f"BaseRepository for {self._table_name} initialized. Columns: {self._db_columns}")

    def get_by_id(self, entity_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[T]:
        query = f"SELECT * FROM {self._table_name} WHERE id = ?"
        row = self.db_manager.fetch_one(query, (entity_id,), conn=conn)
        return self._entity_from_row(dict(row)) if row else None

    def get_all(self, order_by: Optional[str] = None, conn: Optional[sqlite3.Connection] = None) -> List[T]:
        query = f"SELECT * FROM {self._table_name}"
        if order_by:
            query += f" ORDER BY {order_by}"
        return self._fetch_entities(query, (), conn=conn)

    def _fetch_entities(self, query: str, params: Sequence[Any],
                        conn: Optional[sqlite3.Connection] = None) -> List[T]:
        rows = self.db_manager.fetch_all(query, params, conn=conn)
        return [self._entity_from_row(dict(row)) for row in rows]

    def _entity_to_dict_for_db(self, entity: T) -> Dict[str, Any]:
        return {col: to_db_value(getattr(entity, col)) for col in self._db_columns}

    def add(self, entity: T, conn: Optional[sqlite3.Connection] = None) -> T:
        fields_to_insert = self._entity_to_dict_for_db(entity)
        columns = ', '.join(fields_to_insert.keys())
        placeholders = ', '.join(['?'] * len(fields_to_insert))
        query = f"INSERT INTO {self._table_name} ({columns}) VALUES ({placeholders})"

        logger.debug(f"BaseRepository.add: Values for INSERT into {self._table_name}: {tuple(fields_to_insert.values())}")
        cursor = self.db_manager.execute_query(query, tuple(fields_to_insert.values()), conn=conn)
        entity.id = cursor.lastrowid
        logger.debug(f"BaseRepository.add: Entity ID set to {entity.id} after insert.")
        return entity

    def update_fields(self, entity_id: int, values: Dict[str, Any],
                      conn: Optional[sqlite3.Connection] = None) -> bool:
        """Updates only the given columns. Returns False when no row has this id."""
        unknown = [key for key in values if key not in self._db_columns]
        if unknown:
            raise ValueError(f"Unknown columns for {self._table_name}: {unknown}")
        if not values:
            return self.get_by_id(entity_id, conn=conn) is not None

        set_clause = ', '.join(f"{key} = ?" for key in values)
        params = [to_db_value(v) for v in values.values()] + [entity_id]
        query = f"UPDATE {self._table_name} SET {set_clause} WHERE id = ?"
        logger.debug(f"BaseRepository.update_fields: Query: {query}, Values: {params}")
        cursor = self.db_manager.execute_query(query, params, conn=conn)
        return cursor.rowcount > 0

    def delete(self, entity_id: int, conn: Optional[sqlite3.Connection] = None) -> bool:
        query = f"DELETE FROM {self._table_name} WHERE id = ?"
        cursor = self.db_manager.execute_query(query, (entity_id,), conn=conn)
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Row ID {entity_id} deleted from {self._table_name}.")
        return deleted

    def _entity_from_row(self, row: Dict[str, Any]) -> T:
        """
        Builds the entity dataclass from a row dict, converting SQLite's
        storage types back to the annotated field types.
        """
        entity_data: Dict[str, Any] = {}

        for f in fields(self.model_type):
            if not f.init or not f.metadata.get('persist', True):
                continue

            field_name = f.name
            field_type = f.type
            value_from_db = row.get(field_name)

            if value_from_db is None:
                if f.default is MISSING and f.default_factory is MISSING:
                    is_optional = getattr(field_type, '__origin__', None) is Union and type(None) in getattr(field_type, '__args__', [])
                    if not is_optional:
                        raise ValueError(
                            f"Database integrity error: NULL value found for required field '{field_name}' "
                            f"in table '{self._table_name}' for row: {row}"
                        )
                entity_data[field_name] = None
                continue

            actual_type = field_type
            if getattr(field_type, '__origin__', None) is Union:
                possible_types = [arg for arg in getattr(field_type, '__args__', []) if arg is not type(None)]
                if possible_types:
                    actual_type = possible_types[0]

            if isinstance(actual_type, type) and issubclass(actual_type, Enum):
                entity_data[field_name] = actual_type(value_from_db)
            elif actual_type == Decimal:
                entity_data[field_name] = Decimal(str(value_from_db)).quantize(MONEY_QUANTUM)
            elif actual_type == datetime and isinstance(value_from_db, str):
                entity_data[field_name] = datetime.strptime(value_from_db, DATETIME_FORMAT)
            elif actual_type == date and isinstance(value_from_db, str):
                entity_data[field_name] = datetime.strptime(value_from_db, DATE_FORMAT).date()
            elif actual_type == bool and isinstance(value_from_db, int):
                entity_data[field_name] = bool(value_from_db)
            elif actual_type == int:
                entity_data[field_name] = int(value_from_db)
            else:
                entity_data[field_name] = value_from_db

        try:
            return self.model_type(**entity_data)
        except TypeError as e:
            logger.error(f"Failed to instantiate {self.model_type.__name__}. Error: {e}. Data passed: {entity_data}")
            raise
