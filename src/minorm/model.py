"""
Table-bound record access.

A model pairs a table schema with a dataclass record type:

    @dataclass
    class User:
        id: int | None = None
        email: str | None = None
        active: bool = True

    class Users(Model):
        table = 'users'
        columns = (primary_integer('id'), string('email', 60, **Options), boolean('active'))
        record = User

    users = Users(db)
    user = users.insert(User(email='a@b.com'))

Records map to and from adapter rows through ``to_values`` and
``to_record``: dataclass field names are matched to declared column names,
fields without a column are ignored in both directions.
"""
import dataclasses
import logging
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from minorm.columns import Column, column_map
from minorm.connection import Database
from minorm.criteria import Condition
from minorm.exceptions import NotConnectedError, ValidationError
from minorm.hooks import Hooks
from minorm.utils import normalize_name

__all__ = ['Model']

logger = logging.getLogger(__name__)


class Model:
    """Base class for table models.

    Subclasses set ``table``, ``columns`` and ``record`` (a dataclass);
    ``hooks`` optionally intercepts inserts, updates and deletes.
    """

    table: ClassVar[str] = None
    columns: ClassVar[Sequence[Column]] = ()
    record: ClassVar[type] = None
    hooks: ClassVar[Hooks | None] = None

    def __init__(self, db: Database) -> None:
        if not self.table or not self.columns:
            raise ValidationError(f'{type(self).__name__} must declare table and columns')
        if self.record is None or not dataclasses.is_dataclass(self.record):
            raise ValidationError(f'{type(self).__name__}.record must be a dataclass')
        if db is None or not db.connected:
            raise NotConnectedError(f'{type(self).__name__}.__init__')
        self.db = db

    def to_values(self, record: Any, skip_none: bool = False) -> dict[str, Any]:
        """Map a record to adapter values keyed by declared column name.
        """
        by_name = column_map(self.columns)
        values = {}
        for field in dataclasses.fields(record):
            col = by_name.get(normalize_name(field.name))
            if col is None:
                continue
            value = getattr(record, field.name)
            if skip_none and value is None:
                continue
            values[col.name] = value
        return values

    def to_record(self, row: Mapping[str, Any] | None) -> Any:
        """Map an adapter row to a record, or None for no row.
        """
        if row is None:
            return None
        by_key = {normalize_name(k): v for k, v in row.items()}
        kwargs = {}
        for field in dataclasses.fields(self.record):
            key = normalize_name(field.name)
            if key in by_key:
                kwargs[field.name] = by_key[key]
        return self.record(**kwargs)

    def create_table(self) -> bool:
        return self.db.create_table(self.table, self.columns)

    def drop_table(self) -> bool:
        return self.db.drop_table(self.table)

    def find_by_id(self, id: Any) -> Any:
        return self.to_record(self.db.find_by_id(self.table, self.columns, id))

    def find_by_column(self, name: str, value: Any) -> Any:
        return self.to_record(self.db.find_by_column(self.table, self.columns, name, value))

    def find_one(self, criteria: str | Condition | Mapping[str, Any] | None = None,
                 params: Mapping[str, Any] | None = None) -> Any:
        return self.to_record(self.db.find_one(self.table, self.columns, criteria, params))

    def find_many(self, criteria: str | Condition | Mapping[str, Any] | None = None,
                  params: Mapping[str, Any] | None = None, limit: int | None = None,
                  offset: int | None = None) -> list[Any]:
        rows = self.db.find_many(self.table, self.columns, criteria, params,
                                 limit=limit, offset=offset)
        return [self.to_record(row) for row in rows]

    def insert(self, record: Any) -> Any:
        """Insert a record; unset (None) fields are left to the database.
        """
        row = self.db.insert(self.table, self.columns,
                             self.to_values(record, skip_none=True), self.hooks)
        return self.to_record(row)

    def update(self, record: Any) -> Any:
        row = self.db.update(self.table, self.columns, self.to_values(record), self.hooks)
        return self.to_record(row)

    def delete(self, id: Any) -> bool:
        if id is None:
            raise ValidationError(f'No id provided to {type(self).__name__}.delete()')
        return self.db.delete(self.table, id, self.hooks, columns=self.columns)
