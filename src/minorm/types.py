"""
Column type handling.

This module provides:
- DataType: the closed set of logical column types
- map_type: logical column type -> SQLite storage type
- to_storage: Python values -> stored representation
- from_storage: stored representation -> Python values
"""
import datetime
import logging
from enum import StrEnum
from typing import Any

import dateutil.parser
from minorm.exceptions import TypeConversionError, UnsupportedTypeError

logger = logging.getLogger(__name__)

_isoparser = dateutil.parser.isoparser()


class DataType(StrEnum):
    """Logical column types, independent of storage representation."""

    INTEGER = 'INTEGER'
    STRING = 'STRING'
    BLOB = 'BLOB'
    BOOLEAN = 'BOOLEAN'
    DATE = 'DATE'
    FLOAT = 'FLOAT'
    TIME = 'TIME'
    TIMESTAMP = 'TIMESTAMP'

    @classmethod
    def parse(cls, value: Any) -> 'DataType':
        """Resolve a logical type case-insensitively.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnsupportedTypeError(value) from None


# storage width of the ISO text each temporal type is written as
DATE_SIZE = 10        # YYYY-MM-DD
TIME_SIZE = 12        # HH:MM:SS.mmm
TIMESTAMP_SIZE = 23   # YYYY-MM-DD HH:MM:SS.mmm

_storage_types: dict[DataType, str] = {
    DataType.INTEGER: 'INTEGER',
    DataType.BLOB: 'BLOB',
    DataType.BOOLEAN: 'INTEGER',
    DataType.DATE: f'VARCHAR({DATE_SIZE})',
    DataType.FLOAT: 'REAL',
    DataType.TIME: f'VARCHAR({TIME_SIZE})',
    DataType.TIMESTAMP: f'VARCHAR({TIMESTAMP_SIZE})',
}


def map_type(logical_type: str | DataType, size: int | None = None) -> str:
    """Map a logical column type to its SQLite storage type.

    >>> map_type('string', 20)
    'VARCHAR(20)'
    >>> map_type('STRING')
    'TEXT'
    >>> map_type('boolean')
    'INTEGER'
    """
    data_type = DataType.parse(logical_type)
    if data_type is DataType.STRING:
        return f'VARCHAR({size})' if size else 'TEXT'
    return _storage_types[data_type]


def to_storage(value: Any) -> Any:
    """Convert a single value to its stored representation.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=' ', timespec='milliseconds')
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, datetime.time):
        return value.isoformat(timespec='milliseconds')
    return value


def from_storage(value: Any, logical_type: str | DataType) -> Any:
    """Convert a stored value back to the column's application type.
    """
    if value is None:
        return None

    data_type = DataType.parse(logical_type)
    if data_type is DataType.BOOLEAN:
        return bool(value)
    if not isinstance(value, str):
        return value

    try:
        if data_type is DataType.TIMESTAMP:
            return dateutil.parser.isoparse(value)
        if data_type is DataType.DATE:
            return dateutil.parser.isoparse(value).date()
        if data_type is DataType.TIME:
            return _isoparser.parse_isotime(value)
    except ValueError as err:
        raise TypeConversionError(f'Cannot convert {value!r} to {data_type}: {err}') from err
    return value
