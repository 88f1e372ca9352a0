"""
Column descriptors and table schema helpers.

A table schema is a table name plus an ordered sequence of ``Column``
descriptors. Descriptors are immutable; the factory functions below build
the common shapes.
"""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from minorm.exceptions import ValidationError
from minorm.types import DATE_SIZE, TIME_SIZE, TIMESTAMP_SIZE, DataType
from minorm.utils import normalize_name

__all__ = [
    'Column',
    'Options',
    'column_map',
    'identifier_name',
    'primary_key',
    'primary_integer',
    'primary_string',
    'primary_uuid',
    'blob',
    'boolean',
    'date',
    'float_',
    'integer',
    'string',
    'time',
    'timestamp',
]

UUID_SIZE = 36

# keyword shortcuts, e.g. string('email', 60, **Options)
Options = {'required': True, 'indexed': True, 'unique': True}


@dataclass(frozen=True)
class Column:
    """Declarative column metadata."""

    name: str
    type: DataType
    size: int | None = None
    required: bool = False
    indexed: bool = False
    unique: bool = False
    primary_key: bool = False
    auto: bool = False
    default: Any = None

    def __post_init__(self):
        if not self.name:
            raise ValidationError('Column name must not be empty')
        object.__setattr__(self, 'type', DataType.parse(self.type))
        if self.size is not None and (not isinstance(self.size, int) or self.size <= 0):
            raise ValidationError(f'Size must be a positive integer (column {self.name}, got {self.size!r})')

    @property
    def key(self) -> str:
        """Normalized name used for lookups and generated SQL."""
        return normalize_name(self.name)


def column_map(columns: Iterable[Column]) -> dict[str, Column]:
    """Key column descriptors by normalized name.
    """
    return {col.key: col for col in columns}


def primary_key(columns: Sequence[Column]) -> Column | None:
    """Return the primary-key column, or None if the table declares none.
    """
    keys = [col for col in columns if col.primary_key]
    if len(keys) > 1:
        names = ', '.join(col.name for col in keys)
        raise ValidationError(f'At most one primary key per table (got {names})')
    return keys[0] if keys else None


def identifier_name(columns: Sequence[Column]) -> str:
    """Name of the row identifier column, ``id`` when none is declared.
    """
    key = primary_key(columns) if columns else None
    return key.name if key else 'id'


def primary_integer(name: str, auto: bool = True) -> Column:
    return Column(name, DataType.INTEGER, primary_key=True, auto=auto)


def primary_string(name: str, size: int | None = None) -> Column:
    return Column(name, DataType.STRING, size=size, primary_key=True)


def primary_uuid(name: str, auto: bool = True) -> Column:
    """String primary key sized for a UUID; ``auto`` assigns a uuid4 on insert.
    """
    return Column(name, DataType.STRING, size=UUID_SIZE, required=True,
                  primary_key=True, auto=auto)


def blob(name: str, required: bool = False) -> Column:
    return Column(name, DataType.BLOB, required=required)


def boolean(name: str, required: bool = False, indexed: bool = False,
            unique: bool = False, default: Any = None) -> Column:
    return Column(name, DataType.BOOLEAN, required=required, indexed=indexed,
                  unique=unique, default=default)


def date(name: str, required: bool = False, indexed: bool = False,
         unique: bool = False, primary_key: bool = False, auto: bool = False,
         default: Any = None) -> Column:
    return Column(name, DataType.DATE, size=DATE_SIZE, required=required,
                  indexed=indexed, unique=unique, primary_key=primary_key,
                  auto=auto, default=default)


def float_(name: str, required: bool = False, indexed: bool = False,
           unique: bool = False, default: Any = None) -> Column:
    return Column(name, DataType.FLOAT, required=required, indexed=indexed,
                  unique=unique, default=default)


def integer(name: str, required: bool = False, indexed: bool = False,
            unique: bool = False, default: Any = None) -> Column:
    return Column(name, DataType.INTEGER, required=required, indexed=indexed,
                  unique=unique, default=default)


def string(name: str, size: int | None = None, required: bool = False,
           indexed: bool = False, unique: bool = False, default: Any = None) -> Column:
    return Column(name, DataType.STRING, size=size, required=required,
                  indexed=indexed, unique=unique, default=default)


def time(name: str, required: bool = False, indexed: bool = False,
         unique: bool = False, default: Any = None) -> Column:
    return Column(name, DataType.TIME, size=TIME_SIZE, required=required,
                  indexed=indexed, unique=unique, default=default)


def timestamp(name: str, required: bool = False, indexed: bool = False,
              unique: bool = False, auto: bool = False, default: Any = None) -> Column:
    """Timestamp column; ``auto`` lets the database assign the current time.
    """
    return Column(name, DataType.TIMESTAMP, size=TIMESTAMP_SIZE, required=required,
                  indexed=indexed, unique=unique, auto=auto, default=default)
