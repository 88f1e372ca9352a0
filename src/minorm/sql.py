"""
SQL statement synthesis.

This module builds statement text from a table name plus column metadata:
- DDL: create_table, drop_table
- DML: insert, update, delete, find_by_id, select
- standardize_bind_tokens: rewrite generated bind tokens into the form the
  SQLite driver binds by name

All identifiers and bind tokens are uppercased with ``normalize_name``.
"""
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from minorm.columns import Column, primary_key
from minorm.exceptions import MissingIdentifierError, NoColumnsError
from minorm.types import DataType, map_type, to_storage
from minorm.utils import normalize_name

__all__ = [
    'create_table',
    'drop_table',
    'insert',
    'update',
    'delete',
    'find_by_id',
    'select',
    'limit_clause',
    'column_definition',
    'index_name',
    'standardize_bind_tokens',
    'merge_params',
]

logger = logging.getLogger(__name__)

_NOW_DEFAULTS = {
    DataType.DATE: "(DATE('now'))",
    DataType.TIME: "(TIME('now'))",
}

# sqlite only binds names made of identifier characters
_OPERATOR_SUFFIXES = {'>=': 'GE', '<=': 'LE', '>': 'GT', '<': 'LT'}

_PATTERNS = {
    'literal': re.compile(r"""('(?:[^']|'')*'|"(?:[^"]|"")*")"""),
    'bind_token': re.compile(r'(?<![\w@:$])[@:$]([A-Za-z_]\w*?)(?:_(>=|<=|>|<))?(?!\w)'),
    'param_key': re.compile(r'^(\w*?)_(>=|<=|>|<)$'),
}


def _quote_literal(value: Any) -> str:
    """Render a literal default value as a quoted SQL string."""
    text = str(to_storage(value))
    return "'{}'".format(text.replace("'", "''"))


def _default_clause(col: Column) -> str:
    if col.default is None:
        if col.auto and col.type is DataType.TIMESTAMP:
            return ' DEFAULT CURRENT_TIMESTAMP'
        return ''
    if col.default == 'now':
        return f" DEFAULT {_NOW_DEFAULTS.get(col.type, 'CURRENT_TIMESTAMP')}"
    if col.default == 'today':
        return " DEFAULT (DATE('now'))"
    return f' DEFAULT {_quote_literal(col.default)}'


def _primary_key_definition(col: Column) -> str:
    storage = 'INTEGER' if col.type is DataType.INTEGER else map_type(col.type, col.size)
    definition = f'{col.key} {storage} PRIMARY KEY'
    if col.auto and col.type is DataType.INTEGER:
        return f'{definition} AUTOINCREMENT'
    return f'{definition} NOT NULL'


def column_definition(col: Column) -> str:
    """Render one non-key column for CREATE TABLE.

    >>> from minorm.columns import string
    >>> column_definition(string('email', 60, required=True, unique=True))
    'EMAIL VARCHAR(60) NOT NULL UNIQUE'
    """
    definition = f'{col.key} {map_type(col.type, col.size)}'
    if col.required:
        definition += ' NOT NULL'
    definition += _default_clause(col)
    if col.unique:
        definition += ' UNIQUE'
    return definition


def index_name(table: str, column: str) -> str:
    """Deterministic index name for a table column.
    """
    return f'IDX_{normalize_name(table)}_{normalize_name(column)}'


def create_table(table: str, columns: Sequence[Column]) -> list[str]:
    """Generate the DDL statements for a table and its indexes.

    The CREATE TABLE statement comes first, followed by one CREATE INDEX
    statement per indexed column.
    """
    table_name = normalize_name(table)
    key = primary_key(columns)

    definitions = []
    if key is not None:
        definitions.append(_primary_key_definition(key))
    definitions.extend(column_definition(col) for col in columns if col is not key)

    body = ',\n'.join(f'  {d}' for d in definitions)
    statements = [f'CREATE TABLE IF NOT EXISTS {table_name} (\n{body}\n);']

    for col in columns:
        if not col.indexed:
            continue
        unique = ' UNIQUE' if col.unique else ''
        statements.append(
            f'CREATE{unique} INDEX IF NOT EXISTS {index_name(table, col.name)} '
            f'ON {table_name}({col.key});')

    return statements


def drop_table(table: str) -> str:
    """Generate a DROP TABLE statement.
    """
    return f'DROP TABLE IF EXISTS {normalize_name(table)};'


def insert(table: str, values: Mapping[str, Any]) -> str:
    """Generate an INSERT statement with one named bind token per key.
    """
    if not values:
        raise NoColumnsError(f'No valid columns to insert into {table}')
    cols = [normalize_name(k) for k in values]
    return (f"INSERT INTO {normalize_name(table)} ({', '.join(cols)}) "
            f"VALUES ({', '.join(f'@{c}' for c in cols)});")


def update(table: str, values: Mapping[str, Any], key: str = 'id') -> str:
    """Generate an UPDATE statement keyed by the row identifier.

    The identifier must be present (and not None) in ``values``; it is
    excluded from the SET list.
    """
    key_name = normalize_name(key)
    normalized = {normalize_name(k): v for k, v in values.items()}
    if normalized.get(key_name) is None:
        raise MissingIdentifierError(f'The {key!r} value must be provided to update {table}')

    sets = [f'{c} = @{c}' for c in normalized if c != key_name]
    if not sets:
        raise NoColumnsError(f'No valid columns to update in {table}')
    return (f"UPDATE {normalize_name(table)} SET {', '.join(sets)} "
            f'WHERE {key_name} = @{key_name};')


def delete(table: str, key: str = 'id') -> str:
    """Generate a DELETE statement keyed by the row identifier.
    """
    key_name = normalize_name(key)
    return f'DELETE FROM {normalize_name(table)} WHERE {key_name} = @{key_name};'


def find_by_id(table: str, key: str = 'id') -> str:
    """Generate a SELECT for one row keyed by the row identifier.
    """
    key_name = normalize_name(key)
    return f'SELECT * FROM {normalize_name(table)} WHERE {key_name} = @{key_name};'


def select(table: str, where: str | None = None, limit: int | None = None,
           offset: int | None = None) -> str:
    """Generate a SELECT statement.

    Args:
        table: Table name
        where: WHERE fragment (without the 'WHERE' keyword)
        limit: LIMIT value
        offset: OFFSET value

    Returns
        SQL query string
    """
    sql = f'SELECT * FROM {normalize_name(table)}'

    if where and where.strip():
        sql += f' WHERE {where}'

    return limit_clause(sql, limit, offset)


def limit_clause(statement: str, limit: int | None = None, offset: int | None = None) -> str:
    """Append LIMIT/OFFSET to a statement.

    >>> limit_clause('SELECT * FROM USERS;', offset=5)
    'SELECT * FROM USERS LIMIT -1 OFFSET 5'
    """
    statement = statement.rstrip().rstrip(';')

    # sqlite only accepts OFFSET after a LIMIT
    if limit is not None:
        statement += f' LIMIT {int(limit)}'
    elif offset:
        statement += ' LIMIT -1'

    if offset:
        statement += f' OFFSET {int(offset)}'

    return statement


def _token_name(name: str, operator: str | None = None) -> str:
    token = normalize_name(name)
    if operator:
        token = f'{token}_{_OPERATOR_SUFFIXES[operator]}'
    return token


def _param_name(key: str) -> str:
    match = _PATTERNS['param_key'].match(str(key).strip())
    if match:
        return _token_name(*match.groups())
    return normalize_name(key)


def standardize_bind_tokens(statement: str, params: Mapping[str, Any] | None = None) -> tuple[str, dict[str, Any]]:
    """Rewrite bind tokens and parameter keys into driver-bindable names.

    ``@name``, ``:name`` and ``$name`` tokens become ``:NAME``; tokens carrying
    an ordering-operator suffix (``@AGE_>``) become ``:AGE_GT`` and friends.
    Quoted literals are left untouched. Parameter keys are normalized the same
    way and their values converted with ``to_storage``.

    >>> standardize_bind_tokens('AGE > @AGE_> AND name = :name', {'age_>': 1, 'Name': 'x'})
    ('AGE > :AGE_GT AND name = :NAME', {'AGE_GT': 1, 'NAME': 'x'})
    """
    parts = _PATTERNS['literal'].split(statement)
    for i in range(0, len(parts), 2):
        parts[i] = _PATTERNS['bind_token'].sub(
            lambda m: f':{_token_name(m.group(1), m.group(2))}', parts[i])

    converted = {_param_name(k): to_storage(v) for k, v in (params or {}).items()}
    return ''.join(parts), converted


def merge_params(defaults: Mapping[str, Any], params: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Overlay caller params on generated bind values, keys compared normalized.

    >>> merge_params({'AGE_>': 30, 'ACTIVE': True}, {'age_>': 50})
    {'AGE_GT': 50, 'ACTIVE': True}
    """
    merged = {_param_name(k): v for k, v in defaults.items()}
    merged.update({_param_name(k): v for k, v in (params or {}).items()})
    return merged
