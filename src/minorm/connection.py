"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `Database` class, the persistence adapter that owns one SQLite
   connection and runs the statements built by `minorm.sql` and
   `minorm.criteria`
2. The `connect()` function for creating connected `Database` instances
3. URL and engine creation from `DatabaseOptions`, including the SQLCipher
   passthrough for encrypted storage files

The Database provides:
- create_table / drop_table
- insert / update / delete, returning re-read rows
- find_by_id / find_by_column / find_one / find_many
- execute / query escape hatches for arbitrary statements

Values are coerced on the way in (booleans to 0/1, dates to ISO text) and
back on the way out, with row keys restored to the declared column names.
"""
import dataclasses
import datetime
import logging
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Self

import sqlalchemy as sa
from minorm import sql
from minorm.columns import Column, column_map, identifier_name, primary_key
from minorm.criteria import Comparison, Condition, bind_values
from minorm.criteria import compile_criteria
from minorm.exceptions import ConnectError, InsertFailedError
from minorm.exceptions import IntegrityViolationError, MissingIdentifierError
from minorm.exceptions import NotConnectedError, QueryError, UpdateFailedError
from minorm.hooks import Hooks
from minorm.options import DatabaseOptions
from minorm.types import DataType, from_storage, to_storage
from minorm.utils import normalize_name
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import attrdict, load_options

__all__ = [
    'Database',
    'connect',
    'create_url_from_options',
    'create_engine_for_options',
]

logger = logging.getLogger(__name__)

CREATED_AT = 'CREATED_AT'
UPDATED_AT = 'UPDATED_AT'
ROWID = 'ROWID'

_no_hooks = Hooks()


def create_url_from_options(options: DatabaseOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.

    Encrypted files go through the SQLCipher dialect, which takes the key
    as the URL password and the cipher as a query pragma.
    """
    if options.encrypted:
        query = {'cipher': options.cipher} if options.cipher else {}
        return url_creator(
            drivername='sqlite+pysqlcipher',
            password=options.key,
            database=options.filename,
            query=query
        )

    return url_creator(
        drivername='sqlite',
        database=options.filename
    )


def create_engine_for_options(options: DatabaseOptions,
                              engine_factory: Callable[..., Engine] = sa.create_engine,
                              **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine for the given options.

    Each Database holds exactly one connection, so no pooling is used.
    """
    url = create_url_from_options(options)
    engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
    engine_kwargs.update(kwargs)
    return engine_factory(url, **engine_kwargs)


def _now() -> datetime.datetime:
    # naive UTC, the same clock as CURRENT_TIMESTAMP
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Database:
    """Persistence adapter over one SQLite connection.

    A Database starts disconnected; `connect` opens the storage file and
    `disconnect` closes it. Every other operation requires a connection and
    raises NotConnectedError otherwise.

    Statements run one at a time under a per-instance lock, in autocommit
    mode: each statement is committed as soon as it completes.
    """

    def __init__(self, logging: bool = False) -> None:
        self.options: DatabaseOptions | None = None
        self._engine: Engine | None = None
        self._connection: sa.engine.Connection | None = None
        self._logging = logging
        self._lock = threading.RLock()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.disconnect()

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def logging(self) -> bool:
        """When set, every statement is logged at INFO before it runs."""
        return self._logging

    @logging.setter
    def logging(self, value: bool) -> None:
        self._logging = bool(value)

    def connect(self, options: DatabaseOptions | None = None,
                engine_factory: Callable[..., Engine] = sa.create_engine,
                **kw: Any) -> Self:
        """Open the storage file named by the options.

        Options may be given as a DatabaseOptions object or as keyword
        arguments (``filename``, ``cipher``, ``key``, ``logging``).
        Raises ConnectError if the file cannot be opened; the previous
        state is kept in that case.
        """
        if options is None:
            options = DatabaseOptions(**kw)
        elif kw:
            options = dataclasses.replace(options, **kw)

        engine = None
        try:
            engine = create_engine_for_options(options, engine_factory=engine_factory)
            connection = engine.connect().execution_options(isolation_level='AUTOCOMMIT')
            connection.exec_driver_sql('PRAGMA foreign_keys = ON')
        except (sa.exc.SQLAlchemyError, ImportError) as err:
            if engine is not None:
                engine.dispose()
            raise ConnectError(f'connect: {err}') from err

        if self.connected:
            self.disconnect()

        with self._lock:
            self.options = options
            self._engine = engine
            self._connection = connection
            if options.logging is not None:
                self._logging = bool(options.logging)

        logger.debug(f'Connected to {options.filename}')
        return self

    def disconnect(self) -> None:
        """Close the connection. Safe to call when already disconnected.
        """
        with self._lock:
            connection, engine = self._connection, self._engine
            self._connection = None
            self._engine = None

        if connection is not None:
            connection.close()
        if engine is not None:
            engine.dispose()
            logger.debug('Disconnected')

    def _check_connected(self, operation: str) -> None:
        if not self.connected:
            raise NotConnectedError(operation)

    def _log(self, operation: str, statement: str, params: Any) -> None:
        if self._logging:
            logger.info(f'{operation}: {statement} params={params}')

    def _execute(self, operation: str, statement: str,
                 params: Mapping[str, Any] | None = None) -> sa.CursorResult:
        """Run one statement, wrapping engine errors with the operation name.
        """
        self._log(operation, statement, params or {})
        statement, params = sql.standardize_bind_tokens(statement, params)
        try:
            with self._lock:
                if self._connection is None:
                    raise NotConnectedError(operation)
                return self._connection.exec_driver_sql(statement, params)
        except sa.exc.IntegrityError as err:
            raise IntegrityViolationError(operation, err.orig) from err
        except sa.exc.DBAPIError as err:
            raise QueryError(operation, err.orig) from err

    @staticmethod
    def filter_values(table: str, columns: Sequence[Column],
                      values: Mapping[str, Any]) -> dict[str, Any]:
        """Keep values whose key names a declared column, converted for storage.

        Keys come back normalized; keys matching no column are dropped.
        """
        by_name = column_map(columns)
        filtered = {}
        removed_columns: set[str] = set()

        for key, value in values.items():
            name = normalize_name(key)
            if name in by_name:
                filtered[name] = to_storage(value)
            else:
                removed_columns.add(key)

        for key in removed_columns:
            logger.debug(f'Removed column {key} not in {table}')

        return filtered

    @staticmethod
    def rehydrate(columns: Sequence[Column], row: Mapping[str, Any]) -> attrdict:
        """Convert a stored row back to column types and declared names.

        Keys that match no declared column are kept as the engine named them.
        """
        by_name = column_map(columns)
        data = attrdict()
        for key, value in row.items():
            col = by_name.get(normalize_name(key))
            if col is None:
                data[key] = value
            else:
                data[col.name] = from_storage(value, col.type)
        return data

    def _rows(self, result: sa.CursorResult, columns: Sequence[Column]) -> list[attrdict]:
        if not result.returns_rows:
            return []
        return [self.rehydrate(columns, row) for row in result.mappings()]

    def _reread(self, operation: str, table: str, columns: Sequence[Column],
                key: str, ident: Any) -> attrdict | None:
        result = self._execute(operation, sql.find_by_id(table, key), {key: ident})
        rows = self._rows(result, columns)
        return rows[0] if rows else None

    def create_table(self, table: str, columns: Sequence[Column]) -> bool:
        """Create a table and its indexes if they do not exist.
        """
        self._check_connected('create_table')
        for statement in sql.create_table(table, columns):
            self._execute('create_table', statement)
        return True

    def drop_table(self, table: str) -> bool:
        """Drop a table if it exists.
        """
        self._check_connected('drop_table')
        self._execute('drop_table', sql.drop_table(table))
        return True

    def insert(self, table: str, columns: Sequence[Column], values: Mapping[str, Any],
               hooks: Hooks | None = None) -> attrdict:
        """Insert one row and return it as stored.

        Unknown keys are dropped, a CREATED_AT column is stamped when not
        supplied, and a STRING primary key declared ``auto`` gets a uuid4.
        The row is re-read by the identifier the engine assigned.
        """
        self._check_connected('insert')
        hooks = hooks or _no_hooks

        values = dict(values)
        replaced = hooks.before_insert(values)
        if replaced is not None:
            values = replaced

        new_values = self.filter_values(table, columns, values)
        key = primary_key(columns)

        if (key is not None and key.type is DataType.STRING and key.auto
                and new_values.get(key.key) is None):
            new_values[key.key] = str(uuid.uuid4())
        if CREATED_AT in column_map(columns) and new_values.get(CREATED_AT) is None:
            new_values[CREATED_AT] = to_storage(_now())

        result = self._execute('insert', sql.insert(table, new_values), new_values)
        if result.rowcount != 1:
            raise InsertFailedError('insert', f'Insert into "{table}" failed')

        if key is not None and new_values.get(key.key) is not None:
            row = self._reread('insert', table, columns, key.name, new_values[key.key])
        else:
            row = self._reread('insert', table, columns, key.name if key else ROWID,
                               result.lastrowid)
        if row is None:
            raise InsertFailedError('insert', f'Inserted row not found in "{table}"')

        hooks.after_insert(attrdict(row))
        return row

    def update(self, table: str, columns: Sequence[Column], values: Mapping[str, Any],
               hooks: Hooks | None = None) -> attrdict:
        """Update one row by identifier and return it as stored.

        The identifier must be among the values. An UPDATED_AT column is
        stamped when not supplied. The row is re-read by the supplied
        identifier.
        """
        self._check_connected('update')
        hooks = hooks or _no_hooks

        values = dict(values)
        replaced = hooks.before_update(values)
        if replaced is not None:
            values = replaced

        key = identifier_name(columns)
        new_values = self.filter_values(table, columns, values)
        ident = new_values.get(normalize_name(key))
        if ident is None:
            raise MissingIdentifierError(f'The {key!r} value must be provided to update {table}')

        if UPDATED_AT in column_map(columns) and new_values.get(UPDATED_AT) is None:
            new_values[UPDATED_AT] = to_storage(_now())

        result = self._execute('update', sql.update(table, new_values, key), new_values)
        if result.rowcount != 1:
            raise UpdateFailedError('update', f'Update of "{table}" failed')

        row = self._reread('update', table, columns, key, ident)
        if row is None:
            raise UpdateFailedError('update', f'Updated row not found in "{table}"')

        hooks.after_update(attrdict(row))
        return row

    def delete(self, table: str, id: Any, hooks: Hooks | None = None,
               columns: Sequence[Column] | None = None) -> bool:
        """Delete one row by identifier.

        Returns True when exactly one row was deleted.
        """
        self._check_connected('delete')
        hooks = hooks or _no_hooks

        hooks.before_delete(id)
        key = identifier_name(columns or ())
        result = self._execute('delete', sql.delete(table, key), {key: to_storage(id)})
        ok = result.rowcount == 1
        hooks.after_delete(ok)
        return ok

    def find_by_id(self, table: str, columns: Sequence[Column], id: Any) -> attrdict | None:
        """Find one row by identifier.
        """
        return self.find_by_column(table, columns, identifier_name(columns), id)

    def find_by_column(self, table: str, columns: Sequence[Column], name: str,
                       value: Any) -> attrdict | None:
        """Find the first row whose column equals the value.
        """
        return self.find_one(table, columns, Comparison(name, '=', value))

    def find_one(self, table: str, columns: Sequence[Column],
                 criteria: str | Condition | Mapping[str, Any] | None = None,
                 params: Mapping[str, Any] | None = None,
                 offset: int | None = None) -> attrdict | None:
        """Find the first matching row, or None when nothing matches.
        """
        rows = self.find_many(table, columns, criteria, params, limit=1, offset=offset)
        return rows[0] if rows else None

    def find_many(self, table: str, columns: Sequence[Column],
                  criteria: str | Condition | Mapping[str, Any] | None = None,
                  params: Mapping[str, Any] | None = None,
                  limit: int | None = None, offset: int | None = None) -> list[attrdict]:
        """Find matching rows.

        Criteria may be a WHERE fragment with named parameters, a condition
        built with `minorm.criteria`, or the criteria mapping form. For the
        latter two, caller params override single bind values and the rest
        come from the condition. An empty mapping selects every row.
        """
        self._check_connected('find_many')

        if not criteria or isinstance(criteria, str):
            where = criteria or None
        else:
            where = compile_criteria(criteria)
            params = sql.merge_params(bind_values(criteria), params)

        statement = sql.select(table, where, limit, offset)
        result = self._execute('find_many', statement, params)
        return self._rows(result, columns)

    def execute(self, statement: str, params: Mapping[str, Any] | None = None) -> int:
        """Execute a statement and return the affected row count.
        """
        self._check_connected('execute')
        return self._execute('execute', statement, params).rowcount

    def query(self, statement: str, params: Mapping[str, Any] | None = None,
              columns: Sequence[Column] = (), limit: int | None = None,
              offset: int | None = None) -> list[attrdict]:
        """Run a query and return rows coerced against the given columns.
        """
        self._check_connected('query')
        if limit is not None or offset:
            statement = sql.limit_clause(statement, limit, offset)
        result = self._execute('query', statement, params)
        return self._rows(result, columns)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Database:
    """Connect to a SQLite storage file

    Args:
        options: Can be:
                - DatabaseOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        connected Database
    """
    if isinstance(options, DatabaseOptions):
        for field in dataclasses.fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    return Database(logging=bool(options.logging)).connect(options)
