"""
Minimal relational mapping over SQLite.

Declare a table as a list of columns, then let a connected Database build
and run the statements:

    import minorm as orm
    from minorm.columns import primary_integer, string, boolean

    columns = [primary_integer('id'), string('email', 60, required=True, unique=True),
               boolean('active')]

    db = orm.connect({'filename': 'app.sqlite'})
    db.create_table('users', columns)
    user = db.insert('users', columns, {'email': 'a@b.com', 'active': True})
    db.find_many('users', columns, {'active': True})
"""
__version__ = '0.1.0'

from minorm.columns import Column, Options
from minorm.connection import Database, connect
from minorm.criteria import Combinator, Comparison, and_, bind_values, compare
from minorm.criteria import compile_criteria, or_, parse_criteria
from minorm.enums import EnumRegistry
from minorm.enums import registry as enum_registry
from minorm.exceptions import ConnectError, DatabaseError, InsertFailedError
from minorm.exceptions import IntegrityError, IntegrityViolationError
from minorm.exceptions import MissingIdentifierError, NoColumnsError
from minorm.exceptions import NotConnectedError, QueryError
from minorm.exceptions import TypeConversionError, UniqueViolation
from minorm.exceptions import UnsupportedOperatorError, UnsupportedTypeError
from minorm.exceptions import UpdateFailedError, ValidationError
from minorm.hooks import Hooks
from minorm.model import Model
from minorm.options import DatabaseOptions
from minorm.types import DataType, map_type

__all__ = [
    'connect',
    'Database',
    'DatabaseOptions',
    'Model',
    'Hooks',
    'Column',
    'Options',
    'DataType',
    'map_type',
    'Comparison',
    'Combinator',
    'compare',
    'and_',
    'or_',
    'parse_criteria',
    'compile_criteria',
    'bind_values',
    'EnumRegistry',
    'enum_registry',
    'DatabaseError',
    'ConnectError',
    'NotConnectedError',
    'ValidationError',
    'UnsupportedTypeError',
    'UnsupportedOperatorError',
    'MissingIdentifierError',
    'NoColumnsError',
    'TypeConversionError',
    'QueryError',
    'IntegrityViolationError',
    'InsertFailedError',
    'UpdateFailedError',
    'IntegrityError',
    'UniqueViolation',
]
