"""
Package-specific exception classes.
"""
import sqlite3

import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all minorm errors.
    """


class ConnectError(DatabaseError):
    """Error opening the storage file.
    """


class NotConnectedError(DatabaseError):
    """Operation attempted while the database is disconnected.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f'Database not connected during "{operation}"')


class TypeConversionError(DatabaseError):
    """Error converting a stored value back to its column type.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class UnsupportedTypeError(ValidationError):
    """Unknown logical column type.
    """

    def __init__(self, type_name: object) -> None:
        self.type_name = type_name
        super().__init__(f'Unsupported type: {type_name}')


class UnsupportedOperatorError(ValidationError):
    """Unknown criteria operator.
    """

    def __init__(self, operator: object) -> None:
        self.operator = operator
        super().__init__(f'Unsupported operator: {operator}')


class MissingIdentifierError(ValidationError):
    """Update requested without an identifier value.
    """


class NoColumnsError(ValidationError):
    """Statement requested with no column values.
    """


class QueryError(DatabaseError):
    """Error executing a statement, tagged with the attempted operation.
    """

    def __init__(self, operation: str, message: object) -> None:
        self.operation = operation
        super().__init__(f'{operation}: {message}')


class IntegrityViolationError(QueryError):
    """Database constraint violation error.
    """


class InsertFailedError(QueryError):
    """Insert did not affect exactly one row.
    """


class UpdateFailedError(QueryError):
    """Update did not affect exactly one row.
    """


IntegrityError = (
    sa.exc.IntegrityError,
    sqlite3.IntegrityError,
    IntegrityViolationError,
    )

UniqueViolation = (
    sqlite3.IntegrityError,
    IntegrityViolationError,
    )
