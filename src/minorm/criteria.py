"""
Criteria compilation.

A condition is either a ``Comparison`` (one column, one operator, its
operand) or a ``Combinator`` (AND/OR over child conditions). Conditions are
built with ``compare``, ``and_`` and ``or_``; the older mapping form

    {'$or': [{'name': 'Bob'}, {'age': {'>': 18}}]}

is parsed into the same structure by ``parse_criteria``.

``compile_criteria`` renders a WHERE fragment (no leading keyword) with
uppercase named bind tokens. The caller supplies the matching values;
``bind_values`` builds them from the operands held in the condition.
"""
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from minorm.exceptions import UnsupportedOperatorError, ValidationError
from minorm.utils import normalize_name
from more_itertools import always_iterable

__all__ = [
    'Comparison',
    'Combinator',
    'Condition',
    'compare',
    'and_',
    'or_',
    'parse_criteria',
    'compile_criteria',
    'bind_values',
]

logger = logging.getLogger(__name__)

ORDERING_OPERATORS = ('>', '<', '>=', '<=')
NULL_OPERATORS = ('IS NULL', 'IS NOT NULL')
OPERATORS = ('=', '!=', *ORDERING_OPERATORS, 'LIKE', 'IN', 'BETWEEN', *NULL_OPERATORS)
COMBINATORS = ('AND', 'OR')


def _normalize_operator(operator: Any) -> str:
    op = ' '.join(str(operator).split()).upper()
    if op not in OPERATORS:
        raise UnsupportedOperatorError(operator)
    return op


@dataclass(frozen=True)
class Comparison:
    """Compare one column against an operand."""

    column: str
    operator: str = '='
    operand: Any = None

    def __post_init__(self):
        object.__setattr__(self, 'operator', _normalize_operator(self.operator))
        if self.operator == 'BETWEEN':
            bounds = tuple(always_iterable(self.operand))
            if len(bounds) != 2:
                raise ValidationError(f'BETWEEN on {self.column} requires exactly two bounds, got {len(bounds)}')
            object.__setattr__(self, 'operand', bounds)
        elif self.operator == 'IN':
            object.__setattr__(self, 'operand', tuple(always_iterable(self.operand)))


@dataclass(frozen=True)
class Combinator:
    """Join child conditions with AND or OR.

    ``grouped`` combinators are wrapped in parentheses; sibling column
    entries of a criteria mapping are joined ungrouped.
    """

    kind: str
    children: tuple = field(default_factory=tuple)
    grouped: bool = True

    def __post_init__(self):
        kind = normalize_name(self.kind).lstrip('$')
        if kind not in COMBINATORS:
            raise UnsupportedOperatorError(self.kind)
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'children', tuple(self.children))


Condition = Comparison | Combinator


def compare(column: str, operator: str = '=', operand: Any = None) -> Comparison:
    return Comparison(column, operator, operand)


def and_(*children: Condition) -> Combinator:
    return Combinator('AND', children)


def or_(*children: Condition) -> Combinator:
    return Combinator('OR', children)


def parse_criteria(criteria: Mapping[str, Any]) -> Condition:
    """Parse the mapping form of criteria into a condition.

    Keys starting with ``$`` are combinators holding a sequence of child
    mappings. Any other key is a column; its value is either a literal
    (equality) or a mapping of operator -> operand. Several entries at the
    same level are joined with AND.
    """
    parts: list[Condition] = []
    for key, value in criteria.items():
        if str(key).startswith('$'):
            if isinstance(value, Mapping | str) or not isinstance(value, Sequence):
                raise ValidationError(f'Combinator {key} requires a sequence of criteria')
            parts.append(Combinator(key, [parse_criteria(child) for child in value]))
        elif isinstance(value, Mapping):
            parts.extend(Comparison(key, op, operand) for op, operand in value.items())
        else:
            parts.append(Comparison(key, '=', value))

    if len(parts) == 1:
        return parts[0]
    return Combinator('AND', parts, grouped=False)


def _as_condition(criteria: Condition | Mapping[str, Any]) -> Condition:
    if isinstance(criteria, Comparison | Combinator):
        return criteria
    if isinstance(criteria, Mapping):
        return parse_criteria(criteria)
    raise ValidationError(f'Unsupported criteria: {criteria!r}')


def _token(column: str, suffix: str | None = None) -> str:
    name = normalize_name(column)
    return f'{name}_{suffix}' if suffix else name


def _compile_comparison(cond: Comparison) -> str:
    col = normalize_name(cond.column)
    op = cond.operator

    if op in {'=', '!='}:
        return f'{col} {op} @{_token(col)}'
    if op in ORDERING_OPERATORS:
        return f'{col} {op} @{_token(col, op)}'
    if op == 'LIKE':
        return f'{col} LIKE @{_token(col, "LIKE")}'
    if op == 'IN':
        tokens = ', '.join(f'@{_token(col, f"IN_{i}")}' for i in range(len(cond.operand)))
        return f'{col} IN ({tokens})'
    if op == 'BETWEEN':
        return f'{col} BETWEEN @{_token(col, "BETWEEN_1")} AND @{_token(col, "BETWEEN_2")}'
    return f'{col} {op}'


def _compile(cond: Condition) -> str:
    if isinstance(cond, Comparison):
        return _compile_comparison(cond)

    if not cond.children:
        raise ValidationError(f'{cond.kind} requires at least one condition')
    joined = f' {cond.kind} '.join(_compile(child) for child in cond.children)
    return f'({joined})' if cond.grouped else joined


def compile_criteria(criteria: Condition | Mapping[str, Any]) -> str:
    """Compile criteria into a WHERE fragment.

    >>> compile_criteria({'age': {'>': 18}})
    'AGE > @AGE_>'
    >>> compile_criteria({'$or': [{'a': 1}, {'b': 2}]})
    '(A = @A OR B = @B)'
    """
    return _compile(_as_condition(criteria))


def bind_values(criteria: Condition | Mapping[str, Any]) -> dict[str, Any]:
    """Build the bind values implied by the tokens ``compile_criteria`` emits.

    >>> bind_values({'age': {'BETWEEN': (18, 65)}})
    {'AGE_BETWEEN_1': 18, 'AGE_BETWEEN_2': 65}
    """
    cond = _as_condition(criteria)
    if isinstance(cond, Combinator):
        values: dict[str, Any] = {}
        for child in cond.children:
            values.update(bind_values(child))
        return values

    col, op = cond.column, cond.operator
    if op in {'=', '!='}:
        return {_token(col): cond.operand}
    if op in ORDERING_OPERATORS:
        return {_token(col, op): cond.operand}
    if op == 'LIKE':
        return {_token(col, 'LIKE'): cond.operand}
    if op == 'IN':
        return {_token(col, f'IN_{i}'): v for i, v in enumerate(cond.operand)}
    if op == 'BETWEEN':
        low, high = cond.operand
        return {_token(col, 'BETWEEN_1'): low, _token(col, 'BETWEEN_2'): high}
    return {}
