"""
Named lists of enumerated values.

The module-level ``registry`` is preloaded with ``auth_role``, read from the
comma-separated ``AUTH_ROLES`` environment variable.
"""
import logging
import os
from collections.abc import Iterable

from minorm.exceptions import ValidationError

__all__ = ['EnumRegistry', 'registry', 'auth_roles']

logger = logging.getLogger(__name__)

DEFAULT_AUTH_ROLES = 'Guest,Subscriber,Admin'


def auth_roles() -> list[str]:
    """Roles from ``AUTH_ROLES``, falling back to the default three roles.
    """
    value = os.getenv('AUTH_ROLES') or DEFAULT_AUTH_ROLES
    return [role.strip() for role in value.split(',') if role.strip()]


class EnumRegistry:
    """Registry of named value lists."""

    def __init__(self) -> None:
        self._enums: dict[str, list] = {}

    def __len__(self) -> int:
        return len(self._enums)

    def __contains__(self, name: str) -> bool:
        return name in self._enums

    def add(self, name: str, values: Iterable) -> None:
        """Register a list; an existing name is left unchanged.
        """
        if name in self._enums:
            logger.debug(f'Enum {name} already defined')
            return
        self._enums[name] = list(values)

    def find(self, name: str) -> list | None:
        return self._enums.get(name)

    def remove(self, name: str) -> None:
        if name not in self._enums:
            raise ValidationError(f'"{name}" is not defined')
        del self._enums[name]

    def update(self, name: str, values: Iterable) -> None:
        if name not in self._enums:
            raise ValidationError(f'"{name}" is not defined')
        self._enums[name] = list(values)


registry = EnumRegistry()
registry.add('auth_role', auth_roles())
