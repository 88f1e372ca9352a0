"""
Mutation interceptors.

Subclass ``Hooks`` and override the call points you need, then pass an
instance to ``Database.insert``/``update``/``delete``:

    class HashPassword(Hooks):
        def before_insert(self, values):
            return {**values, 'password': hash_password(values['password'])}

Before-hooks run ahead of value filtering and may return replacement
values. After-hooks run once the statement has committed and receive a copy
of the re-read row; they cannot change what the operation returns.
"""
from typing import Any


class Hooks:
    """No-op interceptor base class."""

    def before_insert(self, values: dict[str, Any]) -> dict[str, Any]:
        return values

    def after_insert(self, row: dict[str, Any]) -> None:
        pass

    def before_update(self, values: dict[str, Any]) -> dict[str, Any]:
        return values

    def after_update(self, row: dict[str, Any]) -> None:
        pass

    def before_delete(self, id: Any) -> None:
        pass

    def after_delete(self, ok: bool) -> None:
        pass
